# arbengine/amm.py
"""
Constant-product (x * y = k) pricing in integer arithmetic

Fees are given as (fee_numerator, fee_denominator):
997/1000 for a 0.30% pool, 9975/10000 for a 0.25% pool.
"""

UNISWAP_V2_FEE = (997, 1000)
PANCAKESWAP_V2_FEE = (9975, 10000)


def get_amount_out(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_numerator: int = 997,
    fee_denominator: int = 1000,
) -> int:
    """Output received for an exact input. Returns 0 for an unusable pool."""
    if amount_in <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return 0

    amount_in_with_fee = amount_in * fee_numerator
    numerator = amount_in_with_fee * reserve_out
    denominator = reserve_in * fee_denominator + amount_in_with_fee
    if denominator <= 0:
        return 0
    return numerator // denominator


def get_amount_in(
    amount_out: int,
    reserve_in: int,
    reserve_out: int,
    fee_numerator: int = 997,
    fee_denominator: int = 1000,
) -> int:
    """Input required for an exact output. Returns 0 when the pool cannot fill it."""
    if amount_out <= 0 or reserve_in <= 0 or reserve_out <= 0:
        return 0

    numerator = reserve_in * amount_out * fee_denominator
    denominator = (reserve_out - amount_out) * fee_numerator
    if denominator <= 0:
        return 0
    return numerator // denominator + 1


def price_ratio(reserve0: int, reserve1: int) -> float:
    """token1 per token0 for display; never feed this into amount math"""
    if reserve0 <= 0:
        return 0.0
    return reserve1 / reserve0
