"""
tests/unit/test_constant_product_adapter.py - V2-style adapter tests.
"""

import time

import pytest
from web3 import Web3

from arbengine.chain import ChainUnavailable, codec
from arbengine.dex import ConstantProductAdapter, pancakeswap_v2
from arbengine.dex.routers import ROUTER_V2_ABI
from arbengine.pairs import (
    PoolConfig, PANCAKESWAP_V2_POOLS, PANCAKESWAP_V2_ROUTER, XRP, USDT,
)

R0 = 1_000_000 * 10**18
R1 = 2_000_000 * 10**18
RECIPIENT = Web3.to_checksum_address("0xf20fc6628058876843dbdb91a28824a0ac719a55")
BROKEN_PAIR = Web3.to_checksum_address("0x" + "ab" * 20)


def make_adapter(chain_client, pools=None):
    return ConstantProductAdapter(
        "TestSwap",
        "bsc",
        chain_client,
        PANCAKESWAP_V2_POOLS if pools is None else pools,
    )


class TestDiscoverPools:
    """Quoting from pair reserves."""

    def test_quotes_from_reserves(self, fake_chain):
        fake_chain.responses["getReserves"] = (R0, R1, 0)

        quotes = make_adapter(fake_chain).discover_pools(10**18)

        assert len(quotes) == 1
        quote = quotes[0]
        assert quote.protocol == "TestSwap"
        assert quote.chain == "bsc"
        assert quote.token0_address == XRP
        assert quote.token1_address == USDT
        assert quote.reserve0 == R0
        assert quote.reserve1 == R1
        assert quote.amount_out == 1993998011983982051
        assert quote.amount_in > quote.amount_out
        assert quote.price == pytest.approx(2.0)
        assert quote.is_valid

    def test_failing_pool_is_skipped(self, fake_chain):
        """One bad pair does not hide the others."""
        def reserves(address):
            if address == BROKEN_PAIR:
                raise ValueError("execution reverted")
            return (R0, R1, 0)

        fake_chain.responses["getReserves"] = reserves
        pools = [
            PoolConfig(BROKEN_PAIR, "XRP", "USDT", "V2", PANCAKESWAP_V2_ROUTER),
            PANCAKESWAP_V2_POOLS[0],
        ]

        quotes = make_adapter(fake_chain, pools).discover_pools(10**18)

        assert len(quotes) == 1
        assert len(fake_chain.calls) == 2

    def test_connection_failure_propagates(self, fake_chain):
        fake_chain.connected = False

        with pytest.raises(ChainUnavailable):
            make_adapter(fake_chain).discover_pools(10**18)

        assert fake_chain.calls == []

    def test_empty_pool_is_invalid(self, fake_chain):
        fake_chain.responses["getReserves"] = (0, R1, 0)

        quotes = make_adapter(fake_chain).discover_pools(10**18)

        assert quotes[0].amount_out == 0
        assert not quotes[0].is_valid

    def test_v3_pools_are_ignored(self, fake_chain):
        pools = [PoolConfig(BROKEN_PAIR, "XRP", "USDT", "V3", PANCAKESWAP_V2_ROUTER)]
        assert make_adapter(fake_chain, pools).pools == []


class TestCallBuilding:
    """Router call encoding."""

    def test_buy_call(self, fake_chain):
        adapter = pancakeswap_v2(fake_chain)

        spec = adapter.build_buy_call(XRP, USDT, 10**18, 3 * 10**18, RECIPIENT)

        assert spec.to == PANCAKESWAP_V2_ROUTER
        fn, params = codec(ROUTER_V2_ABI).decode_function_input(spec.data)
        assert fn.fn_name == "swapTokensForExactTokens"
        assert params["amountOut"] == 10**18
        assert params["amountInMax"] == 3 * 10**18
        assert list(params["path"]) == [USDT, XRP]
        assert params["to"] == RECIPIENT
        assert params["deadline"] > time.time()

    def test_sell_call(self, fake_chain):
        adapter = pancakeswap_v2(fake_chain)

        spec = adapter.build_sell_call(XRP, USDT, 10**18, 17 * 10**17, RECIPIENT)

        fn, params = codec(ROUTER_V2_ABI).decode_function_input(spec.data)
        assert fn.fn_name == "swapExactTokensForTokens"
        assert params["amountIn"] == 10**18
        assert params["amountOutMin"] == 17 * 10**17
        assert list(params["path"]) == [XRP, USDT]
        assert params["to"] == RECIPIENT

    def test_accepts_lowercase_addresses(self, fake_chain):
        adapter = pancakeswap_v2(fake_chain)

        spec = adapter.build_sell_call(XRP.lower(), USDT.lower(), 1, 0, RECIPIENT.lower())

        _, params = codec(ROUTER_V2_ABI).decode_function_input(spec.data)
        assert list(params["path"]) == [XRP, USDT]


class TestPresets:

    def test_pancakeswap_fee(self, fake_chain):
        adapter = pancakeswap_v2(fake_chain)
        assert adapter.name == "Pancakeswap"
        assert (adapter.fee_numerator, adapter.fee_denominator) == (9975, 10000)
        assert adapter.router_address == PANCAKESWAP_V2_ROUTER
