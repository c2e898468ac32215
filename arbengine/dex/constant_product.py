# arbengine/dex/constant_product.py
"""
Constant-product (Uniswap V2 style) adapter
Quotes come straight from pair reserves; trades go through the V2 router
"""

import time
import logging
from typing import List, Optional

from web3 import Web3

from arbengine.amm import (
    get_amount_in, get_amount_out, price_ratio,
    UNISWAP_V2_FEE, PANCAKESWAP_V2_FEE,
)
from arbengine.chain import ChainClient, encode_call
from arbengine.config import SWAP_DEADLINE_SECONDS
from arbengine.dex.base import ProtocolAdapter
from arbengine.dex.routers import PAIR_ABI, ROUTER_V2_ABI
from arbengine.models import CallSpec, PoolQuote
from arbengine.pairs import (
    PoolConfig, PANCAKESWAP_V2_POOLS, UNISWAP_V2_POOLS,
    PANCAKESWAP_V2_ROUTER, UNISWAP_V2_ROUTER, resolve_token,
)

logger = logging.getLogger(__name__)


class ConstantProductAdapter(ProtocolAdapter):

    def __init__(
        self,
        name: str,
        chain: str,
        client: ChainClient,
        pools: List[PoolConfig],
        router_address: Optional[str] = None,
        fee_numerator: int = 997,
        fee_denominator: int = 1000,
    ):
        if router_address is None:
            router_address = pools[0].router if pools else UNISWAP_V2_ROUTER
        super().__init__(name, chain, Web3.to_checksum_address(router_address))
        self.client = client
        self.pools = [p for p in pools if p.version == "V2"]
        self.fee_numerator = fee_numerator
        self.fee_denominator = fee_denominator

    def discover_pools(self, probe_amount: int) -> List[PoolQuote]:
        self.client.ensure_connected()

        quotes = []
        for pool in self.pools:
            try:
                quotes.append(self._quote_pool(pool, probe_amount))
            except Exception as e:
                logger.error(f"[{self.name}] Error loading pair {pool.address}: {e}")
        return quotes

    def _quote_pool(self, pool: PoolConfig, probe_amount: int) -> PoolQuote:
        reserve0, reserve1, _ = self.client.call(pool.address, PAIR_ABI, "getReserves")
        r0, r1 = int(reserve0), int(reserve1)

        amount_out = get_amount_out(
            probe_amount, r0, r1, self.fee_numerator, self.fee_denominator
        )
        amount_in = get_amount_in(
            probe_amount, r1, r0, self.fee_numerator, self.fee_denominator
        )
        logger.debug(
            f"[{self.name}] {pool.address} reserves=({r0}, {r1}) "
            f"amountOut={amount_out} amountIn={amount_in}"
        )

        return PoolQuote(
            protocol=self.name,
            chain=self.chain,
            token0=pool.token0,
            token1=pool.token1,
            token0_address=resolve_token(pool.token0),
            token1_address=resolve_token(pool.token1),
            reserve0=r0,
            reserve1=r1,
            probe_amount=probe_amount,
            amount_out=amount_out,
            amount_in=amount_in,
            price=price_ratio(r0, r1),
            adapter=self,
        )

    def build_buy_call(self, token_a, token_b, amount_out, max_amount_in, recipient) -> CallSpec:
        path = [Web3.to_checksum_address(token_b), Web3.to_checksum_address(token_a)]
        data = encode_call(
            ROUTER_V2_ABI,
            "swapTokensForExactTokens",
            amount_out,
            max_amount_in,
            path,
            Web3.to_checksum_address(recipient),
            self._deadline(),
        )
        return CallSpec(to=self.router_address, data=data)

    def build_sell_call(self, token_a, token_b, amount_in, min_amount_out, recipient) -> CallSpec:
        path = [Web3.to_checksum_address(token_a), Web3.to_checksum_address(token_b)]
        data = encode_call(
            ROUTER_V2_ABI,
            "swapExactTokensForTokens",
            amount_in,
            min_amount_out,
            path,
            Web3.to_checksum_address(recipient),
            self._deadline(),
        )
        return CallSpec(to=self.router_address, data=data)

    @staticmethod
    def _deadline() -> int:
        return int(time.time()) + SWAP_DEADLINE_SECONDS


# =============================================================================
# PRESETS
# =============================================================================

def uniswap_v2(
    client: ChainClient,
    chain: str = "ethereum",
    pools: Optional[List[PoolConfig]] = None,
) -> ConstantProductAdapter:
    """Uniswap V2: 0.30% fee"""
    return ConstantProductAdapter(
        "UniswapV2",
        chain,
        client,
        UNISWAP_V2_POOLS if pools is None else pools,
        router_address=UNISWAP_V2_ROUTER,
        fee_numerator=UNISWAP_V2_FEE[0],
        fee_denominator=UNISWAP_V2_FEE[1],
    )


def pancakeswap_v2(
    client: ChainClient,
    chain: str = "bsc",
    pools: Optional[List[PoolConfig]] = None,
) -> ConstantProductAdapter:
    """PancakeSwap V2: 0.25% fee"""
    return ConstantProductAdapter(
        "Pancakeswap",
        chain,
        client,
        PANCAKESWAP_V2_POOLS if pools is None else pools,
        router_address=PANCAKESWAP_V2_ROUTER,
        fee_numerator=PANCAKESWAP_V2_FEE[0],
        fee_denominator=PANCAKESWAP_V2_FEE[1],
    )
