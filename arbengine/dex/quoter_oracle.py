# arbengine/dex/quoter_oracle.py
"""
Quoter-based (Uniswap V3 style) adapter

V3 pools expose no simple reserves, so both directions are priced by
simulating swaps through the QuoterV2 contract.
"""

import logging
from typing import List, Optional, Sequence

from web3 import Web3

from arbengine.chain import ChainClient, encode_call
from arbengine.dex.base import ProtocolAdapter
from arbengine.dex.routers import QUOTER_V2_ABI, ROUTER_V3_ABI
from arbengine.models import CallSpec, PoolQuote
from arbengine.pairs import (
    PoolConfig, UNISWAP_V3_POOLS, UNISWAP_V3_QUOTER, UNISWAP_V3_ROUTER,
    resolve_token,
)

logger = logging.getLogger(__name__)

DEFAULT_FEE_TIER = 3000
FEE_SIZE = 3        # uint24
ADDRESS_SIZE = 20


def encode_path(tokens: Sequence[str], fees: Sequence[int]) -> bytes:
    """
    Packed V3 path: token0 | fee0 | token1 | fee1 | token2 ...

    Needs exactly one fee per hop.
    """
    if len(tokens) < 2 or len(fees) != len(tokens) - 1:
        raise ValueError(f"Path needs one fee per hop: {len(tokens)} tokens, {len(fees)} fees")

    path = b""
    for i, token in enumerate(tokens):
        token_bytes = Web3.to_bytes(hexstr=token)
        if len(token_bytes) != ADDRESS_SIZE:
            raise ValueError(f"Invalid token address in path: {token}")
        path += token_bytes
        if i < len(fees):
            path += int(fees[i]).to_bytes(FEE_SIZE, "big")
    return path


class QuoterOracleAdapter(ProtocolAdapter):

    def __init__(
        self,
        name: str,
        chain: str,
        client: ChainClient,
        pools: List[PoolConfig],
        quoter_address: str = UNISWAP_V3_QUOTER,
        router_address: Optional[str] = None,
    ):
        if router_address is None:
            router_address = pools[0].router if pools else UNISWAP_V3_ROUTER
        super().__init__(name, chain, Web3.to_checksum_address(router_address))
        self.client = client
        self.pools = [p for p in pools if p.version == "V3"]
        self.quoter_address = Web3.to_checksum_address(quoter_address)

    @property
    def fee_tier(self) -> int:
        return self.pools[0].fee if self.pools else DEFAULT_FEE_TIER

    def discover_pools(self, probe_amount: int) -> List[PoolQuote]:
        self.client.ensure_connected()

        quotes = []
        for pool in self.pools:
            try:
                quotes.append(self._quote_pool(pool, probe_amount))
            except Exception as e:
                # Quoter reverts for some pools; the others still count
                logger.error(f"[{self.name}] Quoter failed for pool {pool.address}: {e}")
        return quotes

    def _quote_pool(self, pool: PoolConfig, probe_amount: int) -> PoolQuote:
        token0 = resolve_token(pool.token0)
        token1 = resolve_token(pool.token1)

        forward = self.client.call(
            self.quoter_address,
            QUOTER_V2_ABI,
            "quoteExactInputSingle",
            (token0, token1, probe_amount, pool.fee, 0),
        )
        reverse = self.client.call(
            self.quoter_address,
            QUOTER_V2_ABI,
            "quoteExactOutputSingle",
            (token1, token0, probe_amount, pool.fee, 0),
        )
        amount_out = int(forward[0])
        amount_in = int(reverse[0])
        logger.info(
            f"[{self.name}] Quoted pool {pool.address}: amountOut={amount_out}, amountIn={amount_in}"
        )

        return PoolQuote(
            protocol=self.name,
            chain=self.chain,
            token0=pool.token0,
            token1=pool.token1,
            token0_address=token0,
            token1_address=token1,
            reserve0=0,
            reserve1=0,
            probe_amount=probe_amount,
            amount_out=amount_out,
            amount_in=amount_in,
            adapter=self,
        )

    def build_buy_call(self, token_a, token_b, amount_out, max_amount_in, recipient) -> CallSpec:
        swap_tokens = [token_b, token_a]
        fees = [self.fee_tier]
        # exactOutput paths are encoded output-first
        path = encode_path(list(reversed(swap_tokens)), list(reversed(fees)))
        data = encode_call(
            ROUTER_V3_ABI,
            "exactOutput",
            (path, Web3.to_checksum_address(recipient), amount_out, max_amount_in),
        )
        return CallSpec(to=self.router_address, data=data)

    def build_sell_call(self, token_a, token_b, amount_in, min_amount_out, recipient) -> CallSpec:
        swap_tokens = [token_a, token_b]
        fees = [self.fee_tier]
        path = encode_path(swap_tokens, fees)
        data = encode_call(
            ROUTER_V3_ABI,
            "exactInput",
            (path, Web3.to_checksum_address(recipient), amount_in, min_amount_out),
        )
        return CallSpec(to=self.router_address, data=data)


def uniswap_v3(
    client: ChainClient,
    chain: str = "bsc",
    pools: Optional[List[PoolConfig]] = None,
) -> QuoterOracleAdapter:
    return QuoterOracleAdapter(
        "UniswapV3",
        chain,
        client,
        UNISWAP_V3_POOLS if pools is None else pools,
        quoter_address=UNISWAP_V3_QUOTER,
        router_address=UNISWAP_V3_ROUTER,
    )
