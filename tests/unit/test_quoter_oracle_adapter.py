"""
tests/unit/test_quoter_oracle_adapter.py - Quoter-based (V3) adapter tests.
"""

import pytest
from web3 import Web3

from arbengine.chain import ChainUnavailable, codec
from arbengine.dex import QuoterOracleAdapter, encode_path, uniswap_v3
from arbengine.dex.routers import ROUTER_V3_ABI
from arbengine.pairs import (
    PoolConfig, UNISWAP_V3_POOLS, UNISWAP_V3_ROUTER, XRP, USDT, WBNB,
)

RECIPIENT = Web3.to_checksum_address("0xf20fc6628058876843dbdb91a28824a0ac719a55")
BROKEN_POOL = Web3.to_checksum_address("0x" + "cd" * 20)


def _field(value, index, name):
    """Decoded tuples come back as dicts or plain tuples depending on web3 version."""
    if isinstance(value, dict):
        return value[name]
    return value[index]


def _addr(address):
    return bytes.fromhex(address[2:])


class TestEncodePath:

    def test_single_hop(self):
        path = encode_path([XRP, USDT], [3000])
        assert path == _addr(XRP) + bytes.fromhex("000bb8") + _addr(USDT)
        assert len(path) == 43

    def test_two_hops(self):
        path = encode_path([XRP, WBNB, USDT], [500, 10000])
        assert path == (
            _addr(XRP) + bytes.fromhex("0001f4")
            + _addr(WBNB) + bytes.fromhex("002710")
            + _addr(USDT)
        )

    def test_fee_count_mismatch(self):
        with pytest.raises(ValueError):
            encode_path([XRP, USDT], [])
        with pytest.raises(ValueError):
            encode_path([XRP, USDT], [500, 3000])

    def test_single_token_rejected(self):
        with pytest.raises(ValueError):
            encode_path([XRP], [])

    def test_short_address_rejected(self):
        with pytest.raises(ValueError):
            encode_path(["0x1234", USDT], [3000])


class TestDiscoverPools:

    def test_quotes_both_directions(self, fake_chain):
        fake_chain.responses["quoteExactInputSingle"] = (2 * 10**18, 0, 1, 90_000)
        fake_chain.responses["quoteExactOutputSingle"] = (21 * 10**17, 0, 1, 90_000)

        quotes = uniswap_v3(fake_chain).discover_pools(10**18)

        assert len(quotes) == 1
        quote = quotes[0]
        assert quote.protocol == "UniswapV3"
        assert quote.amount_out == 2 * 10**18
        assert quote.amount_in == 21 * 10**17
        assert quote.reserve0 == 0 and quote.reserve1 == 0

        (_, fwd_name, fwd_args), (_, rev_name, rev_args) = fake_chain.calls
        assert fwd_name == "quoteExactInputSingle"
        assert fwd_args[0] == (XRP, USDT, 10**18, 3000, 0)
        assert rev_name == "quoteExactOutputSingle"
        assert rev_args[0] == (USDT, XRP, 10**18, 3000, 0)

    def test_reverting_pool_is_skipped(self, fake_chain):
        def quote(address, params):
            if params[3] == 500:
                raise ValueError("execution reverted")
            return (10**18, 0, 0, 0)

        fake_chain.responses["quoteExactInputSingle"] = quote
        fake_chain.responses["quoteExactOutputSingle"] = quote
        pools = [
            PoolConfig(BROKEN_POOL, "XRP", "USDT", "V3", UNISWAP_V3_ROUTER, fee=500),
            UNISWAP_V3_POOLS[0],
        ]

        quotes = uniswap_v3(fake_chain, pools=pools).discover_pools(10**18)

        assert len(quotes) == 1

    def test_connection_failure_propagates(self, fake_chain):
        fake_chain.connected = False

        with pytest.raises(ChainUnavailable):
            uniswap_v3(fake_chain).discover_pools(10**18)


class TestCallBuilding:

    def test_sell_uses_exact_input(self, fake_chain):
        adapter = uniswap_v3(fake_chain)

        spec = adapter.build_sell_call(XRP, USDT, 10**18, 17 * 10**17, RECIPIENT)

        assert spec.to == UNISWAP_V3_ROUTER
        fn, args = codec(ROUTER_V3_ABI).decode_function_input(spec.data)
        assert fn.fn_name == "exactInput"
        params = args["params"]
        assert _field(params, 0, "path") == encode_path([XRP, USDT], [3000])
        assert _field(params, 1, "recipient") == RECIPIENT
        assert _field(params, 2, "amountIn") == 10**18
        assert _field(params, 3, "amountOutMinimum") == 17 * 10**17

    def test_buy_uses_exact_output_with_output_first_path(self, fake_chain):
        adapter = uniswap_v3(fake_chain)

        spec = adapter.build_buy_call(XRP, USDT, 10**18, 22 * 10**17, RECIPIENT)

        fn, args = codec(ROUTER_V3_ABI).decode_function_input(spec.data)
        assert fn.fn_name == "exactOutput"
        params = args["params"]
        # Paying USDT for XRP: path starts at the output token
        assert _field(params, 0, "path") == encode_path([XRP, USDT], [3000])
        assert _field(params, 2, "amountOut") == 10**18
        assert _field(params, 3, "amountInMaximum") == 22 * 10**17

    def test_fee_tier_follows_pool(self, fake_chain):
        pools = [PoolConfig(BROKEN_POOL, "XRP", "USDT", "V3", UNISWAP_V3_ROUTER, fee=500)]
        adapter = QuoterOracleAdapter("V3Test", "bsc", fake_chain, pools)

        spec = adapter.build_sell_call(XRP, USDT, 1, 0, RECIPIENT)

        _, args = codec(ROUTER_V3_ABI).decode_function_input(spec.data)
        assert _field(args["params"], 0, "path") == encode_path([XRP, USDT], [500])
