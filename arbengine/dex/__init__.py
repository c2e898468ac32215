from arbengine.dex.base import ProtocolAdapter
from arbengine.dex.constant_product import ConstantProductAdapter, uniswap_v2, pancakeswap_v2
from arbengine.dex.quoter_oracle import QuoterOracleAdapter, encode_path, uniswap_v3

__all__ = [
    "ProtocolAdapter",
    "ConstantProductAdapter",
    "QuoterOracleAdapter",
    "encode_path",
    "uniswap_v2",
    "pancakeswap_v2",
    "uniswap_v3",
]
