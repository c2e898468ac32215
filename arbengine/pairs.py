# arbengine/pairs.py
"""
Token & Pool Registry for BSC
Pools watched by each protocol adapter, plus router and quoter addresses
"""

from web3 import Web3
from dataclasses import dataclass
from typing import Dict, List, Optional

# =============================================================================
# TOKEN ADDRESSES (BSC Mainnet - All Checksummed)
# =============================================================================

XRP = Web3.to_checksum_address("0x1D2F0da169ceB9fC7B3144628dB156f3F6c60dBE")
USDC = Web3.to_checksum_address("0x8AC76a51cc950d9822D68b83fE1Ad97B32Cd580d")
USDT = Web3.to_checksum_address("0x55d398326f99059fF775485246999027B3197955")
WBNB = Web3.to_checksum_address("0xbb4CdB9CBd36B01bD1cBaEBF2De08d9173bc095c")

TOKENS: Dict[str, str] = {
    "XRP": XRP,
    "USDC": USDC,
    "USDT": USDT,
    "WBNB": WBNB,
}

SYMBOL_BY_ADDRESS = {addr: symbol for symbol, addr in TOKENS.items()}

# =============================================================================
# ROUTERS & QUOTERS
# =============================================================================

PANCAKESWAP_V2_ROUTER = Web3.to_checksum_address("0x10ED43C718714eb63d5aA57B78B54704E256024E")
UNISWAP_V2_ROUTER = Web3.to_checksum_address("0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D")
UNISWAP_V3_ROUTER = Web3.to_checksum_address("0xB971eF87ede563556b2ED4b1C0b0019111Dd85d2")
UNISWAP_V3_QUOTER = Web3.to_checksum_address("0x78D78E420Da98ad378D7799bE8f4AF69033EB077")

# =============================================================================
# POOL CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class PoolConfig:
    address: str
    token0: str          # symbol, resolved through TOKENS
    token1: str
    version: str         # "V2" or "V3"
    router: str
    fee: int = 3000      # V3 fee tier (hundredths of a bip)


PANCAKESWAP_V2_POOLS: List[PoolConfig] = [
    PoolConfig(
        address=Web3.to_checksum_address("0x3D15D4Fbe8a6ECd3AAdcfb2Db9DD8656c60Fb25c"),
        token0="XRP",
        token1="USDT",
        version="V2",
        router=PANCAKESWAP_V2_ROUTER,
    ),
]

UNISWAP_V3_POOLS: List[PoolConfig] = [
    PoolConfig(
        address=Web3.to_checksum_address("0x0aDaF134Ae0c4583b3A38fc3168A83e33162651E"),
        token0="XRP",
        token1="USDT",
        version="V3",
        router=UNISWAP_V3_ROUTER,
        fee=3000,
    ),
]

# Ethereum mainnet WETH/USDC pair, used by the Uniswap V2 adapter when enabled
UNISWAP_V2_POOLS: List[PoolConfig] = [
    PoolConfig(
        address=Web3.to_checksum_address("0xB4e16d0168e52d35CaCD2c6185b44281Ec28C9Dc"),
        token0="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
        token1="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
        version="V2",
        router=UNISWAP_V2_ROUTER,
    ),
]


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def resolve_token(symbol_or_address: str) -> str:
    """Resolve a configured symbol to its address; addresses pass through checksummed"""
    address = TOKENS.get(symbol_or_address)
    if address:
        return address
    return Web3.to_checksum_address(symbol_or_address)


def get_symbol(address: Optional[str]) -> str:
    """Get token symbol"""
    if not address:
        return "UNKNOWN"
    return SYMBOL_BY_ADDRESS.get(Web3.to_checksum_address(address), "UNKNOWN")
