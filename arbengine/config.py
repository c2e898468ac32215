# arbengine/config.py
"""
Arbitrage Engine Configuration
Values come from config/.env when present, otherwise from the defaults below
"""

import os
from dotenv import load_dotenv
from pathlib import Path
from decimal import Decimal

# -----------------------------
# Load .env safely
# -----------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / "config" / ".env"

if ENV_PATH.exists():
    load_dotenv(ENV_PATH)
else:
    load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# -----------------------------
# RPC Configuration (one endpoint per network)
# -----------------------------
RPC_ENDPOINTS = {
    "ethereum": os.getenv("RPC_ETHEREUM", "https://eth.llamarpc.com"),
    "bsc": os.getenv("RPC_BSC", "https://bsc-dataseed.binance.org"),
}

CHAIN_IDS = {
    "ethereum": 1,
    "bsc": 56,
}

TRADING_CHAIN = os.getenv("TRADING_CHAIN", "bsc")

# BSC and Infura endpoints reject "pending" for eth_getTransactionCount
NONCE_BLOCK_TAG = os.getenv("NONCE_BLOCK_TAG", "latest")

# -----------------------------
# Wallet Configuration
# -----------------------------
# Without a key the engine runs in scan-only mode
PRIVATE_KEY = os.getenv("PRIVATE_KEY")

# -----------------------------
# Batch Executor (Multicall3-compatible contract)
# -----------------------------
MULTICALL_ADDRESS = os.getenv(
    "MULTICALL_ADDRESS", "0xF20FC6628058876843Dbdb91a28824a0ac719a55"
)

# -----------------------------
# Detection Parameters
# -----------------------------
MIN_SPREAD_PCT = Decimal(os.getenv("MIN_SPREAD_PCT", "0.3"))
PROBE_AMOUNT = int(os.getenv("PROBE_AMOUNT", str(10**18)))  # 1 token, 18 decimals

# -----------------------------
# Execution Parameters
# -----------------------------
MIN_PROFIT_PCT = Decimal(os.getenv("MIN_PROFIT_PCT", "10"))
TX_TIMEOUT_SECONDS = float(os.getenv("TX_TIMEOUT_SECONDS", "60"))
SWAP_DEADLINE_SECONDS = 300

# Slippage policy as (numerator, denominator)
BUY_SLIPPAGE = (1100, 1000)   # pay up to 10% more on the buy leg
SELL_SLIPPAGE = (850, 1000)   # accept down to 85% on the sell leg

# Share of the expected profit added to the amount returned to the wallet
PROFIT_HAIRCUT_BPS = 5000

# -----------------------------
# Gas Configuration
# -----------------------------
GAS_LIMIT_BATCH = 1_000_000
GAS_LIMIT_APPROVAL = 60_000
GAS_LIMIT_WITHDRAW = 100_000
MAX_GAS_PRICE_GWEI = int(os.getenv("MAX_GAS_PRICE_GWEI", "20"))

# -----------------------------
# Safety Thresholds
# -----------------------------
MAX_RPC_LATENCY = 2.0          # seconds
MAX_CONSECUTIVE_FAILURES = 5

# -----------------------------
# Scan Loop
# -----------------------------
SCAN_INTERVAL_SECONDS = float(os.getenv("SCAN_INTERVAL_SECONDS", "5"))
AUTO_EXECUTE = _env_bool("AUTO_EXECUTE", False)

# -----------------------------
# Logging
# -----------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))
