# arbengine/__init__.py
"""
Cross-DEX Arbitrage Engine
Detects price gaps between pools and executes both legs in one batch transaction

Modules:
- config: Configuration and environment
- pairs: Token and pool registry
- amm: Constant-product integer math
- chain: Web3 client, signing and receipts
- dex: Protocol adapters (constant-product and quoter-based)
- registry: Active protocol set
- detector: Opportunity detection
- trader: Batch execution with a single-flight lock
- main: Entry point
"""

__version__ = "1.0.0"

from arbengine.models import (
    PoolQuote,
    Opportunity,
    ExecutionResult,
    ExecutionStatus,
)
from arbengine.registry import ProtocolRegistry
from arbengine.detector import OpportunityDetector
from arbengine.trader import Trader

__all__ = [
    "PoolQuote",
    "Opportunity",
    "ExecutionResult",
    "ExecutionStatus",
    "ProtocolRegistry",
    "OpportunityDetector",
    "Trader",
]
