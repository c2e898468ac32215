# arbengine/models.py
"""
Value records shared by the adapters, the detector and the trader
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


# =============================================================================
# POOL & OPPORTUNITY RECORDS
# =============================================================================

@dataclass(frozen=True)
class PoolQuote:
    """Quoted state of one pool for one probe size"""
    protocol: str
    chain: str
    token0: str                # symbol, e.g. "XRP"
    token1: str                # symbol, e.g. "USDT"
    token0_address: str
    token1_address: str
    reserve0: int              # 0 for quoter-based pools
    reserve1: int
    probe_amount: int
    amount_out: int            # token1 received for probe_amount of token0
    amount_in: int             # token1 required to receive probe_amount of token0
    price: float = 0.0         # token1 per token0, display only
    adapter: Any = field(default=None, compare=False, repr=False)

    @property
    def is_valid(self) -> bool:
        return self.amount_out > 0 and self.amount_in > 0


@dataclass(frozen=True)
class Opportunity:
    """Buy on one pool, sell on another"""
    opportunity_id: str
    buy_from: str
    sell_to: str
    token_pair: str
    profit_pct: Decimal
    amount_in: int             # probe size, in token_a
    amount_after_buy: int      # forward quote on the buy pool
    amount_back: int           # net return over the probe
    token_a: Optional[str]
    token_b: Optional[str]
    buy_amount_in: int         # token_b expected to be paid on the buy leg
    sell_amount_out: int       # token_b expected from the sell leg
    buy_dex: Any = field(default=None, compare=False, repr=False)
    sell_dex: Any = field(default=None, compare=False, repr=False)
    timestamp: float = field(default_factory=time.time)


# =============================================================================
# CALL DATA
# =============================================================================

@dataclass(frozen=True)
class CallSpec:
    """Router call built by an adapter"""
    to: str
    data: bytes


@dataclass(frozen=True)
class BatchCall:
    """One aggregate3 entry: (target, allowFailure, callData)"""
    target: str
    allow_failure: bool
    call_data: bytes

    def as_tuple(self) -> tuple:
        return (self.target, self.allow_failure, self.call_data)


# =============================================================================
# TRADE LOCK
# =============================================================================

class LockState(Enum):
    IDLE = "idle"
    LOCKED = "locked"


@dataclass
class TradeLock:
    """Single-flight guard owned by one Trader"""
    state: LockState = LockState.IDLE
    tx_hash: Optional[str] = None
    started_at: Optional[float] = None

    @property
    def locked(self) -> bool:
        return self.state is LockState.LOCKED

    def acquire(self, tx_hash: str, now: float) -> None:
        self.state = LockState.LOCKED
        self.tx_hash = tx_hash
        self.started_at = now

    def release(self) -> None:
        self.state = LockState.IDLE
        self.tx_hash = None
        self.started_at = None

    def elapsed(self, now: float) -> float:
        if self.started_at is None:
            return 0.0
        return now - self.started_at

    def is_stale(self, now: float, timeout: float) -> bool:
        return self.locked and self.elapsed(now) > timeout


# =============================================================================
# EXECUTION RESULT
# =============================================================================

class ExecutionStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ExecutionResult:
    """Result of an arbitrage execution attempt"""
    status: ExecutionStatus
    opportunity_id: str = ""
    tx_hash: Optional[str] = None
    block_number: Optional[int] = None
    gas_used: Optional[int] = None
    error: str = ""
    reason: str = ""
    execution_time_ms: float = 0

    @property
    def success(self) -> bool:
        return self.status is ExecutionStatus.SUCCESS

    @property
    def skipped(self) -> bool:
        return self.status is ExecutionStatus.SKIPPED
