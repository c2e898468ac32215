# arbengine/trader.py
"""
Atomic Arbitrage Executor
Builds both swap legs into one batch-executor transaction, guarded by a
single-flight trade lock
"""

import time
import logging
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from web3 import Web3

from arbengine.chain import ChainClient, encode_call
from arbengine.config import (
    MULTICALL_ADDRESS, TX_TIMEOUT_SECONDS, MIN_PROFIT_PCT,
    GAS_LIMIT_BATCH, GAS_LIMIT_APPROVAL, GAS_LIMIT_WITHDRAW,
    BUY_SLIPPAGE, SELL_SLIPPAGE, PROFIT_HAIRCUT_BPS,
)
from arbengine.models import (
    BatchCall, CallSpec, ExecutionResult, ExecutionStatus, Opportunity, TradeLock,
)
from arbengine.pairs import get_symbol

logger = logging.getLogger(__name__)
trade_logger = logging.getLogger("arbengine.trades")

MAX_UINT256 = 2**256 - 1


# =============================================================================
# ABI DEFINITIONS
# =============================================================================

ERC20_ABI = [
    {
        "name": "approve",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "allowance",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "balanceOf",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "account", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "transfer",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
    {
        "name": "transferFrom",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "from", "type": "address"},
            {"name": "to", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bool"}],
    },
]

# Multicall3 aggregate3 plus the executor's owner helpers
MULTICALL_ABI = [
    {
        "name": "aggregate3",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "calls",
                "type": "tuple[]",
                "components": [
                    {"name": "target", "type": "address"},
                    {"name": "allowFailure", "type": "bool"},
                    {"name": "callData", "type": "bytes"},
                ],
            }
        ],
        "outputs": [
            {
                "name": "returnData",
                "type": "tuple[]",
                "components": [
                    {"name": "success", "type": "bool"},
                    {"name": "returnData", "type": "bytes"},
                ],
            }
        ],
    },
    {
        "name": "approveToken",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "spender", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "name": "withdrawToken",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "token", "type": "address"},
            {"name": "amount", "type": "uint256"},
        ],
        "outputs": [],
    },
]


# =============================================================================
# AMOUNT POLICY
# =============================================================================

def slippage_bounds(buy_amount_in: int, sell_amount_out: int) -> Tuple[int, int]:
    """(max token_b paid on the buy leg, min token_b accepted on the sell leg)"""
    max_buy_in = buy_amount_in * BUY_SLIPPAGE[0] // BUY_SLIPPAGE[1]
    min_sell_out = sell_amount_out * SELL_SLIPPAGE[0] // SELL_SLIPPAGE[1]
    return max_buy_in, min_sell_out


def transfer_back_amount(amount_in: int, buy_amount_in: int, sell_amount_out: int) -> int:
    """Principal plus the haircut share of the expected profit"""
    profit = max(sell_amount_out - buy_amount_in, 0)
    return amount_in + profit * PROFIT_HAIRCUT_BPS // 10_000


# =============================================================================
# TRADER
# =============================================================================

class Trader:
    """
    Executes opportunities through the batch executor contract

    At most one batch is in flight per Trader. The lock is taken as soon as
    the batch is broadcast and released when it confirms or fails; a lock
    older than tx_timeout is cleared by the next execute() call.
    """

    def __init__(
        self,
        chain: ChainClient,
        multicall_address: str = MULTICALL_ADDRESS,
        tx_timeout: float = TX_TIMEOUT_SECONDS,
        min_profit_pct: Optional[Decimal] = MIN_PROFIT_PCT,
        gas_limit: int = GAS_LIMIT_BATCH,
        clock: Callable[[], float] = time.time,
    ):
        self.chain = chain
        self.multicall_address = Web3.to_checksum_address(multicall_address)
        self.tx_timeout = tx_timeout
        self.min_profit_pct = None if min_profit_pct is None else Decimal(str(min_profit_pct))
        self.gas_limit = gas_limit
        self.clock = clock
        self.lock = TradeLock()

        # Execution statistics
        self.total_executions = 0
        self.successful_executions = 0
        self.skipped_executions = 0

    @property
    def wallet_address(self) -> str:
        return self.chain.address

    # -------------------------------------------------------------------------
    # Token helpers
    # -------------------------------------------------------------------------

    def check_balance(self, token: str) -> int:
        return self.chain.call(token, ERC20_ABI, "balanceOf", self.wallet_address)

    def check_allowance(self, token: str, spender: str) -> int:
        return self.chain.call(
            token, ERC20_ABI, "allowance",
            self.wallet_address, Web3.to_checksum_address(spender),
        )

    def ensure_approval(self, token: str, spender: str, amount: int) -> Optional[str]:
        """
        Approve spender for max uint256 when the allowance is short
        Returns the approval tx hash, or None if nothing was sent
        """
        allowance = self.check_allowance(token, spender)
        if allowance >= amount:
            return None

        logger.info(f"🔏 Approving {spender} to spend {get_symbol(token)}...")
        data = encode_call(
            ERC20_ABI, "approve", Web3.to_checksum_address(spender), MAX_UINT256
        )
        tx_hash = self.chain.send_transaction(token, data, GAS_LIMIT_APPROVAL)
        logger.info(f"Approval tx sent: {tx_hash}")

        self.chain.wait_for_receipt(tx_hash, timeout=self.tx_timeout)
        logger.info("✅ Approval confirmed")
        return tx_hash

    # -------------------------------------------------------------------------
    # Batch assembly
    # -------------------------------------------------------------------------

    def build_calls(
        self,
        opp: Opportunity,
        sell_call: CallSpec,
        buy_call: CallSpec,
        max_buy_in: int,
    ) -> List[BatchCall]:
        """Ordered aggregate3 entries; every entry must succeed"""
        token_a = Web3.to_checksum_address(opp.token_a)
        token_b = Web3.to_checksum_address(opp.token_b)
        wallet = self.wallet_address
        amount = opp.amount_in
        amount_back = transfer_back_amount(amount, opp.buy_amount_in, opp.sell_amount_out)

        return [
            # 1) pull token_a from the wallet into the executor
            BatchCall(
                token_a, False,
                encode_call(ERC20_ABI, "transferFrom", wallet, self.multicall_address, amount),
            ),
            # 2) let the sell router spend it
            BatchCall(
                token_a, False,
                encode_call(ERC20_ABI, "approve", opp.sell_dex.router_address, amount),
            ),
            # 3) sell token_a for token_b
            BatchCall(sell_call.to, False, sell_call.data),
            # 4) let the buy router spend token_b
            BatchCall(
                token_b, False,
                encode_call(ERC20_ABI, "approve", opp.buy_dex.router_address, max_buy_in),
            ),
            # 5) buy token_a back with token_b
            BatchCall(buy_call.to, False, buy_call.data),
            # 6) return principal plus profit to the wallet
            BatchCall(
                token_a, False,
                encode_call(ERC20_ABI, "transfer", wallet, amount_back),
            ),
        ]

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute(self, opp: Opportunity) -> ExecutionResult:
        start_time = self.clock()
        opp_id = getattr(opp, "opportunity_id", "") or ""

        skipped = self._check_lock(opp_id)
        if skipped is not None:
            return skipped

        token_a = getattr(opp, "token_a", None)
        token_b = getattr(opp, "token_b", None)
        amount = getattr(opp, "amount_in", None)

        if not token_a or not token_b or not amount:
            logger.error(
                f"[{opp_id}] ❌ Invalid parameters: tokenA={token_a} tokenB={token_b} amount={amount}"
            )
            return ExecutionResult(
                status=ExecutionStatus.FAILED,
                opportunity_id=opp_id,
                error="Invalid parameters",
            )

        if self.min_profit_pct is not None:
            estimate = Decimal(str(opp.profit_pct))
            if estimate < self.min_profit_pct:
                self.skipped_executions += 1
                reason = f"Profit {estimate:.2f}% below minimum {self.min_profit_pct}%"
                logger.info(f"[{opp_id}] Skipping: {reason}")
                return ExecutionResult(
                    status=ExecutionStatus.SKIPPED,
                    opportunity_id=opp_id,
                    reason=reason,
                )

        self.total_executions += 1
        logger.info(f"[{opp_id}] 🚀 Executing arbitrage: {opp.buy_from} → {opp.sell_to}")
        logger.info(
            f"[{opp_id}] tokenA={token_a} tokenB={token_b} amountIn={amount} "
            f"buyAmountIn={opp.buy_amount_in} sellAmountOut={opp.sell_amount_out}"
        )

        try:
            logger.info(
                f"[{opp_id}] 💰 Balances: tokenA={self.check_balance(token_a)} "
                f"tokenB={self.check_balance(token_b)}"
            )

            self.ensure_approval(token_a, self.multicall_address, amount)

            max_buy_in, min_sell_out = slippage_bounds(opp.buy_amount_in, opp.sell_amount_out)

            sell_call = opp.sell_dex.build_sell_call(
                token_a, token_b, amount, min_sell_out, self.multicall_address
            )
            buy_call = opp.buy_dex.build_buy_call(
                token_a, token_b, amount, max_buy_in, self.multicall_address
            )
            logger.debug(f"[{opp_id}] Sell TX to {sell_call.to}, Buy TX to {buy_call.to}")

            calls = self.build_calls(opp, sell_call, buy_call, max_buy_in)
            data = encode_call(MULTICALL_ABI, "aggregate3", [c.as_tuple() for c in calls])

            tx_hash = self.chain.send_transaction(self.multicall_address, data, self.gas_limit)
            self.lock.acquire(tx_hash, self.clock())
            logger.info(f"[{opp_id}] 📡 Transaction sent. Hash: {tx_hash}")

            receipt = self.chain.wait_for_receipt(tx_hash, timeout=self.tx_timeout)
            self.lock.release()

            self.successful_executions += 1
            result = ExecutionResult(
                status=ExecutionStatus.SUCCESS,
                opportunity_id=opp_id,
                tx_hash=tx_hash,
                block_number=receipt["blockNumber"],
                gas_used=receipt["gasUsed"],
                execution_time_ms=(self.clock() - start_time) * 1000,
            )
            trade_logger.info(
                f"[{opp_id}] ✅ Arbitrage completed in block {result.block_number} "
                f"(gas {result.gas_used}, tx {tx_hash})"
            )
            return result

        except Exception as e:
            self.lock.release()
            trade_logger.error(f"[{opp_id}] ❌ Arbitrage failed: {e}")
            return ExecutionResult(
                status=ExecutionStatus.FAILED,
                opportunity_id=opp_id,
                error=str(e),
                execution_time_ms=(self.clock() - start_time) * 1000,
            )

    def _check_lock(self, opp_id: str) -> Optional[ExecutionResult]:
        """SKIPPED result while a live trade holds the lock; clears a stale one"""
        if not self.lock.locked:
            return None

        now = self.clock()
        elapsed = self.lock.elapsed(now)

        if not self.lock.is_stale(now, self.tx_timeout):
            self.skipped_executions += 1
            reason = f"Trade in progress for {elapsed:.1f}s (pending tx {self.lock.tx_hash})"
            logger.warning(f"[{opp_id}] ⏳ {reason}")
            return ExecutionResult(
                status=ExecutionStatus.SKIPPED,
                opportunity_id=opp_id,
                tx_hash=self.lock.tx_hash,
                reason=reason,
            )

        # The stuck transaction may still land; nothing here checks for it
        logger.warning(
            f"[{opp_id}] ⚠️ Clearing stale trade lock after {elapsed:.1f}s "
            f"(timeout {self.tx_timeout}s, pending tx {self.lock.tx_hash})"
        )
        self.lock.release()
        return None

    # -------------------------------------------------------------------------
    # Owner operations
    # -------------------------------------------------------------------------

    def withdraw_from_executor(self, token: str, amount: int) -> str:
        """Pull tokens left in the batch executor back to the owner wallet"""
        data = encode_call(
            MULTICALL_ABI, "withdrawToken", Web3.to_checksum_address(token), amount
        )
        tx_hash = self.chain.send_transaction(self.multicall_address, data, GAS_LIMIT_WITHDRAW)
        logger.info(f"Withdraw tx sent: {tx_hash}")
        self.chain.wait_for_receipt(tx_hash, timeout=self.tx_timeout)
        return tx_hash

    def get_statistics(self) -> dict:
        """Get execution statistics"""
        return {
            "total_executions": self.total_executions,
            "successful_executions": self.successful_executions,
            "skipped_executions": self.skipped_executions,
            "success_rate": (
                self.successful_executions / self.total_executions * 100
                if self.total_executions > 0 else 0
            ),
        }
