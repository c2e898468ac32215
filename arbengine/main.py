# arbengine/main.py
"""
Cross-DEX Arbitrage Engine Main Loop

THIS IS THE ENTRY POINT - Run with: python -m arbengine.main

MODES:
1. SCAN: Detect and log opportunities (safe)
2. EXECUTE: Scan + execute the best opportunity when AUTO_EXECUTE is on
3. TEST: Execute one synthetic opportunity built from config
4. WITHDRAW: Pull a token balance out of the batch executor
"""

import sys
import time
import logging
import signal
from datetime import datetime
from decimal import Decimal
from typing import Optional

from arbengine.chain import get_client
from arbengine.config import (
    TRADING_CHAIN, PRIVATE_KEY, MULTICALL_ADDRESS,
    MIN_SPREAD_PCT, PROBE_AMOUNT, SCAN_INTERVAL_SECONDS, AUTO_EXECUTE,
    MAX_CONSECUTIVE_FAILURES, LOG_LEVEL, LOG_DIR,
)
from arbengine.detector import OpportunityDetector, format_opportunity
from arbengine.dex import pancakeswap_v2, uniswap_v3
from arbengine.models import Opportunity
from arbengine.pairs import resolve_token, get_symbol
from arbengine.registry import ProtocolRegistry
from arbengine.trader import Trader

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(message)s'


# =============================================================================
# LOGGING SETUP
# =============================================================================

def setup_logging(level: str = LOG_LEVEL) -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    day = datetime.now().strftime('%Y%m%d')

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(LOG_DIR / f"arbengine_{day}.log"),
        ]
    )

    # Executed trades also go to their own file
    trades_handler = logging.FileHandler(LOG_DIR / f"trades_{day}.log")
    trades_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger("arbengine.trades").addHandler(trades_handler)

    # Errors from every module are collected in one file
    errors_handler = logging.FileHandler(LOG_DIR / f"errors_{day}.log")
    errors_handler.setLevel(logging.ERROR)
    errors_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(errors_handler)


# =============================================================================
# STATISTICS TRACKER
# =============================================================================

class StatisticsTracker:
    """Track engine performance statistics"""

    def __init__(self):
        self.start_time = datetime.now()
        self.scan_count = 0
        self.opportunities_found = 0
        self.trades_executed = 0
        self.trades_successful = 0
        self.trades_skipped = 0
        self.consecutive_failures = 0
        self.best_profit_pct = Decimal(0)

    def record_scan(self, opportunities: int, best_pct: Optional[Decimal] = None):
        self.scan_count += 1
        self.opportunities_found += opportunities
        if best_pct is not None and best_pct > self.best_profit_pct:
            self.best_profit_pct = best_pct

    def record_trade(self, success: bool):
        self.trades_executed += 1
        if success:
            self.trades_successful += 1
            self.consecutive_failures = 0
        else:
            self.consecutive_failures += 1

    def record_skip(self):
        self.trades_skipped += 1

    def get_summary(self) -> str:
        runtime = datetime.now() - self.start_time
        success_rate = (self.trades_successful / self.trades_executed * 100) if self.trades_executed > 0 else 0

        return (
            f"\n{'='*60}\n"
            f"📊 ENGINE STATISTICS\n"
            f"{'='*60}\n"
            f"Runtime: {runtime}\n"
            f"Scans: {self.scan_count}\n"
            f"Opportunities Found: {self.opportunities_found}\n"
            f"Trades Executed: {self.trades_executed}\n"
            f"Trades Successful: {self.trades_successful} ({success_rate:.1f}%)\n"
            f"Trades Skipped: {self.trades_skipped}\n"
            f"Best Opportunity: {self.best_profit_pct:.2f}%\n"
            f"{'='*60}\n"
        )


# =============================================================================
# ENGINE MODES
# =============================================================================

class BotMode:
    SCAN_ONLY = "scan_only"      # Just observe, no execution
    EXECUTE = "execute"          # Execute best opportunity when AUTO_EXECUTE
    TEST = "test"                # One synthetic trade
    WITHDRAW = "withdraw"        # Drain the batch executor


# =============================================================================
# MAIN ENGINE CLASS
# =============================================================================

class ArbitrageBot:
    """
    Cross-DEX arbitrage engine

    Each cycle:
    1. Quote every registered pool
    2. Compare all (buy, sell) pool pairs
    3. Hand the best opportunity to the Trader
    """

    def __init__(
        self,
        mode: str = BotMode.SCAN_ONLY,
        chain: str = TRADING_CHAIN,
        token0: str = "XRP",
        token1: str = "USDT",
        auto_execute: bool = AUTO_EXECUTE,
        registry: Optional[ProtocolRegistry] = None,
        trader: Optional[Trader] = None,
    ):
        self.mode = mode
        self.chain_name = chain
        self.token0 = token0
        self.token1 = token1
        self.auto_execute = auto_execute
        self.running = False
        self.stats = StatisticsTracker()

        self.client = get_client(chain, PRIVATE_KEY)

        if registry is None:
            registry = ProtocolRegistry()
            registry.register(uniswap_v3(self.client, chain=chain))
            registry.register(pancakeswap_v2(self.client, chain=chain))
        self.registry = registry

        self.detector = OpportunityDetector(
            self.registry.get_all(),
            min_spread_pct=MIN_SPREAD_PCT,
            probe_amount=PROBE_AMOUNT,
        )

        if trader is None and PRIVATE_KEY:
            trader = Trader(self.client, MULTICALL_ADDRESS)
        self.trader = trader

        if self.trader is None and mode == BotMode.EXECUTE:
            logger.warning("⚠️ No PRIVATE_KEY configured - running scan only")
            self.mode = BotMode.SCAN_ONLY

    def install_signal_handlers(self):
        """Graceful shutdown on SIGINT/SIGTERM"""
        signal.signal(signal.SIGINT, self._handle_shutdown)
        signal.signal(signal.SIGTERM, self._handle_shutdown)

    def _handle_shutdown(self, signum, frame):
        logger.info("\n🛑 Shutdown signal received...")
        self.running = False

    def check_prerequisites(self) -> bool:
        """Check all prerequisites before starting"""
        logger.info("Checking prerequisites...")

        ok, status = self.client.check_health()
        if not ok:
            logger.error(f"❌ RPC unhealthy: {status}")
            return False
        logger.info(f"✅ RPC healthy: {status}")

        if self.trader is not None:
            try:
                wallet_balance = self.client.w3.eth.get_balance(self.client.address)
                logger.info(f"Gas balance: {Decimal(wallet_balance) / Decimal(10**18):.4f}")
            except Exception as e:
                logger.error(f"❌ Balance check failed: {e}")
                return False

        logger.info(f"Protocols: {', '.join(p.name for p in self.registry)}")
        logger.info("✅ All prerequisites checked")
        return True

    def run_single_scan(self):
        """Run a single scan cycle; returns the execution result, if any"""
        logger.info("-" * 40)
        logger.info(f"Scanning {self.token0}/{self.token1} on {len(self.registry)} protocols...")

        report = self.detector.scan_with_report(self.token0, self.token1)
        best = report.best

        logger.info(
            f"Found {len(report.opportunities)} opportunities across "
            f"{report.pools_scanned} pools ({report.scan_duration_ms:.0f}ms)"
        )
        for error in report.errors:
            logger.warning(f"Scan error: {error}")

        self.stats.record_scan(
            len(report.opportunities),
            best.profit_pct if best else None,
        )

        if best is None:
            return None

        logger.info(f"💰 Best opportunity:\n{format_opportunity(best)}")

        if self.mode != BotMode.EXECUTE or not self.auto_execute:
            return None

        result = self.trader.execute(best)
        if result.skipped:
            self.stats.record_skip()
            logger.info(f"Execution skipped: {result.reason}")
        else:
            self.stats.record_trade(result.success)
            if result.success:
                logger.info(f"✅ Trade successful! TX: {result.tx_hash}")
            else:
                logger.warning(f"❌ Trade failed: {result.error}")
        return result

    def run(self):
        """
        Main engine loop
        Continuously scans and executes opportunities
        """
        logger.info("=" * 60)
        logger.info("🚀 ARBITRAGE ENGINE STARTING")
        logger.info(f"Mode: {self.mode}")
        logger.info(f"Chain: {self.chain_name}")
        logger.info(f"Auto execute: {self.auto_execute}")
        logger.info("=" * 60)

        if not self.check_prerequisites():
            logger.error("Prerequisites check failed. Exiting.")
            return

        self.running = True

        try:
            while self.running:
                try:
                    self.run_single_scan()

                    # Check circuit breakers
                    if self.stats.consecutive_failures >= MAX_CONSECUTIVE_FAILURES:
                        logger.error(
                            f"❌ Too many consecutive failures ({MAX_CONSECUTIVE_FAILURES}). Pausing..."
                        )
                        time.sleep(60)
                        self.stats.consecutive_failures = 0

                    time.sleep(SCAN_INTERVAL_SECONDS)

                except Exception as e:
                    logger.error(f"Loop error: {e}")
                    time.sleep(5)

        except KeyboardInterrupt:
            logger.info("\nKeyboard interrupt received")

        finally:
            logger.info(self.stats.get_summary())
            logger.info("Engine stopped.")

    def run_test_trade(self):
        """Execute one synthetic opportunity between the first two protocols"""
        protocols = self.registry.get_all()
        if len(protocols) < 2:
            raise RuntimeError("Test trade needs at least two registered protocols")

        opp = build_test_opportunity(protocols[0], protocols[1], self.token0, self.token1)
        logger.info(f"🧪 Test opportunity:\n{format_opportunity(opp)}")

        result = self.trader.execute(opp)
        logger.info(f"Test result: {result.status.value} {result.tx_hash or result.error or result.reason}")
        return result


# =============================================================================
# TEST OPPORTUNITY
# =============================================================================

def build_test_opportunity(
    buy_dex,
    sell_dex,
    token0: str = "XRP",
    token1: str = "USDT",
    amount_in: int = PROBE_AMOUNT,
) -> Opportunity:
    """Synthetic opportunity priced 1:1 with a fixed 100% spread"""
    return Opportunity(
        opportunity_id=f"TEST-{int(time.time())}",
        buy_from=buy_dex.name,
        sell_to=sell_dex.name,
        token_pair=f"{token0}/{token1}",
        profit_pct=Decimal(100),
        amount_in=amount_in,
        amount_after_buy=amount_in,
        amount_back=amount_in,
        token_a=resolve_token(token0),
        token_b=resolve_token(token1),
        buy_amount_in=amount_in,
        sell_amount_out=amount_in * 2,
        buy_dex=buy_dex,
        sell_dex=sell_dex,
    )


# =============================================================================
# ENTRY POINT
# =============================================================================

def main(argv=None):
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(description="Cross-DEX Arbitrage Engine")
    parser.add_argument(
        "--mode",
        choices=["scan", "execute", "test", "withdraw"],
        default="scan",
        help="Engine mode: scan (observe only), execute (trade when AUTO_EXECUTE), "
             "test (one synthetic trade), withdraw (drain executor)"
    )
    parser.add_argument("--chain", default=TRADING_CHAIN, help="Network to trade on")
    parser.add_argument("--token0", default="XRP", help="Base token symbol or address")
    parser.add_argument("--token1", default="USDT", help="Quote token symbol or address")
    parser.add_argument("--token", help="Token to withdraw (withdraw mode)")
    parser.add_argument("--amount", type=int, help="Raw amount to withdraw (withdraw mode)")

    args = parser.parse_args(argv)
    setup_logging()

    mode_map = {
        "scan": BotMode.SCAN_ONLY,
        "execute": BotMode.EXECUTE,
        "test": BotMode.TEST,
        "withdraw": BotMode.WITHDRAW,
    }

    bot = ArbitrageBot(
        mode=mode_map[args.mode],
        chain=args.chain,
        token0=args.token0,
        token1=args.token1,
    )

    if bot.mode in (BotMode.TEST, BotMode.WITHDRAW) and bot.trader is None:
        parser.error(f"{args.mode} mode needs PRIVATE_KEY")

    if bot.mode == BotMode.TEST:
        bot.run_test_trade()
        return

    if bot.mode == BotMode.WITHDRAW:
        if not args.token or args.amount is None:
            parser.error("withdraw mode needs --token and --amount")
        token = resolve_token(args.token)
        tx_hash = bot.trader.withdraw_from_executor(token, args.amount)
        logger.info(f"✅ Withdrew {args.amount} {get_symbol(token)}: {tx_hash}")
        return

    bot.install_signal_handlers()
    bot.run()


if __name__ == "__main__":
    main()
