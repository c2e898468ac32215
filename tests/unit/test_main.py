"""
tests/unit/test_main.py - Engine loop wiring tests.
"""

import logging
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

import arbengine.main as main_module
from arbengine.main import (
    ArbitrageBot, BotMode, StatisticsTracker, build_test_opportunity, main, setup_logging,
)
from arbengine.models import ExecutionResult, ExecutionStatus
from arbengine.pairs import XRP, USDT
from arbengine.registry import ProtocolRegistry

from test_detector import StubAdapter, make_quote


@pytest.fixture(autouse=True)
def offline(monkeypatch, fake_chain):
    monkeypatch.setattr(main_module, "get_client", lambda chain, key=None: fake_chain)
    monkeypatch.setattr(main_module, "PRIVATE_KEY", None)


@pytest.fixture
def registry():
    registry = ProtocolRegistry()
    registry.register(StubAdapter("A", quotes=[make_quote("A", 19 * 10**17, 2 * 10**18)]))
    registry.register(StubAdapter("B", quotes=[make_quote("B", 21 * 10**17, 22 * 10**17)]))
    return registry


class TestRunSingleScan:

    def test_scan_only_never_executes(self, registry):
        trader = MagicMock()
        bot = ArbitrageBot(BotMode.SCAN_ONLY, registry=registry, trader=trader, auto_execute=True)

        assert bot.run_single_scan() is None

        trader.execute.assert_not_called()
        assert bot.stats.scan_count == 1
        assert bot.stats.opportunities_found == 1
        assert bot.stats.best_profit_pct == Decimal(10)

    def test_execute_mode_trades_best(self, registry):
        trader = MagicMock()
        trader.execute.return_value = ExecutionResult(ExecutionStatus.SUCCESS, tx_hash="0xabc")
        bot = ArbitrageBot(BotMode.EXECUTE, registry=registry, trader=trader, auto_execute=True)

        result = bot.run_single_scan()

        assert result.success
        opp = trader.execute.call_args[0][0]
        assert (opp.buy_from, opp.sell_to) == ("A", "B")
        assert bot.stats.trades_successful == 1

    def test_execute_mode_respects_auto_execute(self, registry):
        trader = MagicMock()
        bot = ArbitrageBot(BotMode.EXECUTE, registry=registry, trader=trader, auto_execute=False)

        bot.run_single_scan()

        trader.execute.assert_not_called()

    def test_skipped_trade_counted(self, registry):
        trader = MagicMock()
        trader.execute.return_value = ExecutionResult(ExecutionStatus.SKIPPED, reason="busy")
        bot = ArbitrageBot(BotMode.EXECUTE, registry=registry, trader=trader, auto_execute=True)

        bot.run_single_scan()

        assert bot.stats.trades_skipped == 1
        assert bot.stats.trades_executed == 0

    def test_without_key_falls_back_to_scan(self, registry):
        bot = ArbitrageBot(BotMode.EXECUTE, registry=registry, auto_execute=True)

        assert bot.trader is None
        assert bot.mode == BotMode.SCAN_ONLY


class TestStatisticsTracker:

    def test_consecutive_failures_reset_on_success(self):
        stats = StatisticsTracker()
        stats.record_trade(False)
        stats.record_trade(False)
        assert stats.consecutive_failures == 2

        stats.record_trade(True)
        assert stats.consecutive_failures == 0
        assert "Trades Successful: 1" in stats.get_summary()


def test_build_test_opportunity():
    buy, sell = StubAdapter("A"), StubAdapter("B")

    opp = build_test_opportunity(buy, sell, "XRP", "USDT", amount_in=10**18)

    assert opp.token_a == XRP
    assert opp.token_b == USDT
    assert opp.buy_dex is buy and opp.sell_dex is sell
    assert opp.sell_amount_out > opp.buy_amount_in
    assert opp.profit_pct >= Decimal(10)


class TestEntryPoint:
    """Command line modes."""

    @pytest.fixture
    def runs(self, monkeypatch):
        runs = []
        monkeypatch.setattr(main_module, "setup_logging", lambda: None)
        monkeypatch.setattr(ArbitrageBot, "run", lambda self: runs.append(self.mode))
        monkeypatch.setattr(ArbitrageBot, "install_signal_handlers", lambda self: None)
        return runs

    @pytest.mark.parametrize("argv", [
        ["--mode", "withdraw", "--token", "USDT", "--amount", "1"],
        ["--mode", "test"],
    ])
    def test_trading_modes_without_key_exit(self, runs, argv):
        with pytest.raises(SystemExit) as exc:
            main(argv)

        assert exc.value.code != 0
        assert runs == []

    def test_withdraw_with_key(self, runs, monkeypatch):
        trader = MagicMock()
        trader.withdraw_from_executor.return_value = "0xabc"
        monkeypatch.setattr(main_module, "PRIVATE_KEY", "0x" + "11" * 32)
        monkeypatch.setattr(main_module, "Trader", lambda client, executor: trader)

        main(["--mode", "withdraw", "--token", "USDT", "--amount", "7"])

        trader.withdraw_from_executor.assert_called_once_with(USDT, 7)
        assert runs == []

    def test_execute_without_key_scans(self, runs):
        main(["--mode", "execute"])

        assert runs == [BotMode.SCAN_ONLY]


def test_setup_logging_writes_error_file(tmp_path, monkeypatch):
    monkeypatch.setattr(main_module, "LOG_DIR", tmp_path)
    root = logging.getLogger()
    trades = logging.getLogger("arbengine.trades")
    before_root, before_trades = list(root.handlers), list(trades.handlers)

    setup_logging()
    try:
        added = [h for h in root.handlers if h not in before_root]
        errors = [
            h for h in added
            if isinstance(h, logging.FileHandler) and h.baseFilename.startswith(str(tmp_path / "errors_"))
        ]
        assert len(errors) == 1
        assert errors[0].level == logging.ERROR
    finally:
        for logger_, before in ((root, before_root), (trades, before_trades)):
            for handler in [h for h in logger_.handlers if h not in before]:
                logger_.removeHandler(handler)
                handler.close()
