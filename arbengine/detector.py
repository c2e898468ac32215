# arbengine/detector.py
"""
Cross-pool Opportunity Detector
Compares every pair of pool quotes for one token pair
"""

import time
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Sequence

from arbengine.dex.base import ProtocolAdapter
from arbengine.models import Opportunity, PoolQuote

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Result of one detection pass"""
    timestamp: float
    scan_duration_ms: float
    pools_scanned: int
    opportunities: List[Opportunity]
    best: Optional[Opportunity] = None
    errors: List[str] = field(default_factory=list)


def profit_pct(return_amount: int, probe_amount: int) -> Decimal:
    """Return over the probe, in percent"""
    if probe_amount <= 0:
        return Decimal(0)
    return Decimal(return_amount) * 100 / Decimal(probe_amount)


class OpportunityDetector:
    """
    Finds every profitable (buy, sell) pool pair above min_spread_pct

    Opportunities come back sorted by profit_pct, highest first; the sort is
    stable so equal profits keep discovery order.
    """

    def __init__(
        self,
        protocols: Sequence[ProtocolAdapter],
        min_spread_pct=Decimal("0.3"),
        probe_amount: int = 10**18,
    ):
        self.protocols = list(protocols)
        self.min_spread_pct = Decimal(str(min_spread_pct))
        self.probe_amount = probe_amount
        self._opportunity_counter = 0

    def _generate_opportunity_id(self) -> str:
        self._opportunity_counter += 1
        return f"ARB-{int(time.time())}-{self._opportunity_counter}"

    def collect_quotes(self, errors: Optional[List[str]] = None) -> List[PoolQuote]:
        """Flatten pool quotes from every adapter; a failing adapter is skipped"""
        pool_data = []
        for protocol in self.protocols:
            try:
                pool_data.extend(protocol.discover_pools(self.probe_amount))
            except Exception as e:
                message = f"{protocol.name}@{protocol.chain} scan failed: {e}"
                logger.error(message)
                if errors is not None:
                    errors.append(message)
        return pool_data

    def scan(self, token0: str, token1: str) -> List[Opportunity]:
        return self.scan_with_report(token0, token1).opportunities

    def scan_with_report(self, token0: str, token1: str) -> ScanResult:
        start_time = time.time()
        errors: List[str] = []

        pool_data = self.collect_quotes(errors)
        opportunities = self.compare(pool_data, f"{token0}/{token1}")

        return ScanResult(
            timestamp=start_time,
            scan_duration_ms=(time.time() - start_time) * 1000,
            pools_scanned=len(pool_data),
            opportunities=opportunities,
            best=opportunities[0] if opportunities else None,
            errors=errors,
        )

    def compare(self, pool_data: List[PoolQuote], token_pair: str) -> List[Opportunity]:
        """Every ordered (buy, sell) pair of distinct pools"""
        opportunities = []

        for i, buy_pool in enumerate(pool_data):
            if not buy_pool.is_valid:
                continue

            for j, sell_pool in enumerate(pool_data):
                if i == j or not sell_pool.is_valid:
                    continue

                # No self-arbitrage within one protocol on one chain
                if buy_pool.protocol == sell_pool.protocol and buy_pool.chain == sell_pool.chain:
                    continue

                return_amount = max(sell_pool.amount_out - buy_pool.amount_in, 0)
                pct = profit_pct(return_amount, self.probe_amount)

                if pct < self.min_spread_pct:
                    continue

                logger.info(
                    f"→ Buy on {buy_pool.protocol:<12} | Sell on {sell_pool.protocol:<12} "
                    f"| Profit: {pct:.2f}%"
                )

                opportunities.append(
                    Opportunity(
                        opportunity_id=self._generate_opportunity_id(),
                        buy_from=buy_pool.protocol,
                        sell_to=sell_pool.protocol,
                        token_pair=token_pair,
                        profit_pct=pct,
                        amount_in=self.probe_amount,
                        amount_after_buy=buy_pool.amount_out,
                        amount_back=return_amount,
                        token_a=buy_pool.token0_address,
                        token_b=buy_pool.token1_address,
                        buy_amount_in=buy_pool.amount_in,
                        sell_amount_out=sell_pool.amount_out,
                        buy_dex=buy_pool.adapter,
                        sell_dex=sell_pool.adapter,
                    )
                )

        return sorted(opportunities, key=lambda o: o.profit_pct, reverse=True)


def format_opportunity(opp: Opportunity) -> str:
    """Format opportunity for logging"""
    return (
        f"[{opp.opportunity_id}] {opp.token_pair}\n"
        f"  Buy on {opp.buy_from}: pay {opp.buy_amount_in} for {opp.amount_in}\n"
        f"  Sell on {opp.sell_to}: {opp.amount_in} → {opp.sell_amount_out}\n"
        f"  Profit: {opp.profit_pct:.2f}%"
    )
