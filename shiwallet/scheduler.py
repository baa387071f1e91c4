"""
Missed Profit Scheduler Module

Runs whenever the ledger is loaded or its wallet set changes. A wallet whose
last profit calculation (or creation, if it never had one) lies in an
earlier Shamsi month than today gets exactly one catch-up accrual, which
moves its last calculation time to now.
"""

from datetime import datetime
from typing import Callable, List, Optional

from .ledger import LedgerStore
from .logging_config import get_logger, log_action
from .models import Wallet, utc_now, ensure_aware
from .profit import ProfitEngine
from .shamsi import shamsi_month_key


class CatchUpScheduler:
    """
    Backfills profit runs missed while the application was not running
    """

    def __init__(
        self,
        store: LedgerStore,
        engine: ProfitEngine,
        clock: Callable[[], datetime] = utc_now
    ):
        self.store = store
        self.engine = engine
        self.clock = clock
        self.logger = get_logger("shiwallet.scheduler")

    def is_due(self, wallet: Wallet, now: datetime) -> bool:
        """Check if a Shamsi month boundary has passed since the last calculation"""
        last_calculation = wallet.last_calculation_reference
        if last_calculation is None:
            return False
        current_month = shamsi_month_key(self.engine.local_date(now))
        last_month = shamsi_month_key(self.engine.local_date(last_calculation))
        return current_month > last_month

    def run(self, now: Optional[datetime] = None) -> List[str]:
        """
        Check every wallet and backfill the ones that missed a month

        A failure on one wallet is logged and does not stop the others.

        Args:
            now: Moment of the check (defaults to now)

        Returns:
            IDs of the wallets that received a catch-up accrual
        """
        now = ensure_aware(now or self.clock())
        accrued = []

        for wallet in self.store.list_wallets():
            try:
                if wallet.last_calculation_reference is None:
                    self.logger.debug("Skipping wallet %s without calculation dates", wallet.id)
                    continue

                if not self.is_due(wallet, now):
                    continue

                last_calculation = wallet.last_calculation_reference
                profit = self.engine.accrue(wallet.id, as_of=now, missed_since=last_calculation)
                accrued.append(wallet.id)

                log_action(
                    self.logger, "info", "Missed profit backfilled",
                    action="catch_up", resource=f"wallet:{wallet.id}",
                    extra={
                        "last_calculation": last_calculation.isoformat(),
                        "profit": profit.to_string()
                    }
                )
            except Exception:
                self.logger.exception("Error in missed profit calculation for wallet %s", wallet.id)

        return accrued
