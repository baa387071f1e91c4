"""
Profit Engine Module

Computes monthly profit from a time-weighted average balance and projects
the profit a wallet will have earned by the next trigger date (the 15th of
the next Shamsi month). Month lengths and boundaries follow the Shamsi
calendar throughout.
"""

from decimal import Decimal
from datetime import datetime, date, time, timedelta, tzinfo, timezone
from typing import Callable, Dict, List, Optional

from .currency import Money, round_to_unit
from .ledger import LedgerStore
from .logging_config import get_logger, log_action
from .models import Wallet, Transaction, TransactionType, DEFAULT_ANNUAL_RATE, utc_now, ensure_aware
from .shamsi import (
    DEFAULT_TRIGGER_DAY, shamsi_month_start, shamsi_month_length, next_trigger_date
)

DAYS_IN_YEAR = Decimal('365')
SECONDS_PER_DAY = Decimal('86400')

MONTHLY_PROFIT = "Monthly profit"
MISSED_PROFIT = "Missed profit calculation"


def days_between(start: datetime, end: datetime) -> Decimal:
    """Fractional days from start to end, exact to the microsecond"""
    delta = end - start
    seconds = Decimal(delta.days * 86400 + delta.seconds)
    seconds += Decimal(delta.microseconds) / Decimal(1000000)
    return seconds / SECONDS_PER_DAY


class ProfitEngine:
    """
    Realized and projected profit for wallets in a LedgerStore
    """

    def __init__(
        self,
        store: LedgerStore,
        tz: tzinfo = timezone.utc,
        default_rate: Decimal = DEFAULT_ANNUAL_RATE,
        trigger_day: int = DEFAULT_TRIGGER_DAY,
        clock: Callable[[], datetime] = utc_now
    ):
        self.store = store
        self.tz = tz
        self.default_rate = default_rate
        self.trigger_day = trigger_day
        self.clock = clock
        self.logger = get_logger("shiwallet.profit")

    def local_date(self, moment: datetime) -> date:
        """Calendar date of a moment on the engine's clock"""
        return ensure_aware(moment).astimezone(self.tz).date()

    def month_start(self, moment: datetime) -> datetime:
        """Midnight starting the Shamsi month that contains the moment"""
        first_day = shamsi_month_start(self.local_date(moment))
        return datetime.combine(first_day, time.min, tzinfo=self.tz)

    def rate_for(self, wallet: Wallet) -> Decimal:
        if wallet.annual_profit_rate is None:
            return self.default_rate
        return wallet.annual_profit_rate

    def weighted_balance(self, wallet_id: str, window_start: datetime, as_of: datetime) -> Decimal:
        """
        Sum of balance x days held over [window_start, as_of]

        Replays the wallet's transactions inside the window in timestamp
        order, starting from the balance as it stands now.

        Returns:
            Balance-days as a Decimal
        """
        wallet = self.store.get_wallet(wallet_id)
        window_start = ensure_aware(window_start)
        as_of = ensure_aware(as_of)

        # sorted() is stable, so ties keep ledger order
        entries = sorted(
            (t for t in self.store.transactions_for(wallet_id)
             if window_start <= t.timestamp <= as_of),
            key=lambda t: t.timestamp
        )

        running_balance = wallet.balance.amount
        cursor = window_start
        total = Decimal('0')

        for transaction in entries:
            total += running_balance * days_between(cursor, transaction.timestamp)
            running_balance += transaction.amount.amount
            cursor = transaction.timestamp

        total += running_balance * days_between(cursor, as_of)
        return total

    def calculate(
        self,
        wallet_id: str,
        as_of: Optional[datetime] = None,
        missed_since: Optional[datetime] = None
    ) -> Money:
        """Profit that accrue() would record, without recording it"""
        wallet = self.store.get_wallet(wallet_id)
        as_of = ensure_aware(as_of or self.clock())

        if missed_since is not None:
            window_start = min(ensure_aware(missed_since), as_of)
        else:
            window_start = self.month_start(as_of)

        weighted = self.weighted_balance(wallet_id, window_start, as_of)

        days_in_month = Decimal(shamsi_month_length(self.local_date(as_of)))
        average_daily_balance = weighted / days_in_month
        daily_rate = self.rate_for(wallet) / DAYS_IN_YEAR

        return Money(round_to_unit(average_daily_balance * daily_rate * days_in_month))

    def accrue(
        self,
        wallet_id: str,
        as_of: Optional[datetime] = None,
        missed_since: Optional[datetime] = None
    ) -> Money:
        """
        Calculate and record a wallet's profit

        Regular runs weight the balance from the start of the current Shamsi
        month. Backfill runs (missed_since given) weight it from the last
        calculation instead, so one run covers every month that was missed.

        Args:
            wallet_id: Wallet to credit
            as_of: Moment of the calculation (defaults to now)
            missed_since: Last calculation time when catching up a missed run

        Returns:
            The profit recorded, possibly zero
        """
        as_of = ensure_aware(as_of or self.clock())
        profit = self.calculate(wallet_id, as_of, missed_since)
        description = MISSED_PROFIT if missed_since is not None else MONTHLY_PROFIT

        transaction = self.store.record_profit(wallet_id, profit, as_of, description)

        log_action(
            self.logger, "info", description,
            action="accrue_profit", resource=f"wallet:{wallet_id}",
            extra={
                "transaction_id": transaction.id,
                "profit": profit.to_string(),
                "as_of": as_of.isoformat(),
                "missed_since": missed_since.isoformat() if missed_since else None
            }
        )
        return profit

    def accrue_all(self, as_of: Optional[datetime] = None) -> Dict[str, Money]:
        """Run a regular accrual for every wallet"""
        as_of = ensure_aware(as_of or self.clock())
        return {
            wallet.id: self.accrue(wallet.id, as_of)
            for wallet in self.store.list_wallets()
        }

    def project(self, wallet_id: str, as_of: Optional[datetime] = None) -> Money:
        """
        Profit expected by the next trigger date if the balance stays put

        Counts each day from today up to, not including, the trigger day of
        next Shamsi month, at the wallet's daily rate rounded to whole units.
        Read-only.
        """
        wallet = self.store.get_wallet(wallet_id)
        start = self.local_date(as_of or self.clock())
        end = next_trigger_date(start, self.trigger_day)

        daily_profit = round_to_unit(wallet.balance.amount * self.rate_for(wallet) / DAYS_IN_YEAR)

        total = Decimal('0')
        day = start
        while day < end:
            total += daily_profit
            day += timedelta(days=1)

        return Money(total)

    def project_all(self, as_of: Optional[datetime] = None) -> Dict[str, Money]:
        """Projected profit for every wallet"""
        return {wallet.id: self.project(wallet.id, as_of) for wallet in self.store.list_wallets()}

    def profit_history(self, wallet_id: str) -> List[Transaction]:
        """Profit entries recorded for a wallet, oldest first"""
        return [t for t in self.store.transactions_for(wallet_id) if t.type == TransactionType.PROFIT]
