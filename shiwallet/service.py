"""
Wallet Service Module

Application context tying the ledger, the profit engine, the missed profit
scheduler and a storage backend together. The service owns the lifecycle:
load() restores state and backfills missed profit, and every mutation is
followed by a scheduler pass and a save.
"""

from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union
from zoneinfo import ZoneInfo

from .backup import backup_filename, export_to_file, import_from_file
from .config import ShiwalletConfig, get_config
from .currency import Money, AmountLike, to_decimal
from .exceptions import InvalidFormatError
from .ledger import LedgerStore
from .logging_config import get_logger, setup_logging
from .models import Wallet, Transaction, utc_now
from .profit import ProfitEngine
from .scheduler import CatchUpScheduler
from .storage import SnapshotStorage, create_storage


class WalletService:
    """
    Single-threaded owner of the ledger state and its persistence
    """

    def __init__(
        self,
        storage: SnapshotStorage,
        config: Optional[ShiwalletConfig] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.config = config or get_config()
        self.storage = storage
        self.clock = clock
        self.logger = get_logger("shiwallet.service")

        default_rate = to_decimal(self.config.default_annual_rate)
        self.store = LedgerStore(default_rate=default_rate, clock=clock)
        self.engine = ProfitEngine(
            self.store,
            tz=ZoneInfo(self.config.timezone),
            default_rate=default_rate,
            trigger_day=self.config.profit_trigger_day,
            clock=clock
        )
        self.scheduler = CatchUpScheduler(self.store, self.engine, clock=clock)

    @classmethod
    def from_config(cls, config: Optional[ShiwalletConfig] = None) -> 'WalletService':
        """Build a service with the logging and storage backend named in configuration"""
        config = config or get_config()
        setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
        storage = create_storage(config.storage_backend, config.storage_path, config.storage_key)
        return cls(storage, config)

    # Lifecycle

    def load(self) -> List[str]:
        """
        Restore the stored snapshot and backfill missed profit

        An absent or malformed snapshot starts an empty ledger. A rejected
        snapshot is left in storage until the next mutation replaces it.

        Returns:
            IDs of wallets that received a catch-up accrual
        """
        snapshot = self.storage.load()
        self.store.reset()

        if snapshot is not None:
            try:
                self.store.import_snapshot(snapshot)
            except InvalidFormatError as e:
                self.logger.warning("Stored snapshot rejected, starting with an empty ledger: %s", e)
                self.store.reset()
                return []

        accrued = self.scheduler.run()
        self.save()
        return accrued

    def save(self) -> None:
        """Persist the current state; failures are logged, never raised"""
        try:
            self.storage.save(self.store.export_snapshot())
        except Exception:
            self.logger.exception("Failed to save wallet data")

    def close(self) -> None:
        self.storage.close()

    def _commit(self) -> None:
        self.scheduler.run()
        self.save()

    # Mutations

    def create_wallet(self, name: str) -> str:
        wallet_id = self.store.create_wallet(name)
        self._commit()
        return wallet_id

    def delete_wallet(self, wallet_id: str) -> None:
        self.store.delete_wallet(wallet_id)
        self._commit()

    def deposit(self, wallet_id: str, amount: AmountLike) -> Transaction:
        transaction = self.store.deposit(wallet_id, amount)
        self._commit()
        return transaction

    def withdraw(self, wallet_id: str, amount: AmountLike) -> Transaction:
        transaction = self.store.withdraw(wallet_id, amount)
        self._commit()
        return transaction

    def update_settings(
        self,
        wallet_id: str,
        name: Optional[str] = None,
        annual_profit_rate: Optional[AmountLike] = None
    ) -> Wallet:
        wallet = self.store.update_settings(wallet_id, name=name, annual_profit_rate=annual_profit_rate)
        self._commit()
        return wallet

    def calculate_profit(self, as_of: Optional[datetime] = None) -> Dict[str, Money]:
        """Run a regular monthly accrual for every wallet"""
        results = self.engine.accrue_all(as_of)
        self.save()
        return results

    def import_snapshot(self, data: Any) -> None:
        self.store.import_snapshot(data)
        self._commit()

    def import_file(self, path: Union[str, Path]) -> None:
        import_from_file(self.store, path)
        self._commit()

    # Reads

    def export_snapshot(self) -> Dict[str, Any]:
        return self.store.export_snapshot()

    def export_file(self, directory: Union[str, Path] = ".") -> Path:
        """Write a dated backup file into a directory"""
        filename = backup_filename(self.engine.local_date(self.clock()), prefix=self.config.backup_prefix)
        return export_to_file(self.store, Path(directory) / filename)

    def wallets(self) -> List[Wallet]:
        return self.store.list_wallets()

    def get_wallet(self, wallet_id: str) -> Wallet:
        return self.store.get_wallet(wallet_id)

    def wallet_transactions(self, wallet_id: str) -> List[Transaction]:
        return self.store.wallet_transactions(wallet_id)

    def projected_profit(self, wallet_id: str) -> Money:
        return self.engine.project(wallet_id)

    def total_balance(self) -> Money:
        return self.store.total_balance()
