"""
Test suite for the wallet service

Tests the load/save lifecycle, catch-up on load, persistence after every
mutation, and file import/export through the service.
"""

import json
import logging
import pytest
from decimal import Decimal
from datetime import datetime, timezone

from shiwallet.config import ShiwalletConfig
from shiwallet.currency import Money
from shiwallet.exceptions import InvalidFormatError, InsufficientBalanceError
from shiwallet.service import WalletService
from shiwallet.storage import InMemorySnapshotStorage


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class FailingStorage(InMemorySnapshotStorage):
    def save(self, snapshot):
        raise OSError("disk full")


@pytest.fixture
def config():
    return ShiwalletConfig(timezone="UTC", storage_backend="memory")


@pytest.fixture
def storage():
    return InMemorySnapshotStorage()


@pytest.fixture
def service(storage, config, clock):
    service = WalletService(storage, config, clock=clock)
    service.load()
    return service


class TestLifecycle:
    """Test loading and saving"""

    def test_load_empty(self, service, storage):
        assert service.wallets() == []
        assert storage.load() == {"wallets": {}, "transactions": []}

    def test_load_malformed_starts_empty(self, config, clock, caplog):
        storage = InMemorySnapshotStorage(initial={"wallets": "oops", "transactions": []})
        service = WalletService(storage, config, clock=clock)

        with caplog.at_level(logging.WARNING, logger="shiwallet.service"):
            assert service.load() == []

        assert service.wallets() == []
        assert "Stored snapshot rejected" in caplog.text

    def test_rejected_snapshot_is_not_overwritten(self, config, clock):
        storage = InMemorySnapshotStorage(initial={"wallets": "oops", "transactions": []})
        before = storage.raw

        WalletService(storage, config, clock=clock).load()

        assert storage.raw == before

    def test_wallet_without_dates_does_not_block_load(self, config, clock):
        """Test that one undated wallet is kept and skipped while others accrue"""
        storage = InMemorySnapshotStorage(initial={
            "wallets": {
                "good": {"id": "good", "name": "Savings", "balance": 1000000,
                         "createdAt": "2024-08-01T00:00:00Z"},
                "odd": {"id": "odd", "name": "Undated", "balance": 500},
            },
            "transactions": [
                {"id": "t1", "walletId": "good", "amount": 1000000,
                 "type": "deposit", "timestamp": "2024-08-01T00:00:00Z"},
                {"id": "t2", "walletId": "odd", "amount": 500,
                 "type": "deposit", "timestamp": "2024-08-01T00:00:00Z"},
            ]
        })
        clock.set(utc(2024, 10, 7))
        service = WalletService(storage, config, clock=clock)

        assert service.load() == ["good"]

        stored = storage.load()
        assert set(stored["wallets"]) == {"good", "odd"}
        assert "createdAt" not in stored["wallets"]["odd"]
        assert stored["wallets"]["odd"]["balance"] == 500
        assert service.get_wallet("odd").last_profit_calculation is None
        assert len(stored["transactions"]) == 3

    def test_state_survives_reload(self, service, storage, config, clock):
        wallet_id = service.create_wallet("Savings")
        service.deposit(wallet_id, 1000000)
        service.withdraw(wallet_id, 250000)

        assert storage.load()["wallets"][wallet_id]["balance"] == 750000

        reloaded = WalletService(storage, config, clock=clock)
        reloaded.load()
        assert reloaded.get_wallet(wallet_id).balance == Money(Decimal('750000'))
        assert len(reloaded.wallet_transactions(wallet_id)) == 2

    def test_load_backfills_missed_months(self, config, clock):
        storage = InMemorySnapshotStorage(initial={
            "wallets": {"w1": {"id": "w1", "name": "Legacy", "balance": "1000000",
                               "createdAt": "2024-08-01T00:00:00Z"}},
            "transactions": []
        })
        clock.set(utc(2024, 10, 7))
        service = WalletService(storage, config, clock=clock)

        assert service.load() == ["w1"]

        stored = storage.load()
        assert stored["wallets"]["w1"]["balance"] == 1044055
        assert stored["wallets"]["w1"]["lastProfitCalculation"] == "2024-10-07T00:00:00Z"
        assert stored["transactions"][0]["type"] == "profit"

    def test_save_failure_is_logged(self, config, clock, caplog):
        service = WalletService(FailingStorage(), config, clock=clock)

        with caplog.at_level(logging.ERROR, logger="shiwallet.service"):
            wallet_id = service.create_wallet("Savings")

        assert service.get_wallet(wallet_id).name == "Savings"
        assert "Failed to save wallet data" in caplog.text

    def test_failed_mutation_is_not_saved(self, service, storage):
        wallet_id = service.create_wallet("Savings")
        service.deposit(wallet_id, 100)
        before = storage.raw

        with pytest.raises(InsufficientBalanceError):
            service.withdraw(wallet_id, 200)

        assert storage.raw == before

    def test_from_config(self, config):
        service = WalletService.from_config(config)
        assert isinstance(service.storage, InMemorySnapshotStorage)
        assert len(logging.getLogger("shiwallet").handlers) == 1
        service.close()


class TestOperations:
    """Test operations that go through the service"""

    def test_update_settings_persists(self, service, storage):
        wallet_id = service.create_wallet("Savings")
        service.update_settings(wallet_id, name="Bank", annual_profit_rate="0.18")

        stored = storage.load()["wallets"][wallet_id]
        assert stored["name"] == "Bank"
        assert stored["annualProfitRate"] == 0.18

    def test_delete_wallet_persists(self, service, storage):
        wallet_id = service.create_wallet("Savings")
        service.deposit(wallet_id, 100)

        service.delete_wallet(wallet_id)

        assert storage.load() == {"wallets": {}, "transactions": []}

    def test_calculate_profit(self, service, storage, clock):
        wallet_id = service.create_wallet("Savings")
        service.deposit(wallet_id, 1000000)
        clock.set(utc(2024, 10, 7))

        results = service.calculate_profit()

        assert results == {wallet_id: Money(Decimal('9863'))}
        assert storage.load()["wallets"][wallet_id]["balance"] == 1009863

    def test_projected_profit(self, service, clock):
        wallet_id = service.create_wallet("Savings")
        service.deposit(wallet_id, 1000000)
        clock.set(utc(2024, 10, 19, 10))

        assert service.projected_profit(wallet_id) == Money(Decimal('11186'))

    def test_total_balance(self, service):
        service.deposit(service.create_wallet("One"), 100)
        service.deposit(service.create_wallet("Two"), 250)
        assert service.total_balance() == Money(Decimal('350'))


class TestBackupFiles:
    """Test export and import of backup files"""

    def test_export_and_import(self, service, config, clock, tmp_path):
        clock.set(utc(2024, 10, 19, 10))
        wallet_id = service.create_wallet("Savings")
        service.deposit(wallet_id, Decimal('1500.50'))

        path = service.export_file(tmp_path)

        assert path == tmp_path / "shiwallet-backup-2024-10-19.json"

        other = WalletService(InMemorySnapshotStorage(), config, clock=clock)
        other.load()
        other.import_file(path)

        assert other.export_snapshot() == service.export_snapshot()

    def test_export_file_uses_json_numbers(self, service, tmp_path):
        wallet_id = service.create_wallet("Savings")
        service.deposit(wallet_id, Decimal('500000'))
        service.withdraw(wallet_id, Decimal('0.25'))

        data = json.loads(service.export_file(tmp_path).read_text(encoding="utf-8"))

        assert data["wallets"][wallet_id]["balance"] == 499999.75
        assert data["wallets"][wallet_id]["annualProfitRate"] == 0.24
        assert [t["amount"] for t in data["transactions"]] == [500000, -0.25]
        assert isinstance(data["transactions"][0]["amount"], int)

    def test_invalid_file_leaves_state(self, service, tmp_path):
        wallet_id = service.create_wallet("Savings")
        service.deposit(wallet_id, 100)
        before = service.export_snapshot()

        path = tmp_path / "broken.json"
        path.write_text("this is not json", encoding="utf-8")

        with pytest.raises(InvalidFormatError):
            service.import_file(path)

        assert service.export_snapshot() == before

    def test_import_snapshot(self, service):
        service.import_snapshot({
            "wallets": {"w1": {"id": "w1", "name": "Imported", "balance": 42,
                               "createdAt": "2024-09-01T00:00:00Z"}},
            "transactions": []
        })
        assert [w.name for w in service.wallets()] == ["Imported"]
