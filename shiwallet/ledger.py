"""
Ledger Store Module

Owns the wallets and the append-only transaction log. Every mutation
validates first and only then touches state, so a failed operation leaves
the ledger exactly as it was. Each balance change appends a transaction
and updates the wallet's cached balance in the same step.
"""

from decimal import Decimal
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from .currency import Money, AmountLike, to_decimal
from .exceptions import (
    WalletError, InvalidAmountError, InsufficientBalanceError,
    WalletNotFoundError, InvalidFormatError
)
from .logging_config import get_logger, log_action
from .models import (
    Wallet, Transaction, TransactionType, DEFAULT_ANNUAL_RATE,
    generate_id, utc_now, ensure_aware
)
from .schemas import SnapshotModel


class LedgerStore:
    """
    In-memory ledger state: wallets keyed by id plus transactions in
    insertion order
    """

    def __init__(
        self,
        default_rate: Decimal = DEFAULT_ANNUAL_RATE,
        clock: Callable[[], datetime] = utc_now
    ):
        self.default_rate = default_rate
        self.clock = clock
        self._wallets: Dict[str, Wallet] = {}
        self._transactions: List[Transaction] = []
        self.logger = get_logger("shiwallet.ledger")

    # Reads

    def get_wallet(self, wallet_id: str) -> Wallet:
        """Get wallet by ID"""
        wallet = self._wallets.get(wallet_id)
        if wallet is None:
            raise WalletNotFoundError(f"Wallet {wallet_id} not found")
        return wallet

    def has_wallet(self, wallet_id: str) -> bool:
        return wallet_id in self._wallets

    def list_wallets(self) -> List[Wallet]:
        """All wallets in creation order"""
        return list(self._wallets.values())

    @property
    def transactions(self) -> List[Transaction]:
        """Copy of the transaction log in insertion order"""
        return list(self._transactions)

    def transactions_for(self, wallet_id: str) -> List[Transaction]:
        """A wallet's transactions in insertion order"""
        return [t for t in self._transactions if t.wallet_id == wallet_id]

    def wallet_transactions(self, wallet_id: str) -> List[Transaction]:
        """A wallet's transactions newest first, the order they are displayed in"""
        self.get_wallet(wallet_id)
        return sorted(self.transactions_for(wallet_id), key=lambda t: t.timestamp, reverse=True)

    def balance_from_transactions(self, wallet_id: str) -> Money:
        """Recompute a wallet balance from its ledger entries"""
        total = Money.zero()
        for transaction in self.transactions_for(wallet_id):
            total = total + transaction.amount
        return total

    def total_balance(self) -> Money:
        """Sum of all wallet balances"""
        total = Money.zero()
        for wallet in self._wallets.values():
            total = total + wallet.balance
        return total

    # Mutations

    def create_wallet(self, name: str, annual_profit_rate: Optional[AmountLike] = None) -> str:
        """
        Create a new wallet with zero balance

        Args:
            name: Wallet name, trimmed; must not be empty
            annual_profit_rate: Annual rate (defaults to the store's default rate)

        Returns:
            ID of the created wallet
        """
        clean_name = self._clean_name(name)
        rate = self.default_rate if annual_profit_rate is None else self._validate_rate(annual_profit_rate)

        wallet = Wallet(
            id=self._new_wallet_id(),
            name=clean_name,
            balance=Money.zero(),
            created_at=self.clock(),
            annual_profit_rate=rate
        )
        self._wallets[wallet.id] = wallet

        log_action(
            self.logger, "info", f"Wallet created: {clean_name}",
            action="create_wallet", resource=f"wallet:{wallet.id}",
            extra={"name": clean_name, "annual_profit_rate": str(rate)}
        )
        return wallet.id

    def delete_wallet(self, wallet_id: str) -> None:
        """Delete a wallet and every transaction recorded against it"""
        self.get_wallet(wallet_id)

        remaining = [t for t in self._transactions if t.wallet_id != wallet_id]
        removed = len(self._transactions) - len(remaining)
        del self._wallets[wallet_id]
        self._transactions = remaining

        log_action(
            self.logger, "info", "Wallet deleted",
            action="delete_wallet", resource=f"wallet:{wallet_id}",
            extra={"transactions_removed": removed}
        )

    def deposit(self, wallet_id: str, amount: AmountLike) -> Transaction:
        """
        Add money to a wallet

        Args:
            wallet_id: Wallet to credit
            amount: Positive finite amount

        Returns:
            The recorded deposit transaction

        Raises:
            InvalidAmountError: If the amount is not a positive finite number
            WalletNotFoundError: If the wallet does not exist
        """
        value = self._validate_amount(amount)
        wallet = self.get_wallet(wallet_id)

        transaction = self._append(wallet, value, TransactionType.DEPOSIT, self.clock())

        log_action(
            self.logger, "info", "Deposit recorded",
            action="deposit", resource=f"wallet:{wallet_id}",
            extra={"amount": value.to_string(), "balance": wallet.balance.to_string()}
        )
        return transaction

    def withdraw(self, wallet_id: str, amount: AmountLike) -> Transaction:
        """
        Take money out of a wallet

        Raises:
            InvalidAmountError: If the amount is not a positive finite number
            InsufficientBalanceError: If the amount exceeds the balance
            WalletNotFoundError: If the wallet does not exist
        """
        value = self._validate_amount(amount)
        wallet = self.get_wallet(wallet_id)

        # Compare what was asked for, not the amount rounded to the minor unit
        if to_decimal(amount) > wallet.balance.amount:
            raise InsufficientBalanceError(
                f"Insufficient balance: {wallet.balance.to_string()} available, "
                f"{value.to_string()} requested"
            )

        transaction = self._append(wallet, -value, TransactionType.WITHDRAW, self.clock())

        log_action(
            self.logger, "info", "Withdrawal recorded",
            action="withdraw", resource=f"wallet:{wallet_id}",
            extra={"amount": value.to_string(), "balance": wallet.balance.to_string()}
        )
        return transaction

    def update_settings(
        self,
        wallet_id: str,
        name: Optional[str] = None,
        annual_profit_rate: Optional[AmountLike] = None
    ) -> Wallet:
        """Rename a wallet and/or change its annual profit rate"""
        wallet = self.get_wallet(wallet_id)
        clean_name = self._clean_name(name) if name is not None else None
        rate = self._validate_rate(annual_profit_rate) if annual_profit_rate is not None else None

        changes = {}
        if clean_name is not None:
            wallet.name = clean_name
            changes["name"] = clean_name
        if rate is not None:
            wallet.annual_profit_rate = rate
            changes["annual_profit_rate"] = str(rate)

        log_action(
            self.logger, "info", "Wallet settings updated",
            action="update_settings", resource=f"wallet:{wallet_id}",
            extra=changes
        )
        return wallet

    def record_profit(
        self,
        wallet_id: str,
        amount: Money,
        timestamp: datetime,
        description: str
    ) -> Transaction:
        """Append a profit entry and stamp the wallet's last calculation time"""
        wallet = self.get_wallet(wallet_id)
        transaction = self._append(wallet, amount, TransactionType.PROFIT, timestamp, description)
        wallet.last_profit_calculation = timestamp
        return transaction

    # Snapshots

    def import_snapshot(self, data: Any) -> None:
        """
        Replace the whole ledger with a snapshot

        Raises:
            InvalidFormatError: If the snapshot is malformed; the current
                state is left untouched
        """
        try:
            snapshot = SnapshotModel.model_validate(data)
            wallets = {}
            for key, wallet_model in snapshot.wallets.items():
                if wallet_model.id != key:
                    raise InvalidFormatError(f"Wallet key {key!r} does not match id {wallet_model.id!r}")
                wallets[key] = wallet_model.to_wallet()
            transactions = [t.to_transaction() for t in snapshot.transactions]
        except ValidationError as e:
            raise InvalidFormatError(f"Invalid file format: {e.error_count()} validation error(s)") from e
        except InvalidFormatError:
            raise
        except WalletError as e:
            raise InvalidFormatError(f"Invalid file format: {e}") from e

        self._wallets = wallets
        self._transactions = transactions

        log_action(
            self.logger, "info", "Snapshot imported",
            action="import_snapshot",
            extra={"wallets": len(wallets), "transactions": len(transactions)}
        )

    def export_snapshot(self) -> Dict[str, Any]:
        """JSON-ready copy of the whole ledger"""
        return {
            "wallets": {wallet_id: wallet.to_dict() for wallet_id, wallet in self._wallets.items()},
            "transactions": [t.to_dict() for t in self._transactions]
        }

    def reset(self) -> None:
        """Drop all wallets and transactions"""
        self._wallets = {}
        self._transactions = []

    # Internals

    def _append(
        self,
        wallet: Wallet,
        amount: Money,
        transaction_type: TransactionType,
        timestamp: datetime,
        description: Optional[str] = None
    ) -> Transaction:
        transaction = Transaction(
            id=generate_id(),
            wallet_id=wallet.id,
            amount=amount,
            type=transaction_type,
            timestamp=ensure_aware(timestamp),
            description=description
        )
        wallet.balance = wallet.balance + amount
        self._transactions.append(transaction)
        return transaction

    def _new_wallet_id(self) -> str:
        wallet_id = generate_id()
        while wallet_id in self._wallets:
            wallet_id = generate_id()
        return wallet_id

    @staticmethod
    def _clean_name(name: str) -> str:
        clean_name = (name or "").strip()
        if not clean_name:
            raise ValueError("Wallet name cannot be empty")
        return clean_name

    @staticmethod
    def _validate_amount(amount: AmountLike) -> Money:
        value = to_decimal(amount)
        if value <= Decimal('0'):
            raise InvalidAmountError("Amount must be positive")
        money = Money(value)
        if not money.is_positive():
            raise InvalidAmountError("Amount rounds to zero")
        return money

    @staticmethod
    def _validate_rate(rate: AmountLike) -> Decimal:
        try:
            value = to_decimal(rate)
        except InvalidAmountError:
            raise ValueError(f"Invalid annual profit rate: {rate!r}")
        if value <= Decimal('0'):
            raise ValueError("Annual profit rate must be positive")
        return value
