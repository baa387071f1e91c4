"""
Pydantic schemas for ledger snapshots

The snapshot is the persisted and exported form of the whole ledger:
a mapping of wallet id to wallet plus the ordered transaction list, with the
camelCase keys used by existing backup files.
"""

from decimal import Decimal
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .currency import Money, to_decimal
from .models import Wallet, Transaction, TransactionType, ensure_aware


def _float_to_str(value: Any) -> Any:
    # Shortest repr, so 0.24 stays 0.24 instead of its binary expansion
    if isinstance(value, float):
        return str(value)
    return value


class WalletModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    balance: Decimal = Field(..., description="Decimal amount; numbers or strings accepted")
    created_at: Optional[datetime] = Field(None, alias="createdAt")
    last_profit_calculation: Optional[datetime] = Field(None, alias="lastProfitCalculation")
    annual_profit_rate: Optional[Decimal] = Field(None, alias="annualProfitRate")

    @field_validator("balance", "annual_profit_rate", mode="before")
    @classmethod
    def normalize_number(cls, v):
        return _float_to_str(v)

    @field_validator("created_at", "last_profit_calculation", mode="wrap")
    @classmethod
    def lenient_timestamp(cls, v, handler):
        """Unparseable dates are treated as missing; the scheduler skips such wallets"""
        try:
            return handler(v)
        except ValidationError:
            return None

    def to_wallet(self) -> Wallet:
        return Wallet(
            id=self.id,
            name=self.name,
            balance=Money(to_decimal(self.balance)),
            created_at=ensure_aware(self.created_at) if self.created_at else None,
            last_profit_calculation=(
                ensure_aware(self.last_profit_calculation)
                if self.last_profit_calculation else None
            ),
            annual_profit_rate=(
                to_decimal(self.annual_profit_rate)
                if self.annual_profit_rate is not None else None
            )
        )


class TransactionModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    wallet_id: str = Field(..., alias="walletId")
    amount: Decimal
    type: TransactionType
    timestamp: datetime
    description: Optional[str] = None

    @field_validator("amount", mode="before")
    @classmethod
    def normalize_amount(cls, v):
        return _float_to_str(v)

    def to_transaction(self) -> Transaction:
        return Transaction(
            id=self.id,
            wallet_id=self.wallet_id,
            amount=Money(to_decimal(self.amount)),
            type=self.type,
            timestamp=ensure_aware(self.timestamp),
            description=self.description
        )


class SnapshotModel(BaseModel):
    wallets: Dict[str, WalletModel]
    transactions: List[TransactionModel]
