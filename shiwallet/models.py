"""
Wallet Models Module

Wallets and the append-only transactions recorded against them. A wallet's
balance is a cache of the sum of its transaction amounts; the transaction
list is the source of truth.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union
from enum import Enum
import uuid

from .currency import Money

DEFAULT_ANNUAL_RATE = Decimal('0.24')  # 24%


class TransactionType(Enum):
    """Kinds of ledger entries"""
    DEPOSIT = "deposit"
    WITHDRAW = "withdraw"
    PROFIT = "profit"


def generate_id() -> str:
    """Short opaque identifier for wallets and transactions"""
    return uuid.uuid4().hex[:9]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC"""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def to_json_number(value: Decimal) -> Union[int, float]:
    """Plain JSON number for a Decimal, as the snapshot files carry amounts"""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with a trailing Z, as the snapshot files carry it"""
    utc = ensure_aware(moment).astimezone(timezone.utc)
    return utc.isoformat().replace('+00:00', 'Z')


@dataclass
class Wallet:
    """
    Named pool of money earning monthly profit
    """
    id: str
    name: str
    balance: Money
    created_at: Optional[datetime] = None
    last_profit_calculation: Optional[datetime] = None
    annual_profit_rate: Optional[Decimal] = None

    @property
    def effective_rate(self) -> Decimal:
        """Annual rate used for profit, falling back to the default"""
        if self.annual_profit_rate is None:
            return DEFAULT_ANNUAL_RATE
        return self.annual_profit_rate

    @property
    def last_calculation_reference(self) -> Optional[datetime]:
        """Last accrual time, or creation time if never accrued"""
        return self.last_profit_calculation or self.created_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the snapshot wallet shape"""
        result = {
            "id": self.id,
            "name": self.name,
            "balance": to_json_number(self.balance.amount),
        }
        if self.created_at:
            result["createdAt"] = format_timestamp(self.created_at)
        if self.last_profit_calculation:
            result["lastProfitCalculation"] = format_timestamp(self.last_profit_calculation)
        if self.annual_profit_rate is not None:
            result["annualProfitRate"] = to_json_number(self.annual_profit_rate)
        return result


@dataclass(frozen=True)
class Transaction:
    """
    Immutable audit record of one balance change
    """
    id: str
    wallet_id: str
    amount: Money
    type: TransactionType
    timestamp: datetime
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the snapshot transaction shape"""
        result = {
            "id": self.id,
            "walletId": self.wallet_id,
            "amount": to_json_number(self.amount.amount),
            "type": self.type.value,
            "timestamp": format_timestamp(self.timestamp),
        }
        if self.description is not None:
            result["description"] = self.description
        return result
