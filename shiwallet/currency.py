"""
Money Module

Fixed-point money representation for wallet balances and transaction amounts.
NEVER uses float for monetary values: every amount is a Decimal quantized to
the minor unit with half-away-from-zero rounding.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from dataclasses import dataclass
from typing import Union
import re

from .exceptions import InvalidAmountError

# Set global decimal context for financial precision
getcontext().prec = 28

CURRENCY_SYMBOL = "T"  # Toman
CURRENCY_PRECISION = 2
MINOR_UNIT = Decimal('0.1') ** CURRENCY_PRECISION
WHOLE_UNIT = Decimal('1')

AmountLike = Union[Decimal, int, float, str]


@dataclass(frozen=True)
class Money:
    """
    Immutable money amount rounded to the minor unit.
    All balances and transaction amounts MUST use this class.
    """
    amount: Decimal

    def __post_init__(self):
        if not isinstance(self.amount, Decimal):
            object.__setattr__(self, 'amount', to_decimal(self.amount))

        # Round to currency precision
        rounded = self.amount.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)
        object.__setattr__(self, 'amount', rounded)

    @classmethod
    def zero(cls) -> 'Money':
        return cls(Decimal('0'))

    def __add__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount + other.amount)

    def __sub__(self, other: 'Money') -> 'Money':
        if not isinstance(other, Money):
            return NotImplemented
        return Money(self.amount - other.amount)

    def __mul__(self, multiplier: Decimal) -> 'Money':
        if not isinstance(multiplier, Decimal):
            multiplier = to_decimal(multiplier)
        return Money(self.amount * multiplier)

    def __neg__(self) -> 'Money':
        return Money(-self.amount)

    def __abs__(self) -> 'Money':
        return Money(abs(self.amount))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Money):
            return False
        return self.amount == other.amount

    def __hash__(self) -> int:
        return hash(self.amount)

    def __lt__(self, other: 'Money') -> bool:
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        return self.amount <= other.amount

    def __gt__(self, other: 'Money') -> bool:
        return self.amount > other.amount

    def __ge__(self, other: 'Money') -> bool:
        return self.amount >= other.amount

    def is_zero(self) -> bool:
        """Check if amount is exactly zero"""
        return self.amount == Decimal('0')

    def is_positive(self) -> bool:
        """Check if amount is positive"""
        return self.amount > Decimal('0')

    def is_negative(self) -> bool:
        """Check if amount is negative"""
        return self.amount < Decimal('0')

    def to_string(self) -> str:
        """Format for display"""
        return f"{self.amount:,.{CURRENCY_PRECISION}f} {CURRENCY_SYMBOL}"


def to_decimal(value: AmountLike) -> Decimal:
    """
    Convert a numeric value to a finite Decimal

    Floats go through their shortest string form so that 0.1 becomes
    Decimal('0.1') rather than its binary expansion.

    Raises:
        InvalidAmountError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise InvalidAmountError(f"Invalid amount: {value!r}")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmountError(f"Invalid amount: {value!r}")
    else:
        raise InvalidAmountError(f"Invalid amount: {value!r}")

    if not result.is_finite():
        raise InvalidAmountError(f"Amount must be finite, got {value!r}")
    return result


def parse_amount(value: str) -> Decimal:
    """
    Parse a user-typed amount such as "1,000,000" or "250 000.50"

    Args:
        value: String representation of an amount

    Returns:
        Decimal value

    Raises:
        InvalidAmountError: If the string is empty or not a number
    """
    if not value or not isinstance(value, str):
        raise InvalidAmountError("Amount must be a non-empty string")

    # Drop thousands separators, whitespace and the currency symbol
    clean_value = re.sub(r'[,\s_]', '', value.strip())
    clean_value = clean_value.rstrip(CURRENCY_SYMBOL)

    return to_decimal(clean_value)


def round_to_unit(value: Decimal) -> Decimal:
    """Round to the nearest whole unit, half away from zero"""
    return value.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)
