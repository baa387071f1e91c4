"""Wallet domain specific exceptions."""


class WalletError(ValueError):
    """Base class for wallet domain errors."""


class InvalidAmountError(WalletError):
    """Raised when an amount is non-positive, non-finite or not a number."""


class InsufficientBalanceError(WalletError):
    """Raised when a withdrawal exceeds the wallet balance."""


class WalletNotFoundError(WalletError):
    """Raised when the requested wallet cannot be found."""


class InvalidFormatError(WalletError):
    """Raised when an imported snapshot fails structural validation."""
