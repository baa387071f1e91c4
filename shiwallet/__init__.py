"""
ShiWallet

A personal multi-wallet tracker with monthly profit accrual on the Shamsi
(solar Hijri) calendar, Decimal money arithmetic and an append-only ledger.
"""

__version__ = "1.0.0"
