"""
Token Ledger

A fungible-token ledger with mint, burn and transfer operations over
integer balances, a hash-chained operation journal and structured logging.
"""

__version__ = "1.0.0"
