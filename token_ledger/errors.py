"""
Ledger error taxonomy.

All errors derive from ValueError so callers that already treat rejected
business operations as ValueError keep working.
"""

from typing import Any, Optional


class LedgerError(ValueError):
    """Base class for rejected ledger operations"""
    code = "LedgerError"


class InvalidAmountError(LedgerError):
    """Amount is not a non-negative integer"""
    code = "InvalidAmount"

    def __init__(self, amount: Any):
        self.amount = amount
        super().__init__(f"Amount must be a non-negative integer, got {amount!r}")


class InsufficientBalanceError(LedgerError):
    """Burn or transfer exceeds the source account's balance"""
    code = "InsufficientBalance"

    def __init__(self, account: Any, balance: int, amount: int):
        self.account = account
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient balance for {account}: balance={balance}, requested={amount}"
        )


class InvalidRecipientError(LedgerError):
    """Destination is the null account"""
    code = "InvalidRecipient"

    def __init__(self, account: Any):
        self.account = account
        super().__init__(f"Invalid recipient: {account!r} is the null account")


class SupplyOverflowError(LedgerError):
    """Increment would exceed the representable integer range"""
    code = "Overflow"

    def __init__(self, current: int, amount: int, limit: int):
        self.current = current
        self.amount = amount
        self.limit = limit
        super().__init__(f"Overflow: {current} + {amount} exceeds {limit}")


class UnauthorizedError(LedgerError):
    """An authorization hook vetoed the operation"""
    code = "Unauthorized"

    def __init__(self, action: str, caller: Optional[str]):
        self.action = action
        self.caller = caller
        super().__init__(f"Caller {caller!r} is not allowed to {action}")
