"""
Token Ledger Engine

Owns the balance table and the total supply counter and is their only
mutator. Every operation validates first and then applies all of its changes
under one writer lock, so the total supply always equals the sum of balances
and a rejected operation leaves no trace.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import threading

from .audit import OperationJournal
from .authorization import Authorizer, MINT, BURN
from .config import TokenLedgerConfig, get_config
from .errors import (
    LedgerError, InvalidAmountError, InsufficientBalanceError,
    InvalidRecipientError, SupplyOverflowError
)
from .events import (
    EventDispatcher, LedgerEvent, MintEvent, BurnEvent, TransferEvent
)
from .logging_config import get_logger, log_action


@dataclass(frozen=True)
class LedgerSnapshot:
    """Consistent point-in-time copy of the ledger state"""
    total_supply: int
    balances: Dict[str, int] = field(default_factory=dict)

    def is_consistent(self) -> bool:
        """Check that total supply equals the sum of balances"""
        return self.total_supply == sum(self.balances.values())


class TokenLedger:
    """
    Single-asset ledger supporting mint, burn and transfer

    Balances are sparse: an account without an entry holds zero.
    """

    def __init__(
        self,
        config: Optional[TokenLedgerConfig] = None,
        journal: Optional[OperationJournal] = None,
        dispatcher: Optional[EventDispatcher] = None,
        authorizer: Optional[Authorizer] = None
    ):
        self.config = config or get_config()
        self.null_account = self.config.null_account
        self.max_value = self.config.max_value
        self.journal = journal
        self.dispatcher = dispatcher
        self.authorizer = authorizer
        self._balances: Dict[str, int] = {}
        self._total_supply = 0
        self._lock = threading.RLock()
        self.logger = get_logger("token_ledger.ledger")

    @classmethod
    def from_journal(
        cls,
        journal: OperationJournal,
        config: Optional[TokenLedgerConfig] = None,
        dispatcher: Optional[EventDispatcher] = None,
        authorizer: Optional[Authorizer] = None
    ) -> 'TokenLedger':
        """
        Rebuild a ledger by replaying a journal in sequence order

        Replayed operations are not re-journaled, re-authorized or published.
        The returned ledger appends new operations to the same journal.

        Raises:
            ValueError: If the journal fails its integrity check
            LedgerError: If a replayed operation is rejected
        """
        integrity = journal.verify_integrity()
        if not integrity['valid']:
            raise ValueError(f"Journal integrity check failed: {integrity}")

        ledger = cls(config=config)
        for entry in journal.entries():
            event = entry.to_event()
            if isinstance(event, MintEvent):
                ledger.mint(event.account, event.amount)
            elif isinstance(event, BurnEvent):
                ledger.burn(event.account, event.amount)
            else:
                ledger.transfer(event.sender, event.recipient, event.amount)

        ledger.journal = journal
        ledger.dispatcher = dispatcher
        ledger.authorizer = authorizer
        ledger.logger.info(f"Replayed {integrity['total_entries']} journal entries")
        return ledger

    # Reads

    def balance_of(self, account: str) -> int:
        """
        Current balance of an account, 0 if never credited

        Use snapshot() when several values must be read together.
        """
        return self._balances.get(account, 0)

    def total_supply(self) -> int:
        """
        Current total supply

        Use snapshot() when the supply must agree with balances read alongside it.
        """
        return self._total_supply

    def snapshot(self) -> LedgerSnapshot:
        """Copy of all balances and the supply taken under the writer lock"""
        with self._lock:
            return LedgerSnapshot(
                total_supply=self._total_supply,
                balances=dict(self._balances)
            )

    def is_null_account(self, account: Any) -> bool:
        return account is None or account == self.null_account

    # Mutations

    def mint(self, account: str, amount: int, caller: Optional[str] = None) -> MintEvent:
        """
        Create new supply and credit it to an account

        Args:
            account: Account to credit
            amount: Non-negative integer amount
            caller: Identity requesting the mint, passed to the authorizer

        Returns:
            MintEvent record

        Raises:
            UnauthorizedError: If the authorizer vetoes the mint
            InvalidAmountError: If amount is not a non-negative integer
            InvalidRecipientError: If account is the null account
            SupplyOverflowError: If the supply would exceed the integer range
        """
        with self._lock:
            try:
                self._authorize(MINT, caller, account, amount)
                self._check_amount(amount)
                if self.is_null_account(account):
                    raise InvalidRecipientError(account)
                # A balance never exceeds the supply, so one bound covers both
                new_supply = self._checked_add(self._total_supply, amount)
            except LedgerError as e:
                self._log_rejection(MINT, caller, account, amount, e)
                raise

            event = MintEvent(account=account, amount=amount)
            self._commit(
                event, caller,
                {account: self.balance_of(account) + amount},
                new_supply
            )
            return event

    def burn(self, account: str, amount: int, caller: Optional[str] = None) -> BurnEvent:
        """
        Destroy supply held by an account

        Raises:
            UnauthorizedError: If the authorizer vetoes the burn
            InvalidAmountError: If amount is not a non-negative integer
            InsufficientBalanceError: If the account holds less than amount
        """
        with self._lock:
            try:
                self._authorize(BURN, caller, account, amount)
                self._check_amount(amount)
                balance = self._checked_debit(account, amount)
            except LedgerError as e:
                self._log_rejection(BURN, caller, account, amount, e)
                raise

            event = BurnEvent(account=account, amount=amount)
            self._commit(
                event, caller,
                {account: balance - amount},
                self._total_supply - amount
            )
            return event

    def transfer(
        self,
        sender: str,
        recipient: str,
        amount: int,
        caller: Optional[str] = None
    ) -> TransferEvent:
        """
        Move balance from sender to recipient

        The sender is supplied explicitly by the authentication layer; caller
        defaults to the sender. A transfer to oneself succeeds with no net
        change and still produces an event.

        Raises:
            InvalidAmountError: If amount is not a non-negative integer
            InvalidRecipientError: If recipient is the null account
            InsufficientBalanceError: If sender holds less than amount
        """
        caller = caller if caller is not None else sender
        with self._lock:
            try:
                self._check_amount(amount)
                if self.is_null_account(recipient):
                    raise InvalidRecipientError(recipient)
                sender_balance = self._checked_debit(sender, amount)
            except LedgerError as e:
                self._log_rejection("transfer", caller, sender, amount, e)
                raise

            updates = {sender: sender_balance - amount}
            updates[recipient] = updates.get(recipient, self.balance_of(recipient)) + amount

            event = TransferEvent(sender=sender, recipient=recipient, amount=amount)
            self._commit(event, caller, updates, self._total_supply)
            return event

    # Internals

    def _authorize(self, action: str, caller: Optional[str], account: str, amount: int) -> None:
        if self.authorizer is not None:
            self.authorizer(action, caller, account, amount)

    def _check_amount(self, amount: Any) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise InvalidAmountError(amount)

    def _checked_add(self, current: int, amount: int) -> int:
        result = current + amount
        if self.max_value is not None and result > self.max_value:
            raise SupplyOverflowError(current, amount, self.max_value)
        return result

    def _checked_debit(self, account: str, amount: int) -> int:
        balance = self.balance_of(account)
        if balance < amount:
            raise InsufficientBalanceError(account, balance, amount)
        return balance

    def _commit(
        self,
        event: LedgerEvent,
        caller: Optional[str],
        balance_updates: Dict[str, int],
        new_supply: int
    ) -> None:
        """Journal then apply a validated operation; caller holds the lock"""
        if self.journal is not None:
            # A failed journal write propagates before any state changes
            self.journal.append(event, caller)

        for account, balance in balance_updates.items():
            if balance:
                self._balances[account] = balance
            else:
                self._balances.pop(account, None)
        self._total_supply = new_supply

        log_action(
            self.logger, "info",
            f"{event.event_type.value} applied",
            user_id=caller,
            action=event.event_type.value.lower(),
            extra=event.to_dict()
        )

        if self.dispatcher is not None:
            self.dispatcher.publish(event)

    def _log_rejection(
        self,
        action: str,
        caller: Optional[str],
        account: Any,
        amount: Any,
        error: LedgerError
    ) -> None:
        log_action(
            self.logger, "warning",
            f"{action} rejected: {error}",
            user_id=caller,
            action=action,
            resource=str(account),
            extra={'error': error.code, 'amount': amount}
        )
