"""
Authorization hooks for supply-changing operations.

The ledger does not decide who may mint or burn. An external layer passes an
authorizer, any callable ``(action, caller, account, amount) -> None`` that
raises UnauthorizedError to veto the operation.
"""

from typing import Callable, Iterable, Optional

from .errors import UnauthorizedError


Authorizer = Callable[[str, Optional[str], str, int], None]

MINT = "mint"
BURN = "burn"


class AllowListAuthorizer:
    """Admits only configured identities for mint and burn"""

    def __init__(self, minters: Iterable[str], burners: Optional[Iterable[str]] = None):
        self.minters = set(minters)
        # Burners default to the minter set
        self.burners = set(burners) if burners is not None else set(self.minters)

    def grant(self, action: str, identity: str) -> None:
        self._members(action).add(identity)

    def revoke(self, action: str, identity: str) -> None:
        self._members(action).discard(identity)

    def _members(self, action: str) -> set:
        if action == MINT:
            return self.minters
        if action == BURN:
            return self.burners
        raise ValueError(f"Unknown action: {action}")

    def __call__(self, action: str, caller: Optional[str], account: str, amount: int) -> None:
        if caller is None or caller not in self._members(action):
            raise UnauthorizedError(action, caller)
