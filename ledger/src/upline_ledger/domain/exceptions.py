"""Domain-specific exception types."""

from __future__ import annotations

from typing import TYPE_CHECKING

from upline_commons.errors import ConcurrencyConflictError

if TYPE_CHECKING:
    from upline_ledger.domain.ledger import PayoutObligation


class InvalidInputError(ValueError):
    """Raised when a ledger or optimizer call receives malformed input.

    The operation that raised it has not mutated any state.
    """


class NothingToWithdrawError(LookupError):
    """Raised when a recipient with a zero balance asks to withdraw."""

    def __init__(self, recipient: str) -> None:
        super().__init__(f"nothing to withdraw for recipient {recipient!r}")
        self.recipient = recipient


class PayoutFailedError(RuntimeError):
    """Raised when the payout gateway rejects an already-authorised obligation."""

    def __init__(self, obligation: PayoutObligation, reason: str) -> None:
        super().__init__(
            f"payout of {obligation.amount} to {obligation.recipient!r} failed: {reason}",
        )
        self.obligation = obligation


__all__ = [
    "ConcurrencyConflictError",
    "InvalidInputError",
    "NothingToWithdrawError",
    "PayoutFailedError",
]
