"""Ledger records: distributions, withdrawals and payout obligations."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime

from upline_ledger.domain.weights import WeightVector

Recipient = str


@dataclass(frozen=True, slots=True)
class DistributionRecord:
    """Immutable audit entry for one successful distribution.

    ``credits`` keeps one ``(recipient, amount)`` pair per weight slot in the
    caller's order; ``remainder`` is the rounding leftover credited to
    ``remainder_recipient``.
    """

    sequence: int
    recorded_at: datetime
    volume: int
    weights: WeightVector
    credits: tuple[tuple[Recipient, int], ...]
    remainder: int
    remainder_recipient: Recipient

    def __post_init__(self) -> None:
        if self.sequence <= 0:
            raise ValueError("sequence must be positive")
        credited = sum(amount for _, amount in self.credits)
        if credited + self.remainder != self.volume:
            raise ValueError("credits plus remainder must equal the distributed volume")

    def amount_for(self, recipient: Recipient) -> int:
        """Total credited to ``recipient`` by this record, remainder included."""

        total = sum(amount for slot_recipient, amount in self.credits if slot_recipient == recipient)
        if recipient == self.remainder_recipient:
            total += self.remainder
        return total


@dataclass(frozen=True, slots=True)
class WithdrawalRecord:
    sequence: int
    recorded_at: datetime
    recipient: Recipient
    amount: int


@dataclass(frozen=True, slots=True)
class PayoutObligation:
    """Amount authorised exactly once for transfer to ``recipient``."""

    recipient: Recipient
    amount: int
    sequence: int

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError("payout obligation amount must be positive")


@dataclass(frozen=True, slots=True)
class DistributionResult:
    record: DistributionRecord
    credited: Mapping[Recipient, int]

    @property
    def sequence(self) -> int:
        return self.record.sequence


__all__ = [
    "DistributionRecord",
    "DistributionResult",
    "PayoutObligation",
    "Recipient",
    "WithdrawalRecord",
]
