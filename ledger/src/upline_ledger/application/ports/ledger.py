"""Port describing the commission ledger."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Protocol

from upline_ledger.domain.ledger import (
    DistributionRecord,
    DistributionResult,
    PayoutObligation,
    Recipient,
    WithdrawalRecord,
)
from upline_ledger.domain.weights import WeightVector


class CommissionLedgerPort(Protocol):
    @property
    def reserve_recipient(self) -> Recipient:
        """Recipient that receives rounding remainders."""

    def distribute(
        self,
        volume: int,
        recipients: Sequence[Recipient],
        weights: WeightVector | Sequence[float],
    ) -> DistributionResult:
        """Credit ``volume`` across ``recipients`` and append one record atomically."""

    def withdraw(self, recipient: Recipient) -> PayoutObligation:
        """Zero the recipient's balance and return the prior amount."""

    def balance(self, recipient: Recipient) -> int:
        """Return the accrued, unwithdrawn balance (0 when unknown)."""

    def balances(self) -> Mapping[Recipient, int]:
        """Return a consistent snapshot of every ledger entry."""

    def distribution_records(self) -> Sequence[DistributionRecord]:
        """Return the distribution log in append order."""

    def withdrawal_records(self) -> Sequence[WithdrawalRecord]:
        """Return the withdrawal log in append order."""

    def reconstruct_balance(self, recipient: Recipient) -> int:
        """Recompute a balance from the logs alone."""

    def verify(self) -> Mapping[Recipient, tuple[int, int]]:
        """Return ``recipient -> (balance, reconstructed)`` for every mismatch."""


__all__ = ["CommissionLedgerPort"]
