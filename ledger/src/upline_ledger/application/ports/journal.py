"""Port describing the append-only ledger journal."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from upline_ledger.domain.ledger import DistributionRecord, WithdrawalRecord


class LedgerJournalPort(Protocol):
    """Append-only store of distribution and withdrawal records.

    Appends either succeed completely or raise; a raising append must not
    leave a partial record behind.
    """

    def append_distribution(self, record: DistributionRecord) -> None:
        """Append one distribution record."""

    def append_withdrawal(self, record: WithdrawalRecord) -> None:
        """Append one withdrawal record."""

    def distributions(self) -> Sequence[DistributionRecord]:
        """Return every distribution record in append order."""

    def withdrawals(self) -> Sequence[WithdrawalRecord]:
        """Return every withdrawal record in append order."""


__all__ = ["LedgerJournalPort"]
