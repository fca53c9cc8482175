"""In-memory ledger journal implementation."""

from __future__ import annotations

from threading import Lock

from upline_ledger.application.ports.journal import LedgerJournalPort
from upline_ledger.domain.ledger import DistributionRecord, WithdrawalRecord


class InMemoryLedgerJournal(LedgerJournalPort):
    """Stores distribution and withdrawal records for the lifetime of the process."""

    def __init__(self) -> None:
        self._distributions: list[DistributionRecord] = []
        self._withdrawals: list[WithdrawalRecord] = []
        self._lock = Lock()

    def append_distribution(self, record: DistributionRecord) -> None:
        with self._lock:
            self._distributions.append(record)

    def append_withdrawal(self, record: WithdrawalRecord) -> None:
        with self._lock:
            self._withdrawals.append(record)

    def distributions(self) -> tuple[DistributionRecord, ...]:
        with self._lock:
            return tuple(self._distributions)

    def withdrawals(self) -> tuple[WithdrawalRecord, ...]:
        with self._lock:
            return tuple(self._withdrawals)

    def __len__(self) -> int:
        with self._lock:
            return len(self._distributions) + len(self._withdrawals)


__all__ = ["InMemoryLedgerJournal"]
