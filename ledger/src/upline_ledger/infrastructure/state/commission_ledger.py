"""In-memory commission ledger with per-entry locking."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from threading import Lock
from typing import TypeVar

from upline_commons.errors import ConcurrencyConflictError, LockTimeoutError
from upline_ledger.application.ports.journal import LedgerJournalPort
from upline_ledger.application.ports.ledger import CommissionLedgerPort
from upline_ledger.domain.exceptions import NothingToWithdrawError
from upline_ledger.domain.ledger import (
    DistributionRecord,
    DistributionResult,
    PayoutObligation,
    Recipient,
    WithdrawalRecord,
)
from upline_ledger.domain.split import SplitPlan, plan_split, validate_recipient
from upline_ledger.domain.weights import DEFAULT_TOLERANCE, WeightVector
from upline_ledger.infrastructure.state.journal import InMemoryLedgerJournal

logger = logging.getLogger("upline_ledger.ledger")

DEFAULT_RESERVE_RECIPIENT = "reserve"
DEFAULT_LOCK_TIMEOUT_SECONDS = 0.5
_MAX_BACKOFF_SECONDS = 0.05

T = TypeVar("T")


def _utc_now() -> datetime:
    return datetime.now(UTC)


class InMemoryCommissionLedger(CommissionLedgerPort):
    """Balance map plus journal, mutated only under entry locks and the append lock.

    Lock order is always: entry locks sorted by recipient, then the append
    lock. Every mutation of ``_balances`` and every journal append happens
    while the append lock is held, so a snapshot taken under it is
    consistent. The append lock is held for the whole commit, so commits
    are serialized; entry locks only order operations that share a
    recipient.

    A timed-out acquisition releases what it holds and retries with capped
    jittered backoff until it succeeds; callers never see the conflict.
    """

    def __init__(
        self,
        *,
        journal: LedgerJournalPort | None = None,
        reserve_recipient: Recipient = DEFAULT_RESERVE_RECIPIENT,
        tolerance: float = DEFAULT_TOLERANCE,
        lock_timeout_seconds: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] = _utc_now,
        rng: random.Random | None = None,
    ) -> None:
        if lock_timeout_seconds <= 0:
            raise ValueError("lock_timeout_seconds must be positive")
        self._journal: LedgerJournalPort = journal if journal is not None else InMemoryLedgerJournal()
        self._reserve = validate_recipient(reserve_recipient)
        self._tolerance = tolerance
        self._lock_timeout = lock_timeout_seconds
        self._clock = clock
        self._rng = rng or random.Random()
        self._balances: dict[Recipient, int] = {}
        self._entry_locks: dict[Recipient, Lock] = {}
        self._locks_guard = Lock()
        self._append_lock = Lock()
        self._next_sequence = 1

    @property
    def reserve_recipient(self) -> Recipient:
        return self._reserve

    # --- Mutations ---

    def distribute(
        self,
        volume: int,
        recipients: Sequence[Recipient],
        weights: WeightVector | Sequence[float],
    ) -> DistributionResult:
        vector = WeightVector.of(weights, tolerance=self._tolerance)
        plan = plan_split(volume, recipients, vector, remainder_recipient=self._reserve)
        touched = set(recipient for recipient, _ in plan.credits)
        if plan.remainder:
            touched.add(self._reserve)

        record = self._run_locked(touched, lambda: self._commit_distribution(plan, vector))
        credited = plan.totals
        logger.info(
            "distribution recorded",
            extra={
                "data": {
                    "sequence": record.sequence,
                    "volume": record.volume,
                    "credited": credited,
                    "remainder": record.remainder,
                }
            },
        )
        return DistributionResult(record=record, credited=credited)

    def withdraw(self, recipient: Recipient) -> PayoutObligation:
        validate_recipient(recipient)
        try:
            obligation = self._run_locked((recipient,), lambda: self._commit_withdrawal(recipient))
        except NothingToWithdrawError:
            logger.info("nothing to withdraw", extra={"data": {"recipient": recipient}})
            raise
        logger.info(
            "withdrawal authorised",
            extra={
                "data": {
                    "recipient": recipient,
                    "amount": obligation.amount,
                    "sequence": obligation.sequence,
                }
            },
        )
        return obligation

    # --- Reads ---

    def balance(self, recipient: Recipient) -> int:
        return self._balances.get(recipient, 0)

    def balances(self) -> dict[Recipient, int]:
        with self._append_lock:
            return dict(self._balances)

    def distribution_records(self) -> tuple[DistributionRecord, ...]:
        return tuple(self._journal.distributions())

    def withdrawal_records(self) -> tuple[WithdrawalRecord, ...]:
        return tuple(self._journal.withdrawals())

    def reconstruct_balance(self, recipient: Recipient) -> int:
        with self._append_lock:
            return self._reconstruct(recipient)

    def verify(self) -> dict[Recipient, tuple[int, int]]:
        with self._append_lock:
            mismatches: dict[Recipient, tuple[int, int]] = {}
            for recipient, balance in self._balances.items():
                reconstructed = self._reconstruct(recipient)
                if reconstructed != balance:
                    mismatches[recipient] = (balance, reconstructed)
            return mismatches

    # --- Commit steps (entry locks held) ---

    def _commit_distribution(self, plan: SplitPlan, weights: WeightVector) -> DistributionRecord:
        with self._holding((self._append_lock,)):
            record = DistributionRecord(
                sequence=self._next_sequence,
                recorded_at=self._clock(),
                volume=plan.volume,
                weights=weights,
                credits=plan.credits,
                remainder=plan.remainder,
                remainder_recipient=plan.remainder_recipient,
            )
            touched = [recipient for recipient, _ in plan.credits]
            touched.extend(plan.totals)
            previous = {recipient: self._balances.get(recipient) for recipient in touched}
            try:
                for recipient in touched:
                    self._balances.setdefault(recipient, 0)
                for recipient, amount in plan.totals.items():
                    self._balances[recipient] += amount
                self._journal.append_distribution(record)
            except BaseException:
                self._restore(previous)
                raise
            self._next_sequence += 1
            return record

    def _commit_withdrawal(self, recipient: Recipient) -> PayoutObligation:
        with self._holding((self._append_lock,)):
            amount = self._balances.get(recipient, 0)
            if amount <= 0:
                raise NothingToWithdrawError(recipient)
            record = WithdrawalRecord(
                sequence=self._next_sequence,
                recorded_at=self._clock(),
                recipient=recipient,
                amount=amount,
            )
            # Zeroed before any transfer can be attempted by the caller.
            self._balances[recipient] = 0
            try:
                self._journal.append_withdrawal(record)
            except BaseException:
                self._balances[recipient] = amount
                raise
            self._next_sequence += 1
            return PayoutObligation(recipient=recipient, amount=amount, sequence=record.sequence)

    def _restore(self, previous: Mapping[Recipient, int | None]) -> None:
        for recipient, prior in previous.items():
            if prior is None:
                self._balances.pop(recipient, None)
            else:
                self._balances[recipient] = prior

    def _reconstruct(self, recipient: Recipient) -> int:
        credited = sum(record.amount_for(recipient) for record in self._journal.distributions())
        withdrawn = sum(
            record.amount for record in self._journal.withdrawals() if record.recipient == recipient
        )
        return credited - withdrawn

    # --- Locking ---

    def _entry_lock(self, recipient: Recipient) -> Lock:
        with self._locks_guard:
            lock = self._entry_locks.get(recipient)
            if lock is None:
                lock = Lock()
                self._entry_locks[recipient] = lock
            return lock

    @contextmanager
    def _holding(self, locks: Iterable[Lock]) -> Iterator[None]:
        held: list[Lock] = []
        try:
            for lock in locks:
                if not lock.acquire(timeout=self._lock_timeout):
                    raise LockTimeoutError(f"lock not acquired within {self._lock_timeout}s")
                held.append(lock)
            yield
        finally:
            for lock in reversed(held):
                lock.release()

    def _run_locked(self, recipients: Iterable[Recipient], operation: Callable[[], T]) -> T:
        locks = [self._entry_lock(recipient) for recipient in sorted(set(recipients))]
        attempt = 0
        while True:
            try:
                with self._holding(locks):
                    return operation()
            except ConcurrencyConflictError:
                attempt += 1
                backoff = min(_MAX_BACKOFF_SECONDS, 0.001 * (2 ** min(attempt, 8)))
                backoff *= self._rng.uniform(0.5, 1.0)
                logger.debug(
                    "ledger lock contention; retrying",
                    extra={"data": {"attempt": attempt, "backoff_s": round(backoff, 4)}},
                )
                time.sleep(backoff)


__all__ = [
    "DEFAULT_LOCK_TIMEOUT_SECONDS",
    "DEFAULT_RESERVE_RECIPIENT",
    "InMemoryCommissionLedger",
]
