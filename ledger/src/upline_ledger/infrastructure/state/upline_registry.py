"""In-memory referral registry implementation."""

from __future__ import annotations

from threading import Lock

from upline_ledger.application.ports.upline_registry import UplineRegistryPort
from upline_ledger.domain.exceptions import InvalidInputError
from upline_ledger.domain.ledger import Recipient
from upline_ledger.domain.split import validate_recipient


class InMemoryUplineRegistry(UplineRegistryPort):
    """Stores member -> referrer links in memory.

    A member's referrer is fixed once registered; links that would close a
    cycle are rejected so upline walks always terminate.
    """

    def __init__(self) -> None:
        self._referrers: dict[Recipient, Recipient] = {}
        self._lock = Lock()

    def register(self, member: Recipient, referrer: Recipient) -> None:
        validate_recipient(member)
        validate_recipient(referrer)
        if member == referrer:
            raise InvalidInputError("a member cannot refer themselves")
        with self._lock:
            existing = self._referrers.get(member)
            if existing is not None:
                if existing != referrer:
                    raise InvalidInputError(
                        f"member {member!r} is already referred by {existing!r}",
                    )
                return
            ancestor: Recipient | None = referrer
            while ancestor is not None:
                if ancestor == member:
                    raise InvalidInputError(f"referral {member!r} <- {referrer!r} would form a cycle")
                ancestor = self._referrers.get(ancestor)
            self._referrers[member] = referrer

    def referrer_of(self, member: Recipient) -> Recipient | None:
        with self._lock:
            return self._referrers.get(member)

    def upline(self, member: Recipient, depth: int) -> tuple[Recipient, ...]:
        if depth < 0:
            raise InvalidInputError("depth must be non-negative")
        chain: list[Recipient] = []
        with self._lock:
            current = self._referrers.get(member)
            while current is not None and len(chain) < depth:
                chain.append(current)
                current = self._referrers.get(current)
        return tuple(chain)

    def __len__(self) -> int:
        with self._lock:
            return len(self._referrers)


__all__ = ["InMemoryUplineRegistry"]
