"""Port describing referral (upline) bookkeeping."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

from upline_ledger.domain.ledger import Recipient


class UplineRegistryPort(Protocol):
    def register(self, member: Recipient, referrer: Recipient) -> None:
        """Record that ``referrer`` referred ``member``."""

    def referrer_of(self, member: Recipient) -> Recipient | None:
        """Return the direct referrer of ``member``, if any."""

    def upline(self, member: Recipient, depth: int) -> Sequence[Recipient]:
        """Return up to ``depth`` ancestors of ``member``, nearest first."""


__all__ = ["UplineRegistryPort"]
