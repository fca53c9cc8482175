"""Resolve a service provider into the ordered recipient list of a split."""

from __future__ import annotations

from upline_ledger.application.ports.upline_registry import UplineRegistryPort
from upline_ledger.domain.ledger import Recipient
from upline_ledger.domain.split import validate_recipient

DEFAULT_UPLINE_DEPTH = 4


class UplineResolver:
    """Builds ``[provider, upline_1 .. upline_N, reserve]``.

    Tiers the provider's referral chain cannot fill are credited to the
    reserve recipient, so the list length always matches the weight slots.
    """

    def __init__(
        self,
        *,
        registry: UplineRegistryPort,
        reserve_recipient: Recipient,
        depth: int = DEFAULT_UPLINE_DEPTH,
    ) -> None:
        if depth < 0:
            raise ValueError("depth must be non-negative")
        self._registry = registry
        self._reserve = reserve_recipient
        self._depth = depth

    @property
    def slot_count(self) -> int:
        return self._depth + 2

    def recipients_for(self, provider: Recipient) -> tuple[Recipient, ...]:
        validate_recipient(provider)
        upline = list(self._registry.upline(provider, self._depth))
        upline.extend(self._reserve for _ in range(self._depth - len(upline)))
        return (provider, *upline, self._reserve)


__all__ = ["DEFAULT_UPLINE_DEPTH", "UplineResolver"]
