from __future__ import annotations

import pytest

from upline_ledger.application.services.upline import UplineResolver
from upline_ledger.domain.exceptions import InvalidInputError
from upline_ledger.infrastructure.state.upline_registry import InMemoryUplineRegistry


def _registry(*links: tuple[str, str]) -> InMemoryUplineRegistry:
    registry = InMemoryUplineRegistry()
    for member, referrer in links:
        registry.register(member, referrer)
    return registry


def test_full_upline_fills_every_tier() -> None:
    registry = _registry(("p", "a"), ("a", "b"), ("b", "c"), ("c", "d"), ("d", "e"))
    resolver = UplineResolver(registry=registry, reserve_recipient="reserve")

    assert resolver.slot_count == 6
    assert resolver.recipients_for("p") == ("p", "a", "b", "c", "d", "reserve")


def test_short_upline_is_padded_with_reserve() -> None:
    resolver = UplineResolver(registry=_registry(("p", "a")), reserve_recipient="reserve")

    assert resolver.recipients_for("p") == ("p", "a", "reserve", "reserve", "reserve", "reserve")


def test_unknown_provider_sends_every_tier_to_reserve() -> None:
    resolver = UplineResolver(registry=_registry(), reserve_recipient="pool", depth=2)

    assert resolver.recipients_for("solo") == ("solo", "pool", "pool", "pool")


def test_blank_provider_is_rejected() -> None:
    resolver = UplineResolver(registry=_registry(), reserve_recipient="reserve")

    with pytest.raises(InvalidInputError):
        resolver.recipients_for(" ")


def test_negative_depth_is_rejected() -> None:
    with pytest.raises(ValueError):
        UplineResolver(registry=_registry(), reserve_recipient="reserve", depth=-1)
