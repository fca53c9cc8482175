from __future__ import annotations

import pytest

from upline_ledger.domain.exceptions import InvalidInputError
from upline_ledger.infrastructure.state.upline_registry import InMemoryUplineRegistry


def test_upline_walks_nearest_first_and_respects_depth() -> None:
    registry = InMemoryUplineRegistry()
    registry.register("a", "b")
    registry.register("b", "c")
    registry.register("c", "d")

    assert registry.referrer_of("a") == "b"
    assert registry.upline("a", 2) == ("b", "c")
    assert registry.upline("a", 10) == ("b", "c", "d")
    assert registry.upline("d", 4) == ()
    assert len(registry) == 3


def test_repeat_registration_with_same_referrer_is_idempotent() -> None:
    registry = InMemoryUplineRegistry()
    registry.register("a", "b")
    registry.register("a", "b")

    assert len(registry) == 1


def test_changing_referrer_is_rejected() -> None:
    registry = InMemoryUplineRegistry()
    registry.register("a", "b")

    with pytest.raises(InvalidInputError, match="already referred"):
        registry.register("a", "c")


def test_self_referral_and_cycles_are_rejected() -> None:
    registry = InMemoryUplineRegistry()
    registry.register("a", "b")
    registry.register("b", "c")

    with pytest.raises(InvalidInputError):
        registry.register("x", "x")
    with pytest.raises(InvalidInputError, match="cycle"):
        registry.register("c", "a")


def test_negative_depth_is_rejected() -> None:
    with pytest.raises(InvalidInputError):
        InMemoryUplineRegistry().upline("a", -1)
