"""Pure split arithmetic: volume x weights -> integer credits plus remainder.

Each credit is ``floor(volume * weight)``. The product is evaluated exactly
with ``Fraction`` over the float's shortest repr, so ``0.29 * 100`` floors to
29 rather than to the 28 a binary float product would give. Whatever the
floors leave behind goes to the reserve recipient.

A vector may sit inside the simplex tolerance yet have exact decimal values
that sum above 1. Those values are then scaled by their exact sum before
flooring, so the remainder is never negative.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from fractions import Fraction

from upline_ledger.domain.exceptions import InvalidInputError
from upline_ledger.domain.ledger import Recipient
from upline_ledger.domain.weights import WeightVector


@dataclass(frozen=True, slots=True)
class SplitPlan:
    volume: int
    credits: tuple[tuple[Recipient, int], ...]
    remainder: int
    remainder_recipient: Recipient

    @property
    def totals(self) -> dict[Recipient, int]:
        """Per-recipient credit, duplicates summed and remainder folded in."""

        totals: dict[Recipient, int] = {}
        for recipient, amount in self.credits:
            totals[recipient] = totals.get(recipient, 0) + amount
        if self.remainder:
            totals[self.remainder_recipient] = totals.get(self.remainder_recipient, 0) + self.remainder
        return totals


def validate_volume(volume: object) -> int:
    if isinstance(volume, bool) or not isinstance(volume, int):
        raise InvalidInputError("transaction volume must be an integer amount of the smallest currency unit")
    if volume < 0:
        raise InvalidInputError("transaction volume must be non-negative")
    return volume


def validate_recipient(recipient: object) -> Recipient:
    if not isinstance(recipient, str) or not recipient.strip():
        raise InvalidInputError("recipient must be a non-empty string")
    return recipient


def exact_weight(weight: float) -> Fraction:
    return Fraction(str(weight))


def floor_credit(volume: int, weight: float | Fraction) -> int:
    exact = weight if isinstance(weight, Fraction) else exact_weight(weight)
    return math.floor(volume * exact)


def plan_split(
    volume: object,
    recipients: Sequence[Recipient],
    weights: WeightVector,
    *,
    remainder_recipient: Recipient,
) -> SplitPlan:
    """Validate inputs and compute the credits for one distribution."""

    amount = validate_volume(volume)
    if isinstance(recipients, str):
        raise InvalidInputError("recipients must be a sequence of recipient ids, not a string")
    ordered = tuple(validate_recipient(recipient) for recipient in recipients)
    if not ordered:
        raise InvalidInputError("recipients must not be empty")
    if len(ordered) != len(weights):
        raise InvalidInputError(
            f"got {len(ordered)} recipients for {len(weights)} weights",
        )
    validate_recipient(remainder_recipient)

    exact = [exact_weight(weight) for weight in weights]
    total = sum(exact, Fraction(0))
    if total > 1:
        exact = [value / total for value in exact]
    credits = tuple(
        (recipient, floor_credit(amount, value))
        for recipient, value in zip(ordered, exact, strict=True)
    )
    remainder = amount - sum(credit for _, credit in credits)
    return SplitPlan(
        volume=amount,
        credits=credits,
        remainder=remainder,
        remainder_recipient=remainder_recipient,
    )


__all__ = ["SplitPlan", "exact_weight", "floor_credit", "plan_split", "validate_recipient", "validate_volume"]
