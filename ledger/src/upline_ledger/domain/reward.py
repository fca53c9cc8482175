"""Reward strategies scoring a weight vector for the allocation optimizer."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal, Protocol

from upline_ledger.domain.weights import WeightVector

AcceptancePolicy = Literal["greater_or_equal", "strictly_greater"]


class RewardFunction(Protocol):
    """Pure function of a weight vector returning a real-valued score."""

    def __call__(self, weights: WeightVector) -> float:
        ...


@dataclass(frozen=True, slots=True)
class ScaledSumReward:
    """Sum of the weights times ``multiplier``.

    On the simplex this is constant, so every candidate ties and the
    ``greater_or_equal`` policy degenerates into a random walk.
    """

    multiplier: float = 100.0

    def __call__(self, weights: WeightVector) -> float:
        return math.fsum(weights) * self.multiplier


@dataclass(frozen=True, slots=True)
class TargetDistanceReward:
    """Negative squared distance to a target split (higher is closer)."""

    target: tuple[float, ...]

    def __call__(self, weights: WeightVector) -> float:
        if len(weights) != len(self.target):
            raise ValueError("target and weights must have the same length")
        return -math.fsum((w - t) ** 2 for w, t in zip(weights, self.target, strict=True))


def accepts(policy: AcceptancePolicy, candidate_reward: float, current_reward: float) -> bool:
    if policy == "greater_or_equal":
        return candidate_reward >= current_reward
    if policy == "strictly_greater":
        return candidate_reward > current_reward
    raise ValueError(f"unknown acceptance policy: {policy!r}")


def target_reward(target: Sequence[float]) -> TargetDistanceReward:
    return TargetDistanceReward(target=tuple(float(value) for value in target))


__all__ = [
    "AcceptancePolicy",
    "RewardFunction",
    "ScaledSumReward",
    "TargetDistanceReward",
    "accepts",
    "target_reward",
]
