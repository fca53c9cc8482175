"""Hill-climbing optimizer over split weights constrained to the simplex."""

from __future__ import annotations

import logging
import math
import random
from collections import deque
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from threading import Lock
from typing import get_args

from upline_ledger.domain.exceptions import InvalidInputError
from upline_ledger.domain.reward import AcceptancePolicy, RewardFunction, ScaledSumReward, accepts
from upline_ledger.domain.weights import DEFAULT_TOLERANCE, WeightVector, project_to_simplex

logger = logging.getLogger("upline_ledger.optimizer")

DEFAULT_DELTA = 0.01
DEFAULT_HISTORY_SIZE = 256


@dataclass(frozen=True, slots=True)
class StepResult:
    episode: int
    weights: WeightVector
    reward: float
    accepted: bool


def perturb(weights: WeightVector, *, delta: float, rng: random.Random) -> WeightVector:
    """Add uniform noise in [-delta, delta] to every element and project back."""

    if delta == 0.0:
        return weights
    noisy = [value + rng.uniform(-delta, delta) for value in weights]
    return project_to_simplex(noisy, tolerance=weights.tolerance)


def optimizer_step(
    current: WeightVector,
    reward_fn: RewardFunction,
    *,
    current_reward: float | None = None,
    delta: float = DEFAULT_DELTA,
    acceptance: AcceptancePolicy = "greater_or_equal",
    rng: random.Random,
) -> tuple[WeightVector, float, bool]:
    """Propose, score and accept or reject one candidate.

    Returns the resulting weights, their reward and whether the candidate
    was accepted. ``current_reward`` skips re-scoring ``current`` when the
    caller already knows it.
    """

    baseline = float(reward_fn(current)) if current_reward is None else current_reward
    candidate = perturb(current, delta=delta, rng=rng)
    candidate_reward = float(reward_fn(candidate))
    if accepts(acceptance, candidate_reward, baseline):
        return candidate, candidate_reward, True
    return current, baseline, False


class OptimizerRun:
    """Finite, lazy, restartable sequence of optimizer steps.

    Every iteration performs ``episodes`` fresh steps starting from the
    optimizer's state at that moment. Abandoning an iteration between steps
    leaves the optimizer at the last completed step.
    """

    def __init__(self, optimizer: AllocationOptimizer, episodes: int) -> None:
        self._optimizer = optimizer
        self._episodes = episodes

    def __iter__(self) -> Iterator[StepResult]:
        for _ in range(self._episodes):
            yield self._optimizer.step()

    def __len__(self) -> int:
        return self._episodes


class AllocationOptimizer:
    """Owns the current weight vector and a bounded reward history."""

    def __init__(
        self,
        *,
        initial_weights: WeightVector | Sequence[float],
        reward_fn: RewardFunction | None = None,
        delta: float = DEFAULT_DELTA,
        acceptance: AcceptancePolicy = "greater_or_equal",
        seed: int | None = None,
        rng: random.Random | None = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> None:
        if not math.isfinite(delta) or delta < 0.0:
            raise InvalidInputError("delta must be a finite, non-negative number")
        if history_size <= 0:
            raise InvalidInputError("history_size must be positive")
        if acceptance not in get_args(AcceptancePolicy):
            raise InvalidInputError(f"unknown acceptance policy: {acceptance!r}")
        self._weights = WeightVector.of(initial_weights, tolerance=tolerance)
        self._reward_fn: RewardFunction = reward_fn or ScaledSumReward()
        self._reward = float(self._reward_fn(self._weights))
        self._delta = delta
        self._acceptance: AcceptancePolicy = acceptance
        self._rng = rng or random.Random(seed)
        self._history: deque[float] = deque([self._reward], maxlen=history_size)
        self._episode = 0
        self._lock = Lock()

    @property
    def weights(self) -> WeightVector:
        with self._lock:
            return self._weights

    @property
    def reward(self) -> float:
        with self._lock:
            return self._reward

    @property
    def episode(self) -> int:
        with self._lock:
            return self._episode

    @property
    def delta(self) -> float:
        return self._delta

    def history(self) -> tuple[float, ...]:
        with self._lock:
            return tuple(self._history)

    def step(self) -> StepResult:
        with self._lock:
            weights, reward, accepted = optimizer_step(
                self._weights,
                self._reward_fn,
                current_reward=self._reward,
                delta=self._delta,
                acceptance=self._acceptance,
                rng=self._rng,
            )
            self._weights = weights
            self._reward = reward
            self._episode += 1
            self._history.append(reward)
            result = StepResult(episode=self._episode, weights=weights, reward=reward, accepted=accepted)
        logger.debug(
            "optimizer step",
            extra={
                "data": {
                    "episode": result.episode,
                    "reward": result.reward,
                    "accepted": result.accepted,
                    "weights": result.weights.as_list(),
                }
            },
        )
        return result

    def run(self, episodes: int) -> OptimizerRun:
        if isinstance(episodes, bool) or not isinstance(episodes, int) or episodes <= 0:
            raise InvalidInputError("episodes must be a positive integer")
        return OptimizerRun(self, episodes)


__all__ = [
    "AllocationOptimizer",
    "DEFAULT_DELTA",
    "DEFAULT_HISTORY_SIZE",
    "OptimizerRun",
    "StepResult",
    "optimizer_step",
    "perturb",
]
