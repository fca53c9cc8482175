from __future__ import annotations

import pytest

from upline_ledger.domain.reward import ScaledSumReward, accepts, target_reward
from upline_ledger.domain.weights import WeightVector


def test_scaled_sum_reward_is_constant_on_the_simplex() -> None:
    reward = ScaledSumReward()

    assert reward(WeightVector.of([0.3, 0.7])) == pytest.approx(100.0)
    assert reward(WeightVector.of([1.0, 0.0])) == pytest.approx(100.0)


def test_target_distance_reward_prefers_closer_vectors() -> None:
    reward = target_reward([0.5, 0.5])

    assert reward(WeightVector.of([0.5, 0.5])) == 0.0
    assert reward(WeightVector.of([0.6, 0.4])) > reward(WeightVector.of([0.9, 0.1]))


def test_target_distance_reward_rejects_length_mismatch() -> None:
    with pytest.raises(ValueError):
        target_reward([1.0])(WeightVector.of([0.5, 0.5]))


def test_acceptance_policies_differ_on_ties() -> None:
    assert accepts("greater_or_equal", 1.0, 1.0)
    assert not accepts("strictly_greater", 1.0, 1.0)
    assert accepts("strictly_greater", 1.5, 1.0)


def test_unknown_acceptance_policy_is_rejected() -> None:
    with pytest.raises(ValueError):
        accepts("sometimes", 1.0, 0.0)  # type: ignore[arg-type]
