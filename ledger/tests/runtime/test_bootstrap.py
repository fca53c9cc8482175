from __future__ import annotations

import pytest

from upline_ledger.domain.reward import ScaledSumReward, TargetDistanceReward
from upline_ledger.runtime.bootstrap import build_runtime, close_runtime_resources
from upline_ledger.runtime.settings import Settings


def test_build_runtime_wires_shared_components() -> None:
    runtime = build_runtime(Settings())

    ledger_deps = runtime.ledger_route_deps_provider()
    optimizer_deps = runtime.optimizer_route_deps_provider()
    payout_deps = runtime.payout_route_deps_provider()

    assert ledger_deps.ledger is runtime.ledger
    assert optimizer_deps.optimizer is runtime.optimizer
    assert payout_deps.gateway is runtime.payout_gateway
    assert runtime.status_deps_provider() is runtime.status_provider
    assert runtime.optimizer_worker is None
    assert isinstance(runtime.optimizer._reward_fn, ScaledSumReward)


def test_worker_is_built_when_enabled(monkeypatch) -> None:
    monkeypatch.setenv("OPTIMIZER_WORKER_ENABLED", "true")
    monkeypatch.setenv("OPTIMIZER_INTERVAL_SECONDS", "5")

    runtime = build_runtime(Settings())

    assert runtime.optimizer_worker is not None
    assert runtime.optimizer_worker.poll_interval == 5.0
    close_runtime_resources(runtime)


def test_target_reward_requires_target(monkeypatch) -> None:
    monkeypatch.setenv("OPTIMIZER_REWARD", "target_distance")

    with pytest.raises(RuntimeError, match="OPTIMIZER_REWARD_TARGET"):
        build_runtime(Settings())


def test_target_reward_is_built_from_settings(monkeypatch) -> None:
    monkeypatch.setenv("OPTIMIZER_REWARD", "target_distance")
    monkeypatch.setenv("OPTIMIZER_REWARD_TARGET", "0.2,0.2,0.2,0.2,0.1,0.1")

    runtime = build_runtime(Settings())

    assert isinstance(runtime.optimizer._reward_fn, TargetDistanceReward)


def test_weight_count_must_match_upline_depth(monkeypatch) -> None:
    monkeypatch.setenv("LEDGER_UPLINE_DEPTH", "2")

    with pytest.raises(RuntimeError, match="needs 4"):
        build_runtime(Settings())


def test_close_runtime_reports_pending_payouts(caplog) -> None:
    runtime = build_runtime(Settings())
    runtime.ledger.distribute(10, ["a"], [1.0])
    runtime.withdrawal_service.withdraw("a")

    close_runtime_resources(runtime)

    assert any(record.msg == "shutting down with unacknowledged payouts" for record in caplog.records)


def test_close_runtime_is_quiet_once_payouts_are_settled(caplog) -> None:
    runtime = build_runtime(Settings())
    runtime.ledger.distribute(10, ["a"], [1.0])
    result = runtime.withdrawal_service.withdraw("a")
    runtime.payout_gateway.acknowledge(result.transfer_ref)

    close_runtime_resources(runtime)

    assert not any(record.msg == "shutting down with unacknowledged payouts" for record in caplog.records)
