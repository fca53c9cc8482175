"""Runtime wiring for the ledger service."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from upline_ledger.application.distribute_commission import DistributionService
from upline_ledger.application.services.allocation_optimizer import AllocationOptimizer
from upline_ledger.application.services.upline import UplineResolver
from upline_ledger.application.status import StatusProvider
from upline_ledger.application.withdraw_commission import WithdrawalService
from upline_ledger.domain.reward import RewardFunction, ScaledSumReward, target_reward
from upline_ledger.infrastructure.http.routes import LedgerRouteDeps, OptimizerRouteDeps, PayoutRouteDeps
from upline_ledger.infrastructure.payout.logging_gateway import LoggingPayoutGateway
from upline_ledger.infrastructure.state.commission_ledger import InMemoryCommissionLedger
from upline_ledger.infrastructure.state.journal import InMemoryLedgerJournal
from upline_ledger.infrastructure.state.upline_registry import InMemoryUplineRegistry
from upline_ledger.runtime.optimizer_worker import OptimizerWorker, create_optimizer_worker
from upline_ledger.runtime.settings import OptimizerSettings, Settings

logger = logging.getLogger("upline_ledger.runtime")


@dataclass(frozen=True, slots=True)
class RuntimeContext:
    """Aggregated runtime components for the ledger service."""

    settings: Settings
    journal: InMemoryLedgerJournal
    ledger: InMemoryCommissionLedger
    upline_registry: InMemoryUplineRegistry
    resolver: UplineResolver
    optimizer: AllocationOptimizer
    payout_gateway: LoggingPayoutGateway
    distribution_service: DistributionService
    withdrawal_service: WithdrawalService
    status_provider: StatusProvider
    optimizer_worker: OptimizerWorker | None
    ledger_route_deps_provider: Callable[[], LedgerRouteDeps]
    optimizer_route_deps_provider: Callable[[], OptimizerRouteDeps]
    payout_route_deps_provider: Callable[[], PayoutRouteDeps]
    status_deps_provider: Callable[[], StatusProvider]


def build_runtime(settings: Settings | None = None) -> RuntimeContext:
    """Construct every in-process component from settings."""

    resolved = settings or Settings.load()
    ledger_settings = resolved.ledger
    logger.info(
        "building ledger runtime",
        extra={
            "data": {
                "reserve_recipient": ledger_settings.reserve_recipient,
                "upline_depth": ledger_settings.upline_depth,
                "optimizer_worker_enabled": resolved.optimizer.worker_enabled,
            }
        },
    )

    journal = InMemoryLedgerJournal()
    ledger = InMemoryCommissionLedger(
        journal=journal,
        reserve_recipient=ledger_settings.reserve_recipient,
        tolerance=ledger_settings.weight_tolerance,
        lock_timeout_seconds=ledger_settings.lock_timeout_seconds,
    )
    registry = InMemoryUplineRegistry()
    resolver = UplineResolver(
        registry=registry,
        reserve_recipient=ledger_settings.reserve_recipient,
        depth=ledger_settings.upline_depth,
    )
    optimizer = _build_optimizer(resolved.optimizer, tolerance=ledger_settings.weight_tolerance)
    if len(optimizer.weights) != resolver.slot_count:
        raise RuntimeError(
            f"optimizer has {len(optimizer.weights)} weights but the upline split needs {resolver.slot_count}"
        )

    status_provider = StatusProvider()
    gateway = LoggingPayoutGateway()
    distribution_service = DistributionService(
        ledger=ledger,
        optimizer=optimizer,
        resolver=resolver,
        status=status_provider,
    )
    withdrawal_service = WithdrawalService(ledger=ledger, gateway=gateway)

    worker = None
    if resolved.optimizer.worker_enabled:
        worker = create_optimizer_worker(
            optimizer=optimizer,
            status_provider=status_provider,
            poll_interval_seconds=resolved.optimizer.interval_seconds,
        )

    ledger_deps = LedgerRouteDeps(
        ledger=ledger,
        distribution=distribution_service,
        withdrawal=withdrawal_service,
        upline_registry=registry,
        upline_depth=ledger_settings.upline_depth,
    )
    optimizer_deps = OptimizerRouteDeps(
        optimizer=optimizer,
        status_provider=status_provider,
        max_episodes_per_request=resolved.optimizer.max_episodes_per_request,
    )
    payout_deps = PayoutRouteDeps(gateway=gateway)

    return RuntimeContext(
        settings=resolved,
        journal=journal,
        ledger=ledger,
        upline_registry=registry,
        resolver=resolver,
        optimizer=optimizer,
        payout_gateway=gateway,
        distribution_service=distribution_service,
        withdrawal_service=withdrawal_service,
        status_provider=status_provider,
        optimizer_worker=worker,
        ledger_route_deps_provider=lambda: ledger_deps,
        optimizer_route_deps_provider=lambda: optimizer_deps,
        payout_route_deps_provider=lambda: payout_deps,
        status_deps_provider=lambda: status_provider,
    )


def close_runtime_resources(runtime: RuntimeContext, *, timeout: float = 5.0) -> None:
    """Stop the background worker and report any undelivered payouts."""

    if runtime.optimizer_worker is not None:
        runtime.optimizer_worker.stop(timeout=timeout)
    pending = runtime.payout_gateway.pending()
    if pending:
        logger.warning(
            "shutting down with unacknowledged payouts",
            extra={"data": {"count": len(pending), "transfer_refs": sorted(pending)}},
        )
    mismatches = runtime.ledger.verify()
    if mismatches:
        logger.error("ledger inconsistent at shutdown", extra={"data": {"mismatches": mismatches}})


def _build_optimizer(settings: OptimizerSettings, *, tolerance: float) -> AllocationOptimizer:
    return AllocationOptimizer(
        initial_weights=settings.initial_weights_value,
        reward_fn=_build_reward(settings),
        delta=settings.delta,
        acceptance=settings.acceptance,
        seed=settings.seed,
        history_size=settings.history_size,
        tolerance=tolerance,
    )


def _build_reward(settings: OptimizerSettings) -> RewardFunction:
    if settings.reward == "target_distance":
        target = settings.reward_target_value
        if target is None:
            raise RuntimeError("OPTIMIZER_REWARD_TARGET is required for the target_distance reward")
        return target_reward(target)
    return ScaledSumReward(multiplier=settings.reward_multiplier)


__all__ = ["RuntimeContext", "build_runtime", "close_runtime_resources"]
