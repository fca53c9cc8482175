"""Background worker that advances the allocation optimizer on a fixed cadence."""

from __future__ import annotations

from upline_commons.runtime.base_worker import BaseWorker
from upline_ledger.application.services.allocation_optimizer import AllocationOptimizer
from upline_ledger.application.status import StatusProvider

DEFAULT_POLL_INTERVAL = 60.0


class OptimizerWorker(BaseWorker):
    """Runs one optimizer step per tick and mirrors the outcome into status."""

    worker_name = "ledger-optimizer-worker"
    logger_name = "upline_ledger.optimizer_worker"
    default_poll_interval = DEFAULT_POLL_INTERVAL

    def __init__(
        self,
        *,
        optimizer: AllocationOptimizer,
        status_provider: StatusProvider | None = None,
        poll_interval_seconds: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        super().__init__(poll_interval=poll_interval_seconds)
        self._optimizer = optimizer
        self._status = status_provider

    def start(self) -> None:
        super().start()
        if self._status is not None:
            self._status.set_worker_running(True)

    def stop(self, timeout: float = 5.0) -> None:
        super().stop(timeout=timeout)
        if self._status is not None:
            self._status.set_worker_running(self.running)

    def _tick(self) -> None:
        result = self._optimizer.step()
        if result.accepted:
            self._logger.info(
                "optimizer candidate accepted",
                extra={"data": {"episode": result.episode, "reward": result.reward}},
            )
        if self._status is not None:
            self._status.record_optimizer_step(result.reward)

    def _on_error(self) -> None:
        if self._status is not None:
            # traceback already logged by the base loop
            self._status.record_error("optimizer step failed (see logs)")


def create_optimizer_worker(
    *,
    optimizer: AllocationOptimizer,
    status_provider: StatusProvider | None = None,
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL,
) -> OptimizerWorker:
    return OptimizerWorker(
        optimizer=optimizer,
        status_provider=status_provider,
        poll_interval_seconds=poll_interval_seconds,
    )


__all__ = ["DEFAULT_POLL_INTERVAL", "OptimizerWorker", "create_optimizer_worker"]
