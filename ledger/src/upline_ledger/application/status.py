"""Simple status snapshot provider for the ledger service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from threading import Lock
from typing import TypedDict

from upline_ledger.domain.ledger import DistributionRecord


@dataclass
class InMemoryStatus:
    last_distribution_sequence: int | None = None
    last_distribution_at: datetime | None = None
    last_optimizer_step_at: datetime | None = None
    last_optimizer_reward: float | None = None
    optimizer_worker_running: bool = False
    last_error: str | None = None


class StatusSnapshot(TypedDict):
    status: str
    last_distribution_sequence: int | None
    last_distribution_at: str | None
    last_optimizer_step_at: str | None
    last_optimizer_reward: float | None
    optimizer_worker_running: bool
    last_error: str | None


@dataclass(slots=True)
class StatusProvider:
    """Tracks lightweight runtime status for HTTP inspection."""

    state: InMemoryStatus = field(default_factory=InMemoryStatus)
    _lock: Lock = field(default_factory=Lock, repr=False)

    def record_distribution(self, record: DistributionRecord) -> None:
        # Callers report after the ledger locks are released, so reports can arrive out of order.
        with self._lock:
            current = self.state.last_distribution_sequence
            if current is not None and record.sequence <= current:
                return
            self.state.last_distribution_sequence = record.sequence
            self.state.last_distribution_at = record.recorded_at

    def record_optimizer_step(self, reward: float) -> None:
        with self._lock:
            self.state.last_optimizer_step_at = datetime.now(UTC)
            self.state.last_optimizer_reward = reward
            self.state.last_error = None

    def set_worker_running(self, running: bool) -> None:
        with self._lock:
            self.state.optimizer_worker_running = running

    def record_error(self, message: str) -> None:
        with self._lock:
            self.state.last_error = message

    def snapshot(self) -> StatusSnapshot:
        with self._lock:
            state = self.state
            return {
                "status": "error" if state.last_error else "ok",
                "last_distribution_sequence": state.last_distribution_sequence,
                "last_distribution_at": self._iso(state.last_distribution_at),
                "last_optimizer_step_at": self._iso(state.last_optimizer_step_at),
                "last_optimizer_reward": state.last_optimizer_reward,
                "optimizer_worker_running": state.optimizer_worker_running,
                "last_error": state.last_error,
            }

    @staticmethod
    def _iso(value: datetime | None) -> str | None:
        return value.isoformat() if value else None


__all__ = ["InMemoryStatus", "StatusProvider", "StatusSnapshot"]
