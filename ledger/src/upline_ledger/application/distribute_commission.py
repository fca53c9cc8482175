"""Distribution use case: resolve recipients and weights, then credit the ledger."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from upline_commons.observability.tracing import get_tracer
from upline_ledger.application.ports.ledger import CommissionLedgerPort
from upline_ledger.application.services.allocation_optimizer import AllocationOptimizer
from upline_ledger.application.services.upline import UplineResolver
from upline_ledger.application.status import StatusProvider
from upline_ledger.domain.exceptions import InvalidInputError
from upline_ledger.domain.ledger import DistributionResult, Recipient
from upline_ledger.domain.weights import WeightVector

logger = logging.getLogger("upline_ledger.distribution")
_tracer = get_tracer(__name__)


@dataclass(frozen=True, slots=True)
class DistributionRequest:
    volume: int
    recipients: Sequence[Recipient] | None = None
    provider: Recipient | None = None
    weights: Sequence[float] | None = None


class DistributionService:
    """Feeds optimizer (or caller-supplied) weights into the ledger.

    The ledger never calls back into the optimizer; this service only reads
    the optimizer's current vector.
    """

    def __init__(
        self,
        *,
        ledger: CommissionLedgerPort,
        optimizer: AllocationOptimizer,
        resolver: UplineResolver,
        status: StatusProvider | None = None,
    ) -> None:
        self._ledger = ledger
        self._optimizer = optimizer
        self._resolver = resolver
        self._status = status

    def distribute(self, request: DistributionRequest) -> DistributionResult:
        recipients = self._resolve_recipients(request)
        weights: WeightVector | Sequence[float] = (
            request.weights if request.weights is not None else self._optimizer.weights
        )
        with _tracer.start_as_current_span("ledger.distribute"):
            result = self._ledger.distribute(request.volume, recipients, weights)
        if self._status is not None:
            self._status.record_distribution(result.record)
        return result

    def _resolve_recipients(self, request: DistributionRequest) -> tuple[Recipient, ...]:
        if (request.recipients is None) == (request.provider is None):
            raise InvalidInputError("exactly one of recipients or provider is required")
        if request.provider is None:
            return tuple(request.recipients or ())
        recipients = self._resolver.recipients_for(request.provider)
        logger.debug(
            "resolved upline recipients",
            extra={"data": {"provider": request.provider, "recipients": recipients}},
        )
        return recipients


__all__ = ["DistributionRequest", "DistributionService"]
