from __future__ import annotations

import pytest

from upline_ledger.application.distribute_commission import DistributionRequest, DistributionService
from upline_ledger.application.services.allocation_optimizer import AllocationOptimizer
from upline_ledger.application.services.upline import UplineResolver
from upline_ledger.application.status import StatusProvider
from upline_ledger.domain.exceptions import InvalidInputError
from upline_ledger.infrastructure.state.commission_ledger import InMemoryCommissionLedger
from upline_ledger.infrastructure.state.upline_registry import InMemoryUplineRegistry


def _service(
    ledger: InMemoryCommissionLedger,
    optimizer: AllocationOptimizer,
    status: StatusProvider | None = None,
) -> tuple[DistributionService, InMemoryUplineRegistry]:
    registry = InMemoryUplineRegistry()
    resolver = UplineResolver(registry=registry, reserve_recipient=ledger.reserve_recipient)
    service = DistributionService(ledger=ledger, optimizer=optimizer, resolver=resolver, status=status)
    return service, registry


def test_provider_distribution_uses_upline_and_optimizer_weights(
    ledger: InMemoryCommissionLedger,
    optimizer: AllocationOptimizer,
) -> None:
    service, registry = _service(ledger, optimizer)
    registry.register("provider", "u1")
    registry.register("u1", "u2")

    result = service.distribute(DistributionRequest(volume=10_000, provider="provider"))

    assert result.record.weights == optimizer.weights
    assert ledger.balance("provider") == 3000
    assert ledger.balance("u1") == 2000
    assert ledger.balance("u2") == 1500
    # tiers 3 and 4 plus the reserve slot
    assert ledger.balance("reserve") == 1000 + 500 + 2000


def test_explicit_recipients_and_weights_bypass_optimizer(
    ledger: InMemoryCommissionLedger,
    optimizer: AllocationOptimizer,
) -> None:
    service, _ = _service(ledger, optimizer)

    result = service.distribute(DistributionRequest(volume=10, recipients=["a", "b"], weights=[0.55, 0.45]))

    assert result.credited == {"a": 5, "b": 4, "reserve": 1}
    assert result.record.remainder == 1


def test_status_tracks_last_distribution(
    ledger: InMemoryCommissionLedger,
    optimizer: AllocationOptimizer,
) -> None:
    status = StatusProvider()
    service, _ = _service(ledger, optimizer, status)

    result = service.distribute(DistributionRequest(volume=100, provider="p"))

    assert status.snapshot()["last_distribution_sequence"] == result.sequence


@pytest.mark.parametrize(
    "request_",
    [
        DistributionRequest(volume=100),
        DistributionRequest(volume=100, recipients=["a"], provider="p"),
    ],
)
def test_exactly_one_recipient_source_is_required(
    ledger: InMemoryCommissionLedger,
    optimizer: AllocationOptimizer,
    request_: DistributionRequest,
) -> None:
    service, _ = _service(ledger, optimizer)

    with pytest.raises(InvalidInputError):
        service.distribute(request_)

    assert ledger.balances() == {}
