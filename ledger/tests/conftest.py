from __future__ import annotations

import random

import pytest

from upline_ledger.application.services.allocation_optimizer import AllocationOptimizer
from upline_ledger.domain.weights import DEFAULT_WEIGHTS
from upline_ledger.infrastructure.state.commission_ledger import InMemoryCommissionLedger
from upline_ledger.infrastructure.state.journal import InMemoryLedgerJournal


@pytest.fixture
def anyio_backend() -> str:
    # Force AnyIO-managed tests in ledger suite to use asyncio only
    return "asyncio"


@pytest.fixture
def journal() -> InMemoryLedgerJournal:
    return InMemoryLedgerJournal()


@pytest.fixture
def ledger(journal: InMemoryLedgerJournal) -> InMemoryCommissionLedger:
    return InMemoryCommissionLedger(journal=journal, rng=random.Random(7))


@pytest.fixture
def optimizer() -> AllocationOptimizer:
    return AllocationOptimizer(initial_weights=DEFAULT_WEIGHTS, seed=1234)
