"""HTTP route definitions for the ledger API."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Depends, FastAPI, HTTPException, Query

from upline_ledger.application.distribute_commission import DistributionRequest, DistributionService
from upline_ledger.application.ports.ledger import CommissionLedgerPort
from upline_ledger.application.ports.upline_registry import UplineRegistryPort
from upline_ledger.application.services.allocation_optimizer import AllocationOptimizer, StepResult
from upline_ledger.application.status import StatusProvider
from upline_ledger.application.withdraw_commission import WithdrawalService
from upline_ledger.domain.exceptions import (
    InvalidInputError,
    NothingToWithdrawError,
    PayoutFailedError,
)
from upline_ledger.infrastructure.http.schemas import (
    AuditMismatchModel,
    AuditResponse,
    BalanceResponse,
    BalancesResponse,
    DistributeRequestDTO,
    DistributionRecordModel,
    DistributionResponse,
    OptimizerRunDTO,
    OptimizerRunResponse,
    OptimizerStateResponse,
    OptimizerStepResponse,
    PayoutModel,
    PendingPayoutsResponse,
    RecordsResponse,
    StatusResponse,
    UplineRegistrationDTO,
    UplineRegistrationResponse,
    WithdrawalResponse,
    WithdrawRequestDTO,
)
from upline_ledger.infrastructure.payout.logging_gateway import LoggingPayoutGateway

logger = logging.getLogger("upline_ledger.http")

DEFAULT_MAX_EPISODES_PER_REQUEST = 1_000


@dataclass(frozen=True)
class LedgerRouteDeps:
    ledger: CommissionLedgerPort
    distribution: DistributionService
    withdrawal: WithdrawalService
    upline_registry: UplineRegistryPort
    upline_depth: int


@dataclass(frozen=True)
class PayoutRouteDeps:
    gateway: LoggingPayoutGateway


@dataclass(frozen=True)
class OptimizerRouteDeps:
    optimizer: AllocationOptimizer
    status_provider: StatusProvider
    max_episodes_per_request: int = DEFAULT_MAX_EPISODES_PER_REQUEST


def add_ledger_routes(app: FastAPI, dependency_provider: Callable[[], LedgerRouteDeps]) -> None:
    def get_dependencies() -> LedgerRouteDeps:
        return dependency_provider()

    @app.post(
        "/v1/ledger/distributions",
        response_model=DistributionResponse,
        description="Split a transaction volume across recipients and credit their balances.",
    )
    def distribute(
        payload: DistributeRequestDTO,
        deps: LedgerRouteDeps = Depends(get_dependencies),  # noqa: B008
    ) -> DistributionResponse:
        request = DistributionRequest(
            volume=payload.volume,
            recipients=payload.recipients,
            provider=payload.provider,
            weights=payload.weights,
        )
        try:
            result = deps.distribution.distribute(request)
        except InvalidInputError as exc:
            _log_rejected("distribution", exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        record = result.record
        return DistributionResponse(
            sequence=record.sequence,
            credited=dict(result.credited),
            remainder=record.remainder,
            remainder_recipient=record.remainder_recipient,
            weights=record.weights.as_list(),
            records=[DistributionRecordModel.from_record(record)],
        )

    @app.post(
        "/v1/ledger/withdrawals",
        response_model=WithdrawalResponse,
        description="Zero a recipient's balance and hand the amount to the payout gateway.",
    )
    def withdraw(
        payload: WithdrawRequestDTO,
        deps: LedgerRouteDeps = Depends(get_dependencies),  # noqa: B008
    ) -> WithdrawalResponse:
        try:
            result = deps.withdrawal.withdraw(payload.recipient)
        except InvalidInputError as exc:
            _log_rejected("withdrawal", exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except NothingToWithdrawError as exc:
            raise HTTPException(status_code=409, detail="nothing to withdraw") from exc
        except PayoutFailedError as exc:
            raise HTTPException(
                status_code=502,
                detail=f"payout transfer failed; obligation {exc.obligation.sequence} retained",
            ) from exc
        obligation = result.obligation
        return WithdrawalResponse(
            recipient=obligation.recipient,
            amount=obligation.amount,
            sequence=obligation.sequence,
            transfer_ref=result.transfer_ref,
        )

    @app.get(
        "/v1/ledger/balances",
        response_model=BalancesResponse,
        description="Return every ledger entry.",
    )
    def balances(deps: LedgerRouteDeps = Depends(get_dependencies)) -> BalancesResponse:  # noqa: B008
        return BalancesResponse(balances=deps.ledger.balances())

    @app.get(
        "/v1/ledger/balances/{recipient}",
        response_model=BalanceResponse,
        description="Return the accrued, unwithdrawn balance of one recipient.",
    )
    def balance(
        recipient: str,
        deps: LedgerRouteDeps = Depends(get_dependencies),  # noqa: B008
    ) -> BalanceResponse:
        return BalanceResponse(recipient=recipient, balance=deps.ledger.balance(recipient))

    @app.get(
        "/v1/ledger/records",
        response_model=RecordsResponse,
        description="Return the most recent distribution records, newest last.",
    )
    def records(
        limit: int = Query(default=50, ge=1, le=1000),
        deps: LedgerRouteDeps = Depends(get_dependencies),  # noqa: B008
    ) -> RecordsResponse:
        recent = deps.ledger.distribution_records()[-limit:]
        return RecordsResponse(records=[DistributionRecordModel.from_record(record) for record in recent])

    @app.get(
        "/v1/ledger/audit",
        response_model=AuditResponse,
        description="Compare every balance with its reconstruction from the journal.",
    )
    def audit(deps: LedgerRouteDeps = Depends(get_dependencies)) -> AuditResponse:  # noqa: B008
        mismatches = deps.ledger.verify()
        if mismatches:
            logger.error("ledger audit found mismatches", extra={"data": {"mismatches": mismatches}})
        return AuditResponse(
            consistent=not mismatches,
            mismatches=[
                AuditMismatchModel(recipient=recipient, balance=balance, reconstructed=reconstructed)
                for recipient, (balance, reconstructed) in sorted(mismatches.items())
            ],
        )

    @app.post(
        "/v1/uplines",
        response_model=UplineRegistrationResponse,
        description="Record that a referrer brought in a member.",
    )
    def register_upline(
        payload: UplineRegistrationDTO,
        deps: LedgerRouteDeps = Depends(get_dependencies),  # noqa: B008
    ) -> UplineRegistrationResponse:
        try:
            deps.upline_registry.register(payload.member, payload.referrer)
        except InvalidInputError as exc:
            _log_rejected("upline registration", exc)
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return UplineRegistrationResponse(
            member=payload.member,
            referrer=payload.referrer,
            upline=list(deps.upline_registry.upline(payload.member, deps.upline_depth)),
        )


def add_optimizer_routes(app: FastAPI, dependency_provider: Callable[[], OptimizerRouteDeps]) -> None:
    def get_dependencies() -> OptimizerRouteDeps:
        return dependency_provider()

    @app.post(
        "/v1/optimizer/step",
        response_model=OptimizerStepResponse,
        description="Run one optimizer step and return the resulting weights.",
    )
    def step(deps: OptimizerRouteDeps = Depends(get_dependencies)) -> OptimizerStepResponse:  # noqa: B008
        result = deps.optimizer.step()
        deps.status_provider.record_optimizer_step(result.reward)
        return _serialize_step(result)

    @app.post(
        "/v1/optimizer/run",
        response_model=OptimizerRunResponse,
        description="Run several optimizer steps and return each of them.",
    )
    def run(
        payload: OptimizerRunDTO,
        deps: OptimizerRouteDeps = Depends(get_dependencies),  # noqa: B008
    ) -> OptimizerRunResponse:
        if payload.episodes > deps.max_episodes_per_request:
            raise HTTPException(
                status_code=400,
                detail=f"episodes must not exceed {deps.max_episodes_per_request}",
            )
        try:
            steps = [_serialize_step(result) for result in deps.optimizer.run(payload.episodes)]
        except InvalidInputError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        deps.status_provider.record_optimizer_step(steps[-1].reward)
        return OptimizerRunResponse(steps=steps)

    @app.get(
        "/v1/optimizer",
        response_model=OptimizerStateResponse,
        description="Return the optimizer's current weights and recent rewards.",
    )
    def state(deps: OptimizerRouteDeps = Depends(get_dependencies)) -> OptimizerStateResponse:  # noqa: B008
        optimizer = deps.optimizer
        return OptimizerStateResponse(
            weights=optimizer.weights.as_list(),
            reward=optimizer.reward,
            episode=optimizer.episode,
            delta=optimizer.delta,
            history=list(optimizer.history()),
        )


def add_payout_routes(app: FastAPI, dependency_provider: Callable[[], PayoutRouteDeps]) -> None:
    def get_dependencies() -> PayoutRouteDeps:
        return dependency_provider()

    @app.get(
        "/v1/payouts/pending",
        response_model=PendingPayoutsResponse,
        description="Return queued payouts the transfer agent has not settled yet.",
    )
    def pending(deps: PayoutRouteDeps = Depends(get_dependencies)) -> PendingPayoutsResponse:  # noqa: B008
        return PendingPayoutsResponse(
            payouts=[
                PayoutModel(
                    transfer_ref=transfer_ref,
                    recipient=obligation.recipient,
                    amount=obligation.amount,
                    sequence=obligation.sequence,
                )
                for transfer_ref, obligation in sorted(
                    deps.gateway.pending().items(), key=lambda item: item[1].sequence
                )
            ]
        )

    @app.post(
        "/v1/payouts/{transfer_ref}/ack",
        response_model=PayoutModel,
        description="Mark a queued payout as settled by the transfer agent.",
    )
    def acknowledge(
        transfer_ref: str,
        deps: PayoutRouteDeps = Depends(get_dependencies),  # noqa: B008
    ) -> PayoutModel:
        obligation = deps.gateway.acknowledge(transfer_ref)
        if obligation is None:
            raise HTTPException(status_code=404, detail="unknown or already settled transfer")
        return PayoutModel(
            transfer_ref=transfer_ref,
            recipient=obligation.recipient,
            amount=obligation.amount,
            sequence=obligation.sequence,
        )


def add_status_routes(app: FastAPI, status_provider: Callable[[], StatusProvider]) -> None:
    @app.get(
        "/status",
        response_model=StatusResponse,
        description="Return a runtime status snapshot for health checks.",
    )
    def status() -> StatusResponse:
        return StatusResponse(**status_provider().snapshot())


# --- Helpers ---


def _serialize_step(result: StepResult) -> OptimizerStepResponse:
    return OptimizerStepResponse(
        weights=result.weights.as_list(),
        reward=result.reward,
        accepted=result.accepted,
        episode=result.episode,
    )


def _log_rejected(operation: str, exc: Exception) -> None:
    logger.warning(
        "%s rejected",
        operation,
        extra={"data": {"error": str(exc), "error_type": type(exc).__name__}},
    )


__all__ = [
    "DEFAULT_MAX_EPISODES_PER_REQUEST",
    "LedgerRouteDeps",
    "OptimizerRouteDeps",
    "PayoutRouteDeps",
    "add_ledger_routes",
    "add_optimizer_routes",
    "add_payout_routes",
    "add_status_routes",
]
