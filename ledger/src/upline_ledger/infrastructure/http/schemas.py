"""Request and response shapes for the ledger HTTP API."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field

from upline_ledger.domain.ledger import DistributionRecord

# --- Requests ---


class DistributeRequestDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    volume: int
    recipients: list[str] | None = None
    provider: str | None = None
    weights: list[float] | None = None


class WithdrawRequestDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    recipient: str


class UplineRegistrationDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    member: str
    referrer: str


class OptimizerRunDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    episodes: int = Field(default=1)


# --- Responses ---


@dataclass(frozen=True, slots=True)
class CreditModel:
    recipient: str
    amount: int


@dataclass(frozen=True, slots=True)
class DistributionRecordModel:
    sequence: int
    recorded_at: str
    volume: int
    weights: list[float]
    credits: list[CreditModel]
    remainder: int
    remainder_recipient: str

    @classmethod
    def from_record(cls, record: DistributionRecord) -> DistributionRecordModel:
        return cls(
            sequence=record.sequence,
            recorded_at=record.recorded_at.isoformat(),
            volume=record.volume,
            weights=record.weights.as_list(),
            credits=[CreditModel(recipient=recipient, amount=amount) for recipient, amount in record.credits],
            remainder=record.remainder,
            remainder_recipient=record.remainder_recipient,
        )


@dataclass(frozen=True, slots=True)
class DistributionResponse:
    sequence: int
    credited: dict[str, int]
    remainder: int
    remainder_recipient: str
    weights: list[float]
    records: list[DistributionRecordModel]


@dataclass(frozen=True, slots=True)
class WithdrawalResponse:
    recipient: str
    amount: int
    sequence: int
    transfer_ref: str


@dataclass(frozen=True, slots=True)
class PayoutModel:
    transfer_ref: str
    recipient: str
    amount: int
    sequence: int


@dataclass(frozen=True, slots=True)
class PendingPayoutsResponse:
    payouts: list[PayoutModel]


@dataclass(frozen=True, slots=True)
class BalanceResponse:
    recipient: str
    balance: int


@dataclass(frozen=True, slots=True)
class BalancesResponse:
    balances: dict[str, int]


@dataclass(frozen=True, slots=True)
class RecordsResponse:
    records: list[DistributionRecordModel]


@dataclass(frozen=True, slots=True)
class AuditMismatchModel:
    recipient: str
    balance: int
    reconstructed: int


@dataclass(frozen=True, slots=True)
class AuditResponse:
    consistent: bool
    mismatches: list[AuditMismatchModel]


@dataclass(frozen=True, slots=True)
class UplineRegistrationResponse:
    member: str
    referrer: str
    upline: list[str]


@dataclass(frozen=True, slots=True)
class OptimizerStepResponse:
    weights: list[float]
    reward: float
    accepted: bool
    episode: int


@dataclass(frozen=True, slots=True)
class OptimizerRunResponse:
    steps: list[OptimizerStepResponse]


@dataclass(frozen=True, slots=True)
class OptimizerStateResponse:
    weights: list[float]
    reward: float
    episode: int
    delta: float
    history: list[float]


@dataclass(frozen=True, slots=True)
class StatusResponse:
    status: str
    last_distribution_sequence: int | None
    last_distribution_at: str | None
    last_optimizer_step_at: str | None
    last_optimizer_reward: float | None
    optimizer_worker_running: bool
    last_error: str | None


__all__ = [
    "AuditMismatchModel",
    "AuditResponse",
    "BalanceResponse",
    "BalancesResponse",
    "CreditModel",
    "DistributeRequestDTO",
    "DistributionRecordModel",
    "DistributionResponse",
    "OptimizerRunDTO",
    "OptimizerRunResponse",
    "OptimizerStateResponse",
    "OptimizerStepResponse",
    "PayoutModel",
    "PendingPayoutsResponse",
    "RecordsResponse",
    "StatusResponse",
    "UplineRegistrationDTO",
    "UplineRegistrationResponse",
    "WithdrawRequestDTO",
    "WithdrawalResponse",
]
