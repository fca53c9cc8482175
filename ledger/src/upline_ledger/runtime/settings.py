"""Configuration helpers for ledger runtime wiring."""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from upline_commons.config.observability import ObservabilitySettings
from upline_ledger.application.services.allocation_optimizer import DEFAULT_DELTA, DEFAULT_HISTORY_SIZE
from upline_ledger.application.services.upline import DEFAULT_UPLINE_DEPTH
from upline_ledger.domain.reward import AcceptancePolicy
from upline_ledger.domain.weights import DEFAULT_TOLERANCE, DEFAULT_WEIGHTS
from upline_ledger.infrastructure.http.routes import DEFAULT_MAX_EPISODES_PER_REQUEST
from upline_ledger.infrastructure.state.commission_ledger import (
    DEFAULT_LOCK_TIMEOUT_SECONDS,
    DEFAULT_RESERVE_RECIPIENT,
)

RewardKind = Literal["scaled_sum", "target_distance"]

_COMPONENT_CONFIG = SettingsConfigDict(
    env_prefix="",
    extra="ignore",
    case_sensitive=False,
    frozen=True,
    env_file=".env",
    env_file_encoding="utf-8",
)


def parse_weight_list(raw: str) -> tuple[float, ...]:
    """Parse ``"0.3,0.2,..."`` into floats; blank items are rejected."""

    parts = [part.strip() for part in raw.split(",")]
    if not parts or any(not part for part in parts):
        raise ValueError("weight list must be comma-separated numbers")
    return tuple(float(part) for part in parts)


class LedgerSettings(BaseSettings):
    """Commission ledger knobs."""

    model_config = _COMPONENT_CONFIG

    reserve_recipient: str = Field(default=DEFAULT_RESERVE_RECIPIENT, alias="LEDGER_RESERVE_RECIPIENT")
    weight_tolerance: float = Field(default=DEFAULT_TOLERANCE, alias="LEDGER_WEIGHT_TOLERANCE", gt=0)
    lock_timeout_seconds: float = Field(
        default=DEFAULT_LOCK_TIMEOUT_SECONDS, alias="LEDGER_LOCK_TIMEOUT_SECONDS", gt=0
    )
    upline_depth: int = Field(default=DEFAULT_UPLINE_DEPTH, alias="LEDGER_UPLINE_DEPTH", ge=0)

    @field_validator("reserve_recipient")
    @classmethod
    def _reserve_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reserve recipient must not be blank")
        return value


class OptimizerSettings(BaseSettings):
    """Allocation optimizer knobs; weight lists are comma-separated."""

    model_config = _COMPONENT_CONFIG

    initial_weights: str = Field(
        default=",".join(f"{value:.2f}" for value in DEFAULT_WEIGHTS),
        alias="OPTIMIZER_INITIAL_WEIGHTS",
    )
    delta: float = Field(default=DEFAULT_DELTA, alias="OPTIMIZER_DELTA", ge=0)
    seed: int | None = Field(default=None, alias="OPTIMIZER_SEED")
    reward: RewardKind = Field(default="scaled_sum", alias="OPTIMIZER_REWARD")
    reward_multiplier: float = Field(default=100.0, alias="OPTIMIZER_REWARD_MULTIPLIER")
    reward_target: str | None = Field(default=None, alias="OPTIMIZER_REWARD_TARGET")
    acceptance: AcceptancePolicy = Field(default="greater_or_equal", alias="OPTIMIZER_ACCEPTANCE")
    history_size: int = Field(default=DEFAULT_HISTORY_SIZE, alias="OPTIMIZER_HISTORY_SIZE", gt=0)
    interval_seconds: float = Field(default=60.0, alias="OPTIMIZER_INTERVAL_SECONDS", gt=0)
    worker_enabled: bool = Field(default=False, alias="OPTIMIZER_WORKER_ENABLED")
    max_episodes_per_request: int = Field(
        default=DEFAULT_MAX_EPISODES_PER_REQUEST, alias="OPTIMIZER_MAX_EPISODES_PER_REQUEST", gt=0
    )

    @field_validator("initial_weights", "reward_target")
    @classmethod
    def _parseable_weights(cls, value: str | None) -> str | None:
        if value is not None:
            parse_weight_list(value)
        return value

    @property
    def initial_weights_value(self) -> tuple[float, ...]:
        return parse_weight_list(self.initial_weights)

    @property
    def reward_target_value(self) -> tuple[float, ...] | None:
        if self.reward_target is None:
            return None
        return parse_weight_list(self.reward_target)


class Settings(BaseSettings):
    """Ledger runtime configuration resolved from the environment."""

    model_config = SettingsConfigDict(
        env_prefix="",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    # --- Server ---
    listen_host: str = Field(default="0.0.0.0", alias="UPLINE_LEDGER_HOST")  # noqa: S104
    port: int = Field(default=8200, alias="UPLINE_LEDGER_PORT")

    # --- Component settings ---
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    optimizer: OptimizerSettings = Field(default_factory=OptimizerSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    # --- Loader ---
    @classmethod
    def load(cls) -> Settings:
        instance = cls()
        logger = logging.getLogger("upline_ledger.settings")
        logger.info("ledger settings loaded: %r", instance)
        return instance


__all__ = ["LedgerSettings", "OptimizerSettings", "RewardKind", "Settings", "parse_weight_list"]
