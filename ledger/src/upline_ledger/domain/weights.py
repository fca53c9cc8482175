"""Weight vectors on the probability simplex."""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from numbers import Real

from upline_ledger.domain.exceptions import InvalidInputError

DEFAULT_TOLERANCE = 1e-9

SLOT_NAMES: tuple[str, ...] = (
    "service_provider",
    "upline_1",
    "upline_2",
    "upline_3",
    "upline_4",
    "reserve",
)

DEFAULT_WEIGHTS: tuple[float, ...] = (0.30, 0.20, 0.15, 0.10, 0.05, 0.20)


@dataclass(frozen=True, slots=True)
class WeightVector:
    """Immutable allocation weights: each in [0, 1], summing to 1 within ``tolerance``."""

    values: tuple[float, ...]
    tolerance: float = DEFAULT_TOLERANCE

    def __post_init__(self) -> None:
        if not self.values:
            raise InvalidInputError("weight vector must not be empty")
        for index, value in enumerate(self.values):
            if isinstance(value, bool) or not isinstance(value, Real):
                raise InvalidInputError(f"weights[{index}] must be a real number")
            if not math.isfinite(value) or value < 0.0 or value > 1.0:
                raise InvalidInputError(f"weights[{index}]={value!r} must lie in [0, 1]")
        if abs(self.total - 1.0) > self.tolerance:
            raise InvalidInputError(
                f"weights must sum to 1 within {self.tolerance}; got {self.total!r}",
            )

    @classmethod
    def of(cls, values: Sequence[float], *, tolerance: float = DEFAULT_TOLERANCE) -> WeightVector:
        if isinstance(values, WeightVector):
            return values
        try:
            converted = tuple(values)
        except TypeError as exc:
            raise InvalidInputError("weights must be a sequence of numbers") from exc
        return cls(values=converted, tolerance=tolerance)

    @property
    def total(self) -> float:
        return math.fsum(self.values)

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[float]:
        return iter(self.values)

    def __getitem__(self, index: int) -> float:
        return self.values[index]

    def as_list(self) -> list[float]:
        return list(self.values)


def project_to_simplex(values: Sequence[float], *, tolerance: float = DEFAULT_TOLERANCE) -> WeightVector:
    """Clamp every element to [0, 1] and renormalise so the total is 1.

    Clamping alone breaks the sum invariant, so the clamped values are divided
    by their new sum. An all-zero clamp yields the uniform vector.
    """

    if not values:
        raise InvalidInputError("cannot project an empty vector")
    clamped = [min(1.0, max(0.0, float(value))) for value in values]
    total = math.fsum(clamped)
    if total <= 0.0:
        uniform = 1.0 / len(clamped)
        return WeightVector(values=tuple(uniform for _ in clamped), tolerance=tolerance)
    return WeightVector(values=tuple(value / total for value in clamped), tolerance=tolerance)


__all__ = [
    "DEFAULT_TOLERANCE",
    "DEFAULT_WEIGHTS",
    "SLOT_NAMES",
    "WeightVector",
    "project_to_simplex",
]
