"""Per-key delivery outcomes, used for diagnostics and tests only."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

FailureReason = Literal["exhausted", "cancelled", "connection", "unavailable"]


@dataclass(frozen=True)
class Delivered:
    key: str
    attempts: int

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failed:
    key: str
    attempts: int
    reason: FailureReason
    cause: BaseException | None = field(default=None, compare=False)

    @property
    def ok(self) -> bool:
        return False


DeliveryResult = Union[Delivered, Failed]


@dataclass
class BulkResult:
    """Outcome of one ``send_bulk`` call."""

    delivered: int = 0
    failed: int = 0
    abandoned: int = 0
    results: list[DeliveryResult] = field(default_factory=list)


__all__ = ["BulkResult", "Delivered", "DeliveryResult", "Failed", "FailureReason"]
