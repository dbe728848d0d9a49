"""
Result models for a batch: per-slot Outcome plus a pydantic summary for reporting.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field, model_validator

from .errors import WorkFailed

V = TypeVar("V")


class FailurePolicy(Enum):
    """How the join phase reacts to a failed task."""
    FAIL_FAST = "fail_fast"
    COLLECT_ALL = "collect_all"


@dataclass
class Outcome(Generic[V]):
    """Value-or-error produced by exactly one task of a batch."""
    index: int
    value: Optional[V] = None
    error: Optional[BaseException] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> V:
        """Return the value, or raise WorkFailed chained from the task's error."""
        if self.error is not None:
            raise WorkFailed(self.index, self.error) from self.error
        return self.value  # type: ignore[return-value]

    @classmethod
    def success(cls, index: int, value: V, elapsed: float = 0.0) -> "Outcome[V]":
        return cls(index=index, value=value, elapsed=elapsed)

    @classmethod
    def failure(cls, index: int, error: BaseException, elapsed: float = 0.0) -> "Outcome[V]":
        return cls(index=index, error=error, elapsed=elapsed)


def _jsonable(value: Any) -> Any:
    """Keep JSON-serialisable values as they are, otherwise store their repr."""
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return repr(value)
    return value


class SlotError(BaseModel):
    index: int
    type: str
    message: str


class BatchSummary(BaseModel):
    total: int = Field(ge=0)
    succeeded: int = Field(ge=0)
    failed: int = Field(ge=0)
    elapsed: float = Field(ge=0.0)
    policy: FailurePolicy = FailurePolicy.COLLECT_ALL
    values: List[Any] = Field(default_factory=list)
    errors: List[SlotError] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_counts(self) -> "BatchSummary":
        if self.succeeded + self.failed != self.total:
            raise ValueError("succeeded + failed must equal total")
        if len(self.errors) != self.failed:
            raise ValueError("one error entry is required per failed slot")
        return self

    @classmethod
    def from_outcomes(
        cls,
        outcomes: Sequence[Outcome],
        elapsed: float,
        policy: FailurePolicy = FailurePolicy.COLLECT_ALL,
    ) -> "BatchSummary":
        errors = [
            SlotError(index=o.index, type=type(o.error).__name__, message=str(o.error))
            for o in outcomes if not o.ok
        ]
        return cls(
            total=len(outcomes),
            succeeded=len(outcomes) - len(errors),
            failed=len(errors),
            elapsed=elapsed,
            policy=policy,
            values=[_jsonable(o.value) if o.ok else None for o in outcomes],
            errors=errors,
        )

    def as_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
