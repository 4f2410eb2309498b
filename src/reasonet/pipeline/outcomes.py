"""
Stage outcomes for the review pipeline.

Each pipeline stage returns ``Ok(value)`` or ``Err(kind, error)``. The kind
classifies the failure:

- REJECTED: signature/authentication failure at ingress, nothing processed
- FATAL: the analysis cannot complete (status FAILED, error recorded)
- DEGRADED: a best-effort side effect failed, analysis still COMPLETED
- DROPPED: event intentionally not processed, acknowledged as success

The orchestrator decides the Analysis status from these values rather than
from which ``except`` clause fired.
"""

import enum
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class FailureKind(str, enum.Enum):
    """Classification of a stage failure."""

    REJECTED = "rejected"
    FATAL = "fatal"
    DEGRADED = "degraded"
    DROPPED = "dropped"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful stage result."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed stage result."""

    kind: FailureKind
    error: Optional[BaseException] = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        if self.reason:
            return self.reason
        if self.error is not None:
            return str(self.error) or type(self.error).__name__
        return self.kind.value


StageOutcome = Union[Ok[Any], Err]


def fatal(error: BaseException) -> Err:
    return Err(FailureKind.FATAL, error=error)


def degraded(error: BaseException) -> Err:
    return Err(FailureKind.DEGRADED, error=error)


def dropped(reason: str) -> Err:
    return Err(FailureKind.DROPPED, reason=reason)
