from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True)
class StructuredFailure:
    """Failure raised by the engine's own error type; positions are 1-based."""

    message: str
    line: int | None = None
    column: int | None = None


@dataclass(frozen=True)
class UnstructuredFailure:
    message: str = ""


FailureKind: TypeAlias = StructuredFailure | UnstructuredFailure


@dataclass(frozen=True)
class Success:
    pass


@dataclass(frozen=True)
class Failure:
    kind: FailureKind


ValidationOutcome: TypeAlias = Success | Failure
