"""Translate validation outcomes into editor diagnostics."""

from __future__ import annotations

import re

from lsprotocol import types
from pygls.workspace import PositionCodec

from wenyan_lsp.documents import DocumentSnapshot
from wenyan_lsp.invariants import never
from wenyan_lsp.model import (
    Failure,
    StructuredFailure,
    Success,
    UnstructuredFailure,
    ValidationOutcome,
)
from wenyan_lsp.positions import make_codec, span_range

SOURCE = "wenyan-lsp"
FALLBACK_MESSAGE = "未知错误"
SYNTAX_CODE = "syntax"
INTERNAL_CODE = "internal"

_LINE_MARKER_RE = re.compile(r"(?<![A-Za-z])line\s+(\d+)|第\s*(\d+)\s*行", re.IGNORECASE)
_COLUMN_MARKER_RE = re.compile(r"(?<![A-Za-z])(?:column|col)\s+(\d+)|第\s*(\d+)\s*列", re.IGNORECASE)


def _first_marker(pattern: re.Pattern[str], message: str) -> int | None:
    match = pattern.search(message)
    if match is None:
        return None
    return int(next(group for group in match.groups() if group is not None))


def position_from_message(message: str) -> tuple[int | None, int | None]:
    """Best-effort recovery of a 1-based (line, column) from message text.

    Only consulted when the failure carries no position fields. Recognizes
    ``line N`` / ``column N`` and ``第N行`` / ``第N列``; the first marker of
    each kind wins.
    """
    return (
        _first_marker(_LINE_MARKER_RE, message),
        _first_marker(_COLUMN_MARKER_RE, message),
    )


def _structured_diagnostic(
    failure: StructuredFailure,
    snapshot: DocumentSnapshot,
    codec: PositionCodec,
    source: str,
) -> types.Diagnostic:
    line, column = failure.line, failure.column
    if line is None or column is None:
        recovered_line, recovered_column = position_from_message(failure.message)
        line = line if line is not None else recovered_line
        column = column if column is not None else recovered_column
    zero_line = max(0, (line if line is not None else 1) - 1)
    zero_column = max(0, (column if column is not None else 1) - 1)
    return types.Diagnostic(
        range=span_range(snapshot.lines, zero_line, zero_column, 1, codec),
        message=failure.message,
        severity=types.DiagnosticSeverity.Error,
        code=SYNTAX_CODE,
        source=source,
    )


def _unstructured_diagnostic(
    failure: UnstructuredFailure, source: str
) -> types.Diagnostic:
    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=0, character=0),
            end=types.Position(line=0, character=1),
        ),
        message=failure.message or FALLBACK_MESSAGE,
        severity=types.DiagnosticSeverity.Error,
        code=INTERNAL_CODE,
        source=source,
    )


def translate(
    outcome: ValidationOutcome,
    snapshot: DocumentSnapshot,
    *,
    codec: PositionCodec | None = None,
    source: str = SOURCE,
) -> list[types.Diagnostic]:
    if isinstance(outcome, Success):
        return []
    if not isinstance(outcome, Failure):
        never("unknown validation outcome", outcome=type(outcome).__name__)
    kind = outcome.kind
    if isinstance(kind, StructuredFailure):
        return [_structured_diagnostic(kind, snapshot, codec or make_codec(), source)]
    if isinstance(kind, UnstructuredFailure):
        return [_unstructured_diagnostic(kind, source)]
    never("unknown failure kind", kind=type(kind).__name__)
