"""Conversions between code-point columns and client position units.

Engines report columns as code-point offsets; the client measures them in
the negotiated position encoding (UTF-16 by default). pygls' ``PositionCodec``
does the unit arithmetic.
"""

from __future__ import annotations

from typing import Sequence

from lsprotocol import types
from pygls.workspace import PositionCodec, ServerTextPosition


def make_codec(encoding: types.PositionEncodingKind | str | None = None) -> PositionCodec:
    return PositionCodec(encoding=encoding or types.PositionEncodingKind.Utf16)


def client_character(
    lines: Sequence[str], line: int, column: int, codec: PositionCodec
) -> int:
    """Client units for a code-point ``column`` on ``line``.

    Columns past the end of the line, or lines outside the document, are
    passed through unchanged.
    """
    if not 0 <= line < len(lines):
        return column
    text = lines[line]
    head = text[:column]
    return codec.client_num_units(head) + (column - len(head))


def server_position(
    lines: Sequence[str], position: types.Position, codec: PositionCodec
) -> ServerTextPosition:
    """Code-point position for a client ``position``."""
    if not lines:
        return ServerTextPosition(line=0, character=0)
    return codec.position_from_client_units(list(lines), position)


def span_range(
    lines: Sequence[str], line: int, column: int, width: int, codec: PositionCodec
) -> types.Range:
    start = client_character(lines, line, column, codec)
    end = client_character(lines, line, column + width, codec)
    return types.Range(
        start=types.Position(line=line, character=start),
        end=types.Position(line=line, character=max(end, start + 1)),
    )
