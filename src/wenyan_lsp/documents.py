"""In-memory model of the documents the client has open."""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from functools import cached_property
from typing import Iterable, Sequence

from lsprotocol import types
from pygls.workspace import PositionCodec, TextDocument

from wenyan_lsp.positions import make_codec

LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")
_LINE_WITH_BREAK_RE = re.compile(r"[^\r\n]*(?:\r\n|\r|\n)|[^\r\n]+\Z")


class _LspTextDocument(TextDocument):
    """``TextDocument`` whose lines end only at LSP line terminators."""

    @property
    def lines(self) -> tuple[str, ...]:
        return tuple(_LINE_WITH_BREAK_RE.findall(self.source))


@dataclass(frozen=True)
class DocumentSnapshot:
    uri: str
    language_id: str
    version: int
    text: str

    @cached_property
    def lines(self) -> tuple[str, ...]:
        return tuple(LINE_BREAK_RE.split(self.text))

    def line_text(self, line: int) -> str:
        if 0 <= line < len(self.lines):
            return self.lines[line]
        return ""


def apply_changes(
    snapshot: DocumentSnapshot,
    changes: Sequence[types.TextDocumentContentChangeEvent],
    version: int,
    codec: PositionCodec | None = None,
) -> DocumentSnapshot:
    """Return a new snapshot with ``changes`` applied in order.

    Whole-document changes replace the text; range changes are interpreted in
    the client's position encoding.
    """
    document = _LspTextDocument(
        snapshot.uri,
        source=snapshot.text,
        version=snapshot.version,
        language_id=snapshot.language_id,
        sync_kind=types.TextDocumentSyncKind.Incremental,
        position_codec=codec or make_codec(),
    )
    for change in changes:
        document.apply_change(change)
    return DocumentSnapshot(
        uri=snapshot.uri,
        language_id=snapshot.language_id,
        version=version,
        text=document.source,
    )


class DocumentStore:
    """Current snapshot per open document URI.

    Holds no ordering or validation logic; callers apply lifecycle events in
    the order the client sent them.
    """

    def __init__(self, snapshots: Iterable[DocumentSnapshot] = ()) -> None:
        self._lock = threading.Lock()
        self._snapshots: dict[str, DocumentSnapshot] = {}
        for snapshot in snapshots:
            self.put(snapshot)

    def put(self, snapshot: DocumentSnapshot) -> None:
        with self._lock:
            self._snapshots[snapshot.uri] = snapshot

    def get(self, uri: str) -> DocumentSnapshot | None:
        with self._lock:
            return self._snapshots.get(uri)

    def remove(self, uri: str) -> DocumentSnapshot | None:
        with self._lock:
            return self._snapshots.pop(uri, None)

    def uris(self) -> list[str]:
        with self._lock:
            return list(self._snapshots)

    def clear(self) -> None:
        with self._lock:
            self._snapshots.clear()

    def __contains__(self, uri: object) -> bool:
        with self._lock:
            return uri in self._snapshots

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)
