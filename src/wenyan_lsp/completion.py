from __future__ import annotations

import logging
from dataclasses import dataclass
from importlib import resources
from pathlib import Path

from lsprotocol import types
from pydantic import ValidationError
from pygls.workspace import PositionCodec

from wenyan_lsp.documents import DocumentStore
from wenyan_lsp.exceptions import ConfigError
from wenyan_lsp.positions import make_codec, server_position
from wenyan_lsp.schema import CompletionTableDTO

logger = logging.getLogger(__name__)

_ITEM_KINDS = {
    "keyword": types.CompletionItemKind.Keyword,
    "operator": types.CompletionItemKind.Operator,
}


@dataclass(frozen=True)
class CompletionCandidate:
    label: str
    kind: str
    detail: str = ""
    documentation: str = ""

    def to_item(self) -> types.CompletionItem:
        return types.CompletionItem(
            label=self.label,
            kind=_ITEM_KINDS.get(self.kind, types.CompletionItemKind.Text),
            detail=self.detail or None,
            documentation=self.documentation or None,
        )


def load_completion_table(path: Path | None = None) -> tuple[CompletionCandidate, ...]:
    """Load the static keyword/operator table.

    Without ``path`` the table shipped in ``wenyan_lsp/data`` is used.
    """
    try:
        if path is None:
            raw = (
                resources.files("wenyan_lsp")
                .joinpath("data", "completions.json")
                .read_text(encoding="utf-8")
            )
        else:
            raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read completion table: {exc}") from exc
    try:
        table = CompletionTableDTO.model_validate_json(raw)
    except ValidationError as exc:
        raise ConfigError(f"invalid completion table: {exc}") from exc
    return tuple(
        CompletionCandidate(
            label=entry.label,
            kind=entry.kind,
            detail=entry.detail,
            documentation=entry.documentation,
        )
        for entry in table.candidates
    )


class CompletionEngine:
    def __init__(
        self,
        store: DocumentStore,
        table: tuple[CompletionCandidate, ...],
        codec: PositionCodec | None = None,
    ) -> None:
        self._store = store
        self.table = table
        self.codec = codec or make_codec()

    def lookup(self, label: str) -> CompletionCandidate | None:
        for candidate in self.table:
            if candidate.label == label:
                return candidate
        return None

    def prefix_at(self, uri: str, position: types.Position) -> str | None:
        snapshot = self._store.get(uri)
        if snapshot is None:
            return None
        lines = snapshot.lines
        if not 0 <= position.line < len(lines):
            return ""
        column = server_position(lines, position, self.codec).character
        return lines[position.line][:column].strip()

    def complete(self, uri: str, position: types.Position) -> list[CompletionCandidate]:
        prefix = self.prefix_at(uri, position)
        if prefix is None:
            logger.debug("completion requested for unknown document %s", uri)
            return []
        if not prefix:
            return list(self.table)
        return [candidate for candidate in self.table if candidate.label.startswith(prefix)]

    def resolve(self, item: types.CompletionItem) -> types.CompletionItem:
        return item
