from __future__ import annotations

from pathlib import Path

import pytest
from lsprotocol import types

from wenyan_lsp.completion import CompletionCandidate, CompletionEngine, load_completion_table
from wenyan_lsp.documents import DocumentSnapshot, DocumentStore
from wenyan_lsp.exceptions import ConfigError

URI = "file:///demo.wy"


def _engine(text: str) -> CompletionEngine:
    store = DocumentStore(
        [DocumentSnapshot(uri=URI, language_id="wenyan", version=1, text=text)]
    )
    return CompletionEngine(store, load_completion_table())


def _labels(candidates: list[CompletionCandidate]) -> list[str]:
    return [candidate.label for candidate in candidates]


def _at(line: int, character: int) -> types.Position:
    return types.Position(line=line, character=character)


def test_shipped_table_order_and_kinds() -> None:
    table = load_completion_table()
    assert len(table) == 23
    assert _labels(list(table[:3])) == ["涵义", "需知", "求"]
    assert _labels(list(table[-2:])) == ["或", "或者"]
    assert {c.kind for c in table[:15]} == {"keyword"}
    assert {c.kind for c in table[15:]} == {"operator"}
    assert table[15].label == "是"


def test_empty_prefix_offers_whole_table() -> None:
    engine = _engine("")
    assert _labels(engine.complete(URI, _at(0, 0))) == _labels(list(engine.table))


def test_prefix_filters_in_table_order() -> None:
    assert _labels(_engine("再").complete(URI, _at(0, 1))) == ["再若", "再则"]
    assert _labels(_engine("不").complete(URI, _at(0, 1))) == ["不是", "不及"]


def test_prefix_is_trimmed() -> None:
    assert _labels(_engine("  或").complete(URI, _at(0, 3))) == ["或", "或者"]


def test_prefix_uses_text_before_caret_only() -> None:
    engine = _engine("再若甲")
    assert engine.prefix_at(URI, _at(0, 1)) == "再"
    assert _labels(engine.complete(URI, _at(0, 1))) == ["再若", "再则"]


def test_no_match_returns_nothing() -> None:
    assert _engine("甲").complete(URI, _at(0, 1)) == []


def test_unknown_document_returns_nothing() -> None:
    engine = _engine("再")
    assert engine.prefix_at("file:///missing.wy", _at(0, 1)) is None
    assert engine.complete("file:///missing.wy", _at(0, 1)) == []


def test_line_outside_document_offers_whole_table() -> None:
    engine = _engine("再")
    assert engine.prefix_at(URI, _at(7, 0)) == ""
    assert len(engine.complete(URI, _at(7, 0))) == 23


def test_lookup() -> None:
    engine = _engine("")
    assert engine.lookup("令") == CompletionCandidate("令", "keyword", "变量声明", "声明变量")
    assert engine.lookup("甲") is None


def test_resolve_returns_item_unchanged() -> None:
    engine = _engine("")
    item = types.CompletionItem(label="令", detail="变量声明")
    assert engine.resolve(item) is item


def test_to_item_maps_kind() -> None:
    keyword = CompletionCandidate("令", "keyword", "变量声明", "声明变量").to_item()
    assert keyword.kind == types.CompletionItemKind.Keyword
    assert keyword.detail == "变量声明"
    assert keyword.documentation == "声明变量"

    operator = CompletionCandidate("是", "operator").to_item()
    assert operator.kind == types.CompletionItemKind.Operator
    assert operator.detail is None
    assert operator.documentation is None


def test_custom_table_file(tmp_path: Path) -> None:
    path = tmp_path / "table.json"
    path.write_text(
        '{"candidates": [{"label": "吾有", "kind": "keyword", "detail": "声明"}]}',
        encoding="utf-8",
    )
    assert load_completion_table(path) == (CompletionCandidate("吾有", "keyword", "声明", ""),)


@pytest.mark.parametrize(
    "payload",
    [
        '{"candidates": [{"label": "", "kind": "keyword"}]}',
        '{"candidates": [{"label": "令", "kind": "verb"}]}',
        '{"entries": []}',
        "not json",
    ],
)
def test_invalid_table_is_rejected(tmp_path: Path, payload: str) -> None:
    path = tmp_path / "table.json"
    path.write_text(payload, encoding="utf-8")
    with pytest.raises(ConfigError):
        load_completion_table(path)


def test_missing_table_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_completion_table(tmp_path / "absent.json")


def test_prefix_line_matches_client_line_after_form_feed() -> None:
    engine = _engine("令甲为一。\x0c\n涵")
    assert engine.prefix_at(URI, _at(1, 1)) == "涵"
    assert _labels(engine.complete(URI, _at(1, 1))) == ["涵义"]
