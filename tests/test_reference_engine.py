from __future__ import annotations

import pytest

from wenyan_lsp.engine import Token, TokenKind
from wenyan_lsp.engine.reference import ReferenceEngine
from wenyan_lsp.exceptions import LexError, ParseError, WenyanError


@pytest.fixture
def reference() -> ReferenceEngine:
    return ReferenceEngine()


def _kinds(tokens: list[Token]) -> list[tuple[TokenKind, str]]:
    return [(token.kind, token.text) for token in tokens]


def test_tokenize_declaration(reference: ReferenceEngine) -> None:
    tokens = reference.tokenize("令甲为三。")
    assert _kinds(tokens) == [
        (TokenKind.KEYWORD, "令"),
        (TokenKind.IDENTIFIER, "甲"),
        (TokenKind.KEYWORD, "为"),
        (TokenKind.NUMBER, "三"),
        (TokenKind.PUNCTUATION, "。"),
    ]
    assert [token.column for token in tokens] == [0, 1, 2, 3, 4]


def test_longest_keyword_wins(reference: ReferenceEngine) -> None:
    tokens = reference.tokenize("甲不是乙或者丙")
    assert _kinds(tokens) == [
        (TokenKind.IDENTIFIER, "甲"),
        (TokenKind.OPERATOR, "不是"),
        (TokenKind.IDENTIFIER, "乙"),
        (TokenKind.OPERATOR, "或者"),
        (TokenKind.IDENTIFIER, "丙"),
    ]


def test_identifier_stops_at_keyword(reference: ReferenceEngine) -> None:
    tokens = reference.tokenize("涵义加法需知乙、丙。")
    assert _kinds(tokens)[:4] == [
        (TokenKind.KEYWORD, "涵义"),
        (TokenKind.IDENTIFIER, "加法"),
        (TokenKind.KEYWORD, "需知"),
        (TokenKind.IDENTIFIER, "乙"),
    ]


def test_strings_and_lines(reference: ReferenceEngine) -> None:
    tokens = reference.tokenize("令甲为「问天地好在」。\n  求甲。")
    string = tokens[3]
    assert (string.kind, string.text, string.line, string.column) == (
        TokenKind.STRING,
        "「问天地好在」",
        0,
        3,
    )
    assert (tokens[-3].text, tokens[-3].line, tokens[-3].column) == ("求", 1, 2)


def test_unterminated_string(reference: ReferenceEngine) -> None:
    with pytest.raises(LexError) as info:
        reference.tokenize("令甲为「三。\n」")
    assert (info.value.line, info.value.column) == (1, 4)
    assert info.value.message == "第1行第4列：字符串未闭合"


def test_stray_string_close(reference: ReferenceEngine) -> None:
    with pytest.raises(LexError) as info:
        reference.tokenize("求甲」")
    assert (info.value.line, info.value.column) == (1, 3)


def test_valid_program_parses(reference: ReferenceEngine) -> None:
    program = "令甲为三。\n涵义加法需知乙、丙。\n倘若甲是三（求甲）否则求乙。"
    assert reference.parse(reference.tokenize(program)) is True


@pytest.mark.parametrize(
    "text,message,position",
    [
        ("令甲为(三。", "第1行第4列：括号未闭合", (1, 4)),
        ("求甲）。", "第1行第3列：多余的）", (1, 3)),
        ("（求甲】", "第1行第4列：多余的】", (1, 4)),
        ("令为三。", "第1行第2列：令之后应为名称", (1, 2)),
        ("令", "第1行第2列：令之后应为名称", (1, 2)),
        ("令甲。", "第1行第3列：甲之后应有「为」", (1, 3)),
        ("涵义。", "第1行第3列：涵义之后应为名称", (1, 3)),
        ("求甲。\n否则求乙。", "第2行第1列：否则之前缺少倘若", (2, 1)),
    ],
)
def test_parse_errors(
    reference: ReferenceEngine, text: str, message: str, position: tuple[int, int]
) -> None:
    with pytest.raises(ParseError) as info:
        reference.parse(reference.tokenize(text))
    assert info.value.message == message
    assert (info.value.line, info.value.column) == position


def test_custom_vocabulary() -> None:
    engine = ReferenceEngine(keywords=["吾有"], operators=["加"])
    assert _kinds(engine.tokenize("吾有甲加乙")) == [
        (TokenKind.KEYWORD, "吾有"),
        (TokenKind.IDENTIFIER, "甲"),
        (TokenKind.OPERATOR, "加"),
        (TokenKind.IDENTIFIER, "乙"),
    ]


def test_declares_structured_errors(reference: ReferenceEngine) -> None:
    assert reference.structured_errors == (WenyanError,)


def test_carriage_returns_end_lines(reference: ReferenceEngine) -> None:
    tokens = reference.tokenize("令甲为三。\r求甲。\r\n求乙。")
    assert [(token.text, token.line, token.column) for token in tokens if token.text == "求"] == [
        ("求", 1, 0),
        ("求", 2, 0),
    ]
    with pytest.raises(LexError):
        reference.tokenize("令甲为「三\r」。")
