"""Reference engine: a small tokenizer and structural checker.

It stands in for a full Wenyan lexer/parser so the server works without one.
The parser only checks bracket balance, declaration shape and conditional
branch order; it does not build a syntax tree.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Sequence

from wenyan_lsp.completion import load_completion_table
from wenyan_lsp.engine import Token, TokenKind
from wenyan_lsp.exceptions import LexError, ParseError, WenyanError

PUNCTUATION = frozenset("。，、：；（）()【】,;:")
OPENERS = {"（": "）", "(": ")", "【": "】"}
CLOSERS = {value: key for key, value in OPENERS.items()}
NUMERALS = frozenset("0123456789零〇一二三四五六七八九十百千万亿两")
STRING_OPEN = "「"
STRING_CLOSE = "」"

DECLARE_VARIABLE = "令"
DECLARE_FUNCTION = "涵义"
DECLARE_PARAMETERS = "需知"
ASSIGN = "为"
BRANCH_START = "倘若"
BRANCH_FOLLOWERS = frozenset({"再若", "再则", "否则"})


def _located(message: str, line: int, column: int) -> str:
    return f"第{line + 1}行第{column + 1}列：{message}"


class ReferenceEngine:
    structured_errors: tuple[type[BaseException], ...] = (WenyanError,)

    def __init__(
        self,
        keywords: Iterable[str] | None = None,
        operators: Iterable[str] | None = None,
    ) -> None:
        if keywords is None or operators is None:
            table = load_completion_table()
            if keywords is None:
                keywords = [c.label for c in table if c.kind == "keyword"]
            if operators is None:
                operators = [c.label for c in table if c.kind == "operator"]
        self._words: dict[str, TokenKind] = {word: TokenKind.KEYWORD for word in keywords}
        self._words.update({word: TokenKind.OPERATOR for word in operators})
        # Longest match first.
        self._ordered = sorted(self._words, key=len, reverse=True)

    def _word_at(self, text: str, index: int) -> str | None:
        for word in self._ordered:
            if text.startswith(word, index):
                return word
        return None

    def tokenize(self, text: str) -> list[Token]:
        return list(self._scan(text))

    def _scan(self, text: str) -> Iterator[Token]:
        index = 0
        line = 0
        line_start = 0
        length = len(text)
        while index < length:
            char = text[index]
            column = index - line_start
            if char in "\r\n":
                index += 2 if text.startswith("\r\n", index) else 1
                line += 1
                line_start = index
                continue
            if char.isspace():
                index += 1
                continue
            if char == STRING_OPEN:
                end = text.find(STRING_CLOSE, index + 1)
                if end < 0 or any(ch in "\r\n" for ch in text[index + 1 : end]):
                    raise LexError(_located("字符串未闭合", line, column), line=line + 1, column=column + 1)
                yield Token(TokenKind.STRING, text[index : end + 1], line, column)
                index = end + 1
                continue
            if char == STRING_CLOSE:
                raise LexError(_located("多余的」", line, column), line=line + 1, column=column + 1)
            if char in PUNCTUATION:
                yield Token(TokenKind.PUNCTUATION, char, line, column)
                index += 1
                continue
            word = self._word_at(text, index)
            if word is not None:
                yield Token(self._words[word], word, line, column)
                index += len(word)
                continue
            if char in NUMERALS:
                end = index
                while end < length and text[end] in NUMERALS:
                    end += 1
                yield Token(TokenKind.NUMBER, text[index:end], line, column)
                index = end
                continue
            end = index + 1
            while end < length:
                nxt = text[end]
                if nxt.isspace() or nxt in PUNCTUATION or nxt in (STRING_OPEN, STRING_CLOSE):
                    break
                if self._word_at(text, end) is not None:
                    break
                end += 1
            yield Token(TokenKind.IDENTIFIER, text[index:end], line, column)
            index = end

    def parse(self, tokens: Sequence[Token]) -> bool:
        self._check_brackets(tokens)
        self._check_declarations(tokens)
        self._check_branches(tokens)
        return True

    def _check_brackets(self, tokens: Sequence[Token]) -> None:
        stack: list[Token] = []
        for token in tokens:
            if token.kind is not TokenKind.PUNCTUATION:
                continue
            if token.text in OPENERS:
                stack.append(token)
            elif token.text in CLOSERS:
                if not stack or OPENERS[stack[-1].text] != token.text:
                    raise ParseError(
                        _located(f"多余的{token.text}", token.line, token.column),
                        line=token.line + 1,
                        column=token.column + 1,
                    )
                stack.pop()
        if stack:
            opener = stack[-1]
            raise ParseError(
                _located("括号未闭合", opener.line, opener.column),
                line=opener.line + 1,
                column=opener.column + 1,
            )

    def _check_declarations(self, tokens: Sequence[Token]) -> None:
        for index, token in enumerate(tokens):
            if token.kind is not TokenKind.KEYWORD:
                continue
            following = tokens[index + 1] if index + 1 < len(tokens) else None
            if token.text in (DECLARE_VARIABLE, DECLARE_FUNCTION, DECLARE_PARAMETERS):
                if following is None or following.kind is not TokenKind.IDENTIFIER:
                    anchor = following or token
                    column = anchor.column if following else token.end_column
                    raise ParseError(
                        _located(f"{token.text}之后应为名称", anchor.line, column),
                        line=anchor.line + 1,
                        column=column + 1,
                    )
            if token.text == DECLARE_VARIABLE:
                assign = tokens[index + 2] if index + 2 < len(tokens) else None
                if assign is None or assign.text != ASSIGN:
                    name = tokens[index + 1]
                    raise ParseError(
                        _located(f"{name.text}之后应有「{ASSIGN}」", name.line, name.end_column),
                        line=name.line + 1,
                        column=name.end_column + 1,
                    )

    def _check_branches(self, tokens: Sequence[Token]) -> None:
        open_branches = 0
        for token in tokens:
            if token.kind is not TokenKind.KEYWORD:
                continue
            if token.text == BRANCH_START:
                open_branches += 1
            elif token.text in BRANCH_FOLLOWERS and open_branches == 0:
                raise ParseError(
                    _located(f"{token.text}之前缺少{BRANCH_START}", token.line, token.column),
                    line=token.line + 1,
                    column=token.column + 1,
                )
