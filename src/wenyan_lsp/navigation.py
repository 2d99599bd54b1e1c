"""Hover and go-to-definition over engine tokens.

Bindings use a single document-wide scope: the first declaration of a name
wins. A name is declared by the identifier after ``令`` or ``涵义``, or by any
identifier in the ``需知`` parameter list.
"""

from __future__ import annotations

import logging
from typing import Sequence

from lsprotocol import types
from pygls.workspace import PositionCodec

from wenyan_lsp.completion import CompletionEngine
from wenyan_lsp.documents import DocumentSnapshot, DocumentStore
from wenyan_lsp.engine import Engine, Token, TokenKind
from wenyan_lsp.positions import make_codec, server_position, span_range

logger = logging.getLogger(__name__)

SINGLE_DECLARATIONS = frozenset({"令", "涵义"})
PARAMETER_DECLARATION = "需知"
PARAMETER_SEPARATORS = frozenset("、，,")


def _as_token(value: object) -> Token | None:
    if isinstance(value, Token):
        return value
    kind = getattr(value, "kind", None)
    text = getattr(value, "text", None)
    line = getattr(value, "line", None)
    column = getattr(value, "column", None)
    if not isinstance(text, str) or not isinstance(line, int) or not isinstance(column, int):
        return None
    try:
        token_kind = TokenKind(getattr(kind, "value", kind))
    except ValueError:
        return None
    return Token(token_kind, text, line, column)


def token_at(tokens: Sequence[Token], line: int, column: int) -> Token | None:
    """Token under the caret, or the one the caret sits right after."""
    containing: Token | None = None
    touching: Token | None = None
    for token in tokens:
        if token.line != line:
            continue
        if token.column <= column < token.end_column:
            containing = token
        elif token.end_column == column:
            touching = token
    if containing is not None and containing.kind is not TokenKind.PUNCTUATION:
        return containing
    if touching is not None and touching.kind is not TokenKind.PUNCTUATION:
        return touching
    return containing or touching


def collect_bindings(tokens: Sequence[Token]) -> dict[str, Token]:
    bindings: dict[str, Token] = {}
    for index, token in enumerate(tokens):
        if token.kind is not TokenKind.KEYWORD:
            continue
        if token.text in SINGLE_DECLARATIONS:
            if index + 1 < len(tokens) and tokens[index + 1].kind is TokenKind.IDENTIFIER:
                name = tokens[index + 1]
                bindings.setdefault(name.text, name)
        elif token.text == PARAMETER_DECLARATION:
            for follower in tokens[index + 1 :]:
                if follower.kind is TokenKind.IDENTIFIER:
                    bindings.setdefault(follower.text, follower)
                elif follower.text not in PARAMETER_SEPARATORS:
                    break
    return bindings


class Navigator:
    def __init__(
        self,
        store: DocumentStore,
        engine: Engine,
        completion: CompletionEngine,
        codec: PositionCodec | None = None,
    ) -> None:
        self._store = store
        self._engine = engine
        self._completion = completion
        self.codec = codec or make_codec()

    def _tokens(self, snapshot: DocumentSnapshot) -> list[Token] | None:
        try:
            raw = self._engine.tokenize(snapshot.text)
        except Exception:
            logger.debug("cannot tokenize %s for navigation", snapshot.uri, exc_info=True)
            return None
        tokens = [token for token in (_as_token(item) for item in raw) if token is not None]
        return tokens

    def _lookup(
        self, uri: str, position: types.Position
    ) -> tuple[DocumentSnapshot, list[Token], Token] | None:
        snapshot = self._store.get(uri)
        if snapshot is None or not 0 <= position.line < len(snapshot.lines):
            return None
        tokens = self._tokens(snapshot)
        if not tokens:
            return None
        caret = server_position(snapshot.lines, position, self.codec)
        token = token_at(tokens, caret.line, caret.character)
        if token is None:
            return None
        return snapshot, tokens, token

    def _range(self, snapshot: DocumentSnapshot, token: Token) -> types.Range:
        return span_range(snapshot.lines, token.line, token.column, len(token.text), self.codec)

    def definition(self, uri: str, position: types.Position) -> types.Location | None:
        found = self._lookup(uri, position)
        if found is None:
            return None
        snapshot, tokens, token = found
        if token.kind is not TokenKind.IDENTIFIER:
            return None
        declaration = collect_bindings(tokens).get(token.text)
        if declaration is None:
            return None
        return types.Location(uri=uri, range=self._range(snapshot, declaration))

    def hover(self, uri: str, position: types.Position) -> types.Hover | None:
        found = self._lookup(uri, position)
        if found is None:
            return None
        snapshot, tokens, token = found
        if token.kind in (TokenKind.KEYWORD, TokenKind.OPERATOR):
            candidate = self._completion.lookup(token.text)
            if candidate is None:
                return None
            value = f"**{candidate.label}**"
            if candidate.detail:
                value += f"（{candidate.detail}）"
            if candidate.documentation:
                value += f"\n\n{candidate.documentation}"
        elif token.kind is TokenKind.IDENTIFIER:
            declaration = collect_bindings(tokens).get(token.text)
            if declaration is None:
                return None
            snippet = snapshot.line_text(declaration.line).strip()
            value = f"```wenyan\n{snippet}\n```"
        else:
            return None
        return types.Hover(
            contents=types.MarkupContent(kind=types.MarkupKind.Markdown, value=value),
            range=self._range(snapshot, token),
        )
