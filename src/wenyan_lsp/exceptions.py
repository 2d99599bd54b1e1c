"""Exception types shared by the wenyan-lsp pipeline."""

from __future__ import annotations


class WenyanLspError(RuntimeError):
    """Base class for errors raised by the server itself."""


class WenyanError(Exception):
    """Structured failure raised by a lexer/parser engine.

    ``line`` and ``column`` are 1-based when present. Engines that cannot
    pinpoint a location leave them unset and may embed a ``第N行第M列`` marker
    in the message instead.
    """

    def __init__(
        self,
        message: str,
        *,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column


class LexError(WenyanError):
    pass


class ParseError(WenyanError):
    pass


class EngineLoadError(WenyanLspError):
    pass


class ConfigError(WenyanLspError):
    pass


class NeverThrown(WenyanLspError):
    """Raised by ``never()`` when a branch assumed unreachable is reached."""

    def __init__(self, message: str, *, env: dict[str, object] | None = None):
        super().__init__(message)
        self.env = dict(env or {})
