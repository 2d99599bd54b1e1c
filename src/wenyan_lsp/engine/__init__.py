"""Contract with the external lexer/parser engine.

An engine tokenizes full document text and parses the resulting tokens.
Either stage may raise; failures of the types listed in
``structured_errors`` carry position information, anything else is treated
as an internal fault. Engines that want hover and go-to-definition support
return ``Token`` values (or objects with the same attributes) from
``tokenize``.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol, Sequence

from wenyan_lsp.exceptions import EngineLoadError, WenyanError


class TokenKind(str, Enum):
    KEYWORD = "keyword"
    OPERATOR = "operator"
    IDENTIFIER = "identifier"
    NUMBER = "number"
    STRING = "string"
    PUNCTUATION = "punctuation"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    line: int
    column: int

    @property
    def end_column(self) -> int:
        return self.column + len(self.text)


class Engine(Protocol):
    structured_errors: tuple[type[BaseException], ...]

    def tokenize(self, text: str) -> Sequence[object]: ...

    def parse(self, tokens: Sequence[object]) -> object: ...


STRUCTURED_ERRORS: tuple[type[BaseException], ...] = (WenyanError,)


def structured_error_types(engine: object) -> tuple[type[BaseException], ...]:
    declared = getattr(engine, "structured_errors", None)
    if isinstance(declared, tuple) and declared:
        return declared
    return STRUCTURED_ERRORS


def load_engine(target: str) -> Engine:
    """Instantiate the engine named by a ``module:attribute`` import path.

    The attribute may be a class or any zero-argument factory.
    """
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise EngineLoadError(f"engine {target!r} is not 'module:attribute'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise EngineLoadError(f"cannot import engine module {module_name!r}: {exc}") from exc
    factory: Callable[[], object] | None = getattr(module, attr, None)
    if factory is None or not callable(factory):
        raise EngineLoadError(f"engine module {module_name!r} has no callable {attr!r}")
    engine = factory()
    if not (
        callable(getattr(engine, "tokenize", None))
        and callable(getattr(engine, "parse", None))
    ):
        raise EngineLoadError(f"{target!r} does not provide tokenize() and parse()")
    return engine  # type: ignore[return-value]


__all__ = [
    "Engine",
    "STRUCTURED_ERRORS",
    "Token",
    "TokenKind",
    "load_engine",
    "structured_error_types",
]
