from __future__ import annotations

import logging

from lsprotocol import types
from pygls.workspace import PositionCodec

from wenyan_lsp.documents import DocumentSnapshot
from wenyan_lsp.engine import Engine, structured_error_types
from wenyan_lsp.model import (
    Failure,
    StructuredFailure,
    Success,
    UnstructuredFailure,
    ValidationOutcome,
)
from wenyan_lsp.positions import make_codec
from wenyan_lsp.translate import SOURCE, translate

logger = logging.getLogger(__name__)


def _int_or_none(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _message_of(exc: BaseException) -> str:
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc)


class Validator:
    """Run the engine over one snapshot and report what went wrong.

    A failing document is an expected outcome, so there are no retries; the
    first failure of either stage ends the pass.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        codec: PositionCodec | None = None,
        source: str = SOURCE,
    ) -> None:
        self.engine = engine
        self.codec = codec or make_codec()
        self.source = source
        self._structured = structured_error_types(engine)

    def run(self, snapshot: DocumentSnapshot) -> ValidationOutcome:
        try:
            tokens = self.engine.tokenize(snapshot.text)
            self.engine.parse(tokens)
        except self._structured as exc:
            return Failure(
                StructuredFailure(
                    message=_message_of(exc),
                    line=_int_or_none(getattr(exc, "line", None)),
                    column=_int_or_none(getattr(exc, "column", None)),
                )
            )
        except Exception as exc:
            logger.exception(
                "internal fault validating %s (version %s)", snapshot.uri, snapshot.version
            )
            return Failure(UnstructuredFailure(message=str(exc)))
        return Success()

    def validate(self, snapshot: DocumentSnapshot) -> list[types.Diagnostic]:
        outcome = self.run(snapshot)
        diagnostics = translate(outcome, snapshot, codec=self.codec, source=self.source)
        logger.debug(
            "validated %s v%s: %d diagnostic(s)",
            snapshot.uri,
            snapshot.version,
            len(diagnostics),
        )
        return diagnostics
