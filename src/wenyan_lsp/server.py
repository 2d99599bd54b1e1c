from __future__ import annotations

import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Generator, TypeVar
from urllib.parse import unquote, urlparse

from lsprotocol import types
from pygls.capabilities import ServerCapabilitiesBuilder
from pygls.lsp.server import LanguageServer
from pygls.protocol import LanguageServerProtocol, lsp_method

from wenyan_lsp import __version__
from wenyan_lsp.completion import CompletionEngine, load_completion_table
from wenyan_lsp.config import (
    TomlTable,
    build_server_config,
    initialization_overrides,
    merge_payload,
)
from wenyan_lsp.documents import DocumentStore
from wenyan_lsp.engine import Engine, load_engine
from wenyan_lsp.exceptions import ConfigError, EngineLoadError
from wenyan_lsp.navigation import Navigator
from wenyan_lsp.positions import make_codec
from wenyan_lsp.schema import ServerConfig
from wenyan_lsp.sync import Publisher, SyncController
from wenyan_lsp.translate import SOURCE
from wenyan_lsp.validation import Validator

logger = logging.getLogger(__name__)

SERVER_NAME = SOURCE
EXPERIMENTAL_CAPABILITIES = {"publishDiagnostics": {"relatedInformation": True}}

T = TypeVar("T")


def apply_log_level(level: str | None) -> None:
    if not level:
        return
    value = getattr(logging, str(level).upper(), None)
    if isinstance(value, int):
        logging.getLogger("wenyan_lsp").setLevel(value)


class Session:
    """Everything the server builds for one client connection."""

    def __init__(
        self,
        config: ServerConfig,
        publish: Publisher,
        *,
        engine: Engine | None = None,
        position_encoding: types.PositionEncodingKind | str | None = None,
    ) -> None:
        self.config = config
        self.engine = engine if engine is not None else load_engine(config.engine)
        codec = make_codec(position_encoding)
        self.store = DocumentStore()
        self.executor = (
            ThreadPoolExecutor(
                max_workers=config.validation_workers,
                thread_name_prefix="wenyan-validate",
            )
            if config.background_validation
            else None
        )
        self.validator = Validator(self.engine, codec=codec)
        self.sync = SyncController(
            self.store, self.validator, publish, executor=self.executor, codec=codec
        )
        table_path = Path(config.completion_table) if config.completion_table else None
        self.completion = CompletionEngine(self.store, load_completion_table(table_path), codec)
        self.navigator = Navigator(self.store, self.engine, self.completion, codec)

    def close(self) -> None:
        self.sync.shutdown()
        if self.executor is not None:
            self.executor.shutdown(wait=False, cancel_futures=True)


class WenyanProtocol(LanguageServerProtocol):
    """pygls protocol that also advertises the experimental capabilities.

    pygls builds the server capabilities after the user ``initialize``
    handler returns, so they can only be amended on the finished result.
    """

    @lsp_method(types.INITIALIZE)
    def lsp_initialize(
        self, params: types.InitializeParams
    ) -> Generator[Any, Any, types.InitializeResult]:
        result = yield from super().lsp_initialize(params)
        result.capabilities.experimental = dict(EXPERIMENTAL_CAPABILITIES)
        return result


class WenyanLanguageServer(LanguageServer):
    def __init__(
        self,
        payload: TomlTable | None = None,
        *,
        config_path: Path | None = None,
        engine: Engine | None = None,
        publisher: Publisher | None = None,
    ) -> None:
        super().__init__(
            SERVER_NAME,
            __version__,
            text_document_sync_kind=types.TextDocumentSyncKind.Incremental,
            protocol_cls=WenyanProtocol,
        )
        self.payload: TomlTable = dict(payload or {})
        self.config_path = config_path
        self.session: Session | None = None
        self._engine = engine
        self._publisher = publisher

    def configure(self, payload: TomlTable | None = None, config_path: Path | None = None) -> None:
        self.payload = dict(payload or {})
        self.config_path = config_path

    def open_session(
        self,
        options: object = None,
        *,
        root: Path | None = None,
        position_encoding: types.PositionEncodingKind | str | None = None,
    ) -> Session:
        if self.session is not None:
            self.session.close()
        payload = merge_payload(initialization_overrides(options), self.payload)
        try:
            config = build_server_config(payload, root=root, config_path=self.config_path)
            session = Session(
                config,
                self._publisher or self.publish,
                engine=self._engine,
                position_encoding=position_encoding,
            )
        except (ConfigError, EngineLoadError):
            logger.exception("falling back to the default configuration")
            session = Session(
                ServerConfig(),
                self._publisher or self.publish,
                engine=self._engine,
                position_encoding=position_encoding,
            )
        apply_log_level(session.config.log_level)
        self.session = session
        return session

    def require_session(self) -> Session:
        if self.session is None:
            return self.open_session()
        return self.session

    def publish(self, uri: str, diagnostics: list[types.Diagnostic], version: int | None) -> None:
        logger.debug("publishing %d diagnostic(s) for %s", len(diagnostics), uri)
        self.text_document_publish_diagnostics(
            types.PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics, version=version)
        )


def _uri_to_path(uri: str) -> Path:
    parsed = urlparse(uri)
    if parsed.scheme and parsed.scheme != "file":
        return Path(uri)
    return Path(unquote(parsed.path or uri))


def _guarded(
    default: T | None = None, *, echo_params: bool = False
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Log unexpected faults from a handler and answer with ``default``.

    With ``echo_params`` the request's own params are the answer instead.
    """

    def _decorate(handler: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(handler)
        def _wrapper(ls: WenyanLanguageServer, params: object) -> T:
            try:
                return handler(ls, params)
            except Exception:
                logger.exception("%s failed", handler.__name__)
                return params if echo_params else default  # type: ignore[return-value]

        return _wrapper

    return _decorate


server = WenyanLanguageServer()


@server.feature(types.INITIALIZE)
@_guarded(None)
def initialize(ls: WenyanLanguageServer, params: types.InitializeParams) -> None:
    root: Path | None = None
    if params.root_uri:
        root = _uri_to_path(params.root_uri)
    elif params.root_path:
        root = Path(params.root_path)
    # Same choice pygls makes for the capabilities it sends back.
    encoding = ServerCapabilitiesBuilder.choose_position_encoding(params.capabilities)
    session = ls.open_session(params.initialization_options, root=root, position_encoding=encoding)
    logger.info(
        "initialized with engine %s (background validation: %s, position encoding: %s)",
        session.config.engine,
        session.config.background_validation,
        encoding,
    )


@server.feature(types.SHUTDOWN)
@_guarded(None)
def shutdown(ls: WenyanLanguageServer, params: object) -> None:
    if ls.session is not None:
        ls.session.close()
        ls.session = None


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
@_guarded(None)
def did_open(ls: WenyanLanguageServer, params: types.DidOpenTextDocumentParams) -> None:
    document = params.text_document
    ls.require_session().sync.open(
        document.uri, document.language_id, document.version, document.text
    )


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
@_guarded(None)
def did_change(ls: WenyanLanguageServer, params: types.DidChangeTextDocumentParams) -> None:
    ls.require_session().sync.change(
        params.text_document.uri, params.content_changes, params.text_document.version
    )


@server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
@_guarded(None)
def did_close(ls: WenyanLanguageServer, params: types.DidCloseTextDocumentParams) -> None:
    ls.require_session().sync.close(params.text_document.uri)


@server.feature(
    types.TEXT_DOCUMENT_COMPLETION,
    types.CompletionOptions(resolve_provider=True),
)
@_guarded(types.CompletionList(is_incomplete=False, items=[]))
def completion(ls: WenyanLanguageServer, params: types.CompletionParams) -> types.CompletionList:
    candidates = ls.require_session().completion.complete(
        params.text_document.uri, params.position
    )
    return types.CompletionList(
        is_incomplete=False,
        items=[candidate.to_item() for candidate in candidates],
    )


@server.feature(types.COMPLETION_ITEM_RESOLVE)
@_guarded(echo_params=True)
def completion_resolve(ls: WenyanLanguageServer, item: types.CompletionItem) -> types.CompletionItem:
    return ls.require_session().completion.resolve(item)


@server.feature(types.TEXT_DOCUMENT_DEFINITION)
@_guarded(None)
def definition(
    ls: WenyanLanguageServer, params: types.DefinitionParams
) -> types.Location | None:
    return ls.require_session().navigator.definition(params.text_document.uri, params.position)


@server.feature(types.TEXT_DOCUMENT_HOVER)
@_guarded(None)
def hover(ls: WenyanLanguageServer, params: types.HoverParams) -> types.Hover | None:
    return ls.require_session().navigator.hover(params.text_document.uri, params.position)


def start(start_fn: Callable[[], None] | None = None) -> None:
    """Start the language server over stdio unless told otherwise."""
    (start_fn or server.start_io)()


if __name__ == "__main__":  # pragma: no cover
    start()  # pragma: no cover
