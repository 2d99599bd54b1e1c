"""Apply document lifecycle notifications and schedule validation."""

from __future__ import annotations

import asyncio
import itertools
import logging
from concurrent.futures import Executor
from typing import Callable, Sequence

from lsprotocol import types
from pygls.workspace import PositionCodec

from wenyan_lsp.documents import DocumentSnapshot, DocumentStore, apply_changes
from wenyan_lsp.positions import make_codec
from wenyan_lsp.validation import Validator

logger = logging.getLogger(__name__)

Publisher = Callable[[str, list[types.Diagnostic], int | None], None]


class SyncController:
    """Keep the document store in step with the client and publish results.

    Every validation that is started gets a ticket and only the latest ticket
    per URI may publish, so a slow pass over an old snapshot never replaces
    the diagnostics of a newer one. Closing a document drops its ticket.

    With an ``executor`` and a running event loop, validation runs off the
    loop and its result is delivered back on it; otherwise it runs inline.
    """

    def __init__(
        self,
        store: DocumentStore,
        validator: Validator,
        publish: Publisher,
        *,
        executor: Executor | None = None,
        codec: PositionCodec | None = None,
    ) -> None:
        self.store = store
        self.validator = validator
        self.codec = codec or make_codec()
        self._publish = publish
        self._executor = executor
        self._tickets = itertools.count(1)
        self._latest: dict[str, int] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    def open(self, uri: str, language_id: str, version: int, text: str) -> DocumentSnapshot:
        if uri in self.store:
            logger.warning("didOpen for already open document %s; replacing it", uri)
        snapshot = DocumentSnapshot(uri=uri, language_id=language_id, version=version, text=text)
        self.store.put(snapshot)
        self._schedule(snapshot)
        return snapshot

    def change(
        self,
        uri: str,
        changes: Sequence[types.TextDocumentContentChangeEvent],
        version: int | None,
    ) -> DocumentSnapshot | None:
        current = self.store.get(uri)
        if current is None:
            logger.warning("didChange for document %s that is not open; ignoring", uri)
            return None
        if version is not None and version < current.version:
            logger.warning(
                "didChange for %s has version %s older than %s; ignoring",
                uri,
                version,
                current.version,
            )
            return None
        snapshot = apply_changes(
            current,
            changes,
            current.version if version is None else version,
            self.codec,
        )
        self.store.put(snapshot)
        self._schedule(snapshot)
        return snapshot

    def close(self, uri: str) -> None:
        if self.store.remove(uri) is None:
            logger.warning("didClose for document %s that is not open", uri)
        self._latest.pop(uri, None)
        self._publish(uri, [], None)

    def is_current(self, uri: str, ticket: int) -> bool:
        return self._latest.get(uri) == ticket

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def _schedule(self, snapshot: DocumentSnapshot) -> None:
        ticket = next(self._tickets)
        self._latest[snapshot.uri] = ticket
        loop = self._running_loop() if self._executor is not None else None
        if loop is None:
            self._deliver(snapshot, ticket, self.validator.validate(snapshot))
            return
        task = loop.create_task(self._validate_in_background(snapshot, ticket))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    @staticmethod
    def _running_loop() -> asyncio.AbstractEventLoop | None:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    async def _validate_in_background(self, snapshot: DocumentSnapshot, ticket: int) -> None:
        loop = asyncio.get_running_loop()
        diagnostics = await loop.run_in_executor(
            self._executor, self.validator.validate, snapshot
        )
        self._deliver(snapshot, ticket, diagnostics)

    def _deliver(
        self, snapshot: DocumentSnapshot, ticket: int, diagnostics: list[types.Diagnostic]
    ) -> None:
        if not self.is_current(snapshot.uri, ticket):
            logger.debug(
                "discarding superseded diagnostics for %s v%s", snapshot.uri, snapshot.version
            )
            return
        self._publish(snapshot.uri, diagnostics, snapshot.version)

    async def drain(self) -> None:
        """Wait until no background validation is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def shutdown(self) -> None:
        self._latest.clear()
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self.store.clear()
