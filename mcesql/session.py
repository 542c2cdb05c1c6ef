"""Editing session that combines keystroke linting with the background worker."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Callable, Sequence

from .config import EditorConfig
from .sqlintel import SqlIntelService
from .sqlintel.debounce import Debouncer
from .sqlintel.linter import first_blocking_diagnostic, has_blocking_diagnostics
from .sqlintel.merge import filter_async_for_prereqs, merge_diagnostics
from .sqlintel.models import Diagnostic, Suggestion
from .sqlintel.protocol import (
    ErrorResponse,
    InitRequest,
    LintRequest,
    LintResultResponse,
    ReadyResponse,
    WorkerResponse,
    create_request_id,
)
from .sqlintel.worker import LintWorker, ResponseListener

LOG = logging.getLogger(__name__)

DiagnosticsListener = Callable[["DiagnosticsState"], None]
WorkerFactory = Callable[[ResponseListener], LintWorker]


@dataclass(frozen=True, slots=True)
class DiagnosticsState:
    """What the editor renders after each lint pass."""

    sql: str = ""
    diagnostics: tuple[Diagnostic, ...] = ()
    sync_diagnostics: tuple[Diagnostic, ...] = ()
    async_diagnostics: tuple[Diagnostic, ...] = ()
    is_async_linting: bool = False
    last_lint_duration: float | None = None

    @property
    def has_blocking(self) -> bool:
        return has_blocking_diagnostics(self.diagnostics)

    @property
    def first_blocking(self) -> Diagnostic | None:
        return first_blocking_diagnostic(self.diagnostics)


class EditorSession:
    """Owns one editor buffer's diagnostics and its background lint worker.

    ``update`` lints synchronously and (re)starts the debounce timer. When it
    fires a fresh request id becomes current and the text is posted to the
    worker; any response carrying another id is dropped. The worker is
    created on first need and torn down by :meth:`close`.
    """

    def __init__(
        self,
        sql_intel: SqlIntelService,
        *,
        config: EditorConfig | None = None,
        worker_factory: WorkerFactory | None = None,
    ) -> None:
        self._sql_intel = sql_intel
        self._config = config or EditorConfig()
        self._worker_factory = worker_factory or self._default_worker
        self._debouncer = Debouncer.from_millis(self._config.lint.debounce_ms)
        self._listeners: set[DiagnosticsListener] = set()
        self._state = DiagnosticsState()
        self._worker: LintWorker | None = None
        self._worker_failed = False
        self._worker_ready = False
        self._current_request_id: str | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._closed = False

    @property
    def state(self) -> DiagnosticsState:
        return self._state

    @property
    def sql(self) -> str:
        return self._state.sql

    @property
    def current_request_id(self) -> str | None:
        """Correlation id of the only background request whose result will be applied."""

        return self._current_request_id

    @property
    def async_enabled(self) -> bool:
        return self._config.lint.enable_async and not self._worker_failed and not self._closed

    @property
    def worker_ready(self) -> bool:
        return self._worker_ready

    def subscribe(self, listener: DiagnosticsListener) -> Callable[[], None]:
        """Subscribe to diagnostics updates; returns an unsubscribe handle."""

        self._listeners.add(listener)
        listener(self._state)

        def _unsubscribe() -> None:
            self._listeners.discard(listener)

        return _unsubscribe

    def update(self, sql: str, cursor: int | None = None) -> DiagnosticsState:
        """Record new editor text, lint it now, and schedule the background pass."""

        if self._closed:
            raise RuntimeError("Editor session is closed")
        sync = tuple(self._sql_intel.lint(sql, cursor))
        if not sql.strip():
            self._debouncer.cancel()
            self._current_request_id = None
            self._set_state(DiagnosticsState(sql=sql, last_lint_duration=self._state.last_lint_duration))
            return self._state

        if not self._within_async_limit(sql):
            LOG.debug("Buffer exceeds %d characters; background lint skipped", self._config.lint.max_async_length)
            self._debouncer.cancel()
            self._current_request_id = None
            state = self._merged(sql, sync, ())
            self._set_state(replace(state, is_async_linting=False))
            return self._state

        async_diagnostics = tuple(item for item in self._state.async_diagnostics if item.end <= len(sql))
        self._set_state(self._merged(sql, sync, async_diagnostics))
        if self.async_enabled:
            self._schedule()
        return self._state

    def suggest(self, cursor: int) -> list[Suggestion]:
        return self._sql_intel.suggest(self._state.sql, cursor)

    def should_suggest(self, cursor: int) -> bool:
        return self._sql_intel.should_suggest(self._state.sql, cursor)

    def format(self) -> str:
        """Format the current buffer; the caller decides whether to apply it."""

        return self._sql_intel.format(self._state.sql)

    def dispatch(self) -> str | None:
        """Post the current text to the worker right away; returns the request id."""

        if not self._within_async_limit(self._state.sql):
            return None
        worker = self._ensure_worker()
        if worker is None:
            return None
        request_id = create_request_id()
        self._current_request_id = request_id
        try:
            worker.post(LintRequest(request_id=request_id, sql=self._state.sql))
        except RuntimeError:
            LOG.warning("Lint worker rejected request; continuing with keystroke linting only")
            self._disable_worker()
            return None
        self._set_state(replace(self._state, is_async_linting=True))
        return request_id

    def handle_response(self, response: WorkerResponse) -> None:
        """Apply a worker response on the session's own thread."""

        if isinstance(response, ReadyResponse):
            self._worker_ready = True
            LOG.debug("Lint worker ready")
            return
        if response.request_id is not None and response.request_id != self._current_request_id:
            LOG.debug("Discarding stale worker response %s", response.request_id)
            return
        if isinstance(response, ErrorResponse):
            LOG.debug("Background lint failed: %s", response.message)
            self._set_state(replace(self._state, is_async_linting=False))
            return
        if isinstance(response, LintResultResponse):
            state = self._merged(self._state.sql, self._state.sync_diagnostics, response.diagnostics)
            self._set_state(replace(state, is_async_linting=False, last_lint_duration=response.duration))

    def close(self) -> None:
        """Cancel pending work and stop the worker thread."""

        if self._closed:
            return
        self._closed = True
        self._debouncer.cancel()
        self._current_request_id = None
        if self._worker is not None:
            self._worker.terminate()
            self._worker = None
        self._listeners.clear()

    def _schedule(self) -> None:
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            LOG.debug("No running event loop; background lint skipped")
            return
        self._debouncer.submit(self.dispatch)

    def _within_async_limit(self, sql: str) -> bool:
        return len(sql) <= self._config.lint.max_async_length

    def _ensure_worker(self) -> LintWorker | None:
        if self._worker is not None:
            return self._worker
        if not self.async_enabled:
            return None
        try:
            worker = self._worker_factory(self._receive_from_worker)
            worker.post(InitRequest())
        except Exception:
            LOG.warning("Lint worker unavailable; continuing with keystroke linting only", exc_info=True)
            self._worker_failed = True
            return None
        self._worker = worker
        return worker

    def _disable_worker(self) -> None:
        self._worker_failed = True
        self._current_request_id = None
        if self._worker is not None:
            self._worker.terminate()
            self._worker = None
        self._set_state(replace(self._state, is_async_linting=False))

    def _receive_from_worker(self, response: WorkerResponse) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self.handle_response, response)
        except RuntimeError:  # pragma: no cover - loop shut down between checks
            LOG.debug("Dropped worker response after loop shutdown")

    def _default_worker(self, listener: ResponseListener) -> LintWorker:
        return LintWorker(listener, analyzer=self._sql_intel.analyze)

    def _merged(
        self,
        sql: str,
        sync: Sequence[Diagnostic],
        async_diagnostics: Sequence[Diagnostic],
    ) -> DiagnosticsState:
        accepted = tuple(filter_async_for_prereqs(sync, async_diagnostics))
        return replace(
            self._state,
            sql=sql,
            sync_diagnostics=tuple(sync),
            async_diagnostics=accepted,
            diagnostics=tuple(merge_diagnostics(sync, accepted)),
        )

    def _set_state(self, state: DiagnosticsState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                LOG.exception("Diagnostics listener failed")


__all__ = ["DiagnosticsListener", "DiagnosticsState", "EditorSession", "WorkerFactory"]
