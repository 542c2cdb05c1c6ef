"""Background lint worker: one thread per editing session, fed through a queue."""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import Any, Callable, Mapping, Sequence

from .ast_checks import full_analysis
from .models import Diagnostic
from .protocol import (
    ErrorResponse,
    InitRequest,
    LintRequest,
    LintResultResponse,
    ProtocolError,
    ReadyResponse,
    WorkerRequest,
    WorkerResponse,
    decode_request,
)

LOG = logging.getLogger(__name__)

Analyzer = Callable[[str], Sequence[Diagnostic]]
ResponseListener = Callable[[WorkerResponse], None]

_WARMUP_SQL = "SELECT 1 AS warmup FROM [Warmup]"


def handle_request(request: WorkerRequest, analyzer: Analyzer = full_analysis) -> WorkerResponse:
    """Answer a single request. Never raises; failures become error responses."""

    if isinstance(request, InitRequest):
        try:
            analyzer(_WARMUP_SQL)
        except Exception:  # pragma: no cover - warm-up is best effort
            LOG.debug("Lint worker warm-up failed", exc_info=True)
        return ReadyResponse()

    started = time.perf_counter()
    try:
        diagnostics = tuple(analyzer(request.sql))
    except Exception as exc:
        LOG.exception("Background lint failed for %s", request.request_id)
        return ErrorResponse(message=str(exc) or type(exc).__name__, request_id=request.request_id)
    duration = (time.perf_counter() - started) * 1000
    return LintResultResponse(request_id=request.request_id, diagnostics=diagnostics, duration=duration)


class LintWorker:
    """Runs the heavy analysis pass off the interactive thread.

    Requests go in through :meth:`post`; every response is handed to
    ``on_response`` from the worker thread, so callers marshal it back to
    their own loop.
    """

    def __init__(
        self,
        on_response: ResponseListener,
        analyzer: Analyzer = full_analysis,
        *,
        name: str = "mcesql-lint-worker",
    ) -> None:
        self._on_response = on_response
        self._analyzer = analyzer
        self._inbox: queue.Queue[WorkerRequest | None] = queue.Queue()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    @property
    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def post(self, request: WorkerRequest | Mapping[str, Any]) -> None:
        """Queue a request (object or wire dict) for the worker thread."""

        if self._closed:
            raise RuntimeError("Lint worker has been terminated")
        if not isinstance(request, (InitRequest, LintRequest)):
            request = decode_request(request)
        self._inbox.put(request)

    def terminate(self, timeout: float | None = 1.0) -> None:
        """Stop the thread once queued work drains; later posts are rejected."""

        if self._closed:
            return
        self._closed = True
        self._inbox.put(None)
        self._thread.join(timeout=timeout)

    def _run(self) -> None:
        while True:
            request = self._inbox.get()
            if request is None:
                return
            response = handle_request(request, self._analyzer)
            try:
                self._on_response(response)
            except Exception:
                LOG.exception("Lint worker listener failed")


__all__ = ["Analyzer", "LintWorker", "ProtocolError", "ResponseListener", "handle_request"]
