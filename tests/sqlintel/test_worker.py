"""Tests for the background lint worker."""

from __future__ import annotations

import queue

import pytest

from mcesql.sqlintel.models import Diagnostic, DiagnosticSeverity
from mcesql.sqlintel.protocol import (
    ErrorResponse,
    InitRequest,
    LintRequest,
    LintResultResponse,
    ReadyResponse,
    WorkerResponse,
)
from mcesql.sqlintel.worker import LintWorker, handle_request


def _fake_analyzer(sql: str) -> list[Diagnostic]:
    return [Diagnostic(f"saw {len(sql)} chars", DiagnosticSeverity.WARNING, 0, len(sql))]


def _failing_analyzer(sql: str) -> list[Diagnostic]:
    raise ValueError("analysis failed")


def test_init_returns_ready() -> None:
    assert handle_request(InitRequest(), _fake_analyzer) == ReadyResponse()


def test_lint_returns_diagnostics_and_duration() -> None:
    response = handle_request(LintRequest("r1", "SELECT 1"), _fake_analyzer)

    assert isinstance(response, LintResultResponse)
    assert response.request_id == "r1"
    assert response.diagnostics[0].message == "saw 8 chars"
    assert response.duration >= 0


def test_analyzer_failure_becomes_error_response() -> None:
    response = handle_request(LintRequest("r2", "SELECT 1"), _failing_analyzer)

    assert response == ErrorResponse(message="analysis failed", request_id="r2")


def test_default_analyzer_runs_full_analysis() -> None:
    response = handle_request(LintRequest("r3", "SELECT * FROM A; SELECT * FROM B"))

    assert isinstance(response, LintResultResponse)
    assert any("single SQL statement" in item.message for item in response.diagnostics)


def test_worker_answers_in_order_on_its_thread() -> None:
    responses: queue.Queue[WorkerResponse] = queue.Queue()
    worker = LintWorker(responses.put, analyzer=_fake_analyzer)
    try:
        worker.post(InitRequest())
        worker.post({"type": "lint", "requestId": "r1", "sql": "SELECT 1"})
        worker.post(LintRequest("r2", "SELECT 22"))

        received = [responses.get(timeout=5) for _ in range(3)]
    finally:
        worker.terminate()

    assert received[0] == ReadyResponse()
    assert [item.request_id for item in received[1:]] == ["r1", "r2"]


def test_terminated_worker_rejects_posts() -> None:
    worker = LintWorker(lambda response: None, analyzer=_fake_analyzer)

    worker.terminate()

    assert worker.is_alive is False
    with pytest.raises(RuntimeError):
        worker.post(InitRequest())


def test_listener_failure_does_not_stop_worker() -> None:
    responses: queue.Queue[WorkerResponse] = queue.Queue()
    calls = {"count": 0}

    def _listener(response: WorkerResponse) -> None:
        calls["count"] += 1
        if calls["count"] == 1:
            raise RuntimeError("listener broke")
        responses.put(response)

    worker = LintWorker(_listener, analyzer=_fake_analyzer)
    try:
        worker.post(InitRequest())
        worker.post(LintRequest("r1", "SELECT 1"))

        received = responses.get(timeout=5)
    finally:
        worker.terminate()

    assert isinstance(received, LintResultResponse)
