"""Tests for the worker message protocol."""

from __future__ import annotations

import re

import pytest

from mcesql.sqlintel.models import Diagnostic, DiagnosticSeverity
from mcesql.sqlintel.protocol import (
    ErrorResponse,
    InitRequest,
    LintRequest,
    LintResultResponse,
    ProtocolError,
    ReadyResponse,
    create_request_id,
    decode_request,
    decode_response,
)


def test_request_id_format() -> None:
    first, second = create_request_id(), create_request_id()

    assert re.fullmatch(r"lint-\d{13,}-[0-9a-z]{7}", first)
    assert first != second


def test_requests_serialise_with_camel_case_keys() -> None:
    assert InitRequest().to_dict() == {"type": "init"}
    assert LintRequest(request_id="lint-1-abcdefg", sql="SELECT 1").to_dict() == {
        "type": "lint",
        "requestId": "lint-1-abcdefg",
        "sql": "SELECT 1",
    }


def test_decode_request() -> None:
    assert decode_request({"type": "init"}) == InitRequest()
    assert decode_request({"type": "lint", "requestId": "r1", "sql": "SELECT 1"}) == LintRequest("r1", "SELECT 1")


@pytest.mark.parametrize(
    "payload",
    [
        {"type": "lint", "sql": "SELECT 1"},
        {"type": "lint", "requestId": 3, "sql": "SELECT 1"},
        {"type": "explode"},
        {},
    ],
)
def test_decode_request_rejects_bad_payloads(payload: dict[str, object]) -> None:
    with pytest.raises(ProtocolError):
        decode_request(payload)


def test_lint_result_payload_shape() -> None:
    response = LintResultResponse(
        request_id="r1",
        diagnostics=(Diagnostic("Bad.", DiagnosticSeverity.ERROR, 1, 3),),
        duration=4.5,
    )

    payload = response.to_dict()

    assert payload == {
        "type": "lint-result",
        "requestId": "r1",
        "diagnostics": [{"message": "Bad.", "severity": "error", "startIndex": 1, "endIndex": 3}],
        "duration": 4.5,
    }
    assert decode_response(payload) == response


def test_error_response_request_id_is_optional() -> None:
    assert ErrorResponse("boom").to_dict() == {"type": "error", "message": "boom"}
    assert decode_response({"type": "error", "message": "boom", "requestId": "r2"}) == ErrorResponse("boom", "r2")
    assert decode_response({"type": "ready"}) == ReadyResponse()


def test_malformed_lint_result_is_a_protocol_error() -> None:
    with pytest.raises(ProtocolError):
        decode_response({"type": "lint-result", "requestId": "r1", "diagnostics": [{"message": "x"}]})
