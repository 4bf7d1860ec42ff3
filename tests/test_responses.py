from __future__ import annotations

from switchyard.exceptions import HTTPError
from switchyard.responses import EmptyResponse, JSONResponse, PlainTextResponse, Response, exception_to_response
from switchyard.serialization import json_decode


def test_plain_text_response_headers() -> None:
    response = PlainTextResponse("hello", headers=[("x-extra", "1")])
    assert response.body == b"hello"
    assert response.headers == (("content-type", "text/plain; charset=utf-8"), ("x-extra", "1"))


def test_json_response_encodes_with_msgspec() -> None:
    response = JSONResponse({"items": [1, 2]}, status=201)
    assert response.status == 201
    assert json_decode(response.body) == {"items": [1, 2]}
    assert response.header("Content-Type") == "application/json"


def test_empty_response_defaults_to_no_content() -> None:
    response = EmptyResponse()
    assert response.status == 204
    assert response.body == b""


def test_status_text_prefers_explicit_reason() -> None:
    assert Response(status=404).status_text == "Not Found"
    assert Response(status=200, reason="Fine").status_text == "Fine"


def test_without_body_keeps_everything_else() -> None:
    original = Response(status=206, headers=(("content-range", "bytes 0-1/2"),), body=b"ab", reason="Partial")
    stripped = original.without_body()
    assert stripped.body == b""
    assert (stripped.status, stripped.headers, stripped.reason) == (206, original.headers, "Partial")
    assert original.body == b"ab"


def test_with_headers_appends() -> None:
    response = Response().with_headers([("x-a", "1")]).with_headers([("x-b", "2")])
    assert response.headers == (("x-a", "1"), ("x-b", "2"))


def test_exception_to_response() -> None:
    response = exception_to_response(HTTPError(409, "conflict"))
    assert response.status == 409
    assert json_decode(response.body) == {"error": {"status": 409, "detail": "conflict"}}
