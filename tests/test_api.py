from time import perf_counter

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from echo_tracing.api.echo import echo


async def test_health_returns_ok(api_client) -> None:
    resp = await api_client.get("/_ah/health")
    assert resp.status_code == 200
    assert resp.text == "ok"


async def test_health_ignores_request_headers(api_client) -> None:
    resp = await api_client.get(
        "/_ah/health",
        headers={"traceparent": "garbage", "accept": "application/json", "x-anything": "1"},
    )
    assert resp.status_code == 200
    assert resp.text == "ok"


@pytest.mark.parametrize("message", ["hello", "with space", "ünïcödé", "a.b-c_d"])
async def test_echo_returns_message_as_json(api_client, message: str) -> None:
    resp = await api_client.get(f"/echo/{message}")
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/json"
    assert resp.json() == {"message": message}


async def test_echo_capture_spans_nested_segments(api_client) -> None:
    resp = await api_client.get("/echo/a/b/c")
    assert resp.status_code == 200
    assert resp.json() == {"message": "a/b/c"}


async def test_echo_with_empty_capture_is_not_found(api_client) -> None:
    resp = await api_client.get("/echo/")
    assert resp.status_code == 404
    assert resp.text == "404 page not found"


async def test_echo_without_trailing_slash_is_not_found(api_client) -> None:
    resp = await api_client.get("/echo")
    assert resp.status_code == 404


@pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
async def test_echo_rejects_other_methods_with_not_found(api_client, method: str) -> None:
    resp = await api_client.request(method, "/echo/x")
    assert resp.status_code == 404
    assert resp.text == "404 page not found"


async def test_post_health_is_not_found(api_client) -> None:
    resp = await api_client.post("/_ah/health")
    assert resp.status_code == 404


@pytest.mark.parametrize("path", ["/", "/health", "/docs", "/openapi.json", "/_ah/health/extra", "/echoes/x"])
async def test_unknown_paths_are_not_found(api_client, path: str) -> None:
    resp = await api_client.get(path)
    assert resp.status_code == 404
    assert resp.text == "404 page not found"


async def test_echo_takes_at_least_the_injected_delay(api_client) -> None:
    start = perf_counter()
    resp = await api_client.get("/echo/slow")
    elapsed = perf_counter() - start

    assert resp.status_code == 200
    assert elapsed >= 0.1


async def test_health_content_is_plain_text(api_client) -> None:
    resp = await api_client.get("/_ah/health")
    assert resp.headers["content-type"].startswith("text/plain")


async def test_trailing_slash_is_not_redirected(api_client) -> None:
    resp = await api_client.get("/_ah/health/")
    assert resp.status_code == 404


@pytest.mark.parametrize("path", ["/echo/a%0A", "/echo/a%0Ab", "/echo/%0Aa", "/echo/a%0A%0A"])
async def test_echo_with_newline_in_capture_is_not_found(api_client, path: str) -> None:
    resp = await api_client.get(path)
    assert resp.status_code == 404
    assert resp.text == "404 page not found"


def _get_request(path: str) -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "scheme": "http",
            "server": ("test", 80),
            "path": path,
            "root_path": "",
            "query_string": b"",
            "headers": [],
        }
    )


async def test_echo_handler_rejects_path_outside_echo_prefix(telemetry) -> None:
    with pytest.raises(HTTPException) as exc_info:
        await echo(message="x", request=_get_request("/elsewhere/x"), telemetry=telemetry)

    assert exc_info.value.status_code == 400
    assert exc_info.value.detail == "invalid path"


async def test_echo_handler_rejects_capture_that_differs_from_path(telemetry) -> None:
    with pytest.raises(HTTPException) as exc_info:
        await echo(message="a", request=_get_request("/echo/a\n"), telemetry=telemetry)

    assert exc_info.value.status_code == 404


async def test_echo_handler_echoes_the_path_capture(telemetry) -> None:
    resp = await echo(message="a/b", request=_get_request("/echo/a/b"), telemetry=telemetry)
    assert resp.message == "a/b"
