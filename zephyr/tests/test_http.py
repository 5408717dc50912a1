# zephyr/tests/test_http.py
"""
Unit tests for the low-level HTTP wrapper.

Uses respx to mock httpx.
"""

import json
import time
from enum import Enum

import httpx
import pytest
import respx

from zephyr.auth import AuthTokenManager, StaticTokenProvider
from zephyr.http import (
    ApiError,
    ApiResult,
    AsyncHttpClient,
    HttpClient,
    TIMEOUT_ERROR,
    build_query_string,
    handle_api_response,
)

from .conftest import BASE_URL, SLOW_BODY


class Color(str, Enum):
    RED = "red"


# -------------------------
# Query string
# -------------------------

class TestBuildQueryString:

    def test_skips_none_values(self):
        assert build_query_string({"status": "pending", "limit": None}) == "status=pending"

    def test_empty(self):
        assert build_query_string(None) == ""
        assert build_query_string({}) == ""
        assert build_query_string({"a": None}) == ""

    def test_booleans_are_lowercase(self):
        assert build_query_string({"root_tasks_only": True, "x": False}) == "root_tasks_only=true&x=false"

    def test_lists_are_comma_joined(self):
        assert build_query_string({"tags": ["a", "b"]}) == "tags=a%2Cb"

    def test_enum_uses_value(self):
        assert build_query_string({"color": Color.RED}) == "color=red"

    def test_keeps_zero_and_order(self):
        assert build_query_string({"offset": 0, "limit": 5}) == "offset=0&limit=5"

    def test_encodes_special_characters(self):
        assert build_query_string({"search": "a b&c"}) == "search=a+b%26c"


# -------------------------
# Requests
# -------------------------

class TestRequests:

    @respx.mock
    def test_get_query_string_omits_undefined(self, http):
        route = respx.get(host="test.local", path="/api/tasks").mock(
            return_value=httpx.Response(200, json=[])
        )

        http.get("/tasks", params={"status": "pending", "limit": None})

        assert route.called
        assert route.calls.last.request.url.query == b"status=pending"

    @respx.mock
    def test_bearer_token_attached(self, http):
        route = respx.get(host="test.local", path="/api/health").mock(
            return_value=httpx.Response(200, json={"ok": True})
        )

        http.get("/health")

        headers = route.calls.last.request.headers
        assert headers["Authorization"] == "Bearer test-token"
        assert headers["Content-Type"] == "application/json"

    @respx.mock
    def test_unauthenticated_without_token(self):
        route = respx.get(host="test.local", path="/api/health").mock(
            return_value=httpx.Response(200, json={"ok": True})
        )
        client = HttpClient(base_url=BASE_URL, auth=AuthTokenManager())

        result = client.get("/health")

        assert result.ok
        assert "Authorization" not in route.calls.last.request.headers

    @respx.mock
    def test_per_call_headers_override(self, http):
        route = respx.get(host="test.local", path="/api/health").mock(
            return_value=httpx.Response(200, json={})
        )

        http.get("/health", headers={"X-Trace": "abc"})

        assert route.calls.last.request.headers["X-Trace"] == "abc"

    @respx.mock
    def test_post_sends_json_body(self, http):
        route = respx.post(host="test.local", path="/api/tasks").mock(
            return_value=httpx.Response(201, json={"id": "t1"})
        )

        result = http.post("/tasks", body={"title": "x"})

        assert result.status == 201
        assert json.loads(route.calls.last.request.content) == {"title": "x"}

    @respx.mock
    def test_get_never_sends_body(self, http):
        route = respx.get(host="test.local", path="/api/tasks").mock(
            return_value=httpx.Response(200, json=[])
        )

        http.request("GET", "/tasks", body={"ignored": True})

        assert route.calls.last.request.content == b""

    @respx.mock
    def test_timeout_override_is_passed(self, http):
        route = respx.get(host="test.local", path="/api/tasks").mock(
            return_value=httpx.Response(200, json=[])
        )

        http.get("/tasks", timeout=2.5)

        assert route.calls.last.request.extensions["timeout"]["read"] == 2.5

    @respx.mock
    def test_default_timeout_is_ten_seconds(self, http):
        route = respx.get(host="test.local", path="/api/tasks").mock(
            return_value=httpx.Response(200, json=[])
        )

        http.get("/tasks")

        assert route.calls.last.request.extensions["timeout"]["read"] == 10.0


# -------------------------
# Responses
# -------------------------

class TestResponses:

    @respx.mock
    def test_json_response_is_parsed(self, http):
        respx.get(host="test.local", path="/api/tasks").mock(
            return_value=httpx.Response(200, json=[{"id": "t1"}])
        )

        result = http.get("/tasks")

        assert result == ApiResult(status=200, data=[{"id": "t1"}])

    @respx.mock
    def test_text_response_is_raw(self, http):
        respx.get(host="test.local", path="/api/export").mock(
            return_value=httpx.Response(200, text="id,title\n1,x", headers={"content-type": "text/csv"})
        )

        result = http.get("/export")

        assert result.data == "id,title\n1,x"
        assert result.error is None

    @respx.mock
    def test_empty_json_body(self, http):
        respx.delete(host="test.local", path="/api/tasks/t1").mock(
            return_value=httpx.Response(200, content=b"", headers={"content-type": "application/json"})
        )

        result = http.delete("/tasks/t1")

        assert result.ok
        assert result.data is None

    @respx.mock
    def test_error_uses_server_message(self, http):
        respx.get(host="test.local", path="/api/tasks/missing").mock(
            return_value=httpx.Response(404, json={"error": "Task not found"})
        )

        result = http.get("/tasks/missing")

        assert result.error == "Task not found"
        assert result.status == 404
        assert result.data is None

    @respx.mock
    def test_error_without_message_is_synthesized(self, http):
        respx.get(host="test.local", path="/api/tasks").mock(
            return_value=httpx.Response(500, text="boom", headers={"content-type": "text/plain"})
        )

        result = http.get("/tasks")

        assert result.error == "HTTP 500: Internal Server Error"
        assert result.status == 500

    @respx.mock
    def test_json_error_without_error_field(self, http):
        respx.get(host="test.local", path="/api/tasks").mock(
            return_value=httpx.Response(403, json={"detail": "nope"})
        )

        result = http.get("/tasks")

        assert result.error == "HTTP 403: Forbidden"

    @respx.mock
    def test_timeout(self, http):
        respx.get(host="test.local", path="/api/tasks").mock(side_effect=httpx.ReadTimeout)

        result = http.get("/tasks", timeout=0.01)

        assert result.error == TIMEOUT_ERROR == "Request timeout"
        assert result.data is None
        assert result.status == 0

    @respx.mock
    def test_transport_failure_has_status_zero(self, http):
        respx.get(host="test.local", path="/api/tasks").mock(side_effect=httpx.ConnectError)

        result = http.get("/tasks")

        assert result.status == 0
        assert result.error
        assert result.data is None

    @respx.mock
    def test_single_attempt(self, http):
        route = respx.get(host="test.local", path="/api/tasks").mock(
            return_value=httpx.Response(503, json={"error": "Unavailable"})
        )

        http.get("/tasks")

        assert route.call_count == 1


# -------------------------
# handle_api_response
# -------------------------

class TestHandleApiResponse:

    def test_returns_data(self):
        assert handle_api_response(ApiResult(status=200, data={"a": 1})) == {"a": 1}

    def test_raises_on_error(self):
        with pytest.raises(ApiError) as exc_info:
            handle_api_response(ApiResult(status=401, error="Unauthorized"))

        assert exc_info.value.status == 401
        assert str(exc_info.value) == "Unauthorized"


# -------------------------
# Async wrapper
# -------------------------

@pytest.mark.asyncio
class TestAsyncHttpClient:

    @respx.mock
    async def test_get_query_string(self):
        route = respx.get(host="test.local", path="/api/tasks").mock(
            return_value=httpx.Response(200, json=[])
        )
        client = AsyncHttpClient(base_url=BASE_URL, auth=AuthTokenManager(StaticTokenProvider("tok")))

        result = await client.get("/tasks", params={"status": "pending", "limit": None})
        await client.close()

        assert result.ok
        assert route.calls.last.request.url.query == b"status=pending"
        assert route.calls.last.request.headers["Authorization"] == "Bearer tok"

    @respx.mock
    async def test_timeout(self):
        respx.get(host="test.local", path="/api/tasks").mock(side_effect=httpx.ConnectTimeout)
        client = AsyncHttpClient(base_url=BASE_URL)

        result = await client.get("/tasks")
        await client.close()

        assert result.error == "Request timeout"
        assert result.data is None

    @respx.mock
    async def test_error_message(self):
        respx.put(host="test.local", path="/api/tasks/t1").mock(
            return_value=httpx.Response(422, json={"error": "Invalid status"})
        )
        client = AsyncHttpClient(base_url=BASE_URL)

        result = await client.put("/tasks/t1", body={"content": {"status": "bogus"}})
        await client.close()

        assert result.status == 422
        assert result.error == "Invalid status"


# -------------------------
# Call deadline
# -------------------------

class TestCallDeadline:
    """The timeout bounds the whole call, including a slowly sent body."""

    def test_per_call_timeout_stops_slow_body(self, slow_server):
        client = HttpClient(base_url=slow_server, api_prefix="")

        started = time.monotonic()
        result = client.get("/slow", timeout=0.5)
        elapsed = time.monotonic() - started
        client.close()

        assert result.error == TIMEOUT_ERROR
        assert result.status == 0
        assert result.data is None
        assert elapsed < 1.5

    def test_client_timeout_stops_slow_body(self, slow_server):
        client = HttpClient(base_url=slow_server, api_prefix="", timeout=0.5)

        started = time.monotonic()
        result = client.get("/slow")
        elapsed = time.monotonic() - started
        client.close()

        assert result.error == TIMEOUT_ERROR
        assert elapsed < 1.5

    def test_slow_body_within_timeout(self, slow_server):
        client = HttpClient(base_url=slow_server, api_prefix="")

        result = client.get("/slow", timeout=5)
        client.close()

        assert result.ok
        assert result.status == 200
        assert result.data == SLOW_BODY.decode()


@pytest.mark.asyncio
class TestAsyncCallDeadline:

    async def test_per_call_timeout_stops_slow_body(self, slow_server):
        client = AsyncHttpClient(base_url=slow_server, api_prefix="")

        started = time.monotonic()
        result = await client.get("/slow", timeout=0.5)
        elapsed = time.monotonic() - started
        await client.close()

        assert result.error == TIMEOUT_ERROR
        assert result.status == 0
        assert elapsed < 1.5

    async def test_client_timeout_stops_slow_body(self, slow_server):
        client = AsyncHttpClient(base_url=slow_server, api_prefix="", timeout=0.5)

        started = time.monotonic()
        result = await client.get("/slow")
        elapsed = time.monotonic() - started
        await client.close()

        assert result.error == TIMEOUT_ERROR
        assert elapsed < 1.5

    async def test_slow_body_within_timeout(self, slow_server):
        client = AsyncHttpClient(base_url=slow_server, api_prefix="")

        result = await client.get("/slow", timeout=5)
        await client.close()

        assert result.data == SLOW_BODY.decode()
