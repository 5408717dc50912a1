# zephyr/http.py
"""
Zephyr HTTP Client

Thin REST wrapper around httpx used by every resource client.

Every call returns an ApiResult instead of raising:
- transport failures come back with status 0
- timeouts come back with error "Request timeout" and status 0; the
  timeout bounds the whole call, not each socket read
- non-2xx responses carry the server's `error` message when it sends one

Calls are made once; retry policy belongs to the caller.
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlencode

import httpx

from .auth import AuthTokenManager

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
TIMEOUT_ERROR = "Request timeout"


class ApiError(Exception):
    """An API call that came back with an error."""

    def __init__(self, message: str, status: int = 0):
        super().__init__(message)
        self.message = message
        self.status = status

    def __repr__(self) -> str:
        return f"ApiError(status={self.status}, message={self.message!r})"


@dataclass
class ApiResult:
    """Uniform result of a single API call."""
    status: int
    data: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def handle_api_response(result: ApiResult) -> Any:
    """Return the data of a result, raising ApiError if it carries an error."""
    if result.error is not None:
        raise ApiError(result.error, result.status)
    return result.data


def _query_value(value: Any) -> str:
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_query_value(v) for v in value)
    return str(value)


def build_query_string(params: Optional[Mapping[str, Any]]) -> str:
    """URL-encode params, skipping keys whose value is None."""
    if not params:
        return ""
    pairs = [(key, _query_value(value)) for key, value in params.items() if value is not None]
    return urlencode(pairs)


def _error_message(response: httpx.Response) -> str:
    message = f"HTTP {response.status_code}: {response.reason_phrase}"
    if "application/json" not in response.headers.get("content-type", ""):
        return message
    try:
        payload = response.json()
    except ValueError:
        return message
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return message


def parse_response(response: httpx.Response) -> ApiResult:
    """Convert an httpx response into an ApiResult."""
    if not response.is_success:
        return ApiResult(status=response.status_code, error=_error_message(response))

    if "application/json" in response.headers.get("content-type", ""):
        if not response.content:
            return ApiResult(status=response.status_code, data=None)
        try:
            return ApiResult(status=response.status_code, data=response.json())
        except ValueError as e:
            return ApiResult(status=response.status_code, error=f"Invalid JSON response: {e}")

    return ApiResult(status=response.status_code, data=response.text)


def _check_deadline(deadline: float, request: httpx.Request) -> None:
    if time.monotonic() > deadline:
        raise httpx.ReadTimeout("Call exceeded its timeout", request=request)


class _BaseHttpClient:
    """Shared request building for the sync and async clients."""

    def __init__(
        self,
        base_url: str,
        api_prefix: str = "/api",
        auth: Optional[AuthTokenManager] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix
        self.auth = auth
        self.timeout = timeout

    def build_url(self, endpoint: str, params: Optional[Mapping[str, Any]] = None) -> str:
        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"
        url = f"{self.base_url}{self.api_prefix}{endpoint}"
        query = build_query_string(params)
        if query:
            url = f"{url}?{query}"
        return url

    @staticmethod
    def _merge_headers(
        auth_headers: Dict[str, str],
        headers: Optional[Mapping[str, str]],
    ) -> Dict[str, str]:
        merged = {"Content-Type": "application/json"}
        merged.update(auth_headers)
        if headers:
            merged.update(headers)
        return merged

    @staticmethod
    def _encode_body(method: str, body: Any) -> Optional[bytes]:
        if method.upper() == "GET" or body is None:
            return None
        return json.dumps(body, default=str).encode("utf-8")


class HttpClient(_BaseHttpClient):
    """Synchronous REST wrapper."""

    def __init__(
        self,
        base_url: str,
        api_prefix: str = "/api",
        auth: Optional[AuthTokenManager] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        super().__init__(base_url, api_prefix, auth, timeout)
        self._http = httpx.Client(transport=transport)

    def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        timeout: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> ApiResult:
        url = self.build_url(endpoint, params)
        auth_headers = self.auth.get_auth_headers() if self.auth else {}
        logger.debug(f"{method.upper()} {url}")

        try:
            response = self._send(
                method.upper(),
                url,
                content=self._encode_body(method, body),
                headers=self._merge_headers(auth_headers, headers),
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.TimeoutException:
            logger.warning(f"{method.upper()} {url} timed out")
            return ApiResult(status=0, error=TIMEOUT_ERROR)
        except httpx.HTTPError as e:
            logger.error(f"❌ API request failed: {url}: {e}")
            return ApiResult(status=0, error=str(e) or "Network error")

        result = parse_response(response)
        if not result.ok:
            logger.warning(f"API error {result.status} for {url}: {result.error}")
        return result

    def _send(
        self,
        method: str,
        url: str,
        content: Optional[bytes],
        headers: Dict[str, str],
        timeout: float,
    ) -> httpx.Response:
        """Send a request and read its body before the call's deadline."""
        # httpx applies `timeout` to each phase and each read separately
        deadline = time.monotonic() + timeout
        with self._http.stream(method, url, content=content, headers=headers, timeout=timeout) as response:
            chunks = []
            for chunk in response.iter_raw():
                chunks.append(chunk)
                _check_deadline(deadline, response.request)
            _check_deadline(deadline, response.request)
            return httpx.Response(
                response.status_code,
                headers=response.headers,
                content=b"".join(chunks),
                request=response.request,
                extensions=response.extensions,
            )

    def get(self, endpoint: str, params: Optional[Mapping[str, Any]] = None, **kwargs) -> ApiResult:
        return self.request("GET", endpoint, params=params, **kwargs)

    def post(self, endpoint: str, body: Any = None, **kwargs) -> ApiResult:
        return self.request("POST", endpoint, body=body, **kwargs)

    def put(self, endpoint: str, body: Any = None, **kwargs) -> ApiResult:
        return self.request("PUT", endpoint, body=body, **kwargs)

    def patch(self, endpoint: str, body: Any = None, **kwargs) -> ApiResult:
        return self.request("PATCH", endpoint, body=body, **kwargs)

    def delete(self, endpoint: str, **kwargs) -> ApiResult:
        return self.request("DELETE", endpoint, **kwargs)

    def close(self):
        """Close the underlying HTTP connection pool."""
        self._http.close()


class AsyncHttpClient(_BaseHttpClient):
    """Async REST wrapper on httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str,
        api_prefix: str = "/api",
        auth: Optional[AuthTokenManager] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(base_url, api_prefix, auth, timeout)
        self._http = httpx.AsyncClient(transport=transport)

    async def request(
        self,
        method: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        body: Any = None,
        timeout: Optional[float] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> ApiResult:
        url = self.build_url(endpoint, params)
        # Token refresh may block on the session provider
        auth_headers = await asyncio.to_thread(self.auth.get_auth_headers) if self.auth else {}
        logger.debug(f"{method.upper()} {url}")

        budget = timeout if timeout is not None else self.timeout
        try:
            response = await asyncio.wait_for(
                self._http.request(
                    method.upper(),
                    url,
                    content=self._encode_body(method, body),
                    headers=self._merge_headers(auth_headers, headers),
                    timeout=budget,
                ),
                timeout=budget,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError):
            logger.warning(f"{method.upper()} {url} timed out")
            return ApiResult(status=0, error=TIMEOUT_ERROR)
        except httpx.HTTPError as e:
            logger.error(f"❌ API request failed: {url}: {e}")
            return ApiResult(status=0, error=str(e) or "Network error")

        result = parse_response(response)
        if not result.ok:
            logger.warning(f"API error {result.status} for {url}: {result.error}")
        return result

    async def get(self, endpoint: str, params: Optional[Mapping[str, Any]] = None, **kwargs) -> ApiResult:
        return await self.request("GET", endpoint, params=params, **kwargs)

    async def post(self, endpoint: str, body: Any = None, **kwargs) -> ApiResult:
        return await self.request("POST", endpoint, body=body, **kwargs)

    async def put(self, endpoint: str, body: Any = None, **kwargs) -> ApiResult:
        return await self.request("PUT", endpoint, body=body, **kwargs)

    async def patch(self, endpoint: str, body: Any = None, **kwargs) -> ApiResult:
        return await self.request("PATCH", endpoint, body=body, **kwargs)

    async def delete(self, endpoint: str, **kwargs) -> ApiResult:
        return await self.request("DELETE", endpoint, **kwargs)

    async def close(self):
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()
