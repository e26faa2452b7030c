"""HTTP client for the Colater API.

Used by the stdio MCP server to forward tool calls to the HTTP server with
the configured brand-scoped key.
"""

from __future__ import annotations

import asyncio
import json
from types import TracebackType
from typing import Any

import httpx
import structlog

from colater_mcp.errors import (
    BrandNotFoundError,
    ColaterError,
    CredentialNotFoundError,
    InsufficientPermissionsError,
    InternalError,
    UpstreamRateLimitedError,
    UpstreamUnavailableError,
    ValidationFailedError,
    error_from_payload,
)

logger = structlog.get_logger()

TOOLS_CALL_PATH = "/v1/mcp/tools/call"

_DEFAULT_ERROR_BY_STATUS: dict[int, type[ColaterError]] = {
    400: ValidationFailedError,
    401: CredentialNotFoundError,
    403: InsufficientPermissionsError,
    404: BrandNotFoundError,
    429: UpstreamRateLimitedError,
}


def _parse_retry_after(value: str | None) -> float | None:
    if not value:
        return None
    try:
        return max(float(value), 0.0)
    except ValueError:
        return None


def raise_for_error_response(response: httpx.Response) -> None:
    """Raise the ColaterError matching an HTTP error response."""
    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}
    if "error" not in payload:
        payload = {"error": {"message": f"HTTP {response.status_code}"}}

    status = response.status_code
    if status >= 500:
        default = UpstreamUnavailableError
    else:
        default = _DEFAULT_ERROR_BY_STATUS.get(status, InternalError)

    error = error_from_payload(payload, status_code=status, default=default)
    if isinstance(error, UpstreamRateLimitedError):
        retry_after = _parse_retry_after(response.headers.get("Retry-After"))
        if retry_after is not None:
            error.retry_after = retry_after
            error.details.setdefault("retry_after", retry_after)
    raise error


def unwrap_envelope(envelope: dict[str, Any]) -> Any:
    """Return the result carried by a tool-call envelope.

    Raises:
        ColaterError: If the envelope is an error envelope
    """
    content = envelope.get("content") or []
    if not content or not isinstance(content[0], dict):
        raise InternalError("Empty tool response")
    try:
        payload = json.loads(content[0].get("text") or "null")
    except ValueError as e:
        raise InternalError("Tool response is not valid JSON") from e

    if envelope.get("isError"):
        raise error_from_payload(payload if isinstance(payload, dict) else {})
    return payload


class ColaterClient:
    """Async client for the Colater tool endpoint.

    Wraps httpx.AsyncClient with:
    - Bearer authentication with the configured key
    - Error response mapping to ColaterError
    - Retries with capped exponential backoff for transient failures
    """

    def __init__(
        self,
        endpoint_url: str,
        api_key: str,
        *,
        timeout: float = 30.0,
        max_retries: int = 2,
    ) -> None:
        self._base_url = endpoint_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries
        self._client: httpx.AsyncClient | None = None
        self._log = logger.bind(component="client")

    @staticmethod
    def _is_retryable_status(status_code: int) -> bool:
        return status_code == 429 or 500 <= status_code <= 599

    @staticmethod
    def _retry_delay_seconds(attempt: int) -> float:
        # attempt is zero-based retry attempt index
        return min(0.2 * (2**attempt), 1.5)

    async def __aenter__(self) -> ColaterClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(self._timeout),
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "User-Agent": "colater-mcp",
            },
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the underlying httpx client."""
        if self._client is None:
            raise RuntimeError("ColaterClient not initialized. Use 'async with' context.")
        return self._client

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> Any:
        """Call a tool on the server and return its result.

        Raises:
            ColaterError: Mapped from the HTTP status or the error envelope
        """
        response = await self._post(TOOLS_CALL_PATH, {"name": name, "arguments": arguments})
        if response.status_code >= 400:
            raise_for_error_response(response)
        try:
            envelope = response.json()
        except ValueError as e:
            raise UpstreamUnavailableError("Colater API returned a non-JSON response") from e
        return unwrap_envelope(envelope)

    async def _post(self, path: str, body: dict[str, Any]) -> httpx.Response:
        max_attempts = self._max_retries + 1

        for attempt in range(max_attempts):
            try:
                response = await self.client.post(path, json=body)
            except (httpx.TimeoutException, httpx.TransportError) as e:
                if attempt < max_attempts - 1:
                    self._log.debug("client.retry", path=path, attempt=attempt, error=str(e))
                    await asyncio.sleep(self._retry_delay_seconds(attempt))
                    continue
                self._log.warning("client.network_error", path=path, error=str(e))
                raise UpstreamUnavailableError(
                    f"Network error: {e.__class__.__name__}",
                    details={"endpoint": self._base_url},
                ) from e

            self._log.debug("client.response", path=path, status=response.status_code)
            if attempt < max_attempts - 1 and self._is_retryable_status(response.status_code):
                await asyncio.sleep(self._retry_delay_seconds(attempt))
                continue
            return response

        # Loop always returns or raises
        raise RuntimeError("HTTP request attempt loop exhausted unexpectedly")
