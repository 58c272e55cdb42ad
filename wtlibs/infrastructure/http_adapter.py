"""HTTP Off-Chain Adapter — documents served over `http://` and `https://` via httpx.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, connection): max `max_retries` retries with exponential backoff
    - Timeouts and client errors (4xx except 404/429): immediate failure, no retry
    - download() maps 404 to None (absent document), everything else to OffChainStorageError

Design Decisions:
    - Shared httpx.AsyncClient injected through registration options: adapters are built
      per pointer, the connection pool is owned by whoever configured the registry
    - ±25% jitter on backoff: prevents thundering herd on shared document hosts
"""

import asyncio
import logging
import random

import httpx

from wtlibs.core.errors import ErrorContext, OffChainStorageError

logger = logging.getLogger(__name__)

SCHEMES = ("http", "https")


class HttpAdapter:
    """OffChainDataAdapter over plain HTTP(S) with retry, backoff and error mapping."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        upload_url: str | None = None,
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 10_000,
    ):
        self.client = client
        self.upload_url = upload_url
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    @classmethod
    def create(cls, options: dict) -> "HttpAdapter":
        return cls(**options)

    async def download(self, uri: str) -> dict | None:
        response = await self._request(
            "GET", uri, operation="download", allow_not_found=True,
        )
        if response is None:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise OffChainStorageError(
                "response is not valid JSON", "download", ErrorContext(ref=uri),
            ) from e

    async def upload(self, data: dict) -> str:
        if not self.upload_url:
            raise OffChainStorageError("no upload url configured", "upload")
        response = await self._request(
            "POST", self.upload_url, operation="upload", payload=data,
        )
        return self._uri_from_response(response, "upload")

    async def update(self, uri: str, data: dict) -> str:
        response = await self._request(
            "PUT", uri, operation="update", payload=data,
        )
        return self._uri_from_response(response, "update", default=uri)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        operation: str,
        payload: dict | None = None,
        allow_not_found: bool = False,
    ) -> httpx.Response | None:
        context = ErrorContext(ref=url)
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.request(method, url, json=payload)
            except httpx.TimeoutException as e:
                raise OffChainStorageError(
                    f"timeout: {e}", operation, context,
                ) from e
            except httpx.TransportError as e:
                await self._handle_transient_error(e, attempt, operation, context)
                continue

            status = response.status_code
            if allow_not_found and status == 404:
                return None
            if status == 429:
                await self._handle_rate_limit(response, attempt, operation, context)
                continue
            if status >= 500:
                await self._handle_transient_error(
                    f"HTTP {status}", attempt, operation, context,
                )
                continue
            if response.is_error:
                raise OffChainStorageError(f"HTTP {status}", operation, context)
            logger.debug(
                f"{method} {url} -> {status}",
                extra={"ref": url, "operation": operation, "attempt": attempt + 1},
            )
            return response

    async def _handle_rate_limit(
        self,
        response: httpx.Response,
        attempt: int,
        operation: str,
        context: ErrorContext,
    ) -> None:
        """Handle rate limit with retry or raise."""
        if attempt >= self.max_retries:
            raise OffChainStorageError(
                "rate limit exceeded after retries", operation, context,
            )
        delay = self._extract_retry_after(response) or self._backoff(attempt)
        logger.warning(
            f"Rate limit hit, retry after {delay}ms (attempt {attempt + 1})",
            extra={"ref": context.ref, "attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    async def _handle_transient_error(
        self,
        e: object,
        attempt: int,
        operation: str,
        context: ErrorContext,
    ) -> None:
        """Handle transient errors with retry or raise."""
        if attempt >= self.max_retries:
            raise OffChainStorageError(
                f"transient failure after {self.max_retries} retries: {e}",
                operation, context,
            )
        delay = self._backoff(attempt)
        logger.warning(
            f"Transient error, retry after {delay}ms: {e}",
            extra={"ref": context.ref, "attempt": attempt + 1},
        )
        await asyncio.sleep(delay / 1000)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, response: httpx.Response) -> int | None:
        """Retry-After header in milliseconds (seconds form only)."""
        val = response.headers.get("retry-after")
        if val and val.isdigit():
            return int(val) * 1000
        return None

    def _uri_from_response(
        self, response: httpx.Response, operation: str, default: str | None = None,
    ) -> str:
        """Document URI from a `{"uri": ...}` body or a Location header."""
        if response.content:
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("uri"):
                return body["uri"]
        location = response.headers.get("location")
        if location:
            return str(response.request.url.join(location))
        if default:
            return default
        raise OffChainStorageError(
            "response carries no document uri", operation,
            ErrorContext(ref=str(response.request.url)),
        )
