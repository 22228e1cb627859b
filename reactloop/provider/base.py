"""Base provider with shared HTTP, retry, and logging logic.

This module provides the abstract base class for chat model adapters. It
handles authentication, HTTP-level retries for transient failures, and raw
request logging. Subclasses translate messages to and from one wire format.
"""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING, Any
from urllib.parse import urlparse

import httpx

from reactloop.config.schema import AuthMethod, ProviderConfig
from reactloop.core.errors import ProviderError
from reactloop.core.types import Message, StreamEvent
from reactloop.core.utils import calculate_backoff

if TYPE_CHECKING:
    from reactloop.core.interfaces import RawLogCallback

logger = logging.getLogger(__name__)

# Hosts that are considered safe for HTTP (non-HTTPS) connections
_LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1", "::1", "[::1]"})

# Maximum size for error response bodies kept in error messages
MAX_ERROR_BODY_SIZE: int = 10 * 1024  # 10 KB

MAX_RETRY_DELAY = 10.0  # Maximum delay between HTTP retries in seconds
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def validate_base_url(url: str, allow_insecure: bool = False) -> None:
    """Validate a provider base_url.

    Rules:
    - HTTPS URLs are always allowed
    - HTTP URLs are only allowed for loopback addresses unless allow_insecure
    - Other schemes (file://, ftp://, etc.) are rejected

    Raises:
        ProviderError: If the URL fails validation.
    """
    if not url:
        raise ProviderError("Provider base_url cannot be empty")

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    host = parsed.hostname or ""

    if scheme == "https":
        return

    if scheme == "http":
        if allow_insecure or host.lower() in _LOOPBACK_HOSTS:
            return
        raise ProviderError(
            f"HTTP base_url '{url}' is not allowed. Use HTTPS, or http://localhost "
            "for local development. Set allow_insecure_http=true to override."
        )

    if not scheme:
        raise ProviderError(
            f"Provider base_url '{url}' must include a scheme (https:// or http://)"
        )

    raise ProviderError(
        f"Provider base_url scheme '{scheme}' is not allowed. Use https:// or http://localhost."
    )


class BaseProvider(ABC):
    """Abstract base class for chat model adapters.

    Provides shared functionality:
    - API key resolution from environment
    - HTTP header building based on auth_method
    - Request retry logic with exponential backoff
    - Raw logging callbacks

    Subclasses implement:
    - _build_endpoint(): API endpoint URL
    - _build_request_body(): Convert messages to provider format
    - _parse_response(): Convert response to Message
    - _parse_stream(): Convert SSE to StreamEvents
    """

    def __init__(
        self,
        config: ProviderConfig,
        model_id: str,
        raw_log: RawLogCallback | None = None,
        reasoning: bool = False,
        max_tokens: int | None = None,
    ) -> None:
        """Initialize the provider.

        Raises:
            ProviderError: If auth is required but API key is not set,
                or if base_url fails validation.
        """
        self._config = config
        validate_base_url(config.base_url, allow_insecure=config.allow_insecure_http)

        self._api_key = self._get_api_key()
        self._base_url = config.base_url.rstrip("/")
        self._model = model_id
        self._raw_log = raw_log
        self._reasoning = reasoning
        self._max_tokens = max_tokens

        self._timeout = config.request_timeout
        self._max_retries = config.max_retries
        self._retry_backoff = config.retry_backoff

        # Lazily created, instance-owned
        self._client: httpx.AsyncClient | None = None

    @property
    def model_id(self) -> str:
        return self._model

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client (reused for connection pooling)."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client. Safe to call multiple times."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_api_key(self) -> str | None:
        """Get the API key from environment, or None if auth not required.

        Raises:
            ProviderError: If auth is required but env var is not set.
        """
        if self._config.auth_method == AuthMethod.NONE:
            return None

        api_key = os.environ.get(self._config.api_key_env)
        if not api_key:
            raise ProviderError(
                f"API key not found. Set the {self._config.api_key_env} environment variable."
            )
        return api_key

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        headers.update(self._config.extra_headers)

        if self._api_key:
            match self._config.auth_method:
                case AuthMethod.BEARER:
                    headers["Authorization"] = f"Bearer {self._api_key}"
                case AuthMethod.API_KEY:
                    headers["api-key"] = self._api_key
                case AuthMethod.NONE:
                    pass

        return headers

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Exponential backoff using the config multiplier plus 0-1s jitter."""
        return calculate_backoff(attempt, 1.0, self._retry_backoff, MAX_RETRY_DELAY)

    def _is_retryable_error(self, status_code: int) -> bool:
        return status_code in RETRYABLE_STATUS_CODES

    def _check_status(self, status_code: int, body: bytes) -> ProviderError | None:
        """Map an HTTP error status to a ProviderError.

        Returns None for success. Retryable statuses return the error so the
        caller can decide whether to retry; other errors are raised.
        """
        if status_code < 400:
            return None
        if status_code == 401:
            raise ProviderError("Authentication failed. Check your API key.")
        if status_code == 403:
            raise ProviderError("Access forbidden. Check your API permissions.")
        if status_code == 404:
            raise ProviderError("API endpoint not found. Check your configuration.")

        detail = body[:MAX_ERROR_BODY_SIZE].decode(errors="replace")
        error = ProviderError(f"API request failed with status {status_code}: {detail}")
        if self._is_retryable_error(status_code):
            return error
        raise error

    async def _make_request(self, url: str, body: dict[str, Any]) -> dict[str, Any]:
        """Make a non-streaming HTTP request with retries.

        Raises:
            ProviderError: On failure after all retries.
        """
        if self._raw_log:
            self._raw_log.on_request(url, body)

        attempts = self._max_retries + 1
        for attempt in range(attempts):
            try:
                client = await self._ensure_client()
                response = await client.post(url, headers=self._build_headers(), json=body)

                error = self._check_status(response.status_code, response.content)
                if error is not None:
                    if attempt + 1 < attempts:
                        delay = self._calculate_retry_delay(attempt)
                        logger.warning("%s; retrying in %.1fs", error.message, delay)
                        await asyncio.sleep(delay)
                        continue
                    raise error

                try:
                    data = response.json()
                except ValueError as e:
                    raise ProviderError(f"API returned invalid JSON: {e}") from e

                if self._raw_log:
                    self._raw_log.on_response(response.status_code, data)
                return data

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                if attempt + 1 < attempts:
                    delay = self._calculate_retry_delay(attempt)
                    logger.warning("Network error (%s); retrying in %.1fs", e, delay)
                    await asyncio.sleep(delay)
                    continue
                raise self._network_error(e, attempts) from e
            except httpx.HTTPError as e:
                raise ProviderError(f"HTTP error occurred: {e}") from e

        raise ProviderError(f"Request failed after {attempts} attempts")

    async def _make_streaming_request(
        self,
        url: str,
        body: dict[str, Any],
    ) -> AsyncIterator[httpx.Response]:
        """Make a streaming HTTP request with retries.

        Retries happen only before the response starts streaming.

        Raises:
            ProviderError: On failure after all retries.
        """
        if self._raw_log:
            self._raw_log.on_request(url, body)

        attempts = self._max_retries + 1
        for attempt in range(attempts):
            try:
                client = await self._ensure_client()
                async with client.stream(
                    "POST", url, headers=self._build_headers(), json=body,
                ) as response:
                    if response.status_code >= 400:
                        error = self._check_status(response.status_code, await response.aread())
                        if error is not None:
                            if attempt + 1 < attempts:
                                delay = self._calculate_retry_delay(attempt)
                                logger.warning("%s; retrying in %.1fs", error.message, delay)
                                await asyncio.sleep(delay)
                                continue
                            raise error

                    yield response
                    return

            except (httpx.ConnectError, httpx.TimeoutException) as e:
                if attempt + 1 < attempts:
                    delay = self._calculate_retry_delay(attempt)
                    logger.warning("Network error (%s); retrying in %.1fs", e, delay)
                    await asyncio.sleep(delay)
                    continue
                raise self._network_error(e, attempts) from e
            except httpx.HTTPError as e:
                raise ProviderError(f"HTTP error occurred: {e}") from e

        raise ProviderError(f"Request failed after {attempts} attempts")

    @staticmethod
    def _network_error(error: Exception, attempts: int) -> ProviderError:
        if isinstance(error, httpx.ConnectError):
            return ProviderError(f"Failed to connect to API after {attempts} attempts: {error}")
        return ProviderError(f"API request timed out after {attempts} attempts: {error}")

    # Abstract methods for subclasses to implement

    @abstractmethod
    def _build_endpoint(self, stream: bool = False) -> str:
        ...

    @abstractmethod
    def _build_request_body(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None,
        stream: bool,
    ) -> dict[str, Any]:
        ...

    @abstractmethod
    def _parse_response(self, data: dict[str, Any], elapsed: float) -> Message:
        ...

    @abstractmethod
    def _parse_stream(
        self, response: httpx.Response, started: float
    ) -> AsyncIterator[StreamEvent]:
        ...

    # Concrete implementations using abstract methods

    async def complete(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
    ) -> Message:
        """Perform a non-streaming completion.

        Raises:
            ProviderError: If the API request fails.
        """
        url = self._build_endpoint(stream=False)
        body = self._build_request_body(messages, tools, stream=False)

        started = asyncio.get_running_loop().time()
        data = await self._make_request(url, body)
        return self._parse_response(data, asyncio.get_running_loop().time() - started)

    async def stream(
        self,
        messages: list[Message],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream response with content and tool call detection.

        Yields:
            StreamEvent subclasses (ContentDelta, ReasoningDelta,
            ToolCallStarted, StreamComplete).

        Raises:
            ProviderError: If the API request fails.
        """
        url = self._build_endpoint(stream=True)
        body = self._build_request_body(messages, tools, stream=True)

        started = asyncio.get_running_loop().time()
        async for response in self._make_streaming_request(url, body):
            async for event in self._parse_stream(response, started):
                yield event
