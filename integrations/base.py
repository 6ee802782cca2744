"""
Shared HTTP plumbing for third-party integrations.

Every outbound client (LinkedIn, OpenRouter, AssemblyAI, Resend) goes through
``HTTPIntegration._request`` which provides:
- Exponential backoff retry for timeouts, network errors, 429 and 5xx
- Status-code to exception mapping (401/403, 404, other 4xx)
- Single-attempt mode for calls that must not be repeated (publishing)
"""

import asyncio
import httpx
from typing import Any, Dict, Optional, Type
from core.config import settings
from core.exceptions import (
    IntegrationError,
    NetworkError,
    RateLimitError,
    AuthenticationError,
    ResourceNotFoundError,
)
import logging

logger = logging.getLogger(__name__)


class HTTPIntegration:
    """
    Base class for httpx-based API clients.

    Attributes:
        service_name: Label used in logs and error context
        error_class: Exception raised for non-retryable 4xx responses
        max_retries: Maximum number of attempts for retryable calls
        retry_delay: Initial retry delay in seconds, doubled per attempt
        timeout: Request timeout in seconds
    """

    service_name = "http"
    error_class: Type[IntegrationError] = IntegrationError

    def __init__(
        self,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_delay: float = 1.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self.max_retries = max_retries if max_retries is not None else settings.HTTP_MAX_RETRIES
        self.retry_delay = retry_delay
        # Injected in tests via httpx.MockTransport
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def _context(self, url: str, **extra) -> Dict[str, Any]:
        context = {"service": self.service_name, "url": url}
        context.update(extra)
        return context

    async def _backoff(self, attempt: int, reason: str):
        delay = self.retry_delay * (2 ** attempt)
        logger.warning(
            f"{self.service_name}: {reason}. Retrying in {delay} seconds "
            f"(attempt {attempt + 1}/{self.max_retries})"
        )
        await asyncio.sleep(delay)

    async def _request(
        self,
        method: str,
        url: str,
        retry: bool = True,
        **kwargs
    ) -> httpx.Response:
        """
        Make an HTTP request with retry logic and exponential backoff.

        Args:
            method: HTTP method
            url: Request URL
            retry: When False the request is sent exactly once
            **kwargs: Passed through to ``httpx.AsyncClient.request``

        Returns:
            HTTP response with a 2xx status

        Raises:
            AuthenticationError: 401/403
            ResourceNotFoundError: 404
            RateLimitError: 429 after the last attempt
            NetworkError: 5xx, timeout or connection failure after the last attempt
            IntegrationError: any other 4xx (as ``error_class``)
        """
        attempts = self.max_retries if retry else 1
        last_attempt = attempts - 1

        async with self._client() as client:
            for attempt in range(attempts):
                try:
                    logger.debug(f"{self.service_name}: {method} {url} attempt {attempt + 1}/{attempts}")
                    response = await client.request(method, url, **kwargs)

                except httpx.TimeoutException as e:
                    if attempt < last_attempt:
                        await self._backoff(attempt, "request timeout")
                        continue
                    raise NetworkError(
                        f"{self.service_name} request timed out",
                        context=self._context(url, timeout=self.timeout, retry_count=attempt + 1),
                        original_exception=e
                    )

                except httpx.TransportError as e:
                    if attempt < last_attempt:
                        await self._backoff(attempt, f"network error {type(e).__name__}")
                        continue
                    raise NetworkError(
                        f"{self.service_name} network error",
                        context=self._context(url, retry_count=attempt + 1),
                        original_exception=e
                    )

                status = response.status_code

                if status in (401, 403):
                    raise AuthenticationError(
                        f"{self.service_name} authentication failed",
                        context=self._context(url, status_code=status, response_body=response.text[:500])
                    )

                if status == 404:
                    raise ResourceNotFoundError(
                        f"{self.service_name} resource not found",
                        context=self._context(url, status_code=status)
                    )

                if status == 429:
                    retry_after = _parse_retry_after(response, self.retry_delay * (2 ** attempt))
                    if attempt < last_attempt:
                        logger.warning(f"{self.service_name}: rate limited. Retrying after {retry_after} seconds")
                        await asyncio.sleep(retry_after)
                        continue
                    raise RateLimitError(
                        f"{self.service_name} rate limit exceeded",
                        context=self._context(url, status_code=status, retry_count=attempt + 1),
                        retry_after=int(retry_after)
                    )

                if status >= 500:
                    if attempt < last_attempt:
                        await self._backoff(attempt, f"server error {status}")
                        continue
                    raise NetworkError(
                        f"{self.service_name} server error {status}",
                        context=self._context(
                            url,
                            status_code=status,
                            retry_count=attempt + 1,
                            response_body=response.text[:500]
                        )
                    )

                if status >= 400:
                    raise self.error_class(
                        f"{self.service_name} request failed with status {status}",
                        context=self._context(url, status_code=status, response_body=response.text[:500])
                    )

                return response

        raise self.error_class(
            f"{self.service_name} request failed",
            context=self._context(url)
        )

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise self.error_class(
                f"{self.service_name} returned invalid JSON",
                context=self._context(str(response.request.url), response_body=response.text[:500]),
                original_exception=e
            )


def _parse_retry_after(response: httpx.Response, default: float) -> float:
    value = response.headers.get("Retry-After")
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default
