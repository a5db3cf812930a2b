"""Pluggable HTTP GET transport."""

from typing import Protocol

import httpx

from configcat.constants import DEFAULT_REQUEST_TIMEOUT_SECONDS
from configcat.fetch.models import HttpResponse


class HttpTransportError(Exception):
    """Raised by an HTTP getter when no response could be obtained.

    Covers connection failures, DNS failures, and timeouts.
    """


class HttpGetter(Protocol):
    """Protocol for the HTTP GET collaborator.

    Substitutable so tests and host applications can supply their own client.
    """

    def get(self, url: str, headers: dict[str, str]) -> HttpResponse:
        """Perform an HTTP GET.

        Args:
            url: URL to fetch.
            headers: Request headers.

        Returns:
            The HTTP response, whatever its status.

        Raises:
            HttpTransportError: If no response could be obtained.
        """
        ...


class HttpxGetter:
    """HTTP getter backed by httpx."""

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the getter.

        Args:
            timeout_seconds: Request timeout in seconds.
            transport: Optional httpx transport override.
        """
        self._timeout = timeout_seconds
        self._transport = transport

    def get(self, url: str, headers: dict[str, str]) -> HttpResponse:
        try:
            with httpx.Client(
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = client.get(url, headers=headers)
                return HttpResponse(
                    status_code=response.status_code,
                    body=response.content,
                    headers=dict(response.headers),
                )
        except httpx.TimeoutException as e:
            msg = f"Request timed out: {e}"
            raise HttpTransportError(msg) from e
        except httpx.TransportError as e:
            msg = f"Connection failed: {e}"
            raise HttpTransportError(msg) from e
