"""
HTTP Transport for the hackmud Chat API

This module wraps a single httpx.AsyncClient and provides the one request
primitive the rest of the library builds on. Every endpoint of the chat API
takes a JSON body and answers with JSON.
"""

import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.hackmud.com/mobile"


class HackmudChatError(Exception):
    """Base exception for chat client errors"""
    pass


class ApiError(HackmudChatError):
    """The API answered with a non-success HTTP status"""

    def __init__(self, status: int, body: Any):
        self.status = status
        self.body = body
        super().__init__(f"API request failed with status {status}: {body!r}")


class TransportError(HackmudChatError):
    """Network failure or unreadable response"""
    pass


class ChatTransport:
    """
    Thin JSON-over-HTTP transport

    POST is used when a body is given and GET otherwise. Statuses outside
    [200, 400) raise ApiError carrying the parsed body. There are no retries:
    one call is one network attempt.
    """

    def __init__(self, base_url: str = DEFAULT_BASE_URL, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the shared HTTP client"""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers={'Content-Type': 'application/json'},
                transport=self._transport,
            )
        return self._client

    async def request(self, path: str, body: Optional[Dict[str, Any]] = None) -> Any:
        """Send a request to an API endpoint and return the decoded JSON"""
        url = self.base_url + path
        client = self._get_client()

        try:
            if body is not None:
                # Unset optional fields are left out, never sent as null
                payload = {k: v for k, v in body.items() if v is not None}
                response = await client.post(url, json=payload)
            else:
                response = await client.get(url)
        except httpx.HTTPError as e:
            raise TransportError(f"Request to {path} failed: {e}") from e

        logger.debug(f"{response.request.method} {path} -> {response.status_code}")

        if response.status_code < 200 or response.status_code >= 400:
            try:
                error_body = response.json()
            except ValueError:
                error_body = response.text
            raise ApiError(response.status_code, error_body)

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Malformed JSON from {path}: {e}") from e

    async def close(self) -> None:
        """Close the HTTP client"""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("HTTP client closed")
        self._client = None

    @property
    def is_closed(self) -> bool:
        return self._client is None or self._client.is_closed
