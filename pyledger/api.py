"""Command client for the password ledger backend."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx

from .config import config
from .exceptions import (
    LedgerAPIError,
    LedgerAuthenticationError,
    LedgerCommandError,
    LedgerConfigError,
    LedgerInvalidResponseError,
    LedgerNetworkError,
    LedgerNotFoundError,
    LedgerPermissionError,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class CommandBoundary(Protocol):
    """Request/response calls identified by command name.

    Implementations return the command's value or raise. A command that ran
    and failed raises :class:`LedgerCommandError` with the backend's payload.
    """

    async def invoke(
        self, command: str, args: dict[str, Any] | None = None
    ) -> Any:
        ...


class LedgerClient:
    """HTTP client for the ledger command endpoint.

    Each command is one ``POST {api_url}/invoke/{command}`` whose JSON body is
    the argument bag. The endpoint answers ``{"ok": value}`` on success and
    ``{"error": payload}`` with an error status when the command fails.
    """

    def __init__(
        self,
        api_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the ledger client.

        Args:
            api_url: Optional endpoint URL (uses config if not provided)
            timeout: Request timeout in seconds (uses config if not provided)
            transport: Optional httpx transport, mainly for tests
        """
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.timeout
        self._transport = transport

        if not self.api_url:
            raise LedgerConfigError(
                "API URL not configured. Please set PYLEDGER_API_URL "
                "or run 'pyledger init'."
            )

        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.api_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> LedgerClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _decode_body(self, response: httpx.Response) -> Any:
        """Decode a JSON response body.

        Args:
            response: HTTP response

        Returns:
            Decoded JSON, or None for an empty body

        Raises:
            LedgerInvalidResponseError: If the body is not JSON
        """
        if not response.content:
            return None

        content_type = response.headers.get("Content-Type", "")
        if "application/json" not in content_type:
            raise LedgerInvalidResponseError(
                f"Unexpected response type: {content_type or 'unknown'}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise LedgerInvalidResponseError(
                "Invalid JSON response from ledger endpoint"
            ) from e

    def _handle_error_response(self, command: str, response: httpx.Response) -> None:
        """Raise the exception matching an error response.

        A body carrying an ``error`` payload means the command itself failed;
        the status code is only used when no payload was sent.

        Args:
            command: Command name
            response: HTTP response with an error status

        Raises:
            LedgerCommandError: If the body carries an error payload
            LedgerAPIError: Status-based error otherwise
        """
        status_code = response.status_code

        try:
            body = self._decode_body(response)
        except LedgerInvalidResponseError:
            body = None

        if isinstance(body, dict) and "error" in body:
            raise LedgerCommandError(body["error"], command=command)

        if status_code == 401:
            raise LedgerAuthenticationError("Ledger session is not authorized")
        elif status_code == 403:
            raise LedgerPermissionError("Access forbidden - check your permissions")
        elif status_code == 404:
            raise LedgerNotFoundError(f"Unknown command: {command}")
        raise LedgerAPIError(f"Command '{command}' failed with status {status_code}")

    async def invoke(
        self, command: str, args: dict[str, Any] | None = None
    ) -> Any:
        """Run a command on the ledger backend.

        Args:
            command: Command name (e.g. "list", "read_entry")
            args: Argument bag, sent as the JSON body

        Returns:
            The command's value (None for commands without one)

        Raises:
            LedgerCommandError: If the command reported a failure
            LedgerNetworkError: If the endpoint cannot be reached
            LedgerAPIError: For other protocol errors
        """
        client = self._get_client()
        logger.debug(f"Invoking '{command}'")

        try:
            response = await client.post(f"/invoke/{command}", json=args or {})
        except httpx.RequestError as e:
            raise LedgerNetworkError(f"Network error: {e}") from e

        if response.is_error:
            self._handle_error_response(command, response)

        body = self._decode_body(response)
        if body is None:
            return None
        if not isinstance(body, dict) or "ok" not in body:
            raise LedgerInvalidResponseError(
                f"Malformed response to '{command}': {body!r}"
            )
        return body["ok"]
