"""Transport protocol for the session client.

The transport owns framing, JSON-RPC id correlation and the wire itself. The
session only relies on the contract below.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol


class ServerRequestFnT(Protocol):
    """Handles a request initiated by the server.

    The returned mapping becomes the JSON-RPC result. Raising
    ``McpError`` produces a JSON-RPC error response.
    """

    async def __call__(self, method: str, params: dict[str, Any] | None) -> dict[str, Any]: ...


class ServerNotificationFnT(Protocol):
    async def __call__(self, method: str, params: dict[str, Any] | None) -> None: ...


class ClientTransport(Protocol):
    """Protocol for MCP client transports.

    ``send_request`` sends one request and waits for its matching response.
    It raises ``McpError`` when the peer answers with a JSON-RPC error; any
    other exception is treated as a transport failure.
    """

    @property
    def session_id(self) -> str | None: ...

    async def start(self) -> None: ...

    async def send_request(self, method: str, params: dict[str, Any] | None) -> dict[str, Any]: ...

    async def send_notification(self, method: str, params: dict[str, Any] | None) -> None: ...

    def set_request_handler(self, handler: ServerRequestFnT) -> None: ...

    def set_notification_handler(self, handler: ServerNotificationFnT) -> None: ...

    def on_close(self, callback: Callable[[], None]) -> None: ...

    def on_error(self, callback: Callable[[Exception], None]) -> None: ...

    async def close(self) -> None: ...


TransportFactory = Callable[[], ClientTransport]
