from collections.abc import Callable
from typing import Any

import anyio
import anyio.lowlevel
import pytest

from mcp_elicit.client.transport import ServerNotificationFnT, ServerRequestFnT
from mcp_elicit.types import LATEST_PROTOCOL_VERSION

INITIALIZE_RESULT: dict[str, Any] = {
    "protocolVersion": LATEST_PROTOCOL_VERSION,
    "capabilities": {"tools": {}, "resources": {"listChanged": True}},
    "serverInfo": {"name": "mock-server", "version": "0.1.0"},
}


@pytest.fixture
def anyio_backend():
    return "asyncio"


class HeldRequest:
    """A request the fake server answers later, from the test body."""

    def __init__(self, method: str, params: dict[str, Any] | None) -> None:
        self.method = method
        self.params = params
        self._answered = anyio.Event()
        self._result: dict[str, Any] | None = None
        self._error: Exception | None = None

    def respond(self, result: dict[str, Any]) -> None:
        self._result = result
        self._answered.set()

    def fail(self, error: Exception) -> None:
        self._error = error
        self._answered.set()

    async def wait(self) -> dict[str, Any]:
        await self._answered.wait()
        if self._error is not None:
            raise self._error
        assert self._result is not None
        return self._result


class FakeTransport:
    """Scripted in-memory transport.

    Methods listed in ``responses`` are answered immediately (an Exception
    value is raised instead). Every other request is held until the test
    answers it through ``held``.
    """

    def __init__(
        self,
        *,
        session_id: str | None = "session-1",
        start_error: Exception | None = None,
        close_error: Exception | None = None,
    ) -> None:
        self._session_id = session_id
        self.start_error = start_error
        self.close_error = close_error
        self.responses: dict[str, dict[str, Any] | Exception] = {"initialize": INITIALIZE_RESULT}
        self.requests: list[tuple[str, dict[str, Any] | None]] = []
        self.notifications: list[tuple[str, dict[str, Any] | None]] = []
        self.held: list[HeldRequest] = []
        self.started = False
        self.closed = False
        self.request_handler: ServerRequestFnT | None = None
        self.notification_handler: ServerNotificationFnT | None = None
        self.close_callback: Callable[[], None] | None = None
        self.error_callback: Callable[[Exception], None] | None = None

    @property
    def session_id(self) -> str | None:
        return self._session_id

    async def start(self) -> None:
        await anyio.lowlevel.checkpoint()
        if self.start_error is not None:
            raise self.start_error
        self.started = True

    async def send_request(self, method: str, params: dict[str, Any] | None) -> dict[str, Any]:
        self.requests.append((method, params))
        if method in self.responses:
            await anyio.lowlevel.checkpoint()
            response = self.responses[method]
            if isinstance(response, Exception):
                raise response
            return response

        held = HeldRequest(method, params)
        self.held.append(held)
        return await held.wait()

    async def send_notification(self, method: str, params: dict[str, Any] | None) -> None:
        await anyio.lowlevel.checkpoint()
        self.notifications.append((method, params))

    def set_request_handler(self, handler: ServerRequestFnT) -> None:
        self.request_handler = handler

    def set_notification_handler(self, handler: ServerNotificationFnT) -> None:
        self.notification_handler = handler

    def on_close(self, callback: Callable[[], None]) -> None:
        self.close_callback = callback

    def on_error(self, callback: Callable[[Exception], None]) -> None:
        self.error_callback = callback

    async def close(self) -> None:
        await anyio.lowlevel.checkpoint()
        self.closed = True
        if self.close_error is not None:
            raise self.close_error

    # Server side helpers

    def calls(self, method: str) -> int:
        return sum(1 for m, _ in self.requests if m == method)

    async def server_request(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        assert self.request_handler is not None
        return await self.request_handler(method, params)

    async def server_notify(self, method: str, params: dict[str, Any] | None = None) -> None:
        assert self.notification_handler is not None
        await self.notification_handler(method, params)

    def peer_closed(self) -> None:
        assert self.close_callback is not None
        self.close_callback()

    async def wait_for_held(self, count: int) -> list[HeldRequest]:
        with anyio.fail_after(2):
            while len(self.held) < count:
                await anyio.sleep(0)
        return self.held


class FakeTransportFactory:
    def __init__(self, transport: FakeTransport) -> None:
        self.transport = transport
        self.created = 0

    def __call__(self) -> FakeTransport:
        self.created += 1
        return self.transport


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def transport_factory(transport: FakeTransport) -> FakeTransportFactory:
    return FakeTransportFactory(transport)
