from __future__ import annotations

import logging
from enum import Enum
from types import TracebackType
from typing import Any, Protocol, TypeVar

import anyio
from anyio.abc import TaskGroup
from pydantic import AnyUrl, BaseModel, ValidationError
from typing_extensions import Self

from mcp_elicit import types
from mcp_elicit.client.elicitation import ElicitationPresenterFnT, ElicitationPrompt, ElicitationRendezvous
from mcp_elicit.client.notifications import NotificationRouter
from mcp_elicit.client.settings import ClientSettings
from mcp_elicit.client.transport import ClientTransport, TransportFactory
from mcp_elicit.shared.dispatcher import RequestDispatcher
from mcp_elicit.shared.exceptions import (
    HandshakeFailedError,
    McpError,
    NotConnectedError,
    SessionClosedError,
)
from mcp_elicit.shared.logging import configure_logging, get_logger
from mcp_elicit.shared.validation import ResultValidator

logger = get_logger(__name__)

ReceiveResultT = TypeVar("ReceiveResultT", bound=BaseModel)

_SERVER_LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "notice": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "emergency": logging.CRITICAL,
}


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    READY = "ready"
    CLOSING = "closing"
    FAILED = "failed"


class LoggingFnT(Protocol):
    async def __call__(
        self,
        params: types.LoggingMessageNotificationParams,
    ) -> None: ...  # pragma: no branch


class ResourceListChangedFnT(Protocol):
    async def __call__(
        self,
        result: types.ListResourcesResult,
    ) -> None: ...  # pragma: no branch


class SessionManager:
    """
    Owns one MCP session: the transport, the connection state machine, the
    in-flight requests and the pending elicitation.

    This class is an async context manager; the task group it opens on entry
    runs notification handlers in the background. Leaving the context
    disconnects the session.

    Example:
        async with SessionManager(make_transport, elicitation_presenter=show_form) as session:
            await session.connect()
            tools = await session.list_tools()
    """

    def __init__(
        self,
        transport_factory: TransportFactory,
        *,
        settings: ClientSettings | None = None,
        client_info: types.Implementation | None = None,
        elicitation_presenter: ElicitationPresenterFnT | None = None,
        logging_callback: LoggingFnT | None = None,
        resource_list_changed_callback: ResourceListChangedFnT | None = None,
        validator: ResultValidator | None = None,
    ) -> None:
        self._transport_factory = transport_factory
        self._settings = settings or ClientSettings()
        configure_logging(self._settings.log_level)
        self._client_info = client_info or types.Implementation(
            name=self._settings.client_name,
            version=self._settings.client_version,
        )
        self._logging_callback = logging_callback
        self._resource_list_changed_callback = resource_list_changed_callback

        validator = validator or ResultValidator()
        self._dispatcher = RequestDispatcher(validator, strict=self._settings.strict_result_validation)
        self._rendezvous = ElicitationRendezvous(validator, elicitation_presenter)
        self._router = NotificationRouter()

        self._state = ConnectionState.DISCONNECTED
        self._transport: ClientTransport | None = None
        self._session_id: str | None = None
        self._server_info: types.InitializeResult | None = None
        self._task_group: TaskGroup | None = None

        self.resources: types.ListResourcesResult | None = None
        """The latest resource listing fetched after a list_changed notification."""

    async def __aenter__(self) -> Self:
        self._task_group = anyio.create_task_group()
        await self._task_group.__aenter__()
        self._router.attach(self._task_group)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> bool | None:
        await self.disconnect()
        self._router.attach(None)
        task_group, self._task_group = self._task_group, None
        assert task_group is not None
        # Background notification handlers must not keep the session open
        task_group.cancel_scope.cancel()
        return await task_group.__aexit__(exc_type, exc_val, exc_tb)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.READY

    @property
    def session_id(self) -> str | None:
        return self._session_id

    @property
    def server_info(self) -> types.InitializeResult | None:
        """The server's initialize result, or None before the handshake completed."""
        return self._server_info

    @property
    def pending_elicitation(self) -> ElicitationPrompt | None:
        return self._rendezvous.active

    def decide_elicitation(self, slot_id: str, decision: types.ElicitResult) -> bool:
        """Record a human decision for a pending elicitation. See ElicitationRendezvous.decide."""
        return self._rendezvous.decide(slot_id, decision)

    async def connect(self) -> None:
        """Open the transport and run the initialize handshake.

        Calling connect while connecting or connected does nothing. A failed
        or cancelled handshake leaves the session FAILED; it is not retried.

        Raises:
            HandshakeFailedError: if the transport could not start or the handshake failed
        """
        if self._state in (ConnectionState.CONNECTING, ConnectionState.READY):
            return
        if self._task_group is None:
            raise RuntimeError("SessionManager must be used as an async context manager")

        self._state = ConnectionState.CONNECTING
        transport: ClientTransport | None = None
        try:
            transport = self._transport_factory()
            self._wire(transport)
            await transport.start()
            result = await self._initialize(transport)
        except Exception as e:
            self._state = ConnectionState.FAILED
            logger.error(f"Failed to connect to MCP server: {e}")
            if transport is not None:
                await self._discard(transport)
            raise HandshakeFailedError(f"Failed to connect to MCP server: {e}") from e
        except BaseException:
            # Cancelled, e.g. by a caller's timeout
            self._state = ConnectionState.FAILED
            logger.warning("Connecting to MCP server was cancelled")
            if transport is not None:
                with anyio.CancelScope(shield=True):
                    await self._discard(transport)
            raise

        self._transport = transport
        self._session_id = transport.session_id
        self._server_info = result
        self._state = ConnectionState.READY
        server_name = getattr(getattr(result, "server_info", None), "name", "<unknown>")
        logger.info(f"Connected to MCP server {server_name} (session {self._session_id})")

    async def disconnect(self) -> None:
        """Close the transport and reject all in-flight work with SessionClosedError.

        Does nothing when no transport is held. Close errors are logged, not raised.
        """
        transport = self._transport
        if transport is None:
            return

        self._state = ConnectionState.CLOSING
        self._teardown(SessionClosedError("Session closed"))
        try:
            await transport.close()
        except Exception as e:
            logger.error(f"Error disconnecting from MCP server: {e}")
        finally:
            self._state = ConnectionState.DISCONNECTED
        logger.info("Disconnected from MCP server")

    async def list_tools(self) -> types.ListToolsResult:
        """Send a tools/list request."""
        return await self._send("tools/list", None, types.ListToolsResult)

    async def list_prompts(self) -> types.ListPromptsResult:
        """Send a prompts/list request."""
        return await self._send("prompts/list", None, types.ListPromptsResult)

    async def get_prompt(self, name: str, arguments: dict[str, str] | None = None) -> types.GetPromptResult:
        """Send a prompts/get request."""
        return await self._send("prompts/get", {"name": name, "arguments": arguments or {}}, types.GetPromptResult)

    async def list_resources(self) -> types.ListResourcesResult:
        """Send a resources/list request."""
        return await self._send("resources/list", None, types.ListResourcesResult)

    async def read_resource(self, uri: AnyUrl | str) -> types.ReadResourceResult:
        """Send a resources/read request."""
        return await self._send("resources/read", {"uri": str(uri)}, types.ReadResourceResult)

    async def call_tool(self, name: str, arguments: dict[str, Any] | None = None) -> types.CallToolResult:
        """Send a tools/call request."""
        return await self._send("tools/call", {"name": name, "arguments": arguments or {}}, types.CallToolResult)

    async def _send(
        self,
        method: types.RequestMethod,
        params: dict[str, Any] | None,
        result_type: type[ReceiveResultT],
    ) -> ReceiveResultT:
        transport = self._active_transport()
        return await self._dispatcher.send(transport, method, params, result_type)

    def _active_transport(self) -> ClientTransport:
        if self._state is not ConnectionState.READY or self._transport is None:
            raise NotConnectedError("Not connected")
        return self._transport

    async def _initialize(self, transport: ClientTransport) -> types.InitializeResult:
        params = types.InitializeRequestParams(
            protocol_version=self._settings.protocol_version,
            capabilities=types.ClientCapabilities(
                tools=types.ToolsCapability(list=True, call=True),
                elicitation=types.ElicitationCapability(),
            ),
            client_info=self._client_info,
        )
        result = await self._dispatcher.send(
            transport,
            "initialize",
            params.model_dump(by_alias=True, mode="json", exclude_none=True),
            types.InitializeResult,
        )

        protocol_version = getattr(result, "protocol_version", None)
        if protocol_version not in types.SUPPORTED_PROTOCOL_VERSIONS:
            raise RuntimeError(f"Unsupported protocol version from the server: {protocol_version}")

        await transport.send_notification("notifications/initialized", None)
        return result

    def _wire(self, transport: ClientTransport) -> None:
        transport.on_close(lambda: self._handle_transport_closed(transport))
        transport.on_error(self._handle_transport_error)
        self._register_notification_handlers()
        transport.set_notification_handler(self._router.dispatch)
        transport.set_request_handler(self._handle_server_request)

    async def _discard(self, transport: ClientTransport) -> None:
        try:
            await transport.close()
        except Exception as e:
            logger.debug(f"Error closing transport after failed connect: {e}")

    def _teardown(self, error: Exception) -> None:
        self._transport = None
        self._session_id = None
        rejected = self._dispatcher.close(error)
        if self._rendezvous.close(error):
            rejected += 1
        if rejected:
            logger.info(f"Rejected {rejected} in-flight operation(s): {error}")

    def _handle_transport_closed(self, transport: ClientTransport) -> None:
        if transport is not self._transport or self._state is ConnectionState.CLOSING:
            return
        logger.warning("Transport closed by peer")
        self._teardown(SessionClosedError("Transport closed"))
        self._state = ConnectionState.DISCONNECTED

    def _handle_transport_error(self, error: Exception) -> None:
        logger.error(f"Transport error: {error}")

    def _register_notification_handlers(self) -> None:
        self._router.register("notifications/message", self._on_log_message)
        self._router.register("notifications/resources/list_changed", self._on_resource_list_changed)

    async def _handle_server_request(self, method: str, params: dict[str, Any] | None) -> dict[str, Any]:
        match method:
            case "elicitation/create":
                try:
                    request = types.ElicitRequestParams.model_validate(params or {})
                except ValidationError as e:
                    raise McpError(
                        types.ErrorData(code=types.INVALID_PARAMS, message=f"Invalid elicitation request: {e}")
                    ) from e
                result = await self._rendezvous.offer(request)
                return result.model_dump(by_alias=True, mode="json", exclude_none=True)
            case "ping":
                return {}
            case _:
                raise McpError(types.ErrorData(code=types.METHOD_NOT_FOUND, message=f"Method not found: {method}"))

    async def _on_log_message(self, params: dict[str, Any] | None) -> None:
        message = types.LoggingMessageNotificationParams.model_validate(params or {})
        logger.log(
            _SERVER_LOG_LEVELS.get(message.level, logging.INFO),
            f"MCP notification: {message.data}",
            extra={"server_logger": message.logger},
        )
        if self._logging_callback is not None:
            await self._logging_callback(message)

    async def _on_resource_list_changed(self, params: dict[str, Any] | None) -> None:
        if not self._settings.refresh_resources_on_change:
            return
        try:
            result = await self.list_resources()
        except Exception as e:
            logger.warning(f"Failed to list resources after notification: {e}")
            return

        self.resources = result
        logger.info(f"Resources changed, count: {len(getattr(result, 'resources', None) or [])}")
        if self._resource_list_changed_callback is not None:
            await self._resource_list_changed_callback(result)
