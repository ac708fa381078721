from typing import Any

from mcp_elicit.types import CONNECTION_CLOSED, INTERNAL_ERROR, INVALID_PARAMS, INVALID_REQUEST, ErrorData


class McpError(Exception):
    """Exception raised when an MCP protocol error is received from a peer or
    produced by the session itself.

    Attributes:
        error: The ErrorData describing the failure (code, message, optional data)
    """

    error: ErrorData

    def __init__(self, error: ErrorData):
        super().__init__(error.message)
        self.error = error


class _SessionError(McpError):
    """Base for errors raised locally by the session client."""

    code: int = INTERNAL_ERROR

    def __init__(self, message: str, data: Any | None = None):
        super().__init__(ErrorData(code=self.code, message=message, data=data))


class NotConnectedError(_SessionError):
    """A protocol operation was invoked while the session is not ready."""

    code = CONNECTION_CLOSED


class HandshakeFailedError(_SessionError):
    """The transport could not be started or the initialize handshake failed."""


class TransportError(_SessionError):
    """The transport failed while carrying a request."""


class SessionClosedError(_SessionError):
    """In-flight work was invalidated because the session was torn down."""

    code = CONNECTION_CLOSED


class ConcurrentElicitationError(_SessionError):
    """An elicitation was offered while another one is still awaiting a decision."""

    code = INVALID_REQUEST


class ResultValidationError(_SessionError):
    """A response did not match its declared result shape (strict validation only)."""

    code = INVALID_PARAMS
