"""A Model Context Protocol client session with human-in-the-loop elicitation.

Use it to:

- Connect to an MCP server over any transport implementing ``ClientTransport``
- List and call tools, prompts and resources with validated results
- Answer server ``elicitation/create`` requests through a human interface
- React to server notifications (log messages, resource list changes)

## Example

```python
from mcp_elicit import SessionManager

async def show_form(prompt):
    # Render prompt.message / prompt.requested_schema, then later:
    prompt.submit({"name": "Ada"})

async with SessionManager(make_transport, elicitation_presenter=show_form) as session:
    await session.connect()
    tools = await session.list_tools()
    result = await session.call_tool("search", {"query": "x"})
```

"""

from .client.elicitation import ElicitationPrompt, ElicitationRendezvous
from .client.notifications import NotificationRouter
from .client.session import ConnectionState, SessionManager
from .client.settings import ClientSettings
from .client.transport import ClientTransport
from .shared.dispatcher import PendingRequest, RequestDispatcher
from .shared.exceptions import (
    ConcurrentElicitationError,
    HandshakeFailedError,
    McpError,
    NotConnectedError,
    ResultValidationError,
    SessionClosedError,
    TransportError,
)
from .shared.validation import ResultValidator
from .types import (
    CallToolResult,
    ElicitRequestParams,
    ElicitResult,
    ErrorData,
    GetPromptResult,
    Implementation,
    InitializeResult,
    ListPromptsResult,
    ListResourcesResult,
    ListToolsResult,
    ReadResourceResult,
)

__all__ = [
    "CallToolResult",
    "ClientSettings",
    "ClientTransport",
    "ConcurrentElicitationError",
    "ConnectionState",
    "ElicitRequestParams",
    "ElicitResult",
    "ElicitationPrompt",
    "ElicitationRendezvous",
    "ErrorData",
    "GetPromptResult",
    "HandshakeFailedError",
    "Implementation",
    "InitializeResult",
    "ListPromptsResult",
    "ListResourcesResult",
    "ListToolsResult",
    "McpError",
    "NotConnectedError",
    "NotificationRouter",
    "PendingRequest",
    "ReadResourceResult",
    "RequestDispatcher",
    "ResultValidationError",
    "ResultValidator",
    "SessionClosedError",
    "SessionManager",
    "TransportError",
]
