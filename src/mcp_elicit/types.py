"""MCP Types - the slice of the Model Context Protocol spoken by the session client."""

from typing import Annotated, Any, Final, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.networks import AnyUrl, UrlConstraints

LATEST_PROTOCOL_VERSION: Final[str] = "2025-06-18"

SUPPORTED_PROTOCOL_VERSIONS: Final[list[str]] = ["2024-11-05", "2025-03-26", LATEST_PROTOCOL_VERSION]

# JSON-RPC error codes
INVALID_REQUEST: Final[int] = -32600
METHOD_NOT_FOUND: Final[int] = -32601
INVALID_PARAMS: Final[int] = -32602
INTERNAL_ERROR: Final[int] = -32603

# SDK error codes
CONNECTION_CLOSED: Final[int] = -32000

# Method names used by the client
RequestMethod = Literal[
    "initialize",
    "ping",
    "tools/list",
    "tools/call",
    "prompts/list",
    "prompts/get",
    "resources/list",
    "resources/read",
]

# URI type that allows any protocol (no host required)
Uri = Annotated[AnyUrl, UrlConstraints(host_required=False)]


class MCPModel(BaseModel):
    """Base class for all MCP domain types. Allows extra fields for forward compatibility."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Result(MCPModel):
    """Base class for MCP results with _meta support."""

    meta: Annotated[dict[str, Any] | None, Field(alias="_meta")] = None


class ErrorData(BaseModel):
    """Error information in a JSON-RPC error response."""

    model_config = ConfigDict(extra="allow")

    code: int
    message: str
    data: Any | None = None


class Implementation(MCPModel):
    """Describes the name and version of an MCP implementation."""

    name: str
    version: str
    title: str | None = None


class ToolsCapability(MCPModel):
    list: bool | None = None
    call: bool | None = None
    list_changed: Annotated[bool | None, Field(alias="listChanged")] = None


class ElicitationCapability(MCPModel):
    """Capability for handling elicitation requests."""


class ClientCapabilities(MCPModel):
    """Capabilities that a client may support."""

    experimental: dict[str, Any] | None = None
    roots: dict[str, Any] | None = None
    sampling: dict[str, Any] | None = None
    elicitation: ElicitationCapability | None = None
    tools: ToolsCapability | None = None


class ServerCapabilities(MCPModel):
    """Capabilities that a server may support."""

    experimental: dict[str, Any] | None = None
    logging: dict[str, Any] | None = None
    completions: dict[str, Any] | None = None
    prompts: dict[str, Any] | None = None
    resources: dict[str, Any] | None = None
    tools: dict[str, Any] | None = None


class InitializeRequestParams(MCPModel):
    """Parameters for the initialize request."""

    protocol_version: Annotated[str, Field(alias="protocolVersion")]
    capabilities: ClientCapabilities
    client_info: Annotated[Implementation, Field(alias="clientInfo")]


class InitializeResult(Result):
    """Server's response to an initialize request."""

    protocol_version: Annotated[str, Field(alias="protocolVersion")]
    capabilities: ServerCapabilities
    server_info: Annotated[Implementation, Field(alias="serverInfo")]
    instructions: str | None = None


class TextContent(MCPModel):
    """Text provided to or from an LLM."""

    type: Literal["text"] = "text"
    text: str


class ImageContent(MCPModel):
    """An image provided to or from an LLM."""

    type: Literal["image"] = "image"
    data: str  # base64 encoded
    mime_type: Annotated[str, Field(alias="mimeType")]


class ResourceContents(MCPModel):
    """The contents of a specific resource or sub-resource."""

    uri: Uri
    mime_type: Annotated[str | None, Field(alias="mimeType")] = None


class TextResourceContents(ResourceContents):
    """Text contents of a resource."""

    text: str


class BlobResourceContents(ResourceContents):
    """Binary contents of a resource (base64 encoded)."""

    blob: str


class EmbeddedResource(MCPModel):
    """The contents of a resource, embedded into a prompt or tool call result."""

    type: Literal["resource"] = "resource"
    resource: TextResourceContents | BlobResourceContents


ContentBlock = Annotated[TextContent | ImageContent | EmbeddedResource, Field(discriminator="type")]


class Tool(MCPModel):
    """Definition of a tool the server provides."""

    name: str
    title: str | None = None
    description: str | None = None
    input_schema: Annotated[dict[str, Any], Field(alias="inputSchema")]
    output_schema: Annotated[dict[str, Any] | None, Field(alias="outputSchema")] = None


class ListToolsResult(Result):
    """Server's response to a tools/list request."""

    tools: list[Tool]
    next_cursor: Annotated[str | None, Field(alias="nextCursor")] = None


class CallToolResult(Result):
    """Server's response to a tools/call request."""

    content: list[ContentBlock]
    structured_content: Annotated[dict[str, Any] | None, Field(alias="structuredContent")] = None
    is_error: Annotated[bool, Field(alias="isError")] = False


class PromptArgument(MCPModel):
    name: str
    description: str | None = None
    required: bool | None = None


class Prompt(MCPModel):
    """A prompt or prompt template that the server offers."""

    name: str
    title: str | None = None
    description: str | None = None
    arguments: list[PromptArgument] | None = None


class ListPromptsResult(Result):
    """Server's response to a prompts/list request."""

    prompts: list[Prompt]
    next_cursor: Annotated[str | None, Field(alias="nextCursor")] = None


class PromptMessage(MCPModel):
    role: Literal["user", "assistant"]
    content: ContentBlock


class GetPromptResult(Result):
    """Server's response to a prompts/get request."""

    description: str | None = None
    messages: list[PromptMessage]


class Resource(MCPModel):
    """A known resource that the server is capable of reading."""

    uri: Uri
    name: str
    title: str | None = None
    description: str | None = None
    mime_type: Annotated[str | None, Field(alias="mimeType")] = None
    size: int | None = None


class ListResourcesResult(Result):
    """Server's response to a resources/list request."""

    resources: list[Resource]
    next_cursor: Annotated[str | None, Field(alias="nextCursor")] = None


class ReadResourceResult(Result):
    """Server's response to a resources/read request."""

    contents: list[TextResourceContents | BlobResourceContents]


LoggingLevel = Literal["debug", "info", "notice", "warning", "error", "critical", "alert", "emergency"]


class LoggingMessageNotificationParams(MCPModel):
    """Parameters for a notifications/message notification."""

    level: LoggingLevel
    logger: str | None = None
    data: Any


class ElicitRequestParams(MCPModel):
    """Parameters for an elicitation/create request sent by the server."""

    message: str
    requested_schema: Annotated[dict[str, Any], Field(alias="requestedSchema")]


ElicitAction = Literal["accept", "decline", "cancel"]


class ElicitResult(Result):
    """The client's answer to an elicitation/create request.

    ``content`` is only meaningful for the ``accept`` action.
    """

    action: ElicitAction
    content: dict[str, Any] | None = None
