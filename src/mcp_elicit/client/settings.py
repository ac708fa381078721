from pydantic_settings import BaseSettings, SettingsConfigDict

from mcp_elicit.shared.logging import LogLevel
from mcp_elicit.types import LATEST_PROTOCOL_VERSION


class ClientSettings(BaseSettings):
    """Session client settings.

    All settings can be configured via environment variables with the prefix MCP_ELICIT_.
    For example, MCP_ELICIT_STRICT_RESULT_VALIDATION=true rejects results that do not
    match their declared shape instead of delivering them with a warning.
    """

    model_config = SettingsConfigDict(
        env_prefix="MCP_ELICIT_",
        env_file=".env",
        extra="ignore",
    )

    # Client identity sent during the handshake
    client_name: str = "mcp-elicit-client"
    client_version: str = "0.1.0"
    protocol_version: str = LATEST_PROTOCOL_VERSION

    strict_result_validation: bool = False
    """Reject results that fail validation instead of delivering them."""

    refresh_resources_on_change: bool = True
    """Re-list resources when the server reports the resource list changed."""

    log_level: LogLevel = "INFO"
