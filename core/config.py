# =============================================================================
# core/config.py  -  Runtime Settings
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   Collects every knob the gateway reads from the environment into one
#   Settings dataclass.  main.py calls load_dotenv() first, so a local .env
#   file works the same as real environment variables.
#
# MISSING CREDENTIALS ARE NOT A STARTUP ERROR:
#   The server starts even if NOWCERTS_* or CLOSE_API_KEY are unset.  The
#   first tool call that needs the credential fails with a CredentialError
#   naming the variable to set.  That way the tool list is still visible to
#   the client while the operator fixes the .env file.
# =============================================================================

import os
from dataclasses import dataclass


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


@dataclass
class Settings:
    """Environment-driven configuration for both upstreams and the server."""

    # --- Insurance-management system (bearer token) ---
    nowcerts_base_url: str = "https://api.nowcerts.com/v1"
    nowcerts_access_token: str = ""
    nowcerts_refresh_token: str = ""
    nowcerts_client_id: str = ""
    nowcerts_client_secret: str = ""
    nowcerts_refresh_url: str = ""     # empty = "{base}/auth/refresh"
    nowcerts_oauth_url: str = "https://api.nowcerts.com/oauth/token"

    # --- CRM (basic auth) ---
    close_base_url: str = "https://api.close.com/api/v1"
    close_api_key: str = ""

    # --- HTTP behaviour ---
    upstream_timeout_seconds: float = 30.0
    token_expiry_margin_seconds: int = 60

    # --- MCP server ---
    mcp_transport: str = "stdio"
    mcp_host: str = "127.0.0.1"
    mcp_port: int = 8000
    log_level: str = "INFO"

    @property
    def refresh_url(self) -> str:
        if self.nowcerts_refresh_url:
            return self.nowcerts_refresh_url
        return f"{self.nowcerts_base_url.rstrip('/')}/auth/refresh"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            nowcerts_base_url=_env("NOWCERTS_BASE_URL", cls.nowcerts_base_url),
            nowcerts_access_token=_env("NOWCERTS_ACCESS_TOKEN"),
            nowcerts_refresh_token=_env("NOWCERTS_REFRESH_TOKEN"),
            nowcerts_client_id=_env("NOWCERTS_CLIENT_ID"),
            nowcerts_client_secret=_env("NOWCERTS_CLIENT_SECRET"),
            nowcerts_refresh_url=_env("NOWCERTS_REFRESH_URL"),
            nowcerts_oauth_url=_env("NOWCERTS_OAUTH_URL", cls.nowcerts_oauth_url),
            close_base_url=_env("CLOSE_BASE_URL", cls.close_base_url),
            close_api_key=_env("CLOSE_API_KEY"),
            upstream_timeout_seconds=float(_env("UPSTREAM_TIMEOUT_SECONDS", "30")),
            token_expiry_margin_seconds=int(_env("TOKEN_EXPIRY_MARGIN_SECONDS", "60")),
            mcp_transport=_env("MCP_TRANSPORT", "stdio").lower(),
            mcp_host=_env("MCP_HOST", "127.0.0.1"),
            mcp_port=int(_env("MCP_PORT", "8000")),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
        )
