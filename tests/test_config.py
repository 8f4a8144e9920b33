from core.config import Settings

ENV_VARS = [
    "NOWCERTS_BASE_URL", "NOWCERTS_ACCESS_TOKEN", "NOWCERTS_REFRESH_TOKEN",
    "NOWCERTS_CLIENT_ID", "NOWCERTS_CLIENT_SECRET", "NOWCERTS_REFRESH_URL",
    "NOWCERTS_OAUTH_URL", "CLOSE_BASE_URL", "CLOSE_API_KEY",
    "UPSTREAM_TIMEOUT_SECONDS", "TOKEN_EXPIRY_MARGIN_SECONDS",
    "MCP_TRANSPORT", "MCP_HOST", "MCP_PORT", "LOG_LEVEL",
]


def clear_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    clear_env(monkeypatch)

    settings = Settings.from_env()

    assert settings.nowcerts_base_url == "https://api.nowcerts.com/v1"
    assert settings.refresh_url == "https://api.nowcerts.com/v1/auth/refresh"
    assert settings.close_api_key == ""
    assert settings.mcp_transport == "stdio"
    assert settings.token_expiry_margin_seconds == 60


def test_environment_overrides(monkeypatch):
    clear_env(monkeypatch)
    monkeypatch.setenv("NOWCERTS_BASE_URL", "https://sandbox.example/v1/")
    monkeypatch.setenv("CLOSE_API_KEY", "  key_123  ")
    monkeypatch.setenv("MCP_TRANSPORT", "SSE")
    monkeypatch.setenv("MCP_PORT", "9001")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.refresh_url == "https://sandbox.example/v1/auth/refresh"
    assert settings.close_api_key == "key_123"
    assert settings.mcp_transport == "sse"
    assert settings.mcp_port == 9001
    assert settings.log_level == "DEBUG"


def test_explicit_refresh_url_wins():
    settings = Settings(nowcerts_refresh_url="https://auth.example/refresh")

    assert settings.refresh_url == "https://auth.example/refresh"
