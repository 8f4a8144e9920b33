# =============================================================================
# main.py  -  Entry Point for the Insurance Agency MCP Server
# =============================================================================
#
# HOW TO RUN:
#   uv run python main.py                       # stdio (Claude Desktop etc.)
#   MCP_TRANSPORT=sse  uv run python main.py    # Server-Sent Events
#   MCP_TRANSPORT=http uv run python main.py    # streamable HTTP (JSON-RPC)
#
# WHAT HAPPENS:
#   1. .env is loaded (NOWCERTS_*, CLOSE_API_KEY, MCP_* ...)
#   2. Logging is configured to STDERR
#   3. The shared upstream clients are created
#   4. The FastMCP server runs on the chosen transport until stopped
#   5. The HTTP connection pool is closed on the way out
# =============================================================================

import asyncio
import logging

from dotenv import load_dotenv

# Must run before Settings.from_env() reads the environment.
load_dotenv()

from core.config import Settings
from core.upstream import AgencyClients
from tools.mcp_server import configure_logging, mcp, set_clients

# "http" is a newer alias for streamable-http; pass the long name
TRANSPORT_ALIASES = {"http": "streamable-http"}
NETWORK_TRANSPORTS = {"sse", "streamable-http"}


def resolve_transport(name: str) -> str:
    name = (name or "stdio").lower()
    name = TRANSPORT_ALIASES.get(name, name)
    return name if name in NETWORK_TRANSPORTS else "stdio"


async def serve(settings: Settings) -> None:
    clients = AgencyClients.from_settings(settings)
    set_clients(clients)
    transport = resolve_transport(settings.mcp_transport)
    try:
        if transport in NETWORK_TRANSPORTS:
            await mcp.run_async(
                transport=transport,
                host=settings.mcp_host,
                port=settings.mcp_port,
            )
        else:
            await mcp.run_async(transport="stdio")
    finally:
        set_clients(None)
        await clients.aclose()


if __name__ == "__main__":
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logging.getLogger(__name__).info(
        "Starting Insurance Agency MCP Server (transport=%s)", settings.mcp_transport
    )
    asyncio.run(serve(settings))
