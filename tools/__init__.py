# =============================================================================
# tools/__init__.py
# =============================================================================
# This package exposes the core/ reports as MCP tools.
#
#   dispatch.py    tool name -> handler table, invoke() that never raises
#   mcp_server.py  FastMCP declarations (typed signatures + docstrings)
#
# WHAT TOOLS DO NOT DO:
#   - They do NOT compute metrics (that's core/scoring.py)
#   - They do NOT talk HTTP themselves (that's core/upstream.py)
#   - They do NOT write to either upstream; every tool is read-only
# =============================================================================
