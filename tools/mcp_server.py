# =============================================================================
# tools/mcp_server.py  -  FastMCP Tool Server (ALL tools in one place)
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Declares every MCP tool the agency assistant can call.  Each tool is a
#   thin wrapper: it forwards its typed arguments to tools/dispatch.py and
#   returns the rendered text.  The docstrings are what the calling model
#   reads to decide WHEN to use a tool, so they describe the data returned.
#
# HOW A CALL FLOWS:
#   1. The MCP client calls a tool by name (e.g. "get_claims_dashboard")
#   2. FastMCP validates the arguments against the signature below
#   3. _run() hands (name, arguments) to dispatch.invoke()
#   4. invoke() calls core/, which talks to the insurance system / CRM
#   5. A normal result is returned as text; an error result is raised as
#      ToolError so the protocol response carries isError=true
#
# TOOL NAMING:
#   get_*    -> read-only retrieval or report
#   search_* -> query with filters
#   All tools are read-only.  Nothing here writes to either upstream.
# =============================================================================

import json
import logging
import sys
from typing import Literal, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from typing_extensions import TypedDict

from core.config import Settings
from core.upstream import AgencyClients
from tools.dispatch import invoke

# =============================================================================
# Logging
# =============================================================================
# Logs go to STDERR: with the stdio transport, STDOUT carries the MCP JSON
# stream and any stray print would corrupt it.
#
# ANSI colours make tool traffic easy to scan in a terminal:
#   CYAN   -> incoming tool call with its arguments
#   YELLOW -> intermediate status
#   GREEN  -> response (truncated)
# =============================================================================

_CYAN = "\033[36m"
_GREEN = "\033[32m"
_YELLOW = "\033[33m"
_RESET = "\033[0m"

_RESPONSE_PREVIEW_CHARS = 400

logger = logging.getLogger("mcp")


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [MCP] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


def _log_request(tool_name: str, **params) -> None:
    param_str = ", ".join(f"{k}={v!r}" for k, v in params.items() if v is not None)
    logger.info(f"{_CYAN}{tool_name} called with: {param_str}{_RESET}")


def _log_status(message: str) -> None:
    logger.info(f"{_YELLOW}  → {message}{_RESET}")


def _log_response(tool_name: str, text: str) -> str:
    preview = text if len(text) <= _RESPONSE_PREVIEW_CHARS else text[:_RESPONSE_PREVIEW_CHARS] + "..."
    logger.info(f"{_GREEN}  ← {tool_name} response: {json.dumps(preview)}{_RESET}")
    return text


# =============================================================================
# Upstream clients (created lazily, shared by every tool call)
# =============================================================================
_clients: Optional[AgencyClients] = None


def get_clients() -> AgencyClients:
    global _clients
    if _clients is None:
        _clients = AgencyClients.from_settings(Settings.from_env())
    return _clients


def set_clients(clients: Optional[AgencyClients]) -> None:
    global _clients
    _clients = clients


async def _run(tool_name: str, **arguments) -> str:
    _log_request(tool_name, **arguments)
    result = await invoke(tool_name, arguments, get_clients())
    if result.is_error:
        _log_status(f"failed: {result.text}")
        raise ToolError(result.text)
    return _log_response(tool_name, result.text)


mcp = FastMCP("Insurance Agency MCP Server")

PolicyType = Literal["auto", "home", "life", "commercial", "umbrella"]


# -----------------------------------------------------------------------------
# Structured arguments
# -----------------------------------------------------------------------------
# TypedDicts so the published tool schema lists the accepted fields.  The
# handlers still receive plain dicts.  typing_extensions.TypedDict is used
# because pydantic rejects typing.TypedDict before Python 3.12.
# -----------------------------------------------------------------------------
class SearchCriteriaArg(TypedDict, total=False):
    name: str                  # partial match
    email: str
    phone: str
    city: str
    state: str
    zip: str
    policy_type: PolicyType
    carrier: str


class SearchFiltersArg(TypedDict, total=False):
    active_policies_only: bool
    min_premium: float
    max_premium: float
    has_claims: bool
    renewal_within_days: int


# "from" is a keyword, hence the functional form
DateRangeArg = TypedDict("DateRangeArg", {"from": str, "to": str})
OpenDateRangeArg = TypedDict("OpenDateRangeArg", {"from": str, "to": str}, total=False)


# =============================================================================
# CUSTOMER TOOLS
# =============================================================================
@mcp.tool()
async def get_customer_profile(
    customer_id: str,
    include_policies: bool = True,
    include_claims: bool = True,
    include_quotes: bool = True,
    date_range_months: int = 12,
) -> str:
    """Retrieve a comprehensive customer profile: policies, claims history and quotes.

    WHEN TO CALL THIS: When the user asks about one specific customer.
    Claims and quotes are limited to the last `date_range_months` months.

    Args:
        customer_id: Customer ID in the insurance management system.
        include_policies: Include active and inactive policies.
        include_claims: Include claims history.
        include_quotes: Include pending and past quotes.
        date_range_months: How many months back to include (default 12).

    Returns:
        JSON with customer, policies, claims, quotes, risk_score (1-10) and
        lifetime_value (5 x total annual premium).  If one related section
        cannot be loaded it is returned empty; the profile still succeeds.
    """
    return await _run(
        "get_customer_profile",
        customer_id=customer_id,
        include_policies=include_policies,
        include_claims=include_claims,
        include_quotes=include_quotes,
        date_range_months=date_range_months,
    )


@mcp.tool()
async def search_customers_advanced(
    search_criteria: Optional[SearchCriteriaArg] = None,
    filters: Optional[SearchFiltersArg] = None,
    limit: int = 25,
) -> str:
    """Advanced customer search with multiple criteria and filters.

    Args:
        search_criteria: Any of name (partial match), email, phone, city,
            state, zip, policy_type (auto|home|life|commercial|umbrella),
            carrier.
        filters: Any of active_policies_only, min_premium, max_premium,
            has_claims, renewal_within_days.
        limit: Maximum results (default 25, max 100).

    Returns:
        Up to 10 customers, each with policy_count, total_premium and
        next_renewal added when their policies could be loaded.
    """
    return await _run(
        "search_customers_advanced",
        search_criteria=search_criteria,
        filters=filters,
        limit=limit,
    )


# =============================================================================
# POLICY TOOLS
# =============================================================================
@mcp.tool()
async def get_policy_details(
    policy_id: Optional[str] = None,
    policy_number: Optional[str] = None,
    include_coverage_details: bool = True,
    include_billing_history: bool = False,
    include_claims: bool = True,
) -> str:
    """Get policy details including coverage, billing and related claims.

    Provide policy_id or policy_number (policy_id wins if both are given).

    Returns:
        JSON with policy, coverage_details, billing_history, claims and
        compliance_status.  Sections that cannot be loaded are empty.
    """
    return await _run(
        "get_policy_details",
        policy_id=policy_id,
        policy_number=policy_number,
        include_coverage_details=include_coverage_details,
        include_billing_history=include_billing_history,
        include_claims=include_claims,
    )


@mcp.tool()
async def get_renewals_report(
    date_range: DateRangeArg,
    policy_types: Optional[list[PolicyType]] = None,
    include_recommendations: bool = True,
    limit: int = 50,
) -> str:
    """Generate a renewals report with recommendations for upcoming renewals.

    Args:
        date_range: {"from": "YYYY-MM-DD", "to": "YYYY-MM-DD"} expiration window.
        policy_types: Only include these policy types.
        include_recommendations: Add a retain/review recommendation per policy.
        limit: Maximum policies to fetch (default 50, max 100; 20 are analysed).

    Returns:
        summary (total_policies, total_premium, avg_premium,
        retention_recommendations) and enhanced_policies with customer_info,
        claims_history (24 months) and renewal_recommendation.
    """
    return await _run(
        "get_renewals_report",
        date_range=date_range,
        policy_types=policy_types,
        include_recommendations=include_recommendations,
        limit=limit,
    )


@mcp.tool()
async def get_nowcerts_policies(
    customer_id: Optional[str] = None,
    policy_number: Optional[str] = None,
    status: Optional[Literal["active", "inactive", "pending", "cancelled"]] = None,
    limit: int = 10,
) -> str:
    """Retrieve policies from the insurance management system.

    Args:
        customer_id: Only this customer's policies.
        policy_number: A specific policy number.
        status: Policy status filter.
        limit: Maximum policies (default 10, max 50).
    """
    return await _run(
        "get_nowcerts_policies",
        customer_id=customer_id,
        policy_number=policy_number,
        status=status,
        limit=limit,
    )


# =============================================================================
# CLAIMS TOOLS
# =============================================================================
@mcp.tool()
async def get_claims_dashboard(
    date_range: Optional[OpenDateRangeArg] = None,
    status_filter: Optional[list[Literal["open", "closed", "pending", "denied"]]] = None,
    claim_types: Optional[list[str]] = None,
    limit: int = 100,
) -> str:
    """Generate a claims dashboard with totals, breakdowns and action items.

    Args:
        date_range: {"from": "YYYY-MM-DD", "to": "YYYY-MM-DD"}; defaults to
            the last 6 months.
        status_filter: Only claims in these statuses.
        claim_types: Only claims of these types.
        limit: Maximum claims to analyse (default 100, max 200).

    Returns:
        summary, by_status, by_type, action_items and the date_range used.
    """
    return await _run(
        "get_claims_dashboard",
        date_range=date_range,
        status_filter=status_filter,
        claim_types=claim_types,
        limit=limit,
    )


# =============================================================================
# SALES & LEAD TOOLS (CRM)
# =============================================================================
@mcp.tool()
async def get_sales_pipeline(
    pipeline_stage: Literal["all", "new", "contacted", "quoted", "negotiating", "won", "lost"] = "all",
    date_range: Optional[OpenDateRangeArg] = None,
    include_lead_scoring: bool = True,
    limit: int = 50,
) -> str:
    """Sales pipeline analysis with lead scoring.

    Args:
        pipeline_stage: Only leads whose status matches this stage.
        date_range: {"from": "YYYY-MM-DD", "to": "YYYY-MM-DD"} on lead creation.
        include_lead_scoring: Add a 1-10 lead_score per lead.
        limit: Maximum leads to fetch (default 50, max 100; 25 are analysed).

    Returns:
        analytics (total_leads, total_pipeline_value, avg_deal_size,
        high_value_leads) and pipeline (leads with their opportunities).
    """
    return await _run(
        "get_sales_pipeline",
        pipeline_stage=pipeline_stage,
        date_range=date_range,
        include_lead_scoring=include_lead_scoring,
        limit=limit,
    )


@mcp.tool()
async def get_close_leads(
    lead_id: Optional[str] = None,
    status: Optional[Literal["active", "inactive"]] = None,
    limit: int = 25,
) -> str:
    """Retrieve leads from the CRM: one lead by id, or a filtered list.

    Args:
        lead_id: Return this single lead in full.
        status: Lead status filter for the list.
        limit: Maximum leads (default 25, max 50).
    """
    return await _run("get_close_leads", lead_id=lead_id, status=status, limit=limit)


# =============================================================================
# Server entry point
# =============================================================================
# python -m tools.mcp_server runs the stdio transport; main.py picks the
# transport from MCP_TRANSPORT.
# =============================================================================
if __name__ == "__main__":
    configure_logging()
    mcp.run()
