# =============================================================================
# tools/dispatch.py  -  Tool Dispatch Table
# =============================================================================
#
# WHAT THIS FILE DOES:
#   Maps a tool name to a handler, runs it, and ALWAYS returns a ToolResult.
#
#       invoke("get_customer_profile", {"customer_id": "C100"}, clients)
#         -> ToolResult(text="Customer Profile for ...", is_error=False)
#
#   Handlers unpack the (already schema-validated) arguments into the typed
#   parameters of a core/ function, call it, and render the result as
#   "<Title>:\n\n<pretty JSON>".  Nothing here computes anything.
#
# ERROR CONTRACT:
#   invoke() never raises.  A GatewayError becomes an error result carrying
#   the error's message; anything unexpected is logged with its traceback
#   and also becomes an error result.  The MCP server decides how an error
#   result is put on the wire.
# =============================================================================

import json
import logging
from dataclasses import dataclass, fields
from typing import Any, Awaitable, Callable, Optional

from core.claims import get_claims_dashboard
from core.customers import get_customer_profile, search_customers_advanced
from core.errors import GatewayError, ValidationError
from core.models import DateRange, SearchCriteria, SearchFilters
from core.policies import get_policy_details, get_renewals_report, list_policies
from core.sales import get_sales_pipeline, list_leads
from core.upstream import AgencyClients

logger = logging.getLogger(__name__)


@dataclass
class ToolResult:
    text: str
    is_error: bool = False
    data: Any = None


Handler = Callable[[AgencyClients, dict], Awaitable[ToolResult]]


@dataclass
class ToolSpec:
    handler: Handler
    error_prefix: str


# -----------------------------------------------------------------------------
# Argument helpers
# -----------------------------------------------------------------------------
def render(title: str, payload: Any) -> str:
    return f"{title}:\n\n{json.dumps(payload, indent=2, default=str)}"


def _require(arguments: dict, name: str) -> Any:
    value = arguments.get(name)
    if value is None or value == "":
        raise ValidationError(f"Missing required argument: {name}", field=name)
    return value


def _arg(arguments: dict, name: str, default: Any) -> Any:
    """Argument value, or default only when it was not given (0 and False are kept)."""
    value = arguments.get(name)
    return default if value is None else value


def _date_range(value: Optional[dict], name: str, required: bool = False) -> Optional[DateRange]:
    if not value:
        if required:
            raise ValidationError(f"Missing required argument: {name}", field=name)
        return None
    start, end = value.get("from"), value.get("to")
    if required and (not start or not end):
        raise ValidationError(f"{name} needs both 'from' and 'to' (YYYY-MM-DD)", field=name)
    return DateRange(start=start, end=end)


def _struct(cls, value: Optional[dict], name: str):
    """Build a request struct, rejecting keys the struct does not declare."""
    value = value or {}
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(value) - known)
    if unknown:
        raise ValidationError(f"Unsupported {name} field(s): {', '.join(unknown)}", field=name)
    return cls(**value)


# -----------------------------------------------------------------------------
# Handlers
# -----------------------------------------------------------------------------
async def _customer_profile(clients: AgencyClients, args: dict) -> ToolResult:
    customer_id = _require(args, "customer_id")
    profile = await get_customer_profile(
        clients.nowcerts,
        customer_id,
        include_policies=_arg(args, "include_policies", True),
        include_claims=_arg(args, "include_claims", True),
        include_quotes=_arg(args, "include_quotes", True),
        months_back=_arg(args, "date_range_months", 12),
    )
    name = profile["customer"].get("name") or customer_id
    return ToolResult(render(f"Customer Profile for {name}", profile), data=profile)


async def _search_customers(clients: AgencyClients, args: dict) -> ToolResult:
    criteria = _struct(SearchCriteria, args.get("search_criteria"), "search_criteria")
    filters = _struct(SearchFilters, args.get("filters"), "filters")
    customers = await search_customers_advanced(
        clients.nowcerts, criteria, filters, limit=_arg(args, "limit", 25)
    )
    return ToolResult(render(f"Found {len(customers)} customers", customers), data=customers)


async def _policy_details(clients: AgencyClients, args: dict) -> ToolResult:
    details = await get_policy_details(
        clients.nowcerts,
        policy_id=args.get("policy_id"),
        policy_number=args.get("policy_number"),
        include_coverage_details=_arg(args, "include_coverage_details", True),
        include_billing_history=_arg(args, "include_billing_history", False),
        include_claims=_arg(args, "include_claims", True),
    )
    number = details["policy"].get("policy_number") or args.get("policy_number") or args.get("policy_id")
    return ToolResult(render(f"Policy Details for {number}", details), data=details)


async def _renewals_report(clients: AgencyClients, args: dict) -> ToolResult:
    date_range = _date_range(args.get("date_range"), "date_range", required=True)
    report = await get_renewals_report(
        clients.nowcerts,
        date_range,
        policy_types=args.get("policy_types"),
        limit=_arg(args, "limit", 50),
        include_recommendations=_arg(args, "include_recommendations", True),
    )
    title = f"Renewals Report ({date_range.start} to {date_range.end})"
    return ToolResult(render(title, report), data=report)


async def _claims_dashboard(clients: AgencyClients, args: dict) -> ToolResult:
    dashboard = await get_claims_dashboard(
        clients.nowcerts,
        date_range=_date_range(args.get("date_range"), "date_range"),
        status_filter=args.get("status_filter"),
        claim_types=args.get("claim_types"),
        limit=_arg(args, "limit", 100),
    )
    window = dashboard["date_range"]
    title = f"Claims Dashboard ({window['from']} to {window['to']})"
    return ToolResult(render(title, dashboard), data=dashboard)


async def _sales_pipeline(clients: AgencyClients, args: dict) -> ToolResult:
    pipeline = await get_sales_pipeline(
        clients.close,
        stage=args.get("pipeline_stage") or "all",
        date_range=_date_range(args.get("date_range"), "date_range"),
        include_lead_scoring=_arg(args, "include_lead_scoring", True),
        limit=_arg(args, "limit", 50),
    )
    return ToolResult(render("Sales Pipeline Analysis", pipeline), data=pipeline)


async def _list_policies(clients: AgencyClients, args: dict) -> ToolResult:
    policies = await list_policies(
        clients.nowcerts,
        customer_id=args.get("customer_id"),
        policy_number=args.get("policy_number"),
        status=args.get("status"),
        limit=args.get("limit"),
    )
    return ToolResult(render(f"Found {len(policies)} policies", policies), data=policies)


async def _list_leads(clients: AgencyClients, args: dict) -> ToolResult:
    leads = await list_leads(
        clients.close,
        lead_id=args.get("lead_id"),
        status=args.get("status"),
        limit=args.get("limit"),
    )
    if args.get("lead_id"):
        return ToolResult(render("Lead details", leads), data=leads)
    return ToolResult(render(f"Found {len(leads)} leads", leads), data=leads)


TOOLS: dict[str, ToolSpec] = {
    "get_customer_profile": ToolSpec(_customer_profile, "Error retrieving customer profile"),
    "search_customers_advanced": ToolSpec(_search_customers, "Error searching customers"),
    "get_policy_details": ToolSpec(_policy_details, "Error retrieving policy details"),
    "get_renewals_report": ToolSpec(_renewals_report, "Error generating renewals report"),
    "get_claims_dashboard": ToolSpec(_claims_dashboard, "Error generating claims dashboard"),
    "get_sales_pipeline": ToolSpec(_sales_pipeline, "Error generating sales pipeline"),
    "get_nowcerts_policies": ToolSpec(_list_policies, "Error retrieving policies"),
    "get_close_leads": ToolSpec(_list_leads, "Error retrieving leads"),
}


async def invoke(name: str, arguments: Optional[dict], clients: AgencyClients) -> ToolResult:
    """Run a tool by name; failures come back as is_error results, never raised."""
    tool = TOOLS.get(name)
    if tool is None:
        error = ValidationError(f"Unknown tool: {name}", field="tool_name")
        return ToolResult(error.message, is_error=True, data=error.to_dict())

    try:
        return await tool.handler(clients, arguments or {})
    except GatewayError as exc:
        logger.warning("%s failed: %s", name, exc.message)
        return ToolResult(f"{tool.error_prefix}: {exc.message}", is_error=True, data=exc.to_dict())
    except Exception as exc:
        logger.exception("Unexpected failure in %s", name)
        return ToolResult(f"{tool.error_prefix}: {exc}", is_error=True)
