# =============================================================================
# core/customers.py  -  Customer Profile & Advanced Search
# =============================================================================
#
# WHAT THIS MODULE DOES:
#   get_customer_profile      one customer + policies/claims/quotes + metrics
#   search_customers_advanced search, then a policy rollup for the top hits
#
# FAILURE POLICY (same for every report in core/):
#   - The base fetch (the customer, the search) is fatal: it raises.
#   - Each related collection is fetched through attempt(): if it fails the
#     section is an empty list and the failure is logged.  One broken
#     endpoint never takes the whole report down.
# =============================================================================

import asyncio
from typing import Optional

from core.errors import UpstreamError
from core.models import SearchCriteria, SearchFilters, UpstreamResult
from core.outcome import attempt, fetch_section, skipped
from core.scoring import calculate_lifetime_value, calculate_risk_score, months_ago, sum_field
from core.upstream import UpstreamClient

PROFILE_POLICY_LIMIT = 50
PROFILE_CLAIM_LIMIT = 25
PROFILE_QUOTE_LIMIT = 15

SEARCH_DEFAULT_LIMIT = 25
SEARCH_MAX_LIMIT = 100
SEARCH_ENRICH_COUNT = 10
SEARCH_POLICIES_PER_CUSTOMER = 5


async def fetch_customer(nowcerts: UpstreamClient, customer_id: str) -> dict:
    """Fetch one customer record; a missing customer is a 404 UpstreamError."""
    result = await nowcerts.get("customers", {"customer_id": customer_id})
    customer = result.first()
    if customer is None:
        raise UpstreamError(nowcerts.name, 404, "Not Found", reason=f"customer {customer_id} not found")
    return customer


# =============================================================================
# CustomerProfile
# =============================================================================
async def get_customer_profile(
    nowcerts: UpstreamClient,
    customer_id: str,
    include_policies: bool = True,
    include_claims: bool = True,
    include_quotes: bool = True,
    months_back: int = 12,
) -> dict:
    """Assemble a customer with related policies, claims and quotes.

    Claims and quotes are bounded to the last `months_back` months.  After
    assembly the profile gets a risk_score (from the claims count) and a
    lifetime_value (5 x annual premium).
    """
    customer = await fetch_customer(nowcerts, customer_id)
    date_from = months_ago(months_back)

    policies, claims, quotes = await asyncio.gather(
        fetch_section(
            nowcerts, "policies",
            {"customer_id": customer_id, "limit": PROFILE_POLICY_LIMIT},
            f"policies for customer {customer_id}",
        ) if include_policies else skipped(),
        fetch_section(
            nowcerts, "claims",
            {"customer_id": customer_id, "date_from": date_from, "limit": PROFILE_CLAIM_LIMIT},
            f"claims for customer {customer_id}",
        ) if include_claims else skipped(),
        fetch_section(
            nowcerts, "quotes",
            {"customer_id": customer_id, "date_from": date_from, "limit": PROFILE_QUOTE_LIMIT},
            f"quotes for customer {customer_id}",
        ) if include_quotes else skipped(),
    )

    policies = policies or []
    claims = claims or []
    return {
        "customer": customer,
        "policies": policies,
        "claims": claims,
        "quotes": quotes or [],
        "risk_score": calculate_risk_score(claims),
        "lifetime_value": calculate_lifetime_value(policies),
    }


# =============================================================================
# AdvancedCustomerSearch
# =============================================================================
async def _with_policy_rollup(nowcerts: UpstreamClient, customer: dict) -> dict:
    customer_id = customer.get("id")
    if customer_id is None:
        return customer

    outcome = await attempt(
        f"policy rollup for customer {customer_id}",
        nowcerts.get("policies", {"customer_id": customer_id, "limit": SEARCH_POLICIES_PER_CUSTOMER}),
    )
    if not outcome.ok:
        return customer

    policies = outcome.unwrap_or(UpstreamResult()).data
    next_renewal = next(
        (p.get("expiration_date") for p in policies if p.get("status") == "active"),
        None,
    )
    enriched = {
        **customer,
        "policy_count": len(policies),
        "total_premium": sum_field(policies, "premium_amount"),
    }
    # no active policy: the key is left out
    if next_renewal is not None:
        enriched["next_renewal"] = next_renewal
    return enriched


async def search_customers_advanced(
    nowcerts: UpstreamClient,
    criteria: SearchCriteria,
    filters: Optional[SearchFilters] = None,
    limit: int = SEARCH_DEFAULT_LIMIT,
) -> list[dict]:
    """Search customers and add policy_count/total_premium/next_renewal.

    Only the first 10 hits are enriched (5 policies each, fetched
    concurrently).  A hit whose rollup fails is returned as the bare search
    record; no hit is ever dropped.
    """
    params = {
        **criteria.to_params(),
        **(filters or SearchFilters()).to_params(),
        "limit": min(limit, SEARCH_MAX_LIMIT),
    }
    result = await nowcerts.get("customers/search", params)
    hits = result.data[:SEARCH_ENRICH_COUNT]
    return list(await asyncio.gather(*(_with_policy_rollup(nowcerts, c) for c in hits)))
