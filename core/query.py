# =============================================================================
# core/query.py  -  Query String Composition
# =============================================================================
#
# THE ONE RULE:
#   A parameter whose value is None is never written to the query string.
#   Every tool passes its optional filters straight through, unset ones
#   included, and relies on this module to drop them.
#
# The composer knows nothing about either upstream.  The insurance system
# wants plain keys (limit, customer_id, date_from); the CRM wants its own
# (_limit, status_label, date_created__gte).  Callers pass the right keys.
# =============================================================================

from typing import Any, Mapping, Optional
from urllib.parse import urlencode


def _to_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def compose_query(params: Optional[Mapping[str, Any]]) -> str:
    """Form-encode params in insertion order, skipping None values.

    >>> compose_query({"customer_id": "C 1", "status": None, "limit": 5})
    'customer_id=C+1&limit=5'
    """
    if not params:
        return ""
    pairs = [(str(key), _to_text(value)) for key, value in params.items() if value is not None]
    return urlencode(pairs)


def build_url(
    base_url: str,
    endpoint: str,
    params: Optional[Mapping[str, Any]] = None,
    trailing_slash: bool = False,
) -> str:
    """Join base_url and endpoint, then append the composed query if any."""
    url = f"{base_url.rstrip('/')}/{endpoint.strip('/')}"
    if trailing_slash:
        url += "/"
    query = compose_query(params)
    if query:
        url += "?" + query
    return url
