# =============================================================================
# core/__init__.py
# =============================================================================
# This package contains ALL business logic of the insurance agency gateway:
# configuration, credentials, the two upstream clients, and the reports
# built on top of them.
#
# ARCHITECTURAL RULE:
#   Nothing in this package imports FastMCP or any protocol code.  The
#   reports take an UpstreamClient and return plain dicts, so they can be
#   exercised against an httpx.MockTransport with no server running.
# =============================================================================
