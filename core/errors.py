# =============================================================================
# core/errors.py  -  Error Taxonomy
# =============================================================================
#
# Every failure the core can report is one of these classes.  The tool layer
# turns any GatewayError into an error result with a readable message; it
# never lets one escape to the MCP client as a crash.
#
#   GatewayError
#     ├── ValidationError          400  bad/missing argument, unknown tool
#     ├── CredentialError          500  credential missing or refused
#     │     └── CredentialExpiredError  401  still unauthorised after refresh
#     └── UpstreamError            502  non-2xx, transport error, bad JSON
#
#   PartialDataWarning is NOT a GatewayError.  It wraps a failed enrichment
#   call (e.g. "claims for customer C100") and is only ever logged.
# =============================================================================

from typing import Any, Optional


class GatewayError(Exception):
    """Base error with an HTTP-ish status code and free-form context."""

    status_code = 500

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = context
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": {
                "type": type(self).__name__,
                "message": self.message,
                "status_code": self.status_code,
                "context": self.context,
            }
        }


class ValidationError(GatewayError):
    """A tool argument is missing or unusable."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None, **context: Any):
        if field:
            context["field"] = field
        super().__init__(message, **context)


class CredentialError(GatewayError):
    """Credential is missing, misconfigured, or the issuer refused to grant one."""

    status_code = 500

    def __init__(
        self,
        message: str,
        upstream: str,
        hint: Optional[str] = None,
        issuer_status: Optional[int] = None,
        **context: Any,
    ):
        self.upstream = upstream
        self.hint = hint
        self.issuer_status = issuer_status
        if hint:
            message = f"{message} ({hint})"
        super().__init__(message, upstream=upstream, issuer_status=issuer_status, **context)


class CredentialExpiredError(CredentialError):
    """A 401 survived the single refresh-and-retry, or the refresh itself failed."""

    status_code = 401


class UpstreamError(GatewayError):
    """An upstream API answered with a non-2xx status or an unusable body."""

    status_code = 502

    def __init__(
        self,
        upstream: str,
        status: Optional[int],
        status_text: str,
        body: str = "",
        reason: Optional[str] = None,
    ):
        self.upstream = upstream
        self.status = status
        self.status_text = status_text
        self.body = body
        if reason:
            message = f"{upstream} API error: {reason}"
        else:
            message = f"{upstream} API error: {status} {status_text}".rstrip()
        super().__init__(message, upstream=upstream, status=status, body=body[:500])


class PartialDataWarning(UserWarning):
    """An enrichment call failed; the section it fed defaults to empty."""

    def __init__(self, section: str, cause: BaseException):
        self.section = section
        self.cause = cause
        super().__init__(f"{section} unavailable: {cause}")
