"""Colater error types.

Error codes are stable strings for programmatic handling. The same codes are
used in tool-call envelopes, HTTP error bodies and the upstream client.
"""

from __future__ import annotations

from typing import Any


class ColaterError(Exception):
    """Base error for all Colater exceptions."""

    code: str = "internal_error"
    message: str = "An internal error occurred"
    status_code: int = 500
    retryable: bool = False

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        status_code: int | None = None,
    ) -> None:
        self.message = message or self.__class__.message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self, documentation_base: str | None = None) -> dict[str, Any]:
        """Serialize to the ``{"error": {...}}`` wire format."""
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "retryable": self.retryable,
        }
        if documentation_base:
            error["documentation"] = f"{documentation_base}#{self.code}"
        return {"error": error}


class CredentialMissingError(ColaterError):
    """No credential supplied (401)."""

    code = "credential_missing"
    message = "Missing credential"
    status_code = 401


class CredentialMalformedError(ColaterError):
    """Credential looks like a brand key but does not parse (401)."""

    code = "credential_malformed"
    message = "Malformed API key"
    status_code = 401


class CredentialNotFoundError(ColaterError):
    """Credential does not match any known key or identity (401)."""

    code = "credential_not_found"
    message = "Invalid API key"
    status_code = 401


class CredentialRevokedError(ColaterError):
    """API key has been revoked (401)."""

    code = "credential_revoked"
    message = "API key has been revoked"
    status_code = 401


class CredentialExpiredError(ColaterError):
    """API key is past its expiry (401)."""

    code = "credential_expired"
    message = "API key has expired"
    status_code = 401


class InsufficientPermissionsError(ColaterError):
    """Authenticated, but not allowed to do this (403)."""

    code = "insufficient_permissions"
    message = "Insufficient permissions"
    status_code = 403


class ValidationFailedError(ColaterError):
    """Request failed input validation (400)."""

    code = "validation_failed"
    message = "Invalid request"
    status_code = 400


class BrandNotSpecifiedError(ColaterError):
    """No brand in the request and no default configured (400)."""

    code = "brand_not_specified"
    message = (
        "No brandId provided and no default brand configured. "
        "Please specify a brandId or set a default brand in config."
    )
    status_code = 400


class BrandNotFoundError(ColaterError):
    """Brand does not exist for this owner (404)."""

    code = "brand_not_found"
    message = "Brand not found"
    status_code = 404


class UpstreamUnavailableError(ColaterError):
    """Data store, model or API unreachable or too slow (503)."""

    code = "upstream_unavailable"
    message = "Upstream service unavailable"
    status_code = 503
    retryable = True


class UpstreamRateLimitedError(ColaterError):
    """Upstream rate limit hit (429)."""

    code = "upstream_rate_limited"
    message = "Rate limit exceeded"
    status_code = 429
    retryable = True

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        *,
        retry_after: float | None = None,
        status_code: int | None = None,
    ) -> None:
        details = dict(details or {})
        if retry_after is not None:
            details.setdefault("retry_after", retry_after)
        self.retry_after = details.get("retry_after")
        super().__init__(message, details, status_code=status_code)


class InternalError(ColaterError):
    """Unexpected failure (500)."""


# Error code to exception class mapping
ERROR_CODE_MAP: dict[str, type[ColaterError]] = {
    "credential_missing": CredentialMissingError,
    "credential_malformed": CredentialMalformedError,
    "credential_not_found": CredentialNotFoundError,
    "credential_revoked": CredentialRevokedError,
    "credential_expired": CredentialExpiredError,
    "insufficient_permissions": InsufficientPermissionsError,
    "validation_failed": ValidationFailedError,
    "brand_not_specified": BrandNotSpecifiedError,
    "brand_not_found": BrandNotFoundError,
    "upstream_unavailable": UpstreamUnavailableError,
    "upstream_rate_limited": UpstreamRateLimitedError,
    "internal_error": InternalError,
}


def error_from_payload(
    payload: dict[str, Any],
    *,
    status_code: int | None = None,
    default: type[ColaterError] = InternalError,
) -> ColaterError:
    """Rebuild a ColaterError from an ``{"error": {...}}`` body.

    Args:
        payload: Parsed JSON body
        status_code: HTTP status the body arrived with, if any
        default: Class used when the code is unknown

    Returns:
        The matching ColaterError subclass instance
    """
    error_data = payload.get("error") or {}
    if not isinstance(error_data, dict):
        error_data = {"message": str(error_data)}
    code = error_data.get("code")
    error_class = ERROR_CODE_MAP.get(code, default)
    return error_class(
        message=error_data.get("message"),
        details=error_data.get("details") or {},
        status_code=status_code,
    )
