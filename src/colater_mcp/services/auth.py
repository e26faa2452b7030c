"""Bearer-credential authentication.

Authentication flow:
1. Empty credential -> credential_missing
2. Brand-key prefix but bad shape -> credential_malformed (never tried as legacy)
3. Brand-scoped key -> hash lookup, then revoked / expired checks
4. Anything else -> legacy identity token via the identity verifier

Credential-store lookups and identity verification are bounded by the
configured timeout and fail as upstream_unavailable when they overrun.

Usage accounting for brand-scoped keys runs as a background task so it
never adds latency to, or fails, the call being authenticated.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

import jwt
import structlog
from sqlalchemy.exc import SQLAlchemyError

from colater_mcp.config import AuthConfig
from colater_mcp.errors import (
    ColaterError,
    CredentialExpiredError,
    CredentialMissingError,
    CredentialNotFoundError,
    CredentialRevokedError,
    UpstreamUnavailableError,
)
from colater_mcp.services import key_codec
from colater_mcp.services.api_key import ApiKeyService
from colater_mcp.utils.datetime import utcnow

logger = structlog.get_logger()


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """Who is calling.

    Legacy identities carry no brand and no permission set; they are
    unrestricted within the brands their user owns.
    """

    user_id: str
    brand_id: str | None = None
    permissions: dict[str, bool] | None = None
    key_id: str | None = None
    key_prefix: str | None = None

    @property
    def is_brand_scoped(self) -> bool:
        return self.brand_id is not None

    def allows(self, capability: str) -> bool:
        if self.permissions is None:
            return True
        return bool(self.permissions.get(capability, False))


@dataclass(frozen=True)
class Authenticated:
    identity: AuthenticatedIdentity


@dataclass(frozen=True)
class Unauthenticated:
    error: ColaterError


AuthResult = Authenticated | Unauthenticated


class IdentityVerifier(Protocol):
    """Verifies a legacy identity token and returns the user id.

    Raises CredentialNotFoundError for any token it does not accept.
    """

    async def verify(self, token: str) -> str: ...


class JWTIdentityVerifier:
    """Identity tokens as JWTs, checked with a shared secret or a JWKS URL."""

    _USER_ID_CLAIMS = ("sub", "user_id", "uid")

    def __init__(self, config: AuthConfig) -> None:
        self._config = config
        self._jwks_client = jwt.PyJWKClient(config.jwks_url) if config.jwks_url else None
        self._log = logger.bind(component="identity")

    @property
    def configured(self) -> bool:
        return bool(self._config.jwt_secret or self._jwks_client)

    async def verify(self, token: str) -> str:
        if not self.configured:
            raise CredentialNotFoundError("Identity token verification is not configured")

        try:
            if self._jwks_client is not None:
                # PyJWKClient fetches keys over blocking HTTP
                signing_key = await asyncio.to_thread(
                    self._jwks_client.get_signing_key_from_jwt, token
                )
                key = signing_key.key
            else:
                key = self._config.jwt_secret

            claims = jwt.decode(
                token,
                key,
                algorithms=self._config.algorithms,
                audience=self._config.audience,
                issuer=self._config.issuer,
                options={"verify_aud": self._config.audience is not None},
            )
        except jwt.PyJWKClientError as e:
            self._log.warning("identity.jwks_failed", error=str(e))
            raise CredentialNotFoundError() from e
        except jwt.InvalidTokenError as e:
            self._log.debug("identity.invalid_token", error=str(e))
            raise CredentialNotFoundError() from e

        for claim in self._USER_ID_CLAIMS:
            user_id = claims.get(claim)
            if user_id:
                return str(user_id)
        raise CredentialNotFoundError("Identity token carries no user id")


class Authenticator:
    """Turns a bearer credential into an identity or a structured failure."""

    def __init__(
        self,
        api_keys: ApiKeyService,
        identity_verifier: IdentityVerifier | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        timeout: float = 10.0,
    ) -> None:
        self._api_keys = api_keys
        self._identity_verifier = identity_verifier
        self._clock = clock
        self._timeout = timeout
        self._usage_tasks: set[asyncio.Task] = set()
        self._log = logger.bind(component="auth")

    async def authenticate_header(self, authorization: str | None) -> AuthResult:
        """Authenticate an ``Authorization: Bearer ...`` header value."""
        if not authorization or not authorization.startswith("Bearer "):
            return self._fail(CredentialMissingError())
        return await self.authenticate(authorization[7:])

    async def authenticate(self, token: str | None) -> AuthResult:
        """Authenticate a raw bearer token."""
        try:
            credential = key_codec.parse_credential(token)
        except ColaterError as e:
            return self._fail(e)

        if isinstance(credential, key_codec.BrandScopedKey):
            return await self._authenticate_key(credential)
        return await self._authenticate_legacy(credential)

    async def wait_for_usage_updates(self) -> None:
        """Wait for scheduled usage updates to finish."""
        if self._usage_tasks:
            await asyncio.gather(*list(self._usage_tasks), return_exceptions=True)

    async def _authenticate_key(self, credential: key_codec.BrandScopedKey) -> AuthResult:
        key_prefix = key_codec.display_prefix(credential.raw)
        try:
            async with asyncio.timeout(self._timeout):
                record = await self._api_keys.lookup_by_hash(
                    key_codec.hash_key(credential.raw),
                    brand_id=credential.brand_id,
                )
        except SQLAlchemyError as e:
            self._log.error("auth.lookup_failed", key_prefix=key_prefix, error=str(e))
            return Unauthenticated(UpstreamUnavailableError("Credential store unavailable"))
        except (TimeoutError, UpstreamUnavailableError):
            self._log.error("auth.lookup_timeout", key_prefix=key_prefix, timeout=self._timeout)
            return Unauthenticated(self._timed_out("Credential store"))

        if record is None:
            return self._fail(CredentialNotFoundError(), key_prefix=key_prefix)
        if record.is_revoked:
            return self._fail(CredentialRevokedError(), key_prefix=key_prefix)
        if record.is_expired(self._clock()):
            return self._fail(CredentialExpiredError(), key_prefix=key_prefix)

        self._schedule_usage(record.id)
        self._log.debug("auth.success", source="api_key", key_prefix=key_prefix)
        return Authenticated(
            AuthenticatedIdentity(
                user_id=record.owner_id,
                brand_id=record.brand_id,
                permissions=dict(record.permissions),
                key_id=record.id,
                key_prefix=record.key_prefix,
            )
        )

    async def _authenticate_legacy(self, credential: key_codec.LegacyToken) -> AuthResult:
        if self._identity_verifier is None:
            return self._fail(CredentialNotFoundError("Invalid API key or token"))
        try:
            async with asyncio.timeout(self._timeout):
                user_id = await self._identity_verifier.verify(credential.token)
        except TimeoutError:
            self._log.error("auth.identity_timeout", timeout=self._timeout)
            return Unauthenticated(self._timed_out("Identity verification"))
        except ColaterError:
            return self._fail(CredentialNotFoundError("Invalid API key or token"))

        self._log.debug("auth.success", source="identity", user_id=user_id)
        return Authenticated(AuthenticatedIdentity(user_id=user_id))

    def _schedule_usage(self, key_id: str) -> None:
        task = asyncio.create_task(self._api_keys.record_usage(key_id))
        self._usage_tasks.add(task)
        task.add_done_callback(self._on_usage_done)

    def _on_usage_done(self, task: asyncio.Task) -> None:
        self._usage_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._log.warning("auth.usage_update_failed", error=str(exc))

    def _timed_out(self, what: str) -> UpstreamUnavailableError:
        return UpstreamUnavailableError(
            f"{what} timed out after {self._timeout:g}s",
            details={"timeout": self._timeout},
        )

    def _fail(self, error: ColaterError, **fields) -> Unauthenticated:
        self._log.info("auth.failure", reason=error.code, **fields)
        return Unauthenticated(error)
