"""API Key service.

Handles key issuance, listing, revocation, deletion, hash lookup and usage
accounting. Plaintext keys leave this module exactly once, in the return
value of ``create``.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Literal

import structlog
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from colater_mcp.errors import (
    CredentialNotFoundError,
    UpstreamUnavailableError,
    ValidationFailedError,
)
from colater_mcp.models.api_key import ApiKey
from colater_mcp.services import key_codec
from colater_mcp.utils.datetime import isoformat_utc, utcnow
from colater_mcp.utils.timeouts import store_deadline

logger = structlog.get_logger()

PermissionType = Literal["owner", "team", "developer"]

PERMISSION_TIERS: dict[str, dict[str, bool]] = {
    "owner": {"read": True, "validate": True, "generate": True, "modify": True},
    "team": {"read": True, "validate": True, "generate": False, "modify": False},
    "developer": {"read": True, "validate": False, "generate": True, "modify": False},
}

NAME_MAX_LENGTH = 100
EXPIRES_IN_DAYS_MAX = 365


class ApiKeyInfo(BaseModel):
    """Public view of an API key. Never carries the hash or the plaintext."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    brand_id: str
    name: str
    key_prefix: str
    permissions: dict[str, bool]
    created_at: str | None
    expires_at: str | None = None
    last_used_at: str | None = None
    usage_count: int = 0
    revoked_at: str | None = None

    @classmethod
    def from_record(cls, record: ApiKey) -> ApiKeyInfo:
        return cls(
            id=record.id,
            brand_id=record.brand_id,
            name=record.name,
            key_prefix=record.key_prefix,
            permissions=dict(record.permissions),
            created_at=isoformat_utc(record.created_at),
            expires_at=isoformat_utc(record.expires_at),
            last_used_at=isoformat_utc(record.last_used_at),
            usage_count=record.usage_count,
            revoked_at=isoformat_utc(record.revoked_at),
        )


@dataclass(frozen=True)
class CreatedApiKey:
    """Result of issuing a key: the stored record plus the one-time plaintext."""

    record: ApiKey
    plaintext: str


class ApiKeyService:
    """Service for API key lifecycle management."""

    def __init__(
        self,
        session_factory,
        *,
        clock: Callable[[], datetime] = utcnow,
        timeout: float | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self._timeout = timeout
        self._log = logger.bind(component="api_keys")

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        async with store_deadline(self._timeout, operation):
            async with self._session_factory() as session:
                yield session

    async def create(
        self,
        owner_id: str,
        brand_id: str,
        name: str,
        permission_type: PermissionType = "team",
        expires_in_days: int | None = None,
    ) -> CreatedApiKey:
        """Issue a new key for a brand.

        Args:
            owner_id: User that owns the brand
            brand_id: Brand the key is scoped to
            name: Display name, 1-100 characters
            permission_type: Tier from PERMISSION_TIERS
            expires_in_days: Optional lifetime, 1-365 days

        Returns:
            CreatedApiKey with the plaintext key

        Raises:
            ValidationFailedError: If any argument is out of range
        """
        name = (name or "").strip()
        if not name or len(name) > NAME_MAX_LENGTH:
            raise ValidationFailedError(
                f"name must be 1-{NAME_MAX_LENGTH} characters",
                details={"field": "name"},
            )
        if permission_type not in PERMISSION_TIERS:
            raise ValidationFailedError(
                f"Unknown permission type: {permission_type}",
                details={"field": "permissionType", "allowed": sorted(PERMISSION_TIERS)},
            )
        if expires_in_days is not None and not 1 <= expires_in_days <= EXPIRES_IN_DAYS_MAX:
            raise ValidationFailedError(
                f"expiresInDays must be between 1 and {EXPIRES_IN_DAYS_MAX}",
                details={"field": "expiresInDays"},
            )
        try:
            plaintext = key_codec.generate_key(brand_id)
        except ValueError as e:
            raise ValidationFailedError(str(e), details={"field": "brandId"}) from e

        now = self._clock()
        record = ApiKey(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            brand_id=brand_id,
            name=name,
            key_hash=key_codec.hash_key(plaintext),
            key_prefix=key_codec.display_prefix(plaintext),
            permissions=dict(PERMISSION_TIERS[permission_type]),
            created_at=now,
            expires_at=now + timedelta(days=expires_in_days) if expires_in_days else None,
        )
        async with self._session("api_key.create") as session:
            session.add(record)
            await session.commit()

        self._log.info(
            "api_key.create",
            key_id=record.id,
            brand_id=brand_id,
            key_prefix=record.key_prefix,
            permission_type=permission_type,
        )
        return CreatedApiKey(record=record, plaintext=plaintext)

    async def list(
        self,
        owner_id: str,
        brand_id: str,
        *,
        include_revoked: bool = False,
    ) -> list[ApiKey]:
        """List a brand's keys, newest first."""
        query = select(ApiKey).where(
            ApiKey.owner_id == owner_id,
            ApiKey.brand_id == brand_id,
        )
        if not include_revoked:
            query = query.where(ApiKey.revoked_at.is_(None))
        query = query.order_by(ApiKey.created_at.desc())

        async with self._session("api_key.list") as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def revoke(self, owner_id: str, brand_id: str, key_id: str) -> ApiKey:
        """Soft-delete a key. Revoking twice keeps the first timestamp.

        Raises:
            CredentialNotFoundError: If the key does not exist for this brand
        """
        async with self._session("api_key.revoke") as session:
            record = await self._get_owned(session, owner_id, brand_id, key_id)
            if record.revoked_at is None:
                record.revoked_at = self._clock()
                session.add(record)
                await session.commit()
                self._log.info(
                    "api_key.revoke",
                    key_id=key_id,
                    brand_id=brand_id,
                    key_prefix=record.key_prefix,
                )
            else:
                self._log.debug("api_key.revoke.already_revoked", key_id=key_id)
            return record

    async def delete(self, owner_id: str, brand_id: str, key_id: str) -> None:
        """Permanently remove a key record.

        Raises:
            CredentialNotFoundError: If the key does not exist for this brand
        """
        async with self._session("api_key.delete") as session:
            record = await self._get_owned(session, owner_id, brand_id, key_id)
            await session.delete(record)
            await session.commit()
        self._log.info("api_key.delete", key_id=key_id, brand_id=brand_id)

    async def lookup_by_hash(
        self,
        key_hash: str,
        brand_id: str | None = None,
    ) -> ApiKey | None:
        """Find a key record by hash, revoked or not."""
        query = select(ApiKey).where(ApiKey.key_hash == key_hash)
        if brand_id is not None:
            query = query.where(ApiKey.brand_id == brand_id)

        async with self._session("api_key.lookup") as session:
            result = await session.execute(query.limit(1))
            return result.scalars().first()

    async def record_usage(self, key_id: str) -> None:
        """Bump usage_count and last_used_at in a single UPDATE.

        Best-effort: database failures and timeouts are logged, never raised.
        """
        try:
            async with self._session("api_key.usage") as session:
                await session.execute(
                    update(ApiKey)
                    .where(ApiKey.id == key_id)
                    .values(
                        usage_count=ApiKey.usage_count + 1,
                        last_used_at=self._clock(),
                    )
                )
                await session.commit()
        except (SQLAlchemyError, UpstreamUnavailableError) as e:
            self._log.warning("api_key.usage.failed", key_id=key_id, error=str(e))

    async def _get_owned(self, session, owner_id: str, brand_id: str, key_id: str) -> ApiKey:
        result = await session.execute(
            select(ApiKey).where(
                ApiKey.id == key_id,
                ApiKey.owner_id == owner_id,
                ApiKey.brand_id == brand_id,
            )
        )
        record = result.scalars().first()
        if record is None:
            raise CredentialNotFoundError(
                "API key not found",
                details={"key_id": key_id},
                status_code=404,
            )
        return record
