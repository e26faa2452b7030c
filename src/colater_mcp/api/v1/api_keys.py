"""API key management endpoints.

Used by the brand owner's own application. Every endpoint needs the owner's
identity token and an owned brand.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from colater_mcp.api.dependencies import (
    ApiKeyServiceDep,
    BrandRepositoryDep,
    OwnerDep,
    document_errors,
)
from colater_mcp.services.api_key import EXPIRES_IN_DAYS_MAX, NAME_MAX_LENGTH, ApiKeyInfo

router = APIRouter(dependencies=[Depends(document_errors)])


class CreateApiKeyRequest(BaseModel):
    """Request to issue a key."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    permission_type: Literal["owner", "team", "developer"] = "team"
    expires_in_days: int | None = Field(default=None, ge=1, le=EXPIRES_IN_DAYS_MAX)


class CreateApiKeyResponse(ApiKeyInfo):
    """Key metadata plus the plaintext key, returned only at creation."""

    key: str


class ApiKeyListResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    api_keys: list[ApiKeyInfo]


class RevokeApiKeyResponse(BaseModel):
    success: bool = True
    message: str


@router.post(
    "/{brand_id}/api-keys",
    status_code=201,
    response_model=CreateApiKeyResponse,
    response_model_by_alias=True,
)
async def create_api_key(
    brand_id: str,
    request: CreateApiKeyRequest,
    identity: OwnerDep,
    api_keys: ApiKeyServiceDep,
    brands: BrandRepositoryDep,
) -> CreateApiKeyResponse:
    """Issue a key. The plaintext is in this response and nowhere else."""
    await brands.get_brand(identity.user_id, brand_id)
    created = await api_keys.create(
        identity.user_id,
        brand_id,
        request.name,
        permission_type=request.permission_type,
        expires_in_days=request.expires_in_days,
    )
    info = ApiKeyInfo.from_record(created.record)
    return CreateApiKeyResponse(**info.model_dump(), key=created.plaintext)


@router.get(
    "/{brand_id}/api-keys",
    response_model=ApiKeyListResponse,
    response_model_by_alias=True,
)
async def list_api_keys(
    brand_id: str,
    identity: OwnerDep,
    api_keys: ApiKeyServiceDep,
    brands: BrandRepositoryDep,
    include_revoked: bool = Query(False, alias="includeRevoked"),
) -> ApiKeyListResponse:
    """List a brand's keys, newest first. Never includes hashes or plaintext."""
    await brands.get_brand(identity.user_id, brand_id)
    records = await api_keys.list(identity.user_id, brand_id, include_revoked=include_revoked)
    return ApiKeyListResponse(api_keys=[ApiKeyInfo.from_record(r) for r in records])


@router.delete("/{brand_id}/api-keys/{key_id}", response_model=RevokeApiKeyResponse)
async def revoke_api_key(
    brand_id: str,
    key_id: str,
    identity: OwnerDep,
    api_keys: ApiKeyServiceDep,
    brands: BrandRepositoryDep,
    permanent: bool = Query(False),
) -> RevokeApiKeyResponse:
    """Revoke a key (idempotent), or delete it outright with ``permanent=true``."""
    await brands.get_brand(identity.user_id, brand_id)
    if permanent:
        await api_keys.delete(identity.user_id, brand_id, key_id)
        return RevokeApiKeyResponse(message="API key deleted successfully")

    await api_keys.revoke(identity.user_id, brand_id, key_id)
    return RevokeApiKeyResponse(message="API key revoked successfully")
