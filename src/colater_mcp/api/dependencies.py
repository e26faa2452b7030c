"""FastAPI dependencies for the Colater API.

Services are built once in create_app() and kept on ``app.state``;
these dependencies hand them to endpoints and authenticate callers.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from colater_mcp.config import Settings
from colater_mcp.dispatcher import ToolDispatcher
from colater_mcp.errors import InsufficientPermissionsError
from colater_mcp.services.api_key import ApiKeyService
from colater_mcp.services.auth import Authenticated, AuthenticatedIdentity, Authenticator
from colater_mcp.services.brands import BrandRepository


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_authenticator(request: Request) -> Authenticator:
    return request.app.state.authenticator


def get_dispatcher(request: Request) -> ToolDispatcher:
    return request.app.state.dispatcher


def get_api_key_service(request: Request) -> ApiKeyService:
    return request.app.state.api_keys


def get_brand_repository(request: Request) -> BrandRepository:
    return request.app.state.brands


async def authenticate(
    request: Request,
    authenticator: Annotated[Authenticator, Depends(get_authenticator)],
) -> AuthenticatedIdentity:
    """Authenticate the bearer credential on the request.

    Raises:
        ColaterError: The authentication failure, rendered by the app's
            error handler before anything is dispatched
    """
    result = await authenticator.authenticate_header(request.headers.get("Authorization"))
    if not isinstance(result, Authenticated):
        raise result.error
    return result.identity


async def require_owner_identity(
    identity: Annotated[AuthenticatedIdentity, Depends(authenticate)],
) -> AuthenticatedIdentity:
    """Key management needs the owner's identity token, not an API key."""
    if identity.is_brand_scoped:
        raise InsufficientPermissionsError(
            "API keys cannot manage API keys; sign in as the brand owner",
        )
    return identity


def document_errors(request: Request) -> None:
    """Mark the request so error bodies carry a documentation link."""
    request.state.document_errors = True


# Type aliases for cleaner dependency injection
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
DispatcherDep = Annotated[ToolDispatcher, Depends(get_dispatcher)]
ApiKeyServiceDep = Annotated[ApiKeyService, Depends(get_api_key_service)]
BrandRepositoryDep = Annotated[BrandRepository, Depends(get_brand_repository)]
AuthDep = Annotated[AuthenticatedIdentity, Depends(authenticate)]
OwnerDep = Annotated[AuthenticatedIdentity, Depends(require_owner_identity)]
