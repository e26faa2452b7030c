"""Colater services layer."""

from colater_mcp.services.api_key import ApiKeyService
from colater_mcp.services.auth import Authenticator
from colater_mcp.services.brands import BrandRepository
from colater_mcp.services.cache import LocalCache

__all__ = ["ApiKeyService", "Authenticator", "BrandRepository", "LocalCache"]
