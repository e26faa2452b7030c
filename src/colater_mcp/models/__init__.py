"""Data models."""

from colater_mcp.models.api_key import ApiKey
from colater_mcp.models.brand import Brand, LogoGeneration, TaglineGeneration

__all__ = [
    "ApiKey",
    "Brand",
    "LogoGeneration",
    "TaglineGeneration",
]
