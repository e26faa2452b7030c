"""API Key data model.

Stores hashed brand-scoped API keys for tool-call authentication.
Plaintext keys are never stored, only SHA-256 hashes.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from colater_mcp.utils.datetime import utcnow


class ApiKey(SQLModel, table=True):
    """Brand-scoped API key.

    Keys are stored as SHA-256 hashes. The key_prefix (first 20 chars plus an
    ellipsis) is stored for identification in logs and the owner's UI.
    Revocation is a soft delete: ``revoked_at`` is set once and kept.
    """

    __tablename__ = "api_keys"

    id: str = Field(primary_key=True)
    owner_id: str = Field(index=True)
    brand_id: str = Field(index=True)
    name: str
    key_hash: str = Field(index=True)  # SHA-256 hex digest
    key_prefix: str  # e.g. "colater_sk_brand_abc..."
    permissions: dict = Field(default_factory=dict, sa_column=Column(JSON, nullable=False))

    created_at: datetime = Field(default_factory=utcnow)
    expires_at: Optional[datetime] = Field(default=None)
    last_used_at: Optional[datetime] = Field(default=None)
    usage_count: int = Field(default=0)
    revoked_at: Optional[datetime] = Field(default=None)

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now
