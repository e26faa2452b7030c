"""Brand data models.

A brand is owned by one user. Logo and tagline generations hang off a brand
and are read newest-first when brand context is assembled.
"""

from datetime import datetime

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel

from colater_mcp.utils.datetime import utcnow


class Brand(SQLModel, table=True):
    """Brand record with the latest onboarding answers."""

    __tablename__ = "brands"

    id: str = Field(primary_key=True)
    owner_id: str = Field(index=True)

    latest_name: str = Field(default="", index=True)
    latest_elevator_pitch: str = Field(default="")
    latest_audience: str = Field(default="")
    latest_desirable_cues: str = Field(default="")  # comma-separated
    latest_undesirable_cues: str = Field(default="")  # comma-separated
    latest_concept: str = Field(default="")

    primary_tagline: str = Field(default="")
    logo_url: str = Field(default="")
    font: str = Field(default="")

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class LogoGeneration(SQLModel, table=True):
    """A generated logo and its colorized versions."""

    __tablename__ = "logo_generations"

    id: str = Field(primary_key=True)
    brand_id: str = Field(foreign_key="brands.id", index=True)
    logo_url: str = Field(default="")
    # [{"palette": ["#112233", ...]}, ...]
    color_versions: list = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utcnow)


class TaglineGeneration(SQLModel, table=True):
    """A generated tagline and the owner's reaction to it."""

    __tablename__ = "tagline_generations"

    id: str = Field(primary_key=True)
    brand_id: str = Field(foreign_key="brands.id", index=True)
    tagline: str = Field(default="")
    status: str = Field(default="generated")  # generated | liked | disliked
    created_at: datetime = Field(default_factory=utcnow)
