"""Brand data access.

Read-only queries over brands and their logo/tagline generations, always
scoped to the owning user.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from colater_mcp.errors import BrandNotFoundError
from colater_mcp.models.brand import Brand, LogoGeneration, TaglineGeneration
from colater_mcp.utils.datetime import isoformat_utc
from colater_mcp.utils.timeouts import store_deadline

logger = structlog.get_logger()

SortBy = Literal["name", "created", "updated"]


class _ListModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BrandStats(_ListModel):
    logo_count: int = 0
    tagline_count: int = 0
    has_guidelines: bool = False


class BrandListItem(_ListModel):
    id: str
    name: str
    tagline: str = ""
    thumbnail_url: str = ""
    created_at: str | None = None
    last_updated: str | None = None
    stats: BrandStats = Field(default_factory=BrandStats)


class Pagination(_ListModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class BrandList(_ListModel):
    brands: list[BrandListItem]
    pagination: Pagination


class BrandRepository:
    """Owner-scoped brand queries."""

    def __init__(self, session_factory, *, timeout: float | None = None) -> None:
        self._session_factory = session_factory
        self._timeout = timeout
        self._log = logger.bind(component="brands")

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        async with store_deadline(self._timeout, operation):
            async with self._session_factory() as session:
                yield session

    async def get_brand(self, owner_id: str, brand_id: str) -> Brand:
        """Fetch a brand the user owns.

        Raises:
            BrandNotFoundError: If it does not exist or belongs to someone else
        """
        async with self._session("brands.get") as session:
            result = await session.execute(
                select(Brand).where(Brand.id == brand_id, Brand.owner_id == owner_id)
            )
            brand = result.scalars().first()
        if brand is None:
            raise BrandNotFoundError(
                f"Brand not found: {brand_id}",
                details={"brand_id": brand_id},
            )
        return brand

    async def recent_logos(self, brand_id: str, limit: int = 5) -> list[LogoGeneration]:
        """Newest logo generations first."""
        async with self._session("brands.logos") as session:
            result = await session.execute(
                select(LogoGeneration)
                .where(LogoGeneration.brand_id == brand_id)
                .order_by(LogoGeneration.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def liked_taglines(self, brand_id: str, limit: int = 3) -> list[TaglineGeneration]:
        """Newest liked taglines first."""
        async with self._session("brands.taglines") as session:
            result = await session.execute(
                select(TaglineGeneration)
                .where(
                    TaglineGeneration.brand_id == brand_id,
                    TaglineGeneration.status == "liked",
                )
                .order_by(TaglineGeneration.created_at.desc())
                .limit(limit)
            )
            return list(result.scalars().all())

    async def list_brands(
        self,
        owner_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
        sort_by: SortBy = "updated",
        search: str | None = None,
        has_logo: bool | None = None,
    ) -> BrandList:
        """Page through a user's brands.

        Filters are applied in the query, so ``total`` and ``hasMore``
        describe the filtered set.
        """
        conditions = [Brand.owner_id == owner_id]
        if search:
            conditions.append(func.lower(Brand.latest_name).contains(search.lower()))
        if has_logo:
            conditions.append(Brand.logo_url != "")

        if sort_by == "name":
            order = (Brand.latest_name.asc(), Brand.id.asc())
        elif sort_by == "created":
            order = (Brand.created_at.desc(), Brand.id.asc())
        else:
            order = (Brand.updated_at.desc(), Brand.id.asc())

        async with self._session("brands.list") as session:
            total = (
                await session.execute(select(func.count()).select_from(Brand).where(*conditions))
            ).scalar_one()
            result = await session.execute(
                select(Brand).where(*conditions).order_by(*order).offset(offset).limit(limit)
            )
            page = list(result.scalars().all())

            brand_ids = [brand.id for brand in page]
            logo_counts = await self._count_by_brand(session, LogoGeneration, brand_ids)
            tagline_counts = await self._count_by_brand(session, TaglineGeneration, brand_ids)

        self._log.debug("brands.list", owner_id=owner_id, total=total, returned=len(page))
        return BrandList(
            brands=[
                BrandListItem(
                    id=brand.id,
                    name=brand.latest_name or "",
                    tagline=brand.primary_tagline or "",
                    thumbnail_url=brand.logo_url or "",
                    created_at=isoformat_utc(brand.created_at),
                    last_updated=isoformat_utc(brand.updated_at),
                    stats=BrandStats(
                        logo_count=logo_counts.get(brand.id, 0),
                        tagline_count=tagline_counts.get(brand.id, 0),
                        has_guidelines=bool(brand.primary_tagline and brand.logo_url),
                    ),
                )
                for brand in page
            ],
            pagination=Pagination(
                total=total,
                limit=limit,
                offset=offset,
                has_more=offset + len(page) < total,
            ),
        )

    @staticmethod
    async def _count_by_brand(session, model, brand_ids: list[str]) -> dict[str, int]:
        if not brand_ids:
            return {}
        result = await session.execute(
            select(model.brand_id, func.count())
            .where(model.brand_id.in_(brand_ids))
            .group_by(model.brand_id)
        )
        return {brand_id: count for brand_id, count in result.all()}
