"""Resolve which business the dashboard should show."""

from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.business import Business

log = structlog.get_logger(__name__)


async def resolve_place_id(
    session: AsyncSession,
    explicit_place_id: Optional[str] = None,
) -> Optional[str]:
    """Return the explicit place id, or the most recently updated business.

    An explicit id is trusted as-is; ownership is checked downstream.
    Returns None when no business exists. Storage errors propagate.
    """
    if explicit_place_id:
        log.info("analytics_resolve", source="request", place_id=explicit_place_id)
        return explicit_place_id

    result = await session.execute(
        select(Business.place_id).order_by(Business.updated_at.desc()).limit(1)
    )
    place_id = result.scalar_one_or_none()

    if place_id:
        log.info("analytics_resolve", source="db", place_id=place_id)
        return place_id

    log.info("analytics_resolve", source="none")
    return None
