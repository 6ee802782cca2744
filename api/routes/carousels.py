"""
Carousel endpoints
"""

from datetime import datetime
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import CurrentWorkspace, get_current_user, get_current_workspace, get_db
from core.exceptions import BadRequestError, NotFoundError
from models.carousel import Carousel
from models.user import User
from schemas.content import CarouselResponse, CarouselUpdateRequest

router = APIRouter(prefix="/carousels", tags=["Carousels"])


async def get_user_carousel(db: AsyncSession, carousel_id, user_id) -> Carousel:
    carousel = await db.get(Carousel, carousel_id)
    if carousel is None or carousel.user_id != user_id:
        raise NotFoundError("Carousel not found", context={"carousel_id": str(carousel_id)})
    return carousel


@router.get("", response_model=List[CarouselResponse])
async def list_carousels(
    user: User = Depends(get_current_user),
    current: CurrentWorkspace = Depends(get_current_workspace),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(Carousel)
        .where(Carousel.workspace_id == current.id, Carousel.user_id == user.id)
        .order_by(Carousel.created_at.desc())
    )
    return result.scalars().all()


@router.get("/{carousel_id}", response_model=CarouselResponse)
async def get_carousel(
    carousel_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await get_user_carousel(db, carousel_id, user.id)


@router.patch("/{carousel_id}", response_model=CarouselResponse)
async def update_carousel(
    carousel_id: UUID,
    body: CarouselUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    carousel = await get_user_carousel(db, carousel_id, user.id)

    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise BadRequestError("No valid fields to update")

    if "title" in changes:
        carousel.title = (changes["title"] or "").strip() or None
    if "slide_data" in changes:
        if not changes["slide_data"]:
            raise BadRequestError("Carousel must have at least one slide")
        carousel.slide_data = changes["slide_data"]
    if changes.get("template_type") is not None:
        carousel.template_type = body.template_type
    if "custom_branding" in changes:
        carousel.custom_branding = changes["custom_branding"]
    if changes.get("status") is not None:
        carousel.status = body.status

    carousel.updated_at = datetime.utcnow()
    await db.commit()
    return carousel


@router.delete("/{carousel_id}")
async def delete_carousel(
    carousel_id: UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    carousel = await get_user_carousel(db, carousel_id, user.id)
    await db.delete(carousel)
    await db.commit()
    return {"success": True}
