"""
Amplification endpoints: post variations and carousels from a transcription
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_current_user, get_db, get_llm_client
from integrations.openrouter import OpenRouterClient
from models.user import User
from schemas.content import AmplificationJobResponse, AmplifyRequest, CarouselRequest, CarouselResponse
from schemas.posts import PostResponse
from services.amplification import Amplifier
import logging

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/amplify", tags=["Amplify"])


@router.post("")
async def amplify(
    request: Request,
    body: AmplifyRequest,
    user: User = Depends(get_current_user),
    llm: OpenRouterClient = Depends(get_llm_client),
    db: AsyncSession = Depends(get_db)
):
    """
    Generate LinkedIn post variations from a transcription.

    Without ``variation_type`` one variation of each style is generated;
    with it, three variations of that style.
    """
    request_id = getattr(request.state, "request_id", "-")
    logger.info(
        f"[{request_id}] POST /amplify - transcription={body.transcription_id}, "
        f"variation_type={body.variation_type}, replace_existing={body.replace_existing}"
    )

    result = await Amplifier(db, llm).amplify(
        body.transcription_id,
        user.id,
        variation_type=body.variation_type,
        replace_existing=body.replace_existing,
    )
    return {
        "job": AmplificationJobResponse.model_validate(result["job"]),
        "posts": [PostResponse.model_validate(post) for post in result["posts"]],
    }


@router.post("/carousel", response_model=CarouselResponse, status_code=201)
async def generate_carousel(
    request: Request,
    body: CarouselRequest,
    user: User = Depends(get_current_user),
    llm: OpenRouterClient = Depends(get_llm_client),
    db: AsyncSession = Depends(get_db)
):
    request_id = getattr(request.state, "request_id", "-")
    logger.info(f"[{request_id}] POST /amplify/carousel - transcription={body.transcription_id}")

    return await Amplifier(db, llm).generate_carousel(
        body.transcription_id,
        user.id,
        template_type=body.template_type,
        slide_count=body.slide_count,
    )
