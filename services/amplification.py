"""
Amplification - expand a transcription into LinkedIn post variations.

Phases:
1. Validate - transcription exists, has text, caller may create content
2. Prepare - replace previous drafts, open an AmplificationJob
3. Generate - one LLM call for all variations
4. Persist - posts, job completion and credit charge in one commit
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import BadRequestError, GenerationError, NotFoundError, SuflateException
from integrations.openrouter import OpenRouterClient
from models.amplification_job import AmplificationJob
from models.base import VARIATION_ORDER, AmplificationStatus, CarouselTemplate, PostStatus, SourceType, VariationType
from models.carousel import Carousel
from models.post import Post
from models.transcription import Transcription
from services import credits
from services.posts import new_post
from services.workspaces import require_role
import logging

logger = logging.getLogger(__name__)

SINGLE_TYPE_VARIATIONS = 3
MIN_SLIDES = 5
MAX_SLIDES = 10
DEFAULT_SLIDES = 7


def clamp_slide_count(slide_count: Optional[int]) -> int:
    if slide_count is None:
        return DEFAULT_SLIDES
    return max(MIN_SLIDES, min(MAX_SLIDES, slide_count))


def variation_types_for(count: int, variation_type: Optional[VariationType]) -> List[VariationType]:
    if variation_type is not None:
        return [variation_type] * count
    return [VariationType(VARIATION_ORDER[i % len(VARIATION_ORDER)]) for i in range(count)]


class Amplifier:
    """Turns transcriptions into post variations and carousels"""

    def __init__(self, db: AsyncSession, llm: OpenRouterClient):
        self.db = db
        self.llm = llm

    async def _load_transcription(self, transcription_id, user_id):
        transcription = await self.db.get(Transcription, transcription_id)
        if transcription is None:
            raise NotFoundError("Transcription not found", context={"transcription_id": str(transcription_id)})
        workspace, _ = await require_role(self.db, transcription.workspace_id, user_id, "create")
        return transcription, workspace

    async def amplify(
        self,
        transcription_id,
        user_id,
        variation_type: Optional[VariationType] = None,
        replace_existing: bool = True
    ) -> Dict[str, Any]:
        """
        Generate post variations for a transcription.

        Args:
            transcription_id: Source transcription
            user_id: Requesting user (must be able to create content)
            variation_type: Generate 3 variations of one style instead of one of each
            replace_existing: Delete the caller's earlier drafts for this transcription first

        Returns:
            Dictionary with job and posts

        Raises:
            NotFoundError, ForbiddenError, BadRequestError, InsufficientCreditsError
            GenerationError: LLM call failed; the job is marked failed
        """
        transcription, workspace = await self._load_transcription(transcription_id, user_id)

        text = transcription.source_text
        if not text:
            raise BadRequestError("Transcription text is empty")

        count = SINGLE_TYPE_VARIATIONS if variation_type else len(VARIATION_ORDER)
        credits.ensure_credits(workspace, count * credits.AMPLIFICATION_COST_PER_POST)

        if replace_existing:
            filters = [
                Post.transcription_id == transcription.id,
                Post.user_id == user_id,
                Post.status == PostStatus.DRAFT,
            ]
            if variation_type is not None:
                filters.append(Post.variation_type == variation_type)
            await self.db.execute(delete(Post).where(*filters).execution_options(synchronize_session=False))

        job = AmplificationJob(
            workspace_id=transcription.workspace_id,
            transcription_id=transcription.id,
            recording_id=transcription.recording_id,
            status=AmplificationStatus.PROCESSING,
            variation_count=count,
            started_at=datetime.utcnow(),
        )
        self.db.add(job)
        await self.db.commit()
        logger.info(f"Amplification job {job.id} started for transcription {transcription.id} ({count} variations)")

        try:
            result = await self.llm.generate_post_variations(
                text,
                variation_type=variation_type.value if variation_type else None,
                count=count,
            )
        except Exception as e:
            message = e.message if isinstance(e, SuflateException) else str(e)
            logger.error(f"Amplification job {job.id} failed: {message}")
            job.status = AmplificationStatus.FAILED
            job.error_message = message
            job.completed_at = datetime.utcnow()
            await self.db.commit()
            if isinstance(e, GenerationError):
                raise
            raise GenerationError("Failed to generate variations", context={"job_id": str(job.id)}, original_exception=e)

        posts = []
        for content, post_type in zip(result.variations, variation_types_for(len(result.variations), variation_type)):
            post = new_post(
                workspace_id=transcription.workspace_id,
                user_id=user_id,
                transcription_id=transcription.id,
                amplification_job_id=job.id,
                source_type=SourceType.VOICE,
                variation_type=post_type,
                content=content,
                tags=[],
                status=PostStatus.DRAFT,
            )
            self.db.add(post)
            posts.append(post)

        job.status = AmplificationStatus.COMPLETED
        job.completed_variations = len(posts)
        job.model_used = result.model
        job.usage_tokens = result.usage
        job.completed_at = datetime.utcnow()

        await credits.charge(
            self.db,
            workspace,
            credits.FEATURE_AMPLIFICATION,
            len(posts) * credits.AMPLIFICATION_COST_PER_POST,
            user_id=user_id,
            description=f"Amplification job {job.id}",
        )
        await self.db.commit()
        logger.info(f"Amplification job {job.id} completed with {len(posts)} posts")

        return {"job": job, "posts": posts}

    async def generate_carousel(
        self,
        transcription_id,
        user_id,
        template_type: CarouselTemplate = CarouselTemplate.MINIMAL,
        slide_count: Optional[int] = None
    ) -> Carousel:
        transcription, workspace = await self._load_transcription(transcription_id, user_id)

        text = transcription.source_text
        if not text:
            raise BadRequestError("Transcription text is empty")

        credits.ensure_credits(workspace, credits.CAROUSEL_COST)

        slides = await self.llm.generate_carousel(text, clamp_slide_count(slide_count))

        carousel = Carousel(
            workspace_id=transcription.workspace_id,
            user_id=user_id,
            transcription_id=transcription.id,
            title=slides[0]["title"] or None,
            slide_data=slides,
            template_type=template_type,
            credits_used=credits.CAROUSEL_COST,
        )
        self.db.add(carousel)
        await credits.charge(
            self.db,
            workspace,
            credits.FEATURE_CAROUSEL,
            credits.CAROUSEL_COST,
            user_id=user_id,
            description="Carousel generation",
        )
        await self.db.commit()
        logger.info(f"Carousel {carousel.id} generated with {len(slides)} slides")
        return carousel
