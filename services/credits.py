"""
Workspace credit accounting.

Credits are deducted with a conditional UPDATE so concurrent requests
cannot drive the balance below zero; every deduction writes a
``CreditUsage`` ledger row.
"""

import math
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import InsufficientCreditsError
from models.workspace import CreditUsage, Workspace
import logging

logger = logging.getLogger(__name__)

FEATURE_TRANSCRIPTION = "transcription"
FEATURE_AMPLIFICATION = "amplification"
FEATURE_CAROUSEL = "carousel"

CAROUSEL_COST = 10
AMPLIFICATION_COST_PER_POST = 1


def transcription_cost(duration_seconds: Optional[float]) -> int:
    """One credit per started minute of audio, minimum one."""
    if not duration_seconds or duration_seconds <= 0:
        return 1
    return max(1, math.ceil(duration_seconds / 60))


def ensure_credits(workspace: Workspace, amount: int):
    if workspace.credits_remaining < amount:
        raise InsufficientCreditsError(
            "Insufficient credits",
            context={
                "workspace_id": str(workspace.id),
                "required": amount,
                "remaining": workspace.credits_remaining,
            }
        )


async def charge(
    db: AsyncSession,
    workspace: Workspace,
    feature: str,
    amount: int,
    user_id=None,
    description: Optional[str] = None
) -> CreditUsage:
    """
    Deduct credits and record the usage. The caller commits.

    Raises:
        InsufficientCreditsError: balance is lower than ``amount``
    """
    result = await db.execute(
        update(Workspace)
        .where(Workspace.id == workspace.id, Workspace.credits_remaining >= amount)
        .values(credits_remaining=Workspace.credits_remaining - amount)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.refresh(workspace, attribute_names=["credits_remaining"])
        ensure_credits(workspace, amount)

    await db.refresh(workspace, attribute_names=["credits_remaining"])

    usage = CreditUsage(
        workspace_id=workspace.id,
        user_id=user_id,
        feature_type=feature,
        credits_used=amount,
        description=description,
    )
    db.add(usage)
    logger.info(f"Charged {amount} credits to workspace {workspace.id} for {feature}")
    return usage


async def usage_report(db: AsyncSession, workspace: Workspace, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Balance plus this month's usage grouped by feature."""
    now = now or datetime.utcnow()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    by_feature_result = await db.execute(
        select(CreditUsage.feature_type, func.sum(CreditUsage.credits_used))
        .where(CreditUsage.workspace_id == workspace.id, CreditUsage.created_at >= month_start)
        .group_by(CreditUsage.feature_type)
    )
    usage_by_feature = {feature: int(total or 0) for feature, total in by_feature_result.all()}

    recent_result = await db.execute(
        select(CreditUsage)
        .where(CreditUsage.workspace_id == workspace.id)
        .order_by(CreditUsage.created_at.desc())
        .limit(20)
    )
    recent = [
        {
            "id": str(usage.id),
            "feature_type": usage.feature_type,
            "credits_used": usage.credits_used,
            "description": usage.description,
            "created_at": usage.created_at.isoformat(),
        }
        for usage in recent_result.scalars().all()
    ]

    total = workspace.credits_total or 0
    used = total - workspace.credits_remaining
    return {
        "credits_total": total,
        "credits_remaining": workspace.credits_remaining,
        "credits_used": used,
        "usage_percentage": round(used / total * 100, 1) if total else 0.0,
        "month_start": month_start.isoformat(),
        "usage_this_month": sum(usage_by_feature.values()),
        "usage_by_feature": usage_by_feature,
        "recent_usage": recent,
    }
