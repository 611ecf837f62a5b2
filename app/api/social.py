"""
Social API Routes
Caption generation and GoHighLevel post scheduling.
"""

import logging
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import get_db, get_gemini_service, get_ghl_client
from app.models.social import GhlIntegration, SocialPost
from app.schemas.social import (
    CaptionRequest, CaptionResponse, SocialPostRequest, SocialPostResponse,
    SocialPostRecord, SocialPostsResponse
)
from app.services import prompts
from app.services.ghl import GHLClient, GHLError, build_post_payload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/generate-caption", response_model=CaptionResponse)
async def generate_caption(
    request: CaptionRequest,
    db: Session = Depends(get_db),
    gemini=Depends(get_gemini_service),
):
    """Write a social caption for an asset."""
    if not request.asset_prompt or not request.business or not request.business.name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: assetPrompt, business.name"
        )

    system_prompt = prompts.load_caption_system_prompt(db)
    user_prompt = prompts.build_caption_prompt(request)

    logger.info(f"[Caption] Generating for {request.business.name} ({request.platform})")
    caption = await gemini.generate_text(user_prompt, system_prompt=system_prompt)
    if not caption:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="No caption generated"
        )

    return CaptionResponse(caption=caption)


@router.post("/post", response_model=SocialPostResponse)
async def create_post(
    request: SocialPostRequest,
    db: Session = Depends(get_db),
    ghl: GHLClient = Depends(get_ghl_client),
):
    """Publish now, or schedule when scheduledAt is given."""
    if not request.location_id or not request.account_ids or not request.caption:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields: locationId, accountIds, caption"
        )

    integration = db.query(GhlIntegration).filter(GhlIntegration.location_id == request.location_id).first()
    if not integration:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No GHL integration found"
        )

    payload = build_post_payload(request, integration.user_id)
    try:
        result = await ghl.create_post(request.location_id, integration.access_token, payload)
    except GHLError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"{e}: {e.details}" if e.details else str(e)
        )

    business_id = request.business_id or integration.business_id
    if business_id:
        post = SocialPost(
            ghl_post_id=result["post_id"],
            business_id=business_id,
            location_id=request.location_id,
            summary=payload["summary"],
            media_urls=request.media_urls,
            platforms=request.platforms,
            status=payload["status"],
            scheduled_at=request.scheduled_at,
            published_at=None if request.scheduled_at else datetime.utcnow(),
        )
        try:
            db.add(post)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"[Social] Post {result['post_id']} published but not cached: {e}")
    else:
        logger.warning(f"[Social] Post {result['post_id']} has no business; not cached")

    return SocialPostResponse(success=True, post_id=result["post_id"], status=result["status"])


@router.get("/posts/{business_id}", response_model=SocialPostsResponse)
async def list_posts(
    business_id: str,
    db: Session = Depends(get_db),
):
    """Cached posts for a business, latest scheduled/published first."""
    posts = (
        db.query(SocialPost)
        .filter(SocialPost.business_id == business_id)
        .order_by(func.coalesce(SocialPost.scheduled_at, SocialPost.published_at, SocialPost.created_at).desc())
        .all()
    )
    return SocialPostsResponse(posts=[SocialPostRecord.model_validate(post) for post in posts])
