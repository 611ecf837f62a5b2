"""
GoHighLevel Social Posting Client
Creates scheduled or immediate social posts through the GHL
social-media-posting API.
"""

import logging
import re
from typing import Any, Dict, Optional

import httpx

from app.core.config import settings
from app.schemas.social import SocialPostRequest

logger = logging.getLogger(__name__)

HASHTAG_PATTERN = re.compile(r"#\w+")


class GHLError(Exception):
    """GHL API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, details: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def split_hashtags(caption: str):
    """Return (caption without hashtags, hashtags joined by spaces)."""
    hashtags = HASHTAG_PATTERN.findall(caption)
    if not hashtags:
        return caption, None
    stripped = re.sub(r"\s+", " ", HASHTAG_PATTERN.sub("", caption)).strip()
    return stripped, " ".join(hashtags)


def build_post_payload(request: SocialPostRequest, user_id: Optional[str]) -> Dict[str, Any]:
    """
    Build the GHL post body.

    The location id goes in the URL, not the body; media is always a list.
    """
    payload = {
        "accountIds": request.account_ids,
        "type": "post",
        "status": "scheduled" if request.scheduled_at else "published",
        "userId": user_id,
        "summary": request.caption,
        "media": [{"url": url, "type": "image/jpeg"} for url in request.media_urls],
    }
    if request.scheduled_at:
        payload["scheduleDate"] = request.scheduled_at.isoformat()

    if request.first_comment and request.caption:
        summary, hashtags = split_hashtags(request.caption)
        if hashtags:
            payload["summary"] = summary
            payload["followUpComment"] = hashtags
    return payload


class GHLClient:
    """Thin async client over the GHL REST API."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._client = http_client
        self.base_url = settings.GHL_API_BASE.rstrip("/")

    def _headers(self, access_token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {access_token}",
            "Version": settings.GHL_API_VERSION,
            "Content-Type": "application/json",
        }

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, **kwargs)
        async with httpx.AsyncClient(timeout=settings.GHL_TIMEOUT) as client:
            return await client.post(url, **kwargs)

    async def create_post(self, location_id: str, access_token: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a post.

        Returns:
            {"post_id": ..., "status": ...}

        Raises:
            GHLError: on transport errors or non-2xx responses
        """
        url = f"{self.base_url}/social-media-posting/{location_id}/posts"
        try:
            response = await self._post(url, json=payload, headers=self._headers(access_token))
        except httpx.HTTPError as e:
            raise GHLError(f"GHL request failed: {e}") from e

        if response.is_error:
            logger.error(f"[GHL Post] Failed ({response.status_code}): {response.text}")
            raise GHLError("Failed to create post", status_code=response.status_code, details=response.text)

        data = response.json()
        post = data.get("results", {}).get("post", data) if isinstance(data.get("results"), dict) else data
        post_id = post.get("id") or post.get("_id") or data.get("postId")
        logger.info(f"[GHL Post] Created post {post_id} at location {location_id}")
        return {"post_id": post_id, "status": post.get("status") or payload["status"]}
