"""
Reference Image Loader
Fetches the subject, logo, and style reference images for a generation.

Every fetch yields an explicit result: a ReferenceImage when bytes were
loaded, or a SkippedReference with the reason it was left out. Nothing is
dropped silently.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

import httpx

from app.core.config import settings
from app.schemas.generate import StylePreset, SubjectContext

logger = logging.getLogger(__name__)

SUBJECT_LABEL = "[REFERENCE IMAGE 1: MAIN PRODUCT]"
LOGO_LABEL = "[REFERENCE IMAGE: BUSINESS LOGO - PRESERVE ALL TEXT/LETTERING EXACTLY]"
PRESET_STYLE_LABEL = "[REFERENCE IMAGE: STYLE]"


def style_label(index: int) -> str:
    return f"[REFERENCE IMAGE {index}: STYLE]"


@dataclass
class ReferenceImage:
    kind: str  # subject | logo | style
    label: str
    url: str
    data: bytes
    mime_type: str = "image/png"


@dataclass
class SkippedReference:
    kind: str
    label: str
    url: str
    reason: str


FetchResult = Union[ReferenceImage, SkippedReference]


@dataclass
class ReferenceBundle:
    """All references considered for one job, in model order."""
    images: List[ReferenceImage] = field(default_factory=list)
    skipped: List[SkippedReference] = field(default_factory=list)

    def add(self, result: FetchResult):
        if isinstance(result, ReferenceImage):
            self.images.append(result)
        else:
            self.skipped.append(result)

    @property
    def labels(self) -> List[str]:
        return [image.label for image in self.images]

    def kinds(self) -> List[str]:
        return [image.kind for image in self.images]


def resolve_url(url: str) -> str:
    """Relative /artifacts/ paths are served by the web app."""
    if url.startswith("/artifacts/"):
        return settings.PUBLIC_APP_URL.rstrip("/") + url
    return url


class ReferenceLoader:
    """Loads reference images over HTTP."""

    def __init__(self, http_client: Optional[httpx.AsyncClient] = None):
        self._client = http_client

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, timeout=settings.REFERENCE_FETCH_TIMEOUT)
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await client.get(url, timeout=settings.REFERENCE_FETCH_TIMEOUT)

    async def fetch(self, kind: str, label: str, url: str) -> FetchResult:
        """Fetch one image; failures become a SkippedReference."""
        resolved = resolve_url(url)
        try:
            response = await self._get(resolved)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            reason = f"{type(e).__name__}: {e}"
            logger.warning(f"[References] Skipping {kind} reference {resolved}: {reason}")
            return SkippedReference(kind=kind, label=label, url=url, reason=reason)

        if response.status_code != 200:
            reason = f"HTTP {response.status_code}"
            logger.warning(f"[References] Skipping {kind} reference {resolved}: {reason}")
            return SkippedReference(kind=kind, label=label, url=url, reason=reason)

        if not response.content:
            logger.warning(f"[References] Skipping {kind} reference {resolved}: empty body")
            return SkippedReference(kind=kind, label=label, url=url, reason="empty body")

        mime_type = response.headers.get("content-type", "image/png").split(";")[0].strip() or "image/png"
        logger.info(f"[References] Loaded {kind} reference ({len(response.content)} bytes)")
        return ReferenceImage(kind=kind, label=label, url=url, data=response.content, mime_type=mime_type)

    async def fetch_logo(self, url: str) -> FetchResult:
        """Logo fetch gets a single retry after a short pause."""
        result = await self.fetch("logo", LOGO_LABEL, url)
        if isinstance(result, SkippedReference):
            await asyncio.sleep(settings.LOGO_FETCH_RETRY_DELAY)
            logger.info("[References] Retrying logo fetch")
            result = await self.fetch("logo", LOGO_LABEL, url)
        return result

    async def load(
        self,
        subject: Optional[SubjectContext] = None,
        logo_url: Optional[str] = None,
        style_preset: Optional[StylePreset] = None,
    ) -> ReferenceBundle:
        """
        Load all references in model order: subject, logo, styles.

        Active style references (capped at MAX_STYLE_REFERENCES) take
        precedence; the preset's single image_url is used only when the
        preset has no reference images at all.
        """
        bundle = ReferenceBundle()

        if subject and subject.image_url:
            bundle.add(await self.fetch("subject", SUBJECT_LABEL, subject.image_url))

        if logo_url:
            bundle.add(await self.fetch_logo(logo_url))

        if style_preset and style_preset.reference_images:
            urls = style_preset.active_reference_urls()
            for url in urls[settings.MAX_STYLE_REFERENCES:]:
                bundle.skipped.append(SkippedReference(
                    kind="style", label="", url=url, reason="over style reference limit"
                ))
            count = 0
            for url in urls[:settings.MAX_STYLE_REFERENCES]:
                result = await self.fetch("style", style_label(count + 1), url)
                if isinstance(result, ReferenceImage):
                    count += 1
                bundle.add(result)
        elif style_preset and style_preset.image_url:
            bundle.add(await self.fetch("style", PRESET_STYLE_LABEL, style_preset.image_url))

        logger.info(
            f"[References] {len(bundle.images)} loaded, {len(bundle.skipped)} skipped"
        )
        return bundle
