"""
Gemini Image Generation Service
Uses native Gemini image generation models (gemini-3-pro-image-preview) for
ad creatives and a Gemini text model for captions.
Documentation: https://ai.google.dev/gemini-api/docs/image-generation
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import List, Optional

from google import genai
from google.genai import types

from app.core.config import settings
from app.services.references import ReferenceBundle
from app.workers.base import GenerationTimeoutError, NoImageInResponseError

logger = logging.getLogger(__name__)


@dataclass
class GeneratedImage:
    data: bytes
    mime_type: str = "image/png"


def image_size_for_tier(model_tier: Optional[str]) -> str:
    return "4K" if model_tier == "ultra" else "2K"


def build_content_parts(prompt: str, bundle: Optional[ReferenceBundle] = None) -> List[types.Part]:
    """Prompt text first, then each reference image followed by its label."""
    parts = [types.Part.from_text(text=prompt)]
    for image in (bundle.images if bundle else []):
        parts.append(types.Part.from_bytes(data=image.data, mime_type=image.mime_type))
        parts.append(types.Part.from_text(text=f" {image.label} "))
    return parts


def extract_image(response) -> GeneratedImage:
    """
    Return the first image part of the first candidate.

    Raises:
        NoImageInResponseError: when the response carries no image
    """
    candidates = getattr(response, "candidates", None) or []
    content = candidates[0].content if candidates else None
    parts = (content.parts if content else None) or []

    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data and (inline.mime_type or "").startswith("image/"):
            return GeneratedImage(data=inline.data, mime_type=inline.mime_type)

    details = {}
    if candidates:
        details["finish_reason"] = str(candidates[0].finish_reason)
    text = [part.text for part in parts if getattr(part, "text", None)]
    if text:
        details["text"] = " ".join(text)[:500]
    raise NoImageInResponseError(details=details)


class GeminiImageService:
    """Service for image and caption generation using Gemini models."""

    def __init__(self, client: Optional[genai.Client] = None):
        self.client = client or genai.Client(api_key=settings.GEMINI_API_KEY)
        self.model_name = settings.GEMINI_IMAGE_MODEL
        self.text_model = settings.GEMINI_TEXT_MODEL
        logger.info(f"[GeminiImageService] Initialized with model: {self.model_name}")

    async def generate(
        self,
        parts: List[types.Part],
        aspect_ratio: str = "1:1",
        model_tier: str = "pro",
        timeout: Optional[float] = None,
    ) -> GeneratedImage:
        """
        Generate one image.

        The model call is raced once against the timeout; there is no retry.

        Args:
            parts: Prompt and reference parts (see build_content_parts)
            aspect_ratio: Aspect ratio, e.g. "1:1", "9:16"
            model_tier: "ultra" requests 4K output, anything else 2K
            timeout: Seconds; defaults to IMAGE_GENERATION_TIMEOUT

        Raises:
            GenerationTimeoutError: model did not answer in time
            NoImageInResponseError: model answered without an image
        """
        timeout = settings.IMAGE_GENERATION_TIMEOUT if timeout is None else timeout
        config = types.GenerateContentConfig(
            response_modalities=["TEXT", "IMAGE"],
            image_config=types.ImageConfig(
                aspect_ratio=aspect_ratio,
                image_size=image_size_for_tier(model_tier),
            ),
        )

        logger.info(
            f"[Gemini] Generating with {self.model_name} | aspect={aspect_ratio} "
            f"| size={image_size_for_tier(model_tier)} | parts={len(parts)}"
        )
        started = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self.client.aio.models.generate_content(
                    model=self.model_name,
                    contents=[types.Content(role="user", parts=parts)],
                    config=config,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.error(f"[Gemini] No response after {timeout:g}s")
            raise GenerationTimeoutError(timeout)

        logger.info(f"[Gemini] Response received in {time.monotonic() - started:.2f}s")
        return extract_image(response)

    async def generate_text(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Single-turn text generation. Returns an empty string when the model gives no text."""
        config = types.GenerateContentConfig(system_instruction=system_prompt) if system_prompt else None
        response = await self.client.aio.models.generate_content(
            model=self.text_model,
            contents=prompt,
            config=config,
        )
        return (response.text or "").strip()
