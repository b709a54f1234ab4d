"""Gemini image synthesis for the top outfit recommendation."""

import time
from typing import Any, Optional

import structlog
from google import genai
from google.genai import types

from .config import Settings
from .exceptions import ImageGenerationError
from .models import ImageRef

logger = structlog.get_logger(__name__)

LOOKBOOK_TEMPLATE = (
    "A high-resolution, photorealistic image of a complete outfit on a mannequin, "
    "suitable for a high-end fashion lookbook. The background should be a neutral "
    "gray studio setting.\n\n"
    "Outfit details: {description}"
)


class GeminiImageSynthesizer:
    """Renders an outfit description into an image."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.client = None
        self._setup_client()

    def _setup_client(self) -> None:
        """Initialize Gemini image client."""
        try:
            self.client = genai.Client(api_key=self.settings.gemini.api_key)
            logger.info(
                "Gemini image client initialized",
                model=self.settings.gemini.image_model_name,
            )
        except Exception as e:
            logger.error("Failed to initialize Gemini image client", error=str(e))
            raise

    def create_prompt(self, outfit_description: str) -> str:
        """Wrap the outfit description in the lookbook framing."""
        return LOOKBOOK_TEMPLATE.format(description=outfit_description.strip())

    async def render(self, outfit_description: str) -> ImageRef:
        """Generate an image for the outfit description."""
        start_time = time.time()
        model_name = self.settings.gemini.image_model_name
        prompt = self.create_prompt(outfit_description)

        try:
            response = await self.client.aio.models.generate_content(
                model=model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_modalities=["TEXT", "IMAGE"],
                ),
            )
        except Exception as e:
            logger.error(
                "Image generation request failed",
                error=str(e),
                error_type=type(e).__name__,
                generation_time=round(time.time() - start_time, 2),
            )
            raise ImageGenerationError(
                "Image generation request failed",
                model_name=model_name,
                api_error=str(e),
            ) from e

        image = self._extract_image(response)
        if image is None:
            logger.error(
                "Image generation returned no image",
                prompt=prompt[:100] + "..." if len(prompt) > 100 else prompt,
            )
            raise ImageGenerationError(
                "Image generation failed to produce an image",
                model_name=model_name,
            )

        logger.info(
            "Outfit image generated",
            mime_type=image.mime_type,
            image_bytes=len(image.data),
            generation_time=round(time.time() - start_time, 2),
        )
        return image

    def _extract_image(self, response: Any) -> Optional[ImageRef]:
        """Return the first inline image part, logging any text parts."""
        candidates = getattr(response, "candidates", None) or []
        if not candidates or candidates[0].content is None:
            return None

        for part in candidates[0].content.parts or []:
            inline_data = getattr(part, "inline_data", None)
            if inline_data is not None and inline_data.data:
                return ImageRef(
                    mime_type=inline_data.mime_type or "image/png",
                    data=inline_data.data,
                )
            text = getattr(part, "text", None)
            if text:
                logger.debug("Image model text part", text=text[:200])
        return None
