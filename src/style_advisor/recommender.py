"""Gemini-based recommendation client for structured style feedback."""

import json
import time
from typing import Any, Dict, List

import google.generativeai as genai
import structlog
from google.generativeai.types import HarmBlockThreshold, HarmCategory
from pydantic import ValidationError as PydanticValidationError

from .config import Settings
from .exceptions import ModelError
from .models import AnalysisRequest, AnalysisResult
from .utils import decode_data_uri

logger = structlog.get_logger(__name__)


class GeminiRecommender:
    """Turns an AnalysisRequest into a validated AnalysisResult.

    The client makes exactly one model call per ``analyze``. Failures of any
    kind surface as ``ModelError``; retrying is left to the caller.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.client = None
        self._setup_client()

    def _setup_client(self) -> None:
        """Initialize Gemini client."""
        try:
            genai.configure(api_key=self.settings.gemini.api_key)

            safety_settings = {
                HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
                HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
                HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
                HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
            }

            self.client = genai.GenerativeModel(
                model_name=self.settings.gemini.model_name,
                safety_settings=safety_settings,
            )

            logger.info(
                "Gemini recommendation client initialized",
                model=self.settings.gemini.model_name,
            )

        except Exception as e:
            logger.error("Failed to initialize Gemini client", error=str(e))
            raise

    async def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Request style feedback for the given outfit."""
        start_time = time.time()
        model_name = self.settings.gemini.model_name

        try:
            contents = self._build_contents(request)
            response = await self.client.generate_content_async(
                contents,
                generation_config=genai.types.GenerationConfig(
                    temperature=self.settings.gemini.temperature,
                    max_output_tokens=self.settings.gemini.max_output_tokens,
                    response_mime_type="application/json",
                ),
            )
            response_text = response.text
        except Exception as e:
            logger.error(
                "Recommendation request failed",
                error=str(e),
                error_type=type(e).__name__,
                analysis_time=round(time.time() - start_time, 2),
            )
            raise ModelError(
                "Recommendation model call failed",
                model_name=model_name,
                api_error=str(e),
            ) from e

        result = self._parse_analysis_response(response_text)

        logger.info(
            "Style recommendation completed",
            regenerated=request.previous_recommendation is not None,
            outfits=len(result.outfit_recommendations),
            colors=len(result.color_suggestions),
            analysis_time=round(time.time() - start_time, 2),
        )
        return result

    def _build_contents(self, request: AnalysisRequest) -> List[Any]:
        """Prompt text followed by the user's photo as an inline image part."""
        mime_type, photo_bytes = decode_data_uri(request.photo_data_uri)
        return [
            self._create_recommendation_prompt(request),
            {"mime_type": mime_type, "data": photo_bytes},
        ]

    def _create_recommendation_prompt(self, request: AnalysisRequest) -> str:
        """Create prompt for outfit analysis and recommendations."""
        prompt = f"""
        You are a friendly, world-class fashion expert. Analyze the user's current outfit
        in the attached photo, then recommend alternative clothing and styling choices.

        USER CONTEXT:
        - Occasion: {request.occasion}
        - Genre preference: {request.genre}
        - Gender: {request.gender.value}
        - Current weather: {request.weather}
        - Skin tone: {request.skin_tone}
        - Current outfit colors: {request.dress_colors}

        OUTFIT ANALYSIS:
        - Decide whether the outfit is perfect, good but could be better, or not suitable.
        - Perfect: appreciate the choice and suggest ideas for variety.
        - Good but could be better: point out small improvements.
        - Not suitable: gently explain why and recommend better alternatives.
        - Keep the tone positive and encouraging.

        RECOMMENDATION RULES:
        - Recommendations MUST match both the occasion and the genre.
        - Adapt every suggestion to the current weather.
        - Keep suggestions stylish but practical.
        - Name color combinations that complement the user's skin tone.
        """

        if request.previous_recommendation:
            prompt += f"""
        PREVIOUS RECOMMENDATION:
        The user was not satisfied with this previous recommendation: "{request.previous_recommendation}"
        Generate new, distinctly different recommendations. Do not repeat ideas from the previous one.
        """

        prompt += """
        Respond with a single JSON object and nothing else:
        {
            "feedback": "one paragraph analysing the current outfit",
            "highlights": ["2-3 short highlights or actionable tips"],
            "colorSuggestions": [
                {"name": "color name", "hex": "#RRGGBB", "reason": "one short sentence"}
            ],
            "outfitRecommendations": [
                {"title": "catchy outfit title", "items": ["2-4 specific clothing items"]}
            ],
            "notes": "a single-sentence pro tip",
            "imagePrompt": "concise description of the outfit for an image model"
        }

        FIELD RULES:
        - highlights: 2-3 entries.
        - colorSuggestions: 3-4 complementary colors, each with a valid #RRGGBB hex code and a reason.
        - outfitRecommendations: 2-3 complete, distinct outfits, each with a title and 2-4 items.
        - notes: exactly one sentence.
        - imagePrompt: describe your FIRST and BEST outfit recommendation as a photorealistic
          image of that outfit on a mannequin.
        """
        return prompt

    def _parse_analysis_response(self, response_text: str) -> AnalysisResult:
        """Parse and validate the structured response."""
        model_name = self.settings.gemini.model_name
        response_text = (response_text or "").strip()

        start_idx = response_text.find('{')
        end_idx = response_text.rfind('}') + 1
        if start_idx == -1 or end_idx == 0:
            logger.error("No JSON found in recommendation response", response=response_text[:200])
            raise ModelError(
                "Recommendation response contained no JSON",
                model_name=model_name,
            )

        try:
            response_data: Dict[str, Any] = json.loads(response_text[start_idx:end_idx])
            return AnalysisResult.model_validate(response_data)
        except (json.JSONDecodeError, PydanticValidationError) as e:
            logger.error(
                "Recommendation response failed validation",
                error=str(e),
                response=response_text[:200],
            )
            raise ModelError(
                "Recommendation response does not match the expected schema",
                model_name=model_name,
                api_error=str(e),
            ) from e
