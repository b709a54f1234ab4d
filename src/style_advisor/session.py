"""Session state machine: extract colors → recommend → render, with regeneration."""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from .colors import ColorSignals, PixelBuffer, extract_color_signals
from .exceptions import InvalidTransitionError, ValidationError
from .imaging import GeminiImageSynthesizer
from .models import (
    AnalysisRequest,
    AnalysisResult,
    ImageRef,
    Photo,
    StyleForm,
)
from .recommender import GeminiRecommender

logger = structlog.get_logger(__name__)

GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."

ColorExtractor = Callable[[PixelBuffer, int, int], ColorSignals]

_FORM_FIELDS = {"photo_size": "image"}


class Phase(str, Enum):
    """Session phases."""
    IDLE = "idle"
    EXTRACTING_COLORS = "extracting_colors"
    RECOMMENDING = "recommending"
    SYNTHESIZING_IMAGE = "synthesizing_image"
    READY = "ready"
    FAILED = "failed"


@dataclass
class Session:
    """State of the single active analysis.

    ``result`` and ``image`` are only set in READY; ``error`` only in FAILED.
    ``signals`` and ``base_request`` survive failures until the session is reset.
    ``request`` is the last request sent to the recommender.
    """
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    phase: Phase = Phase.IDLE
    signals: Optional[ColorSignals] = None
    base_request: Optional[AnalysisRequest] = None
    request: Optional[AnalysisRequest] = None
    result: Optional[AnalysisResult] = None
    image: Optional[ImageRef] = None
    error: Optional[Exception] = None
    attempts: int = 0


class StyleAdvisor:
    """Orchestrates one session through the analysis pipeline."""

    def __init__(
        self,
        recommender: GeminiRecommender,
        synthesizer: GeminiImageSynthesizer,
        extractor: ColorExtractor = extract_color_signals,
        max_photo_bytes: int = 10_000_000,
    ):
        self.recommender = recommender
        self.synthesizer = synthesizer
        self.extractor = extractor
        self.max_photo_bytes = max_photo_bytes
        self.session = Session()

    @property
    def phase(self) -> Phase:
        return self.session.phase

    def _require(self, action: str, *allowed: Phase) -> None:
        if self.session.phase not in allowed:
            raise InvalidTransitionError(
                f"Cannot {action} while session is {self.session.phase.value}",
                action=action,
                phase=self.session.phase.value,
            )

    def _transition(self, phase: Phase) -> None:
        logger.debug(
            "Session phase changed",
            session_id=self.session.session_id,
            from_phase=self.session.phase.value,
            to_phase=phase.value,
        )
        self.session.phase = phase

    def _fail(self, error: Exception) -> None:
        self.session.result = None
        self.session.image = None
        self.session.error = error
        self._transition(Phase.FAILED)
        logger.error(
            "Analysis failed",
            session_id=self.session.session_id,
            error=str(error),
            error_type=type(error).__name__,
            attempt=self.session.attempts,
        )

    def _validate_form(
        self,
        photo: Optional[Photo],
        occasion: str,
        genre: str,
        gender: str,
        weather: Optional[str],
    ) -> StyleForm:
        """Check user input before anything runs."""
        if not weather:
            raise ValidationError(
                "Weather information not available",
                field_errors={"weather": "Please wait a moment and try again."},
            )
        if photo is None:
            raise ValidationError(
                "Image not selected",
                field_errors={"image": "Please select an image to analyze."},
            )

        try:
            return StyleForm(
                occasion=occasion,
                genre=genre,
                gender=gender,
                max_photo_bytes=self.max_photo_bytes,
                photo_size=photo.size_bytes,
            )
        except PydanticValidationError as e:
            field_errors: Dict[str, str] = {}
            for error in e.errors():
                name = str(error["loc"][0]) if error["loc"] else "form"
                field_errors.setdefault(_FORM_FIELDS.get(name, name), error["msg"])
            raise ValidationError("Invalid style form", field_errors=field_errors) from e

    async def submit(
        self,
        photo: Optional[Photo],
        occasion: str,
        genre: str,
        gender: str,
        weather: Optional[str],
    ) -> Session:
        """Analyze a freshly uploaded photo."""
        self._require("submit", Phase.IDLE)
        form = self._validate_form(photo, occasion, genre, gender, weather)

        self._transition(Phase.EXTRACTING_COLORS)
        start_time = time.time()
        try:
            signals = self.extractor(photo.pixels, photo.width, photo.height)
        except Exception as e:
            self._fail(e)
            raise

        request = AnalysisRequest(
            photo_data_uri=photo.data_uri,
            occasion=form.occasion,
            genre=form.genre,
            gender=form.gender,
            weather=weather,
            skin_tone=signals.skin_tone.value,
            dress_colors=signals.dress_colors_label,
        )
        self.session.signals = signals
        self.session.base_request = request

        logger.info(
            "Colors extracted",
            session_id=self.session.session_id,
            skin_tone=request.skin_tone,
            dress_colors=request.dress_colors,
            extraction_time=round(time.time() - start_time, 2),
        )

        return await self._run_pipeline(request)

    async def regenerate(self) -> Session:
        """Ask for a different recommendation for the same photo."""
        self._require("regenerate", Phase.READY)
        request = self.session.base_request.with_previous(self.session.result)
        return await self._run_pipeline(request)

    def reset(self) -> Session:
        """Discard everything and start over."""
        self._require("reset", Phase.READY, Phase.FAILED)
        logger.info("Session reset", session_id=self.session.session_id)
        self.session = Session()
        return self.session

    async def _run_pipeline(self, request: AnalysisRequest) -> Session:
        """Recommendation, then image synthesis from its image prompt."""
        self.session.request = request
        self.session.result = None
        self.session.image = None
        self.session.error = None
        self.session.attempts += 1
        start_time = time.time()

        try:
            self._transition(Phase.RECOMMENDING)
            result = await self.recommender.analyze(request)

            self._transition(Phase.SYNTHESIZING_IMAGE)
            image = await self.synthesizer.render(result.image_prompt)
        except Exception as e:
            self._fail(e)
            raise

        self.session.result = result
        self.session.image = image
        self._transition(Phase.READY)

        logger.info(
            "Analysis ready",
            session_id=self.session.session_id,
            attempt=self.session.attempts,
            regenerated=request.previous_recommendation is not None,
            total_time=round(time.time() - start_time, 2),
        )
        return self.session
