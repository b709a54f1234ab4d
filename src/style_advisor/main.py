"""Application wiring for the style advisor."""

import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import structlog
from pydantic import ValidationError as PydanticValidationError

from .config import Settings, get_settings
from .exceptions import ConfigurationError, StyleAdvisorError, ValidationError
from .imaging import GeminiImageSynthesizer
from .models import AnalysisResult
from .recommender import GeminiRecommender
from .session import GENERIC_ERROR_MESSAGE, Session, StyleAdvisor
from .utils import load_photo, save_outcome, setup_logging
from .weather import resolve_weather

logger = structlog.get_logger(__name__)


class StyleAdvisorApp:
    """Runs one outfit analysis end to end from the command line."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or load_settings()
        self.advisor: Optional[StyleAdvisor] = None
        self._setup_components()

    def _setup_components(self) -> None:
        """Initialize all components."""
        try:
            setup_logging(
                level=self.settings.logging.level,
                format_type=self.settings.logging.format,
            )

            self.advisor = StyleAdvisor(
                recommender=GeminiRecommender(self.settings),
                synthesizer=GeminiImageSynthesizer(self.settings),
                max_photo_bytes=self.settings.photo.max_bytes,
            )

            logger.info(
                "Components initialized successfully",
                text_model=self.settings.gemini.model_name,
                image_model=self.settings.gemini.image_model_name,
            )

        except Exception as e:
            logger.error("Failed to initialize components", error=str(e))
            raise

    async def analyze(
        self,
        photo_path: Path,
        occasion: str,
        genre: str,
        gender: str,
        weather: Optional[str] = None,
        lat: Optional[float] = None,
        lon: Optional[float] = None,
        regenerations: int = 0,
        output_dir: Optional[Path] = None,
    ) -> List[Tuple[Path, Path]]:
        """Submit a photo, optionally regenerate, and save every outcome."""
        output_dir = output_dir or self.settings.storage.output_dir
        start_time = time.time()

        if not weather:
            weather = await resolve_weather(self.settings, lat, lon)
        photo = load_photo(photo_path, self.settings.photo.max_bytes)

        saved = []
        session = await self.advisor.submit(photo, occasion, genre, gender, weather)
        saved.append(self._save(session, output_dir))

        for _ in range(regenerations):
            session = await self.advisor.regenerate()
            saved.append(self._save(session, output_dir))

        logger.info(
            "Style analysis completed",
            session_id=session.session_id,
            attempts=session.attempts,
            total_time=round(time.time() - start_time, 2),
        )
        return saved

    def _save(self, session: Session, output_dir: Path) -> Tuple[Path, Path]:
        print(format_result(session.result))
        return save_outcome(
            session.result,
            session.image,
            output_dir,
            signals=session.signals,
            request=session.request,
            prefix=f"outfit_{session.session_id}_{session.attempts}",
        )

    def get_system_status(self) -> Dict[str, Any]:
        """Get current system status."""
        return {
            'initialized': self.advisor is not None,
            'phase': self.advisor.phase.value if self.advisor else None,
            'settings': {
                'text_model': self.settings.gemini.model_name,
                'image_model': self.settings.gemini.image_model_name,
                'weather_enabled': bool(self.settings.weather.api_key),
                'output_dir': str(self.settings.storage.output_dir),
            },
        }


def load_settings() -> Settings:
    """Load settings, reporting missing or invalid values."""
    try:
        return get_settings()
    except PydanticValidationError as e:
        fields = sorted({str(error["loc"][0]) for error in e.errors() if error["loc"]})
        raise ConfigurationError(
            "Invalid or missing settings",
            context={"fields": ",".join(fields)},
        ) from e


def format_result(result: AnalysisResult) -> str:
    """Plain-text rendering of an analysis for the terminal."""
    lines = [result.feedback, ""]
    lines += [f"  * {highlight}" for highlight in result.highlights]
    lines += ["", "Colors:"]
    lines += [
        f"  {color.name} ({color.hex}): {color.reason}"
        for color in result.color_suggestions
    ]
    for outfit in result.outfit_recommendations:
        lines += ["", f"{outfit.title}:"]
        lines += [f"  - {item}" for item in outfit.items]
    lines += ["", f"Tip: {result.notes}"]
    return "\n".join(lines)


async def main(
    photo_path: Path,
    occasion: str,
    genre: str,
    gender: str,
    weather: Optional[str] = None,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
    regenerations: int = 0,
    output_dir: Optional[Path] = None,
) -> int:
    """Main entry point; returns a process exit code."""
    try:
        app = StyleAdvisorApp()
        saved = await app.analyze(
            photo_path,
            occasion,
            genre,
            gender,
            weather=weather,
            lat=lat,
            lon=lon,
            regenerations=regenerations,
            output_dir=output_dir,
        )
    except ValidationError as e:
        for field_name, message in sorted(e.field_errors.items()):
            print(f"{field_name}: {message}")
        if not e.field_errors:
            print(e.message)
        return 2
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}")
        return 1
    except StyleAdvisorError as e:
        logger.error("Style analysis failed", error=str(e), error_type=type(e).__name__)
        print(GENERIC_ERROR_MESSAGE)
        return 1

    for image_path, metadata_path in saved:
        print(f"Saved {image_path} and {metadata_path}")
    return 0
