"""Pytest configuration and fixtures."""

import io
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from style_advisor.config import Settings
from style_advisor.models import AnalysisResult, ImageRef
from style_advisor.utils import decode_photo


@pytest.fixture
def mock_settings(tmp_path):
    """Settings for testing."""
    return Settings(
        gemini_api_key="test-gemini-key",
        gemini_model="test-text-model",
        gemini_image_model="test-image-model",
        openweather_api_key="test-weather-key",
        weather_timeout=5,
        output_dir=str(tmp_path / "output"),
        log_level="INFO",
        log_format="json",
    )


@pytest.fixture
def sample_result_data():
    """A valid structured response from the text model."""
    return {
        "feedback": "A sharp, well-fitted look that suits a formal evening.",
        "highlights": [
            "The dark palette reads elegant.",
            "Clean lines flatter your frame.",
        ],
        "colorSuggestions": [
            {"name": "Dusty Rose", "hex": "#D8A0A7", "reason": "Softens the dark base."},
            {"name": "Emerald", "hex": "#2E8B57", "reason": "Rich against fair skin."},
            {"name": "Champagne", "hex": "#F7E7CE", "reason": "Adds warmth for evening light."},
        ],
        "outfitRecommendations": [
            {
                "title": "Midnight Elegance",
                "items": ["Black silk midi dress", "Gold strappy heels", "Pearl drop earrings"],
            },
            {
                "title": "Garden Party Chic",
                "items": ["Dusty rose wrap dress", "Nude block heels"],
            },
        ],
        "notes": "Carry a light shawl in case the evening cools down.",
        "imagePrompt": "A black silk midi dress with gold strappy heels and pearl earrings on a mannequin.",
    }


@pytest.fixture
def sample_result(sample_result_data):
    return AnalysisResult.model_validate(sample_result_data)


@pytest.fixture
def sample_result_json(sample_result_data):
    return json.dumps(sample_result_data)


@pytest.fixture
def portrait_image():
    """Skin-toned band at the top, near-black garment below."""
    img = Image.new("RGB", (40, 40), color=(20, 20, 20))
    for x in range(40):
        for y in range(10):
            img.putpixel((x, y), (200, 150, 130))
    return img


@pytest.fixture
def portrait_bytes(portrait_image):
    buffer = io.BytesIO()
    portrait_image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def portrait_photo(portrait_bytes):
    return decode_photo(portrait_bytes)


@pytest.fixture
def sample_image_ref():
    return ImageRef(mime_type="image/png", data=b"\x89PNG-fake-image")


@pytest.fixture
def mock_recommender(sample_result):
    recommender = MagicMock()
    recommender.analyze = AsyncMock(return_value=sample_result)
    return recommender


@pytest.fixture
def mock_synthesizer(sample_image_ref):
    synthesizer = MagicMock()
    synthesizer.render = AsyncMock(return_value=sample_image_ref)
    return synthesizer
