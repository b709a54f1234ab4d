"""Tests for the session state machine."""

import io
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from PIL import Image

from style_advisor.colors import GarmentColor, SkinTone, extract_color_signals
from style_advisor.exceptions import (
    ImageGenerationError,
    InvalidTransitionError,
    ModelError,
    ValidationError,
)
from style_advisor.models import AnalysisResult, Gender
from style_advisor.session import Phase, Session, StyleAdvisor
from style_advisor.utils import decode_photo

FORM = {
    "occasion": "summer wedding",
    "genre": "formal",
    "gender": "female",
    "weather": "The weather in Lisbon is 24.5°C with clear sky.",
}


@pytest.fixture
def extractor():
    return MagicMock(wraps=extract_color_signals)


@pytest.fixture
def advisor(mock_recommender, mock_synthesizer, extractor):
    return StyleAdvisor(
        recommender=mock_recommender,
        synthesizer=mock_synthesizer,
        extractor=extractor,
    )


@pytest_asyncio.fixture
async def ready_advisor(advisor, portrait_photo):
    await advisor.submit(portrait_photo, **FORM)
    return advisor


class TestSession:
    """Test the Session record."""

    def test_defaults(self):
        session = Session()

        assert session.phase == Phase.IDLE
        assert len(session.session_id) == 12
        assert session.result is None
        assert session.attempts == 0

    def test_unique_ids(self):
        assert Session().session_id != Session().session_id


class TestSubmit:
    """Test submitting a new photo."""

    @pytest.mark.asyncio
    async def test_submit_success(
        self, advisor, portrait_photo, mock_recommender, mock_synthesizer,
        sample_result, sample_image_ref,
    ):
        session = await advisor.submit(portrait_photo, **FORM)

        assert session.phase == Phase.READY
        assert session.result == sample_result
        assert session.image == sample_image_ref
        assert session.error is None
        assert session.attempts == 1
        assert session.signals.skin_tone == SkinTone.FAIR
        assert session.signals.dress_colors == [GarmentColor.BLACK]

        request = mock_recommender.analyze.call_args.args[0]
        assert request.skin_tone == "fair"
        assert request.dress_colors == "black"
        assert request.gender == Gender.FEMALE
        assert request.weather == FORM["weather"]
        assert request.photo_data_uri == portrait_photo.data_uri
        assert request.previous_recommendation is None
        assert session.request is session.base_request is request

        mock_synthesizer.render.assert_awaited_once_with(sample_result.image_prompt)

    @pytest.mark.asyncio
    async def test_form_values_are_trimmed(self, advisor, portrait_photo, mock_recommender):
        form = dict(FORM, occasion="  office party  ", gender="MALE")
        await advisor.submit(portrait_photo, **form)

        request = mock_recommender.analyze.call_args.args[0]
        assert request.occasion == "office party"
        assert request.gender == Gender.MALE

    @pytest.mark.asyncio
    async def test_missing_weather(self, advisor, portrait_photo, mock_recommender, extractor):
        form = dict(FORM, weather=None)

        with pytest.raises(ValidationError) as exc_info:
            await advisor.submit(portrait_photo, **form)

        assert "weather" in exc_info.value.field_errors
        assert advisor.phase == Phase.IDLE
        extractor.assert_not_called()
        mock_recommender.analyze.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_photo(self, advisor, mock_recommender):
        with pytest.raises(ValidationError) as exc_info:
            await advisor.submit(None, **FORM)

        assert "image" in exc_info.value.field_errors
        assert advisor.phase == Phase.IDLE
        mock_recommender.analyze.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_form_fields(self, advisor, portrait_photo):
        form = dict(FORM, occasion="ab", genre="x", gender="")

        with pytest.raises(ValidationError) as exc_info:
            await advisor.submit(portrait_photo, **form)

        assert set(exc_info.value.field_errors) == {"occasion", "genre", "gender"}
        assert advisor.phase == Phase.IDLE

    @pytest.mark.asyncio
    async def test_photo_too_large(self, mock_recommender, mock_synthesizer, portrait_photo):
        advisor = StyleAdvisor(
            mock_recommender,
            mock_synthesizer,
            max_photo_bytes=portrait_photo.size_bytes - 1,
        )

        with pytest.raises(ValidationError) as exc_info:
            await advisor.submit(portrait_photo, **FORM)

        assert set(exc_info.value.field_errors) == {"image"}
        assert advisor.phase == Phase.IDLE

    @pytest.mark.asyncio
    async def test_extractor_failure(self, advisor, portrait_photo, extractor, mock_recommender):
        extractor.side_effect = ValueError("bad pixels")

        with pytest.raises(ValueError):
            await advisor.submit(portrait_photo, **FORM)

        assert advisor.phase == Phase.FAILED
        assert isinstance(advisor.session.error, ValueError)
        mock_recommender.analyze.assert_not_called()

    @pytest.mark.asyncio
    async def test_recommendation_failure(self, advisor, portrait_photo, mock_recommender,
                                          mock_synthesizer):
        mock_recommender.analyze.side_effect = ModelError("Recommendation model call failed")

        with pytest.raises(ModelError):
            await advisor.submit(portrait_photo, **FORM)

        session = advisor.session
        assert session.phase == Phase.FAILED
        assert session.result is None
        assert session.image is None
        assert isinstance(session.error, ModelError)
        # Signals survive until reset
        assert session.signals is not None
        mock_synthesizer.render.assert_not_called()

    @pytest.mark.asyncio
    async def test_image_failure_discards_result(self, advisor, portrait_photo, mock_synthesizer):
        mock_synthesizer.render.side_effect = ImageGenerationError(
            "Image generation failed to produce an image"
        )

        with pytest.raises(ImageGenerationError):
            await advisor.submit(portrait_photo, **FORM)

        assert advisor.phase == Phase.FAILED
        assert advisor.session.result is None
        assert advisor.session.image is None

    @pytest.mark.asyncio
    async def test_phases_during_pipeline(self, advisor, portrait_photo, mock_recommender,
                                          mock_synthesizer, sample_result, sample_image_ref):
        seen = []

        async def analyze(request):
            seen.append(advisor.phase)
            return sample_result

        async def render(prompt):
            seen.append(advisor.phase)
            return sample_image_ref

        mock_recommender.analyze.side_effect = analyze
        mock_synthesizer.render.side_effect = render

        await advisor.submit(portrait_photo, **FORM)

        assert seen == [Phase.RECOMMENDING, Phase.SYNTHESIZING_IMAGE]

    @pytest.mark.asyncio
    async def test_submit_only_from_idle(self, ready_advisor, portrait_photo):
        with pytest.raises(InvalidTransitionError) as exc_info:
            await ready_advisor.submit(portrait_photo, **FORM)

        assert exc_info.value.context["phase"] == "ready"
        assert ready_advisor.phase == Phase.READY

    @pytest.mark.asyncio
    async def test_all_skin_photo(self, advisor, mock_recommender):
        buffer = io.BytesIO()
        Image.new("RGB", (8, 8), color=(120, 80, 60)).save(buffer, format="PNG")
        photo = decode_photo(buffer.getvalue())

        await advisor.submit(photo, **FORM)

        request = mock_recommender.analyze.call_args.args[0]
        assert request.skin_tone == "olive"
        assert request.dress_colors == "not detected"


class TestRegenerate:
    """Test regeneration of a recommendation."""

    @pytest.mark.asyncio
    async def test_regenerate_reuses_signals(self, ready_advisor, extractor, mock_recommender,
                                             sample_result):
        first_request = ready_advisor.session.base_request

        session = await ready_advisor.regenerate()

        assert session.phase == Phase.READY
        assert session.attempts == 2
        assert extractor.call_count == 1

        request = mock_recommender.analyze.call_args.args[0]
        assert request.previous_recommendation == sample_result.to_json()
        assert request.skin_tone == first_request.skin_tone
        assert request.dress_colors == first_request.dress_colors
        assert request.photo_data_uri == first_request.photo_data_uri
        assert session.base_request.previous_recommendation is None
        assert session.request is request
        assert session.request.previous_recommendation == sample_result.to_json()

    @pytest.mark.asyncio
    async def test_regenerate_uses_latest_result(self, ready_advisor, mock_recommender,
                                                 sample_result_data):
        sample_result_data["feedback"] = "Second opinion."
        second = AnalysisResult.model_validate(sample_result_data)

        mock_recommender.analyze.return_value = second
        await ready_advisor.regenerate()
        await ready_advisor.regenerate()

        request = mock_recommender.analyze.call_args.args[0]
        assert "Second opinion." in request.previous_recommendation

    @pytest.mark.asyncio
    async def test_regenerate_failure(self, ready_advisor, mock_recommender):
        mock_recommender.analyze.side_effect = ModelError("Recommendation model call failed")

        with pytest.raises(ModelError):
            await ready_advisor.regenerate()

        assert ready_advisor.phase == Phase.FAILED
        assert ready_advisor.session.result is None

        with pytest.raises(InvalidTransitionError):
            await ready_advisor.regenerate()

    @pytest.mark.asyncio
    async def test_regenerate_requires_ready(self, advisor):
        with pytest.raises(InvalidTransitionError) as exc_info:
            await advisor.regenerate()

        assert exc_info.value.context["action"] == "regenerate"
        assert advisor.phase == Phase.IDLE


class TestReset:
    """Test resetting a session."""

    @pytest.mark.asyncio
    async def test_reset_from_ready(self, ready_advisor):
        old_id = ready_advisor.session.session_id

        session = ready_advisor.reset()

        assert session.phase == Phase.IDLE
        assert session.session_id != old_id
        assert session.signals is None
        assert session.base_request is None
        assert session.request is None
        assert session.result is None
        assert session.image is None
        assert session.attempts == 0

    @pytest.mark.asyncio
    async def test_reset_from_failed(self, advisor, portrait_photo, mock_recommender):
        mock_recommender.analyze.side_effect = ModelError("Recommendation model call failed")
        with pytest.raises(ModelError):
            await advisor.submit(portrait_photo, **FORM)

        session = advisor.reset()

        assert session.phase == Phase.IDLE
        assert session.error is None

    @pytest.mark.asyncio
    async def test_submit_after_reset(self, ready_advisor, portrait_photo, extractor):
        ready_advisor.reset()

        session = await ready_advisor.submit(portrait_photo, **FORM)

        assert session.phase == Phase.READY
        assert session.attempts == 1
        assert extractor.call_count == 2

    def test_reset_requires_terminal_phase(self, advisor):
        with pytest.raises(InvalidTransitionError):
            advisor.reset()
