"""Request, result and form models exchanged across the pipeline."""

import base64
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class Gender(str, Enum):
    """Gender the recommendation is styled for."""
    MALE = "male"
    FEMALE = "female"
    NEUTRAL = "neutral"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        return None


def _coerce_gender(value):
    return Gender(value) if isinstance(value, str) else value


class ColorSuggestion(BaseModel):
    """A complementary color with its reason."""
    name: str = Field(min_length=1)
    hex: str = Field(pattern=HEX_COLOR_PATTERN)
    reason: str = Field(min_length=1)


class OutfitRecommendation(BaseModel):
    """A complete alternative outfit."""
    title: str = Field(min_length=1)
    items: List[str] = Field(min_length=2, max_length=4)


class AnalysisResult(BaseModel):
    """Structured style feedback returned by the text model."""

    model_config = ConfigDict(populate_by_name=True)

    feedback: str = Field(min_length=1)
    highlights: List[str] = Field(min_length=2, max_length=3)
    color_suggestions: List[ColorSuggestion] = Field(
        alias="colorSuggestions", min_length=3, max_length=4
    )
    outfit_recommendations: List[OutfitRecommendation] = Field(
        alias="outfitRecommendations", min_length=2, max_length=3
    )
    notes: str = Field(min_length=1)
    image_prompt: str = Field(alias="imagePrompt", min_length=1)

    def to_json(self) -> str:
        """Serialize with wire field names, as sent back on regeneration."""
        return self.model_dump_json(by_alias=True)


class AnalysisRequest(BaseModel):
    """Everything the text model needs for one recommendation."""

    model_config = ConfigDict(populate_by_name=True)

    photo_data_uri: str = Field(alias="photoDataUri", min_length=1)
    occasion: str
    genre: str
    gender: Gender
    weather: str = Field(min_length=1)
    skin_tone: str = Field(alias="skinTone", min_length=1)
    dress_colors: str = Field(alias="dressColors", min_length=1)
    previous_recommendation: Optional[str] = Field(default=None, alias="previousRecommendation")

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, value):
        return _coerce_gender(value)

    def with_previous(self, result: AnalysisResult) -> "AnalysisRequest":
        """Copy of this request carrying a rejected result to avoid."""
        return self.model_copy(update={"previous_recommendation": result.to_json()})


class ImageRef(BaseModel):
    """Rendered image payload, displayable as a data URI."""
    mime_type: str = Field(min_length=1)
    data: bytes = Field(min_length=1)

    @property
    def data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("utf-8")
        return f"data:{self.mime_type};base64,{encoded}"


class Photo(BaseModel):
    """A decoded user upload."""
    data_uri: str
    mime_type: str
    width: int = Field(ge=0)
    height: int = Field(ge=0)
    pixels: bytes  # RGBA, row-major
    size_bytes: int = Field(ge=0)


class StyleForm(BaseModel):
    """User-entered form values."""
    occasion: str = Field(min_length=3)
    genre: str = Field(min_length=3)
    gender: Gender
    max_photo_bytes: int = Field(default=10_000_000, ge=1)
    photo_size: int = Field(ge=1)

    @field_validator("occasion", "genre", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("gender", mode="before")
    @classmethod
    def normalize_gender(cls, value):
        return _coerce_gender(value)

    @field_validator("photo_size")
    @classmethod
    def check_photo_size(cls, value, info):
        limit = info.data.get("max_photo_bytes", 10_000_000)
        if value > limit:
            raise ValueError(f"Max file size is {limit // 1_000_000}MB.")
        return value
