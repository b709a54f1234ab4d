"""Outfit feedback from a photo: color heuristics plus Gemini text and image models."""

from .colors import ColorSignals, GarmentColor, SkinTone, extract_color_signals
from .models import AnalysisRequest, AnalysisResult, Gender, ImageRef, Photo
from .session import Phase, Session, StyleAdvisor

__version__ = "0.1.0"

__all__ = [
    "AnalysisRequest",
    "AnalysisResult",
    "ColorSignals",
    "GarmentColor",
    "Gender",
    "ImageRef",
    "Phase",
    "Photo",
    "Session",
    "SkinTone",
    "StyleAdvisor",
    "extract_color_signals",
]
