"""Utility functions for the style advisor."""

import base64
import binascii
import io
import json
import logging
import mimetypes
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import structlog
from PIL import Image, UnidentifiedImageError

from .colors import ColorSignals
from .exceptions import ValidationError
from .models import AnalysisRequest, AnalysisResult, ImageRef, Photo

logger = structlog.get_logger(__name__)


def setup_logging(level: str = "INFO", format_type: str = "console") -> None:
    """Set up structured logging."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            (
                structlog.processors.JSONRenderer()
                if format_type == "json"
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Configure standard logging
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
    )


def generate_unique_id(prefix: str = "") -> str:
    """Generate a unique identifier with timestamp."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")[:-3]
    return f"{prefix}_{timestamp}" if prefix else timestamp


def ensure_directory(path: Path) -> None:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)


def encode_data_uri(data: bytes, mime_type: str) -> str:
    """Encode raw bytes as a data:<mime>;base64 URI."""
    encoded = base64.b64encode(data).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def decode_data_uri(data_uri: str) -> Tuple[str, bytes]:
    """Split a base64 data URI into its MIME type and bytes."""
    header, sep, payload = data_uri.partition(",")
    if not sep or not header.startswith("data:") or not header.endswith(";base64"):
        raise ValueError("Expected a data:<mime>;base64,<payload> URI")
    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 payload: {e}") from e
    return header[len("data:"):-len(";base64")], data


def decode_photo(raw: bytes, max_bytes: int = 10_000_000) -> Photo:
    """Validate and decode uploaded image bytes."""
    if not raw:
        raise ValidationError(
            "Image not selected",
            field_errors={"image": "An image of your outfit is required."},
        )
    if len(raw) > max_bytes:
        raise ValidationError(
            "Image too large",
            field_errors={"image": f"Max file size is {max_bytes // 1_000_000}MB."},
            context={"size_bytes": len(raw)},
        )

    try:
        with Image.open(io.BytesIO(raw)) as check:
            check.verify()

        # Reopen for decoding (verify leaves the image unusable)
        image = Image.open(io.BytesIO(raw))
        mime_type = Image.MIME.get(image.format or "", "image/png")
        rgba = image.convert("RGBA")
    except Image.DecompressionBombError as e:
        raise ValidationError(
            "Image dimensions are too large for analysis",
            field_errors={"image": "Image dimensions are too large."},
            context={"error": str(e)},
        ) from e
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise ValidationError(
            "Could not load the selected image for analysis",
            field_errors={"image": "Unsupported or corrupted image."},
            context={"error": str(e)},
        ) from e

    logger.info(
        "Photo decoded",
        mime_type=mime_type,
        image_size=f"{rgba.width}x{rgba.height}",
        size_bytes=len(raw),
    )

    return Photo(
        data_uri=encode_data_uri(raw, mime_type),
        mime_type=mime_type,
        width=rgba.width,
        height=rgba.height,
        pixels=rgba.tobytes(),
        size_bytes=len(raw),
    )


def load_photo(path: Path, max_bytes: int = 10_000_000) -> Photo:
    """Read and decode a photo from disk."""
    if not path.is_file():
        raise ValidationError(
            "Image not selected",
            field_errors={"image": "An image of your outfit is required."},
            context={"path": str(path)},
        )

    size = path.stat().st_size
    if size > max_bytes:
        raise ValidationError(
            "Image too large",
            field_errors={"image": f"Max file size is {max_bytes // 1_000_000}MB."},
            context={"path": str(path), "size_bytes": size},
        )

    return decode_photo(path.read_bytes(), max_bytes)


def save_outcome(
    result: AnalysisResult,
    image: ImageRef,
    output_dir: Path,
    signals: Optional[ColorSignals] = None,
    request: Optional[AnalysisRequest] = None,
    prefix: str = "outfit",
) -> Tuple[Path, Path]:
    """Save the rendered image and the analysis as JSON."""
    ensure_directory(output_dir)
    stem = generate_unique_id(prefix)

    extension = mimetypes.guess_extension(image.mime_type) or ".png"
    image_path = output_dir / f"{stem}{extension}"
    image_path.write_bytes(image.data)

    metadata: Dict[str, Any] = {
        "timestamp": datetime.now().isoformat(),
        "image_path": str(image_path),
        "result": result.model_dump(by_alias=True),
    }
    if signals is not None:
        metadata["signals"] = {
            "skinTone": signals.skin_tone.value,
            "dressColors": signals.dress_colors_label,
        }
    if request is not None:
        metadata["request"] = request.model_dump(
            mode="json",
            by_alias=True,
            exclude={"photo_data_uri", "previous_recommendation"},
        )
        metadata["regenerated"] = request.previous_recommendation is not None

    metadata_path = image_path.with_suffix(".json")
    with open(metadata_path, "w") as f:
        json.dump(metadata, f, indent=2, default=str)

    logger.info(
        "Outcome saved",
        image_path=str(image_path),
        metadata_path=str(metadata_path),
    )
    return image_path, metadata_path
