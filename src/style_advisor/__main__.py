"""Entry point for the style advisor module."""

import argparse
import asyncio
import os
import sys
from pathlib import Path

from .main import main


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Outfit feedback and visualization with Gemini",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Analyze an outfit using the weather at a location
  python -m style_advisor --photo me.jpg --occasion "summer wedding" \\
      --genre formal --gender female --lat 48.85 --lon 2.35

  # Provide the weather yourself and ask for two alternative answers
  python -m style_advisor --photo me.jpg --occasion "office party" \\
      --genre smart-casual --gender male --weather "12°C, light rain" --regenerate 2
        """,
    )

    parser.add_argument("--photo", type=Path, required=True, help="Photo of the outfit (max 10MB)")
    parser.add_argument("--occasion", required=True, help="Occasion, e.g. 'casual brunch'")
    parser.add_argument("--genre", required=True, help="Style genre, e.g. 'streetwear'")
    parser.add_argument(
        "--gender",
        required=True,
        choices=["male", "female", "neutral"],
        type=str.lower,
        help="Gender to style for",
    )
    parser.add_argument("--weather", help="Weather summary (skips the weather lookup)")
    parser.add_argument("--lat", type=float, help="Latitude for the weather lookup")
    parser.add_argument("--lon", type=float, help="Longitude for the weather lookup")
    parser.add_argument(
        "--regenerate",
        type=int,
        default=0,
        help="Number of alternative recommendations to request after the first",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Directory for generated images and JSON (overrides .env setting)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (overrides .env setting)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate configuration and the photo without calling any model",
    )

    return parser.parse_args(argv)


def dry_run(photo_path: Path) -> int:
    """Validate setup without calling any model."""
    from .exceptions import StyleAdvisorError
    from .main import load_settings
    from .utils import load_photo

    try:
        settings = load_settings()
        print("✓ Configuration loaded successfully")
        print(f"  Text model: {settings.gemini.model_name}")
        print(f"  Image model: {settings.gemini.image_model_name}")
        print(f"  Weather lookup: {'enabled' if settings.weather.api_key else 'disabled'}")

        photo = load_photo(photo_path, settings.photo.max_bytes)
        print(f"✓ Photo decoded: {photo.width}x{photo.height} {photo.mime_type}")

        print("\n✓ Dry run completed successfully. System is ready for analysis.")
        return 0

    except StyleAdvisorError as e:
        print(f"✗ Dry run failed: {e}")
        return 1


async def main_cli(argv=None) -> int:
    """Main CLI entry point."""
    args = parse_arguments(argv)

    if args.output_dir:
        os.environ["OUTPUT_DIR"] = str(args.output_dir)
    if args.log_level:
        os.environ["LOG_LEVEL"] = args.log_level

    if args.dry_run:
        return dry_run(args.photo)

    return await main(
        args.photo,
        args.occasion,
        args.genre,
        args.gender,
        weather=args.weather,
        lat=args.lat,
        lon=args.lon,
        regenerations=max(args.regenerate, 0),
        output_dir=args.output_dir,
    )


def cli_main():
    """Synchronous CLI entry point."""
    sys.exit(asyncio.run(main_cli()))


if __name__ == "__main__":
    cli_main()
