#!/usr/bin/env python3
"""Example script to analyze one outfit photo."""

import asyncio
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from style_advisor.exceptions import StyleAdvisorError
from style_advisor.main import StyleAdvisorApp


async def run_example():
    """Run an example analysis with one regeneration."""

    # Check if .env file exists
    env_file = Path(".env")
    if not env_file.exists():
        print("Error: .env file not found. Create one with GEMINI_API_KEY (and optionally OPENWEATHER_API_KEY).")
        return

    # Check if the photo exists
    photo = Path("examples/outfit.jpg")
    if not photo.exists():
        print("Error: photo not found. Please put a photo of your outfit at examples/outfit.jpg.")
        return

    print("Starting outfit analysis example...")

    try:
        app = StyleAdvisorApp()

        status = app.get_system_status()
        print(f"System Status: {status}")

        saved = await app.analyze(
            photo,
            occasion="friend's birthday dinner",
            genre="smart casual",
            gender="neutral",
            lat=40.71,
            lon=-74.01,
            regenerations=1,
        )

        print("\nSaved outcomes:")
        for image_path, metadata_path in saved:
            print(f"  {image_path} ({metadata_path.name})")

    except StyleAdvisorError as e:
        print(f"Error during analysis: {e}")
        return

    print("\nExample completed successfully!")


if __name__ == "__main__":
    asyncio.run(run_example())
