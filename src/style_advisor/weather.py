"""OpenWeather lookup for the user's current location."""

import asyncio
from typing import Optional

import aiohttp
import structlog
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import Settings
from .exceptions import WeatherUnavailable

logger = structlog.get_logger(__name__)


class OpenWeatherClient:
    """Asynchronous OpenWeather client returning one-line summaries."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        timeout = aiohttp.ClientTimeout(total=self.settings.weather.timeout)
        self.session = aiohttp.ClientSession(timeout=timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        if self.session:
            await self.session.close()

    @retry(
        retry=retry_if_exception_type(aiohttp.ClientError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        reraise=True,
    )
    async def _fetch(self, lat: float, lon: float) -> dict:
        params = {
            "lat": lat,
            "lon": lon,
            "appid": self.settings.weather.api_key,
            "units": "metric",
        }
        async with self.session.get(self.settings.weather.base_url, params=params) as response:
            if response.status != 200:
                raise WeatherUnavailable(
                    f"HTTP error: {response.reason}",
                    status_code=response.status,
                )
            return await response.json()

    async def get_weather(self, lat: float, lon: float) -> str:
        """Human-readable weather summary for the coordinates."""
        if not self.settings.weather.api_key:
            raise WeatherUnavailable("OpenWeather API key not configured")
        if not self.session:
            raise RuntimeError("Session not initialized. Use async context manager.")

        try:
            data = await self._fetch(lat, lon)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise WeatherUnavailable(
                "Failed to fetch weather data",
                context={"error": str(e)},
            ) from e

        try:
            summary = (
                f"The weather in {data['name']} is {data['main']['temp']}°C "
                f"with {data['weather'][0]['description']}."
            )
        except (KeyError, IndexError, TypeError) as e:
            raise WeatherUnavailable(
                "Unexpected weather payload",
                context={"error": repr(e)},
            ) from e

        logger.info("Weather fetched", lat=lat, lon=lon, summary=summary)
        return summary


async def resolve_weather(
    settings: Settings,
    lat: Optional[float] = None,
    lon: Optional[float] = None,
) -> str:
    """Weather summary for the location, or the configured default."""
    default = settings.weather.default_weather
    if lat is None or lon is None:
        logger.warning("Location is unavailable, using default weather", weather=default)
        return default

    try:
        async with OpenWeatherClient(settings) as client:
            return await client.get_weather(lat, lon)
    except WeatherUnavailable as e:
        logger.warning(
            "Could not fetch weather, using default weather",
            error=str(e),
            weather=default,
        )
        return default
