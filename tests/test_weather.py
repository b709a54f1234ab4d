"""Tests for the OpenWeather client."""

from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest
from tenacity import wait_none

from style_advisor.config import DEFAULT_WEATHER
from style_advisor.exceptions import WeatherUnavailable
from style_advisor.weather import OpenWeatherClient, resolve_weather


@pytest.fixture
def weather_payload():
    return {
        "name": "Lisbon",
        "main": {"temp": 24.5, "humidity": 60},
        "weather": [{"main": "Clear", "description": "clear sky"}],
    }


@pytest.fixture
def no_retry_wait():
    with patch.object(OpenWeatherClient._fetch.retry, "wait", wait_none()):
        yield


def _response(status=200, payload=None, reason="OK"):
    response = MagicMock()
    response.status = status
    response.reason = reason
    response.json = AsyncMock(return_value=payload)
    return response


class TestOpenWeatherClient:
    """Test OpenWeatherClient class."""

    @pytest.mark.asyncio
    @patch("aiohttp.ClientSession.get")
    async def test_get_weather_success(self, mock_get, mock_settings, weather_payload):
        mock_get.return_value.__aenter__.return_value = _response(payload=weather_payload)

        async with OpenWeatherClient(mock_settings) as client:
            summary = await client.get_weather(38.72, -9.14)

        assert summary == "The weather in Lisbon is 24.5°C with clear sky."

        params = mock_get.call_args.kwargs["params"]
        assert params["lat"] == 38.72
        assert params["lon"] == -9.14
        assert params["appid"] == "test-weather-key"
        assert params["units"] == "metric"

    @pytest.mark.asyncio
    @patch("aiohttp.ClientSession.get")
    async def test_http_error(self, mock_get, mock_settings):
        mock_get.return_value.__aenter__.return_value = _response(
            status=401, reason="Unauthorized"
        )

        async with OpenWeatherClient(mock_settings) as client:
            with pytest.raises(WeatherUnavailable, match="HTTP error: Unauthorized") as exc_info:
                await client.get_weather(38.72, -9.14)

        assert exc_info.value.context["status_code"] == 401
        # Only transport errors are retried
        assert mock_get.call_count == 1

    @pytest.mark.asyncio
    @patch("aiohttp.ClientSession.get")
    async def test_connection_error_is_retried(self, mock_get, mock_settings, no_retry_wait):
        mock_get.side_effect = aiohttp.ClientConnectionError("connection refused")

        async with OpenWeatherClient(mock_settings) as client:
            with pytest.raises(WeatherUnavailable, match="Failed to fetch weather data"):
                await client.get_weather(38.72, -9.14)

        assert mock_get.call_count == 3

    @pytest.mark.asyncio
    @patch("aiohttp.ClientSession.get")
    async def test_unexpected_payload(self, mock_get, mock_settings):
        mock_get.return_value.__aenter__.return_value = _response(payload={"cod": 200})

        async with OpenWeatherClient(mock_settings) as client:
            with pytest.raises(WeatherUnavailable, match="Unexpected weather payload"):
                await client.get_weather(38.72, -9.14)

    @pytest.mark.asyncio
    async def test_missing_api_key(self, mock_settings):
        settings = mock_settings.model_copy(update={"openweather_api_key": None})

        async with OpenWeatherClient(settings) as client:
            with pytest.raises(WeatherUnavailable, match="API key not configured"):
                await client.get_weather(38.72, -9.14)

    @pytest.mark.asyncio
    async def test_requires_context_manager(self, mock_settings):
        client = OpenWeatherClient(mock_settings)

        with pytest.raises(RuntimeError, match="Session not initialized"):
            await client.get_weather(38.72, -9.14)


class TestResolveWeather:
    """Test the weather fallback."""

    @pytest.mark.asyncio
    async def test_no_location_uses_default(self, mock_settings):
        assert await resolve_weather(mock_settings) == DEFAULT_WEATHER
        assert await resolve_weather(mock_settings, lat=38.72) == DEFAULT_WEATHER

    @pytest.mark.asyncio
    async def test_unavailable_uses_default(self, mock_settings):
        settings = mock_settings.model_copy(update={"openweather_api_key": None})

        assert await resolve_weather(settings, 38.72, -9.14) == DEFAULT_WEATHER

    @pytest.mark.asyncio
    @patch("aiohttp.ClientSession.get")
    async def test_http_failure_uses_configured_default(self, mock_get, mock_settings):
        mock_get.return_value.__aenter__.return_value = _response(
            status=500, reason="Internal Server Error"
        )
        settings = mock_settings.model_copy(update={"default_weather": "Mild, around 18°C"})

        assert await resolve_weather(settings, 38.72, -9.14) == "Mild, around 18°C"

    @pytest.mark.asyncio
    @patch("aiohttp.ClientSession.get")
    async def test_live_weather(self, mock_get, mock_settings, weather_payload):
        mock_get.return_value.__aenter__.return_value = _response(payload=weather_payload)

        summary = await resolve_weather(mock_settings, 38.72, -9.14)

        assert summary.startswith("The weather in Lisbon")
