"""Configuration management using Pydantic."""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_WEATHER = "Clear skies, around 25°C"


class GeminiConfig(BaseModel):
    """Gemini API configuration."""

    api_key: str = Field(..., min_length=1)
    model_name: str = Field(default="gemini-2.0-flash")
    image_model_name: str = Field(default="gemini-2.0-flash-preview-image-generation")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=2048, ge=1, le=8192)


class WeatherConfig(BaseModel):
    """OpenWeather configuration."""

    api_key: Optional[str] = None
    base_url: str = Field(default="https://api.openweathermap.org/data/2.5/weather")
    timeout: int = Field(default=10, ge=1, le=120)
    default_weather: str = Field(default=DEFAULT_WEATHER, min_length=1)


class PhotoConfig(BaseModel):
    """Photo upload limits."""

    max_bytes: int = Field(default=10_000_000, ge=1)


class StorageConfig(BaseModel):
    """Storage configuration."""

    output_dir: Path = Field(default=Path("./output"))


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO")
    format: str = Field(default="console")


class Settings(BaseSettings):
    """Main settings class."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Gemini settings
    gemini_api_key: str = Field(..., validation_alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.0-flash", validation_alias="GEMINI_MODEL")
    gemini_image_model: str = Field(
        default="gemini-2.0-flash-preview-image-generation",
        validation_alias="GEMINI_IMAGE_MODEL",
    )
    gemini_temperature: float = Field(default=0.7, validation_alias="GEMINI_TEMPERATURE")
    gemini_max_output_tokens: int = Field(
        default=2048,
        validation_alias="GEMINI_MAX_OUTPUT_TOKENS",
    )

    # Weather settings
    openweather_api_key: Optional[str] = Field(
        default=None,
        validation_alias="OPENWEATHER_API_KEY",
    )
    weather_timeout: int = Field(default=10, validation_alias="WEATHER_TIMEOUT")
    default_weather: str = Field(default=DEFAULT_WEATHER, validation_alias="DEFAULT_WEATHER")

    # Photo settings
    max_photo_bytes: int = Field(default=10_000_000, validation_alias="MAX_PHOTO_BYTES")

    # Storage settings
    output_dir: str = Field(default="./output", validation_alias="OUTPUT_DIR")

    # Logging settings
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="console", validation_alias="LOG_FORMAT")

    @property
    def gemini(self) -> GeminiConfig:
        """Get Gemini configuration."""
        return GeminiConfig(
            api_key=self.gemini_api_key,
            model_name=self.gemini_model,
            image_model_name=self.gemini_image_model,
            temperature=self.gemini_temperature,
            max_output_tokens=self.gemini_max_output_tokens,
        )

    @property
    def weather(self) -> WeatherConfig:
        """Get weather configuration."""
        return WeatherConfig(
            api_key=self.openweather_api_key or None,
            timeout=self.weather_timeout,
            default_weather=self.default_weather,
        )

    @property
    def photo(self) -> PhotoConfig:
        """Get photo configuration."""
        return PhotoConfig(max_bytes=self.max_photo_bytes)

    @property
    def storage(self) -> StorageConfig:
        """Get storage configuration."""
        return StorageConfig(output_dir=Path(self.output_dir))

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return LoggingConfig(
            level=self.log_level,
            format=self.log_format,
        )


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
