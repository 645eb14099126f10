from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path(__file__).resolve().parents[2] / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "Preset Database API"
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 8000

    data_dir: Path = Field(default=DEFAULT_DATA_DIR, validation_alias=AliasChoices("DATA_DIR", "PRESETDB_DATA_DIR"))
    language: str = Field(default="en", validation_alias=AliasChoices("LANGUAGE_CODE", "PRESETDB_LANGUAGE"))
    fallback_language: str = "en"

    enable_supplementary: bool = Field(
        default=True,
        validation_alias=AliasChoices("ENABLE_SUPPLEMENTARY", "PRESETDB_ENABLE_SUPPLEMENTARY"),
    )
    enable_regions: bool = Field(
        default=True,
        validation_alias=AliasChoices("ENABLE_REGIONS", "PRESETDB_ENABLE_REGIONS"),
    )

    default_radius_meters: float = 25000.0
    search_result_limit: int = 50

    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "PRESETDB_LOG_LEVEL"))
    perf_log_level: str = Field(
        default="PERF",
        validation_alias=AliasChoices("PERF_LOG_LEVEL", "PRESETDB_PERF_LOG_LEVEL"),
    )

    location_log_level: str = Field(
        default="WARNING",
        validation_alias=AliasChoices("LOCATION_LOG_LEVEL", "PRESETDB_LOCATION_LOG_LEVEL"),
    )

    @field_validator("log_level", "perf_log_level", "location_log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"DEBUG", "INFO", "PERF", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("Unsupported log level")
        return normalized

    @field_validator("language", "fallback_language")
    @classmethod
    def _normalize_language(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Language code must not be empty")
        return normalized


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
