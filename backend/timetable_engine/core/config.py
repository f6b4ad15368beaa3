from functools import lru_cache
import json
from pathlib import Path

from pydantic import ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from timetable_engine.core.exceptions import ConfigurationError


BACKEND_ENV_FILE = Path(__file__).resolve().parents[2] / ".env"


class Settings(BaseSettings):
    # Resolve to backend/.env so `uvicorn --app-dir backend` works from any cwd.
    model_config = SettingsConfigDict(
        env_file=str(BACKEND_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    project_name: str = "Timetable Inference API"
    api_prefix: str = "/api"

    # Clustering
    start_tolerance_minutes: int = 20

    # Scoring and selection
    sparse_history_week_threshold: int = 3
    week_coverage_weight: float = 0.75
    occurrence_weight: float = 0.25
    min_cluster_occurrences: int = 2
    min_week_coverage: float = 0.5
    score_cutoff_margin: float = 0.2
    score_cutoff_floor: float = 0.55

    # Candidate review
    alternative_start_window_minutes: int = 120
    outlier_occurrence_ratio: float = 0.34

    # Parsing and slot building
    lab_duration_threshold_minutes: int = 110
    default_slot_duration_minutes: int = 55
    parse_failure_sample_limit: int = 5

    max_request_size_bytes: int = 2_500_000
    security_enable_hsts: bool = False
    security_hsts_max_age_seconds: int = 31536000

    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8081",
        "http://127.0.0.1:8081",
        "http://localhost:19006",
        "http://127.0.0.1:19006",
    ]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value: str | list[str]) -> list[str]:
        if isinstance(value, str):
            stripped = value.strip()
            if stripped.startswith("["):
                try:
                    parsed = json.loads(stripped)
                    if isinstance(parsed, list):
                        return [str(item).strip() for item in parsed if str(item).strip()]
                except json.JSONDecodeError:
                    pass
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator(
        "start_tolerance_minutes",
        "sparse_history_week_threshold",
        "min_cluster_occurrences",
        "alternative_start_window_minutes",
        "lab_duration_threshold_minutes",
        "parse_failure_sample_limit",
    )
    @classmethod
    def validate_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("Value must be zero or greater")
        return value

    @field_validator("default_slot_duration_minutes")
    @classmethod
    def validate_default_duration(cls, value: int) -> int:
        if value < 1:
            raise ValueError("Default slot duration must be at least one minute")
        return value

    @model_validator(mode="after")
    def validate_score_weights(self) -> "Settings":
        if self.week_coverage_weight < 0 or self.occurrence_weight < 0:
            raise ValueError("Score weights must be non-negative")
        if self.week_coverage_weight + self.occurrence_weight <= 0:
            raise ValueError("Score weights must sum to a positive value")
        if not 0 <= self.outlier_occurrence_ratio <= 1:
            raise ValueError("Outlier occurrence ratio must be between 0 and 1")
        return self


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid timetable engine settings: {exc}") from exc
