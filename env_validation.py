"""Environment variable validation and engine settings."""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional

from difficulty_levels import DIFFICULTY_LADDER, DifficultyLadder

logger = logging.getLogger(__name__)

DEFAULT_MODEL_URL = "http://localhost:4891/v1/chat/completions"
DEFAULT_MODEL_ID = "DeepSeek-R1-Distill-Qwen-14B"
DEFAULT_PREDICTION_TIMEOUT = 8.0


class EnvironmentError(Exception):
    """Raised when required environment variables are missing or invalid."""
    pass


class EngineConfigError(ValueError):
    """Raised when engine thresholds or caps are inconsistent."""


@dataclass(frozen=True)
class RecommendationCaps:
    """Upper bounds applied when ranked lists are truncated."""

    starting_topics: int = 3
    gap_topics: int = 2
    next_topics: int = 5
    min_next_topics: int = 3
    resource_gaps: int = 3
    resources_per_gap: int = 2
    resource_mastered: int = 2
    resources_per_mastered: int = 1
    min_resources: int = 5
    resources: int = 7
    practice_gaps: int = 4
    practice_strengths: int = 2
    practice: int = 5
    upcoming_topics: int = 3
    min_prerequisite_predictions: int = 2
    service_predictions: int = 2
    struggle_predictions: int = 3


@dataclass(frozen=True)
class EngineSettings:
    """Fixed pedagogical constants for the recommendation engine."""

    adaptation_threshold: float = 0.70
    struggle_threshold: float = 0.50
    strength_score: float = 85.0
    mastery_score: float = 90.0
    trend_window: int = 5
    caps: RecommendationCaps = field(default_factory=RecommendationCaps)
    ladder: DifficultyLadder = field(default_factory=lambda: DIFFICULTY_LADDER)

    def __post_init__(self) -> None:
        if not 0.0 < self.struggle_threshold < self.adaptation_threshold <= 1.0:
            raise EngineConfigError(
                "Thresholds must satisfy 0 < struggle_threshold < adaptation_threshold <= 1"
            )
        if not self.gap_score < self.strength_score <= self.mastery_score <= 100.0:
            raise EngineConfigError("Score bands must satisfy gap < strength <= mastery <= 100")
        if self.trend_window <= 0:
            raise EngineConfigError("trend_window must be positive")

    @property
    def gap_score(self) -> float:
        """Average score at or below which a topic counts as a knowledge gap."""

        return self.struggle_threshold * 100

    @property
    def advance_score(self) -> float:
        return self.adaptation_threshold * 100


DEFAULT_SETTINGS = EngineSettings()


@dataclass(frozen=True)
class StrugglePredictionConfig:
    """Connection settings for the struggle-prediction text-generation service."""

    api_url: str = DEFAULT_MODEL_URL
    model_id: str = DEFAULT_MODEL_ID
    api_key: Optional[str] = None
    timeout: float = DEFAULT_PREDICTION_TIMEOUT
    max_retries: int = 0
    retry_backoff: float = 0.5
    temperature: float = 0.2
    max_tokens: int = 800
    enabled: bool = True
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> "StrugglePredictionConfig":
        return cls(
            api_url=os.getenv("GPT4ALL_URL") or DEFAULT_MODEL_URL,
            model_id=os.getenv("MODEL_ID") or DEFAULT_MODEL_ID,
            api_key=os.getenv("LLM_API_KEY") or None,
            timeout=get_env_float("STRUGGLE_PREDICTION_TIMEOUT", DEFAULT_PREDICTION_TIMEOUT),
            max_retries=max(0, int(get_env_float("STRUGGLE_PREDICTION_RETRIES", 0))),
            retry_backoff=get_env_float("STRUGGLE_PREDICTION_BACKOFF", 0.5),
            enabled=get_env_bool("STRUGGLE_PREDICTION_ENABLED", True),
        )


def validate_environment() -> None:
    """Validate the environment variables read by the engine.

    Raises EnvironmentError if validation fails.
    """
    # Every variable has a fallback; the structure is kept for values that may
    # become mandatory later.
    required_vars: Dict[str, str] = {}

    optional_vars = {
        "GPT4ALL_URL": "Text-generation endpoint used for struggle prediction",
        "MODEL_ID": "Model identifier sent to the text-generation endpoint",
        "LLM_API_KEY": "Bearer token for the text-generation endpoint",
    }

    missing = []
    for var, description in required_vars.items():
        if not os.getenv(var):
            missing.append(f"{var} ({description})")

    if missing:
        raise EnvironmentError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    url_vars = {"GPT4ALL_URL"}
    for var in url_vars:
        value = os.getenv(var)
        if value and not (value.startswith("http://") or value.startswith("https://")):
            raise EnvironmentError(f"Invalid URL format for {var}: {value}")

    numeric_vars = {
        "STRUGGLE_PREDICTION_TIMEOUT",
        "STRUGGLE_PREDICTION_RETRIES",
        "STRUGGLE_PREDICTION_BACKOFF",
    }
    for var in numeric_vars:
        value = os.getenv(var)
        if value is None:
            continue
        try:
            number = float(value)
        except ValueError as exc:
            raise EnvironmentError(f"{var} must be numeric, got {value!r}") from exc
        if number < 0:
            raise EnvironmentError(f"{var} must not be negative, got {value!r}")

    for var, description in optional_vars.items():
        if not os.getenv(var):
            logger.warning(f"Optional environment variable not set: {var} ({description})")


def get_env_bool(name: str, default: bool = False) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on", "enabled"}


def get_env_float(name: str, default: float) -> float:
    """Get a non-negative float from the environment, falling back on bad input."""
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        number = float(value)
    except ValueError:
        logger.warning("Environment variable %s=%r is not numeric; using %s", name, value, default)
        return default
    return max(0.0, number)
