import os
from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError

from career_match.models.engine_settings import (
    EngineSettings, Cutoffs, SamplingSettings, CacheSettings, LocaleSettings
)
from career_match.utils.exceptions import ConfigurationError

load_dotenv()


def _env_number(key: str, cast, default):
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {key}", config_key=key, config_value=raw, cause=e)


def load_engine_settings() -> EngineSettings:
    """Build engine settings from environment variables, falling back to defaults."""
    defaults = EngineSettings()
    try:
        return EngineSettings(
            cutoffs=Cutoffs(
                job=_env_number("JOB_CUTOFF", float, defaults.cutoffs.job),
                learning=_env_number("LEARNING_CUTOFF", float, defaults.cutoffs.learning),
            ),
            sampling=SamplingSettings(
                job_candidates=_env_number("JOB_CANDIDATE_LIMIT", int, defaults.sampling.job_candidates),
                learning_candidates=_env_number("LEARNING_CANDIDATE_LIMIT", int, defaults.sampling.learning_candidates),
                market_sample=_env_number("MARKET_SAMPLE_SIZE", int, defaults.sampling.market_sample),
                critical_skills_top_n=_env_number("CRITICAL_SKILLS_TOP_N", int, defaults.sampling.critical_skills_top_n),
            ),
            cache=CacheSettings(
                market_ttl_seconds=_env_number("MARKET_CACHE_TTL", int, defaults.cache.market_ttl_seconds),
                max_entries=_env_number("MARKET_CACHE_MAX_ENTRIES", int, defaults.cache.max_entries),
            ),
            locale=LocaleSettings(
                home_city=os.getenv("HOME_CITY", defaults.locale.home_city).lower(),
            ),
            scoring_timeout_seconds=_env_number("SCORING_TIMEOUT_SECONDS", float, defaults.scoring_timeout_seconds),
        )
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid engine settings: {e}", cause=e)


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, float(x)))
