"""Configuration loaded from the environment (and a .env file when present)."""
import logging
import math
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class WeatherConfig:
    api_key: str
    lang: str = "en"
    timeout: float = 10.0
    max_retries: int = 3
    retry_delay: float = 1.0
    redis_url: Optional[str] = None
    coalesce_misses: bool = False


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise SystemExit(f"Invalid {name}: {raw!r}") from exc


def load_config() -> WeatherConfig:
    load_dotenv()
    api_key = os.getenv("OPENWEATHER_API_KEY")
    if not api_key:
        raise SystemExit("Missing OPENWEATHER_API_KEY in environment")

    timeout = _env_number("WEATHER_TIMEOUT", 10.0, float)
    if not math.isfinite(timeout) or timeout <= 0:
        raise SystemExit(f"WEATHER_TIMEOUT must be a positive number of seconds, got {timeout}")

    config = WeatherConfig(
        api_key=api_key,
        lang=os.getenv("WEATHER_LANG", "en"),
        timeout=timeout,
        max_retries=_env_number("WEATHER_MAX_RETRIES", 3, int),
        retry_delay=_env_number("WEATHER_RETRY_DELAY", 1.0, float),
        redis_url=os.getenv("REDIS_URL") or None,
        coalesce_misses=os.getenv("WEATHER_COALESCE", "false").strip().lower() in _TRUE_VALUES,
    )
    logging.info(
        "Configuration loaded: lang=%s timeout=%ss retries=%s cache=%s coalesce=%s",
        config.lang,
        config.timeout,
        config.max_retries,
        "redis" if config.redis_url else "memory",
        config.coalesce_misses,
    )
    return config
