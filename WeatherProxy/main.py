"""Command line front end for the caching weather proxy."""
import argparse
import json
import logging
import sys
from typing import List, Optional

import redis

from cache_store import CacheStoreBase, InMemoryCacheStore, RedisCacheStore
from config import WeatherConfig, load_config
from openweather_provider import OpenWeatherProvider
from weather_data import json_default, to_plain
from weather_errors import (
    DataIntegrityError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
    WeatherError,
)
from weather_request import DEFAULT_HISTORY_DAYS
from weather_service import WeatherService

EXIT_CODES = (
    (ValidationError, 2),
    (NotFoundError, 3),
    (ServiceUnavailableError, 4),
    (DataIntegrityError, 5),
)

REDIS_KEY_PREFIX = "weather-proxy:"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Caching OpenWeather proxy")
    parser.add_argument("--log-file", default=None)
    parser.add_argument("--timeout", type=float, default=None, help="HTTP timeout in seconds")
    parser.add_argument("--max-retries", type=int, default=None)
    parser.add_argument("--repeat", type=int, default=1, help="Run the lookup N times (exercises the cache)")
    parser.add_argument("--stats", action="store_true", help="Print usage statistics to stderr")
    parser.add_argument("--verbose", action="store_true")

    commands = parser.add_subparsers(dest="command", required=True)

    for name in ("current", "forecast"):
        command = commands.add_parser(name, help=f"{name} weather by place name or coordinates")
        command.add_argument("location", nargs="?")
        command.add_argument("--lat", type=float)
        command.add_argument("--lon", type=float)

    history = commands.add_parser("history", help="daily summaries for the past N days")
    history.add_argument("location")
    history.add_argument("--days", type=int, default=DEFAULT_HISTORY_DAYS)

    alerts = commands.add_parser("alerts", help="active weather alerts")
    alerts.add_argument("location")

    return parser.parse_args(argv)


def setup_logging(log_file: Optional[str], verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def build_cache(config: WeatherConfig) -> CacheStoreBase:
    if config.redis_url:
        client = redis.Redis.from_url(config.redis_url, socket_timeout=config.timeout)
        logging.info("Using Redis cache at %s", config.redis_url)
        return RedisCacheStore(client, prefix=REDIS_KEY_PREFIX)
    logging.info("Using in-memory cache")
    return InMemoryCacheStore()


def build_weather_service(config: WeatherConfig, args: argparse.Namespace) -> WeatherService:
    provider = OpenWeatherProvider(
        api_key=config.api_key,
        lang=config.lang,
        timeout=args.timeout if args.timeout is not None else config.timeout,
        max_retries=args.max_retries if args.max_retries is not None else config.max_retries,
        retry_delay_seconds=config.retry_delay,
    )
    service = WeatherService(
        provider=provider,
        cache=build_cache(config),
        coalesce_misses=config.coalesce_misses,
    )
    logging.info("Weather service ready")
    return service


def run_command(service: WeatherService, args: argparse.Namespace):
    if args.command in ("current", "forecast"):
        by_coords = args.lat is not None or args.lon is not None
        if by_coords and args.location:
            raise ValidationError("Give either a location or --lat/--lon, not both")
        if by_coords:
            if args.command == "current":
                return service.get_current_by_coords(args.lat, args.lon)
            return service.get_forecast_by_coords(args.lat, args.lon)
        if args.command == "current":
            return service.get_current(args.location)
        return service.get_forecast(args.location)
    if args.command == "history":
        return service.get_historical(args.location, args.days)
    return service.get_alerts(args.location)


def exit_code_for(error: WeatherError) -> int:
    for error_type, code in EXIT_CODES:
        if isinstance(error, error_type):
            return code
    return 1


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    config = load_config()
    service = build_weather_service(config, args)

    exit_code = 0
    try:
        for _ in range(max(args.repeat, 1)):
            payload = run_command(service, args)
        print(json.dumps(to_plain(payload), default=json_default, indent=2))
    except WeatherError as err:
        logging.error("Lookup failed: %s", err)
        exit_code = exit_code_for(err)

    if args.stats:
        print(json.dumps(service.stats.as_dict(), indent=2), file=sys.stderr)
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
