"""OpenWeather API provider implementation."""
import logging
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List

import requests

from weather_data import Coordinates
from weather_errors import (
    DataIntegrityError,
    NotFoundError,
    ServiceUnavailableError,
    WeatherProviderError,
)
from weather_provider import Location, WeatherProviderBase


class OpenWeatherProvider(WeatherProviderBase):
    """
    Weather provider using the OpenWeather APIs.

    Current conditions and the 5 day / 3 hour forecast come from the free
    2.5 endpoints. Day summaries and alerts need the One Call 3.0
    subscription and coordinates, so place names are geocoded first.

    Transient failures (timeouts, connection errors, 5xx) are retried up to
    max_retries attempts in total. 4xx answers are never retried.
    """

    BASE_URL = "https://api.openweathermap.org"
    CURRENT_PATH = "/data/2.5/weather"
    FORECAST_PATH = "/data/2.5/forecast"
    GEOCODING_PATH = "/geo/1.0/direct"
    DAY_SUMMARY_PATH = "/data/3.0/onecall/day_summary"
    ONE_CALL_PATH = "/data/3.0/onecall"

    def __init__(
        self,
        api_key: str,
        units: str = "metric",
        lang: str = "en",
        timeout: float = 10,
        max_retries: int = 3,
        retry_delay_seconds: float = 1.0
    ):
        """
        Initialize OpenWeather provider.

        Args:
            api_key: OpenWeather API key
            units: Temperature units ("metric", "imperial", or "standard")
            lang: Language code for descriptions (e.g., "en", "de")
            timeout: HTTP request timeout in seconds
            max_retries: Total attempts per request on transient errors
            retry_delay_seconds: Base delay between attempts (grows linearly)
        """
        self.api_key = api_key
        self.units = units
        self.lang = lang
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay_seconds = retry_delay_seconds

    def get_current(self, location: Location) -> Dict[str, Any]:
        return self._request(self.CURRENT_PATH, self._location_params(location))

    def get_forecast(self, location: Location) -> Dict[str, Any]:
        return self._request(self.FORECAST_PATH, self._location_params(location))

    def get_historical(self, location: str, days: int) -> List[Dict[str, Any]]:
        coords = self.geocode(location)
        today = self._today()
        summaries = []
        for offset in range(days, 0, -1):
            day = today - timedelta(days=offset)
            summaries.append(self._request(self.DAY_SUMMARY_PATH, {
                "lat": coords.lat,
                "lon": coords.lon,
                "date": day.isoformat(),
            }))
        return summaries

    def get_alerts(self, location: str) -> List[Dict[str, Any]]:
        coords = self.geocode(location)
        data = self._request(self.ONE_CALL_PATH, {
            "lat": coords.lat,
            "lon": coords.lon,
            "exclude": "current,minutely,hourly,daily",
        })
        if not isinstance(data, dict):
            raise DataIntegrityError("One Call response is not an object")
        # The key is omitted entirely when nothing is active
        alerts = data.get("alerts", [])
        if not isinstance(alerts, list):
            raise DataIntegrityError("One Call 'alerts' is not an array")
        return alerts

    def geocode(self, location: str) -> Coordinates:
        """Resolve a place name to coordinates via the Geocoding API."""
        results = self._request(self.GEOCODING_PATH, {"q": location, "limit": 1})
        if not isinstance(results, list):
            raise DataIntegrityError("Geocoding response is not an array")
        if not results:
            raise NotFoundError(f"Location not found: {location}")
        try:
            coords = Coordinates(lat=float(results[0]["lat"]), lon=float(results[0]["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            raise DataIntegrityError(f"Malformed geocoding result: {e}") from e
        logging.debug(f"Geocoded '{location}' to {coords}")
        return coords

    def _today(self) -> date:
        return datetime.now(timezone.utc).date()

    @staticmethod
    def _location_params(location: Location) -> Dict[str, Any]:
        if isinstance(location, Coordinates):
            return {"lat": location.lat, "lon": location.lon}
        return {"q": location}

    def _request(self, path: str, params: Dict[str, Any]) -> Any:
        """GET path with retries on transient errors and return the decoded JSON body."""
        url = self.BASE_URL + path
        query = dict(params, appid=self.api_key, units=self.units, lang=self.lang)

        last_error: WeatherProviderError = ServiceUnavailableError("No request attempted")
        for attempt in range(self.max_retries):
            try:
                logging.info(f"Making OpenWeather API request: {url}")
                logging.debug(f"Request parameters: {params}, units={self.units}, lang={self.lang}")

                response = requests.get(url, params=query, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                logging.warning(f"Network error during API request (attempt {attempt + 1}/{self.max_retries}): {e}")
                last_error = ServiceUnavailableError(f"Network error: {e}")
            else:
                logging.info(f"API response status: {response.status_code}")
                if response.ok:
                    try:
                        return response.json()
                    except ValueError as e:
                        logging.error(f"Failed to parse API response: {e}")
                        raise DataIntegrityError(f"Failed to parse response: {e}") from e

                error = self._error_from_response(response)
                if response.status_code < 500:
                    logging.error(f"Non-retryable error: {error}")
                    raise error
                logging.warning(f"Server error (attempt {attempt + 1}/{self.max_retries}): {error}")
                last_error = error

            if attempt < self.max_retries - 1:
                retry_delay = self.retry_delay_seconds * (attempt + 1)
                logging.info(f"Retrying in {retry_delay}s...")
                time.sleep(retry_delay)

        logging.error(f"OpenWeather request failed after {self.max_retries} attempts: {last_error}")
        raise last_error

    def _error_from_response(self, response: requests.Response) -> WeatherProviderError:
        """Build the typed error for an OpenWeather error response."""
        try:
            error_data = response.json()
            cod = error_data.get("cod", response.status_code)
            message = error_data.get("message", "Unknown error")
            logging.error(f"OpenWeather API error response: {error_data}")
            error_msg = f"OpenWeather API error {cod}: {message}"
        except (ValueError, AttributeError):
            # Not a JSON object, use HTTP status
            logging.error(f"Non-JSON error response: HTTP {response.status_code}, body: {response.text[:500]}")
            error_msg = f"HTTP {response.status_code}: {response.text[:200]}"

        if response.status_code == 404:
            return NotFoundError(error_msg)
        if response.status_code == 429:
            return ServiceUnavailableError(error_msg, rate_limited=True)
        return ServiceUnavailableError(error_msg)
