"""Request validation, cache-key derivation and TTL policy."""
import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Union

from weather_data import Coordinates
from weather_errors import ValidationError

COORDINATE_PRECISION = 4
DEFAULT_HISTORY_DAYS = 7
MAX_HISTORY_DAYS = 30


class RequestKind(Enum):
    CURRENT = "current"
    FORECAST = "forecast"
    HISTORICAL = "historical"
    ALERTS = "alerts"


# Seconds a fresh upstream result stays valid. 0 means never cached.
DEFAULT_TTLS: Dict[RequestKind, int] = {
    RequestKind.CURRENT: 600,
    RequestKind.FORECAST: 1800,
    RequestKind.HISTORICAL: 3600,
    RequestKind.ALERTS: 0,
}


def validate_location(location) -> str:
    """Return the stripped location name, or raise ValidationError."""
    if not isinstance(location, str) or not location.strip():
        raise ValidationError("Location is required")
    return location.strip()


def _validate_degrees(value, name: str, limit: float) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ValidationError(f"Invalid {name}: {value!r}")
    value = float(value)
    if not math.isfinite(value) or not -limit <= value <= limit:
        raise ValidationError(f"Invalid {name}: {value} (must be between {-limit:g} and {limit:g})")
    return value


def validate_coordinates(lat, lon) -> Coordinates:
    """Return Coordinates for a finite, in-range lat/lon pair, or raise ValidationError."""
    return Coordinates(
        lat=_validate_degrees(lat, "latitude", 90.0),
        lon=_validate_degrees(lon, "longitude", 180.0),
    )


def validate_days(days) -> int:
    if isinstance(days, bool) or not isinstance(days, numbers.Integral):
        raise ValidationError(f"Invalid day count: {days!r}")
    if not 1 <= days <= MAX_HISTORY_DAYS:
        raise ValidationError(f"Days must be between 1-{MAX_HISTORY_DAYS}")
    return int(days)


def normalize_name(location: str) -> str:
    """'  New   York ' and 'new york' map to the same key component."""
    return " ".join(location.split()).casefold()


def format_coordinate(value: float) -> str:
    text = f"{value:.{COORDINATE_PRECISION}f}"
    # -0.00001 rounds to "-0.0000"; fold it onto the positive zero key.
    if float(text) == 0:
        text = f"{0:.{COORDINATE_PRECISION}f}"
    return text


@dataclass(frozen=True)
class WeatherRequest:
    """One logical lookup: what to fetch, for where, and over how many days."""
    kind: RequestKind
    location: Union[str, Coordinates]
    days: Optional[int] = None

    @property
    def cache_key(self) -> str:
        if isinstance(self.location, Coordinates):
            coords = f"{format_coordinate(self.location.lat)}:{format_coordinate(self.location.lon)}"
            if self.kind is RequestKind.CURRENT:
                return f"weather:coords:{coords}"
            return f"{self.kind.value}:coords:{coords}"

        name = normalize_name(self.location)
        if self.kind is RequestKind.CURRENT:
            return f"weather:current:{name}"
        if self.kind is RequestKind.HISTORICAL:
            return f"history:{name}:{self.days}"
        return f"{self.kind.value}:{name}"

    @property
    def label(self) -> str:
        """Human-readable location used for logging and usage stats."""
        if isinstance(self.location, Coordinates):
            return f"{format_coordinate(self.location.lat)},{format_coordinate(self.location.lon)}"
        return normalize_name(self.location)

    @classmethod
    def current(cls, location: str) -> "WeatherRequest":
        return cls(RequestKind.CURRENT, validate_location(location))

    @classmethod
    def current_by_coords(cls, lat, lon) -> "WeatherRequest":
        return cls(RequestKind.CURRENT, validate_coordinates(lat, lon))

    @classmethod
    def forecast(cls, location: str) -> "WeatherRequest":
        return cls(RequestKind.FORECAST, validate_location(location))

    @classmethod
    def forecast_by_coords(cls, lat, lon) -> "WeatherRequest":
        return cls(RequestKind.FORECAST, validate_coordinates(lat, lon))

    @classmethod
    def historical(cls, location: str, days: int = DEFAULT_HISTORY_DAYS) -> "WeatherRequest":
        return cls(RequestKind.HISTORICAL, validate_location(location), validate_days(days))

    @classmethod
    def alerts(cls, location: str) -> "WeatherRequest":
        return cls(RequestKind.ALERTS, validate_location(location))
