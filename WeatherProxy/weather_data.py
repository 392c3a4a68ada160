"""Weather domain model - pure data structures independent of any API."""
import json
from dataclasses import asdict, dataclass
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple, Union


@dataclass(frozen=True)
class Coordinates:
    """A latitude/longitude pair in decimal degrees."""
    lat: float
    lon: float

    def __str__(self) -> str:
        return f"{self.lat},{self.lon}"


@dataclass(frozen=True)
class WeatherSnapshot:
    """Current conditions for one location, normalized to metric units."""
    location: str
    country: Optional[str]
    coordinates: Coordinates
    temperature: float  # Celsius
    feels_like: float
    humidity: float  # percent
    pressure: float  # hPa
    wind_speed: float  # km/h
    condition_code: int  # OpenWeather condition id, e.g. 500
    condition: str  # e.g. "rain", "clouds", "clear"
    description: str  # e.g. "light rain"
    captured_at: datetime  # UTC, as reported by upstream

    wind_direction: Optional[float] = None  # degrees
    visibility: Optional[float] = None  # km
    uv_index: Optional[float] = None
    icon: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeatherSnapshot":
        fields = dict(data)
        fields["coordinates"] = Coordinates(**data["coordinates"])
        fields["captured_at"] = datetime.fromisoformat(data["captured_at"])
        return cls(**fields)


@dataclass(frozen=True)
class ForecastPoint:
    """A single time-stamped prediction within a forecast."""
    time: datetime  # UTC
    temperature: float
    feels_like: float
    humidity: float
    pressure: float
    wind_speed: float  # km/h
    condition_code: int
    condition: str
    description: str
    precipitation_probability: float  # 0-100

    wind_direction: Optional[float] = None
    visibility: Optional[float] = None
    icon: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForecastPoint":
        fields = dict(data)
        fields["time"] = datetime.fromisoformat(data["time"])
        return cls(**fields)


@dataclass(frozen=True)
class ForecastEntry:
    """
    Forecast for one location.

    `points` is always in chronological order and is replaced as a whole
    whenever the forecast is refreshed.
    """
    location: str
    country: Optional[str]
    coordinates: Coordinates
    points: Tuple[ForecastPoint, ...]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForecastEntry":
        return cls(
            location=data["location"],
            country=data.get("country"),
            coordinates=Coordinates(**data["coordinates"]),
            points=tuple(ForecastPoint.from_dict(p) for p in data["points"]),
        )


@dataclass(frozen=True)
class HistoricalRecord:
    """Aggregated conditions for one past day."""
    date: date
    temperature: float  # afternoon temperature
    temperature_min: float
    temperature_max: float
    humidity: float
    pressure: float
    wind_speed: float  # daily max, km/h
    precipitation: float  # total, mm

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoricalRecord":
        fields = dict(data)
        fields["date"] = date.fromisoformat(data["date"])
        return cls(**fields)


@dataclass(frozen=True)
class WeatherAlert:
    """An active weather warning issued for an area."""
    id: str
    title: str
    sender: str
    description: str
    starts_at: datetime
    ends_at: datetime
    area: str
    tags: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeatherAlert":
        fields = dict(data)
        fields["starts_at"] = datetime.fromisoformat(data["starts_at"])
        fields["ends_at"] = datetime.fromisoformat(data["ends_at"])
        fields["tags"] = tuple(data.get("tags", ()))
        return cls(**fields)


Payload = Union[
    WeatherSnapshot,
    ForecastEntry,
    Tuple[HistoricalRecord, ...],
    Tuple[WeatherAlert, ...],
]

_MODELS = {
    model.__name__: model
    for model in (WeatherSnapshot, ForecastEntry, HistoricalRecord, WeatherAlert)
}


def json_default(value: Any) -> Any:
    """`json.dumps` hook for the date types used by the models."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_plain(payload: Payload) -> Any:
    """Convert a payload to plain dicts/lists (dates left as objects)."""
    if isinstance(payload, (tuple, list)):
        return [asdict(item) for item in payload]
    return asdict(payload)


def _envelope(item: Any) -> Dict[str, Any]:
    if type(item).__name__ not in _MODELS:
        raise TypeError(f"Cannot encode payload of type {type(item).__name__}")
    return {"type": type(item).__name__, "data": asdict(item)}


def payload_to_json(payload: Payload) -> str:
    """Encode a payload as a tagged JSON envelope for out-of-process caches."""
    if isinstance(payload, (tuple, list)):
        envelope = {"type": "list", "items": [_envelope(item) for item in payload]}
    else:
        envelope = _envelope(payload)
    return json.dumps(envelope, default=json_default)


def _decode(envelope: Dict[str, Any]) -> Any:
    model = _MODELS.get(envelope.get("type"))
    if model is None:
        raise ValueError(f"Unknown payload type: {envelope.get('type')!r}")
    return model.from_dict(envelope["data"])


def payload_from_json(raw: Union[str, bytes]) -> Payload:
    """Decode a payload written by payload_to_json."""
    envelope = json.loads(raw)
    if envelope.get("type") == "list":
        return tuple(_decode(item) for item in envelope["items"])
    return _decode(envelope)
