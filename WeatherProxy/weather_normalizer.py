"""
Normalization of raw OpenWeather payloads into domain objects.

Every function either returns a fully populated object or raises
DataIntegrityError; partially parsed payloads never leave this module.
Wind speeds are converted from m/s to km/h and visibility from metres to
kilometres.
"""
import math
import numbers
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from weather_data import (
    Coordinates,
    ForecastEntry,
    ForecastPoint,
    HistoricalRecord,
    WeatherAlert,
    WeatherSnapshot,
)
from weather_errors import DataIntegrityError

MS_TO_KMH = 3.6


def _section(data: Any, key: str, path: str = "") -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise DataIntegrityError(f"Expected an object at '{path or '<root>'}'")
    value = data.get(key)
    if not isinstance(value, Mapping):
        raise DataIntegrityError(f"Response missing '{path}{key}' block")
    return value


def _is_finite_number(value: Any) -> bool:
    return not isinstance(value, bool) and isinstance(value, numbers.Real) and math.isfinite(value)


def _number(data: Mapping[str, Any], key: str, path: str = "") -> float:
    value = data.get(key)
    if not _is_finite_number(value):
        raise DataIntegrityError(f"Response field '{path}{key}' is missing or not a finite number")
    return float(value)


def _optional_number(data: Mapping[str, Any], key: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    if not _is_finite_number(value):
        raise DataIntegrityError(f"Response field '{key}' is not a finite number")
    return float(value)


def _text(data: Mapping[str, Any], key: str, path: str = "") -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise DataIntegrityError(f"Response field '{path}{key}' is missing or not a string")
    return value


def _timestamp(data: Mapping[str, Any], key: str, path: str = "") -> datetime:
    try:
        return datetime.fromtimestamp(_number(data, key, path), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise DataIntegrityError(f"Response field '{path}{key}' is not a valid timestamp: {e}") from e


def _condition(data: Mapping[str, Any], path: str = "") -> Mapping[str, Any]:
    weather_array = data.get("weather")
    if not isinstance(weather_array, list) or not weather_array or not isinstance(weather_array[0], Mapping):
        raise DataIntegrityError(f"Response missing '{path}weather' array")
    return weather_array[0]


def _coordinates(data: Mapping[str, Any], path: str = "") -> Coordinates:
    coord = _section(data, "coord", path)
    return Coordinates(lat=_number(coord, "lat", f"{path}coord."), lon=_number(coord, "lon", f"{path}coord."))


def _measurements(item: Mapping[str, Any], path: str = "") -> Dict[str, Any]:
    """Fields shared by current conditions and forecast points."""
    main = _section(item, "main", path)
    wind = _section(item, "wind", path)
    weather = _condition(item, path)
    visibility = _optional_number(item, "visibility")
    icon = weather.get("icon")

    return {
        "temperature": _number(main, "temp", f"{path}main."),
        "feels_like": _number(main, "feels_like", f"{path}main."),
        "humidity": _number(main, "humidity", f"{path}main."),
        "pressure": _number(main, "pressure", f"{path}main."),
        "wind_speed": round(_number(wind, "speed", f"{path}wind.") * MS_TO_KMH, 2),
        "wind_direction": _optional_number(wind, "deg"),
        "visibility": visibility / 1000 if visibility is not None else None,
        "condition_code": int(_number(weather, "id", f"{path}weather[0].")),
        "condition": _text(weather, "main", f"{path}weather[0].").lower(),
        "description": _text(weather, "description", f"{path}weather[0]."),
        "icon": icon if isinstance(icon, str) else None,
    }


def to_snapshot(raw: Any) -> WeatherSnapshot:
    """Normalize a /data/2.5/weather response."""
    if not isinstance(raw, Mapping):
        raise DataIntegrityError("Current weather response is not an object")

    sys_data = raw.get("sys")
    country = sys_data.get("country") if isinstance(sys_data, Mapping) else None
    name = raw.get("name")

    return WeatherSnapshot(
        location=name if isinstance(name, str) else "",
        country=country if isinstance(country, str) else None,
        coordinates=_coordinates(raw),
        captured_at=_timestamp(raw, "dt"),
        uv_index=None,
        **_measurements(raw),
    )


def _forecast_point(item: Any, index: int) -> ForecastPoint:
    path = f"list[{index}]."
    if not isinstance(item, Mapping):
        raise DataIntegrityError(f"Forecast item {index} is not an object")
    return ForecastPoint(
        time=_timestamp(item, "dt", path),
        precipitation_probability=round(_number(item, "pop", path) * 100, 1),
        **_measurements(item, path),
    )


def to_forecast(raw: Any) -> ForecastEntry:
    """Normalize a /data/2.5/forecast response; points come back in time order."""
    if not isinstance(raw, Mapping):
        raise DataIntegrityError("Forecast response is not an object")
    city = _section(raw, "city")
    items = raw.get("list")
    if not isinstance(items, list):
        raise DataIntegrityError("Response missing 'list' array")

    points = sorted(
        (_forecast_point(item, index) for index, item in enumerate(items)),
        key=lambda point: point.time,
    )
    country = city.get("country")
    name = city.get("name")
    return ForecastEntry(
        location=name if isinstance(name, str) else "",
        country=country if isinstance(country, str) else None,
        coordinates=_coordinates(city, "city."),
        points=tuple(points),
    )


def _historical_record(summary: Any, index: int) -> HistoricalRecord:
    path = f"[{index}]."
    if not isinstance(summary, Mapping):
        raise DataIntegrityError(f"Day summary {index} is not an object")
    temperature = _section(summary, "temperature", path)
    wind_max = _section(_section(summary, "wind", path), "max", f"{path}wind.")
    try:
        day = date.fromisoformat(_text(summary, "date", path))
    except ValueError as e:
        raise DataIntegrityError(f"Malformed day summary date: {e}") from e

    return HistoricalRecord(
        date=day,
        temperature=_number(temperature, "afternoon", f"{path}temperature."),
        temperature_min=_number(temperature, "min", f"{path}temperature."),
        temperature_max=_number(temperature, "max", f"{path}temperature."),
        humidity=_number(_section(summary, "humidity", path), "afternoon", f"{path}humidity."),
        pressure=_number(_section(summary, "pressure", path), "afternoon", f"{path}pressure."),
        wind_speed=round(_number(wind_max, "speed", f"{path}wind.max.") * MS_TO_KMH, 2),
        precipitation=_number(_section(summary, "precipitation", path), "total", f"{path}precipitation."),
    )


def to_historical(raw: Iterable[Any]) -> Tuple[HistoricalRecord, ...]:
    """Normalize a list of One Call day summaries, oldest day first."""
    if not isinstance(raw, list):
        raise DataIntegrityError("Historical response is not an array")
    records = [_historical_record(summary, index) for index, summary in enumerate(raw)]
    return tuple(sorted(records, key=lambda record: record.date))


def _alert(item: Any, index: int, area: str) -> WeatherAlert:
    path = f"alerts[{index}]."
    if not isinstance(item, Mapping):
        raise DataIntegrityError(f"Alert {index} is not an object")
    sender = _text(item, "sender_name", path)
    event = _text(item, "event", path)
    start = _number(item, "start", path)
    tags = item.get("tags") or []
    if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
        raise DataIntegrityError(f"Response field '{path}tags' is malformed")

    return WeatherAlert(
        id=f"{sender}:{event}:{int(start)}",
        title=event,
        sender=sender,
        description=_text(item, "description", path),
        starts_at=_timestamp(item, "start", path),
        ends_at=_timestamp(item, "end", path),
        area=area,
        tags=tuple(tags),
    )


def to_alerts(raw: Iterable[Any], area: str) -> Tuple[WeatherAlert, ...]:
    """Normalize One Call alerts issued for area, ordered by start time."""
    if not isinstance(raw, list):
        raise DataIntegrityError("Alerts response is not an array")
    alerts: List[WeatherAlert] = [_alert(item, index, area) for index, item in enumerate(raw)]
    return tuple(sorted(alerts, key=lambda alert: alert.starts_at))
