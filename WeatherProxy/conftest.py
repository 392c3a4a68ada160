"""Shared fixtures: raw OpenWeather payloads as the API returns them."""
import pytest


@pytest.fixture
def sample_current_response():
    """Sample /data/2.5/weather response for Lahore."""
    return {
        "coord": {"lon": 74.3436, "lat": 31.5497},
        "weather": [
            {
                "id": 721,
                "main": "Haze",
                "description": "haze",
                "icon": "50d"
            }
        ],
        "base": "stations",
        "main": {
            "temp": 31.99,
            "feels_like": 35.2,
            "pressure": 1004,
            "humidity": 58
        },
        "visibility": 3500,
        "wind": {"speed": 2.5, "deg": 290},
        "clouds": {"all": 20},
        "dt": 1684929490,
        "sys": {"country": "PK"},
        "timezone": 18000,
        "name": "Lahore",
        "id": 1172451,
        "cod": 200
    }


def _forecast_item(dt, temp, pop, main="Clouds", code=803):
    return {
        "dt": dt,
        "main": {"temp": temp, "feels_like": temp - 1, "pressure": 1006, "humidity": 40},
        "weather": [{"id": code, "main": main, "description": main.lower(), "icon": "04d"}],
        "wind": {"speed": 5.0, "deg": 180},
        "visibility": 10000,
        "pop": pop,
        "dt_txt": "ignored"
    }


@pytest.fixture
def sample_forecast_response():
    """Sample /data/2.5/forecast response, deliberately out of order."""
    return {
        "cod": "200",
        "cnt": 3,
        "list": [
            _forecast_item(1684940400, 30.0, 0.2),
            _forecast_item(1684929600, 33.5, 0.0, main="Clear", code=800),
            _forecast_item(1684951200, 27.1, 0.75, main="Rain", code=500),
        ],
        "city": {
            "id": 1172451,
            "name": "Lahore",
            "coord": {"lat": 31.5497, "lon": 74.3436},
            "country": "PK"
        }
    }


@pytest.fixture
def sample_day_summaries():
    """Two One Call day_summary responses, oldest first."""
    def summary(day, afternoon):
        return {
            "lat": 31.5497,
            "lon": 74.3436,
            "tz": "+05:00",
            "date": day,
            "units": "metric",
            "cloud_cover": {"afternoon": 0},
            "humidity": {"afternoon": 33},
            "precipitation": {"total": 1.5},
            "temperature": {"min": 24.1, "max": 38.2, "afternoon": afternoon, "night": 26.0},
            "pressure": {"afternoon": 1005},
            "wind": {"max": {"speed": 5.0, "direction": 120}}
        }
    return [summary("2023-05-22", 36.0), summary("2023-05-23", 37.5)]


@pytest.fixture
def sample_alerts():
    """Alerts array as found in a One Call response."""
    return [
        {
            "sender_name": "PMD",
            "event": "Heat Wave Warning",
            "start": 1684929600,
            "end": 1685016000,
            "description": "Extremely high temperatures expected.",
            "tags": ["Extreme temperature value"]
        }
    ]
