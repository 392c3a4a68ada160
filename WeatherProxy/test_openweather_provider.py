"""Tests for OpenWeather provider."""
from datetime import date
from unittest.mock import Mock, patch

import pytest
import requests

from openweather_provider import OpenWeatherProvider
from weather_data import Coordinates
from weather_errors import DataIntegrityError, NotFoundError, ServiceUnavailableError


def ok_response(data):
    response = Mock()
    response.ok = True
    response.status_code = 200
    response.json.return_value = data
    return response


def error_response(status_code, data=None, text=""):
    response = Mock()
    response.ok = False
    response.status_code = status_code
    if data is None:
        response.json.side_effect = ValueError("No JSON")
    else:
        response.json.return_value = data
    response.text = text
    return response


@pytest.fixture
def provider():
    """Create OpenWeather provider instance."""
    return OpenWeatherProvider(
        api_key="test_key",
        units="metric",
        max_retries=3,
        retry_delay_seconds=0
    )


def test_get_current_by_name(provider, sample_current_response):
    """Test successful API call by place name."""
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = ok_response(sample_current_response)

        data = provider.get_current("Lahore")

        assert data == sample_current_response
        url = mock_get.call_args.args[0]
        params = mock_get.call_args.kwargs["params"]
        assert url == "https://api.openweathermap.org/data/2.5/weather"
        assert params["q"] == "Lahore"
        assert params["appid"] == "test_key"
        assert params["units"] == "metric"
        assert mock_get.call_args.kwargs["timeout"] == 10


def test_get_current_by_coordinates(provider, sample_current_response):
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = ok_response(sample_current_response)

        provider.get_current(Coordinates(31.5497, 74.3436))

        params = mock_get.call_args.kwargs["params"]
        assert params["lat"] == 31.5497
        assert params["lon"] == 74.3436
        assert "q" not in params


def test_get_forecast(provider, sample_forecast_response):
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = ok_response(sample_forecast_response)

        data = provider.get_forecast("Lahore")

        assert data == sample_forecast_response
        assert mock_get.call_args.args[0].endswith("/data/2.5/forecast")


def test_not_found(provider):
    """404 maps to NotFoundError and is not retried."""
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = error_response(404, {"cod": "404", "message": "city not found"})

        with pytest.raises(NotFoundError) as exc_info:
            provider.get_current("Atlantis")

        assert "city not found" in str(exc_info.value)
        assert mock_get.call_count == 1


def test_invalid_api_key_is_not_retried(provider):
    """Test handling of HTTP errors."""
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = error_response(401, {"cod": 401, "message": "Invalid API key"})

        with pytest.raises(ServiceUnavailableError) as exc_info:
            provider.get_current("Lahore")

        assert "401" in str(exc_info.value)
        assert "Invalid API key" in str(exc_info.value)
        assert mock_get.call_count == 1


def test_rate_limited(provider):
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = error_response(429, {"cod": 429, "message": "Too many requests"})

        with pytest.raises(ServiceUnavailableError) as exc_info:
            provider.get_current("Lahore")

        assert exc_info.value.rate_limited is True
        assert mock_get.call_count == 1


def test_network_error_retried_then_fails(provider):
    """Test handling of network errors."""
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.side_effect = requests.exceptions.Timeout("Connection timeout")

        with pytest.raises(ServiceUnavailableError) as exc_info:
            provider.get_current("Lahore")

        assert "Network error" in str(exc_info.value)
        assert exc_info.value.rate_limited is False
        assert mock_get.call_count == 3


def test_transient_error_recovers(provider, sample_current_response):
    """Test that the provider retries on transient errors."""
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.side_effect = [
            requests.exceptions.ConnectionError("reset"),
            error_response(503, text="Service Unavailable"),
            ok_response(sample_current_response),
        ]

        assert provider.get_current("Lahore") == sample_current_response
        assert mock_get.call_count == 3


def test_retry_delay_grows_linearly(sample_current_response):
    provider = OpenWeatherProvider(api_key="k", max_retries=3, retry_delay_seconds=0.5)
    with patch('openweather_provider.requests.get') as mock_get, \
            patch('openweather_provider.time.sleep') as mock_sleep:
        mock_get.side_effect = requests.exceptions.ConnectionError("down")

        with pytest.raises(ServiceUnavailableError):
            provider.get_current("Lahore")

        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]


def test_non_json_error_body(provider):
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = error_response(400, text="<html>Bad Request</html>")

        with pytest.raises(ServiceUnavailableError) as exc_info:
            provider.get_current("Lahore")

        assert "HTTP 400" in str(exc_info.value)


def test_malformed_success_body(provider):
    with patch('openweather_provider.requests.get') as mock_get:
        response = ok_response(None)
        response.json.side_effect = ValueError("Expecting value")
        mock_get.return_value = response

        with pytest.raises(DataIntegrityError):
            provider.get_current("Lahore")


def test_geocode(provider):
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = ok_response([{"name": "Lahore", "lat": 31.5497, "lon": 74.3436, "country": "PK"}])

        assert provider.geocode("Lahore") == Coordinates(31.5497, 74.3436)
        assert mock_get.call_args.kwargs["params"]["limit"] == 1


def test_geocode_unknown_place(provider):
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.return_value = ok_response([])

        with pytest.raises(NotFoundError):
            provider.geocode("Atlantis")


def test_get_historical_requests_each_day_oldest_first(provider, sample_day_summaries):
    geocoding = ok_response([{"lat": 31.5497, "lon": 74.3436}])
    with patch('openweather_provider.requests.get') as mock_get, \
            patch.object(OpenWeatherProvider, '_today', return_value=date(2023, 5, 24)):
        mock_get.side_effect = [geocoding] + [ok_response(s) for s in sample_day_summaries]

        summaries = provider.get_historical("Lahore", 2)

        assert summaries == sample_day_summaries
        day_calls = mock_get.call_args_list[1:]
        assert [c.kwargs["params"]["date"] for c in day_calls] == ["2023-05-22", "2023-05-23"]
        assert all(c.args[0].endswith("/data/3.0/onecall/day_summary") for c in day_calls)


def test_get_alerts(provider, sample_alerts):
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.side_effect = [
            ok_response([{"lat": 31.5497, "lon": 74.3436}]),
            ok_response({"lat": 31.5497, "lon": 74.3436, "alerts": sample_alerts}),
        ]

        assert provider.get_alerts("Lahore") == sample_alerts
        assert mock_get.call_args.kwargs["params"]["exclude"] == "current,minutely,hourly,daily"


def test_get_alerts_when_none_active(provider):
    with patch('openweather_provider.requests.get') as mock_get:
        mock_get.side_effect = [
            ok_response([{"lat": 31.5497, "lon": 74.3436}]),
            ok_response({"lat": 31.5497, "lon": 74.3436, "timezone": "Asia/Karachi"}),
        ]

        assert provider.get_alerts("Lahore") == []
