"""Weather provider abstraction - allows swapping different weather APIs."""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Union

from weather_data import Coordinates

Location = Union[str, Coordinates]


class WeatherProviderBase(ABC):
    """
    Abstract base class for weather data providers.

    Providers return the upstream JSON untouched; turning it into domain
    objects is the job of weather_normalizer.
    """

    @abstractmethod
    def get_current(self, location: Location) -> Dict[str, Any]:
        """
        Fetch current weather for a place name or coordinate pair.

        Raises:
            NotFoundError: If the location is unknown upstream
            ServiceUnavailableError: On timeouts, transport errors or rate limiting
        """
        pass

    @abstractmethod
    def get_forecast(self, location: Location) -> Dict[str, Any]:
        """Fetch the forecast for a place name or coordinate pair."""
        pass

    @abstractmethod
    def get_historical(self, location: str, days: int) -> List[Dict[str, Any]]:
        """Fetch one day summary per past day, oldest first."""
        pass

    @abstractmethod
    def get_alerts(self, location: str) -> List[Dict[str, Any]]:
        """Fetch the alerts currently active for a place."""
        pass
