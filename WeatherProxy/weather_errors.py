"""Failure taxonomy shared by the weather service and its providers."""


class WeatherError(Exception):
    """Base class for all weather lookup failures."""
    pass


class ValidationError(WeatherError):
    """Raised when a request is rejected before touching cache or upstream."""
    pass


class WeatherProviderError(WeatherError):
    """Exception raised when a weather provider fails."""
    pass


class NotFoundError(WeatherProviderError):
    """Upstream confirmed that the requested location does not exist."""
    pass


class ServiceUnavailableError(WeatherProviderError):
    """Upstream was unreachable, timed out, refused the request or rate-limited us."""

    def __init__(self, message: str, rate_limited: bool = False):
        super().__init__(message)
        self.rate_limited = rate_limited


class DataIntegrityError(WeatherProviderError):
    """Upstream answered, but the payload is missing or has malformed fields."""
    pass
