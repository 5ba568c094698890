"""Error taxonomy for weather fetches."""

from enum import StrEnum


class ErrorKind(StrEnum):
    """Stable identifier for each failure class."""

    INVALID_URL = "invalid_url"
    INVALID_RESPONSE = "invalid_response"
    API_ERROR = "api_error"
    INVALID_DATA = "invalid_data"
    NETWORK_ERROR = "network_error"
    LOCATION_UNAVAILABLE = "location_unavailable"
    UNKNOWN = "unknown"


class WeatherError(Exception):
    """Base exception for weather fetch errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN


class InvalidURLError(WeatherError):
    """Raised when an endpoint cannot be resolved into a URL."""

    kind = ErrorKind.INVALID_URL


class InvalidResponseError(WeatherError):
    """Raised when the transport succeeded but the response is not well-formed."""

    kind = ErrorKind.INVALID_RESPONSE


class ApiError(WeatherError):
    """Raised when upstream returns a non-2xx status."""

    kind = ErrorKind.API_ERROR

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidDataError(WeatherError):
    """Raised when the response body does not decode into the expected shape."""

    kind = ErrorKind.INVALID_DATA


class NetworkError(WeatherError):
    """Raised on transport-level failures (DNS, connection reset, ...)."""

    kind = ErrorKind.NETWORK_ERROR

    def __init__(self, message: str, underlying: BaseException | None = None) -> None:
        super().__init__(message)
        self.underlying = underlying


class NetworkTimeoutError(NetworkError):
    """Raised when upstream request times out."""


class LocationUnavailableError(WeatherError):
    """Raised when no coordinate could be obtained for the device."""

    kind = ErrorKind.LOCATION_UNAVAILABLE


class UnknownError(WeatherError):
    """Wraps any failure that does not fit another class."""

    kind = ErrorKind.UNKNOWN

    def __init__(self, message: str, underlying: BaseException | None = None) -> None:
        super().__init__(message)
        self.underlying = underlying
