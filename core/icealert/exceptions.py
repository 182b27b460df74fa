"""
IceAlert Custom Exceptions

Simple exception hierarchy for error handling. Every error carries the HTTP
status the backend should answer with.
"""


class IceAlertError(Exception):
    """Base exception for IceAlert."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ConfigurationError(IceAlertError):
    """Configuration is invalid or credentials are missing."""

    status_code = 400


class AuthenticationError(IceAlertError):
    """Token exchange with Arduino IoT Cloud failed."""

    status_code = 401


class CloudAPIError(IceAlertError):
    """Arduino IoT Cloud answered a request with an error."""

    pass


class CloudConnectionError(IceAlertError):
    """Cannot reach Arduino IoT Cloud."""

    pass


class ValidationError(IceAlertError):
    """A property value was rejected before contacting the cloud."""

    status_code = 400
