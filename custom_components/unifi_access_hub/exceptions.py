"""Exceptions for UniFi Access Hub integration."""


class UnifiAccessError(Exception):
    """Base exception for UniFi Access errors."""
    pass


class AccessAuthError(UnifiAccessError):
    """Authentication error with the Access controller."""
    pass


class AccessOfflineError(UnifiAccessError):
    """Device is not reachable."""
    pass


class AccessAddressingError(UnifiAccessError):
    """No location or door could be resolved to address a command."""
    pass


class AccessTransportError(UnifiAccessError):
    """Command call failed or was rejected."""
    pass


class AccessResponseError(UnifiAccessError):
    """Malformed confirmation payload from the controller."""
    pass


class AccessRetryExhaustedError(UnifiAccessError):
    """Automatic relock gave up after its bounded number of attempts."""
    pass
