"""Exception types raised inside the SDK."""


class OscTrackingError(Exception):
    """Base class for all SDK errors."""


class ValidationError(OscTrackingError):
    """A user-entered IP address or port could not be parsed."""


class DiscoveryError(OscTrackingError):
    """Querying an announced service failed (timeout, bad tree, unreachable)."""

    def __init__(self, profile_name: str, message: str):
        super().__init__(f"{profile_name}: {message}")
        self.profile_name = profile_name


class TransportError(OscTrackingError):
    """Sending an OSC message to a receiver session failed."""


class InitializationError(OscTrackingError):
    """The discovery or query service could not be started."""
