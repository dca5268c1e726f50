from __future__ import annotations


class StudioError(Exception):
    """Base class for errors raised by the generation studio."""


class TransportError(StudioError):
    """A generation request could not be sent or its stream broke mid-flight."""


class StreamParseError(StudioError):
    """Model output could not be parsed into the expected JSON shape."""


class InputValidationError(StudioError, ValueError):
    """The triggering action was rejected before touching any state."""


class ConfigurationError(InputValidationError):
    """Required configuration (e.g. a provider credential) is missing."""


class StudioBusyError(StudioError):
    """A generation batch is already in flight."""
