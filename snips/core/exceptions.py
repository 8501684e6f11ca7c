# snips/core/exceptions.py

"""Custom exceptions for Snips."""


class SnipsError(Exception):
    """Base exception for Snips."""


class ValidationError(SnipsError):
    """Raised when a name or title is empty, duplicated or otherwise unusable."""


class PersistenceError(SnipsError):
    """Raised when the snippet store cannot be read from or written to disk."""


class InvalidStateError(SnipsError):
    """Raised when an operation is invoked on an entity in the wrong state."""


class ConfigError(SnipsError):
    """Raised when the settings file is missing required values or is invalid."""
