"""Exception types shared by the codecs, the persistence layer and the API."""

from __future__ import annotations


class FootyMinutesError(Exception):
    """Base class for errors raised by footyminutes."""


class NotFoundError(FootyMinutesError, LookupError):
    """A referenced player, fixture or name could not be resolved."""


class PlayerNotFoundError(NotFoundError):
    """One or more player display names did not match the roster."""

    def __init__(self, names: list[str], message: str | None = None):
        self.names = list(names)
        super().__init__(message or f"Unable to resolve player(s): {', '.join(self.names)}")


class PayloadValidationError(FootyMinutesError, ValueError):
    """A payload is missing a required field or carries an invalid value."""


class RemoteUnavailableError(FootyMinutesError, RuntimeError):
    """The remote API could not be reached or did not answer as expected."""


class RemoteRequestError(RemoteUnavailableError):
    """The remote API answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str, *, method: str = "GET", path: str = ""):
        self.status_code = status_code
        self.method = method
        self.path = path
        super().__init__(f"{method} {path} failed with {status_code}: {message}")


class ConfigurationError(FootyMinutesError, RuntimeError):
    """Settings are inconsistent (e.g. API mode enabled without a team id)."""
