"""HTTP client for the footyminutes API."""

from .roster import RosterClient
from .transport import ApiTransport

__all__ = ["ApiTransport", "RosterClient"]
