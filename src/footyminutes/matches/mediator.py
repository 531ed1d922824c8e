"""Select the remote or local match backend and record which one served a call.

Mode transitions, evaluated at the start of every operation:

* API enabled and a team id available: try the remote backend. Success sets
  ``api``; any error is logged, recorded and the local backend answers
  instead (``fallback``).
* API enabled without a team id (or without a remote backend): ``fallback``
  with a :class:`ConfigurationError`, local backend answers.
* API disabled: ``local``.

Bulk import never goes remote; when the API would otherwise be used it is
reported as ``fallback`` with no error, while a misconfigured API still records
the configuration error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Literal, Optional, Sequence, TypeVar

from footyminutes.client import ApiTransport
from footyminutes.config import Settings
from footyminutes.errors import ConfigurationError
from footyminutes.models import BulkImportResult, MatchRecord, MatchUpdatePayload, SaveMatchPayload
from footyminutes.persistence.local import KeyValueStorage, SqliteKeyValueStorage

from .backends import LocalMatchBackend, RemoteMatchBackend


logger = logging.getLogger(__name__)

PersistenceMode = Literal["api", "local", "fallback"]
T = TypeVar("T")


@dataclass
class PersistenceState:
    mode: PersistenceMode = "local"
    error: Optional[BaseException] = None

    def record(self, mode: PersistenceMode, error: Optional[BaseException] = None) -> None:
        self.mode = mode
        self.error = error


class MatchPersistence:
    """Entry point for saving, listing and updating matches.

    Callers never see remote failures from the four public operations; they
    inspect :attr:`mode` and :attr:`last_error` (or a ``state`` they pass in)
    to find out whether the remote API actually served the call.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        local: LocalMatchBackend,
        remote: RemoteMatchBackend | None = None,
        state: PersistenceState | None = None,
    ):
        self.settings = settings
        self.local = local
        self.remote = remote
        self.state = state or PersistenceState()
        if not settings.use_api:
            self.state.record("local")
        elif self._can_use_remote(settings.team_id):
            self.state.record("api")
        else:
            self.state.record("fallback", self._configuration_error())

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        storage: KeyValueStorage | None = None,
        transport: ApiTransport | None = None,
    ) -> "MatchPersistence":
        local = LocalMatchBackend(storage or SqliteKeyValueStorage(settings.local_store_path))
        remote = None
        if settings.use_api:
            transport = transport or ApiTransport(
                settings.api_base_url,
                session_secret=settings.resolved_session_secret,
                actor_roles=settings.actor_roles,
            )
            remote = RemoteMatchBackend(transport)
        return cls(settings, local=local, remote=remote)

    @property
    def mode(self) -> PersistenceMode:
        return self.state.mode

    @property
    def last_error(self) -> Optional[BaseException]:
        return self.state.error

    async def aclose(self) -> None:
        if self.remote is not None:
            await self.remote.aclose()

    def _can_use_remote(self, team_id: Optional[str]) -> bool:
        return self.remote is not None and bool(team_id)

    def _configuration_error(self) -> ConfigurationError:
        if self.remote is None:
            return ConfigurationError("API persistence is enabled but no remote backend is configured")
        return ConfigurationError("API persistence is enabled but no team id is configured")

    async def _run(
        self,
        operation: str,
        team_id: Optional[str],
        state: PersistenceState,
        remote_call: Callable[[RemoteMatchBackend, str], Awaitable[T]],
        local_call: Callable[[], Awaitable[T]],
    ) -> T:
        team_id = team_id or self.settings.team_id
        if not self.settings.use_api:
            state.record("local")
            return await local_call()

        if not self._can_use_remote(team_id):
            error = self._configuration_error()
            logger.warning("%s: %s; using local storage", operation, error)
            state.record("fallback", error)
            return await local_call()

        try:
            value = await remote_call(self.remote, team_id)
        except Exception as exc:
            logger.warning("%s via API failed, falling back to local storage: %s", operation, exc)
            state.record("fallback", exc)
            return await local_call()
        state.record("api")
        return value

    async def save_match(
        self,
        payload: SaveMatchPayload,
        *,
        team_id: Optional[str] = None,
        state: PersistenceState | None = None,
    ) -> MatchRecord:
        return await self._run(
            "save match",
            team_id,
            state or self.state,
            lambda remote, team: remote.save_match(payload, team_id=team),
            lambda: self.local.save_match(payload),
        )

    async def list_matches(
        self,
        *,
        team_id: Optional[str] = None,
        state: PersistenceState | None = None,
    ) -> List[MatchRecord]:
        return await self._run(
            "list matches",
            team_id,
            state or self.state,
            lambda remote, team: remote.list_matches(team_id=team),
            self.local.list_matches,
        )

    async def update_match(
        self,
        match_id: str,
        updates: MatchUpdatePayload,
        *,
        team_id: Optional[str] = None,
        state: PersistenceState | None = None,
    ) -> Optional[MatchRecord]:
        return await self._run(
            "update match",
            team_id,
            state or self.state,
            lambda remote, team: remote.update_match(match_id, updates, team_id=team),
            lambda: self.local.update_match(match_id, updates),
        )

    async def bulk_import_matches(
        self,
        payloads: Sequence[SaveMatchPayload],
        *,
        state: PersistenceState | None = None,
    ) -> BulkImportResult:
        state = state or self.state
        if not self.settings.use_api:
            state.record("local")
        elif self._can_use_remote(self.settings.team_id):
            state.record("fallback")
        else:
            state.record("fallback", self._configuration_error())
        return await self.local.bulk_import(payloads)
