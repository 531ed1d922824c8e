"""Environment-driven settings for the API client and persistence layer."""

from __future__ import annotations

from typing import Annotated, Any, List, Optional, Tuple

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from footyminutes.errors import ConfigurationError


ENV_PREFIX = "FOOTYMINUTES_"

DEFAULT_API_BASE_URL = "http://localhost:8000/api"
DEFAULT_SESSION_SECRET = "dev-session-secret"
DEFAULT_ACTOR_ROLES: Tuple[str, ...] = ("coach",)
DEFAULT_DB_PATH = "footyminutes.sqlite"
DEFAULT_LOCAL_STORE_PATH = "footyminutes-local.sqlite"


class Settings(BaseSettings):
    """Settings read from ``FOOTYMINUTES_*`` variables.

    Empty variables count as unset. ``FOOTYMINUTES_USE_API`` only enables the
    API for the literal ``true``.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    use_api: bool = False
    api_base_url: str = DEFAULT_API_BASE_URL
    team_id: Optional[str] = None
    session_secret: Optional[str] = None
    actor_roles: Annotated[Tuple[str, ...], NoDecode] = DEFAULT_ACTOR_ROLES
    db_path: str = DEFAULT_DB_PATH
    local_store_path: str = DEFAULT_LOCAL_STORE_PATH

    @field_validator("use_api", mode="before")
    @classmethod
    def _literal_true(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value == "true"
        return value

    @field_validator("actor_roles", mode="before")
    @classmethod
    def _split_roles(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(role.strip() for role in value.split(",") if role.strip())
        return value

    @property
    def session_secret_configured(self) -> bool:
        return self.session_secret is not None

    @property
    def resolved_session_secret(self) -> str:
        return self.session_secret or DEFAULT_SESSION_SECRET

    def problems(self) -> List[str]:
        """Return human-readable configuration errors, empty when consistent."""

        issues: list[str] = []
        if self.use_api and not self.team_id:
            issues.append(f"{ENV_PREFIX}USE_API is true but {ENV_PREFIX}TEAM_ID is not configured.")
        if self.use_api and not self.session_secret_configured:
            issues.append(f"{ENV_PREFIX}USE_API is true but {ENV_PREFIX}SESSION_SECRET is not configured.")
        return issues


def load_settings(*, strict: bool = False) -> Settings:
    """Read settings from the process environment.

    With ``strict=True`` any entry from :meth:`Settings.problems` raises
    :class:`ConfigurationError`; otherwise the settings are returned as-is and
    the persistence layer degrades to local storage at runtime.
    """

    settings = Settings()
    if strict:
        issues = settings.problems()
        if issues:
            raise ConfigurationError(" ".join(issues))
    return settings
