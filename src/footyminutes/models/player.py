"""Player models: the canonical roster entry and its wire forms."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from .base import CamelModel


class Player(BaseModel):
    """Roster entry as seen by the persistence layer."""

    id: str = Field(..., min_length=1)
    name: str
    squad_number: Optional[int] = None
    preferred_positions: List[str] = Field(default_factory=list)
    removed_at: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def is_active(self) -> bool:
        return self.removed_at is None


class PlayerResponse(CamelModel):
    id: str
    team_id: str
    display_name: str
    squad_number: Optional[int] = None
    preferred_positions: List[str] = Field(default_factory=list)
    created_at: str
    updated_at: str
    removed_at: Optional[str] = None


class PlayerCreateRequest(CamelModel):
    id: Optional[str] = None
    display_name: str
    squad_number: Optional[int] = None
    preferred_positions: List[str] = Field(default_factory=list)

    @field_validator("display_name")
    @classmethod
    def _require_display_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("displayName is required")
        return value.strip()


class PlayerUpdateRequest(CamelModel):
    display_name: Optional[str] = None
    squad_number: Optional[int] = None
    preferred_positions: Optional[List[str]] = None
