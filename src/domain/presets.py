from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field, model_validator

from .base_types import PresetId, UserId
from .blend import BlendState
from .ledger import LedgerState


class _PresetBase(BaseModel):
    id: PresetId = Field(default_factory=uuid4)
    user_id: UserId
    name: str
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _validate_name(self) -> _PresetBase:
        if not self.name.strip():
            raise ValueError("Preset name is required")
        return self


class LedgerPreset(_PresetBase):
    """Named snapshot of the margin calculator. Loading replaces the ledger wholesale."""

    snapshot: LedgerState


class BlendPreset(_PresetBase):
    snapshot: BlendState
