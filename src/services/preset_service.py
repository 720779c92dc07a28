from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Mapping, Protocol, TypeVar

from db.repositories import BlendPresetRepository, LedgerPresetRepository
from domain.base_types import PresetId, UserId
from domain.blend import BlendState
from domain.ledger import LedgerState
from domain.presets import BlendPreset, LedgerPreset

logger = logging.getLogger(__name__)

P = TypeVar("P", LedgerPreset, BlendPreset)


class PresetNotFoundError(KeyError):
    def __init__(self, preset_id: PresetId) -> None:
        self.preset_id = preset_id
        super().__init__(f"Preset {preset_id} not found")


class _PresetRepository(Protocol[P]):
    def create(self, preset: P) -> P: ...

    def get(self, preset_id: PresetId) -> P | None: ...

    def list(self, user_id: UserId) -> list[P]: ...

    def save(self, preset: P) -> P | None: ...

    def delete(self, preset_id: PresetId) -> bool: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _PresetService(Generic[P]):
    """Owner-scoped create/list/update/delete over a preset repository.

    Snapshots are opaque here: the only checks are ownership, a non-empty name
    and the snapshot model's own validation.
    """

    preset_type: type[P]

    def __init__(self, repository: _PresetRepository[P], *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._repository = repository
        self._clock = clock

    def list(self, user_id: UserId) -> list[P]:
        return self._repository.list(user_id)

    def get(self, user_id: UserId, preset_id: PresetId) -> P:
        preset = self._repository.get(preset_id)
        if preset is None or preset.user_id != user_id:
            raise PresetNotFoundError(preset_id)
        return preset

    def create(self, user_id: UserId, name: str, snapshot: Any) -> P:
        now = self._clock()
        preset = self.preset_type(user_id=user_id, name=name, snapshot=snapshot, created_at=now, updated_at=now)
        created = self._repository.create(preset)
        logger.info("Created %s %s (%s) for user %s", self.preset_type.__name__, created.id, created.name, user_id)
        return created

    def update(
        self,
        user_id: UserId,
        preset_id: PresetId,
        *,
        name: str | None = None,
        changes: Mapping[str, Any] | None = None,
    ) -> P:
        existing = self.get(user_id, preset_id)
        snapshot = existing.snapshot
        if changes:
            snapshot = type(snapshot).model_validate({**snapshot.model_dump(), **changes})
        updated = self.preset_type(
            id=existing.id,
            user_id=existing.user_id,
            name=existing.name if name is None else name,
            created_at=existing.created_at,
            updated_at=self._clock(),
            snapshot=snapshot,
        )
        saved = self._repository.save(updated)
        if saved is None:
            raise PresetNotFoundError(preset_id)
        logger.info("Updated %s %s", self.preset_type.__name__, preset_id)
        return saved

    def delete(self, user_id: UserId, preset_id: PresetId) -> None:
        self.get(user_id, preset_id)
        self._repository.delete(preset_id)
        logger.info("Deleted %s %s", self.preset_type.__name__, preset_id)


class LedgerPresetService(_PresetService[LedgerPreset]):
    preset_type = LedgerPreset

    def __init__(self, repository: LedgerPresetRepository, *, clock: Callable[[], datetime] = _utcnow) -> None:
        super().__init__(repository, clock=clock)

    def load(self, user_id: UserId, preset_id: PresetId) -> LedgerState:
        return self.get(user_id, preset_id).snapshot


class BlendPresetService(_PresetService[BlendPreset]):
    preset_type = BlendPreset

    def __init__(self, repository: BlendPresetRepository, *, clock: Callable[[], datetime] = _utcnow) -> None:
        super().__init__(repository, clock=clock)

    def load(self, user_id: UserId, preset_id: PresetId) -> BlendState:
        return self.get(user_id, preset_id).snapshot.with_fresh_ids()


__all__ = ["BlendPresetService", "LedgerPresetService", "PresetNotFoundError"]
