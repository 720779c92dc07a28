from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from db import models
from domain.base_types import PresetId, Representation, UserId
from domain.blend import BlendProduct, BlendState
from domain.ledger import Concept, LedgerState
from domain.presets import BlendPreset, LedgerPreset


def _as_utc(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


class LedgerPresetRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, preset: LedgerPreset) -> LedgerPreset:
        orm_preset = models.LedgerPresetOrm(id=preset.id, user_id=preset.user_id, created_at=preset.created_at)
        self._apply(orm_preset, preset)
        self._session.add(orm_preset)
        self._session.commit()
        self._session.refresh(orm_preset)
        return self._to_domain(orm_preset)

    def get(self, preset_id: PresetId) -> LedgerPreset | None:
        orm_preset = self._session.get(models.LedgerPresetOrm, preset_id)
        if orm_preset is None:
            return None
        return self._to_domain(orm_preset)

    def list(self, user_id: UserId) -> list[LedgerPreset]:
        orm_presets = (
            self._session.query(models.LedgerPresetOrm)
            .filter(models.LedgerPresetOrm.user_id == user_id)
            .order_by(models.LedgerPresetOrm.created_at.asc())
            .all()
        )
        return [self._to_domain(preset) for preset in orm_presets]

    def save(self, preset: LedgerPreset) -> LedgerPreset | None:
        orm_preset = self._session.get(models.LedgerPresetOrm, preset.id)
        if orm_preset is None:
            return None
        self._apply(orm_preset, preset)
        self._session.commit()
        self._session.refresh(orm_preset)
        return self._to_domain(orm_preset)

    def delete(self, preset_id: PresetId) -> bool:
        orm_preset = self._session.get(models.LedgerPresetOrm, preset_id)
        if orm_preset is None:
            return False
        self._session.delete(orm_preset)
        self._session.commit()
        return True

    @staticmethod
    def _apply(orm_preset: models.LedgerPresetOrm, preset: LedgerPreset) -> None:
        snapshot = preset.snapshot
        orm_preset.name = preset.name
        orm_preset.exchange_rate = snapshot.exchange_rate
        orm_preset.base_price = snapshot.base_price
        orm_preset.base_price_input_type = snapshot.base_price_input_type.value
        orm_preset.gallons = snapshot.gallons
        orm_preset.liters = snapshot.liters
        orm_preset.margin = snapshot.margin
        orm_preset.margin_input_type = snapshot.margin_input_type.value
        orm_preset.decimal_places = snapshot.decimal_places
        orm_preset.concepts = [concept.model_dump(mode="json") for concept in snapshot.concepts]
        orm_preset.updated_at = preset.updated_at

    @staticmethod
    def _to_domain(orm_preset: models.LedgerPresetOrm) -> LedgerPreset:
        snapshot = LedgerState(
            exchange_rate=orm_preset.exchange_rate,
            base_price=orm_preset.base_price,
            base_price_input_type=Representation(orm_preset.base_price_input_type),
            gallons=orm_preset.gallons,
            liters=orm_preset.liters,
            margin=orm_preset.margin,
            margin_input_type=Representation(orm_preset.margin_input_type),
            decimal_places=orm_preset.decimal_places,
            concepts=[Concept.model_validate(concept) for concept in orm_preset.concepts],
        )
        return LedgerPreset(
            id=PresetId(orm_preset.id),
            user_id=UserId(orm_preset.user_id),
            name=orm_preset.name,
            created_at=_as_utc(orm_preset.created_at),
            updated_at=_as_utc(orm_preset.updated_at),
            snapshot=snapshot,
        )


class BlendPresetRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create(self, preset: BlendPreset) -> BlendPreset:
        orm_preset = models.BlendPresetOrm(id=preset.id, user_id=preset.user_id, created_at=preset.created_at)
        self._apply(orm_preset, preset)
        self._session.add(orm_preset)
        self._session.commit()
        self._session.refresh(orm_preset)
        return self._to_domain(orm_preset)

    def get(self, preset_id: PresetId) -> BlendPreset | None:
        orm_preset = self._session.get(models.BlendPresetOrm, preset_id)
        if orm_preset is None:
            return None
        return self._to_domain(orm_preset)

    def list(self, user_id: UserId) -> list[BlendPreset]:
        orm_presets = (
            self._session.query(models.BlendPresetOrm)
            .filter(models.BlendPresetOrm.user_id == user_id)
            .order_by(models.BlendPresetOrm.created_at.asc())
            .all()
        )
        return [self._to_domain(preset) for preset in orm_presets]

    def save(self, preset: BlendPreset) -> BlendPreset | None:
        orm_preset = self._session.get(models.BlendPresetOrm, preset.id)
        if orm_preset is None:
            return None
        self._apply(orm_preset, preset)
        self._session.commit()
        self._session.refresh(orm_preset)
        return self._to_domain(orm_preset)

    def delete(self, preset_id: PresetId) -> bool:
        orm_preset = self._session.get(models.BlendPresetOrm, preset_id)
        if orm_preset is None:
            return False
        self._session.delete(orm_preset)
        self._session.commit()
        return True

    @staticmethod
    def _apply(orm_preset: models.BlendPresetOrm, preset: BlendPreset) -> None:
        orm_preset.name = preset.name
        orm_preset.products = [product.model_dump(mode="json") for product in preset.snapshot.products]
        orm_preset.updated_at = preset.updated_at

    @staticmethod
    def _to_domain(orm_preset: models.BlendPresetOrm) -> BlendPreset:
        return BlendPreset(
            id=PresetId(orm_preset.id),
            user_id=UserId(orm_preset.user_id),
            name=orm_preset.name,
            created_at=_as_utc(orm_preset.created_at),
            updated_at=_as_utc(orm_preset.updated_at),
            snapshot=BlendState(products=[BlendProduct.model_validate(p) for p in orm_preset.products]),
        )
