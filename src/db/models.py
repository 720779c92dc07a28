from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, Integer, String, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class DecimalAsString(TypeDecorator):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: Decimal | None, dialect: object) -> str | None:
        if value is None:
            return None
        return str(value)

    def process_result_value(self, value: str | None, dialect: object) -> Decimal | None:
        if value is None:
            return None
        return Decimal(value)


class Base(DeclarativeBase):
    pass


class LedgerPresetOrm(Base):
    __tablename__ = "ledger_presets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    exchange_rate: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    base_price: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    base_price_input_type: Mapped[str] = mapped_column(String, nullable=False)
    gallons: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    liters: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    margin: Mapped[Decimal] = mapped_column(DecimalAsString, nullable=False)
    margin_input_type: Mapped[str] = mapped_column(String, nullable=False)
    decimal_places: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    concepts: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class BlendPresetOrm(Base):
    __tablename__ = "blend_presets"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    products: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
