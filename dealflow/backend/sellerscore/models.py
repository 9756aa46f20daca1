# sellerscore/models.py
from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# -----------------------------
# Models
# -----------------------------
class PropertyRecord(Base):
    """
    Address identity for a property id. The CRUD layer owns writes; this
    subsystem only reads it to resolve id-only scoring requests and to count
    how many properties an owner holds.
    """
    __tablename__ = "properties"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)

    address_line: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(80), nullable=True)
    state: Mapped[str | None] = mapped_column(String(2), nullable=True)
    zipcode: Mapped[str | None] = mapped_column(String(10), nullable=True)
    formatted_address: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # upper-cased, whitespace-collapsed owner name for portfolio counts
    owner_name_key: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class DistressIndicator(Base):
    __tablename__ = "distress_indicators"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    property_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    address_key: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    # NULL means "unknown", not "no"
    pre_foreclosure: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    tax_delinquent: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    vacant: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    code_liens: Mapped[int | None] = mapped_column(Integer, nullable=True)

    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)


class SignalCacheRow(Base):
    """
    One live row per cache key. Refresh deletes the old row and inserts a new
    one; rows are never updated in place.
    """
    __tablename__ = "property_signals"
    __table_args__ = (UniqueConstraint("cache_key", name="uq_property_signals_key"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    cache_key: Mapped[str] = mapped_column(String(300), index=True)
    address: Mapped[str | None] = mapped_column(String(255), nullable=True)

    payload_json: Mapped[str] = mapped_column(Text)

    fetched_at: Mapped[datetime] = mapped_column(DateTime)
    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True)
