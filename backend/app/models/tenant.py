"""Tenant (restaurant account) and dining table models."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, JSON, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Tenant(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """One restaurant account; the isolation unit for every other row."""

    __tablename__ = "tenants"

    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    branding: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)

    tables: Mapped[list["DiningTable"]] = relationship("DiningTable", back_populates="tenant")


class DiningTable(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """A physical table that carries a QR code."""

    __tablename__ = "tables"
    __table_args__ = (
        UniqueConstraint("tenant_id", "table_number", name="uq_tables_tenant_number"),
    )

    tenant_id: Mapped[str] = mapped_column(
        ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    table_number: Mapped[str] = mapped_column(String(20), nullable=False)
    section: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    capacity: Mapped[int] = mapped_column(Integer, default=4, nullable=False)

    tenant: Mapped["Tenant"] = relationship("Tenant", back_populates="tables")
