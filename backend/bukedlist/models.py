# FILE: bukedlist/models.py
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    Integer,
    String,
    Boolean,
    DateTime,
    Enum,
    Float,
    LargeBinary,
    Text,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ---------------------------
# Enums
# ---------------------------

class Theme(str, PyEnum):
    LIGHT = "light"
    DARK = "dark"


class GridView(str, PyEnum):
    LIST = "list"
    GRID_2 = "grid-2"
    GRID_3 = "grid-3"


def _enum_values(enum_cls) -> list:
    # store "grid-2", not "GRID_2"
    return [m.value for m in enum_cls]


# ---------------------------
# Models
# ---------------------------

class Category(Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    emoji: Mapped[str] = mapped_column(String(32), nullable=False, default="")
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False, index=True
    )


class WishlistItem(Base):
    __tablename__ = "wishlistItems"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # app-level reference to categories.id (no FK: cascade is done by the store)
    category_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # at most one of these is set
    image_blob: Mapped[Optional[bytes]] = mapped_column(LargeBinary, nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(2000), nullable=True)
    # MIME type of image_blob ("image/png"), None when unknown
    image_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    # refreshed by the store on edits only, reorder leaves it alone
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_wishlist_items_category_order", "category_id", "order"),
    )


SETTINGS_ROW_ID = 1


class AppSettings(Base):
    __tablename__ = "appSettings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=SETTINGS_ROW_ID)

    theme: Mapped[Theme] = mapped_column(
        Enum(Theme, values_callable=_enum_values, native_enum=False, length=16),
        default=Theme.LIGHT,
        nullable=False,
    )
    grid_view: Mapped[GridView] = mapped_column(
        Enum(GridView, values_callable=_enum_values, native_enum=False, length=16),
        default=GridView.LIST,
        nullable=False,
    )
    selected_category_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    currency: Mapped[str] = mapped_column(String(8), default="USD", nullable=False)

    __table_args__ = (
        CheckConstraint(f"id = {SETTINGS_ROW_ID}", name="ck_app_settings_singleton"),
    )


__all__ = [
    "Category",
    "WishlistItem",
    "AppSettings",
    "Theme",
    "GridView",
    "SETTINGS_ROW_ID",
    "utcnow",
]
