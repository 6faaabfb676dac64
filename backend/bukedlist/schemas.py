# FILE: bukedlist/schemas.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PlainSerializer, field_serializer, field_validator, model_validator
from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from .models import GridView, Theme, utcnow
from .settings import DEFAULT_CURRENCY, DEFAULT_GRID_VIEW, DEFAULT_THEME


# ---------------------------------
# Common base (Pydantic v2)
# ---------------------------------
class ORMSchema(BaseModel):
    # snake_case in Python, camelCase in the export document
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _required_text(value: Optional[str], field: str) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError(f"{field} must not be empty")
    return value


def _one_image(blob, url) -> None:
    if blob is not None and url is not None:
        raise ValueError("an item holds either an image blob or an image URL, not both")


def _iso_utc(value: datetime) -> str:
    # stored values are naive UTC; say so, or JS Date reads them as local time
    return _naive_utc(value).isoformat() + "Z"


UtcDatetime = Annotated[datetime, AfterValidator(_naive_utc), PlainSerializer(_iso_utc, when_used="json")]


def describe_errors(exc: ValidationError) -> str:
    """Flatten a pydantic error into "loc: msg; loc: msg"."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "value"
        parts.append(f"{loc}: {err.get('msg')}")
    return "; ".join(parts)


class InputSchema(ORMSchema):
    # typos in keyword arguments surface as validation errors
    model_config = ConfigDict(extra="forbid")


def _not_null(model: BaseModel, *fields: str) -> None:
    # partial updates: leaving a field out is fine, sending None is not
    for name in fields:
        if name in model.model_fields_set and getattr(model, name) is None:
            raise ValueError(f"{name} cannot be cleared")


# ---------------------------------
# Category
# ---------------------------------
class CategoryCreate(InputSchema):
    name: str
    emoji: str = ""
    is_default: bool = False

    @field_validator("name")
    @classmethod
    def _name_not_empty(cls, v: str) -> str:
        return _required_text(v, "name")


class CategoryUpdate(InputSchema):
    # partial update
    name: Optional[str] = None
    emoji: Optional[str] = None
    is_default: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def _name_not_empty(cls, v: Optional[str]) -> Optional[str]:
        return _required_text(v, "name")

    @model_validator(mode="after")
    def _required_kept(self):
        _not_null(self, "name", "emoji", "is_default")
        return self


class CategoryOut(ORMSchema):
    id: str
    name: str
    emoji: str
    is_default: bool
    created_at: datetime


# ---------------------------------
# Wishlist item
# ---------------------------------
class WishlistItemCreate(InputSchema):
    title: str
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    category_id: str
    image_blob: Optional[bytes] = None
    image_url: Optional[str] = None
    image_type: Optional[str] = None

    @field_validator("title")
    @classmethod
    def _title_not_empty(cls, v: str) -> str:
        return _required_text(v, "title")

    @field_validator("category_id")
    @classmethod
    def _category_not_empty(cls, v: str) -> str:
        return _required_text(v, "category_id")

    @model_validator(mode="after")
    def _single_image(self):
        _one_image(self.image_blob, self.image_url)
        return self


class WishlistItemUpdate(InputSchema):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    category_id: Optional[str] = None
    image_blob: Optional[bytes] = None
    image_url: Optional[str] = None
    image_type: Optional[str] = None

    @field_validator("title", "category_id")
    @classmethod
    def _not_empty(cls, v: Optional[str], info) -> Optional[str]:
        return _required_text(v, info.field_name)

    @model_validator(mode="after")
    def _single_image(self):
        _one_image(self.image_blob, self.image_url)
        _not_null(self, "title", "category_id")
        return self


class WishlistItemOut(ORMSchema):
    id: str
    title: str
    description: Optional[str] = None
    price: Optional[float] = None
    notes: Optional[str] = None
    category_id: str
    image_blob: Optional[bytes] = None
    image_url: Optional[str] = None
    image_type: Optional[str] = None
    order: int
    created_at: datetime
    updated_at: datetime


# ---------------------------------
# Settings
# ---------------------------------
class AppSettingsOut(ORMSchema):
    theme: Theme
    grid_view: GridView
    selected_category_id: Optional[str] = None
    currency: str


class AppSettingsUpdate(InputSchema):
    theme: Optional[Theme] = None
    grid_view: Optional[GridView] = None
    selected_category_id: Optional[str] = None
    currency: Optional[str] = Field(default=None, pattern=r"^[A-Za-z]{3}$")

    @field_validator("currency")
    @classmethod
    def _upper(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v is not None else v

    @model_validator(mode="after")
    def _required_kept(self):
        _not_null(self, "theme", "grid_view", "currency")
        return self


# ---------------------------------
# Export document (version 1.0)
# ---------------------------------
class CategoryRecord(ORMSchema):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    emoji: str = ""
    is_default: bool = False
    created_at: UtcDatetime = Field(default_factory=utcnow)


class ItemRecord(ORMSchema):
    id: str = Field(min_length=1)
    title: str
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    notes: Optional[str] = None
    category_id: str
    image_base64: Optional[str] = None
    image_url: Optional[str] = None
    order: int = 0
    created_at: UtcDatetime = Field(default_factory=utcnow)
    updated_at: UtcDatetime = Field(default_factory=utcnow)

    @field_validator("title", "category_id")
    @classmethod
    def _not_blank(cls, v: str, info) -> str:
        # same rule as add_item, but imported text is kept as written
        if not v.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return v

    @field_serializer("price", when_used="json")
    def _whole_price(self, v: Optional[float]):
        # 299, not 299.0, like the numbers the browser app writes
        if v is not None and v.is_integer():
            return int(v)
        return v

    @model_validator(mode="after")
    def _single_image(self):
        _one_image(self.image_base64, self.image_url)
        return self


class SettingsRecord(ORMSchema):
    theme: Theme = Theme(DEFAULT_THEME)
    grid_view: GridView = GridView(DEFAULT_GRID_VIEW)
    selected_category_id: Optional[str] = None
    currency: str = DEFAULT_CURRENCY


class ExportDocument(ORMSchema):
    categories: List[CategoryRecord] = Field(default_factory=list)
    wishlist_items: List[ItemRecord] = Field(default_factory=list)
    app_settings: List[SettingsRecord] = Field(default_factory=list)
    export_date: Optional[str] = None
    version: Optional[str] = None

    @field_validator("categories", "wishlist_items", "app_settings", mode="before")
    @classmethod
    def _missing_is_empty(cls, v):
        return [] if v is None else v


__all__ = [
    "ORMSchema",
    "InputSchema",
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryOut",
    "WishlistItemCreate",
    "WishlistItemUpdate",
    "WishlistItemOut",
    "AppSettingsOut",
    "AppSettingsUpdate",
    "CategoryRecord",
    "ItemRecord",
    "SettingsRecord",
    "ExportDocument",
    "describe_errors",
]
