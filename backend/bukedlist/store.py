# FILE: bukedlist/store.py
from __future__ import annotations

import secrets
import threading
import time
from contextlib import contextmanager
from datetime import timedelta
from typing import Iterator, List, Optional, Sequence, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from . import models, schemas
from .constants.categories import DEFAULT_CATEGORIES
from .database import Base, make_session_factory
from .errors import TransactionError, ValidationError
from .images import guess_image_type
from .live import LiveQuery, LiveQueryHub, Subscription, pop_touched, track_writes
from .logger import get_logger
from .models import SETTINGS_ROW_ID, utcnow

logger = get_logger(__name__)

CATEGORIES = models.Category.__tablename__
ITEMS = models.WishlistItem.__tablename__
SETTINGS = models.AppSettings.__tablename__


def new_id(kind: str) -> str:
    # e.g. item-1718000000000-3f9a0c2b1
    return f"{kind}-{int(time.time() * 1000)}-{secrets.token_hex(5)[:9]}"


def _validate(schema_cls: type, data: dict) -> BaseModel:
    try:
        return schema_cls.model_validate(data)
    except PydanticValidationError as exc:
        raise ValidationError(schemas.describe_errors(exc)) from exc


def _image_type(blob: Optional[bytes], given: Optional[str]) -> Optional[str]:
    if blob is None:
        return None
    return given or guess_image_type(blob)


def default_settings() -> dict:
    return schemas.SettingsRecord().model_dump()


class WishlistStore:
    """
    Local persistent store for categories, wishlist items and the settings
    record. Every write runs in one short transaction; a committed write
    re-runs the live queries reading the collections it touched.

    The store is passed around as an instance (no module-level handle) and
    must be initialize()d once before use.
    """

    def __init__(self, bind: Union[Engine, sessionmaker], live: Optional[LiveQueryHub] = None):
        if isinstance(bind, sessionmaker):
            self._session_factory = bind
            self.engine = bind.kw["bind"]
        else:
            self.engine = bind
            self._session_factory = make_session_factory(bind)
        track_writes(self._session_factory)
        self.live = live if live is not None else LiveQueryHub()
        # single writer: overlapping transactions queue up here
        self._lock = threading.RLock()

    # -------------------- lifecycle --------------------
    def initialize(self) -> None:
        """Create the tables and seed defaults where nothing exists yet."""
        Base.metadata.create_all(bind=self.engine)
        with self.transaction() as db:
            seeded = self.seed_defaults(db)
        if seeded:
            logger.info("store initialized with defaults (%s)", ", ".join(seeded))

    def seed_defaults(self, db: Session) -> List[str]:
        seeded = []
        if not db.scalar(select(func.count()).select_from(models.Category)):
            now = utcnow()
            db.add_all(
                models.Category(
                    id=c["id"],
                    name=c["name"],
                    emoji=c["emoji"],
                    is_default=True,
                    # keep the seed order stable under ORDER BY created_at
                    created_at=now + timedelta(microseconds=i),
                )
                for i, c in enumerate(DEFAULT_CATEGORIES)
            )
            seeded.append(CATEGORIES)
        if db.get(models.AppSettings, SETTINGS_ROW_ID) is None:
            db.add(models.AppSettings(id=SETTINGS_ROW_ID, **default_settings()))
            seeded.append(SETTINGS)
        return seeded

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit on success, roll back on any error. Engine failures come out as
        TransactionError; live queries are refreshed only after a commit.
        """
        with self._lock:
            db = self._session_factory()
            try:
                yield db
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.error("transaction rolled back: %s", exc)
                raise TransactionError(str(exc)) from exc
            except BaseException:
                db.rollback()
                raise
            else:
                touched = pop_touched(db)
            finally:
                db.close()
        self.live.notify(touched)

    # -------------------- categories --------------------
    def add_category(self, name: str, emoji: str, is_default: bool = False) -> schemas.CategoryOut:
        data = _validate(schemas.CategoryCreate, {"name": name, "emoji": emoji, "is_default": is_default})
        with self.transaction() as db:
            row = models.Category(id=new_id("category"), created_at=utcnow(), **data.model_dump())
            db.add(row)
            db.flush()
            out = schemas.CategoryOut.model_validate(row)
        logger.info("category added id=%s name=%r", out.id, out.name)
        return out

    def update_category(self, category_id: str, **fields) -> None:
        changes = _validate(schemas.CategoryUpdate, fields).model_dump(exclude_unset=True)
        with self.transaction() as db:
            row = db.get(models.Category, category_id)
            if row is None:
                logger.debug("update_category: %s not found", category_id)
                return
            for key, value in changes.items():
                setattr(row, key, value)

    def delete_category(self, category_id: str) -> int:
        """
        Remove the category and every item filed under it in one transaction.
        Returns the number of items removed.
        """
        with self.transaction() as db:
            row = db.get(models.Category, category_id)
            if row is not None:
                db.delete(row)
            result = db.execute(
                delete(models.WishlistItem).where(models.WishlistItem.category_id == category_id)
            )
            removed = result.rowcount or 0
            settings = db.get(models.AppSettings, SETTINGS_ROW_ID)
            if settings is not None and settings.selected_category_id == category_id:
                settings.selected_category_id = None
        if row is None and not removed:
            logger.debug("delete_category: %s not found", category_id)
        else:
            logger.info("category deleted id=%s items_removed=%d", category_id, removed)
        return removed

    def get_category(self, category_id: str) -> Optional[schemas.CategoryOut]:
        with self.transaction() as db:
            row = db.get(models.Category, category_id)
            return schemas.CategoryOut.model_validate(row) if row is not None else None

    def list_categories(self) -> List[schemas.CategoryOut]:
        stmt = select(models.Category).order_by(models.Category.created_at, models.Category.id)
        with self.transaction() as db:
            return [schemas.CategoryOut.model_validate(r) for r in db.scalars(stmt)]

    # -------------------- items --------------------
    def add_item(self, **fields) -> schemas.WishlistItemOut:
        data = _validate(schemas.WishlistItemCreate, fields).model_dump()
        data["image_type"] = _image_type(data["image_blob"], data["image_type"])
        with self.transaction() as db:
            top = db.scalar(select(func.max(models.WishlistItem.order)))
            now = utcnow()
            row = models.WishlistItem(
                id=new_id("item"),
                order=(0 if top is None else top) + 1,
                created_at=now,
                updated_at=now,
                **data,
            )
            db.add(row)
            db.flush()
            out = schemas.WishlistItemOut.model_validate(row)
        logger.info("item added id=%s order=%d category=%s", out.id, out.order, out.category_id)
        return out

    def update_item(self, item_id: str, **fields) -> None:
        changes = _validate(schemas.WishlistItemUpdate, fields).model_dump(exclude_unset=True)
        with self.transaction() as db:
            row = db.get(models.WishlistItem, item_id)
            if row is None:
                logger.debug("update_item: %s not found", item_id)
                return
            for key, value in changes.items():
                setattr(row, key, value)
            # one image form at a time: the one just set wins
            if changes.get("image_blob") is not None:
                row.image_url = None
            elif changes.get("image_url") is not None:
                row.image_blob = None
            if "image_blob" in changes or "image_url" in changes:
                row.image_type = _image_type(row.image_blob, changes.get("image_type"))
            row.updated_at = utcnow()

    def delete_item(self, item_id: str) -> None:
        with self.transaction() as db:
            db.execute(delete(models.WishlistItem).where(models.WishlistItem.id == item_id))

    def reorder(self, ordered_ids: Sequence[str]) -> None:
        """
        order = position in `ordered_ids`. Items not listed keep their current
        order value; unknown ids are skipped.
        """
        ids = list(ordered_ids)
        if not ids:
            return
        with self.transaction() as db:
            rows = {
                r.id: r
                for r in db.scalars(select(models.WishlistItem).where(models.WishlistItem.id.in_(ids)))
            }
            for index, item_id in enumerate(ids):
                row = rows.get(item_id)
                if row is not None:
                    row.order = index
        logger.debug("reordered %d items", len(ids))

    def get_item(self, item_id: str) -> Optional[schemas.WishlistItemOut]:
        with self.transaction() as db:
            row = db.get(models.WishlistItem, item_id)
            return schemas.WishlistItemOut.model_validate(row) if row is not None else None

    def list_items(self, category_id: Optional[str] = None) -> List[schemas.WishlistItemOut]:
        stmt = select(models.WishlistItem)
        if category_id is not None:
            stmt = stmt.where(models.WishlistItem.category_id == category_id)
        stmt = stmt.order_by(models.WishlistItem.order, models.WishlistItem.created_at)
        with self.transaction() as db:
            return [schemas.WishlistItemOut.model_validate(r) for r in db.scalars(stmt)]

    def count_items(self, category_id: Optional[str] = None) -> int:
        stmt = select(func.count()).select_from(models.WishlistItem)
        if category_id is not None:
            stmt = stmt.where(models.WishlistItem.category_id == category_id)
        with self.transaction() as db:
            return db.scalar(stmt) or 0

    # -------------------- settings (single record) --------------------
    def get_settings(self) -> schemas.AppSettingsOut:
        with self.transaction() as db:
            row = db.get(models.AppSettings, SETTINGS_ROW_ID)
            if row is None:
                row = models.AppSettings(id=SETTINGS_ROW_ID, **default_settings())
                db.add(row)
                db.flush()
                logger.info("settings record created with defaults")
            return schemas.AppSettingsOut.model_validate(row)

    def update_settings(self, **fields) -> schemas.AppSettingsOut:
        changes = _validate(schemas.AppSettingsUpdate, fields).model_dump(exclude_unset=True)
        with self.transaction() as db:
            row = db.get(models.AppSettings, SETTINGS_ROW_ID)
            if row is None:
                row = models.AppSettings(id=SETTINGS_ROW_ID, **{**default_settings(), **changes})
                db.add(row)
            else:
                for key, value in changes.items():
                    setattr(row, key, value)
            db.flush()
            return schemas.AppSettingsOut.model_validate(row)

    # -------------------- live queries --------------------
    def live_categories(self) -> LiveQuery:
        return LiveQuery(frozenset({CATEGORIES}), self.list_categories, "categories")

    def live_items(self) -> LiveQuery:
        return LiveQuery(frozenset({ITEMS}), self.list_items, "items")

    def live_settings(self) -> LiveQuery:
        return LiveQuery(frozenset({SETTINGS}), self.get_settings, "settings")

    def subscribe(self, query: LiveQuery, callback=None) -> Subscription:
        return self.live.subscribe(query, callback)


__all__ = ["WishlistStore", "new_id", "default_settings"]
