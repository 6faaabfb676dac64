# FILE: bukedlist/backup.py
"""
Whole-store export / import as one JSON document (version 1.0).

Images are stored as bytes; in the document they travel as base64 data URLs
("data:image/png;base64,...") in `imageBase64`. Import validates the complete document, images included,
before it touches the store, then swaps the data in a single transaction.
"""
from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select

from . import models
from .errors import ImportFormatError
from .images import FALLBACK_IMAGE_TYPE, guess_image_type
from .logger import get_logger
from .models import SETTINGS_ROW_ID
from .schemas import CategoryRecord, ExportDocument, ItemRecord, SettingsRecord, describe_errors
from .settings import EXPORT_VERSION, SUPPORTED_IMPORT_VERSIONS
from .store import WishlistStore

logger = get_logger(__name__)

# children first
_CLEAR_ORDER = (models.WishlistItem, models.Category, models.AppSettings)


@dataclass
class ImportSummary:
    categories: int
    items: int
    settings: int

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass
class PreparedImport:
    document: ExportDocument
    # item id -> (bytes, MIME type or None)
    images: Dict[str, Tuple[bytes, Optional[str]]]


# -------------------- image codec --------------------
def encode_image(blob: bytes, mime: Optional[str] = None) -> str:
    """Data URL the browser app can fetch() back into a Blob."""
    mime = mime or guess_image_type(blob) or FALLBACK_IMAGE_TYPE
    return f"data:{mime};base64,{base64.b64encode(blob).decode('ascii')}"


def decode_image(text: str) -> Tuple[bytes, Optional[str]]:
    """
    Accepts a data URL ("data:image/png;base64,....") as written by the
    browser app, or plain base64. Returns the bytes and the MIME type the
    URL names; the generic fallback type and plain base64 give None.
    """
    payload, mime = text, None
    if text.startswith("data:"):
        header, sep, payload = text.partition(",")
        if not sep or not header.endswith(";base64"):
            raise ImportFormatError("imageBase64 data URL is not base64 encoded")
        mime = header[len("data:"):-len(";base64")].split(";")[0] or None
    try:
        blob = base64.b64decode("".join(payload.split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImportFormatError(f"imageBase64 is not valid base64: {exc}") from exc
    if mime == FALLBACK_IMAGE_TYPE:
        mime = None
    return blob, mime


def backup_filename(when: Optional[datetime] = None) -> str:
    when = when or datetime.now(timezone.utc)
    return f"buked-list-backup-{when.date().isoformat()}.json"


def _export_timestamp() -> str:
    # same shape as JavaScript's Date.toISOString()
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# -------------------- export --------------------
def _item_record(row: models.WishlistItem) -> ItemRecord:
    has_blob = row.image_blob is not None
    return ItemRecord(
        id=row.id,
        title=row.title,
        description=row.description,
        price=row.price,
        notes=row.notes,
        category_id=row.category_id,
        image_base64=encode_image(row.image_blob, row.image_type) if has_blob else None,
        image_url=None if has_blob else row.image_url,
        order=row.order,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def export_all(store: WishlistStore) -> str:
    """Snapshot every collection into a portable JSON document."""
    with store.transaction() as db:
        categories = [
            CategoryRecord.model_validate(r)
            for r in db.scalars(select(models.Category).order_by(models.Category.created_at, models.Category.id))
        ]
        items = [
            _item_record(r)
            for r in db.scalars(
                select(models.WishlistItem).order_by(models.WishlistItem.order, models.WishlistItem.created_at)
            )
        ]
        settings = [SettingsRecord.model_validate(r) for r in db.scalars(select(models.AppSettings))]

    doc = ExportDocument(
        categories=categories,
        wishlist_items=items,
        app_settings=settings,
        export_date=_export_timestamp(),
        version=EXPORT_VERSION,
    )
    payload = doc.model_dump(mode="json", by_alias=True, exclude_none=True)
    logger.info("exported categories=%d items=%d", len(categories), len(items))
    return json.dumps(payload, indent=2, ensure_ascii=False)


# -------------------- import --------------------
def _duplicates(ids: List[str]) -> List[str]:
    seen, dup = set(), []
    for i in ids:
        if i in seen and i not in dup:
            dup.append(i)
        seen.add(i)
    return dup


def parse_document(text: Union[str, bytes]) -> PreparedImport:
    """Parse and validate an export document without touching any store."""
    if isinstance(text, (bytes, bytearray)):
        try:
            text = text.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ImportFormatError("import data is not UTF-8 text") from exc
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ImportFormatError(f"import data is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise ImportFormatError("import data must be a JSON object")

    try:
        doc = ExportDocument.model_validate(raw)
    except PydanticValidationError as exc:
        raise ImportFormatError(describe_errors(exc)) from exc

    if doc.version is not None and doc.version not in SUPPORTED_IMPORT_VERSIONS:
        raise ImportFormatError(f"unsupported export version {doc.version!r}")

    for label, ids in (
        ("category", [c.id for c in doc.categories]),
        ("item", [i.id for i in doc.wishlist_items]),
    ):
        dup = _duplicates(ids)
        if dup:
            raise ImportFormatError(f"duplicate {label} ids: {', '.join(dup)}")

    images = {
        item.id: decode_image(item.image_base64)
        for item in doc.wishlist_items
        if item.image_base64 is not None
    }
    return PreparedImport(document=doc, images=images)


def import_all(store: WishlistStore, text: Union[str, bytes]) -> ImportSummary:
    """
    Replace the whole store with the document's contents. Nothing is changed
    unless the document is valid; the swap itself is one transaction.
    """
    prepared = parse_document(text)
    doc = prepared.document

    settings = doc.app_settings[:1]
    if len(doc.app_settings) > 1:
        logger.warning("import carries %d settings records, keeping the first", len(doc.app_settings))

    with store.transaction() as db:
        for model in _CLEAR_ORDER:
            db.execute(delete(model))
        db.add_all(models.Category(**c.model_dump()) for c in doc.categories)
        for i in doc.wishlist_items:
            blob, mime = prepared.images.get(i.id, (None, None))
            db.add(models.WishlistItem(**i.model_dump(exclude={"image_base64"}), image_blob=blob, image_type=mime))
        for s in settings:
            db.add(models.AppSettings(id=SETTINGS_ROW_ID, **s.model_dump()))

    summary = ImportSummary(
        categories=len(doc.categories),
        items=len(doc.wishlist_items),
        settings=len(settings),
    )
    logger.info("import complete %s", summary.as_dict())
    return summary


def clear_all(store: WishlistStore) -> None:
    """Empty every collection and re-seed the defaults, atomically."""
    with store.transaction() as db:
        for model in _CLEAR_ORDER:
            db.execute(delete(model))
        store.seed_defaults(db)
    logger.info("store cleared and re-seeded")


# -------------------- files --------------------
def export_to_file(store: WishlistStore, path: Union[str, Path]) -> Path:
    path = Path(path)
    if path.is_dir():
        path = path / backup_filename()
    path.write_text(export_all(store), encoding="utf-8")
    return path


def import_from_file(store: WishlistStore, path: Union[str, Path]) -> ImportSummary:
    return import_all(store, Path(path).read_text(encoding="utf-8"))


__all__ = [
    "ImportSummary",
    "encode_image",
    "decode_image",
    "backup_filename",
    "export_all",
    "parse_document",
    "import_all",
    "clear_all",
    "export_to_file",
    "import_from_file",
]
