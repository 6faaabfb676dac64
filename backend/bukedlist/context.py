# FILE: bukedlist/context.py
from __future__ import annotations

import threading
from collections import Counter
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Iterable, List, Optional, Union

from . import backup
from .errors import ValidationError
from .logger import get_logger
from .models import GridView
from .schemas import AppSettingsOut, CategoryOut, WishlistItemOut
from .settings import DEFAULT_CURRENCY
from .store import WishlistStore

logger = get_logger(__name__)

# settings field -> attribute mirroring it
_MIRRORED = (
    ("selected_category_id", "selected_category"),
    ("grid_view", "grid_view"),
    ("currency", "currency"),
)


class WishlistContext:
    """
    What a UI talks to. Keeps live copies of categories, items and settings,
    derives the category-filtered item list, and mirrors the display settings
    into plain attributes.

    The three display setters change the local attribute immediately and
    write the settings record in the background; they return the Future of
    that write. While a field has writes queued, settings refreshes leave its
    attribute alone. A failed write leaves local and stored values apart until
    the next settings refresh.
    """

    def __init__(self, store: WishlistStore, executor: Optional[Executor] = None):
        self.store = store
        self._owns_executor = executor is None
        # one worker keeps background settings writes in call order
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="bukedlist-settings")

        self.selected_category: Optional[str] = None
        self.grid_view: GridView = GridView.LIST
        self.currency: str = DEFAULT_CURRENCY
        self.settings: Optional[AppSettingsOut] = None
        # field -> background writes not yet finished
        self._pending: Counter = Counter()
        self._state_lock = threading.Lock()

        cats = store.subscribe(store.live_categories(), self._on_categories)
        items = store.subscribe(store.live_items(), self._on_items)
        settings = store.subscribe(store.live_settings(), self._on_settings)
        self._subs = [cats, items, settings]

        self.categories: List[CategoryOut] = cats.value
        self.all_items: List[WishlistItemOut] = items.value
        self._on_settings(settings.value)

    # -------------------- live data --------------------
    def _on_categories(self, categories: List[CategoryOut]) -> None:
        self.categories = categories

    def _on_items(self, items: List[WishlistItemOut]) -> None:
        self.all_items = items

    def _on_settings(self, settings: AppSettingsOut) -> None:
        with self._state_lock:
            self.settings = settings
            for field, attr in _MIRRORED:
                # a queued write of this field carries a newer value
                if not self._pending[field]:
                    setattr(self, attr, getattr(settings, field))

    @property
    def visible_items(self) -> List[WishlistItemOut]:
        if self.selected_category is None:
            return list(self.all_items)
        return [i for i in self.all_items if i.category_id == self.selected_category]

    # -------------------- categories --------------------
    def add_category(self, name: str, emoji: str, is_default: bool = False) -> CategoryOut:
        return self.store.add_category(name, emoji, is_default)

    def update_category(self, category_id: str, **fields) -> None:
        self.store.update_category(category_id, **fields)

    def delete_category(self, category_id: str) -> int:
        return self.store.delete_category(category_id)

    # -------------------- items --------------------
    def add_item(self, **fields) -> WishlistItemOut:
        return self.store.add_item(**fields)

    def update_item(self, item_id: str, **fields) -> None:
        self.store.update_item(item_id, **fields)

    def delete_item(self, item_id: str) -> None:
        self.store.delete_item(item_id)

    def reorder_items(self, items: Iterable[Union[str, WishlistItemOut]]) -> None:
        self.store.reorder([i if isinstance(i, str) else i.id for i in items])

    # -------------------- settings --------------------
    def update_settings(self, **fields) -> AppSettingsOut:
        return self.store.update_settings(**fields)

    def set_selected_category(self, category_id: Optional[str]) -> Future:
        return self._persist("selected_category_id", category_id)

    def set_grid_view(self, view: Union[str, GridView]) -> Future:
        try:
            view = GridView(view)
        except ValueError as exc:
            raise ValidationError(f"grid_view: unknown view {view!r}") from exc
        return self._persist("grid_view", view)

    def set_currency(self, code: str) -> Future:
        return self._persist("currency", code)

    def _persist(self, field: str, value) -> Future:
        attr = dict(_MIRRORED)[field]
        with self._state_lock:
            setattr(self, attr, value)
            self._pending[field] += 1
        try:
            future = self._executor.submit(self._write_setting, field, value)
        except RuntimeError:
            # executor already shut down
            self._release(field)
            raise
        future.add_done_callback(_report_failed_write)
        return future

    def _write_setting(self, field: str, value) -> AppSettingsOut:
        try:
            return self.store.update_settings(**{field: value})
        finally:
            # released before the Future resolves, so callers waiting on it
            # see later deliveries mirrored again
            self._release(field)

    def _release(self, field: str) -> None:
        with self._state_lock:
            self._pending[field] -= 1
            if self._pending[field] <= 0:
                del self._pending[field]

    # -------------------- whole store --------------------
    def export_data(self) -> str:
        return backup.export_all(self.store)

    def import_data(self, text: Union[str, bytes]) -> backup.ImportSummary:
        return backup.import_all(self.store, text)

    def clear_all_data(self) -> None:
        backup.clear_all(self.store)

    # -------------------- teardown --------------------
    def close(self) -> None:
        for sub in self._subs:
            sub.cancel()
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "WishlistContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _report_failed_write(future: Future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.warning("settings write failed, local display state kept: %s", exc)


__all__ = ["WishlistContext"]
