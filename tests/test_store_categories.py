import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from bukedlist.constants.categories import DEFAULT_CATEGORY_IDS
from bukedlist.errors import TransactionError, ValidationError
from bukedlist.models import Category, WishlistItem
from tests.factories import count_rows, make_item


def test_initialize_seeds_default_categories_in_order(store):
    cats = store.list_categories()
    assert [c.id for c in cats] == DEFAULT_CATEGORY_IDS
    assert all(c.is_default for c in cats)


def test_initialize_is_idempotent(store):
    store.add_category("Games", "🎮")
    store.initialize()
    assert count_rows(store, Category) == len(DEFAULT_CATEGORY_IDS) + 1


def test_add_category_assigns_id_and_created_at(store):
    cat = store.add_category("Games", "🎮")
    assert cat.id.startswith("category-")
    assert cat.created_at is not None
    assert cat.is_default is False
    assert store.get_category(cat.id) == cat


def test_add_category_rejects_empty_name(store):
    with pytest.raises(ValidationError):
        store.add_category("   ", "🎮")
    assert count_rows(store, Category) == len(DEFAULT_CATEGORY_IDS)


def test_update_category_renames_and_reicons(store):
    store.update_category("books", name="Reading", emoji="📖")
    cat = store.get_category("books")
    assert (cat.name, cat.emoji) == ("Reading", "📖")


def test_update_category_missing_id_is_noop(store):
    store.update_category("nope", name="Whatever")
    assert store.get_category("nope") is None


def test_update_category_cannot_clear_name(store):
    with pytest.raises(ValidationError):
        store.update_category("books", name=None)
    with pytest.raises(ValidationError):
        store.update_category("books", name="")


def test_update_category_rejects_unknown_field(store):
    with pytest.raises(ValidationError):
        store.update_category("books", colour="red")


def test_delete_category_cascades_to_its_items_only(store):
    books = store.add_category("Books", "📚")
    for title in ("Dune", "Emma", "Ulysses"):
        make_item(store, books.id, title)
    keep = make_item(store, "electronics", "Phone")

    removed = store.delete_category(books.id)

    assert removed == 3
    assert store.get_category(books.id) is None
    assert store.count_items(books.id) == 0
    assert [i.id for i in store.list_items()] == [keep.id]


def test_books_dune_scenario(store):
    books = store.add_category("Books", "📚")
    make_item(store, books.id, "Dune")
    store.delete_category(books.id)
    assert "Dune" not in [i.title for i in store.list_items()]


def test_delete_category_clears_selected_category(store):
    store.update_settings(selected_category_id="books")
    store.delete_category("books")
    assert store.get_settings().selected_category_id is None


def test_delete_missing_category_removes_dangling_items(store):
    make_item(store, "ghost", "Orphan")
    assert store.delete_category("ghost") == 1
    assert store.count_items() == 0


def test_delete_category_is_all_or_nothing(store):
    make_item(store, "books", "Dune")
    make_item(store, "books", "Emma")

    def fail_category_delete(conn, cursor, statement, parameters, context, executemany):
        if statement.startswith("DELETE FROM categories"):
            raise OperationalError(statement, parameters, Exception("simulated disk fault"))

    event.listen(store.engine, "before_cursor_execute", fail_category_delete)
    try:
        with pytest.raises(TransactionError):
            store.delete_category("books")
    finally:
        event.remove(store.engine, "before_cursor_execute", fail_category_delete)

    # the item delete ran first inside the same transaction and was rolled back
    assert store.get_category("books") is not None
    assert store.count_items("books") == 2
    assert count_rows(store, WishlistItem) == 2
