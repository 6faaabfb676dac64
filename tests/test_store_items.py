from datetime import datetime

import pytest

from bukedlist.errors import TransactionError, ValidationError
from bukedlist.store import WishlistStore
from tests.factories import PNG_1X1, make_item


def test_add_item_orders_are_strictly_increasing(store):
    items = [make_item(store, title=f"Item {n}") for n in range(5)]
    orders = [i.order for i in items]
    assert orders == sorted(orders)
    assert len(set(orders)) == len(orders)
    assert orders[0] == 1


def test_add_item_uses_max_order_not_count(store):
    a = make_item(store, title="A")
    b = make_item(store, title="B")
    store.delete_item(a.id)
    c = make_item(store, title="C")
    assert c.order == b.order + 1


def test_add_item_stamps_timestamps_and_id(store):
    item = make_item(store, price=19.99, notes="hardcover", description="sci-fi")
    assert item.id.startswith("item-")
    assert item.created_at == item.updated_at
    assert item.price == pytest.approx(19.99)
    assert store.get_item(item.id) == item


@pytest.mark.parametrize(
    "fields",
    [
        {"title": "", "category_id": "books"},
        {"title": "  ", "category_id": "books"},
        {"category_id": "books"},
        {"title": "Dune", "category_id": "books", "price": -1},
        {"title": "Dune", "category_id": "books", "image_blob": b"x", "image_url": "https://x/y.png"},
    ],
)
def test_add_item_validation(store, fields):
    with pytest.raises(ValidationError):
        store.add_item(**fields)
    assert store.count_items() == 0


def test_update_item_merges_and_refreshes_updated_at(store, monkeypatch):
    item = make_item(store, price=10.0, notes="first")
    later = datetime(2030, 1, 1, 12, 0, 0)
    monkeypatch.setattr("bukedlist.store.utcnow", lambda: later)

    store.update_item(item.id, notes="second")

    updated = store.get_item(item.id)
    assert updated.notes == "second"
    assert updated.price == 10.0
    assert updated.title == item.title
    assert updated.created_at == item.created_at
    assert updated.updated_at == later


def test_update_item_missing_id_is_noop(store):
    store.update_item("item-missing", title="X")
    assert store.count_items() == 0


def test_update_item_switching_image_form(store):
    item = make_item(store, image_url="https://example.com/a.png")

    store.update_item(item.id, image_blob=PNG_1X1)
    got = store.get_item(item.id)
    assert got.image_blob == PNG_1X1
    assert got.image_url is None
    assert got.image_type == "image/png"

    store.update_item(item.id, image_url="https://example.com/b.png")
    got = store.get_item(item.id)
    assert got.image_blob is None
    assert got.image_url == "https://example.com/b.png"
    assert got.image_type is None


def test_image_type_is_detected_or_taken_as_given(store):
    assert make_item(store, image_blob=PNG_1X1).image_type == "image/png"
    assert make_item(store, image_blob=b"\x01\x02").image_type is None
    assert make_item(store, image_blob=b"\x01\x02", image_type="image/heic").image_type == "image/heic"
    assert make_item(store, image_url="https://x/y.png", image_type="image/png").image_type is None


def test_update_item_cannot_clear_title(store):
    item = make_item(store)
    with pytest.raises(ValidationError):
        store.update_item(item.id, title=None)


def test_delete_item_and_missing_delete(store):
    item = make_item(store)
    store.delete_item(item.id)
    store.delete_item(item.id)
    assert store.get_item(item.id) is None


def test_reorder_reproduces_given_sequence(store):
    items = [make_item(store, title=t) for t in "ABCD"]
    wanted = [items[2].id, items[0].id, items[3].id, items[1].id]

    store.reorder(wanted)

    listed = store.list_items()
    assert [i.id for i in listed] == wanted
    assert [i.order for i in listed] == [0, 1, 2, 3]


def test_reorder_does_not_touch_updated_at(store):
    a = make_item(store, title="A")
    b = make_item(store, title="B")
    store.reorder([b.id, a.id])
    assert store.get_item(a.id).updated_at == a.updated_at


def test_reorder_partial_list_keeps_other_orders(store):
    a, b, c = (make_item(store, title=t) for t in "ABC")
    store.reorder([c.id, b.id])
    # a keeps its insert-time order value
    assert store.get_item(a.id).order == a.order
    assert store.get_item(c.id).order == 0
    assert store.get_item(b.id).order == 1


def test_reorder_skips_unknown_ids(store):
    a = make_item(store, title="A")
    store.reorder(["item-unknown", a.id])
    assert store.get_item(a.id).order == 1


def test_list_items_filtered_by_category(store):
    make_item(store, "books", "Dune")
    make_item(store, "fashion", "Scarf")
    assert [i.title for i in store.list_items("books")] == ["Dune"]
    assert store.count_items("fashion") == 1


def test_reads_without_tables_raise_transaction_error(engine):
    store = WishlistStore(engine)
    with pytest.raises(TransactionError):
        store.list_items()
