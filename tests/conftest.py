import pytest

from bukedlist.context import WishlistContext
from bukedlist.database import Base, make_engine
from bukedlist.store import WishlistStore


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    s = WishlistStore(engine)
    s.initialize()
    return s


@pytest.fixture
def bare_store(engine):
    """Tables exist, nothing seeded."""
    Base.metadata.create_all(bind=engine)
    return WishlistStore(engine)


@pytest.fixture
def ctx(store):
    c = WishlistContext(store)
    yield c
    c.close()

