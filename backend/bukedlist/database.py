# FILE: bukedlist/database.py
import os
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

DB_URL = os.getenv("DATABASE_URL", "sqlite:///./bukedlist.db")

Base = declarative_base()


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def make_engine(url: str = DB_URL) -> Engine:
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    if _is_memory_sqlite(url):
        # one shared connection, otherwise every checkout sees an empty database
        return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    # rows are handed out after commit, keep loaded attributes alive
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)
