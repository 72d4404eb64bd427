from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from ..types import Db


def make_dsn(db: Db) -> str:
    return f"postgresql+psycopg2://{db.user}:{db.password}@{db.host}:{db.port}/{db.database}"


def create_engine_from_db(db: Db) -> Engine:
    return create_engine(make_dsn(db), pool_pre_ping=True)
