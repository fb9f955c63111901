from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()

# Bound to an engine by init_db() at startup.
SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False)


def create_db_engine(database_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args, pool_pre_ping=True)


def init_db(engine: Engine) -> None:
    """Bind the session factory and create tables (no migrations for two tables)."""
    import models  # noqa: F401  registers tables on Base.metadata

    SessionLocal.configure(bind=engine)
    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
