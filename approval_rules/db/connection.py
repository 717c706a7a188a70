# ============================================================
# Core DB connection
# ============================================================
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from approval_rules.config import settings
from approval_rules.db.models import Base

_SQLITE_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def make_engine(url: str = settings.database_url) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url)

    connect_args = {"check_same_thread": False, "timeout": 30}
    if url in _SQLITE_MEMORY_URLS:
        # One shared connection, otherwise every pooled connection gets its own empty database
        return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(url, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """One session per unit of work: commit on success, rollback on error."""
    db = session_factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(engine: Engine) -> None:
    """Create tables"""
    Base.metadata.create_all(bind=engine)
