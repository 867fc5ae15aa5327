from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from backoffice.core.config import settings
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """
    Connection pool and session factory owned by one application instance.

    Created by the application factory and stored on ``app.state.database``;
    every request acquires one session from it and releases it when the
    request finishes.
    """

    def __init__(self, url: str, **engine_kwargs):
        if url.startswith("postgresql"):
            engine_kwargs.setdefault("pool_pre_ping", True)
            engine_kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
            engine_kwargs.setdefault("max_overflow", settings.DB_MAX_OVERFLOW)
        engine_kwargs.setdefault("echo", False)

        self.url = url
        self.engine = create_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Iterator[Session]:
        """Yield a session and always give its connection back to the pool."""
        db = self.SessionLocal()
        try:
            yield db
        except Exception as e:
            logger.error(f"Database error: {e}")
            db.rollback()
            raise
        finally:
            db.close()

    def create_all(self):
        Base.metadata.create_all(bind=self.engine)

    def dispose(self):
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency: one session per request from the app's Database."""
    database: Database = request.app.state.database
    yield from database.session()


def get_tenant_query(session: Session, model, auth):
    """
    Tenant-scoped query for ``model``.

    Superusers without a selected company see every tenant; everybody else is
    restricted to ``auth.tenant_id``.
    """
    query = session.query(model)
    if auth.is_superuser and auth.tenant_id is None:
        return query
    return query.filter(model.company_id == auth.tenant_id)
