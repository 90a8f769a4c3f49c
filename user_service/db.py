"""SQLite connection handling using SQLAlchemy."""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, exc
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

# Base class for the declarative models (User inherits from it).
Base = declarative_base()


def _is_memory_url(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:") or "mode=memory" in url


class Database:
    """
    Owns the SQLAlchemy engine and the session factory.

    Built once by the application factory and handed to the services that need it;
    `dispose()` releases the pooled connections on shutdown.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        engine_kwargs = {"echo": echo}
        if url.startswith("sqlite"):
            # Requests are served from a threadpool, so the connection may change threads.
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if _is_memory_url(url):
                # A single shared connection, otherwise every session sees an empty database.
                engine_kwargs["poolclass"] = StaticPool

        self.engine = create_engine(url, **engine_kwargs)
        self.SessionLocal = sessionmaker(
            bind=self.engine,
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
        )

    def create_tables(self) -> None:
        """Creates the tables if they do not exist yet."""
        Base.metadata.create_all(bind=self.engine)

    def check_connection(self) -> None:
        """Opens a connection so an unreachable database fails at startup rather than on first request."""
        with self.engine.connect():
            logger.info(f"Database connection established ({self.engine.url.render_as_string(hide_password=True)}).")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Yields a session and commits on success.
        Rolls back and re-raises on any error, always closing the session.
        """
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except exc.SQLAlchemyError as e:
            logger.error(f"Database error, rolling back: {e}")
            db.rollback()
            raise
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()
        logger.info("Database engine disposed.")
