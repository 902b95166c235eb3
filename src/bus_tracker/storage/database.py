"""SQLAlchemy engine and session handling for the tracker database."""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional
import logging

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from ..config.settings import settings
from ..models.database import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the engine and hands out sessions.

    For file-backed SQLite URLs the parent directory is created on demand.
    """

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        self.database_url = database_url or settings.database_url
        self.echo = settings.database_echo if echo is None else echo
        self.engine: Engine = self._build_engine()
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def _build_engine(self) -> Engine:
        url = make_url(self.database_url)
        is_sqlite = url.get_backend_name() == "sqlite"

        if is_sqlite and url.database and url.database != ":memory:":
            Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)

        engine = create_engine(url, echo=self.echo, pool_pre_ping=not is_sqlite)
        logger.info(f"Database engine ready for {engine.url.render_as_string(hide_password=True)}")
        return engine

    def get_session(self) -> Session:
        """A new session; the caller is responsible for closing it."""
        return self.SessionLocal()

    @contextmanager
    def get_session_context(self) -> Generator[Session, None, None]:
        """Session scope that commits on success and rolls back on any error."""
        session = self.get_session()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Rolled back database session: {e}")
            raise
        finally:
            session.close()

    def test_connection(self) -> bool:
        """Run ``SELECT 1`` and report whether it worked."""
        try:
            with self.engine.connect() as conn:
                return conn.execute(text("SELECT 1")).scalar() == 1
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False

    def table_names(self):
        """Tables currently present in the database."""
        return sorted(inspect(self.engine).get_table_names())

    def create_tables(self) -> None:
        """Create missing tables; existing tables and rows are left alone."""
        Base.metadata.create_all(bind=self.engine)
        logger.debug(f"Schema ready: {', '.join(self.table_names())}")

    def drop_tables(self) -> None:
        """Drop every tracker table."""
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("Dropped all tracker tables")

    def close(self) -> None:
        """Dispose of pooled connections."""
        self.engine.dispose()
        logger.debug("Database connections closed")
