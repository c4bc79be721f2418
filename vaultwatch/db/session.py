# vaultwatch/db/session.py

"""
Database session management
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool
from contextlib import contextmanager
import logging
from pathlib import Path
from typing import Generator
from .models import create_tables

logger = logging.getLogger(__name__)


def ensure_sqlite_directory(db_url: str):
    """Create the parent directory of a file-backed SQLite database"""
    url = make_url(db_url)
    if url.get_backend_name() != 'sqlite':
        return
    database = url.database
    if database and database != ':memory:':
        Path(database).parent.mkdir(parents=True, exist_ok=True)


class DatabaseManager:
    """Manage database connections and sessions"""

    def __init__(self, db_url: str = "sqlite:///./data/vaultwatch.db", echo: bool = False,
                 pool_size: int = 5, max_overflow: int = 10):
        self.db_url = db_url
        ensure_sqlite_directory(db_url)
        self.engine = create_engine(
            db_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True
        )

        # Create session factory
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine
        )

        # Initialize database
        self._init_database()

    def _init_database(self):
        """Initialize database tables"""
        create_tables(self.engine)
        logger.info(f"Database initialized at {self.db_url}")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """Get database session context manager"""
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    def dispose(self):
        """Release pooled connections"""
        self.engine.dispose()
        logger.info(f"Database connections closed for {self.db_url}")
