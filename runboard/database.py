"""Engine, session factory and migrations for the Runboard database."""
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from runboard.config import get_settings


settings = get_settings()

# The API and the scheduler process write to the same SQLite file.
SQLITE_BUSY_TIMEOUT_MS = 5000


def _engine_options(database_url: str) -> dict:
    options: dict = {"echo": settings.debug, "future": True}
    if database_url.startswith("sqlite"):
        # Sessions cross FastAPI's threadpool boundary within one request
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enforce foreign keys (cascade deletes rely on them) and wait on locks."""
    if not type(dbapi_conn).__module__.startswith("sqlite3"):
        return
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute(f"PRAGMA busy_timeout={SQLITE_BUSY_TIMEOUT_MS}")
    cursor.close()


class Base(DeclarativeBase):
    """Declarative base for SQLAlchemy models."""


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@contextmanager
def session_scope() -> Iterator[Session]:
    """One unit of work: commit on success, roll back on any error."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_db():
    """FastAPI dependency yielding a transactional database session."""
    with session_scope() as db:
        yield db


def _alembic_config() -> Config:
    """Alembic config pointing at the bundled migrations and the configured URL."""

    root = Path(__file__).resolve().parent.parent
    cfg = Config(str(root / "alembic.ini"))
    cfg.set_main_option("script_location", str(root / "migrations"))
    cfg.set_main_option("sqlalchemy.url", settings.database_url)
    # Keep the application's dictConfig logging in place
    cfg.attributes["configure_logger"] = False
    return cfg


def run_migrations(target_revision: str = "head") -> None:
    """Apply Alembic migrations up to the specified revision."""

    command.upgrade(_alembic_config(), target_revision)
