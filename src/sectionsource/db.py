from __future__ import annotations
import os
from pathlib import Path
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from .models import Base

# ---------------------------------------------------------------------------
# Database location
# ---------------------------------------------------------------------------
# Defaults to <cwd>/data/sectionsource.db.
# Override via SECTIONSOURCE_DATABASE_URL env (e.g., for tests or the CLI).
# ---------------------------------------------------------------------------

DATA_DIR = Path(os.getenv("SECTIONSOURCE_DATA_DIR", Path.cwd() / "data"))
DB_PATH = DATA_DIR / "sectionsource.db"

# DATABASE_URL is the URL of the database
DATABASE_URL = os.getenv("SECTIONSOURCE_DATABASE_URL", f"sqlite:///{DB_PATH.as_posix()}")


def make_engine(url: str):
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, echo=False, future=True, **kwargs)


def make_session_factory(url: str | None = None, engine=None) -> sessionmaker:
    """Session factory bound to `engine`, or to a fresh engine for `url`."""
    bind = engine if engine is not None else make_engine(url or DATABASE_URL)
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=bind,
        expire_on_commit=False,
    )


# engine is the database engine
engine = make_engine(DATABASE_URL)

# SessionLocal is a factory for creating new database sessions
SessionLocal = make_session_factory(engine=engine)


def init_db(bind=None) -> None:
    """Create all tables defined in models.py (idempotent)."""
    bind = bind if bind is not None else engine
    if bind.url.get_backend_name() == "sqlite" and bind.url.database not in (None, "", ":memory:"):
        Path(bind.url.database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=bind)
