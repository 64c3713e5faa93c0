import os
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./matup.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")


def _sqlite_file(url: str) -> Optional[Path]:
    """Path of a file-backed SQLite database, None for other backends and :memory:."""
    if not url.startswith("sqlite") or ":memory:" in url:
        return None
    return Path(url.split(":///", 1)[-1])


def build_engine(url: str = DATABASE_URL, echo: bool = SQL_ECHO) -> Engine:
    options: Dict[str, Any] = {"echo": echo}
    if url.startswith("sqlite"):
        # FastAPI hands sessions across threads
        options["connect_args"] = {"check_same_thread": False}

    db_file = _sqlite_file(url)
    if db_file is not None:
        db_file.parent.mkdir(parents=True, exist_ok=True)

    return create_engine(url, **options)


engine: Engine = build_engine()


def get_session() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request."""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Create every league table on the configured engine."""
    # Registers all tables on SQLModel.metadata
    import matup.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
