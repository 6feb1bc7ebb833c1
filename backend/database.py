import sqlite3
import json
import logging
from contextlib import contextmanager

from pydantic import ValidationError as ModelValidationError

import config
from models import Task

logger = logging.getLogger(__name__)

DATABASE_PATH = config.DATABASE_PATH
STORAGE_KEY = config.STORAGE_KEY

@contextmanager
def get_db():
    """Context manager for database connections."""
    conn = sqlite3.connect(DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()

def init_db():
    """Initialize database by running Alembic migrations."""
    import subprocess
    import os

    # Run alembic upgrade from the backend directory
    backend_dir = os.path.dirname(os.path.abspath(__file__))
    subprocess.run(
        ["alembic", "upgrade", "head"],
        cwd=backend_dir,
        check=True
    )

def read_value(key: str) -> str | None:
    """Return the raw text stored under key, or None if absent."""
    with get_db() as conn:
        row = conn.execute("SELECT value FROM storage WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

def write_value(key: str, value: str) -> None:
    """Overwrite the whole document stored under key."""
    with get_db() as conn:
        conn.execute(
            "INSERT INTO storage (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value)
        )
        conn.commit()

def serialize_tasks(tasks: list[Task]) -> str:
    return json.dumps([task.model_dump(mode="json") for task in tasks])

def deserialize_tasks(raw: str | None) -> list[Task]:
    """
    Parse a stored collection. Missing value means an empty collection.
    A corrupt document is logged and also treated as empty so startup still works.
    """
    if not raw:
        return []
    try:
        items = json.loads(raw)
        if not isinstance(items, list):
            raise ValueError("stored collection is not a JSON array")
        tasks = [Task.model_validate(item) for item in items]
        ids = [t.id for t in tasks]
        if len(ids) != len(set(ids)):
            raise ValueError("stored collection has duplicate task ids")
        return tasks
    except (ValueError, ModelValidationError) as e:
        logger.error("Discarding unreadable task collection: %s", e)
        return []

def load_tasks() -> list[Task]:
    return deserialize_tasks(read_value(STORAGE_KEY))

def save_tasks(tasks: list[Task]) -> None:
    write_value(STORAGE_KEY, serialize_tasks(tasks))
