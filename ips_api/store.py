import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional
from uuid import uuid4

Connection = sqlite3.Connection

_DB_PATH: Optional[Path] = None


def _ensure_schema(conn: Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS api_request_logs (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            id TEXT NOT NULL UNIQUE,
            method TEXT NOT NULL,
            url TEXT NOT NULL,
            status_code INTEGER,
            duration_ms REAL,
            procedure_name TEXT,
            error TEXT,
            created_at TEXT NOT NULL
        );
        """
    )
    conn.commit()


def _resolve_sqlite_path(database_url: str) -> Path:
    if database_url.startswith("sqlite:////"):
        path_str = database_url.replace("sqlite:////", "/", 1)
    elif database_url.startswith("sqlite:///"):
        path_str = database_url.replace("sqlite:///", "", 1)
    else:
        raise ValueError(f"Unsupported database URL '{database_url}'")

    path = Path(path_str)
    if not path.is_absolute():
        path = Path.cwd() / path
    return path


def init_db(database_url: str) -> None:
    """Initialize the request log database at the provided URL."""

    global _DB_PATH
    path = _resolve_sqlite_path(database_url)

    path.parent.mkdir(parents=True, exist_ok=True)
    if not path.exists():
        path.touch()

    with sqlite3.connect(path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        _ensure_schema(conn)

    _DB_PATH = path


def is_initialized() -> bool:
    return _DB_PATH is not None


@contextmanager
def _connect() -> Generator[Connection, None, None]:
    if _DB_PATH is None:
        raise RuntimeError("Database not initialized. Call init_db first.")
    conn = sqlite3.connect(_DB_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()


def insert_request_log(
    method: str,
    url: str,
    status_code: Optional[int],
    duration_ms: Optional[float],
    procedure_name: Optional[str] = None,
    error: Optional[str] = None,
    *,
    keep: int = 50,
) -> str:
    """Record one API call and drop entries beyond the newest ``keep``."""

    log_id = str(uuid4())
    with _connect() as conn:
        conn.execute(
            """
            INSERT INTO api_request_logs(id, method, url, status_code, duration_ms, procedure_name, error, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                log_id,
                method,
                url,
                status_code,
                duration_ms,
                procedure_name,
                error,
                datetime.now(timezone.utc).isoformat(),
            ),
        )
        if keep > 0:
            conn.execute(
                """
                DELETE FROM api_request_logs
                WHERE seq NOT IN (SELECT seq FROM api_request_logs ORDER BY seq DESC LIMIT ?);
                """,
                (keep,),
            )
        conn.commit()
    return log_id


def list_request_logs(limit: int = 50) -> List[Dict[str, Any]]:
    """Return logged calls, most recent first."""

    with _connect() as conn:
        cursor = conn.execute(
            """
            SELECT id, method, url, status_code, duration_ms, procedure_name, error, created_at
            FROM api_request_logs
            ORDER BY seq DESC
            LIMIT ?
            """,
            (limit,),
        )
        return [dict(row) for row in cursor.fetchall()]


def clear_request_logs() -> None:
    with _connect() as conn:
        conn.execute("DELETE FROM api_request_logs;")
        conn.commit()
