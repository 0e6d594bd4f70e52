"""SQLite connections + schema initialisation for both stores."""
from __future__ import annotations
import os
import sqlite3
from typing import Optional

import structlog

from lessonhub.core import config

logger = structlog.get_logger(__name__)

DRAFT_MIGRATION = "001_draft_store.sql"
REPLICA_MIGRATION = "001_replica_store.sql"


def get_connection(db_path: Optional[str] = None) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path or config.DATABASE_PATH, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    return conn


def _run_migration(db_path: str, filename: str) -> None:
    directory = os.path.dirname(db_path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(os.path.join(config.MIGRATIONS_DIR, filename), "r", encoding="utf-8") as f:
        sql = f.read()
    conn = get_connection(db_path)
    try:
        conn.executescript(sql)
        conn.commit()
    finally:
        conn.close()


def init_db(draft_db_path: Optional[str] = None, replica_db_path: Optional[str] = None) -> None:
    """Run the migration SQL files against the Draft Store and the Replica Store."""
    draft_db_path = draft_db_path or config.DATABASE_PATH
    replica_db_path = replica_db_path or config.REPLICA_DATABASE_PATH
    _run_migration(draft_db_path, DRAFT_MIGRATION)
    _run_migration(replica_db_path, REPLICA_MIGRATION)
    _seed_default_user(draft_db_path)
    logger.info("database_initialised", draft_db=draft_db_path, replica_db=replica_db_path)


def _seed_default_user(db_path: str) -> None:
    """Insert a default admin user using direct bcrypt."""
    import bcrypt
    import uuid
    from datetime import datetime, timezone

    conn = get_connection(db_path)
    try:
        count = conn.execute("SELECT COUNT(*) FROM users").fetchone()[0]
        if count == 0:
            hashed = bcrypt.hashpw("admin".encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
            conn.execute(
                """
                INSERT INTO users (id, username, password_hash, is_admin, teacher_status,
                                   caps_publish, display_name, created_at)
                VALUES (?, ?, ?, 1, 'approved', 1, ?, ?)
                """,
                (
                    str(uuid.uuid4()),
                    "admin",
                    hashed,
                    "Administrator",
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            conn.commit()
            logger.info("default_admin_seeded")
    finally:
        conn.close()
