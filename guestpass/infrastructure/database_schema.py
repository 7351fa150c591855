"""
Database schema for Guest Pass.

Three tables:
- profiles: the user directory (approval state and email-processing quota)
- guests: visitor records created from emails or manual approval
- email_processed_guests: one audit row per processed email
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

from guestpass.observability.logging import get_logger

logger = get_logger(__name__)

REQUIRED_TABLES = ("profiles", "guests", "email_processed_guests")

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS profiles (
        user_id TEXT PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        full_name TEXT,
        organization TEXT,
        authentication_status TEXT NOT NULL DEFAULT 'Pending'
            CHECK (authentication_status IN ('Pending', 'Approved', 'Denied')),
        email_processing_enabled INTEGER NOT NULL DEFAULT 1,
        max_daily_email_processing INTEGER NOT NULL DEFAULT 10,
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS guests (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        visit_date TEXT NOT NULL,
        estimated_arrival TEXT NOT NULL,
        arrival_status INTEGER NOT NULL DEFAULT 0,
        floor_access TEXT,
        inviter_id TEXT NOT NULL,
        organization TEXT,
        requester_email TEXT,
        created_at TEXT NOT NULL
    );

    CREATE TABLE IF NOT EXISTS email_processed_guests (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        sender_email TEXT NOT NULL,
        email_subject TEXT,
        original_email_content TEXT,
        extracted_data TEXT NOT NULL,
        confidence_score REAL NOT NULL DEFAULT 0,
        processing_errors TEXT,
        ai_model_used TEXT,
        processing_status TEXT NOT NULL DEFAULT 'pending'
            CHECK (processing_status IN ('pending', 'approved', 'rejected')),
        guest_id TEXT,
        rejected_reason TEXT,
        processed_at TEXT,
        created_at TEXT NOT NULL
    );

    CREATE INDEX IF NOT EXISTS idx_profiles_email
        ON profiles(email);
    CREATE INDEX IF NOT EXISTS idx_guests_inviter
        ON guests(inviter_id, visit_date);
    CREATE INDEX IF NOT EXISTS idx_email_guests_user_created
        ON email_processed_guests(user_id, created_at);
    CREATE INDEX IF NOT EXISTS idx_email_guests_status
        ON email_processed_guests(user_id, processing_status);
"""


def init_database(db_path: Path) -> None:
    """
    Initialize database with schema (idempotent)

    Side Effects:
    - Creates the data directory if needed
    - Creates tables and indexes that don't exist yet
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    try:
        conn.executescript(SCHEMA_SQL)
        conn.commit()
    finally:
        conn.close()

    logger.info("Database initialized at %s", db_path)


def validate_schema(conn: sqlite3.Connection) -> bool:
    """
    Raises:
        ValueError: If any required table is missing
    """
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    existing = {row[0] for row in rows}
    missing = [table for table in REQUIRED_TABLES if table not in existing]
    if missing:
        raise ValueError(f"Missing required tables: {', '.join(missing)}")
    return True
