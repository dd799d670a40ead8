import os
import sqlite3
from .config import DEFAULT_CONFIG

SCHEMA = """
CREATE TABLE IF NOT EXISTS email_queue (
    id TEXT PRIMARY KEY,
    "to" TEXT NOT NULL,
    subject TEXT NOT NULL,
    text_body TEXT NOT NULL,
    html_body TEXT,
    attempts INTEGER NOT NULL DEFAULT 0,
    next_retry_at TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    error TEXT,
    created_at TEXT NOT NULL,
    sent_at TEXT
);

CREATE INDEX IF NOT EXISTS idx_email_queue_status_next ON email_queue(status, next_retry_at);
CREATE TABLE IF NOT EXISTS config (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


def db_path() -> str:
    return os.environ.get("MAILQ_DB", "mailq.db")


def connect_db(path=None):
    """Open the queue database, creating the schema on first use.

    The connection may be handed to the worker thread, so sqlite's
    same-thread check is disabled; only one thread uses it at a time.
    """
    path = path or db_path()
    conn = sqlite3.connect(path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    if path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL")
    conn.executescript(SCHEMA)
    return conn


def init_db(conn):
    with conn:
        conn.executescript(SCHEMA)
        # seed defaults
        for k, v in DEFAULT_CONFIG.items():
            conn.execute(
                "INSERT OR IGNORE INTO config(key, value) VALUES(?,?)", (k, v)
            )
