import sqlite3
import uuid
from datetime import timedelta
from typing import Dict, List, Optional

from .utils import to_iso, utcnow
from .models import EmailJob, PENDING, SENT, FAILED, STATUSES
from .config import ALLOWED_CONFIG_KEYS, INT_CONFIG_KEYS, PROVIDERS, parse_int_setting

MAX_ERROR_LENGTH = 2000


# ---------- Config ----------
def get_config(conn) -> Dict[str, str]:
    cur = conn.execute("SELECT key, value FROM config")
    return {r["key"]: r["value"] for r in cur.fetchall()}


def set_config(conn, key: str, value: str):
    if key not in ALLOWED_CONFIG_KEYS:
        raise ValueError(f"Allowed keys: {', '.join(sorted(ALLOWED_CONFIG_KEYS))}")
    if key in INT_CONFIG_KEYS:
        value = str(parse_int_setting(key, value))
    elif key == "provider" and value.strip().lower() not in PROVIDERS:
        raise ValueError(f"provider must be one of: {', '.join(PROVIDERS)}")
    try:
        with conn:
            conn.execute(
                "INSERT INTO config(key,value) VALUES(?,?) "
                "ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, str(value)),
            )
    except sqlite3.Error as e:
        raise RuntimeError(f"DB error while updating config: {e}")


# ---------- Jobs: enqueue / fetch / sent / retry / failed ----------
def enqueue_email(
    conn,
    *,
    to: str,
    subject: str,
    text_body: str,
    html_body: Optional[str] = None,
    now=None,
) -> str:
    if not to or "@" not in to:
        raise ValueError(f"Invalid recipient address: {to!r}")
    if not subject or not subject.strip():
        raise ValueError("Subject cannot be empty.")
    if not text_body or not text_body.strip():
        raise ValueError("Text body cannot be empty.")

    job_id = str(uuid.uuid4())
    ts = to_iso(now or utcnow())
    try:
        with conn:
            conn.execute(
                """INSERT INTO email_queue
                   (id, "to", subject, text_body, html_body, attempts, next_retry_at, status, created_at)
                   VALUES (?, ?, ?, ?, ?, 0, NULL, ?, ?)""",
                (job_id, to.strip(), subject, text_body, html_body or None, PENDING, ts),
            )
    except sqlite3.Error as e:
        raise RuntimeError(f"DB error while inserting email: {e}")
    return job_id


def fetch_due_jobs(conn, limit: int, now=None) -> List[EmailJob]:
    if limit <= 0:
        return []
    rows = conn.execute(
        """SELECT * FROM email_queue
           WHERE status=? AND (next_retry_at IS NULL OR next_retry_at <= ?)
           ORDER BY created_at ASC
           LIMIT ?""",
        (PENDING, to_iso(now or utcnow()), limit),
    ).fetchall()
    return [EmailJob.from_row(r) for r in rows]


def mark_sent(conn, job_id: str, now=None):
    with conn:
        conn.execute(
            "UPDATE email_queue SET status=?, sent_at=?, error=NULL WHERE id=?",
            (SENT, to_iso(now or utcnow()), job_id),
        )


def mark_retry(conn, job_id: str, next_retry_at, error: str):
    with conn:
        conn.execute(
            """UPDATE email_queue
               SET attempts=attempts + 1, next_retry_at=?, error=?, status=?
               WHERE id=?""",
            (to_iso(next_retry_at), error[:MAX_ERROR_LENGTH], PENDING, job_id),
        )


def mark_failed(conn, job_id: str, error: str):
    # The final attempt is recorded too, so a failed job carries max_attempts.
    with conn:
        conn.execute(
            """UPDATE email_queue
               SET attempts=attempts + 1, next_retry_at=NULL, error=?, status=?
               WHERE id=?""",
            (error[:MAX_ERROR_LENGTH], FAILED, job_id),
        )


# ---------- Queries ----------
def get_job(conn, job_id: str) -> Optional[EmailJob]:
    row = conn.execute("SELECT * FROM email_queue WHERE id=?", (job_id,)).fetchone()
    return EmailJob.from_row(row) if row else None


def list_jobs(conn, status: Optional[str] = None, limit: Optional[int] = None) -> List[EmailJob]:
    sql = "SELECT * FROM email_queue"
    params = []
    if status:
        if status not in STATUSES:
            raise ValueError(f"Unknown status: {status}")
        sql += " WHERE status=?"
        params.append(status)
    sql += " ORDER BY created_at ASC"
    if limit is not None:
        if limit < 1:
            raise ValueError("limit must be >= 1")
        sql += " LIMIT ?"
        params.append(int(limit))
    return [EmailJob.from_row(r) for r in conn.execute(sql, params).fetchall()]


def counts(conn) -> Dict[str, int]:
    out = {}
    for s in STATUSES:
        out[s] = conn.execute(
            "SELECT COUNT(1) AS c FROM email_queue WHERE status=?",
            (s,),
        ).fetchone()["c"]
    return out


# ---------- Retention ----------
def purge_terminal(conn, older_than_days: float, now=None, dry_run: bool = False) -> int:
    """Delete sent/failed emails created before the cutoff. Pending emails are kept."""
    if older_than_days <= 0:
        raise ValueError("older_than_days must be > 0")
    cutoff = to_iso((now or utcnow()) - timedelta(days=older_than_days))
    where = "status IN (?, ?) AND created_at < ?"
    params = (SENT, FAILED, cutoff)
    if dry_run:
        return conn.execute(
            f"SELECT COUNT(1) AS c FROM email_queue WHERE {where}", params
        ).fetchone()["c"]
    with conn:
        res = conn.execute(f"DELETE FROM email_queue WHERE {where}", params)
    return res.rowcount
