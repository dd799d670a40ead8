from dataclasses import dataclass
from typing import Optional

# Job statuses
PENDING = "pending"
SENT = "sent"
FAILED = "failed"  # terminal, retries exhausted

STATUSES = (PENDING, SENT, FAILED)


@dataclass
class EmailJob:
    id: str
    to: str
    subject: str
    text_body: str
    html_body: Optional[str] = None
    attempts: int = 0
    status: str = PENDING
    next_retry_at: Optional[str] = None
    error: Optional[str] = None
    created_at: str = ""
    sent_at: Optional[str] = None

    @classmethod
    def from_row(cls, row):
        return cls(**{k: row[k] for k in row.keys()})
