from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from .config import QueueSettings, SmtpSettings
from .db import connect_db, init_db
from .repository import get_config
from .sender import EmailSender, build_senders, select_sender
from .utils import utcnow


@dataclass
class QueueContext:
    """Everything the processor and worker need, built once at startup."""

    conn: object
    sender: EmailSender
    settings: QueueSettings = field(default_factory=QueueSettings)
    clock: Callable[[], datetime] = utcnow

    def close(self):
        self.conn.close()


def build_context(db_path=None, *, sender=None, environ=None) -> QueueContext:
    conn = connect_db(db_path)
    try:
        init_db(conn)
        settings = QueueSettings.from_mapping(get_config(conn))
        if sender is None:
            senders = build_senders(SmtpSettings.from_env(environ))
            sender = select_sender(settings.provider, senders)
    except Exception:
        conn.close()
        raise
    return QueueContext(conn=conn, sender=sender, settings=settings)
