import logging

from .repository import fetch_due_jobs, mark_sent, mark_retry, mark_failed
from .retry import next_retry_at, should_fail
from .sender import EmailMessage

logger = logging.getLogger(__name__)


def process_queue(ctx) -> int:
    """Deliver one batch of due emails.

    Returns the number of jobs handled (sent, retried or failed). Sender
    errors are recorded on the job; store errors propagate and abort the batch.
    """
    settings = ctx.settings
    jobs = fetch_due_jobs(ctx.conn, settings.batch_size, now=ctx.clock())
    processed = 0

    for job in jobs:
        message = EmailMessage(to=job.to, subject=job.subject, text=job.text_body, html=job.html_body)
        try:
            ctx.sender.send(message)
        except Exception as exc:
            error = str(exc) or exc.__class__.__name__
            attempts = job.attempts + 1
            if should_fail(attempts, settings.max_attempts):
                mark_failed(ctx.conn, job.id, error)
                logger.warning(
                    "email_failed_permanently",
                    extra={"job_id": job.id, "attempts": attempts, "error": error},
                )
            else:
                retry_at = next_retry_at(
                    attempts, settings.base_delay_seconds, settings.max_delay_seconds, ctx.clock()
                )
                mark_retry(ctx.conn, job.id, retry_at, error)
                logger.info(
                    "email_retry_scheduled",
                    extra={"job_id": job.id, "attempts": attempts, "next_retry_at": retry_at.isoformat()},
                )
        else:
            mark_sent(ctx.conn, job.id, now=ctx.clock())
            logger.info("email_sent", extra={"job_id": job.id})
        processed += 1

    return processed


def process_queue_once(ctx) -> int:
    logger.info("email_queue_processing_started")
    count = process_queue(ctx)
    logger.info("email_queue_processed", extra={"count": count})
    return count
