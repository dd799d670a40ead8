import json
import sqlite3

import click

from .context import build_context
from .db import db_path
from .logging_config import configure_logging
from .models import STATUSES
from .processor import process_queue_once
from .repository import (
    enqueue_email, list_jobs, get_job, counts, purge_terminal,
    get_config, set_config,
)
from .templates import queue_password_reset, queue_email_verification
from .worker import run_forever


@click.group(help="mailq — transactional email retry queue")
@click.option("--db", "db", default=None, help="Database file (default: $MAILQ_DB or mailq.db)")
@click.option("-v", "--verbose", is_flag=True, help="Debug logging")
@click.pass_context
def cli(click_ctx, db, verbose):
    configure_logging(verbose)
    click_ctx.obj = {"db": db or db_path()}


def _open(click_ctx):
    """Build the queue context, turning setup errors into a CLI error."""
    try:
        ctx = build_context(click_ctx.obj["db"])
    except (ValueError, RuntimeError, sqlite3.Error) as e:
        click.secho(f"Error: {e}", fg="red")
        raise SystemExit(1)
    click_ctx.call_on_close(ctx.close)
    return ctx


# ---------- Enqueue ----------
@cli.command("enqueue", help="Queue an email for delivery")
@click.option("--to", "to", required=True, help="Recipient address")
@click.option("--subject", required=True, help="Subject line")
@click.option("--text", "text_body", required=True, help="Plain-text body")
@click.option("--html", "html_body", default=None, help="Optional HTML body")
@click.pass_context
def enqueue_cmd(click_ctx, to, subject, text_body, html_body):
    ctx = _open(click_ctx)
    try:
        job_id = enqueue_email(ctx.conn, to=to, subject=subject, text_body=text_body, html_body=html_body)
    except (ValueError, RuntimeError) as e:
        click.secho(f"Error: {e}", fg="red")
        raise SystemExit(1)
    click.secho(f"Queued {job_id} -> {to}", fg="green")


@cli.command("send-reset", help="Queue a password reset email")
@click.option("--to", "to", required=True, help="Recipient address")
@click.option("--link", required=True, help="Full reset link including the token")
@click.pass_context
def send_reset_cmd(click_ctx, to, link):
    ctx = _open(click_ctx)
    try:
        job_id = queue_password_reset(ctx.conn, to, link)
    except (ValueError, RuntimeError) as e:
        click.secho(f"Error: {e}", fg="red")
        raise SystemExit(1)
    click.secho(f"Queued password reset {job_id} -> {to}", fg="green")


@cli.command("send-verification", help="Queue an email verification email")
@click.option("--to", "to", required=True, help="Recipient address")
@click.option("--link", required=True, help="Full verification link including the token")
@click.pass_context
def send_verification_cmd(click_ctx, to, link):
    ctx = _open(click_ctx)
    try:
        job_id = queue_email_verification(ctx.conn, to, link)
    except (ValueError, RuntimeError) as e:
        click.secho(f"Error: {e}", fg="red")
        raise SystemExit(1)
    click.secho(f"Queued verification {job_id} -> {to}", fg="green")


# ---------- Processing ----------
@cli.command("process", help="Process one batch of due emails and exit")
@click.pass_context
def process_cmd(click_ctx):
    ctx = _open(click_ctx)
    try:
        count = process_queue_once(ctx)
    except Exception as e:
        click.secho(f"Error: {e}", fg="red")
        raise SystemExit(1)
    click.echo(f"Processed {count} email(s).")


@cli.group("worker", help="Background delivery worker")
def worker_group():
    pass


@worker_group.command("start")
@click.option("--interval", type=float, default=None,
              help="Seconds between cycles (default: poll_interval_seconds from config)")
@click.pass_context
def worker_start(click_ctx, interval):
    ctx = _open(click_ctx)
    if interval is None:
        interval = ctx.settings.poll_interval_seconds
    if interval <= 0:
        raise click.BadParameter("interval must be > 0", param_hint="--interval")
    click.secho(f"Starting email worker (every {interval:g}s). Press Ctrl+C to stop…", fg="cyan")
    run_forever(ctx, interval)
    click.secho("Worker stopped.", fg="yellow")


# ---------- Jobs ----------
@cli.command("list")
@click.option("--status", type=click.Choice(STATUSES), default=None)
@click.option("--limit", type=click.IntRange(min=1), default=None)
@click.pass_context
def list_cmd(click_ctx, status, limit):
    ctx = _open(click_ctx)
    jobs = list_jobs(ctx.conn, status=status, limit=limit)

    if not jobs:
        click.echo("No emails.")
        return

    for j in jobs:
        click.echo(
            f"{j.id} | {j.status:<7} | attempts={j.attempts}/{ctx.settings.max_attempts} "
            f"| next={j.next_retry_at} | to={j.to} | subject={j.subject} | error={j.error}"
        )


@cli.command("show")
@click.argument("job_id")
@click.pass_context
def show_cmd(click_ctx, job_id):
    ctx = _open(click_ctx)
    job = get_job(ctx.conn, job_id)
    if job is None:
        click.secho(f"Error: email {job_id} not found.", fg="red")
        raise SystemExit(1)
    data = dict(vars(job))
    data.pop("html_body")
    click.echo(json.dumps(data, indent=2))


@cli.command("status")
@click.pass_context
def status_cmd(click_ctx):
    ctx = _open(click_ctx)
    click.echo(json.dumps(counts(ctx.conn), indent=2))


@cli.command("purge", help="Delete sent/failed emails older than a given age")
@click.option("--older-than", "older_than", default="30d", show_default=True,
              help="Age such as 30d, 12h or 1d12h")
@click.option("--dry-run", is_flag=True, help="Only report how many would be deleted")
@click.pass_context
def purge_cmd(click_ctx, older_than, dry_run):
    from .utils import parse_age_to_days

    ctx = _open(click_ctx)
    try:
        n = purge_terminal(ctx.conn, parse_age_to_days(older_than), dry_run=dry_run)
    except ValueError as e:
        click.secho(f"Error: {e}", fg="red")
        raise SystemExit(1)
    if dry_run:
        click.echo(f"Would delete {n} email(s).")
    else:
        click.secho(f"Deleted {n} email(s).", fg="green")


# ---------- Config ----------
@cli.group("config", help="Configuration")
def config_group():
    pass


@config_group.command("get")
@click.pass_context
def config_get(click_ctx):
    ctx = _open(click_ctx)
    click.echo(json.dumps(get_config(ctx.conn), indent=2))


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set_cmd(click_ctx, key, value):
    ctx = _open(click_ctx)
    try:
        set_config(ctx.conn, key, value)
        click.secho(f"Config updated: {key}={value}", fg="green")
    except (ValueError, RuntimeError) as e:
        click.secho(f"Error: {e}", fg="red")
        raise SystemExit(1)


def main():
    cli()
