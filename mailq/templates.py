from dataclasses import dataclass

from jinja2 import Environment, PackageLoader, select_autoescape

from .repository import enqueue_email

env = Environment(
    loader=PackageLoader("mailq", "email_templates"),
    autoescape=select_autoescape(["html", "html.j2"]),
    keep_trailing_newline=True,
)


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    text: str
    html: str


def render_template(name: str, context: dict) -> tuple:
    text_body = env.get_template(f"{name}.txt.j2").render(**context)
    html_body = env.get_template(f"{name}.html.j2").render(**context)
    return text_body, html_body


def password_reset_email(email: str, reset_link: str) -> EmailTemplate:
    text, html = render_template("password_reset", {"email": email, "reset_link": reset_link})
    return EmailTemplate(subject="Reset your MemoryLoop password", text=text, html=html)


def email_verification_email(email: str, verification_link: str) -> EmailTemplate:
    text, html = render_template(
        "email_verification", {"email": email, "verification_link": verification_link}
    )
    return EmailTemplate(subject="Verify your MemoryLoop email address", text=text, html=html)


def _queue_template(conn, email: str, template: EmailTemplate) -> str:
    return enqueue_email(
        conn, to=email, subject=template.subject, text_body=template.text, html_body=template.html
    )


def queue_password_reset(conn, email: str, reset_link: str) -> str:
    return _queue_template(conn, email, password_reset_email(email, reset_link))


def queue_email_verification(conn, email: str, verification_link: str) -> str:
    return _queue_template(conn, email, email_verification_email(email, verification_link))
