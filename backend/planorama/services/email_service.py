"""
Notification dispatcher: renders invitation emails with Jinja2 and sends them over SMTP.

smtplib is blocking, so every send runs in a worker thread. Callers get
either a message id or a DeliveryError; they decide whether a failed send is
fatal (ad-hoc email) or merely reported (invitations).
"""

import asyncio
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid
from pathlib import Path
from typing import Optional

import jinja2

from planorama.core.config import get_settings
from planorama.core.exceptions import DeliveryError
from planorama.core.logging import get_logger
from planorama.models.event import Event
from planorama.schemas.email import TemplateStyle

logger = get_logger(__name__)
settings = get_settings()

TEMPLATE_DIR = Path(__file__).parent.parent / "templates" / "email"

env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(TEMPLATE_DIR),
    autoescape=jinja2.select_autoescape(enabled_extensions=("html.j2",), default_for_string=False),
    trim_blocks=True,
    lstrip_blocks=True,
)


def is_email_service_configured() -> bool:
    return bool(settings.SMTP_USERNAME and settings.SMTP_PASSWORD)


def build_invite_link(event_id: int, token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/event/{event_id}/{token}"


def _format_event_date(date: datetime) -> str:
    return date.strftime("%A, %B %d, %Y at %I:%M %p")


def render_invitation(event: Event, style: TemplateStyle, invite_link: str) -> tuple[str, str]:
    """Render the (html, text) bodies of an invitation email."""
    context = {
        "event": event,
        "style": style,
        "invite_link": invite_link,
        "event_date": _format_event_date(event.date),
    }
    html = env.get_template("invitation.html.j2").render(**context)
    text = env.get_template("invitation.txt.j2").render(**context)
    return html, text


def render_message(
    subject: str,
    message: str,
    sender_email: str,
    reply_to: Optional[str] = None,
) -> tuple[str, str]:
    """Render the (html, text) bodies of an ad-hoc message sent by a signed-in user."""
    context = {
        "subject": subject,
        "message": message,
        "sender_email": sender_email,
        "sender_name": sender_email.split("@")[0] if sender_email else "User",
        "reply_to": reply_to,
        "sent_at": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
    }
    html = env.get_template("message.html.j2").render(**context)
    text = env.get_template("message.txt.j2").render(**context)
    return html, text


def _open_connection() -> smtplib.SMTP:
    server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=settings.SMTP_TIMEOUT)
    server.ehlo()
    if settings.SMTP_USE_TLS:
        server.starttls()
        server.ehlo()
    server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
    return server


def _deliver(msg: MIMEMultipart, to: str) -> None:
    with _open_connection() as server:
        server.sendmail(settings.SMTP_USERNAME, [to], msg.as_string())


async def send_email(
    to: str,
    subject: str,
    html: str,
    text: str,
    reply_to: Optional[str] = None,
) -> str:
    """Send one email. Returns the Message-ID header; raises DeliveryError on any failure."""
    if not is_email_service_configured():
        raise DeliveryError("Email service not configured")

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = formataddr((settings.SMTP_FROM_NAME, settings.SMTP_USERNAME))
    msg["To"] = to
    message_id = make_msgid(domain=settings.SMTP_USERNAME.split("@")[-1] or None)
    msg["Message-ID"] = message_id
    if reply_to:
        msg["Reply-To"] = reply_to
    msg.attach(MIMEText(text, "plain", "utf-8"))
    msg.attach(MIMEText(html, "html", "utf-8"))

    try:
        await asyncio.to_thread(_deliver, msg, to)
    except smtplib.SMTPAuthenticationError as e:
        logger.error("email_auth_failed", to=to, smtp_code=e.smtp_code)
        raise DeliveryError("Email authentication failed") from e
    except (smtplib.SMTPException, OSError) as e:
        logger.error("email_send_failed", to=to, error=str(e))
        raise DeliveryError() from e

    logger.info("email_sent", to=to, message_id=message_id)
    return message_id


async def send_invitation(to: str, event: Event, style: TemplateStyle, invite_link: str) -> str:
    """Render and send an invitation. Returns the message id or raises DeliveryError."""
    html, text = render_invitation(event, style, invite_link)
    return await send_email(to=to, subject=f"You're invited to {event.title}", html=html, text=text)


async def verify_email_connection() -> bool:
    if not is_email_service_configured():
        return False

    def _check() -> None:
        with _open_connection() as server:
            server.noop()

    try:
        await asyncio.to_thread(_check)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("email_connection_check_failed", error=str(e))
        return False
    return True
