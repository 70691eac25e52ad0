"""Notification helpers for delivering diff results by email."""

from __future__ import annotations

import html
import logging
import os
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formatdate
from typing import Iterable, List, Protocol, Sequence, Tuple

from .errors import DispatchError
from .models import (
    HOME_PATH,
    MISSING_LINK,
    TCP_BASE,
    DiffResult,
    NotificationPayload,
    ProjectRecord,
    ordered,
)

logger = logging.getLogger(__name__)

HOME_URL = TCP_BASE + HOME_PATH
DEFAULT_SMTP_HOST = "smtp.gmail.com"
DEFAULT_SMTP_PORT = 465

_CARD_STYLE = (
    "border: 1px solid #ddd; padding: 15px; margin-bottom: 15px; "
    "border-radius: 5px; background-color: #f9f9f9;"
)
_REMOVED_STYLE = " opacity: 0.7; filter: grayscale(1);"
_BUTTON_STYLE = (
    "color: white; padding: 5px 10px; text-decoration: none; "
    "border-radius: 3px; font-size: 12px; margin-right: 10px;"
)


class Notifier(Protocol):
    """Protocol defining the notifier contract."""

    def send(self, payload: NotificationPayload) -> None:
        ...


@dataclass
class EmailNotifier:
    """Send payloads through an SMTP relay over TLS."""

    username: str
    password: str
    recipients: Tuple[str, ...]
    sender: str = ""
    host: str = DEFAULT_SMTP_HOST
    port: int = DEFAULT_SMTP_PORT
    timeout: int = 30

    def send(self, payload: NotificationPayload) -> None:
        recipients = payload.recipients or self.recipients
        if not recipients:
            raise DispatchError("No email recipients configured")

        message = build_email_message(payload, self.sender or self.username, recipients)
        context = ssl.create_default_context()
        logger.info("Connecting to SMTP server %s:%d", self.host, self.port)
        try:
            if self.port == 465:
                with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout,
                                      context=context) as server:
                    server.login(self.username, self.password)
                    server.send_message(message)
            else:
                with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                    server.starttls(context=context)
                    server.login(self.username, self.password)
                    server.send_message(message)
        except (smtplib.SMTPException, ssl.SSLError, OSError) as exc:
            raise DispatchError(f"Email delivery failed: {exc}", exc) from exc

        logger.info("Email sent to %d recipient(s)", len(recipients))


def build_email_message(
    payload: NotificationPayload,
    sender: str,
    recipients: Sequence[str],
) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = payload.subject
    message["From"] = sender
    message["To"] = ", ".join(recipients)
    message["Date"] = formatdate(usegmt=True)
    message.set_content(payload.text_body)
    message.add_alternative(payload.html_body, subtype="html")
    return message


def parse_recipients(raw: str | None) -> Tuple[str, ...]:
    """Split a comma-separated address list, dropping blanks and duplicates."""
    seen: List[str] = []
    for part in (raw or "").split(","):
        address = part.strip()
        if address and address not in seen:
            seen.append(address)
    return tuple(seen)


def build_notifier_from_env() -> EmailNotifier | None:
    """Construct a notifier from environment configuration."""
    username = (os.getenv("EMAIL_USER") or "").strip()
    password = (os.getenv("EMAIL_PASS") or "").strip()
    recipients = parse_recipients(os.getenv("EMAIL_TO"))
    if not (username and password and recipients):
        return None

    port_value = (os.getenv("SMTP_PORT") or "").strip()
    try:
        port = int(port_value) if port_value else DEFAULT_SMTP_PORT
    except ValueError:
        raise ValueError(f"SMTP_PORT must be a valid integer, got: {port_value}") from None

    sender = (os.getenv("EMAIL_FROM") or "").strip() or f'"TCP Monitor" <{username}>'
    return EmailNotifier(
        username=username,
        password=password,
        recipients=recipients,
        sender=sender,
        host=(os.getenv("SMTP_HOST") or "").strip() or DEFAULT_SMTP_HOST,
        port=port,
    )


def format_subject(diff: DiffResult) -> str:
    return f"TCP Update: {len(diff.added)} Added, {len(diff.removed)} Removed"


def render_notification(
    diff: DiffResult,
    recipients: Iterable[str] = (),
    portal_url: str = HOME_URL,
) -> NotificationPayload:
    """Render diff results into a deterministic email payload."""
    added = ordered(diff.added)
    removed = ordered(diff.removed)

    parts = [
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: auto;">',
        '<h2 style="color: #2c3e50; border-bottom: 2px solid #3498db; '
        'padding-bottom: 10px;">TCP Haryana Monitor Update</h2>',
    ]
    lines = ["TCP Haryana Monitor Update", ""]

    if added:
        parts.append(f'<h3 style="color: #27ae60;">New Projects Added ({len(added)})</h3>')
        parts.extend(_render_card(record) for record in added)
        lines.append(f"New Projects Added ({len(added)})")
        lines.extend(_render_text_entry(record, "+") for record in added)
        lines.append("")

    if removed:
        parts.append(
            f'<h3 style="color: #c0392b; margin-top: 30px;">'
            f"Projects Removed/Closed ({len(removed)})</h3>"
        )
        parts.extend(_render_card(record, removed=True) for record in removed)
        lines.append(f"Projects Removed/Closed ({len(removed)})")
        lines.extend(_render_text_entry(record, "-") for record in removed)
        lines.append("")

    portal = html.escape(portal_url, quote=True)
    parts.append(
        '<div style="margin-top: 20px; font-size: 12px; color: #7f8c8d;">'
        f'<p>This is an automated message. <a href="{portal}">Visit TCP Haryana Portal</a></p>'
        "</div>"
    )
    parts.append("</div>")
    lines.append(f"This is an automated message. Portal: {portal_url}")

    return NotificationPayload(
        subject=format_subject(diff),
        html_body="\n".join(parts),
        text_body="\n".join(lines),
        recipients=tuple(recipients),
    )


def _render_card(record: ProjectRecord, removed: bool = False) -> str:
    style = _CARD_STYLE + (_REMOVED_STYLE if removed else "")
    return (
        f'<div style="{style}">'
        '<div style="font-weight: bold; font-size: 16px; color: #333; margin-bottom: 5px;">'
        f"{html.escape(record.project_id)}) {html.escape(record.display_name)}</div>"
        '<div style="font-size: 13px; color: #555; margin-bottom: 10px;">'
        f"<strong>Start:</strong> {html.escape(record.start_date)}<br>"
        f"<strong>End:</strong> {html.escape(record.end_date)}</div>"
        '<div style="margin-top: 10px;">'
        f"{_render_link(record.draw_link, 'Details of Draw', '#3498db')}"
        f"{_render_link(record.brochure_link, 'Brochure', '#27ae60')}"
        "</div></div>"
    )


def _render_link(url: str, label: str, color: str) -> str:
    if not url or url == MISSING_LINK:
        return f'<span style="font-size: 12px; margin-right: 10px;">{label}: {MISSING_LINK}</span>'
    href = html.escape(url, quote=True)
    return f'<a href="{href}" style="background-color: {color}; {_BUTTON_STYLE}">{label}</a>'


def _render_text_entry(record: ProjectRecord, marker: str) -> str:
    return (
        f"{marker} {record.project_id}) {record.display_name}\n"
        f"    Start: {record.start_date}\n"
        f"    End: {record.end_date}\n"
        f"    Details of Draw: {record.draw_link or MISSING_LINK}\n"
        f"    Brochure: {record.brochure_link or MISSING_LINK}"
    )


__all__ = [
    "EmailNotifier",
    "Notifier",
    "build_email_message",
    "build_notifier_from_env",
    "format_subject",
    "parse_recipients",
    "render_notification",
]
