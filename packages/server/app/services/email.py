"""
Outbound email: sender strategies and message templates.

Sender selection (first match wins):
1. SMTP host configured  -> SMTPSender (e.g. Mailpit in development)
2. Resend API key set    -> ResendSender
3. otherwise             -> NoopSender (logs only)
"""

from __future__ import annotations

import asyncio
import smtplib
from email.message import EmailMessage as MIMEMessage
from email.utils import parseaddr
from html import escape
from typing import Protocol

import httpx
import structlog
from pydantic import BaseModel

from app.core.config import Settings

log = structlog.get_logger()

RESEND_API_URL = "https://api.resend.com/emails"
PRODUCT_NAME = "Team Todo"


class EmailMessage(BaseModel):
    to: str
    subject: str
    html: str
    text: str


class EmailSender(Protocol):
    async def send(self, message: EmailMessage) -> None: ...


class SMTPSender:
    """Plain SMTP without authentication."""

    def __init__(self, host: str, port: int, from_email: str, timeout: float = 10.0):
        self._host = host
        self._port = port
        self._from_email = from_email
        self._timeout = timeout

    def _build(self, message: EmailMessage) -> MIMEMessage:
        mime = MIMEMessage()
        mime["From"] = self._from_email
        mime["To"] = message.to
        mime["Subject"] = message.subject
        mime.set_content(message.text)
        mime.add_alternative(message.html, subtype="html")
        return mime

    def _send_sync(self, message: EmailMessage) -> None:
        # Envelope sender is the bare address of "Name <addr>"
        _, envelope_from = parseaddr(self._from_email)
        with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
            smtp.send_message(self._build(message), from_addr=envelope_from, to_addrs=[message.to])

    async def send(self, message: EmailMessage) -> None:
        await asyncio.to_thread(self._send_sync, message)


class ResendSender:
    """Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        client: httpx.AsyncClient | None = None,
        request_timeout: float = 10.0,
    ):
        self._api_key = api_key
        self._from_email = from_email
        self._client = client
        self._request_timeout = request_timeout

    async def send(self, message: EmailMessage) -> None:
        payload = {
            "from": self._from_email,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}
        if self._client is not None:
            resp = await self._client.post(RESEND_API_URL, json=payload, headers=headers)
        else:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self._request_timeout)) as client:
                resp = await client.post(RESEND_API_URL, json=payload, headers=headers)
        resp.raise_for_status()


class NoopSender:
    """Used when no email service is configured."""

    async def send(self, message: EmailMessage) -> None:
        log.info("email.noop", to=message.to, subject=message.subject)


def create_sender(settings: Settings) -> EmailSender:
    if settings.smtp_host:
        log.info("email.sender_selected", sender="smtp", host=settings.smtp_host)
        return SMTPSender(settings.smtp_host, settings.smtp_port, settings.email_from)
    if settings.resend_api_key:
        log.info("email.sender_selected", sender="resend")
        return ResendSender(settings.resend_api_key, settings.email_from)
    log.info("email.sender_selected", sender="noop")
    return NoopSender()


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

def _html_page(title: str, body: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        '<html><head><meta charset="utf-8">'
        f"<title>{escape(title)}</title></head>\n"
        '<body style="font-family: sans-serif; line-height: 1.6; color: #333; '
        'max-width: 600px; margin: 0 auto; padding: 20px;">\n'
        f"<h1 style=\"font-size: 24px;\">{PRODUCT_NAME}</h1>\n"
        f"{body}\n"
        "</body></html>\n"
    )


class EmailService:
    """Builds the messages the application sends."""

    def __init__(self, app_url: str, invite_expire_days: int = 7):
        self._app_url = app_url.rstrip("/")
        self._invite_expire_days = invite_expire_days

    def invite_url(self, token: str) -> str:
        return f"{self._app_url}/invite/{token}"

    def invite_message(
        self, to_email: str, inviter_name: str, org_name: str, token: str
    ) -> EmailMessage:
        url = self.invite_url(token)
        subject = f"[{PRODUCT_NAME}] {inviter_name} invited you to {org_name}"
        html = _html_page(
            subject,
            f"<h2>{escape(inviter_name)} has invited you</h2>\n"
            f"<p>You have been invited to join <strong>{escape(org_name)}</strong>.</p>\n"
            f'<p><a href="{escape(url)}">Accept the invitation</a></p>\n'
            f"<p>This link is valid for {self._invite_expire_days} days.</p>\n"
            "<p style=\"color: #999; font-size: 12px;\">If you were not expecting this "
            f"email you can ignore it. Link: {escape(url)}</p>",
        )
        text = (
            f"{inviter_name} has invited you\n\n"
            f"You have been invited to join \"{org_name}\".\n\n"
            f"Accept the invitation:\n{url}\n\n"
            f"This link is valid for {self._invite_expire_days} days.\n\n"
            "If you were not expecting this email you can ignore it.\n"
        )
        return EmailMessage(to=to_email, subject=subject, html=html, text=text)

    def welcome_message(self, to_email: str, display_name: str) -> EmailMessage:
        login_url = f"{self._app_url}/login"
        subject = f"[{PRODUCT_NAME}] Welcome aboard"
        html = _html_page(
            subject,
            f"<h2>Welcome, {escape(display_name)}!</h2>\n"
            f"<p>Thanks for signing up for {PRODUCT_NAME}.</p>\n"
            f'<p><a href="{escape(login_url)}">Sign in</a></p>',
        )
        text = (
            f"Welcome, {display_name}!\n\n"
            f"Thanks for signing up for {PRODUCT_NAME}.\n\n"
            f"Sign in here:\n{login_url}\n"
        )
        return EmailMessage(to=to_email, subject=subject, html=html, text=text)
