from __future__ import annotations

import html
import logging
import smtplib
from email.message import EmailMessage
from email.utils import parseaddr

import httpx

from flowboard.core.config import get_settings
from flowboard.core.errors import DeliveryFailure

logger = logging.getLogger(__name__)

settings = get_settings()


class NotificationDeliveryResult(dict):
    @property
    def status(self) -> str:
        return str(self.get("status", "unknown"))

    @property
    def sent(self) -> bool:
        return self.status == "sent"


def invite_subject(workspace_name: str) -> str:
    return f"You've been invited to join {workspace_name}"


def build_invite_text(inviter_name: str, workspace_name: str, role: str, invite_url: str) -> str:
    return (
        f"{inviter_name} has invited you to join {workspace_name} as a {role}.\n\n"
        f"Accept invitation: {invite_url}\n\n"
        f"This invitation will expire in {settings.invite_expiry_days} days.\n"
        "If you didn't expect this invitation, you can safely ignore this email.\n"
    )


def build_invite_html(inviter_name: str, workspace_name: str, role: str, invite_url: str) -> str:
    inviter = html.escape(inviter_name)
    workspace = html.escape(workspace_name)
    role_label = html.escape(role)
    url = html.escape(invite_url, quote=True)
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head>"
        '<body style="font-family:-apple-system,\'Segoe UI\',Roboto,Arial,sans-serif;'
        'background-color:#f4f4f5;margin:0;padding:40px 20px;">'
        '<div style="max-width:480px;margin:0 auto;background:white;border-radius:12px;padding:40px;">'
        '<h1 style="color:#18181b;font-size:24px;text-align:center;">You\'re Invited!</h1>'
        '<p style="color:#52525b;font-size:16px;line-height:1.6;text-align:center;">'
        f"<strong>{inviter}</strong> has invited you to join <strong>{workspace}</strong> "
        f"as a <strong>{role_label}</strong>.</p>"
        '<div style="text-align:center;margin:32px 0;">'
        f'<a href="{url}" style="display:inline-block;background:#6366f1;color:white;'
        'text-decoration:none;padding:14px 32px;border-radius:8px;font-weight:600;">'
        "Accept Invitation</a></div>"
        '<p style="color:#a1a1aa;font-size:14px;text-align:center;">'
        f"This invitation will expire in {settings.invite_expiry_days} days.</p>"
        '<hr style="border:none;border-top:1px solid #e4e4e7;margin:32px 0;">'
        '<p style="color:#a1a1aa;font-size:12px;text-align:center;">'
        "If you didn't expect this invitation, you can safely ignore this email.</p>"
        "</div></body></html>"
    )


def _send_via_resend(recipient_email: str, subject: str, text_body: str, html_body: str) -> None:
    headers = {
        "Authorization": f"Bearer {settings.resend_api_key}",
        "Content-Type": "application/json",
    }
    payload = {
        "from": settings.email_from,
        "to": [recipient_email],
        "subject": subject,
        "html": html_body,
        "text": text_body,
    }
    try:
        with httpx.Client(timeout=15.0) as client:
            response = client.post(f"{settings.resend_base_url.rstrip('/')}/emails", json=payload, headers=headers)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise DeliveryFailure(f"Failed to send email: {exc.response.text}") from exc
    except httpx.HTTPError as exc:
        raise DeliveryFailure(f"Failed to send email: {exc}") from exc


def _send_via_smtp(recipient_email: str, subject: str, text_body: str, html_body: str) -> None:
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = settings.email_from
    message["To"] = recipient_email
    message.set_content(text_body)
    message.add_alternative(html_body, subtype="html")

    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_username and settings.smtp_password:
                smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(message, from_addr=parseaddr(settings.email_from)[1])
    except (smtplib.SMTPException, OSError) as exc:
        raise DeliveryFailure(f"Failed to send email: {exc}") from exc


def send_invitation_email(
    recipient_email: str,
    workspace_name: str,
    inviter_name: str,
    role: str,
    invite_url: str,
) -> NotificationDeliveryResult:
    """Best-effort delivery of an invitation email.

    Never raises: a transport failure is logged and reported as ``failed`` so
    the caller can still hand out the acceptance URL.
    """
    if settings.resend_api_key:
        provider, transport = "resend", _send_via_resend
    elif settings.smtp_host:
        provider, transport = "smtp", _send_via_smtp
    else:
        logger.info("invitation_email_simulated: recipient=%s url=%s", recipient_email, invite_url)
        return NotificationDeliveryResult(status="simulated", provider="console", invite_url=invite_url)

    subject = invite_subject(workspace_name)
    text_body = build_invite_text(inviter_name, workspace_name, role, invite_url)
    html_body = build_invite_html(inviter_name, workspace_name, role, invite_url)

    try:
        transport(recipient_email, subject, text_body, html_body)
    except DeliveryFailure as exc:
        logger.error("invitation_email_failed: recipient=%s provider=%s error=%s", recipient_email, provider, exc)
        return NotificationDeliveryResult(
            status="failed",
            provider=provider,
            invite_url=invite_url,
            error=exc.message,
        )

    logger.info("invitation_email_sent: recipient=%s provider=%s", recipient_email, provider)
    return NotificationDeliveryResult(status="sent", provider=provider, invite_url=invite_url)
