import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

from crm.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Password Reset - Leads Management"

RESET_HTML = """
<h2>Leads Management</h2>
<p>Hello <b>{name}</b>,</p>
<p>You requested a password reset.</p>
<p>
  <a href="{reset_url}"
     style="padding:12px 20px;background:#6c63ff;color:#fff;text-decoration:none;border-radius:6px;">
     Reset Password
  </a>
</p>
<p>This link will expire in {minutes} minutes.</p>
<p>If you didn't request this, ignore this email.</p>
"""

RESET_TEXT = """Hello {name},

You requested a password reset. Open this link to choose a new password:
{reset_url}

This link will expire in {minutes} minutes.
If you didn't request this, ignore this email.
"""


class Mailer:
    """SMTP delivery. Every send returns True/False; failures are logged, never raised."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings

    @property
    def is_configured(self) -> bool:
        return bool(self.config.smtp_host and self.config.smtp_from_email and self.config.smtp_port)

    def reset_url(self, reset_token: str) -> str:
        return f"{self.config.frontend_url.rstrip('/')}/reset-password/{reset_token}"

    def send_password_reset(self, *, to_email: str, name: str, reset_token: str) -> bool:
        data = {
            "name": name,
            "reset_url": self.reset_url(reset_token),
            "minutes": self.config.reset_token_expire_minutes,
        }

        msg = EmailMessage()
        msg["Subject"] = RESET_SUBJECT
        msg["From"] = f'"{self.config.smtp_from_name}" <{self.config.smtp_from_email}>'
        msg["To"] = to_email
        msg.set_content(RESET_TEXT.format(**data))
        msg.add_alternative(RESET_HTML.format(**data), subtype="html")

        return self.send(msg)

    def send(self, msg: EmailMessage) -> bool:
        cfg = self.config
        if not self.is_configured:
            logger.warning("SMTP not configured; host=%s from_email=%s", cfg.smtp_host, cfg.smtp_from_email)
            return False

        try:
            if cfg.smtp_use_ssl:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(cfg.smtp_host, cfg.smtp_port, context=context) as server:
                    if cfg.smtp_username and cfg.smtp_password:
                        server.login(cfg.smtp_username, cfg.smtp_password)
                    server.send_message(msg)
                    return True
            with smtplib.SMTP(cfg.smtp_host, cfg.smtp_port) as server:
                if cfg.smtp_use_tls:
                    server.starttls(context=ssl.create_default_context())
                if cfg.smtp_username and cfg.smtp_password:
                    server.login(cfg.smtp_username, cfg.smtp_password)
                server.send_message(msg)
                return True
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Failed to send email to %s: %s", msg["To"], exc)
            return False
