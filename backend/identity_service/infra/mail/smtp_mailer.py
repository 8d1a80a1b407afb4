"""Outgoing verification mail over SMTP."""

from __future__ import annotations

import logging
import smtplib
from collections.abc import Mapping
from email.message import EmailMessage
from typing import Any

from identity_service.services._shared.errors import ConfigurationError
from identity_service.services._shared.ports import MailDeliveryError, Mailer
from identity_service.services.accounts.service import mask_email

log = logging.getLogger(__name__)


class SMTPMailer(Mailer):
    """
    Deliver plain-text mail through an SMTP relay.

    A fresh connection is opened per message; STARTTLS and login are used
    when configured.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int = 587,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool = True,
        sender: str,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def send(self, *, recipient: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content(body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise MailDeliveryError(f"SMTP delivery via {self.host} failed") from exc


class LoggingMailer(Mailer):
    """
    Development stand-in for a relay: record that a mail would have gone out.

    Only the masked recipient and the subject are logged. The body carries
    the verification code and never reaches the log.
    """

    def send(self, *, recipient: str, subject: str, body: str) -> None:
        log.warning(
            "SMTP not configured; mail not sent. recipient=%s subject=%r",
            mask_email(recipient),
            subject,
        )


def mailer_from_config(config: Mapping[str, Any]) -> Mailer:
    """
    Build an :class:`SMTPMailer` from ``SMTP_*`` settings.

    Without ``SMTP_HOST`` a :class:`LoggingMailer` is returned, but only when
    ``MAIL_LOG_ONLY`` is set.

    :raises ConfigurationError: ``SMTP_HOST`` is missing and log-only mail is
        not allowed.
    """
    host = config.get("SMTP_HOST")
    if not host:
        if not config.get("MAIL_LOG_ONLY"):
            raise ConfigurationError("SMTP_HOST must be set unless MAIL_LOG_ONLY is enabled")
        return LoggingMailer()
    return SMTPMailer(
        host=host,
        port=int(config.get("SMTP_PORT") or 587),
        username=config.get("SMTP_USER"),
        password=config.get("SMTP_PASSWORD"),
        use_tls=bool(config.get("SMTP_USE_TLS", True)),
        sender=config.get("MAIL_FROM") or "no-reply@localhost",
    )
