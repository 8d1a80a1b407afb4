from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Protocol

from .errors import MailDeliveryError


@dataclass(frozen=True, slots=True)
class OutgoingMail:
    recipient: str
    subject: str
    body: str


class Mailer(Protocol):
    """Delivers a plain-text message or raises :class:`MailDeliveryError`."""

    def send(self, *, recipient: str, subject: str, body: str) -> None: ...


class InMemoryMailer(Mailer):
    """
    Records messages in :attr:`outbox` instead of delivering them.

    Set :attr:`fail` to make the next sends raise :class:`MailDeliveryError`.
    """

    def __init__(self) -> None:
        self.outbox: list[OutgoingMail] = []
        self.fail = False
        self._lock = threading.Lock()

    def send(self, *, recipient: str, subject: str, body: str) -> None:
        if self.fail:
            raise MailDeliveryError(f"refused delivery to {recipient}")
        with self._lock:
            self.outbox.append(OutgoingMail(recipient=recipient, subject=subject, body=body))
