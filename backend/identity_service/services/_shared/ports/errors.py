"""Exceptions raised by port implementations."""

from __future__ import annotations


class StoreError(Exception):
    """A key-value store (Redis or equivalent) could not complete an operation.

    Adapters chain the driver exception as ``__cause__``.
    """


class MailDeliveryError(Exception):
    """The mail relay refused or failed to accept a message."""
