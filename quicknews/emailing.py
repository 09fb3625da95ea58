"""Summary delivery via Resend."""

from __future__ import annotations

import logging
import os
from typing import Optional

import resend

from .errors import NotificationDeliveryError
from .models import ClickSummary
from .renderers import build_summary_html, build_summary_subject, build_summary_text

logger = logging.getLogger(__name__)


def send_summary_email(
    summary: ClickSummary,
    to_address: Optional[str] = None,
    from_address: Optional[str] = None,
    subject: Optional[str] = None,
) -> str:
    """Send the rendered click summary and return the Resend message id."""
    api_key = os.environ.get("RESEND_API_KEY")
    if not api_key:
        raise NotificationDeliveryError("RESEND_API_KEY environment variable is not set.")

    sender = from_address or os.environ.get("RESEND_FROM_EMAIL")
    if not sender:
        raise NotificationDeliveryError(
            "Sender email is not configured. Set <email><from> or RESEND_FROM_EMAIL."
        )

    recipient = to_address or os.environ.get("EMAIL_TO")
    if not recipient:
        raise NotificationDeliveryError(
            "Recipient email is not configured. Set <email><to> or EMAIL_TO."
        )

    resend.api_key = api_key
    try:
        response = resend.Emails.send(
            {
                "from": f"Quick NewsGPT <{sender}>",
                "to": [recipient],
                "subject": subject or build_summary_subject(summary),
                "html": build_summary_html(summary),
                "text": build_summary_text(summary),
            }
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("Failed to send summary via Resend: %s", exc)
        raise NotificationDeliveryError(str(exc)) from exc

    message_id = _message_id(response)
    logger.info("Sent summary for %s to %s (id %s)", summary.date, recipient, message_id)
    return message_id


def _message_id(response) -> str:
    if isinstance(response, dict):
        return str(response.get("id", "unknown"))
    return str(getattr(response, "id", "unknown"))
