"""
Resend email delivery.

Sends digests through the Resend transactional email API:
https://resend.com/docs/api-reference/emails/send-email

One POST per digest, no retries. Any non-2xx answer, network error or
error payload raises DispatchError so the send cycle leaves its entries
pending for the next run.
"""

import logging
from typing import List

import requests

from src.config import (
    NEWSLETTER_FROM,
    NEWSLETTER_SENDER_NAME,
    NEWSLETTER_TO,
    REQUEST_TIMEOUT,
    RESEND_API_KEY,
)
from src.delivery.base import Dispatcher, DispatchResult
from src.digest.generator import RenderedDigest
from src.errors import DispatchError

logger = logging.getLogger(__name__)


class ResendDispatcher(Dispatcher):
    """
    Resend-backed dispatcher.

    Configuration is pulled from environment variables via src.config:
    - RESEND_API_KEY: API key
    - NEWSLETTER_FROM / NEWSLETTER_SENDER_NAME: sender
    - NEWSLETTER_TO: recipient list
    """

    API_URL = "https://api.resend.com/emails"

    def __init__(
        self,
        api_key: str = None,
        sender: str = None,
        recipients: List[str] = None,
        sender_name: str = None,
    ):
        # Use provided values, or fall back to config if None (not empty string)
        self.api_key = api_key if api_key is not None else RESEND_API_KEY
        self.sender = sender if sender is not None else NEWSLETTER_FROM
        self.recipients = list(recipients if recipients is not None else NEWSLETTER_TO)
        self.sender_name = sender_name if sender_name is not None else NEWSLETTER_SENDER_NAME

    @property
    def name(self) -> str:
        return "resend"

    @property
    def from_header(self) -> str:
        if self.sender_name:
            return f"{self.sender_name} <{self.sender}>"
        return self.sender

    def _validate_config(self) -> None:
        """Validate that required configuration is present."""
        if not self.api_key:
            raise DispatchError("RESEND_API_KEY is not configured")
        if not self.sender:
            raise DispatchError("NEWSLETTER_FROM is not configured")
        if not self.recipients:
            raise DispatchError("NEWSLETTER_TO is not configured")

    def build_payload(self, digest: RenderedDigest) -> dict:
        """Request body for the Resend send-email endpoint."""
        return {
            "from": self.from_header,
            "to": self.recipients,
            "subject": digest.subject,
            "html": digest.html,
            "text": digest.text,
        }

    def send(self, digest: RenderedDigest) -> DispatchResult:
        self._validate_config()

        try:
            response = requests.post(
                self.API_URL,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json=self.build_payload(digest),
                timeout=REQUEST_TIMEOUT,
            )
        except requests.RequestException as e:
            raise DispatchError(f"Resend request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            detail = data.get("message") or response.text[:200]
            raise DispatchError(f"Resend rejected the digest ({response.status_code}): {detail}")

        message_id = data.get("id")
        if not message_id:
            raise DispatchError(f"Resend response has no message id: {data!r}")

        logger.info("Email sent: %s to %d recipient(s)", message_id, len(self.recipients))
        return DispatchResult(message_id=message_id, recipients=list(self.recipients))
