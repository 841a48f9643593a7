"""
In-memory dispatcher for testing and development.

Records every digest instead of sending it. Use this when Resend is not
configured; nothing leaves the process.
"""

import logging
import uuid
from typing import List

from src.delivery.base import Dispatcher, DispatchResult
from src.digest.generator import RenderedDigest
from src.errors import DispatchError

logger = logging.getLogger(__name__)


class MemoryDispatcher(Dispatcher):
    """
    Collects digests in a list.

    Attributes:
        sent: Digests accepted so far, oldest first.
        fail_with: If set, send() raises DispatchError with this message.
    """

    def __init__(self, recipients: List[str] = None, fail_with: str = None):
        self.recipients = list(recipients or ["dev@localhost"])
        self.fail_with = fail_with
        self.sent: List[RenderedDigest] = []

    @property
    def name(self) -> str:
        return "memory"

    def send(self, digest: RenderedDigest) -> DispatchResult:
        if self.fail_with:
            raise DispatchError(self.fail_with)

        self.sent.append(digest)
        message_id = f"mem_{uuid.uuid4().hex[:12]}"
        logger.info("Recorded digest %r (%s) instead of sending", digest.subject, message_id)
        return DispatchResult(message_id=message_id, recipients=list(self.recipients))
