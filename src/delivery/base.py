"""
Base dispatcher abstraction for Signal Dispatch.

A dispatcher delivers a rendered digest to the configured recipients.
send() either confirms delivery with a DispatchResult or raises
DispatchError; it never reports a failure through its return value, so
callers cannot mistake an undelivered digest for a sent one.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from src.digest.generator import RenderedDigest


@dataclass
class DispatchResult:
    """
    Confirmation of a delivered digest.

    Attributes:
        message_id: Provider message id, if the provider returns one.
        recipients: Addresses the digest was sent to.
        sent_at: When the provider accepted the message.
    """
    message_id: Optional[str] = None
    recipients: List[str] = field(default_factory=list)
    sent_at: datetime = field(default_factory=datetime.now)


class Dispatcher(ABC):
    """Abstract base class for all delivery backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of the delivery backend, used for logging."""
        pass

    @abstractmethod
    def send(self, digest: RenderedDigest) -> DispatchResult:
        """
        Deliver a digest.

        Args:
            digest: The rendered digest.

        Returns:
            DispatchResult once the provider has accepted the message.

        Raises:
            DispatchError: If the message was not accepted.
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"
