"""
Delivery module.

Sends rendered digests through Resend, or records them in memory during
development.
"""

import logging

from src.delivery.base import Dispatcher, DispatchResult
from src.delivery.memory import MemoryDispatcher
from src.delivery.resend import ResendDispatcher

logger = logging.getLogger(__name__)


def get_dispatcher() -> Dispatcher:
    """
    Build the configured dispatcher.

    Resend is used whenever an API key is set, and always in production
    (where a missing key then fails loudly at send time). Elsewhere,
    digests are only recorded in memory.
    """
    from src.config import RESEND_API_KEY, is_production

    if RESEND_API_KEY or is_production():
        return ResendDispatcher()

    logger.warning("RESEND_API_KEY not set; digests will be recorded, not sent")
    return MemoryDispatcher()


__all__ = [
    "Dispatcher",
    "DispatchResult",
    "MemoryDispatcher",
    "ResendDispatcher",
    "get_dispatcher",
]
