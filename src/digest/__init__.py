"""
Digest module.

Decides when a digest is due and renders it for delivery.
"""

from src.digest.eligibility import (
    URGENCY_WINDOW,
    VOLUME_THRESHOLD,
    STALENESS_WINDOW,
    EligibilityDecision,
    evaluate,
    order_for_digest,
)
from src.digest.generator import (
    DigestGenerator,
    DigestConfig,
    RenderedDigest,
    render_digest,
)

__all__ = [
    "URGENCY_WINDOW",
    "VOLUME_THRESHOLD",
    "STALENESS_WINDOW",
    "EligibilityDecision",
    "evaluate",
    "order_for_digest",
    "DigestGenerator",
    "DigestConfig",
    "RenderedDigest",
    "render_digest",
]
