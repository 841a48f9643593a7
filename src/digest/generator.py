"""
Digest renderer for Signal Dispatch.

Turns an ordered list of enriched entries into the email that goes out:
a subject line, an HTML body and a plain-text alternative.

Templates live in src/digest/templates and are rendered with Jinja2.
HTML autoescaping is on, so titles and descriptions scraped from
arbitrary pages cannot inject markup into the newsletter.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import List, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from src.config import FORM_URL, NEWSLETTER_TITLE
from src.models.entry import EnrichedEntry


TEMPLATES_DIR = Path(__file__).parent / "templates"

BANNER = r"""
 ____  _   _ _          _
|  _ \| | | | |    __ _| |__
| | | | |_| | |   / _` | '_ \
| |_| |  _  | |__| (_| | |_) |
|____/|_| |_|_____\__,_|_.__/
"""


# =============================================================================
# Digest Configuration
# =============================================================================

@dataclass
class DigestConfig:
    """
    Configuration for digest rendering.

    Attributes:
        title: Subject line prefix.
        subtitle: Line under the banner.
        footer_name: Sender identity printed in the footer.
        form_url: Public submission form linked from the footer ("" to omit).
        banner: ASCII art header.
    """
    title: str = NEWSLETTER_TITLE
    subtitle: str = "DIGITAL HUMANITIES LAB -- AUTOMATED BULLETIN"
    footer_name: str = "DHLab | Digital Humanities Lab"
    form_url: str = FORM_URL
    banner: str = BANNER


# =============================================================================
# Rendered Digest
# =============================================================================

@dataclass
class RenderedDigest:
    """
    A digest ready to dispatch.

    Attributes:
        subject: Email subject.
        html: HTML body.
        text: Plain-text body.
        issue_date: Date printed in the issue header.
        entry_ids: Ids of the entries the digest covers, in order.
    """
    subject: str
    html: str
    text: str
    issue_date: date
    entry_ids: List[int] = field(default_factory=list)

    @property
    def items_included(self) -> int:
        return len(self.entry_ids)

    def save(self, path: str) -> Path:
        """Write the HTML body to a file (used for dry-run previews)."""
        filepath = Path(path)
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(self.html, encoding="utf-8")
        return filepath


# =============================================================================
# Digest Generator
# =============================================================================

class DigestGenerator:
    """
    Renders enriched entries into a RenderedDigest.

    Usage:
        generator = DigestGenerator()
        digest = generator.render(enriched_entries)
        dispatcher.send(digest)

    Entries are rendered in the order given; ordering is decided upstream
    by the eligibility evaluator.
    """

    def __init__(self, config: DigestConfig = None):
        """
        Initialize the digest generator.

        Args:
            config: Digest configuration. Defaults to DigestConfig().
        """
        self.config = config or DigestConfig()
        self._env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(enabled_extensions=("html",), default=False),
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def subject(self, count: int) -> str:
        """Subject line for a digest of `count` items."""
        return f"{self.config.title} — {count} item(s)"

    def render(self, items: Sequence[EnrichedEntry], now: datetime = None) -> RenderedDigest:
        """
        Render the digest.

        Args:
            items: Enriched entries in display order.
            now: Generation time. Defaults to now.

        Returns:
            RenderedDigest with subject, HTML and text bodies.
        """
        issue_date = (now or datetime.now()).date()
        context = {
            "items": list(items),
            "issue_date": issue_date.isoformat(),
            "banner": self.config.banner.strip("\n"),
            "subtitle": self.config.subtitle,
            "footer_name": self.config.footer_name,
            "form_url": self.config.form_url,
        }

        return RenderedDigest(
            subject=self.subject(len(items)),
            html=self._env.get_template("digest.html").render(**context),
            text=self._env.get_template("digest.txt").render(**context),
            issue_date=issue_date,
            entry_ids=[item.entry.id for item in items],
        )


# =============================================================================
# Convenience Functions
# =============================================================================

def render_digest(items: Sequence[EnrichedEntry], now: datetime = None) -> RenderedDigest:
    """
    Render a digest with the default configuration.

    Args:
        items: Enriched entries in display order.
        now: Generation time (default: now).
    """
    return DigestGenerator().render(items, now)
