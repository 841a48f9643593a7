"""
Link preview fetcher.

Fetches a submitted page and extracts the title, description and image a
chat app or social network would show for it. Open Graph tags are
preferred, then Twitter card tags, then plain HTML (<title>, meta
description). Uses BeautifulSoup for lightweight parsing.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional
from urllib.parse import urljoin

import requests
from bs4 import BeautifulSoup

from src.config import PREVIEW_TIMEOUT
from src.errors import PreviewError
from src.models.entry import LinkPreview

logger = logging.getLogger(__name__)


class PreviewFetcher(ABC):
    """
    Abstract base class for preview fetchers.

    fetch() either returns a LinkPreview or raises PreviewError; callers
    decide how to fall back.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def fetch(self, url: str) -> LinkPreview:
        """
        Fetch a preview for a url.

        Raises:
            PreviewError: If the page cannot be fetched or parsed.
        """
        pass


class HtmlPreviewFetcher(PreviewFetcher):
    """Fetches pages over HTTP and reads their metadata tags."""

    # Some sites only serve metadata to browser-like agents
    USER_AGENT = (
        "Mozilla/5.0 (compatible; SignalDispatch/1.0; link preview; "
        "+https://github.com)"
    )

    # Only the head of very large pages is parsed
    MAX_CHARS = 2 * 1024 * 1024

    def __init__(self, timeout: float = None, session: requests.Session = None):
        """
        Initialize HtmlPreviewFetcher.

        Args:
            timeout: Per-request timeout in seconds. Defaults to config.PREVIEW_TIMEOUT.
            session: Optional requests session (shared connection pool).
        """
        self.timeout = timeout if timeout is not None else PREVIEW_TIMEOUT
        self.session = session or requests.Session()

    @property
    def name(self) -> str:
        return "html"

    def fetch(self, url: str) -> LinkPreview:
        try:
            response = self.session.get(
                url,
                headers={
                    "User-Agent": self.USER_AGENT,
                    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
                },
                timeout=self.timeout,
                allow_redirects=True,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise PreviewError(f"Could not fetch {url}: {e}") from e

        content_type = response.headers.get("Content-Type", "").lower()
        if content_type.startswith("image/"):
            return LinkPreview(image=response.url or url)
        if content_type and "html" not in content_type:
            raise PreviewError(f"Unsupported content type for {url}: {content_type}")

        html = response.text[: self.MAX_CHARS]
        logger.debug("Fetched %s (%d chars)", url, len(html))
        return self.parse(html, base_url=response.url or url)

    @classmethod
    def parse(cls, html: str, base_url: str = "") -> LinkPreview:
        """
        Extract a preview from raw HTML.

        Args:
            html: Page markup.
            base_url: Used to resolve relative image urls.

        Raises:
            PreviewError: If the markup cannot be parsed.
        """
        try:
            soup = BeautifulSoup(html, "html.parser")
        except Exception as e:
            raise PreviewError(f"Could not parse page: {e}") from e

        title = (
            cls._meta(soup, "og:title")
            or cls._meta(soup, "twitter:title")
            or cls._title_tag(soup)
        )
        description = (
            cls._meta(soup, "og:description")
            or cls._meta(soup, "twitter:description")
            or cls._meta(soup, "description")
        )
        image = (
            cls._meta(soup, "og:image")
            or cls._meta(soup, "og:image:url")
            or cls._meta(soup, "twitter:image")
            or cls._link_href(soup, "image_src")
        )
        if image:
            image = urljoin(base_url, image)

        return LinkPreview(
            title=title or "",
            description=description or "",
            image=image or None,
        )

    @staticmethod
    def _meta(soup: BeautifulSoup, key: str) -> Optional[str]:
        """Content of <meta property=key> or <meta name=key>."""
        for attr in ("property", "name"):
            tag = soup.find("meta", attrs={attr: key})
            if tag and tag.get("content"):
                content = " ".join(tag["content"].split())
                if content:
                    return content
        return None

    @staticmethod
    def _title_tag(soup: BeautifulSoup) -> Optional[str]:
        if soup.title and soup.title.string:
            return " ".join(soup.title.string.split()) or None
        return None

    @staticmethod
    def _link_href(soup: BeautifulSoup, rel: str) -> Optional[str]:
        tag = soup.find("link", rel=rel)
        if tag and tag.get("href"):
            return tag["href"].strip()
        return None
