"""
Tests for Digest Generator.

Tests HTML and plain-text rendering, the subject line, escaping of
scraped content and file output.
"""

import pytest
from datetime import date, datetime

from src.digest import DigestConfig, DigestGenerator, RenderedDigest, render_digest
from src.models.entry import Entry, EnrichedEntry

from tests.test_config import EXPECTED, TEST_DATA


DIGEST = EXPECTED["digest"]


@pytest.fixture
def items():
    """Three enriched entries, one of them a fallback."""
    entries = [
        Entry(url="https://example.org/talk", event_date=date(2025, 3, 12), id=4),
        Entry(url="https://example.org/workshop", event_date=date(2025, 3, 20), id=2),
        Entry(url="https://example.org/broken", event_date=date(2025, 4, 2), id=9),
    ]
    return [
        EnrichedEntry(entry=entries[0], title="Guest Talk", description="On archives",
                      image="https://example.org/talk.png"),
        EnrichedEntry(entry=entries[1], title="TEI Workshop", description=""),
        EnrichedEntry.fallback(entries[2]),
    ]


@pytest.fixture
def generator():
    return DigestGenerator(DigestConfig(title="Test Dispatch", form_url="https://example.org/form"))


class TestSubject:
    """Tests for the subject line."""

    def test_subject_includes_count(self, generator):
        assert generator.subject(3) == "Test Dispatch — 3 item(s)"

    def test_rendered_subject(self, generator, items):
        digest = generator.render(items, datetime(2025, 3, 10, 9, 0))

        assert digest.subject.startswith("Test Dispatch")
        assert digest.subject.endswith(f"3 {DIGEST['subject_suffix']}")


class TestHtml:
    """Tests for the HTML body."""

    def test_contains_every_item_in_order(self, generator, items):
        html = generator.render(items, datetime(2025, 3, 10)).html

        positions = [html.index(item.title) for item in items]
        assert positions == sorted(positions)

    def test_links_and_dates(self, generator, items):
        html = generator.render(items, datetime(2025, 3, 10)).html

        assert '<a href="https://example.org/talk">Guest Talk</a>' in html
        assert "DATE: 2025-03-12" in html
        assert "DATE: 2025-04-02" in html

    def test_optional_description_and_image(self, generator, items):
        html = generator.render(items, datetime(2025, 3, 10)).html

        assert "On archives" in html
        assert 'src="https://example.org/talk.png"' in html
        assert html.count('class="item-desc"') == 1
        assert html.count("<img") == 1

    def test_fallback_item_shows_url_as_title(self, generator, items):
        html = generator.render(items, datetime(2025, 3, 10)).html

        assert '<a href="https://example.org/broken">https://example.org/broken</a>' in html

    def test_header_and_footer(self, generator, items):
        html = generator.render(items, datetime(2025, 3, 10)).html

        assert DIGEST["section_head"] in html
        assert "ITEMS: 3 intercepted" in html
        assert f"{DIGEST['footer_marker']} 2025-03-10 ]" in html
        assert 'href="https://example.org/form"' in html

    def test_form_link_omitted_when_unset(self, items):
        html = DigestGenerator(DigestConfig(form_url="")).render(items).html

        assert "submit a signal" not in html

    def test_scraped_markup_is_escaped(self, generator):
        entry = Entry(url="https://evil.example", event_date=date(2025, 3, 12), id=1)
        hostile = EnrichedEntry(entry=entry, title=TEST_DATA["hostile_title"], description="<b>bold</b>")

        html = generator.render([hostile]).html

        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "&lt;b&gt;bold&lt;/b&gt;" in html


class TestText:
    """Tests for the plain-text body."""

    def test_text_body(self, generator, items):
        text = generator.render(items, datetime(2025, 3, 10)).text

        assert "> Guest Talk" in text
        assert "  https://example.org/talk" in text
        assert "DATE: 2025-03-20" in text
        assert "submit a signal: https://example.org/form" in text

    def test_text_is_not_html_escaped(self, generator):
        entry = Entry(url="https://a.example", event_date=date(2025, 3, 12), id=1)
        item = EnrichedEntry(entry=entry, title="Tom & Jerry")

        assert "> Tom & Jerry" in generator.render([item]).text


class TestRenderedDigest:
    """Tests for RenderedDigest."""

    def test_entry_ids_follow_item_order(self, generator, items):
        digest = generator.render(items)

        assert digest.entry_ids == [4, 2, 9]
        assert digest.items_included == 3

    def test_issue_date(self, generator, items):
        assert generator.render(items, datetime(2025, 3, 10, 23, 59)).issue_date == date(2025, 3, 10)

    def test_save(self, tmp_path, generator, items):
        digest = generator.render(items)

        path = digest.save(tmp_path / "out" / "digest.html")

        assert path.read_text(encoding="utf-8") == digest.html

    def test_render_digest_uses_defaults(self, items):
        digest = render_digest(items, datetime(2025, 3, 10))

        assert isinstance(digest, RenderedDigest)
        assert digest.subject.endswith("3 item(s)")

    def test_empty_digest_renders(self, generator):
        digest = generator.render([])

        assert digest.items_included == 0
        assert "ITEMS: 0 intercepted" in digest.html
