"""
Pytest Configuration and Fixtures

This module provides:
- Timestamped result file generation
- Shared fixtures for all tests
- Test category organization
"""

import pytest
import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

# Import test configuration
from tests.test_config import (
    CONFIG, EXPECTED, TEST_DATA, MESSAGES, TEST_CATEGORIES,
    get_all_sample_entries,
)


# =============================================================================
# TEST RESULT FILE CONFIGURATION
# =============================================================================

RESULTS_DIR = PROJECT_ROOT / "test_results"


def get_result_filename() -> str:
    """Generate timestamped result filename."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"test_results_{timestamp}.txt"


class TestResultCollector:
    """Collects test results for formatted output."""

    __test__ = False

    def __init__(self):
        self.results: List[Dict[str, Any]] = []
        self.start_time: datetime = None
        self.end_time: datetime = None
        self.categories: Dict[str, List[Dict]] = {}

    def add_result(self, nodeid: str, outcome: str, duration: float, message: str = ""):
        """Add a test result."""
        filename = nodeid.split("::")[0].split("/")[-1]
        category = filename.replace("test_", "").replace(".py", "")
        result = {
            "nodeid": nodeid,
            "name": nodeid.split("::")[-1].replace("test_", "").replace("_", " ").title(),
            "outcome": outcome,
            "duration": duration,
            "message": message,
        }
        self.results.append(result)
        self.categories.setdefault(category, []).append(result)

    def get_summary(self) -> Dict[str, int]:
        """Get test result summary."""
        return {
            "total": len(self.results),
            "passed": sum(1 for r in self.results if r["outcome"] == "passed"),
            "failed": sum(1 for r in self.results if r["outcome"] == "failed"),
            "skipped": sum(1 for r in self.results if r["outcome"] == "skipped"),
        }


# Global collector instance
_collector = TestResultCollector()


def generate_formatted_report(collector: TestResultCollector) -> str:
    """Generate a formatted test report."""
    summary = collector.get_summary()
    lines = [
        "=" * 80,
        "SIGNAL DISPATCH - TEST RESULTS REPORT",
        "=" * 80,
        f"Run Date:     {collector.start_time.strftime('%Y-%m-%d %H:%M:%S')}",
        f"Total Tests:  {summary['total']}",
        f"Passed:       {summary['passed']} ✓",
        f"Failed:       {summary['failed']} ✗",
        f"Skipped:      {summary['skipped']} ○",
        "",
    ]

    for category, results in sorted(collector.categories.items()):
        info = TEST_CATEGORIES.get(category, {
            "name": category.replace("_", " ").title(),
            "description": "Test category",
            "protects_against": [],
        })
        lines.append(f"[{info['name']}] {info['description']}")
        for protection in info.get("protects_against", []):
            lines.append(f"    • {protection}")
        for result in results:
            status = "✓" if result["outcome"] == "passed" else "✗" if result["outcome"] == "failed" else "○"
            lines.append(f"  {status} {result['name']:<60} ({result['duration'] * 1000:.0f}ms)")
            if result["outcome"] == "failed" and result["message"]:
                for msg_line in result["message"].split("\n")[:3]:
                    if msg_line.strip():
                        lines.append(f"      └─ {msg_line[:70]}")
        lines.append("")

    lines.append("=" * 80)
    return "\n".join(lines)


# =============================================================================
# PYTEST HOOKS
# =============================================================================

def pytest_configure(config):
    """Register custom markers and start the collector."""
    config.addinivalue_line("markers", "eligibility: Digest eligibility rule tests")
    config.addinivalue_line("markers", "pipeline: Send cycle orchestration tests")
    config.addinivalue_line("markers", "storage: Storage backend tests")
    config.addinivalue_line("markers", "web_app: HTTP surface tests")
    config.addinivalue_line("markers", "cli: CLI interface tests")

    _collector.start_time = datetime.now()


def pytest_runtest_logreport(report):
    """Called after each test phase."""
    if report.when == "call":
        _collector.add_result(
            nodeid=report.nodeid,
            outcome=report.outcome,
            duration=report.duration,
            message=str(report.longrepr) if report.longrepr else "",
        )


def pytest_sessionfinish(session, exitstatus):
    """Write the formatted report once all tests completed."""
    _collector.end_time = datetime.now()
    if not _collector.results:
        return

    RESULTS_DIR.mkdir(exist_ok=True)
    filepath = RESULTS_DIR / get_result_filename()
    filepath.write_text(generate_formatted_report(_collector), encoding="utf-8")

    summary = _collector.get_summary()
    print(f"\n📄 Test results saved to: {filepath}")
    print(f"Total: {summary['total']} | Passed: {summary['passed']} | Failed: {summary['failed']}")


# =============================================================================
# SHARED FIXTURES
# =============================================================================

@pytest.fixture
def now():
    """Fixed evaluation time."""
    return CONFIG["now"]


@pytest.fixture
def today():
    """Fixed submission date."""
    return CONFIG["today"]


@pytest.fixture
def make_entry(today):
    """Factory building an Entry whose event date is `days_ahead` from today."""
    from src.models.entry import Entry

    def _make(url: str, days_ahead: int = 30, entry_id: int = None, sent: bool = False):
        return Entry(
            url=url,
            event_date=today + timedelta(days=days_ahead),
            id=entry_id,
            sent=sent,
        )

    return _make


@pytest.fixture
def sample_entries(make_entry):
    """Pending entries built from TEST_DATA, ids 1..n."""
    return [
        make_entry(sample["url"], sample["days_ahead"], entry_id=i)
        for i, sample in enumerate(get_all_sample_entries(), start=1)
    ]


@pytest.fixture
def memory_storage(sample_entries):
    """MemoryStorage seeded with the sample entries and no send history."""
    from src.storage.memory import MemoryStorage
    return MemoryStorage(sample_entries)


@pytest.fixture
def sqlite_storage(tmp_path):
    """Empty SQLiteStorage in a temporary directory."""
    from src.storage.sqlite import SQLiteStorage
    return SQLiteStorage(tmp_path / "test.sqlite")


@pytest.fixture
def memory_dispatcher():
    """Dispatcher that records digests instead of sending them."""
    from src.delivery.memory import MemoryDispatcher
    return MemoryDispatcher(recipients=["team@example.org"])


class StubFetcher:
    """
    Preview fetcher returning canned previews.

    Urls listed in `failing` raise PreviewError; everything else gets a
    title derived from the url path.
    """

    name = "stub"

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.calls: List[str] = []

    def fetch(self, url: str):
        from src.errors import PreviewError
        from src.models.entry import LinkPreview

        self.calls.append(url)
        if url in self.failing:
            raise PreviewError(f"boom: {url}")
        slug = url.rstrip("/").rsplit("/", 1)[-1]
        return LinkPreview(title=f"Title for {slug}", description=f"About {slug}")


@pytest.fixture
def stub_fetcher():
    """Preview fetcher that never touches the network."""
    return StubFetcher()


@pytest.fixture
def test_config():
    """Provide access to test configuration."""
    return CONFIG


@pytest.fixture
def expected_values():
    """Provide access to expected values."""
    return EXPECTED


@pytest.fixture
def test_data():
    """Provide access to test data."""
    return TEST_DATA


@pytest.fixture
def messages():
    """Provide access to expected messages."""
    return MESSAGES
