"""
Signal Dispatch send cycle - Core execution logic.

This module orchestrates one evaluate-and-send cycle:

    Backlog + Ledger → Eligibility → Previews → Render → Dispatch → Mark sent

Steps:
1. Read pending entries and the last-sent timestamp from storage
2. Evaluate eligibility (urgency / volume / staleness)
3. Fetch link previews in parallel (per-entry fallback to the raw url)
4. Render the HTML and text digest
5. Dispatch through the configured provider
6. Only after a confirmed dispatch: mark entries sent, then update the ledger

Design principles:
- Nothing is marked sent unless the provider accepted the digest
- One cycle at a time per process (scheduler and manual trigger share a lock)
- Storage and dispatch failures abort the cycle without side effects
- Dry-run support: evaluate and render without sending (`--dry-run`)
"""

import logging
import threading
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from src.delivery import Dispatcher, DispatchResult, get_dispatcher
from src.digest import DigestGenerator, EligibilityDecision, RenderedDigest, evaluate
from src.errors import DispatchError, StorageError
from src.models.entry import EnrichedEntry
from src.preview import HtmlPreviewFetcher, PreviewFetcher, enrich_entries
from src.storage import Storage, get_storage

logger = logging.getLogger(__name__)

# Serializes cycles started from any trigger in this process
_cycle_lock = threading.Lock()


# =============================================================================
# Cycle Result Data Structures
# =============================================================================

STATUS_EMPTY = "empty"
STATUS_NOT_ELIGIBLE = "not_eligible"
STATUS_SENT = "sent"
STATUS_DRY_RUN = "dry_run"
STATUS_FAILED = "failed"


@dataclass
class CycleResult:
    """Complete result of one evaluate-and-send cycle."""
    started_at: datetime
    finished_at: Optional[datetime] = None
    status: str = STATUS_NOT_ELIGIBLE
    dry_run: bool = False

    # Evaluation
    pending_count: int = 0
    last_sent_at: Optional[datetime] = None
    decision: Optional[EligibilityDecision] = None

    # Enrichment and rendering
    preview_failures: int = 0
    digest: Optional[RenderedDigest] = None

    # Dispatch (None unless sent)
    dispatch_result: Optional[DispatchResult] = None
    entries_marked: int = 0

    # Errors
    errors: List[str] = field(default_factory=list)

    @property
    def sent(self) -> bool:
        return self.status == STATUS_SENT

    @property
    def failed(self) -> bool:
        return self.status == STATUS_FAILED

    @property
    def duration_seconds(self) -> float:
        """Total cycle duration in seconds."""
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return 0.0

    def to_summary(self) -> str:
        """Generate a human-readable summary."""
        last_sent = self.last_sent_at.strftime('%Y-%m-%d %H:%M:%S') if self.last_sent_at else "never"
        lines = [
            "=" * 60,
            "SEND CYCLE SUMMARY",
            "=" * 60,
            f"Started:   {self.started_at.strftime('%Y-%m-%d %H:%M:%S')}",
            f"Duration:  {self.duration_seconds:.2f}s",
            f"Mode:      {'DRY RUN' if self.dry_run else 'LIVE'}",
            f"Status:    {self.status.upper()}",
            "",
            f"Pending entries: {self.pending_count}",
            f"Last sent:       {last_sent}",
        ]

        if self.decision is not None and self.pending_count:
            reasons = ", ".join(self.decision.reasons) or "(none)"
            lines.append(f"Conditions met:  {reasons}")

        if self.digest is not None:
            lines.extend([
                "",
                "Digest:",
                f"  Subject: {self.digest.subject}",
                f"  Items:   {self.digest.items_included}",
                f"  Previews failed: {self.preview_failures}",
            ])

        if self.dispatch_result is not None:
            lines.extend([
                "",
                "Dispatch:",
                f"  Message id: {self.dispatch_result.message_id}",
                f"  Recipients: {len(self.dispatch_result.recipients)}",
                f"  Entries marked sent: {self.entries_marked}",
            ])
        elif self.dry_run and self.digest is not None:
            lines.append("\nDispatch: SKIPPED (dry-run mode)")

        if self.errors:
            lines.extend([
                "",
                "Errors:",
            ])
            for error in self.errors[:5]:  # Show first 5
                lines.append(f"  - {error}")

        lines.append("=" * 60)
        return "\n".join(lines)


# =============================================================================
# Cycle Configuration
# =============================================================================

@dataclass
class CycleConfig:
    """
    Configuration for a send cycle.

    CLI arguments override defaults.
    """
    dry_run: bool = False
    verbose: bool = False
    preview_workers: Optional[int] = None

    @classmethod
    def from_args(cls, args) -> "CycleConfig":
        """Create config from argparse namespace."""
        return cls(
            dry_run=getattr(args, "dry_run", False),
            verbose=getattr(args, "verbose", False),
        )


# =============================================================================
# Cycle Class
# =============================================================================

class DigestCycle:
    """
    One evaluate-and-send cycle over a storage backend.

    Usage:
        cycle = DigestCycle(storage=SQLiteStorage(), dispatcher=ResendDispatcher())
        result = cycle.run()
        print(result.to_summary())

    Collaborators default to the configured backends, so tests inject
    MemoryStorage / MemoryDispatcher / a stub PreviewFetcher.
    """

    def __init__(
        self,
        config: CycleConfig = None,
        storage: Storage = None,
        dispatcher: Dispatcher = None,
        fetcher: PreviewFetcher = None,
        generator: DigestGenerator = None,
    ):
        self.config = config or CycleConfig()
        self._storage = storage
        self._dispatcher = dispatcher
        self.fetcher = fetcher or HtmlPreviewFetcher()
        self.generator = generator or DigestGenerator()

    @property
    def storage(self) -> Storage:
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    @property
    def dispatcher(self) -> Dispatcher:
        if self._dispatcher is None:
            self._dispatcher = get_dispatcher()
        return self._dispatcher

    def _enrich(self, decision: EligibilityDecision, result: CycleResult) -> List[EnrichedEntry]:
        enriched = enrich_entries(decision.entries, self.fetcher, self.config.preview_workers)
        result.preview_failures = sum(1 for item in enriched if item.preview_failed)
        if result.preview_failures:
            logger.info("%d of %d previews fell back to the raw url", result.preview_failures, len(enriched))
        return enriched

    def _commit(self, digest: RenderedDigest, sent_at: datetime, result: CycleResult) -> None:
        """Record a confirmed dispatch: entries first, then the ledger."""
        try:
            result.entries_marked = self.storage.mark_sent(digest.entry_ids)
            self.storage.record_sent(sent_at)
        except StorageError as e:
            # The email is out; the next cycle may resend these entries
            logger.error("Digest sent but state update failed: %s", e)
            result.errors.append(f"State update failed after dispatch: {e}")

    def run(self, now: datetime = None) -> CycleResult:
        """
        Execute one cycle.

        Waits for any cycle already running in this process, then reads
        fresh state, so back-to-back triggers never send the same backlog
        twice.

        Args:
            now: Evaluation time. Defaults to datetime.now() once the lock is held.

        Returns:
            CycleResult with execution details.
        """
        with _cycle_lock:
            return self._run_locked(now)

    def _run_locked(self, now: datetime = None) -> CycleResult:
        now = now or datetime.now()
        result = CycleResult(started_at=datetime.now(), dry_run=self.config.dry_run)

        try:
            # Step 1: Read state
            pending = self.storage.list_pending()
            result.pending_count = len(pending)
            result.last_sent_at = self.storage.last_sent_at()

            if not pending:
                result.status = STATUS_EMPTY
                logger.info("No pending entries.")
                return self._finish(result)

            # Step 2: Evaluate
            decision = evaluate(pending, result.last_sent_at, now)
            result.decision = decision
            if not decision.should_send:
                result.status = STATUS_NOT_ELIGIBLE
                logger.info("Conditions not met (%d pending).", len(pending))
                return self._finish(result)

            logger.info("Sending digest of %d entries (%s)", len(decision.entries), ", ".join(decision.reasons))

            # Step 3: Enrich
            enriched = self._enrich(decision, result)

            # Step 4: Render
            digest = self.generator.render(enriched, now)
            result.digest = digest

            if self.config.dry_run:
                result.status = STATUS_DRY_RUN
                return self._finish(result)

            # Step 5: Dispatch
            dispatch_result = self.dispatcher.send(digest)
            result.dispatch_result = dispatch_result
            result.status = STATUS_SENT

            # Step 6: Commit
            self._commit(digest, now, result)
            logger.info("Newsletter sent.")

        except StorageError as e:
            result.status = STATUS_FAILED
            result.errors.append(f"Storage error: {e}")
            logger.error("Send cycle aborted, storage error: %s", e)
        except DispatchError as e:
            result.status = STATUS_FAILED
            result.errors.append(f"Dispatch error: {e}")
            logger.error("Email failed: %s", e)
        except Exception as e:
            result.status = STATUS_FAILED
            result.errors.append(f"Cycle error: {type(e).__name__}: {e}")
            if self.config.verbose:
                result.errors.append(traceback.format_exc())
            logger.exception("Send cycle crashed")

        return self._finish(result)

    @staticmethod
    def _finish(result: CycleResult) -> CycleResult:
        result.finished_at = datetime.now()
        return result


# =============================================================================
# Convenience Functions
# =============================================================================

def run_cycle(
    dry_run: bool = False,
    verbose: bool = False,
    storage: Storage = None,
    dispatcher: Dispatcher = None,
    now: datetime = None,
) -> CycleResult:
    """
    Run one evaluate-and-send cycle with the configured backends.

    Convenience function for the scheduler, the web trigger and the CLI.

    Args:
        dry_run: If True, evaluate and render but do not send or mutate state.
        verbose: If True, include tracebacks in result errors.
        storage: Storage override (default: configured backend).
        dispatcher: Dispatcher override (default: configured provider).
        now: Evaluation time override.

    Returns:
        CycleResult with execution details.
    """
    config = CycleConfig(dry_run=dry_run, verbose=verbose)
    cycle = DigestCycle(config, storage=storage, dispatcher=dispatcher)
    return cycle.run(now)
