"""
Recovery Kit Module
====================
Everything offered after a risky verdict:

1. **RecoveryAggregator**: fetches the three recovery resources
   concurrently: the emergency playbook, report drafts for bank / police /
   platform, and a shareable warning card. Each request settles on its
   own. A failed request leaves its field absent and never cancels or
   delays the other two. Observers see each field as soon as it lands;
   `ready` only flips once all three have settled.

2. **RecoveryChecklist**: weighted recovery tasks (from the playbook, or
   a built-in default list) with progress milestones and a progress sync
   to the server.

One aggregation runs per verdict. Asking again for the same verdict
returns the bundle already fetched (or waits for the fetch in flight).
reset() drops the bundle; results of a dropped aggregation are ignored.
"""

import asyncio
import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from scamshield.core.classifier import ClassifiedInput, mask_identifier, report_channel
from scamshield.core.observable import Observable
from scamshield.core.verdict import VerdictResult
from scamshield.notifications import ERROR, INFO, SUCCESS, Notifier, log_notice
from scamshield.remote.api_client import ApiError
from scamshield.schemas import (
    PlaybookResponse, ReportPayload, ReportsResponse, WarningCardRequest,
    WarningCardResponse,
)

logger = logging.getLogger(__name__)

PLAYBOOK = "playbook"
REPORTS = "reports"
WARNING_CARD = "warning_card"
BUNDLE_FIELDS = (PLAYBOOK, REPORTS, WARNING_CARD)


# ==============================
# BUNDLE
# ==============================

@dataclass(frozen=True)
class RecoveryBundle:
    """
    Per-field view of one recovery aggregation.

    There is no overall success flag: a field is either present or
    absent, and either settled or still in flight.
    """
    playbook: PlaybookResponse | None = None
    reports: ReportsResponse | None = None
    warning_card: WarningCardResponse | None = None
    settled: frozenset = field(default_factory=frozenset)

    @property
    def ready(self) -> bool:
        return all(name in self.settled for name in BUNDLE_FIELDS)

    def is_settled(self, name: str) -> bool:
        return name in self.settled

    def has(self, name: str) -> bool:
        return getattr(self, name) is not None


# ---------- PAYLOAD BUILDERS ----------

def build_report_payload(verdict: VerdictResult, classified: ClassifiedInput,
                         occurred_at: datetime | None = None) -> ReportPayload:
    """Incident report request seeded from the verdict reasons and the checked identifier."""
    when = occurred_at or datetime.now(timezone.utc)
    kind = classified.kind.value
    return ReportPayload(
        incidentTitle=f"Suspicious {kind}: {classified.value}",
        scamType="Unknown",
        occurredAt=when.isoformat(),
        channel=report_channel(classified),
        suspects=[classified.value],
        losses="Unknown",
        actionsTaken=[],
        extraNotes=". ".join(verdict.reasons),
    )


def build_warning_card_request(verdict: VerdictResult, classified: ClassifiedInput) -> WarningCardRequest:
    kind = classified.kind.value
    return WarningCardRequest(
        verdict=verdict.verdict_key.value,
        headline=f"Suspicious {kind} flagged",
        identifiers={kind: classified.value},
        reasons=list(verdict.reasons),
    )


# ==============================
# AGGREGATOR
# ==============================

class RecoveryAggregator(Observable):
    """
    Args:
        api: Object with async get_playbook(), generate_reports(payload, ai)
             and create_warning_card(payload)
        notify: Notifier for partial-failure notices
        use_ai_reports: Ask the server for AI-written report drafts
    """

    def __init__(self, api, notify: Notifier = log_notice, use_ai_reports: bool = False):
        super().__init__()
        self.api = api
        self.notify = notify
        self.use_ai_reports = use_ai_reports

        self.bundle: RecoveryBundle | None = None
        self._verdict: VerdictResult | None = None
        self._task: asyncio.Task | None = None
        self._generation = 0

    def snapshot(self) -> RecoveryBundle | None:
        return self.bundle

    @property
    def ready(self) -> bool:
        return self.bundle is not None and self.bundle.ready

    async def fetch_bundle(self, verdict: VerdictResult,
                           classified: ClassifiedInput) -> RecoveryBundle | None:
        """
        Fetch (once) the recovery bundle for a verdict.

        Returns the bundle after all three requests have settled, or None
        if reset() discarded it while the requests were out.
        """
        if self._verdict is verdict and self.bundle is not None:
            generation = self._generation
            if self._task is not None and not self._task.done():
                await asyncio.shield(self._task)
            logger.debug("[RECOVERY] Reusing bundle for current verdict")
            return self._bundle_for(generation)

        self._generation += 1
        generation = self._generation
        self._verdict = verdict
        self.bundle = RecoveryBundle()
        self._notify()

        logger.info(f"[RECOVERY] Fetching bundle for {verdict.verdict_key.value} "
                    f"{classified.kind.value} {mask_identifier(classified.value)}")

        self._task = asyncio.ensure_future(self._aggregate(generation, verdict, classified))
        await asyncio.shield(self._task)
        return self._bundle_for(generation)

    def _bundle_for(self, generation: int) -> RecoveryBundle | None:
        # A bundle discarded while the caller waited is never handed back,
        # even if a newer aggregation has started since
        if generation != self._generation:
            return None
        return self.bundle

    async def _aggregate(self, generation: int, verdict: VerdictResult,
                         classified: ClassifiedInput) -> None:
        report_payload = build_report_payload(verdict, classified)
        card_request = build_warning_card_request(verdict, classified)

        await asyncio.gather(
            self._settle(generation, PLAYBOOK, self.api.get_playbook()),
            self._settle(generation, REPORTS,
                         self.api.generate_reports(report_payload, self.use_ai_reports)),
            self._settle(generation, WARNING_CARD, self.api.create_warning_card(card_request)),
        )

        if generation == self._generation and self.bundle is not None:
            present = [name for name in BUNDLE_FIELDS if self.bundle.has(name)]
            logger.info(f"[RECOVERY] Bundle ready: {len(present)}/3 fields ({', '.join(present) or 'none'})")

    async def _settle(self, generation: int, name: str, request) -> None:
        value = None
        try:
            value = await request
        except ApiError as e:
            logger.warning(f"[RECOVERY] {name} failed: {e}")
        except Exception as e:
            logger.error(f"[RECOVERY] {name} unexpected error: {e}")

        if generation != self._generation or self.bundle is None:
            logger.debug(f"[RECOVERY] Dropping {name} for a discarded bundle")
            return

        updates = {"settled": self.bundle.settled | {name}}
        if value is not None:
            updates[name] = value
        self.bundle = replace(self.bundle, **updates)
        self._notify()

        if value is None:
            self.notify(f"Could not load {name.replace('_', ' ')}. Other recovery steps are still available.", ERROR)

    def reset(self) -> None:
        """Discard the bundle. In-flight requests keep running but their results are dropped."""
        if self.bundle is None and self._verdict is None:
            return
        self._generation += 1
        self.bundle = None
        self._verdict = None
        self._task = None
        self._notify()
        logger.info("[RECOVERY] Reset")


# ==============================
# CHECKLIST
# ==============================

@dataclass(frozen=True)
class RecoveryTask:
    id: str
    label: str
    why: str
    weight: int


# Used until (or unless) the playbook provides its own task list
DEFAULT_TASKS = (
    RecoveryTask("bank-freeze", "Call bank to freeze outgoing transfers", "Stops further losses", 25),
    RecoveryTask("nsrc-997", "Call NSRC at 997", "Inter-bank freeze coordination", 20),
    RecoveryTask("sim-lock", "Lock SIM and reset telco PIN", "Prevents SIM swap", 15),
    RecoveryTask("pwd-rotate", "Rotate all passwords + enable 2FA", "Account security", 15),
    RecoveryTask("evidence", "Screenshot and export chat history", "Preserve evidence", 10),
    RecoveryTask("report-pdrm", "File police report at PDRM", "Legal documentation", 15),
)

MILESTONES = (
    (100, "Recovery complete! All actions taken.", SUCCESS),
    (75, "Almost there! 75% complete.", INFO),
    (50, "Halfway done! Keep going.", INFO),
)


@dataclass(frozen=True)
class ChecklistState:
    tasks: tuple
    completed: frozenset
    progress: int


class RecoveryChecklist(Observable):
    """Weighted recovery task list with milestone notices."""

    def __init__(self, api=None, notify: Notifier = log_notice, tasks=None):
        super().__init__()
        self.api = api
        self.notify = notify
        self.tasks: tuple[RecoveryTask, ...] = tuple(tasks) if tasks else DEFAULT_TASKS
        self.completed: set[str] = set()

    def snapshot(self) -> ChecklistState:
        return ChecklistState(self.tasks, frozenset(self.completed), self.progress)

    @property
    def progress(self) -> int:
        total = sum(t.weight for t in self.tasks if t.id in self.completed)
        return min(total, 100)

    def load_playbook(self, playbook: PlaybookResponse | None) -> None:
        """Adopt the playbook's task list, keeping completions that still exist."""
        if playbook is None or not playbook.recoveryTasks:
            return
        self.tasks = tuple(
            RecoveryTask(t.id, t.label, t.why, t.weight) for t in playbook.recoveryTasks
        )
        known = {t.id for t in self.tasks}
        self.completed &= known
        self._notify()

    def toggle(self, task_id: str) -> int:
        """Flip one task. Returns the new progress. Unknown ids are ignored."""
        if task_id not in {t.id for t in self.tasks}:
            logger.debug(f"[CHECKLIST] Unknown task '{task_id}'")
            return self.progress

        before = self.progress
        if task_id in self.completed:
            self.completed.discard(task_id)
        else:
            self.completed.add(task_id)
        after = self.progress
        self._notify()

        for threshold, message, level in MILESTONES:
            if before < threshold <= after:
                self.notify(message, level)
                break

        return after

    def reset(self) -> None:
        self.tasks = DEFAULT_TASKS
        self.completed.clear()
        self._notify()

    async def sync(self) -> int | None:
        """Report completed task ids to the server. Returns server progress, or None on failure."""
        if self.api is None:
            return None
        try:
            response = await self.api.update_recovery_progress(sorted(self.completed))
        except ApiError as e:
            logger.warning(f"[CHECKLIST] Progress sync failed: {e}")
            self.notify("Could not save recovery progress.", ERROR)
            return None
        except Exception as e:
            logger.error(f"[CHECKLIST] Progress sync unexpected error: {e}")
            self.notify("Could not save recovery progress.", ERROR)
            return None

        logger.info(f"[CHECKLIST] Synced {len(self.completed)} tasks, server progress={response.progress}")
        return response.progress
