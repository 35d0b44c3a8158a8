"""
Session Storage Module
=======================
In-memory registry of ScamShield sessions, one per browser tab.

Each session wires together:
- VerdictController  - the check flow (input → loading → result → recovery)
- RecoveryAggregator - playbook, report drafts and warning card
- RecoveryChecklist  - weighted recovery tasks
- ConversationEngine - the AI assistant chat

All components of a session share one API client and one notifier, and
run on the same event loop. Nothing is written to disk; a session lives
until it is dropped or the process exits.
"""

import logging
import uuid
from threading import Lock

from scamshield.core.classifier import ClassifiedInput, classify
from scamshield.core.conversation import ConversationEngine
from scamshield.core.recovery import RecoveryAggregator, RecoveryBundle, RecoveryChecklist
from scamshield.core.verdict import VerdictController
from scamshield.notifications import Notifier, log_notice
from scamshield.remote.api_client import AsyncApiClient

logger = logging.getLogger(__name__)


class ShieldSession:
    """All interaction state for one tab."""

    def __init__(self, session_id: str, api=None, notify: Notifier = log_notice,
                 delay=None, use_ai_reports: bool = False):
        self.session_id = session_id
        self.api = api if api is not None else AsyncApiClient()
        self.notify = notify

        self.verdict = VerdictController(self.api, notify)
        self.recovery = RecoveryAggregator(self.api, notify, use_ai_reports=use_ai_reports)
        self.checklist = RecoveryChecklist(self.api, notify)
        self.chat = ConversationEngine(self.api, notify, delay=delay)

        self.recovery.subscribe(self._on_bundle)

    def _on_bundle(self, bundle: RecoveryBundle | None) -> None:
        # Adopt the playbook's own task list as soon as it lands
        if bundle is not None and bundle.playbook is not None:
            tasks = tuple(t.id for t in self.checklist.tasks)
            if tasks != tuple(t.id for t in bundle.playbook.recoveryTasks):
                self.checklist.load_playbook(bundle.playbook)

    # ---------- CHECK FLOW ----------

    async def check(self, raw: str, chain: str | None = None) -> ClassifiedInput:
        """Classify raw input and, if it is checkable, request a verdict."""
        classified = classify(raw)
        await self.verdict.submit(classified, chain)
        return classified

    async def open_recovery(self) -> RecoveryBundle | None:
        """
        Continue from a risky verdict into the recovery kit.

        Returns the recovery bundle, or None when the current verdict
        does not allow recovery. Calling it again reuses the bundle.
        """
        if not self.verdict.continue_():
            return None
        return await self.recovery.fetch_bundle(self.verdict.result, self.verdict.classified)

    def reset_check(self) -> None:
        """Start a new check; the recovery kit of the old one is discarded."""
        self.verdict.reset()
        self.recovery.reset()
        self.checklist.reset()
        logger.info(f"[SESSION {self.session_id}] Check reset")


# ---------- REGISTRY ----------

_sessions: dict[str, ShieldSession] = {}
session_lock: Lock = Lock()


def get_or_create_session(session_id: str | None = None, **kwargs) -> ShieldSession:
    """
    Retrieve an existing session or create a new one.

    Args:
        session_id: Tab/session identifier; a random one is generated if missing
        **kwargs: Passed to ShieldSession when a new session is created

    Returns:
        The ShieldSession for session_id
    """
    session_id = session_id or f"session-{uuid.uuid4()}"

    with session_lock:
        session = _sessions.get(session_id)
        if session is None:
            session = ShieldSession(session_id, **kwargs)
            _sessions[session_id] = session
            logger.info(f"[SESSION {session_id}] Created")

    return session


def drop_session(session_id: str) -> bool:
    """Forget a session. Returns True if it existed."""
    with session_lock:
        existed = _sessions.pop(session_id, None) is not None
    if existed:
        logger.info(f"[SESSION {session_id}] Dropped")
    return existed


def active_sessions() -> list[str]:
    with session_lock:
        return list(_sessions)
