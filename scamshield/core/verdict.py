"""
Verdict Flow Controller
========================
Phase state machine behind the "check a wallet or handle" flow:

    INPUT --submit--> LOADING --success--> RESULT --continue--> RECOVERY
                        |
                        +--failure--> INPUT

reset() returns to INPUT from any phase.

Rules:
- submit() only leaves INPUT for a submittable ClassifiedInput, and only
  one verdict request is ever in flight per controller.
- A failed verdict request is not retried. The user gets an error notice
  and lands back on INPUT with nothing left over from the attempt.
- continue_() is only offered for HIGH_RISK and UNKNOWN verdicts. A LEGIT
  verdict can only be reset.
- A VerdictResult exists exactly while the phase is RESULT or RECOVERY.

Every await is followed by a generation check, so a verdict that arrives
after reset() is dropped instead of resurrecting the old check.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from scamshield.core.classifier import ClassifiedInput, mask_identifier
from scamshield.core.observable import Observable
from scamshield.notifications import ERROR, Notifier, log_notice
from scamshield.remote.api_client import ApiError

logger = logging.getLogger(__name__)


class Phase(str, Enum):
    INPUT = "input"
    LOADING = "loading"
    RESULT = "result"
    RECOVERY = "recovery"


class VerdictKey(str, Enum):
    LEGIT = "LEGIT"
    HIGH_RISK = "HIGH_RISK"
    UNKNOWN = "UNKNOWN"


# Verdicts that unlock the recovery kit
RECOVERABLE_VERDICTS = {VerdictKey.HIGH_RISK, VerdictKey.UNKNOWN}


@dataclass(frozen=True)
class VerdictResult:
    verdict_key: VerdictKey
    score: int
    reasons: tuple[str, ...] = ()
    cached: bool = False
    sources: tuple[str, ...] = ()
    next_actions: tuple[str, ...] = ()

    @classmethod
    def from_response(cls, response) -> "VerdictResult":
        """Build from a schemas.VerdictResponse. Unknown verdict strings map to UNKNOWN."""
        try:
            key = VerdictKey(str(response.verdict).upper())
        except ValueError:
            logger.warning(f"[VERDICT] Unrecognized verdict '{response.verdict}', treating as UNKNOWN")
            key = VerdictKey.UNKNOWN

        score = int(round(min(max(float(response.score), 0.0), 100.0)))

        return cls(
            verdict_key=key,
            score=score,
            reasons=tuple(response.reasons),
            cached=bool(response.cached),
            sources=tuple(response.sources),
            next_actions=tuple(response.nextActions),
        )

    @property
    def allows_recovery(self) -> bool:
        return self.verdict_key in RECOVERABLE_VERDICTS


@dataclass(frozen=True)
class VerdictState:
    phase: Phase
    result: VerdictResult | None = None
    classified: ClassifiedInput | None = None
    error: str | None = field(default=None)


class VerdictController(Observable):
    """
    Owns the phase and the VerdictResult for one check at a time.

    Args:
        api: Object with an async submit_verdict(kind, value, chain)
        notify: Notifier for user-facing errors
    """

    def __init__(self, api, notify: Notifier = log_notice):
        super().__init__()
        self.api = api
        self.notify = notify

        self.phase: Phase = Phase.INPUT
        self.result: VerdictResult | None = None
        self.classified: ClassifiedInput | None = None
        self.last_error: str | None = None
        self._generation = 0

    def snapshot(self) -> VerdictState:
        return VerdictState(self.phase, self.result, self.classified, self.last_error)

    # ---------- TRANSITIONS ----------

    async def submit(self, classified: ClassifiedInput, chain: str | None = None) -> bool:
        """
        Request a verdict for classified input.

        Returns True if a request was issued, False if the call was a
        no-op (NONE input, or not in the INPUT phase).
        """
        if not classified.submittable:
            logger.debug("[VERDICT] Submit ignored: input not classifiable")
            return False

        if self.phase is not Phase.INPUT:
            logger.info(f"[VERDICT] Submit ignored: phase is {self.phase.value}")
            return False

        self._generation += 1
        generation = self._generation

        self.phase = Phase.LOADING
        self.classified = classified
        self.last_error = None
        self._notify()

        logger.info(f"[VERDICT] Checking {classified.kind.value} "
                    f"{mask_identifier(classified.value)}")

        try:
            response = await self.api.submit_verdict(classified.kind.value, classified.value, chain)
            result = VerdictResult.from_response(response)
        except ApiError as e:
            self._fail(generation, str(e) or "Verdict check failed")
            return True
        except Exception as e:
            logger.error(f"[VERDICT] Unexpected error: {e}")
            self._fail(generation, str(e) or "Verdict check failed")
            return True

        if generation != self._generation:
            logger.debug("[VERDICT] Dropping verdict for a superseded check")
            return True

        self.result = result
        self.phase = Phase.RESULT
        self._notify()

        logger.info(f"[VERDICT] {result.verdict_key.value} score={result.score} "
                    f"cached={result.cached} reasons={len(result.reasons)}")
        return True

    def _fail(self, generation: int, message: str) -> None:
        if generation != self._generation:
            logger.debug(f"[VERDICT] Dropping failure for a superseded check: {message}")
            return

        logger.warning(f"[VERDICT] Check failed: {message}")
        self.phase = Phase.INPUT
        self.result = None
        self.classified = None
        self.last_error = message
        self._notify()
        self.notify(message, ERROR)

    def continue_(self) -> bool:
        """
        Move from RESULT to RECOVERY.

        Returns True when the controller is (now) in RECOVERY. LEGIT
        verdicts and any phase other than RESULT/RECOVERY are rejected.
        """
        if self.phase is Phase.RECOVERY:
            return True

        if self.phase is not Phase.RESULT or self.result is None:
            logger.debug(f"[VERDICT] Continue rejected in phase {self.phase.value}")
            return False

        if not self.result.allows_recovery:
            logger.info(f"[VERDICT] Continue rejected for {self.result.verdict_key.value} verdict")
            return False

        self.phase = Phase.RECOVERY
        self._notify()
        logger.info("[VERDICT] Entered recovery")
        return True

    def reset(self) -> None:
        """Back to INPUT from anywhere; any pending verdict is discarded."""
        if (self.phase is Phase.INPUT and self.result is None
                and self.classified is None and self.last_error is None):
            return

        self._generation += 1
        self.phase = Phase.INPUT
        self.result = None
        self.classified = None
        self.last_error = None
        self._notify()
        logger.info("[VERDICT] Reset")
