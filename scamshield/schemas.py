"""
Pydantic Schema Definitions
============================
Defines request/response models for the ScamShield API as consumed by
the interaction core.

Response models accept extra fields (the server adds keys over time,
e.g. pendingEnrichment or report mode) and default every optional list,
so a slightly older or newer server never breaks a check.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class WireModel(BaseModel):
    """Base for every body exchanged with the API."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ---------- VERDICT ----------

class VerdictRequest(WireModel):
    type: str = Field(description="Input kind: 'wallet' or 'handle'")
    value: str = Field(description="Trimmed identifier as pasted by the user")
    chain: Optional[str] = Field(default=None, description="EVM chain hint for wallets")


class VerdictResponse(WireModel):
    verdict: str = Field(description="LEGIT, HIGH_RISK or UNKNOWN")
    score: float = Field(default=0, description="Risk score, 0-100")
    reasons: List[str] = Field(default=[], description="Ordered human-readable reasons")
    sources: List[str] = Field(default=[], description="Providers that contributed")
    nextActions: List[str] = Field(default=[], description="Suggested follow-up actions")
    cached: bool = Field(default=False, description="Served from the verdict cache")


# ---------- RECOVERY ----------

class RecoveryTaskModel(WireModel):
    id: str
    label: str
    why: str = ""
    weight: int = 0


class PlaybookResponse(WireModel):
    recoveryTasks: List[RecoveryTaskModel] = Field(default=[])
    playbook: Dict[str, Any] = Field(default={}, description="Emergency playbook sections")
    killerPitch: Optional[str] = None


class ReportPayload(WireModel):
    incidentTitle: str
    scamType: str
    occurredAt: str
    channel: str
    suspects: List[str]
    losses: str
    actionsTaken: List[str]
    extraNotes: str


class ReportsResponse(WireModel):
    forBank: str
    forPolice: str
    forPlatform: str


class WarningCardRequest(WireModel):
    verdict: str
    headline: str
    identifiers: Dict[str, str]
    reasons: List[str]


class WarningCardResponse(WireModel):
    warningPageUrl: str
    imageUrl: str
    slug: str


class RecoveryProgressRequest(WireModel):
    completedTaskIds: List[str]


class RecoveryProgressResponse(WireModel):
    progress: int = 0


# ---------- CHAT ----------

class ChatMessagePayload(WireModel):
    role: str = Field(description="'user' or 'assistant'")
    content: str


class ChatRequest(WireModel):
    messages: List[ChatMessagePayload]


class ChatOptionModel(WireModel):
    text: str
    action: str = ""


class ChatResponse(WireModel):
    message: Optional[str] = None
    options: List[ChatOptionModel] = Field(default=[])
    error: Optional[str] = None
