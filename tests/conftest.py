import asyncio

import pytest

from scamshield.notifications import NoticeCollector
from scamshield.schemas import (
    ChatResponse, PlaybookResponse, RecoveryProgressResponse, ReportsResponse,
    VerdictResponse, WarningCardResponse,
)

HIGH_RISK_VERDICT = VerdictResponse(
    verdict="HIGH_RISK",
    score=93,
    reasons=[
        "Known malicious behavior on this address.",
        "Community reports indicate scam activity.",
    ],
    sources=["chainabuse", "community"],
)

PLAYBOOK = PlaybookResponse(
    killerPitch="We handle what happens after the scam.",
    playbook={"reportChannels": [{"name": "Bank", "action": "Call the fraud hotline"}]},
    recoveryTasks=[
        {"id": "bank_freeze", "label": "Bank freeze request submitted", "why": "Stops transfers", "weight": 60},
        {"id": "police_report", "label": "Police report filed", "why": "Legal record", "weight": 40},
    ],
)

REPORTS = ReportsResponse(forBank="Dear bank...", forPolice="To PDRM...", forPlatform="Abuse team...")

WARNING_CARD = WarningCardResponse(
    warningPageUrl="https://scamshield.example/w/abc123",
    imageUrl="https://scamshield.example/w/abc123.png",
    slug="abc123",
)


class FakeApi:
    """
    In-memory stand-in for AsyncApiClient.

    - results[name]: value returned by that call
    - failures[name]: exception raised instead
    - gates[name]: asyncio.Event the call waits on before answering
    - chat_replies: queue of ChatResponse / Exception for send_chat_message
    """

    def __init__(self):
        self.results = {
            "verdict": HIGH_RISK_VERDICT,
            "playbook": PLAYBOOK,
            "reports": REPORTS,
            "warning_card": WARNING_CARD,
            "progress": RecoveryProgressResponse(progress=60),
        }
        self.failures = {}
        self.gates = {}
        self.chat_replies = []
        self.calls = []
        self.in_flight = {}
        self.max_in_flight = {}

    async def _call(self, name, *args):
        self.calls.append((name, args))
        self.in_flight[name] = self.in_flight.get(name, 0) + 1
        self.max_in_flight[name] = max(self.max_in_flight.get(name, 0), self.in_flight[name])
        try:
            gate = self.gates.get(name)
            if gate is not None:
                await gate.wait()
            else:
                await asyncio.sleep(0)
            if name in self.failures:
                raise self.failures[name]
            return self.results.get(name)
        finally:
            self.in_flight[name] -= 1

    def count(self, name):
        return sum(1 for n, _ in self.calls if n == name)

    def args_of(self, name):
        return [a for n, a in self.calls if n == name]

    async def submit_verdict(self, kind, value, chain=None):
        return await self._call("verdict", kind, value, chain)

    async def get_playbook(self):
        return await self._call("playbook")

    async def generate_reports(self, payload, ai=False):
        return await self._call("reports", payload, ai)

    async def create_warning_card(self, payload):
        return await self._call("warning_card", payload)

    async def update_recovery_progress(self, completed_task_ids):
        return await self._call("progress", completed_task_ids)

    async def send_chat_message(self, messages):
        if self.chat_replies:
            reply = self.chat_replies.pop(0)
        else:
            reply = ChatResponse(message="ok")
        self.results["chat"] = reply
        if isinstance(reply, Exception):
            self.failures["chat"] = reply
        else:
            self.failures.pop("chat", None)
        return await self._call("chat", list(messages))


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def notices():
    return NoticeCollector()
