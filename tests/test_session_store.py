import asyncio

from scamshield.core.classifier import InputKind
from scamshield.core.conversation import no_delay
from scamshield.core.verdict import Phase
from scamshield.main import run_check
from scamshield.schemas import VerdictResponse
from scamshield.session_store import (
    ShieldSession, active_sessions, drop_session, get_or_create_session,
)

WALLET = "0x" + "cd" * 20


def test_risky_check_flows_into_recovery_once(api):
    session = ShieldSession("tab-1", api=api, delay=no_delay)

    async def scenario():
        classified = await session.check(WALLET)
        first = await session.open_recovery()
        second = await session.open_recovery()
        return classified, first, second

    classified, first, second = asyncio.run(scenario())

    assert classified.kind is InputKind.WALLET
    assert session.verdict.phase is Phase.RECOVERY
    assert first is second and first.ready
    assert api.count("playbook") == 1
    assert api.count("reports") == 1
    assert api.count("warning_card") == 1
    # Checklist switched to the playbook's tasks
    assert [t.id for t in session.checklist.tasks] == ["bank_freeze", "police_report"]


def test_legit_check_never_fetches_recovery(api):
    api.results["verdict"] = VerdictResponse(verdict="LEGIT", score=3)
    session = ShieldSession("tab-2", api=api)

    async def scenario():
        await session.check("@genuine_shop")
        return await session.open_recovery()

    assert asyncio.run(scenario()) is None
    assert session.verdict.phase is Phase.RESULT
    assert api.count("playbook") == 0


def test_unclassifiable_input_does_not_submit(api):
    session = ShieldSession("tab-3", api=api)
    classified = asyncio.run(session.check("what is this?"))
    assert classified.kind is InputKind.NONE
    assert session.verdict.phase is Phase.INPUT
    assert api.calls == []


def test_reset_check_allows_a_fresh_recovery(api):
    session = ShieldSession("tab-4", api=api)

    async def scenario():
        await session.check(WALLET)
        await session.open_recovery()
        session.checklist.toggle("bank_freeze")
        session.reset_check()
        assert session.recovery.bundle is None
        assert session.checklist.completed == set()
        await session.check(WALLET)
        return await session.open_recovery()

    bundle = asyncio.run(scenario())
    assert bundle.ready
    assert api.count("playbook") == 2


def test_chat_is_independent_of_check_flow(api):
    session = ShieldSession("tab-5", api=api, delay=no_delay)

    async def scenario():
        await session.check(WALLET)
        await session.chat.send("hello")
        session.reset_check()

    asyncio.run(scenario())
    assert len(session.chat.messages) == 3


def test_registry_returns_same_session(api):
    session = get_or_create_session("registry-tab", api=api)
    assert get_or_create_session("registry-tab") is session
    assert "registry-tab" in active_sessions()
    assert drop_session("registry-tab") is True
    assert drop_session("registry-tab") is False
    assert get_or_create_session("registry-tab", api=api) is not session
    drop_session("registry-tab")


def test_generated_session_ids_are_unique(api):
    a = get_or_create_session(api=api)
    b = get_or_create_session(api=api)
    assert a.session_id != b.session_id
    drop_session(a.session_id)
    drop_session(b.session_id)


def test_run_check_summary(api):
    session = ShieldSession("cli-tab", api=api)
    summary = asyncio.run(run_check(session, f"  {WALLET}  "))

    assert summary["input"] == {"kind": "wallet", "value": WALLET}
    assert summary["phase"] == "recovery"
    assert summary["verdict"]["verdict"] == "HIGH_RISK"
    assert summary["recovery"]["reports"]["forPolice"] == "To PDRM..."
    assert summary["recovery"]["checklist"] == ["Bank freeze request submitted", "Police report filed"]


def test_run_check_with_unusable_input(api):
    summary = asyncio.run(run_check(ShieldSession("cli-tab-2", api=api), "??"))
    assert summary["input"]["kind"] == "none"
    assert summary["verdict"] is None
