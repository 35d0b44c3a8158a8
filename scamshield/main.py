"""
ScamShield Console Runner
==========================
Drives a ShieldSession from the terminal against a running ScamShield API.

Commands:
    check <value>   - classify, request a verdict, and for risky verdicts
                      open the recovery kit (playbook, reports, warning card)
    chat            - talk to the ScamShield AI assistant; replies are
                      revealed word by word. "/reset" starts over,
                      "/quit" exits, "/1".."/4" send a quick action,
                      "#1".."#n" pick a follow-up option.

Configuration comes from the environment / .env (see scamshield.config).
"""

import argparse
import asyncio
import json
import logging
import sys

from scamshield import config
from scamshield.core.conversation import ConversationState
from scamshield.core.verdict import Phase
from scamshield.notifications import ERROR
from scamshield.session_store import ShieldSession, get_or_create_session

logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


def print_notice(message: str, level: str = "info") -> None:
    stream = sys.stderr if level == ERROR else sys.stdout
    print(f"[{level}] {message}", file=stream)


# ---------- CHECK ----------

async def run_check(session: ShieldSession, raw: str, chain: str | None = None) -> dict:
    """
    Run one full check and return a JSON-friendly summary.

    Keys: input, phase, verdict (or None), recovery (or None).
    """
    classified = await session.check(raw, chain)
    summary = {
        "input": {"kind": classified.kind.value, "value": classified.value},
        "phase": session.verdict.phase.value,
        "verdict": None,
        "recovery": None,
    }

    result = session.verdict.result
    if result is None:
        return summary

    summary["verdict"] = {
        "verdict": result.verdict_key.value,
        "score": result.score,
        "reasons": list(result.reasons),
        "cached": result.cached,
    }

    if result.allows_recovery:
        bundle = await session.open_recovery()
        if bundle is not None:
            summary["recovery"] = {
                "playbook": bundle.playbook.model_dump() if bundle.playbook else None,
                "reports": bundle.reports.model_dump() if bundle.reports else None,
                "warningCard": bundle.warning_card.model_dump() if bundle.warning_card else None,
                "checklist": [t.label for t in session.checklist.tasks],
            }

    summary["phase"] = session.verdict.phase.value
    return summary


# ---------- CHAT ----------

class TerminalChatView:
    """Prints the revealing assistant message as it grows."""

    def __init__(self):
        self.printed = 0

    def __call__(self, state: ConversationState) -> None:
        if state.reveal_index is None:
            return
        content = state.messages[state.reveal_index].content
        if len(content) > self.printed:
            sys.stdout.write(content[self.printed:])
            sys.stdout.flush()
            self.printed = len(content)

    def start(self) -> None:
        self.printed = 0
        sys.stdout.write("ai> ")


async def run_chat(session: ShieldSession) -> None:
    chat = session.chat
    view = TerminalChatView()
    chat.subscribe(view)

    print(chat.messages[0].content)

    while True:
        if chat.quick_actions_visible:
            for i, action in enumerate(chat.quick_actions, start=1):
                print(f"  /{i} {action.label}")

        raw = (await asyncio.to_thread(input, "you> ")).strip()
        if raw in {"/quit", "/exit"}:
            return
        if raw == "/reset":
            chat.reset()
            print(chat.messages[0].content)
            continue

        view.start()
        if raw.startswith("/") and raw[1:].isdigit() and chat.quick_actions_visible:
            index = int(raw[1:]) - 1
            if 0 <= index < len(chat.quick_actions):
                await chat.send_quick_action(chat.quick_actions[index].key)
        elif raw.startswith("#") and raw[1:].isdigit():
            options = chat.messages[-1].options
            index = int(raw[1:]) - 1
            if 0 <= index < len(options):
                await chat.choose_option(options[index])
        else:
            await chat.send(raw)
        print()

        last = chat.messages[-1]
        if last.role.value == "assistant" and not last.revealing and view.printed == 0:
            # Error replies are shown whole, without the typing effect
            print(last.content)
        for i, option in enumerate(last.options, start=1):
            print(f"  #{i} {option.text}")


# ---------- ENTRYPOINT ----------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="scamshield")
    parser.add_argument("--session", help="Session id (defaults to a fresh one)")
    parser.add_argument("--ai-reports", action="store_true", help="Request AI-written report drafts")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", help="Check a wallet address, phone number or social handle")
    check.add_argument("value")
    check.add_argument("--chain", help="EVM chain for wallet checks, e.g. ethereum, bsc")

    sub.add_parser("chat", help="Chat with the ScamShield AI assistant")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    session = get_or_create_session(args.session, notify=print_notice, use_ai_reports=args.ai_reports)

    if args.command == "check":
        summary = asyncio.run(run_check(session, args.value, args.chain))
        print(json.dumps(summary, indent=2, ensure_ascii=False))
        if summary["input"]["kind"] == "none":
            print_notice("Enter a wallet address (0x...), phone number, or social handle.", ERROR)
            return 2
        return 0 if summary["phase"] != Phase.INPUT.value else 1

    try:
        asyncio.run(run_chat(session))
    except (KeyboardInterrupt, EOFError):
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
