"""
Conversation Engine
====================
State behind the ScamShield AI assistant chat.

The engine keeps a linear message history that starts with a greeting,
sends it to the chat API, and reveals the reply word by word so the
assistant appears to type. While a reply is being revealed the user can
still reset the conversation at any time.

Lifecycle of one send():
    1. Append the USER message and an empty ASSISTANT placeholder
       (revealing=True). `sending` goes True.
    2. POST the history (role + content only) to /api/ai/chat.
    3. Reveal the reply one word per tick, each tick visible to observers,
       with a randomized delay between ticks.
    4. Mark the placeholder revealing=False, attach follow-up options,
       clear `sending`. Options are never visible mid-reveal.

On failure the placeholder becomes an "Error: ..." message at once (no
typing effect) and `sending` is cleared. Prior history is untouched.

Sends are serialized: a send while another is still sending or revealing
is rejected, so placeholders can never interleave.

reset() swaps the history for a fresh greeting and bumps the generation
counter. The network call already in flight is not cancelled; its reply,
and any reveal still running, see a stale generation and stop without
touching the new history.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, replace
from enum import Enum
from typing import Awaitable, Callable

from scamshield import config
from scamshield.core.observable import Observable
from scamshield.notifications import ERROR, Notifier, log_notice
from scamshield.remote.api_client import ApiError
from scamshield.schemas import ChatMessagePayload

logger = logging.getLogger(__name__)


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatOption:
    text: str
    action: str = ""


@dataclass(frozen=True)
class ConversationMessage:
    role: Role
    content: str
    revealing: bool = False
    options: tuple[ChatOption, ...] = ()


@dataclass(frozen=True)
class QuickAction:
    key: str
    label: str
    prompt: str


GREETING = (
    "**Hi, I'm ScamShield AI**\n\n"
    "Tell me what happened, paste a suspicious wallet or handle, or ask what to do next.\n\n"
    "*I can help you act fast: freeze transfers, collect evidence, and file reports.*"
)

# Offered only while the conversation holds just the greeting
QUICK_ACTIONS = (
    QuickAction("scammed", "I got scammed", "I got scammed, what now?"),
    QuickAction("check_wallet", "Check a wallet", "Check a wallet address"),
    QuickAction("report", "Generate a report", "Generate a report"),
    QuickAction("emergency", "Emergency contacts", "What are the emergency contacts?"),
)

EMPTY_REPLY = "Error processing request."
SEND_FAILED = "Chat failed. Try again."


# ==============================
# DELAY SOURCES
# ==============================

class RandomDelay:
    """Uniform per-word delay in [min_ms, max_ms], returned in seconds."""

    def __init__(self, min_ms: int = config.REVEAL_MIN_MS, max_ms: int = config.REVEAL_MAX_MS,
                 rng: random.Random | None = None):
        if min_ms < 0 or max_ms < min_ms:
            raise ValueError(f"Invalid reveal delay bounds: {min_ms}..{max_ms} ms")
        self.min_ms = min_ms
        self.max_ms = max_ms
        self.rng = rng or random.Random()

    def __call__(self) -> float:
        return self.rng.uniform(self.min_ms, self.max_ms) / 1000.0


def no_delay() -> float:
    return 0.0


@dataclass(frozen=True)
class ConversationState:
    messages: tuple[ConversationMessage, ...]
    sending: bool
    reveal_index: int | None

    @property
    def quick_actions_visible(self) -> bool:
        return len(self.messages) == 1


class ConversationEngine(Observable):
    """
    Args:
        api: Object with an async send_chat_message(list[ChatMessagePayload])
        notify: Notifier for user-facing errors
        delay: Callable returning the pause before the next word, in seconds
        sleep: Coroutine function used to wait between words
        greeting: Text of the opening assistant message
    """

    def __init__(self, api, notify: Notifier = log_notice,
                 delay: Callable[[], float] | None = None,
                 sleep: Callable[[float], Awaitable] = asyncio.sleep,
                 greeting: str = GREETING):
        super().__init__()
        self.api = api
        self.notify = notify
        self.delay = delay or RandomDelay()
        self.sleep = sleep
        self.greeting = greeting

        self.messages: list[ConversationMessage] = [self._greeting_message()]
        self.sending = False
        self.reveal_index: int | None = None
        self._generation = 0

    def _greeting_message(self) -> ConversationMessage:
        return ConversationMessage(Role.ASSISTANT, self.greeting)

    def snapshot(self) -> ConversationState:
        return ConversationState(tuple(self.messages), self.sending, self.reveal_index)

    @property
    def quick_actions_visible(self) -> bool:
        return len(self.messages) == 1

    @property
    def quick_actions(self) -> tuple[QuickAction, ...]:
        return QUICK_ACTIONS if self.quick_actions_visible else ()

    def history_payload(self) -> list[ChatMessagePayload]:
        """Role + content of every settled message, in order."""
        return [
            ChatMessagePayload(role=m.role.value, content=m.content)
            for m in self.messages
            if not m.revealing
        ]

    # ---------- SEND ----------

    async def send(self, text: str) -> bool:
        """
        Send a user message and reveal the reply.

        Returns False if the send was rejected (blank text, or another
        send still in progress). Otherwise returns True once the reply
        has been revealed, replaced by an error, or dropped by reset().
        """
        text = (text or "").strip()
        if not text:
            logger.debug("[CHAT] Send rejected: empty message")
            return False
        if self.sending:
            logger.info("[CHAT] Send rejected: previous reply still in progress")
            return False

        generation = self._generation
        user_message = ConversationMessage(Role.USER, text)
        history = self.history_payload() + [ChatMessagePayload(role=Role.USER.value, content=text)]

        self.messages.append(user_message)
        self.messages.append(ConversationMessage(Role.ASSISTANT, "", revealing=True))
        self.reveal_index = len(self.messages) - 1
        self.sending = True
        self._notify()

        logger.info(f"[CHAT] Sending {len(history)} messages (latest {len(text)} chars)")

        try:
            response = await self.api.send_chat_message(history)
        except ApiError as e:
            self._fail(generation, str(e))
            return True
        except Exception as e:
            logger.error(f"[CHAT] Unexpected send error: {e}")
            self._fail(generation, str(e))
            return True

        if generation != self._generation:
            logger.debug("[CHAT] Dropping reply for a conversation that was reset")
            return True

        reply = response.message or response.error or EMPTY_REPLY
        options = tuple(ChatOption(o.text, o.action) for o in response.options)
        await self._reveal(generation, reply, options)
        return True

    async def send_quick_action(self, key: str) -> bool:
        """Send the preset prompt of a quick action. Only valid on a fresh conversation."""
        if not self.quick_actions_visible:
            logger.debug(f"[CHAT] Quick action '{key}' ignored: conversation already started")
            return False
        for action in QUICK_ACTIONS:
            if action.key == key:
                return await self.send(action.prompt)
        logger.warning(f"[CHAT] Unknown quick action '{key}'")
        return False

    async def choose_option(self, option: ChatOption) -> bool:
        """Send a follow-up option offered on the latest assistant message."""
        last = self.messages[-1]
        if last.role is not Role.ASSISTANT or last.revealing or option not in last.options:
            logger.debug(f"[CHAT] Option '{option.text}' is not on offer")
            return False
        return await self.send(option.text)

    # ---------- REVEAL SCHEDULER ----------

    async def _reveal(self, generation: int, text: str, options: tuple[ChatOption, ...]) -> None:
        # Split on single spaces so the joined result is exactly the server text
        words = text.split(" ")
        accumulated = ""

        for i, word in enumerate(words):
            if generation != self._generation:
                logger.debug("[CHAT] Reveal stopped: conversation was reset")
                return

            accumulated = word if i == 0 else f"{accumulated} {word}"
            self._update_placeholder(content=accumulated)
            self._notify()

            if i < len(words) - 1:
                await self.sleep(self.delay())

        if generation != self._generation:
            return

        self._update_placeholder(revealing=False, options=options)
        self.reveal_index = None
        self.sending = False
        self._notify()

        logger.info(f"[CHAT] Reply revealed: {len(words)} words, {len(options)} options")

    def _update_placeholder(self, **changes) -> None:
        index = self.reveal_index
        if index is None or index >= len(self.messages):
            return
        self.messages[index] = replace(self.messages[index], **changes)

    def _fail(self, generation: int, reason: str) -> None:
        if generation != self._generation:
            logger.debug(f"[CHAT] Dropping failure for a conversation that was reset: {reason}")
            return

        logger.warning(f"[CHAT] Send failed: {reason}")
        index = self.reveal_index
        error_message = ConversationMessage(
            Role.ASSISTANT, f"Error: {reason or SEND_FAILED}", revealing=False
        )
        if index is not None and index < len(self.messages):
            self.messages[index] = error_message
        else:
            self.messages.append(error_message)

        self.reveal_index = None
        self.sending = False
        self._notify()
        self.notify(SEND_FAILED, ERROR)

    # ---------- RESET ----------

    def reset(self) -> None:
        """Start over from the greeting. Safe to call at any time, any number of times."""
        pristine = (len(self.messages) == 1 and self.messages[0] == self._greeting_message()
                    and not self.sending and self.reveal_index is None)
        if pristine:
            return

        self._generation += 1
        self.messages = [self._greeting_message()]
        self.sending = False
        self.reveal_index = None
        self._notify()
        logger.info("[CHAT] Conversation reset")
