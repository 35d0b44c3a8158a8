"""
Input Classification Engine
============================
Maps whatever the user pasted into the check box to the kind of
identifier the verdict API understands.

Kinds:
- WALLET - EVM address (0x + 40 hex characters)
- HANDLE - phone number, social username, or social/messaging profile URL
- NONE   - nothing we can check; the submit button stays disabled

Rules are evaluated in a fixed order and the first match wins. A string
that fits several rules resolves by that order, not by which rule is the
most specific: an all-digit string that is both a phone number and a
valid username is classified by the phone rule.

classify() is total. It never raises and never touches the network.
"""

import re
import logging
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)


class InputKind(str, Enum):
    WALLET = "wallet"
    HANDLE = "handle"
    NONE = "none"


# ==============================
# REGEX PATTERNS
# ==============================

EVM_ADDRESS_REGEX = re.compile(r"^0x[0-9a-fA-F]{40}$")

# Phone numbers are matched after spaces and dashes are stripped
PHONE_SEPARATORS_REGEX = re.compile(r"[\s-]")
PHONE_REGEX = re.compile(r"^\+?\d{8,15}$")

USERNAME_REGEX = re.compile(r"^@?[A-Za-z0-9._-]{3,64}$")

# Social and messaging hosts we accept as profile links
SOCIAL_DOMAINS = (
    "t.me", "telegram.me", "wa.me", "whatsapp.com", "instagram.com",
    "facebook.com", "fb.com", "x.com", "twitter.com",
)

SOCIAL_URL_REGEX = re.compile(
    r"^https?://(?:www\.)?(" + "|".join(re.escape(d) for d in SOCIAL_DOMAINS) + r")/.+",
    re.IGNORECASE
)

# Report channel label per social host
CHANNEL_BY_DOMAIN = {
    "t.me": "Telegram",
    "telegram.me": "Telegram",
    "wa.me": "WhatsApp",
    "whatsapp.com": "WhatsApp",
    "instagram.com": "Instagram",
    "facebook.com": "Facebook",
    "fb.com": "Facebook",
    "x.com": "X",
    "twitter.com": "X",
}


@dataclass(frozen=True)
class ClassifiedInput:
    kind: InputKind
    value: str
    # Name of the rule that matched ("" for NONE)
    source: str = ""

    @property
    def submittable(self) -> bool:
        return self.kind is not InputKind.NONE


NO_INPUT = ClassifiedInput(InputKind.NONE, "")


# ==============================
# CLASSIFICATION
# ==============================

def classify(raw) -> ClassifiedInput:
    """
    Classify raw pasted text.

    Args:
        raw: Text from the input box (anything else classifies as NONE)

    Returns:
        ClassifiedInput with the trimmed text as value
    """
    if not isinstance(raw, str):
        return NO_INPUT

    trimmed = raw.strip()
    if not trimmed:
        return NO_INPUT

    if EVM_ADDRESS_REGEX.match(trimmed):
        return ClassifiedInput(InputKind.WALLET, trimmed, "evm_address")

    compact = PHONE_SEPARATORS_REGEX.sub("", trimmed)
    if PHONE_REGEX.match(compact):
        return ClassifiedInput(InputKind.HANDLE, trimmed, "phone")

    if USERNAME_REGEX.match(trimmed):
        return ClassifiedInput(InputKind.HANDLE, trimmed, "username")

    if SOCIAL_URL_REGEX.match(trimmed):
        return ClassifiedInput(InputKind.HANDLE, trimmed, "social_url")

    return ClassifiedInput(InputKind.NONE, trimmed)


# ---------- HELPERS ----------

def mask_identifier(value: str) -> str:
    """Shorten an identifier for logs: first 6 and last 4 characters."""
    cleaned = (value or "").strip()
    if len(cleaned) <= 10:
        return cleaned
    return f"{cleaned[:6]}...{cleaned[-4:]}"


def report_channel(classified: ClassifiedInput) -> str:
    """
    Best-effort channel label for incident reports.

    Profile URLs map to their platform, phone numbers to "Phone" and
    wallets to "Crypto wallet". Bare usernames carry no platform.
    """
    if classified.source == "evm_address":
        return "Crypto wallet"
    if classified.source == "phone":
        return "Phone"
    if classified.source == "social_url":
        match = SOCIAL_URL_REGEX.match(classified.value)
        if match:
            return CHANNEL_BY_DOMAIN.get(match.group(1).lower(), "Unknown")
    if classified.source == "username":
        return "Social handle"
    return "Unknown"
