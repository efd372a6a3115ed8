# convo_gateway/utils/__init__.py

import random
import re
import string
import time
from typing import Optional

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits
_LETTER = re.compile(r"[a-zA-Z]")


def unique_name(prefix: str, now_ms: Optional[int] = None) -> str:
    """Return ``<prefix>-<epochMillis>-<6 random [a-z0-9]>``.

    Used for generated channel names and provisioning session labels; the
    result is a label only and is never looked up again.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=6))
    return f"{prefix}-{now_ms}-{suffix}"


def generate_channel_name() -> str:
    return unique_name("ai-conversation")


def is_string_uid(uid: str) -> bool:
    """True when the identity contains a letter and must be sent as a string uid."""
    return _LETTER.search(uid) is not None


def parse_modalities(raw: Optional[str]) -> Optional[list]:
    if not raw:
        return None
    items = [part.strip() for part in raw.split(",") if part.strip()]
    return items or None
