import re
from typing import Optional

# Canonical phrases that turn a chat message into a personality-profile request
PROFILE_KEYWORDS = (
    "who am i",
    "tell me about myself",
    "what kind of person am i",
    "what do you know about me",
    "my personality",
    "describe me",
    "what am i like",
)

_WHITESPACE = re.compile(r"\s+")


def is_profile_query(text: Optional[str]) -> bool:
    """True when ``text`` asks for a summary of the user's personality."""
    if not text:
        return False
    normalized = _WHITESPACE.sub(" ", text).strip().lower()
    return any(keyword in normalized for keyword in PROFILE_KEYWORDS)
