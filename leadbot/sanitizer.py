"""Clean generated replies before they are shown or stored.

Generation services sometimes echo instructional scaffolding ("*warm tone*",
"[Note: ...]", "CURRENT PHASE: ..."). This is a text filter, not a semantic
check.
"""

import re
from typing import Optional

from leadbot.config import config

ELLIPSIS = "..."

_META_PATTERNS = [
    re.compile(r"\*\*.*?\*\*", re.DOTALL),       # **bold annotations**
    re.compile(r"\*[^*]*\*"),                    # *stage directions*
    re.compile(r"\[[^\]]*\]"),                   # [bracketed notes]
    # Echoed prompt scaffolding only, not prose that happens to start alike.
    re.compile(
        r"^[ \t]*Note[ \t]*:[ \t]*(?:ask|keep|be|stay|the question|remember|avoid|do not|don't)\b.*$",
        re.IGNORECASE | re.MULTILINE,
    ),
    re.compile(r"^[ \t]*FOCUS[ \t]*:.*$", re.MULTILINE),
    re.compile(r"^[ \t]*CURRENT PHASE\b.*$", re.MULTILINE),
]

# Leftovers of unbalanced markers.
_STRAY_MARKERS = re.compile(r"[*\[\]]")
_WHITESPACE = re.compile(r"\s+")
_SENTENCE_END = ".?!"


def strip_meta(text: str) -> str:
    cleaned = text
    for pattern in _META_PATTERNS:
        cleaned = pattern.sub(" ", cleaned)
    return _STRAY_MARKERS.sub("", cleaned)


def truncate(text: str, max_chars: int, min_boundary: int) -> str:
    """Cut to at most ``max_chars``, preferring a sentence boundary."""
    if len(text) <= max_chars:
        return text
    window = text[:max_chars]
    boundary = max(window.rfind(ch) for ch in _SENTENCE_END)
    if boundary >= min_boundary:
        return window[: boundary + 1]
    if max_chars <= len(ELLIPSIS):
        return window
    return window[: max_chars - len(ELLIPSIS)].rstrip() + ELLIPSIS


def sanitize_reply(
    text: str,
    max_chars: Optional[int] = None,
    min_boundary: Optional[int] = None,
) -> str:
    max_chars = config.MAX_REPLY_CHARS if max_chars is None else max_chars
    min_boundary = config.MIN_REPLY_BOUNDARY if min_boundary is None else min_boundary

    cleaned = strip_meta(text or "")
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return truncate(cleaned, max_chars, min_boundary)
