"""
Helpers for the opaque rich-text `content` field.

Content is never parsed or validated; tags are stripped only to derive word
counts, reading time and list-view excerpts.
"""

import math
import re

_TAG_RE = re.compile(r"<[^>]*>")

WORDS_PER_MINUTE = 200
EXCERPT_LENGTH = 150


def strip_markup(content: str) -> str:
    return _TAG_RE.sub("", content or "")


def count_words(content: str) -> int:
    return len(strip_markup(content).split())


def reading_time_minutes(word_count: int) -> int:
    return math.ceil(word_count / WORDS_PER_MINUTE)


def excerpt(content: str, length: int = EXCERPT_LENGTH) -> str:
    plain = strip_markup(content).strip()
    if len(plain) > length:
        return plain[:length] + "..."
    return plain
