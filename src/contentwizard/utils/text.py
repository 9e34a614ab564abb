"""Text helpers shared by word-count badges and read-time estimates.

Word counting must give the same answer everywhere it is shown, so every
caller goes through count_words() in this module.
"""

import math
import re


_TAG_RE = re.compile(r"<[^>]+>")
_MARKUP_RE = re.compile(r"[#*_`\[\]()>]+")

DEFAULT_WORDS_PER_MINUTE = 200


def strip_markup(text: str) -> str:
    """Remove HTML tags and lightweight Markdown punctuation from text."""
    if not text:
        return ""
    text = _TAG_RE.sub(" ", text)
    return _MARKUP_RE.sub(" ", text)


def count_words(text: str) -> int:
    """
    Count words after stripping markup.

    Example:
        >>> count_words("## Hello **world**")
        2
    """
    if not text:
        return 0
    # Hyphenated words count once; bare dashes (list markers, rules) not at all
    return sum(1 for token in strip_markup(text).split() if token.strip("-"))


def estimate_read_time(word_count: int, words_per_minute: int = DEFAULT_WORDS_PER_MINUTE) -> int:
    """Estimate reading time in whole minutes (at least 1 when there is any text)."""
    if word_count <= 0:
        return 0
    return max(1, math.ceil(word_count / max(1, words_per_minute)))


def truncate(text: str, max_length: int) -> str:
    """Truncate text to max_length characters, appending '...' when cut."""
    if len(text) <= max_length:
        return text
    return text[: max(0, max_length - 3)].rstrip() + "..."


def slugify(text: str) -> str:
    """Build a lowercase, hyphen-separated URL slug."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower())
    return slug.strip("-")
