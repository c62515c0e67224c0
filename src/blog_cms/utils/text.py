"""
Text helpers shared by the post and category services.

Slugs, tags and excerpts are all derived at write time, so the same functions are used on
create and on update.
"""

import re
from typing import Iterable, List, Optional

TITLE_STOP_WORDS = frozenset({"a", "an", "the", "in", "on", "of", "for", "to", "with"})
MIN_TAG_LENGTH = 3
EXCERPT_LENGTH = 197
EXCERPT_THRESHOLD = 200

_NON_WORD = re.compile(r"[^\w]+", re.ASCII)
_REPEATED_DASH = re.compile(r"-{2,}")
_NON_TAG = re.compile(r"[^\w ]+", re.ASCII)
_SPACES = re.compile(r" +")


def slugify(text: str) -> str:
    """Lowercase `text` and join its word runs with single hyphens."""
    slug = _NON_WORD.sub("-", str(text).lower())
    slug = _REPEATED_DASH.sub("-", slug)
    return slug.strip("-")


def parse_tags(raw: Optional[str]) -> List[str]:
    """Split a comma-separated tag string, trimming entries and dropping empties."""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def derive_tags_from_title(title: Optional[str]) -> List[str]:
    """
    Build tags from a title when the author supplied none.

    The title is lowercased and split on whitespace; stop words and tokens shorter than three
    characters are dropped. ``"The Quick Fox Jumps"`` gives ``["quick", "fox", "jumps"]``.
    """
    if not title:
        return []
    return [
        word
        for word in title.lower().split()
        if word not in TITLE_STOP_WORDS and len(word) >= MIN_TAG_LENGTH
    ]


def normalize_tag(tag: str) -> str:
    """SEO transform applied before persisting: ``"Web Dev!"`` -> ``"web-dev"``."""
    cleaned = _NON_TAG.sub("", tag.lower())
    return _SPACES.sub("-", cleaned)


def normalize_tags(tags: Iterable[str]) -> List[str]:
    return [normalize_tag(tag) for tag in tags]


def make_excerpt(content: str) -> str:
    """First 197 characters of `content`, with an ellipsis when it runs past 200."""
    suffix = "..." if len(content) > EXCERPT_THRESHOLD else ""
    return content[:EXCERPT_LENGTH] + suffix


def display_name(first_name: Optional[str], last_name: Optional[str], username: Optional[str]) -> str:
    """Full name, else username, else ``"Anonymous"``."""
    full_name = " ".join(part for part in (first_name, last_name) if part)
    return full_name or username or "Anonymous"
