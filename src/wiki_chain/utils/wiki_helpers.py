"""
Helper functions for Wikipedia page title normalization and comparison.
"""

import re
import urllib.parse
from typing import Optional

DISAMBIGUATION_MARKER = "(disambiguation)"

_PARENTHETICAL = re.compile(r"\s*\([^()]*\)")


def extract_title(raw: Optional[str]) -> Optional[str]:
    """Returns the page title referred to by a user-supplied title or article URL.

    Args:
      raw: A page title, or a full article URL such as
        "https://en.wikipedia.org/wiki/Kevin_Bacon".

    Returns:
      The readable page title, or None if the input is empty.

    Examples:
      "https://en.wikipedia.org/wiki/Nip%2FTuck"   =>   "Nip/Tuck"
      "  Notre_Dame_Fighting_Irish "               =>   "Notre Dame Fighting Irish"
    """
    if not raw or not raw.strip():
        return None
    text = raw.strip()
    parsed = urllib.parse.urlparse(text)
    if parsed.scheme in ("http", "https") and (parsed.hostname or "").endswith("wikipedia.org"):
        if parsed.path.startswith("/wiki/") and len(parsed.path) > len("/wiki/"):
            text = urllib.parse.unquote(parsed.path[len("/wiki/"):])
    return normalize_title(text) or None


def normalize_title(title: str) -> str:
    """Returns the title with underscores converted to spaces and surrounding whitespace removed."""
    return title.replace("_", " ").strip()


def titles_equal(a: Optional[str], b: Optional[str]) -> bool:
    """Returns whether two titles denote the same node (case-insensitive)."""
    if a is None or b is None:
        return False
    return a.lower() == b.lower()


def is_disambiguation(title: str) -> bool:
    """Returns whether the title carries the disambiguation marker suffix.

    Examples:
      "Mercury (disambiguation)"   =>   True
      "Mercury (planet)"           =>   False
    """
    return title.strip().lower().endswith(DISAMBIGUATION_MARKER)


def has_parenthetical(title: str) -> bool:
    """Returns whether the title contains a parenthetical qualifier."""
    return _PARENTHETICAL.search(title) is not None


def strip_parentheticals(title: str) -> str:
    """Returns the title with every parenthetical qualifier removed.

    Examples:
      "Python (programming language)"   =>   "Python"
      "Mercury"                         =>   "Mercury"
    """
    return _PARENTHETICAL.sub("", title).strip()


def article_url(title: str, language: str = "en") -> str:
    """Returns the article URL for a title."""
    return f"https://{language}.wikipedia.org/wiki/{urllib.parse.quote(title.replace(' ', '_'))}"
