"""
Link extraction from raw wikitext.

Used when infobox or navbox links must be excluded, which the indexed link
listing cannot do.
"""
import re
from typing import Iterable, List

from wiki_chain.utils.wiki_helpers import normalize_title

# [[Target]], [[Target|label]], [[Target#Section|label]]
LINK_PATTERN = re.compile(r"\[\[([^\]|#]+)(?:[^\]]*)\]\]")

EXCLUDED_LINK_PREFIXES = ("file:", "image:", "category:")

INFOBOX = "Infobox"
NAVBOX = "Navbox"


def extract_wiki_links(wikitext: str) -> List[str]:
    """
    Return the unique article link targets in the markup, in order of appearance.

    File, image and category links are skipped and underscores become spaces.
    """
    links = {}
    for match in LINK_PATTERN.finditer(wikitext):
        title = normalize_title(match.group(1))
        if not title or title.lower().startswith(EXCLUDED_LINK_PREFIXES):
            continue
        links[title] = None
    return list(links)


def strip_templates(wikitext: str, names: Iterable[str]) -> str:
    """
    Remove every template block whose name starts with one of the given names.

    Blocks are matched case-insensitively and removed up to their matching
    closing braces, so templates nested inside them go too. An unterminated
    block runs to the end of the text.
    """
    names = [name for name in names if name]
    if not names:
        return wikitext

    opener = re.compile(
        r"\{\{\s*(?:" + "|".join(re.escape(name) for name in names) + r")",
        re.IGNORECASE,
    )

    pieces = []
    position = 0
    while True:
        match = opener.search(wikitext, position)
        if match is None:
            pieces.append(wikitext[position:])
            break
        pieces.append(wikitext[position:match.start()])
        position = _template_end(wikitext, match.start())
    return "".join(pieces)


def _template_end(text: str, start: int) -> int:
    """Index just past the '}}' closing the template that opens at start."""
    depth = 0
    i = start
    while i < len(text) - 1:
        pair = text[i:i + 2]
        if pair == "{{":
            depth += 1
            i += 2
        elif pair == "}}":
            depth -= 1
            i += 2
            if depth == 0:
                return i
        else:
            i += 1
    return len(text)


def extract_filtered_links(wikitext: str, include_infobox: bool, include_navbox: bool) -> List[str]:
    """Extract article links after dropping the excluded template categories."""
    excluded = []
    if not include_infobox:
        excluded.append(INFOBOX)
    if not include_navbox:
        excluded.append(NAVBOX)
    return extract_wiki_links(strip_templates(wikitext, excluded))
