"""
Pytest configuration and shared fixtures.

FakeWikiApi stands in for WikiApiClient with a small in-memory link graph so
search, verification and retries can be tested without the network.
"""

import pytest
import logging
from typing import Dict, List, Optional, Tuple

from wiki_chain import EventBus, SearchEvent
from wiki_chain.models import BatchResolution, ResolvedTitle

# Configure logging for tests
logging.basicConfig(level=logging.INFO)


class FakeWikiApi:
    """
    In-memory replacement for WikiApiClient.

    Args:
        links: page -> pages it links to. Every key is an existing page, and so
            is every link target that is not a redirect.
        redirects: redirect title -> canonical title
        backlinks: explicit backlink listings, overriding the ones derived from links
        markup: page -> raw wikitext
        pages: extra existing pages with no outgoing links
        errors: title -> exception raised by every call about that title
    """

    def __init__(
        self,
        links: Optional[Dict[str, List[str]]] = None,
        redirects: Optional[Dict[str, str]] = None,
        backlinks: Optional[Dict[str, List[str]]] = None,
        markup: Optional[Dict[str, str]] = None,
        pages: Optional[List[str]] = None,
        errors: Optional[Dict[str, Exception]] = None,
    ):
        self.links = links or {}
        self.redirects = redirects or {}
        self.backlinks = backlinks
        self.markup = markup or {}
        self.errors = errors or {}
        self.calls: List[Tuple[str, object]] = []

        self.pages = set(self.links) | set(pages or [])
        for targets in self.links.values():
            self.pages.update(t for t in targets if t not in self.redirects)
        self.pages.update(self.redirects.values())
        self.pages.update(self.markup)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    # --- helpers ---

    @staticmethod
    def _normalize(title: str) -> str:
        title = title.replace("_", " ").strip()
        return title[:1].upper() + title[1:]

    def _check(self, title: str):
        if title in self.errors:
            raise self.errors[title]

    def _resolve(self, title: str) -> ResolvedTitle:
        name = self._normalize(title)
        if name in self.redirects:
            return ResolvedTitle(exists=True, canonical=self.redirects[name], is_redirect=True)
        if name in self.pages:
            return ResolvedTitle(exists=True, canonical=name)
        return ResolvedTitle(exists=False)

    def count(self, method: str) -> int:
        return sum(1 for name, _ in self.calls if name == method)

    @property
    def fetch_count(self) -> int:
        return sum(self.count(m) for m in ("fetch_outgoing_links", "fetch_incoming_links", "fetch_raw_markup"))

    # --- WikiApiClient interface ---

    async def resolve_title(self, title: str) -> ResolvedTitle:
        self.calls.append(("resolve_title", title))
        self._check(title)
        return self._resolve(title)

    async def resolve_titles(self, titles: List[str]) -> BatchResolution:
        self.calls.append(("resolve_titles", list(titles)))
        for title in titles:
            self._check(title)
        resolved = {title: self._resolve(title) for title in titles}
        redirects = {
            self._normalize(title): self.redirects[self._normalize(title)]
            for title in titles if self._normalize(title) in self.redirects
        }
        return BatchResolution(resolved=resolved, redirects=redirects)

    async def page_exists(self, title: str) -> Optional[str]:
        resolved = await self.resolve_title(title)
        return resolved.canonical if resolved.exists else None

    async def fetch_outgoing_links(self, title: str, cancel=None) -> List[str]:
        self.calls.append(("fetch_outgoing_links", title))
        self._check(title)
        return list(self.links.get(title, []))

    async def fetch_incoming_links(self, title: str, cancel=None) -> List[str]:
        self.calls.append(("fetch_incoming_links", title))
        self._check(title)
        if self.backlinks is not None and title in self.backlinks:
            return list(self.backlinks[title])
        return [
            source for source, targets in self.links.items()
            if any(self._resolve(t).canonical == title for t in targets)
        ]

    async def fetch_raw_markup(self, title: str) -> str:
        self.calls.append(("fetch_raw_markup", title))
        self._check(title)
        if title in self.markup:
            return self.markup[title]
        return " ".join(f"[[{target}]]" for target in self.links.get(title, []))


@pytest.fixture
def make_api():
    """Factory for FakeWikiApi instances with a custom graph."""
    return FakeWikiApi


@pytest.fixture
def event_bus() -> EventBus:
    """Create a fresh EventBus for each test."""
    return EventBus()


@pytest.fixture
def recorded_events(event_bus: EventBus):
    """Subscribe to every event type the search core emits and collect them."""
    events: List[SearchEvent] = []

    async def record(event: SearchEvent):
        events.append(event)

    for event_type in (
        "search_started", "node_expanded", "meeting_node_found", "budget_exhausted",
        "search_finished", "verification_failed", "edge_blacklisted", "chain_found",
        "chain_not_found",
    ):
        event_bus.subscribe(event_type, record)
    return events
