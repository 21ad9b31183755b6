"""
ChainVerifier - re-checks every edge of a candidate path against live link data.

Search results are assembled from two independently discovered halves, and
backlink listings can include links that no longer exist or that come from
transcluded templates. Each edge is therefore confirmed against the full
outgoing link set of its source page, with some tolerance for redirects,
disambiguation pages and parenthetical name variants.
"""

import asyncio
import logging
from typing import List, Optional, Set, Tuple

from wiki_chain.cancellation import CancellationToken, is_cancelled
from wiki_chain.events import EventBus, notify
from wiki_chain.models import Edge, LinkOptions, VerificationResult
from wiki_chain.utils.wiki_helpers import (
    has_parenthetical,
    is_disambiguation,
    strip_parentheticals,
    titles_equal,
)
from wiki_chain.wikipedia.link_source import LinkSource
from wiki_chain.wikipedia.title_resolver import TitleResolver

logger = logging.getLogger(__name__)

# Verification must see links the search may have filtered out
ALL_LINKS = LinkOptions(include_infobox_links=True, include_navbox_links=True)


class ChainVerifier:
    """Confirms that consecutive titles in a path are joined by real links."""

    def __init__(
        self,
        resolver: TitleResolver,
        link_source: LinkSource,
        event_bus: Optional[EventBus] = None,
        session_id: str = "verify",
    ):
        self.resolver = resolver
        self.link_source = link_source
        self.event_bus = event_bus
        self.session_id = session_id
        # Canonical (lower-cased) pairs already shown to be faulty this session
        self._faulty: Set[Tuple[str, str]] = set()

    async def verify(
        self,
        path: List[str],
        blacklist: Optional[Set[Edge]] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> VerificationResult:
        """
        Verify every edge of the path in order, stopping at the first faulty one.

        Returns:
            VerificationResult(valid=True), or the index and endpoints of the first faulty edge.
            A cancelled run returns cancelled=True with no edge and records nothing.
        """
        blacklist = blacklist or set()

        for index, (from_title, to_title) in enumerate(zip(path, path[1:])):
            if is_cancelled(cancel):
                return VerificationResult(valid=False, cancelled=True)
            try:
                canonical_from, canonical_to = await asyncio.gather(
                    self.resolver.resolve(from_title),
                    self.resolver.resolve(to_title),
                )
                if not canonical_from or not canonical_to:
                    logger.warning(f"Missing canonical title for '{from_title}' or '{to_title}'")
                    return await self._fail(index, from_title, to_title)

                if titles_equal(canonical_from, canonical_to):
                    continue

                pair = (canonical_from.lower(), canonical_to.lower())
                if pair in self._faulty:
                    logger.debug(f"Edge '{canonical_from}' → '{canonical_to}' already known to be faulty")
                    return await self._fail(index, canonical_from, canonical_to)
                if Edge(from_title=canonical_from, to_title=canonical_to) in blacklist:
                    return await self._fail(index, canonical_from, canonical_to)

                neighbors = await self.link_source.outgoing(canonical_from, ALL_LINKS, cancel)
                if is_cancelled(cancel):
                    # A truncated listing proves nothing about the edge
                    logger.debug(f"Verification of '{canonical_from}' → '{canonical_to}' interrupted")
                    return VerificationResult(valid=False, cancelled=True)
                target = canonical_to.lower()
                if any(neighbor.lower() == target for neighbor in neighbors):
                    continue

                if await self._confirm_by_heuristics(canonical_from, canonical_to, neighbors):
                    continue

                logger.warning(f"Could not confirm link '{canonical_from}' → '{canonical_to}'")
                self._faulty.add(pair)
                return await self._fail(index, canonical_from, canonical_to)

            except Exception as e:
                logger.error(f"Error verifying link '{from_title}' → '{to_title}': {e}", exc_info=True)
                return await self._fail(index, from_title, to_title)

        return VerificationResult(valid=True)

    async def _confirm_by_heuristics(
        self, canonical_from: str, canonical_to: str, neighbors: List[str]
    ) -> bool:
        """Fallback checks for edges the link listing does not show verbatim."""
        # Disambiguation targets are reachable by construction
        if is_disambiguation(canonical_to):
            logger.debug(f"Accepting '{canonical_to}' as a disambiguation target")
            return True

        # Neighbors that are redirects or aliases of the target
        target = canonical_to.lower()
        for resolved in await self.resolver.resolve_batch(neighbors):
            if not resolved:
                continue
            if resolved == canonical_to:
                return True
            candidate = resolved.lower()
            if candidate in target or target in candidate:
                logger.debug(f"Accepting '{resolved}' as an alias of '{canonical_to}'")
                return True

        if has_parenthetical(canonical_from) or has_parenthetical(canonical_to):
            stripped_target = strip_parentheticals(canonical_to)
            if any(strip_parentheticals(neighbor) == stripped_target for neighbor in neighbors):
                logger.debug(f"Accepting '{canonical_to}' by parenthetical-free match")
                return True

        if is_disambiguation(canonical_from):
            logger.debug(f"Accepting edge from disambiguation page '{canonical_from}'")
            return True

        return False

    async def _fail(self, index: int, from_title: str, to_title: str) -> VerificationResult:
        await notify(
            self.event_bus, "verification_failed", self.session_id,
            index=index, from_title=from_title, to_title=to_title,
        )
        return VerificationResult(valid=False, index=index, from_title=from_title, to_title=to_title)
