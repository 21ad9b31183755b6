"""
ChainFinder - runs search, verification and blacklist retries for one session.

Loop: search for a candidate path; verify it; if an edge turns out to be
fake, blacklist it and search again from the original endpoints. Each search
is budget-bounded and each retry strictly grows the blacklist. A verified
path is normalized (canonical titles, redirect hops and duplicates collapsed)
before it is returned.
"""

import asyncio
import logging
import time
import uuid
from typing import List, Optional, Set

from wiki_chain.cancellation import CancellationToken
from wiki_chain.config import SearchConfig
from wiki_chain.events import EventBus, notify
from wiki_chain.exceptions import PageNotFoundException
from wiki_chain.models import ChainResult, Edge
from wiki_chain.search.frontier import FrontierSearch
from wiki_chain.search.verifier import ChainVerifier
from wiki_chain.utils.wiki_helpers import extract_title, titles_equal
from wiki_chain.wikipedia.api_client import WikiApiClient
from wiki_chain.wikipedia.link_source import LinkSource
from wiki_chain.wikipedia.title_resolver import TitleResolver

logger = logging.getLogger(__name__)


class ChainFinder:
    """
    Finds a verified chain of links between two Wikipedia pages.

    The resolver cache and the blacklist belong to this object and persist
    across every search it runs.
    """

    def __init__(
        self,
        client: WikiApiClient,
        config: Optional[SearchConfig] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.config = config or SearchConfig()
        self.event_bus = event_bus
        self.session_id = uuid.uuid4().hex[:12]

        self.resolver = TitleResolver(client, batch_size=self.config.batch_size)
        self.link_source = LinkSource(client)
        self.search_engine = FrontierSearch(self.link_source, self.resolver, event_bus, self.session_id)
        self.verifier = ChainVerifier(self.resolver, self.link_source, event_bus, self.session_id)

        self.blacklist: Set[Edge] = set(self.config.blacklist)

    async def find_chain(
        self,
        source: str,
        target: str,
        cancel: Optional[CancellationToken] = None,
    ) -> ChainResult:
        """
        Find a verified chain from source to target.

        Args:
            source: Source page title or article URL
            target: Target page title or article URL
            cancel: Cooperative stop signal

        Returns:
            ChainResult; chain is None when no chain was found within the budgets

        Raises:
            ValueError: If source or target is empty
            PageNotFoundException: If source or target does not exist
            WikiServiceUnavailableException: If the existence check cannot reach the API
        """
        start_time = time.time()
        cancel = cancel or CancellationToken()

        source_title = extract_title(source)
        target_title = extract_title(target)
        if not source_title or not target_title:
            raise ValueError("Both a source and a target page (title or URL) are required.")

        logger.info("Checking if pages exist...")
        canonical_source, canonical_target = await asyncio.gather(
            self.resolver.resolve(source_title, strict=True),
            self.resolver.resolve(target_title, strict=True),
        )
        missing = [
            title for title, canonical in ((source_title, canonical_source), (target_title, canonical_target))
            if canonical is None
        ]
        if missing:
            raise PageNotFoundException(
                "; ".join(f"'{title}' does not exist on Wikipedia" for title in missing)
            )

        logger.info(f"Using canonical titles: source '{canonical_source}', target '{canonical_target}'")

        attempts = 0
        nodes_explored = 0
        added: List[Edge] = []

        while not cancel.cancelled:
            if self.config.max_retries is not None and attempts > self.config.max_retries:
                logger.warning(f"Giving up after {attempts} searches ({len(added)} edges blacklisted)")
                break

            attempts += 1
            result = await self.search_engine.search(
                canonical_source,
                canonical_target,
                max_depth=self.config.max_depth,
                max_nodes=self.config.max_nodes,
                batch_size=self.config.batch_size,
                blacklist=self.blacklist,
                link_options=self.config.link_options,
                cancel=cancel,
            )
            nodes_explored += result.nodes_explored
            if not result.found or cancel.cancelled:
                break

            verification = await self.verifier.verify(result.path, self.blacklist, cancel)
            if cancel.cancelled:
                break
            if verification.valid:
                chain = await self.normalize_chain(result.path)
                elapsed = time.time() - start_time
                logger.info(
                    f"Chain found (length {len(chain) - 1}) after {attempts} searches "
                    f"in {elapsed:.2f}s: {' -> '.join(chain)}"
                )
                logger.debug(f"Resolver cache stats: {self.resolver.get_cache_stats()}")
                await notify(self.event_bus, "chain_found", self.session_id, chain=chain)
                return ChainResult(
                    source=canonical_source,
                    target=canonical_target,
                    chain=chain,
                    length=len(chain) - 1,
                    meeting_node=result.meeting_node,
                    nodes_explored=nodes_explored,
                    attempts=attempts,
                    blacklisted=added,
                    elapsed_seconds=elapsed,
                )

            new_edges = self._edges_to_blacklist(result.path, verification.index, verification.edge)
            if not new_edges:
                logger.warning(f"Faulty edge {verification.edge} is already blacklisted; search cannot make progress")
                break
            for edge in new_edges:
                self.blacklist.add(edge)
                added.append(edge)
                logger.info(f"Faulty connection detected, blacklisting {edge}")
                await notify(
                    self.event_bus, "edge_blacklisted", self.session_id,
                    from_title=edge.from_title, to_title=edge.to_title,
                )
            logger.info("Retrying search excluding faulty edge...")

        elapsed = time.time() - start_time
        logger.info(f"No chain found within the given limits ({attempts} searches, {elapsed:.2f}s)")
        await notify(self.event_bus, "chain_not_found", self.session_id, attempts=attempts)
        return ChainResult(
            source=canonical_source,
            target=canonical_target,
            nodes_explored=nodes_explored,
            attempts=attempts,
            blacklisted=added,
            elapsed_seconds=elapsed,
            cancelled=cancel.cancelled,
        )

    def _edges_to_blacklist(self, path: List[str], index: int, reported: Optional[Edge]) -> List[Edge]:
        """
        The edge the verifier reported, plus the path's own spelling of it when
        that differs, so the next search cannot rebuild the same hop.
        """
        edges = []
        if reported is not None:
            edges.append(reported)
        if index is not None:
            raw = Edge(from_title=path[index], to_title=path[index + 1])
            if raw not in edges:
                edges.append(raw)
        return [edge for edge in edges if edge not in self.blacklist]

    async def normalize_chain(self, chain: List[str]) -> List[str]:
        """
        Canonicalize a verified chain and collapse hops that canonicalization made redundant.

        A node is dropped when it is a redirect back to the node just before
        it, or when its canonical title already appears in the chain.
        """
        canonical_titles = await self.resolver.resolve_batch(chain)

        normalized: List[str] = []
        for original, canonical in zip(chain, canonical_titles):
            canonical = canonical or original
            if normalized:
                redirect = await self.resolver.redirect_info(original)
                if redirect.is_redirect and titles_equal(redirect.redirect_target, normalized[-1]):
                    logger.debug(f"Dropping '{original}': redirects back to '{normalized[-1]}'")
                    continue
            if any(titles_equal(canonical, emitted) for emitted in normalized):
                logger.debug(f"Dropping duplicate '{canonical}'")
                continue
            normalized.append(canonical)
        return normalized
