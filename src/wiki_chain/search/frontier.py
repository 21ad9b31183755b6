"""
Bidirectional frontier search over the live link graph.

Expands one node at a time from whichever side has the shorter queue, so the
two frontiers stay roughly balanced. The first node seen by both sides is
accepted as the meeting node; the result is a candidate path that still has
to be verified.
"""
import asyncio
import logging
import time
from typing import List, Optional, Set

from wiki_chain.cancellation import CancellationToken, is_cancelled
from wiki_chain.config import MAX_TITLES_PER_REQUEST
from wiki_chain.events import EventBus, notify
from wiki_chain.exceptions import PathReconstructionError
from wiki_chain.models import Edge, LinkOptions, SearchResult, SearchState
from wiki_chain.utils.wiki_helpers import titles_equal
from wiki_chain.wikipedia.link_source import LinkSource
from wiki_chain.wikipedia.title_resolver import TitleResolver

logger = logging.getLogger(__name__)

FORWARD = "forward"
BACKWARD = "backward"


class FrontierSearch:
    """
    Finds a candidate path between two pages with a budgeted bidirectional search.

    Frontiers, visited sets and predecessor maps live only for one call to
    search(); the resolver cache and the blacklist are owned by the caller.
    """

    def __init__(
        self,
        link_source: LinkSource,
        resolver: TitleResolver,
        event_bus: Optional[EventBus] = None,
        session_id: str = "search",
    ):
        self.link_source = link_source
        self.resolver = resolver
        self.event_bus = event_bus
        self.session_id = session_id

    async def search(
        self,
        source: str,
        target: str,
        max_depth: int = 6,
        max_nodes: int = 2000,
        batch_size: int = MAX_TITLES_PER_REQUEST,
        blacklist: Optional[Set[Edge]] = None,
        link_options: Optional[LinkOptions] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> SearchResult:
        """
        Search for a path from source to target.

        Args:
            source: Source title (resolved to canonical form first)
            target: Target title (resolved to canonical form first)
            max_depth: Nodes at this depth on either side are not expanded
            max_nodes: Stop after this many nodes have been explored
            batch_size: Forward neighbors canonicalized per batch
            blacklist: Directed edges that may not be traversed
            link_options: Template categories forward expansion may follow
            cancel: Cooperative stop signal

        Returns:
            SearchResult with a candidate path, or path=None if the budgets ran out
        """
        # Unresolvable endpoints are searched as given
        canonical_source, canonical_target = await asyncio.gather(
            self.resolver.resolve(source),
            self.resolver.resolve(target),
        )
        source = canonical_source or source
        target = canonical_target or target

        if titles_equal(source, target):
            return SearchResult(path=[source], length=0, meeting_node=source, nodes_visited=1)

        blacklist = blacklist if blacklist is not None else set()
        link_options = link_options or LinkOptions()
        start_time = time.time()

        forward = SearchState.rooted_at(source, FORWARD)
        backward = SearchState.rooted_at(target, BACKWARD)

        nodes_explored = 0
        meeting_node = None

        logger.info(f"Starting bidirectional search: '{source}' → '{target}'")
        await notify(self.event_bus, "search_started", self.session_id, source=source, target=target)

        while (forward.queue or backward.queue) and not is_cancelled(cancel):
            # Shorter (or equal) queue goes next; an empty queue never does
            expand_forward = bool(forward.queue) and (
                not backward.queue or len(forward.queue) <= len(backward.queue)
            )
            state, other = (forward, backward) if expand_forward else (backward, forward)

            current = state.queue.popleft()
            depth = state.depths.get(current, 0)
            if depth < max_depth:
                logger.debug(f"[{state.direction[0].upper()}] Expanding '{current}' (depth {depth})")
                if expand_forward:
                    meeting_node = await self._expand_forward(
                        current, depth, forward, backward, blacklist, link_options, batch_size, cancel
                    )
                else:
                    meeting_node = await self._expand_backward(
                        current, depth, backward, forward, blacklist, cancel
                    )
                nodes_explored += 1
                await notify(
                    self.event_bus, "node_expanded", self.session_id,
                    title=current, direction=state.direction, depth=depth,
                    nodes_explored=nodes_explored,
                    visited=len(forward.visited) + len(backward.visited),
                    frontier_sizes=(len(forward.queue), len(backward.queue)),
                )

            if meeting_node:
                logger.info(f"Meeting node found: '{meeting_node}'")
                await notify(self.event_bus, "meeting_node_found", self.session_id, title=meeting_node)
                break
            if nodes_explored >= max_nodes:
                logger.info(f"Reached max nodes limit ({nodes_explored}). Stopping.")
                await notify(self.event_bus, "budget_exhausted", self.session_id, nodes_explored=nodes_explored)
                break

        if not meeting_node:
            meeting_node = self._find_intersection(forward, backward)
            if meeting_node:
                logger.info(f"Meeting node (via intersection check): '{meeting_node}'")

        visited = len(forward.visited) + len(backward.visited)
        elapsed = time.time() - start_time

        if not meeting_node:
            logger.info(f"No path found after exploring {nodes_explored} nodes in {elapsed:.2f}s")
            await notify(self.event_bus, "search_finished", self.session_id, found=False, nodes_explored=nodes_explored)
            return SearchResult(
                nodes_explored=nodes_explored,
                nodes_visited=visited,
                cancelled=is_cancelled(cancel),
            )

        path = self._reconstruct_path(meeting_node, forward, backward, source, target)
        logger.info(
            f"Candidate path of length {len(path) - 1} found in {elapsed:.2f}s "
            f"after exploring {nodes_explored} nodes: {' → '.join(path)}"
        )
        await notify(self.event_bus, "search_finished", self.session_id, found=True, path=path, nodes_explored=nodes_explored)
        return SearchResult(
            path=path,
            length=len(path) - 1,
            meeting_node=meeting_node,
            nodes_explored=nodes_explored,
            nodes_visited=visited,
            cancelled=is_cancelled(cancel),
        )

    async def _expand_forward(
        self,
        current: str,
        depth: int,
        forward: SearchState,
        backward: SearchState,
        blacklist: Set[Edge],
        link_options: LinkOptions,
        batch_size: int,
        cancel: Optional[CancellationToken],
    ) -> Optional[str]:
        """Admit canonicalized outgoing links of current, one batch at a time."""
        links = await self.link_source.outgoing(current, link_options, cancel)

        for start in range(0, len(links), batch_size):
            if is_cancelled(cancel):
                break
            canonical = await self.resolver.resolve_batch(links[start:start + batch_size])
            # Titles of pages that do not exist resolve to None
            meeting_node = self._admit(
                current, depth, [title for title in canonical if title],
                forward, backward, blacklist, cancel,
            )
            if meeting_node:
                return meeting_node
        return None

    async def _expand_backward(
        self,
        current: str,
        depth: int,
        backward: SearchState,
        forward: SearchState,
        blacklist: Set[Edge],
        cancel: Optional[CancellationToken],
    ) -> Optional[str]:
        """Admit pages linking to current. Backlink titles are already canonical."""
        links = await self.link_source.incoming(current, cancel)
        return self._admit(current, depth, links, backward, forward, blacklist, cancel)

    def _admit(
        self,
        current: str,
        depth: int,
        neighbors: List[str],
        state: SearchState,
        other: SearchState,
        blacklist: Set[Edge],
        cancel: Optional[CancellationToken],
    ) -> Optional[str]:
        """
        Add unvisited, non-blacklisted neighbors to the frontier.

        Returns the first admitted neighbor the other side has already
        visited, at which point admission stops.
        """
        for neighbor in neighbors:
            if is_cancelled(cancel):
                break
            if neighbor in state.visited:
                continue
            if state.direction == FORWARD:
                edge = Edge(from_title=current, to_title=neighbor)
            else:
                edge = Edge(from_title=neighbor, to_title=current)
            if edge in blacklist:
                logger.debug(f"Skipping blacklisted edge {edge}")
                continue

            state.admit(neighbor, parent=current, depth=depth + 1)
            if neighbor in other.visited:
                return neighbor
        return None

    @staticmethod
    def _find_intersection(forward: SearchState, backward: SearchState) -> Optional[str]:
        for title in forward.depths:
            if title in backward.visited:
                return title
        return None

    @staticmethod
    def _reconstruct_path(
        meeting_node: str,
        forward: SearchState,
        backward: SearchState,
        source: str,
        target: str,
    ) -> List[str]:
        """
        Join the forward chain (source → meeting node) with the backward chain
        (meeting node → target).
        """
        forward_path = []
        seen = set()
        current = meeting_node
        while current is not None:
            if current in seen:
                raise PathReconstructionError(f"Cycle in forward predecessors at '{current}'")
            seen.add(current)
            forward_path.append(current)
            current = forward.parents.get(current)
        forward_path.reverse()

        if forward_path[0] != source:
            raise PathReconstructionError(
                f"Forward predecessors of '{meeting_node}' lead to '{forward_path[0]}', not '{source}'"
            )

        path = forward_path
        current = meeting_node
        while current != target:
            current = backward.parents.get(current)
            if current is None:
                raise PathReconstructionError(
                    f"Backward predecessors of '{meeting_node}' do not reach '{target}'"
                )
            if current in seen:
                raise PathReconstructionError(f"Node '{current}' appears twice in reconstructed path")
            seen.add(current)
            path.append(current)

        return path
