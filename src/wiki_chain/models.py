"""
Data models for link-chain search.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field


# --- Graph identity ---

class Edge(BaseModel):
    """A directed hyperlink from one page to another. Unit of blacklisting and verification."""
    model_config = ConfigDict(frozen=True)

    from_title: str = Field(..., description="Title of the page containing the link.")
    to_title: str = Field(..., description="Title of the page the link points to.")

    def __str__(self) -> str:
        return f"{self.from_title} → {self.to_title}"


class ResolvedTitle(BaseModel):
    """Outcome of resolving one title against the API."""
    exists: bool = Field(..., description="Whether the page exists.")
    canonical: Optional[str] = Field(None, description="Redirect-free canonical title, if the page exists.")
    is_redirect: bool = Field(False, description="Whether the input title was a redirect.")


class BatchResolution(BaseModel):
    """Outcome of resolving a group of titles in a single request."""
    resolved: Dict[str, ResolvedTitle] = Field(default_factory=dict, description="Input title -> resolution, for inputs the response accounted for.")
    redirects: Dict[str, str] = Field(default_factory=dict, description="Redirect source -> target pairs reported by the response.")


class RedirectInfo(BaseModel):
    """Whether a title is a genuine redirect, and where it points."""
    is_redirect: bool = False
    redirect_target: Optional[str] = None


class LinkOptions(BaseModel):
    """Which structural templates may contribute outgoing links."""
    include_infobox_links: bool = True
    include_navbox_links: bool = True

    @property
    def includes_all(self) -> bool:
        return self.include_infobox_links and self.include_navbox_links


# --- Search state ---

@dataclass
class SearchState:
    """Tracks state for one direction of bidirectional search."""
    direction: str  # "forward" or "backward"
    queue: Deque[str] = field(default_factory=deque)
    visited: Set[str] = field(default_factory=set)
    depths: Dict[str, int] = field(default_factory=dict)
    parents: Dict[str, str] = field(default_factory=dict)  # For path reconstruction

    @classmethod
    def rooted_at(cls, title: str, direction: str) -> "SearchState":
        state = cls(direction=direction)
        state.queue.append(title)
        state.visited.add(title)
        state.depths[title] = 0
        return state

    def admit(self, title: str, parent: str, depth: int) -> None:
        self.visited.add(title)
        self.parents[title] = parent
        self.depths[title] = depth
        self.queue.append(title)


# --- Results ---

class SearchResult(BaseModel):
    """Outcome of one bidirectional search."""
    path: Optional[List[str]] = Field(None, description="Candidate path from source to target, unverified.")
    length: Optional[int] = Field(None, description="Number of edges in the path.")
    meeting_node: Optional[str] = Field(None, description="Node where the two frontiers met.")
    nodes_explored: int = Field(0, description="Number of nodes whose links were fetched.")
    nodes_visited: int = Field(0, description="Approximate number of distinct nodes discovered by both frontiers.")
    cancelled: bool = Field(False, description="Whether the search stopped because of a cancellation request.")

    @property
    def found(self) -> bool:
        return self.path is not None


class VerificationResult(BaseModel):
    """Outcome of verifying every edge of a candidate path."""
    valid: bool
    index: Optional[int] = Field(None, description="Index of the first faulty edge.")
    from_title: Optional[str] = None
    to_title: Optional[str] = None
    cancelled: bool = Field(False, description="Whether verification stopped before reaching a verdict.")

    @property
    def edge(self) -> Optional[Edge]:
        if self.valid or self.from_title is None or self.to_title is None:
            return None
        return Edge(from_title=self.from_title, to_title=self.to_title)


class ChainResult(BaseModel):
    """Final outcome of a chain-finding session."""
    source: str = Field(..., description="Canonical source title.")
    target: str = Field(..., description="Canonical target title.")
    chain: Optional[List[str]] = Field(None, description="Verified, normalized chain of titles.")
    length: Optional[int] = Field(None, description="Number of edges in the chain.")
    meeting_node: Optional[str] = None
    nodes_explored: int = Field(0, description="Nodes explored across every search attempt.")
    attempts: int = Field(0, description="Number of searches run.")
    blacklisted: List[Edge] = Field(default_factory=list, description="Edges excluded after failing verification.")
    elapsed_seconds: float = 0.0
    cancelled: bool = False

    @property
    def found(self) -> bool:
        return self.chain is not None
