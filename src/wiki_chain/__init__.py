"""
wiki_chain - find a verified chain of Wikipedia links between two articles.

Searches the live link graph from both ends, verifies every hop of the
candidate path, and retries around links that turn out not to exist.
"""

from .cancellation import CancellationToken
from .config import SearchConfig
from .events import EventBus, SearchEvent
from .models import ChainResult, Edge, SearchResult, VerificationResult
from .search import ChainFinder

__all__ = [
    'CancellationToken',
    'ChainFinder',
    'ChainResult',
    'Edge',
    'EventBus',
    'SearchConfig',
    'SearchEvent',
    'SearchResult',
    'VerificationResult',
]
