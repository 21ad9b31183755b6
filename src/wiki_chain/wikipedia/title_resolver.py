"""
TitleResolver - canonicalizes page titles with a session-wide cache.

Every resolution path checks the cache before touching the network and writes
results back (negative results included), so a title is queried at most once
per session. Entries are never evicted.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from wiki_chain.config import MAX_TITLES_PER_REQUEST
from wiki_chain.exceptions import WikiServiceUnavailableException
from wiki_chain.models import RedirectInfo, ResolvedTitle
from wiki_chain.utils.wiki_helpers import normalize_title
from wiki_chain.wikipedia.api_client import WikiApiClient

logger = logging.getLogger(__name__)


class TitleResolver:
    """Resolves titles to canonical form, singly or in batches, through a shared cache."""

    def __init__(self, client: WikiApiClient, batch_size: int = MAX_TITLES_PER_REQUEST):
        self.client = client
        self.batch_size = max(1, min(batch_size, MAX_TITLES_PER_REQUEST))

        # lower-cased input title -> canonical title, or None if the page does not exist
        self._canonical: Dict[str, Optional[str]] = {}
        self._redirects: Dict[str, RedirectInfo] = {}

        self.cache_hits = 0
        self.cache_misses = 0

    @staticmethod
    def _key(title: str) -> str:
        return normalize_title(title).lower()

    def is_cached(self, title: str) -> bool:
        return self._key(title) in self._canonical

    def _store(self, title: str, resolved: ResolvedTitle) -> None:
        key = self._key(title)
        if not resolved.exists:
            self._canonical[key] = None
            self._redirects[key] = RedirectInfo()
            return

        self._canonical[key] = resolved.canonical
        self._redirects[key] = RedirectInfo(
            is_redirect=resolved.is_redirect,
            redirect_target=resolved.canonical if resolved.is_redirect else None,
        )
        # A canonical title resolves to itself
        canonical_key = self._key(resolved.canonical)
        self._canonical.setdefault(canonical_key, resolved.canonical)
        self._redirects.setdefault(canonical_key, RedirectInfo())

    async def resolve(self, title: str, strict: bool = False) -> Optional[str]:
        """
        Resolve a single title to its canonical form.

        Args:
            title: Page title in any form (alias, redirect, odd capitalization)
            strict: Propagate transport failures instead of treating them as unresolved

        Returns:
            The canonical title, or None if the page does not exist or could not be resolved
        """
        key = self._key(title)
        if key in self._canonical:
            self.cache_hits += 1
            return self._canonical[key]

        self.cache_misses += 1
        try:
            resolved = await self.client.resolve_title(normalize_title(title))
        except WikiServiceUnavailableException as e:
            if strict:
                raise
            logger.warning(f"Could not resolve '{title}': {e}")
            return None

        self._store(title, resolved)
        return self._canonical[key]

    async def resolve_batch(self, titles: List[str]) -> List[Optional[str]]:
        """
        Resolve many titles, one request per group of at most batch_size uncached titles.

        Returns canonical titles in input order. A title the responses never
        account for is echoed back unchanged.
        """
        pending: Dict[str, str] = {}
        for title in titles:
            key = self._key(title)
            if key in self._canonical:
                self.cache_hits += 1
            elif key not in pending:
                self.cache_misses += 1
                pending[key] = normalize_title(title)

        if pending:
            to_fetch = list(pending.values())
            groups = [to_fetch[i:i + self.batch_size] for i in range(0, len(to_fetch), self.batch_size)]
            logger.debug(f"Resolving {len(to_fetch)} titles in {len(groups)} batches")

            results = await asyncio.gather(
                *[self.client.resolve_titles(group) for group in groups],
                return_exceptions=True
            )

            for group, result in zip(groups, results):
                if isinstance(result, WikiServiceUnavailableException):
                    logger.warning(f"Batch resolution of {len(group)} titles failed: {result}")
                    continue
                if isinstance(result, BaseException):
                    raise result
                for title, resolved in result.resolved.items():
                    self._store(title, resolved)
                for source, target in result.redirects.items():
                    source_key = self._key(source)
                    self._canonical.setdefault(source_key, target)
                    self._redirects.setdefault(source_key, RedirectInfo(is_redirect=True, redirect_target=target))

        resolved_titles = []
        for title in titles:
            key = self._key(title)
            resolved_titles.append(self._canonical[key] if key in self._canonical else normalize_title(title))
        return resolved_titles

    async def redirect_info(self, title: str) -> RedirectInfo:
        """Whether the title is a genuine redirect, and its target."""
        key = self._key(title)
        if key not in self._redirects:
            await self.resolve(title)
        return self._redirects.get(key, RedirectInfo())

    def get_cache_stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        return {
            "cached_titles": len(self._canonical),
            "missing_titles": sum(1 for value in self._canonical.values() if value is None),
            "cache_hits": self.cache_hits,
            "cache_misses": self.cache_misses,
        }
