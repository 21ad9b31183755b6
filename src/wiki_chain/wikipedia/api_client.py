"""
Wikipedia API client for link-chain search.
Handles redirect resolution, pagination, and raw markup retrieval.
"""
import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

import httpx

from wiki_chain.cancellation import CancellationToken, is_cancelled
from wiki_chain.config import DEFAULT_USER_AGENT, MAX_TITLES_PER_REQUEST
from wiki_chain.exceptions import WikiServiceUnavailableException
from wiki_chain.models import BatchResolution, ResolvedTitle

logger = logging.getLogger(__name__)


class WikiApiClient:
    """
    Thin async client for the MediaWiki action API.

    Every method issues real requests and raises WikiServiceUnavailableException
    on transport or API errors; deciding whether a failure is fatal is left to
    the caller.

    Key constraints:
    - Max 50 titles per resolution request
    - Paginated listings follow the 'continue' token until it is absent
    - A short fixed delay separates successive pages
    """

    def __init__(
        self,
        language: str = "en",
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        page_delay: float = 0.05,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.language = language
        self.base_url = f"https://{language}.wikipedia.org/w/api.php"
        self.user_agent = user_agent
        self.timeout = timeout
        self.page_delay = page_delay
        self._client = http_client
        self._owns_client = http_client is None

    async def __aenter__(self):
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"User-Agent": self.user_agent, "Accept-Encoding": "gzip"},
                timeout=self.timeout,
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Close the underlying HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _get(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Make a single API request and return the decoded JSON body."""
        if self._client is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        params = {"format": "json", **params}
        logger.debug(f"Making API request: {params}")

        try:
            response = await self._client.get(self.base_url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise WikiServiceUnavailableException(f"Wikipedia API request failed: {e}") from e
        except ValueError as e:
            raise WikiServiceUnavailableException(f"Wikipedia API returned malformed JSON: {e}") from e

        if "error" in data:
            info = data["error"].get("info", data["error"])
            raise WikiServiceUnavailableException(f"Wikipedia API error: {info}")
        return data

    async def resolve_title(self, title: str) -> ResolvedTitle:
        """Resolve one title, following server-side redirects."""
        data = await self._get({"action": "query", "titles": title, "redirects": "1"})
        query = data.get("query", {})
        pages = query.get("pages", {})
        if not pages:
            return ResolvedTitle(exists=False)

        page = next(iter(pages.values()))
        if "missing" in page or "invalid" in page:
            return ResolvedTitle(exists=False)
        return ResolvedTitle(
            exists=True,
            canonical=page["title"],
            is_redirect=bool(query.get("redirects")),
        )

    async def resolve_titles(self, titles: List[str]) -> BatchResolution:
        """
        Resolve up to MAX_TITLES_PER_REQUEST titles in a single request.

        Inputs the response does not account for are left out of the result.
        """
        if len(titles) > MAX_TITLES_PER_REQUEST:
            raise ValueError(f"At most {MAX_TITLES_PER_REQUEST} titles per request, got {len(titles)}")
        if not titles:
            return BatchResolution()

        data = await self._get({"action": "query", "titles": "|".join(titles), "redirects": "1"})
        query = data.get("query", {})

        normalized = {n["from"]: n["to"] for n in query.get("normalized", [])}
        redirects = {r["from"]: r["to"] for r in query.get("redirects", [])}
        pages_by_title = {
            page["title"]: page for page in query.get("pages", {}).values() if "title" in page
        }

        resolved = {}
        for title in titles:
            name = normalized.get(title, title)
            is_redirect = name in redirects
            name = redirects.get(name, name)
            page = pages_by_title.get(name)
            if page is None:
                continue
            if "missing" in page or "invalid" in page:
                resolved[title] = ResolvedTitle(exists=False)
            else:
                resolved[title] = ResolvedTitle(exists=True, canonical=page["title"], is_redirect=is_redirect)

        return BatchResolution(resolved=resolved, redirects=redirects)

    async def page_exists(self, title: str) -> Optional[str]:
        """Return the canonical title if the page exists, otherwise None."""
        resolved = await self.resolve_title(title)
        return resolved.canonical if resolved.exists else None

    async def fetch_outgoing_links(
        self, title: str, cancel: Optional[CancellationToken] = None
    ) -> List[str]:
        """Get article links on a page (prop=links, namespace 0), across every page of results."""
        params = {
            "action": "query", "titles": title, "prop": "links",
            "plnamespace": "0", "pllimit": "max",
        }

        def extract(data: Dict[str, Any]) -> Iterable[str]:
            for page in data.get("query", {}).get("pages", {}).values():
                for link in page.get("links", []):
                    if link.get("ns") == 0 and link.get("title"):
                        yield link["title"]

        return await self._paginate(params, "plcontinue", extract, cancel)

    async def fetch_incoming_links(
        self, title: str, cancel: Optional[CancellationToken] = None
    ) -> List[str]:
        """Get articles linking to a page (list=backlinks, namespace 0), across every page of results."""
        params = {
            "action": "query", "list": "backlinks", "bltitle": title,
            "blnamespace": "0", "bllimit": "max",
        }

        def extract(data: Dict[str, Any]) -> Iterable[str]:
            for backlink in data.get("query", {}).get("backlinks", []):
                if backlink.get("ns", 0) == 0 and backlink.get("title"):
                    yield backlink["title"]

        return await self._paginate(params, "blcontinue", extract, cancel)

    async def fetch_raw_markup(self, title: str) -> str:
        """Get the raw wikitext of a page."""
        data = await self._get({"action": "parse", "page": title, "prop": "wikitext"})
        return data.get("parse", {}).get("wikitext", {}).get("*", "")

    async def _paginate(
        self,
        base_params: Dict[str, Any],
        continue_key: str,
        extract: Callable[[Dict[str, Any]], Iterable[str]],
        cancel: Optional[CancellationToken],
    ) -> List[str]:
        """Follow continuation tokens until exhausted or cancelled, collecting unique titles in order."""
        results: Dict[str, None] = {}
        continue_token = None
        pages = 0

        while True:
            params = dict(base_params)
            if continue_token:
                params[continue_key] = continue_token

            data = await self._get(params)
            pages += 1
            for title in extract(data):
                results[title] = None

            continue_token = data.get("continue", {}).get(continue_key)
            if not continue_token:
                break
            if is_cancelled(cancel):
                logger.debug(f"Pagination stopped by cancellation after {pages} pages")
                break
            await asyncio.sleep(self.page_delay)

        logger.debug(f"Retrieved {len(results)} titles in {pages} pages ({base_params.get('prop') or base_params.get('list')})")
        return list(results)
