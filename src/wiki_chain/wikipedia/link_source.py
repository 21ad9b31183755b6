"""
LinkSource - outgoing and incoming article links for a single page.

Transport failures stop here: a failed fetch is logged and reported as a page
with no links, so one bad request never aborts a search.
"""

import logging
from typing import List, Optional

from wiki_chain.cancellation import CancellationToken
from wiki_chain.exceptions import WikiServiceUnavailableException
from wiki_chain.models import LinkOptions
from wiki_chain.wikipedia.api_client import WikiApiClient
from wiki_chain.wikipedia.wikitext import extract_filtered_links

logger = logging.getLogger(__name__)


class LinkSource:
    """Fetches the link neighborhood of a page in either direction."""

    def __init__(self, client: WikiApiClient):
        self.client = client
        self.failed_fetches = 0

    async def outgoing(
        self,
        title: str,
        options: Optional[LinkOptions] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> List[str]:
        """
        Get the pages a page links to, de-duplicated, in listing order.

        With both template categories included this uses the indexed link
        listing. Otherwise the raw markup is fetched and links inside the
        excluded templates are dropped before extraction.
        """
        options = options or LinkOptions()
        try:
            if options.includes_all:
                return await self.client.fetch_outgoing_links(title, cancel)

            wikitext = await self.client.fetch_raw_markup(title)
            links = extract_filtered_links(
                wikitext,
                include_infobox=options.include_infobox_links,
                include_navbox=options.include_navbox_links,
            )
            logger.debug(f"Extracted {len(links)} links from markup of '{title}'")
            return links
        except WikiServiceUnavailableException as e:
            self.failed_fetches += 1
            logger.warning(f"Failed to fetch outgoing links for '{title}': {e}")
            return []

    async def incoming(self, title: str, cancel: Optional[CancellationToken] = None) -> List[str]:
        """Get the pages linking to a page, de-duplicated, in listing order."""
        try:
            return await self.client.fetch_incoming_links(title, cancel)
        except WikiServiceUnavailableException as e:
            self.failed_fetches += 1
            logger.warning(f"Failed to fetch incoming links for '{title}': {e}")
            return []
