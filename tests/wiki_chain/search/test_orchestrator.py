"""
Tests for ChainFinder: existence checks, the verify-and-retry loop and chain normalization.
"""

import pytest

from wiki_chain.cancellation import CancellationToken
from wiki_chain.config import SearchConfig
from wiki_chain.exceptions import PageNotFoundException, WikiServiceUnavailableException
from wiki_chain.models import Edge
from wiki_chain.search.orchestrator import ChainFinder

pytestmark = pytest.mark.unit


def retry_graph(make_api):
    """
    The backlink listing of T still names X, but X no longer links to T.
    The first candidate A -> X -> T therefore fails verification.
    """
    return make_api(
        links={"A": ["X", "B"], "X": [], "B": ["T"]},
        backlinks={"T": ["X", "B"]},
    )


class TestInputHandling:

    @pytest.mark.asyncio
    async def test_same_page(self, make_api):
        api = make_api(links={"Philosophy": ["Science"]})
        result = await ChainFinder(api).find_chain("Philosophy", "Philosophy")

        assert result.chain == ["Philosophy"]
        assert result.length == 0
        assert result.attempts == 1

    @pytest.mark.asyncio
    async def test_accepts_article_urls(self, make_api):
        api = make_api(links={"Kevin Bacon": ["Footloose"]})
        result = await ChainFinder(api).find_chain(
            "https://en.wikipedia.org/wiki/Kevin_Bacon", "Footloose"
        )

        assert result.source == "Kevin Bacon"
        assert result.chain == ["Kevin Bacon", "Footloose"]

    @pytest.mark.asyncio
    async def test_empty_input_is_rejected(self, make_api):
        api = make_api(links={"A": []})

        with pytest.raises(ValueError):
            await ChainFinder(api).find_chain("  ", "A")

    @pytest.mark.asyncio
    async def test_missing_pages_are_reported_together(self, make_api):
        api = make_api(links={"A": []})

        with pytest.raises(PageNotFoundException) as exc_info:
            await ChainFinder(api).find_chain("Nowhere", "Elsewhere")

        assert "Nowhere" in exc_info.value.message
        assert "Elsewhere" in exc_info.value.message
        assert api.fetch_count == 0

    @pytest.mark.asyncio
    async def test_existence_check_transport_error_propagates(self, make_api):
        api = make_api(
            links={"A": ["B"]},
            errors={"A": WikiServiceUnavailableException("Wikipedia API request failed: 503")},
        )

        with pytest.raises(WikiServiceUnavailableException):
            await ChainFinder(api).find_chain("A", "B")

    @pytest.mark.asyncio
    async def test_redirect_endpoints_are_canonicalized(self, make_api):
        api = make_api(links={"Dog": ["Cat"]}, redirects={"Dogs": "Dog"})
        result = await ChainFinder(api).find_chain("Dogs", "Cat")

        assert result.source == "Dog"
        assert result.target == "Cat"
        assert result.chain == ["Dog", "Cat"]


class TestRetryLoop:

    @pytest.mark.asyncio
    async def test_faulty_edge_is_blacklisted_and_search_retried(self, make_api):
        api = retry_graph(make_api)
        result = await ChainFinder(api).find_chain("A", "T")

        assert result.chain == ["A", "B", "T"]
        assert result.attempts == 2
        assert result.blacklisted == [Edge(from_title="X", to_title="T")]

    @pytest.mark.asyncio
    async def test_blacklist_persists_on_the_finder(self, make_api):
        api = retry_graph(make_api)
        finder = ChainFinder(api)
        await finder.find_chain("A", "T")

        assert Edge(from_title="X", to_title="T") in finder.blacklist

    @pytest.mark.asyncio
    async def test_retry_cap_returns_no_chain(self, make_api):
        api = retry_graph(make_api)
        result = await ChainFinder(api, SearchConfig(max_retries=0)).find_chain("A", "T")

        assert result.chain is None
        assert result.found is False
        assert result.attempts == 1
        assert result.cancelled is False

    @pytest.mark.asyncio
    async def test_configured_blacklist_is_honored(self, make_api):
        api = make_api(links={"A": ["B", "C"], "B": ["T"], "C": ["T"]})
        config = SearchConfig(blacklist={Edge(from_title="A", to_title="B")})
        result = await ChainFinder(api, config).find_chain("A", "T")

        assert result.chain == ["A", "C", "T"]
        assert result.attempts == 1

    @pytest.mark.asyncio
    async def test_unreachable_target(self, make_api):
        api = make_api(links={"A": ["B"], "B": []}, pages=["Island"])
        result = await ChainFinder(api).find_chain("A", "Island")

        assert result.chain is None
        assert result.attempts == 1

    @pytest.mark.asyncio
    async def test_cancelled_before_search(self, make_api):
        api = make_api(links={"A": ["T"]})
        cancel = CancellationToken()
        cancel.cancel()

        result = await ChainFinder(api).find_chain("A", "T", cancel)

        assert result.chain is None
        assert result.cancelled is True
        assert result.attempts == 0

    @pytest.mark.asyncio
    async def test_events(self, make_api, event_bus, recorded_events):
        api = retry_graph(make_api)
        finder = ChainFinder(api, event_bus=event_bus)
        await finder.find_chain("A", "T")

        types = [event.type for event in recorded_events]
        assert types.count("search_started") == 2
        assert "verification_failed" in types
        assert "edge_blacklisted" in types
        assert types[-1] == "chain_found"
        assert all(event.session_id == finder.session_id for event in recorded_events)

    @pytest.mark.asyncio
    async def test_no_chain_event(self, make_api, event_bus, recorded_events):
        api = make_api(links={"A": []}, pages=["T"])
        await ChainFinder(api, event_bus=event_bus).find_chain("A", "T")

        assert recorded_events[-1].type == "chain_not_found"


class TestNormalizeChain:

    @pytest.mark.asyncio
    async def test_duplicates_are_collapsed(self, make_api):
        api = make_api(links={"Dog": ["Canine"], "Canine": []})
        chain = await ChainFinder(api).normalize_chain(["Dog", "Canine", "Canine"])

        assert chain == ["Dog", "Canine"]

    @pytest.mark.asyncio
    async def test_redirect_hop_back_to_previous_node_is_dropped(self, make_api):
        api = make_api(links={"Dog": ["Cat"]}, redirects={"Dogs": "Dog"})
        chain = await ChainFinder(api).normalize_chain(["Dog", "Dogs", "Cat"])

        assert chain == ["Dog", "Cat"]

    @pytest.mark.asyncio
    async def test_titles_are_canonicalized(self, make_api):
        api = make_api(links={"A": ["Canine"]}, redirects={"Canines": "Canine"})
        chain = await ChainFinder(api).normalize_chain(["A", "Canines"])

        assert chain == ["A", "Canine"]
