import os
from typing import Optional, Set

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field, ValidationError

from wiki_chain.exceptions import InvalidConfigError
from wiki_chain.models import Edge, LinkOptions

DEFAULT_USER_AGENT = "wiki-chain/0.1 (https://github.com/wiki-chain/wiki-chain; link-chain search tool)"

# MediaWiki accepts at most 50 titles per query for regular clients
MAX_TITLES_PER_REQUEST = 50


class SearchConfig(BaseModel):
    """Configuration consumed by a chain-finding session."""

    # Search budgets
    max_depth: int = Field(6, ge=0, description="Maximum depth either frontier expands to")
    max_nodes: int = Field(2000, ge=1, description="Maximum number of nodes explored per search")
    batch_size: int = Field(MAX_TITLES_PER_REQUEST, ge=1, description="Titles canonicalized per batch")
    max_retries: Optional[int] = Field(50, ge=0, description="Re-searches allowed after failed verification (None = unbounded)")

    # Link filtering
    include_infobox_links: bool = Field(True, description="Follow links inside {{Infobox}} templates")
    include_navbox_links: bool = Field(True, description="Follow links inside {{Navbox}} templates")

    # API settings
    language: str = Field("en", min_length=1, description="Wikipedia language edition")
    page_delay: float = Field(0.05, ge=0, description="Seconds to wait between pages of a paginated fetch")
    request_timeout: float = Field(30.0, gt=0, description="HTTP timeout in seconds")
    user_agent: str = Field(DEFAULT_USER_AGENT, min_length=1)

    blacklist: Set[Edge] = Field(default_factory=set, description="Edges excluded from the start")

    @property
    def link_options(self) -> LinkOptions:
        return LinkOptions(
            include_infobox_links=self.include_infobox_links,
            include_navbox_links=self.include_navbox_links,
        )

    @classmethod
    def from_env(cls, **overrides) -> "SearchConfig":
        """Create config from environment variables (and a .env file, if present)."""
        load_dotenv(find_dotenv(usecwd=True))

        values = {
            "max_depth": os.getenv("WIKI_CHAIN_MAX_DEPTH", "6"),
            "max_nodes": os.getenv("WIKI_CHAIN_MAX_NODES", "2000"),
            "batch_size": os.getenv("WIKI_CHAIN_BATCH_SIZE", str(MAX_TITLES_PER_REQUEST)),
            "max_retries": _optional_int(os.getenv("WIKI_CHAIN_MAX_RETRIES", "50")),
            "include_infobox_links": os.getenv("WIKI_CHAIN_INCLUDE_INFOBOX", "true").lower() == "true",
            "include_navbox_links": os.getenv("WIKI_CHAIN_INCLUDE_NAVBOX", "true").lower() == "true",
            "language": os.getenv("WIKI_CHAIN_LANGUAGE", "en"),
            "page_delay": os.getenv("WIKI_CHAIN_PAGE_DELAY", "0.05"),
            "request_timeout": os.getenv("WIKI_CHAIN_REQUEST_TIMEOUT", "30"),
            "user_agent": os.getenv("WIKI_CHAIN_USER_AGENT", DEFAULT_USER_AGENT),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})

        try:
            return cls(**values)
        except ValidationError as e:
            raise InvalidConfigError(f"Invalid search configuration: {e}") from e


def _optional_int(raw: str) -> Optional[str]:
    """'none' or an empty value disables a limit."""
    if raw.strip().lower() in ("", "none"):
        return None
    return raw
