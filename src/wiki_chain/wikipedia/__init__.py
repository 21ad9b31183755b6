"""
Wikipedia access for wiki_chain: the API client, title canonicalization and
link retrieval.
"""

from .api_client import WikiApiClient
from .link_source import LinkSource
from .title_resolver import TitleResolver

__all__ = [
    'WikiApiClient',
    'LinkSource',
    'TitleResolver'
]
