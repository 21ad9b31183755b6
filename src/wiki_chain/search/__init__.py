# Bidirectional search, chain verification and the retry loop

from .frontier import FrontierSearch
from .verifier import ChainVerifier
from .orchestrator import ChainFinder

__all__ = [
    "FrontierSearch",
    "ChainVerifier",
    "ChainFinder",
]
