"""
Custom exceptions for the wiki_chain package.
"""

class WikiChainException(Exception):
    """Base exception for the package."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)

class PageNotFoundException(WikiChainException):
    """Raised when a source or target Wikipedia page does not exist."""
    pass

class WikiServiceUnavailableException(WikiChainException):
    """Raised when the Wikipedia API is unreachable or returns an error."""
    pass

class PathReconstructionError(WikiChainException):
    """Raised when the predecessor maps of a finished search do not form a path."""
    pass

class InvalidConfigError(WikiChainException):
    """Raised when search configuration values are invalid."""
    pass
