class LLMException(Exception):
    """Base exception for extraction service failures."""


class LLMConnectionError(LLMException):
    """Raised when the extraction service cannot be reached."""


class LLMTimeoutError(LLMException):
    """Raised when the extraction service does not answer in time."""


class WikipediaException(Exception):
    """Base exception for document source failures."""


class WikipediaFetchError(WikipediaException):
    """Raised when an article cannot be downloaded or decoded."""


class WikipediaNotFoundError(WikipediaFetchError):
    """Raised when the requested article does not exist."""
