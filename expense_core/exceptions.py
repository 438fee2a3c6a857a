"""Domain-specific exceptions for the expense tracker core."""

class ValidationError(ValueError):
    """Raised when provided data does not meet validation requirements."""


class RecordNotFoundError(LookupError):
    """Raised when a category or expense record cannot be located."""


class PersistenceError(IOError):
    """Raised when the persistence layer encounters unrecoverable issues."""


class FetchFailed(PersistenceError):
    """Raised when records cannot be read from the durable store."""


class SaveFailed(PersistenceError):
    """Raised when records cannot be written to the durable store."""


class RemoteFetchError(IOError):
    """Base class for failures of the remote data fetch."""


class InvalidURL(RemoteFetchError):
    """Raised when the remote endpoint is not a usable http(s) URL."""


class DecodingError(RemoteFetchError):
    """Raised when the remote payload is not the expected JSON shape."""


class NetworkError(RemoteFetchError):
    """Raised when the transport fails or the server answers with an error status."""
