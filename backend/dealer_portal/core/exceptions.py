"""
Domain exceptions for the client portal
"""
from typing import Optional


class ClientNotFoundError(LookupError):
    """Raised when an explicit admin action targets a client that does not exist"""

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Client not found: {client_id}")


class ClientDirectoryError(RuntimeError):
    """The client directory could not answer (database or network failure). Retryable."""

    retryable = True

    def __init__(self, message: str, client_id: Optional[str] = None):
        self.client_id = client_id
        super().__init__(message)


class StorageUnavailableError(RuntimeError):
    """A session storage scope refused a read or write (disabled, quota exceeded)"""


class InvalidClientCredentialsError(ValueError):
    """Client portal login failed"""
