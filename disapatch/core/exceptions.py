"""
Custom Exceptions

Defines custom exception classes for the DISA Patch tool.
"""


class DisaPatchError(Exception):
    """Base exception class for DISA Patch errors"""
    pass


class ConfigurationError(DisaPatchError):
    """Raised when configuration is invalid or missing"""
    pass


class CredentialAmbiguityError(DisaPatchError):
    """Raised when no client certificate identity can be determined"""
    pass


class AuthenticationError(DisaPatchError):
    """Raised when the certificate login handshake fails"""
    pass


class UnknownRepositoryError(DisaPatchError):
    """Raised when a repository name is not in the repository table"""
    pass


class CatalogUnavailableError(DisaPatchError):
    """Raised when the listing query fails after recovery"""
    pass


class DetailPageUnreachableError(DisaPatchError):
    """Raised when a row's detail page cannot be fetched (row-scoped)"""
    pass


class LinkMetadataUnavailableError(DisaPatchError):
    """Raised when a download link cannot be probed (link-scoped)"""
    pass


class NetworkError(DisaPatchError):
    """Raised when network operations fail"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class ParsingError(DisaPatchError):
    """Raised when data parsing fails"""
    pass
