"""
Core Libraries

Shared functionality and utilities for the DISA Patch tool.
"""

from .auth import CertificateAuth, CertificateIdentity
from .config import ConfigManager
from .constants import (
    RepositoryConstants, NetworkConstants, FileConstants, ErrorMessages
)
from .exceptions import (
    DisaPatchError, ConfigurationError, CredentialAmbiguityError, AuthenticationError,
    UnknownRepositoryError, CatalogUnavailableError, DetailPageUnreachableError,
    LinkMetadataUnavailableError, NetworkError, ParsingError
)
from .protocols import AuthProvider, ConfigProvider, RepositoryProvider, HelpProvider
from .utils import (
    setup_logging, retry_call, normalize_thumbprint, validate_base_url,
    format_bytes, handle_api_error, mask_sensitive_info
)

__all__ = [
    # Main classes
    'CertificateAuth',
    'CertificateIdentity',
    'ConfigManager',
    # Constants
    'RepositoryConstants',
    'NetworkConstants',
    'FileConstants',
    'ErrorMessages',
    # Exceptions
    'DisaPatchError',
    'ConfigurationError',
    'CredentialAmbiguityError',
    'AuthenticationError',
    'UnknownRepositoryError',
    'CatalogUnavailableError',
    'DetailPageUnreachableError',
    'LinkMetadataUnavailableError',
    'NetworkError',
    'ParsingError',
    # Protocols
    'AuthProvider',
    'ConfigProvider',
    'RepositoryProvider',
    'HelpProvider',
    # Utilities
    'setup_logging',
    'retry_call',
    'normalize_thumbprint',
    'validate_base_url',
    'format_bytes',
    'handle_api_error',
    'mask_sensitive_info'
]
