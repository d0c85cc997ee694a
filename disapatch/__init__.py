"""
DISA Patch

A command-line tool and library to list and download files from the DISA
patch repository portal using client-certificate authentication. Security
bulletin files are classified by architecture, product and KB number.
"""

__version__ = "1.0.0"
__author__ = "DISA Patch Project"

from .core import (
    CertificateAuth, ConfigManager, DisaPatchError, AuthenticationError, ConfigurationError,
    CredentialAmbiguityError, UnknownRepositoryError, CatalogUnavailableError, NetworkError,
    RepositoryConstants, NetworkConstants, FileConstants, ErrorMessages
)
from .repository import (
    RepositoryService, SessionStore, CatalogClient, LinkResolver, Classifier,
    FileRecord, CatalogRow, LinkDetail, Classification
)
from .help_manager import HelpManager
from .main_app import DisaPatchManager, main

__all__ = [
    # Core
    'CertificateAuth',
    'ConfigManager',
    'DisaPatchError',
    'AuthenticationError',
    'ConfigurationError',
    'CredentialAmbiguityError',
    'UnknownRepositoryError',
    'CatalogUnavailableError',
    'NetworkError',
    'RepositoryConstants',
    'NetworkConstants',
    'FileConstants',
    'ErrorMessages',
    # Repository
    'RepositoryService',
    'SessionStore',
    'CatalogClient',
    'LinkResolver',
    'Classifier',
    'FileRecord',
    'CatalogRow',
    'LinkDetail',
    'Classification',
    # Main
    'HelpManager',
    'DisaPatchManager',
    'main'
]
