"""
Repository Libraries

Handles the patch portal: certificate sessions, catalog listing, detail page
link resolution, bulletin classification and the in-memory caches that keep
repeated enumerations cheap.
"""

from .cache import LinkDetailCache, RowResultCache
from .classifier import Classifier, Rule
from .client import CatalogClient, build_filter, build_listing_payload
from .models import CatalogRow, Classification, FileRecord, LinkDetail, ListingPage, Session
from .parser import DetailPageParser, ListingParser
from .resolver import LinkResolver
from .service import RepositoryService
from .session import PortalSession, SessionStore, resolve_repository

__all__ = [
    'LinkDetailCache',
    'RowResultCache',
    'Classifier',
    'Rule',
    'CatalogClient',
    'build_filter',
    'build_listing_payload',
    'CatalogRow',
    'Classification',
    'FileRecord',
    'LinkDetail',
    'ListingPage',
    'Session',
    'DetailPageParser',
    'ListingParser',
    'LinkResolver',
    'RepositoryService',
    'PortalSession',
    'SessionStore',
    'resolve_repository'
]
