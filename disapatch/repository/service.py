"""
Repository Service

High-level service that owns the session store, both caches and the
classifier, and turns listing rows into file records.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

try:
    import httpx
except ImportError:
    raise ImportError("httpx is required for RepositoryService. Install with: pip install httpx")

from ..core.constants import FileConstants, NetworkConstants, RepositoryConstants
from ..core.exceptions import DetailPageUnreachableError, NetworkError
from ..core.protocols import AuthProvider
from ..core.utils import bytes_to_mb, format_bytes, format_service_date, sanitize_filename
from .cache import LinkDetailCache, RowResultCache
from .classifier import Classifier
from .client import CatalogClient
from .models import CatalogRow, FileRecord, LinkDetail, Session
from .resolver import LinkResolver
from .session import SessionStore

logger = logging.getLogger(__name__)


class RepositoryService:
    """Enumerates and downloads files from a patch repository"""

    def __init__(self, auth: AuthProvider,
                 base_url: str = NetworkConstants.DEFAULT_BASE_URL,
                 timeout: float = NetworkConstants.DEFAULT_TIMEOUT,
                 retries: int = NetworkConstants.DEFAULT_RETRIES,
                 retry_delay: float = NetworkConstants.DEFAULT_RETRY_DELAY,
                 row_cache_key: str = 'title',
                 transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize repository service

        Args:
            auth: Client certificate provider
            base_url: Portal root URL
            timeout: Per-request timeout in seconds
            retries: Extra attempts for detail page fetches and probes
            retry_delay: Seconds to wait before a retry
            row_cache_key: 'title' or 'asset_id'
            transport: Alternative httpx transport (tests inject a MockTransport)
        """
        self.session_store = SessionStore(auth, base_url, timeout, transport)
        self.link_cache = LinkDetailCache()
        self.row_cache = RowResultCache(row_cache_key)
        self.classifier = Classifier()
        self.catalog = CatalogClient(self.session_store, retry_delay=retry_delay)
        self.resolver = LinkResolver(
            self.session_store, self.link_cache,
            attempts=retries + 1, retry_delay=retry_delay
        )

    @property
    def session(self) -> Optional[Session]:
        return self.session_store.session

    def connect(self, repository_name: str = RepositoryConstants.DEFAULT_REPOSITORY,
                thumbprint: Optional[str] = None) -> Session:
        """
        Authenticate and select a repository

        See SessionStore.connect for failure modes.
        """
        return self.session_store.connect(repository_name, thumbprint)

    def _build_record(self, row: CatalogRow, detail: LinkDetail, classify: bool) -> FileRecord:
        classification = self.classifier.classify(row.title, detail.filename) if classify else None
        return FileRecord(
            title=classification.clean_title if classification else row.title,
            filename=detail.filename,
            size_mb=bytes_to_mb(detail.size_bytes),
            download_link=detail.url,
            posted_date=format_service_date(row.created_date),
            size_bytes=detail.size_bytes,
            classification=classification
        )

    def _records_for_row(self, row: CatalogRow, classify: bool) -> List[FileRecord]:
        details = self.resolver.resolve(row)
        if not details:
            logger.warning(f"Skipping '{row.title}': no downloadable attachment")
        return [self._build_record(row, detail, classify) for detail in details]

    def get_files(self, since=None, search: Optional[str] = None, sort_by: Optional[str] = None,
                  descending: bool = False, limit: Optional[int] = None,
                  page: int = 1) -> Iterator[FileRecord]:
        """
        Enumerate downloadable files of the connected repository

        A lazy, forward-only sequence: rows in listing order, files in page
        order within a row. Rows whose detail page cannot be fetched are
        logged and skipped.

        Args:
            since: Only rows created on or after this date
            search: Only rows whose title contains this text
            sort_by: 'title' or 'created'
            descending: Sort direction
            limit: Rows to list (defaults to the advisory total row count)
            page: 1-based page number

        Raises:
            AuthenticationError: If not connected
            CatalogUnavailableError: If the listing query fails after recovery
        """
        session = self.session_store.require_session()
        classify = session.repository_id == int(RepositoryConstants.CLASSIFIED_REPOSITORY)

        for row in self.catalog.list_rows(since, search, sort_by, descending, limit, page):
            try:
                records = self.row_cache.get_or_compute(
                    row, lambda: self._records_for_row(row, classify)
                )
            except DetailPageUnreachableError as e:
                logger.warning(f"Skipping row: {e}")
                continue

            yield from records

    @staticmethod
    def target_path(record: FileRecord, directory: Path) -> Path:
        """Where save_file puts a record"""
        return Path(directory) / sanitize_filename(record.filename)

    def is_downloaded(self, record: FileRecord, directory: Path) -> bool:
        """True if the record's file exists with the expected size"""
        target = self.target_path(record, directory)
        return target.exists() and target.stat().st_size == record.size_bytes

    def save_file(self, record: FileRecord, directory: Path, force: bool = False) -> Path:
        """
        Download a file record into a directory

        An existing file of the expected size is kept unless force is set.

        Returns:
            Path: The downloaded (or already present) file

        Raises:
            NetworkError: If the download fails
        """
        handle = self.session_store.require_session().session_handle
        directory = Path(directory)
        target = self.target_path(record, directory)

        if not force and self.is_downloaded(record, directory):
            logger.info(f"Already downloaded: {target.name}")
            return target

        directory.mkdir(parents=True, exist_ok=True)
        partial = target.with_name(target.name + str(FileConstants.FileExtension.PART))

        try:
            with handle.stream(record.download_link) as response, open(partial, 'wb') as f:
                for chunk in response.iter_bytes(NetworkConstants.DEFAULT_BUFFER_SIZE):
                    f.write(chunk)
        except (NetworkError, OSError):
            partial.unlink(missing_ok=True)
            raise

        partial.replace(target)
        logger.info(f"Downloaded {target.name} ({format_bytes(target.stat().st_size)})")
        return target

    def get_stats(self) -> Dict[str, Any]:
        """
        Get session and cache statistics

        Returns:
            Dict with statistics
        """
        stats: Dict[str, Any] = {
            'connected': self.session is not None,
            'link_cache': self.link_cache.get_cache_stats(),
            'row_cache_entries': len(self.row_cache),
        }
        if self.session is not None:
            stats['repository'] = self.session.repository_name
            stats['session'] = self.session.session_handle.get_session_stats()
        return stats

    def close(self) -> None:
        """Close the portal session"""
        self.session_store.close()

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()
