"""
Link Resolver

Turns a catalog row into concrete downloadable files: fetches the row's
detail page, picks out installer links and probes each one for its filename
and size.
"""

import logging
import re
from typing import List, Optional, TYPE_CHECKING

from ..core.constants import NetworkConstants
from ..core.exceptions import (
    DetailPageUnreachableError, LinkMetadataUnavailableError, NetworkError
)
from ..core.utils import retry_call
from .cache import LinkDetailCache
from .models import CatalogRow, LinkDetail
from .parser import DetailPageParser

if TYPE_CHECKING:
    from .session import SessionStore

logger = logging.getLogger(__name__)


def parse_content_disposition(value: str) -> Optional[str]:
    """
    Extract the filename from a Content-Disposition header value

    Returns:
        The filename, or None if the header names no file
    """
    value = value.strip()
    for prefix in NetworkConstants.ATTACHMENT_PREFIXES:
        if value.lower().startswith(prefix):
            filename = value[len(prefix):]
            break
    else:
        match = re.search(r'filename\*?=([^;]+)', value, re.IGNORECASE)
        if not match:
            return None
        filename = match.group(1)
        if filename.lower().startswith("utf-8''"):
            filename = filename[len("utf-8''"):]

    filename = filename.split(';', 1)[0].strip().strip('"\'')
    return filename or None


class LinkResolver:
    """Resolves catalog rows to link details, caching per URL"""

    def __init__(self, session_store: "SessionStore", cache: Optional[LinkDetailCache] = None,
                 parser: Optional[DetailPageParser] = None,
                 attempts: int = NetworkConstants.DEFAULT_RETRIES + 1,
                 retry_delay: float = NetworkConstants.DEFAULT_RETRY_DELAY):
        """
        Initialize link resolver

        Args:
            session_store: Holder of the authenticated session
            cache: Link detail cache (a private one is created if omitted)
            parser: Detail page parser
            attempts: Attempts per detail page fetch and per probe
            retry_delay: Seconds to wait before retrying
        """
        self.session_store = session_store
        self.cache = cache if cache is not None else LinkDetailCache()
        self.parser = parser or DetailPageParser()
        self.attempts = attempts
        self.retry_delay = retry_delay

    def fetch_detail_links(self, row: CatalogRow) -> List[str]:
        """
        Fetch a row's detail page and extract its download links

        Raises:
            DetailPageUnreachableError: If the page cannot be fetched
        """
        handle = self.session_store.require_session().session_handle

        try:
            html = retry_call(
                lambda: handle.get_text(str(NetworkConstants.Endpoint.DETAIL), params={"id": row.asset_id}),
                attempts=self.attempts,
                delay=self.retry_delay,
                description=f"Detail page {row.asset_id}"
            )
        except NetworkError as e:
            raise DetailPageUnreachableError(
                f"Detail page for '{row.title}' (asset {row.asset_id}) unreachable: {e}"
            ) from e

        return self.parser.extract_links(html, handle.base_url)

    def probe(self, url: str) -> LinkDetail:
        """
        Get filename and size for a download URL

        Cached entries, skip sentinels included, are returned without a
        request. A response without Content-Disposition caches a sentinel.

        Raises:
            LinkMetadataUnavailableError: If the probe request fails
        """
        cached = self.cache.get(url)
        if cached is not None:
            logger.debug(f"Link cache hit: {url}")
            return cached

        handle = self.session_store.require_session().session_handle
        try:
            headers = retry_call(
                lambda: handle.head(url),
                attempts=self.attempts,
                delay=self.retry_delay,
                description=f"Probe {url}"
            )
        except NetworkError as e:
            raise LinkMetadataUnavailableError(f"Could not probe {url}: {e}") from e

        disposition = headers.get(str(NetworkConstants.HTTPHeader.CONTENT_DISPOSITION))
        filename = parse_content_disposition(disposition) if disposition else None
        if not filename:
            return self.cache.mark_skip(url)

        try:
            size = int(headers.get(str(NetworkConstants.HTTPHeader.CONTENT_LENGTH)) or 0)
        except ValueError:
            size = 0

        return self.cache.put(LinkDetail(url=url, filename=filename, size_bytes=size))

    def resolve(self, row: CatalogRow) -> List[LinkDetail]:
        """
        Resolve a row to its real attachments in page order

        Links that fail to probe are logged and left out; skip sentinels are
        left out silently.

        Raises:
            DetailPageUnreachableError: If the row's detail page cannot be fetched
        """
        details = []
        for url in self.fetch_detail_links(row):
            try:
                detail = self.probe(url)
            except LinkMetadataUnavailableError as e:
                logger.warning(f"Skipping link: {e}")
                continue

            if detail.skip:
                logger.debug(f"No attachment behind {url}")
                continue
            details.append(detail)

        return details
