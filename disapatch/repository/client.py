"""
Catalog Client

Builds listing queries against the portal's collection service and runs
them with one re-authentication attempt on failure.
"""

import json
import logging
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Optional, Union, TYPE_CHECKING

from ..core.constants import ErrorMessages, NetworkConstants, RepositoryConstants
from ..core.exceptions import CatalogUnavailableError, DisaPatchError, NetworkError, ParsingError
from ..core.utils import retry_call
from .models import CatalogRow, ListingPage
from .parser import ListingParser

if TYPE_CHECKING:
    from .session import PortalSession, SessionStore

logger = logging.getLogger(__name__)

_listing_parser = ListingParser()


def build_filter(since: Optional[Union[date, datetime]] = None,
                 search: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """
    Build the listing filter group

    Args:
        since: Only rows created on or after this date
        search: Only rows whose title contains this text

    Returns:
        An AND group of rules, or None when there is nothing to filter on
    """
    fields = RepositoryConstants.RowField
    ops = RepositoryConstants.FilterOp
    rules: List[Dict[str, str]] = []

    if since is not None:
        rules.append({
            "field": str(fields.CREATED_DATE),
            "op": str(ops.GREATER_OR_EQUAL),
            "data": since.strftime(RepositoryConstants.FILTER_DATE_FORMAT),
        })

    if search:
        rules.append({
            "field": str(fields.TITLE),
            "op": str(ops.CONTAINS),
            "data": search,
        })

    if not rules:
        return None

    return {"groupOp": RepositoryConstants.FILTER_GROUP_OP, "rules": rules}


def build_listing_payload(collection_id: int, rows: int, page: int = 1,
                          filters: Optional[Dict[str, Any]] = None,
                          sort_by: Optional[str] = None,
                          descending: bool = False) -> Dict[str, Any]:
    """
    Build the GetAssetsListingOfCollection request body

    The filter group travels as a JSON string; an absent filter is sent as an
    empty string with search mode off.
    """
    payload: Dict[str, Any] = {
        "collectionId": collection_id,
        "_search": filters is not None,
        "rows": rows,
        "page": page,
        "filters": json.dumps(filters) if filters is not None else "",
    }

    if sort_by:
        column = RepositoryConstants.SortColumn.from_option(sort_by)
        direction = (RepositoryConstants.SortDirection.DESCENDING if descending
                     else RepositoryConstants.SortDirection.ASCENDING)
        payload["sidx"] = str(column)
        payload["sord"] = str(direction)

    return payload


def fetch_listing_page(handle: "PortalSession", collection_id: int, rows: int, page: int = 1,
                       filters: Optional[Dict[str, Any]] = None, sort_by: Optional[str] = None,
                       descending: bool = False) -> ListingPage:
    """
    Run one listing request and decode the result

    Raises:
        NetworkError: If the request fails
        ParsingError: If the response does not match the listing schema
    """
    payload = build_listing_payload(collection_id, rows, page, filters, sort_by, descending)
    logger.debug(f"Listing request: {payload}")
    body = handle.post_json(str(NetworkConstants.Endpoint.LISTING), payload)
    return _listing_parser.parse(body)


class CatalogClient:
    """Lists catalog rows for the connected repository"""

    # The request itself plus one attempt after re-authenticating
    ATTEMPTS = 2

    def __init__(self, session_store: "SessionStore", retry_delay: float = 0.0):
        """
        Initialize catalog client

        Args:
            session_store: Holder of the authenticated session
            retry_delay: Seconds to wait before the recovery attempt
        """
        self.session_store = session_store
        self.retry_delay = retry_delay

    def _recover(self, error: BaseException, attempt: int) -> None:
        """Re-authenticate before the retry"""
        logger.warning(f"Listing request failed ({error}), re-authenticating and retrying")
        try:
            self.session_store.reconnect()
        except DisaPatchError as e:
            raise CatalogUnavailableError(
                str(ErrorMessages.RepositoryError.CATALOG_UNAVAILABLE).format(
                    repository=self.session_store.require_session().repository_name, error=e
                )
            ) from e

    def fetch_page(self, since=None, search: Optional[str] = None, sort_by: Optional[str] = None,
                   descending: bool = False, limit: Optional[int] = None,
                   page: int = 1) -> ListingPage:
        """
        Fetch one listing page, re-authenticating once on failure

        Args:
            since: Only rows created on or after this date
            search: Only rows whose title contains this text
            sort_by: 'title' or 'created' (service default order when omitted)
            descending: Sort direction
            limit: Rows per page (defaults to the session's advisory row count)
            page: 1-based page number

        Returns:
            ListingPage: Decoded listing page

        Raises:
            CatalogUnavailableError: If the request fails twice
        """
        filters = build_filter(since, search)

        def _attempt() -> ListingPage:
            # Read the session on every attempt, recovery replaces it
            session = self.session_store.require_session()
            rows = limit if limit is not None else session.total_row_count
            return fetch_listing_page(
                session.session_handle, session.repository_id,
                rows=rows, page=page, filters=filters,
                sort_by=sort_by, descending=descending
            )

        try:
            return retry_call(
                _attempt,
                attempts=self.ATTEMPTS,
                delay=self.retry_delay,
                retry_on=(NetworkError, ParsingError),
                on_retry=self._recover,
                description="Listing request"
            )
        except (NetworkError, ParsingError) as e:
            raise CatalogUnavailableError(
                str(ErrorMessages.RepositoryError.CATALOG_UNAVAILABLE).format(
                    repository=self.session_store.require_session().repository_name, error=e
                )
            ) from e

    def list_rows(self, since=None, search: Optional[str] = None, sort_by: Optional[str] = None,
                  descending: bool = False, limit: Optional[int] = None,
                  page: int = 1) -> Iterator[CatalogRow]:
        """
        Yield catalog rows in the order the service returns them

        The request is issued when iteration starts; see fetch_page for the
        arguments and failure behaviour.
        """
        listing = self.fetch_page(since, search, sort_by, descending, limit, page)
        logger.info(f"Listing returned {len(listing.rows)} row(s)")
        yield from listing.rows
