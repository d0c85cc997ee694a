"""
Portal Session Manager

Manages the authenticated httpx connection to the patch portal and the
process-level session state (certificate, repository, advisory row count).
"""

import logging
import ssl
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

try:
    import httpx
except ImportError:
    raise ImportError("httpx is required for PortalSession. Install with: pip install httpx")

from ..core.constants import ErrorMessages, NetworkConstants, RepositoryConstants
from ..core.exceptions import (
    AuthenticationError, CatalogUnavailableError, NetworkError, ParsingError, UnknownRepositoryError
)
from ..core.protocols import AuthProvider
from ..core.utils import format_bytes, get_host, handle_api_error, mask_sensitive_info
from .models import Session

logger = logging.getLogger(__name__)


def resolve_repository(repository_name: str) -> RepositoryConstants.Repository:
    """
    Map a repository name onto its collection id

    Raises:
        UnknownRepositoryError: If the name is not a known repository
    """
    try:
        return RepositoryConstants.Repository.from_name(repository_name)
    except KeyError:
        raise UnknownRepositoryError(
            str(ErrorMessages.RepositoryError.UNKNOWN_REPOSITORY).format(
                name=repository_name,
                available=', '.join(RepositoryConstants.Repository.get_names())
            )
        )


class PortalSession:
    """Manages a persistent connection to the patch portal using httpx"""

    def __init__(self, base_url: str, ssl_context: Optional[ssl.SSLContext] = None,
                 timeout: float = NetworkConstants.DEFAULT_TIMEOUT,
                 transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize portal session

        Args:
            base_url: Portal root URL
            ssl_context: Mutual-TLS context carrying the client certificate
            timeout: Per-request timeout in seconds
            transport: Alternative httpx transport (tests inject a MockTransport)
        """
        self.base_url = base_url.rstrip('/')
        self._connection_time = time.time()
        self._request_count = 0
        self._total_request_time = 0.0
        self._total_bytes_received = 0

        self.client: Optional[httpx.Client] = httpx.Client(
            base_url=self.base_url,
            verify=ssl_context if ssl_context is not None else True,
            transport=transport,
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={
                str(NetworkConstants.HTTPHeader.USER_AGENT): NetworkConstants.USER_AGENT,
            }
        )

        logger.debug(f"Session initialized for {get_host(self.base_url)}")

    def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Make a request and fail on non-success status

        Args:
            method: HTTP method
            url: Portal-relative path or absolute URL
            **kwargs: Passed through to httpx

        Returns:
            httpx.Response: The successful response

        Raises:
            NetworkError: If the request fails or returns an error status
        """
        if not self.client:
            raise NetworkError("Portal session is closed")

        start_time = time.time()
        try:
            response = self.client.request(method, url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"HTTP {e.response.status_code}: {e.response.reason_phrase}",
                status_code=e.response.status_code
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Request failed: {e}")

        self._request_count += 1
        request_time = time.time() - start_time
        self._total_request_time += request_time
        self._total_bytes_received += len(response.content)

        logger.debug(f"{method} {url} completed in {request_time:.2f}s ({len(response.content)} bytes)")
        return response

    def get_text(self, url: str, params: Optional[Dict[str, Any]] = None) -> str:
        """GET a page and return its body text"""
        return self.request("GET", url, params=params).text

    def post_json(self, url: str, payload: Dict[str, Any]) -> Any:
        """
        POST a JSON body and decode the JSON response

        Raises:
            NetworkError: If the request fails
            ParsingError: If the response is not JSON
        """
        response = self.request(
            "POST", url, json=payload,
            headers={
                str(NetworkConstants.HTTPHeader.CONTENT_TYPE): str(NetworkConstants.ContentType.JSON),
                str(NetworkConstants.HTTPHeader.ACCEPT): "application/json",
            }
        )
        try:
            return response.json()
        except ValueError as e:
            raise ParsingError(f"Response from {url} is not JSON: {e}")

    def head(self, url: str) -> httpx.Headers:
        """Issue a metadata-only request and return the response headers"""
        return self.request("HEAD", url).headers

    @contextmanager
    def stream(self, url: str) -> Iterator[httpx.Response]:
        """
        Stream a download through the authenticated connection

        Raises:
            NetworkError: If the request fails or returns an error status
        """
        if not self.client:
            raise NetworkError("Portal session is closed")

        try:
            with self.client.stream(
                "GET", url, timeout=httpx.Timeout(NetworkConstants.DOWNLOAD_TIMEOUT)
            ) as response:
                response.raise_for_status()
                self._request_count += 1
                yield response
        except httpx.HTTPStatusError as e:
            raise NetworkError(
                f"HTTP {e.response.status_code}: {e.response.reason_phrase}",
                status_code=e.response.status_code
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Download failed: {e}")

    def get_session_stats(self) -> Dict[str, Any]:
        """
        Get session performance statistics

        Returns:
            Dict with session statistics
        """
        connection_age = time.time() - self._connection_time
        avg_request_time = self._total_request_time / self._request_count if self._request_count > 0 else 0

        return {
            'connection_age_seconds': connection_age,
            'total_requests': self._request_count,
            'total_request_time': self._total_request_time,
            'average_request_time': avg_request_time,
            'total_bytes_received': self._total_bytes_received,
            'cookies': len(self.client.cookies) if self.client else 0,
        }

    def close(self) -> None:
        """Close the session and clean up resources"""
        if self.client:
            self.client.close()
            self.client = None

            if self._request_count > 0:
                stats = self.get_session_stats()
                logger.info(f"Session closed: {self._request_count} requests, "
                            f"{stats['average_request_time']:.2f}s avg, "
                            f"{format_bytes(self._total_bytes_received)} transferred")

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        self.close()


class SessionStore:
    """Holds the authenticated session and re-creates it on demand"""

    def __init__(self, auth: AuthProvider, base_url: str = NetworkConstants.DEFAULT_BASE_URL,
                 timeout: float = NetworkConstants.DEFAULT_TIMEOUT,
                 transport: Optional[httpx.BaseTransport] = None):
        """
        Initialize session store

        Args:
            auth: Client certificate provider
            base_url: Portal root URL
            timeout: Per-request timeout in seconds
            transport: Alternative httpx transport (tests inject a MockTransport)
        """
        self.auth = auth
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.transport = transport
        self.session: Optional[Session] = None

    def _open_handle(self, identity) -> PortalSession:
        """Create the httpx connection for a certificate identity"""
        ssl_context = None
        if self.transport is None:
            ssl_context = self.auth.build_ssl_context(identity)
        return PortalSession(self.base_url, ssl_context, self.timeout, self.transport)

    def _login(self, handle: PortalSession) -> None:
        """
        Perform the certificate login handshake

        Raises:
            AuthenticationError: If the portal does not accept the login
        """
        url = str(NetworkConstants.Endpoint.LOGIN)
        try:
            handle.request("GET", url)
        except NetworkError as e:
            handle_api_error(
                e,
                str(ErrorMessages.AuthError.LOGIN_FAILED).format(url=f"{self.base_url}{url}", error=e),
                AuthenticationError
            )

        logger.debug(f"Login succeeded ({len(handle.client.cookies)} session cookie(s))")

    def _count_rows(self, handle: PortalSession, repository: RepositoryConstants.Repository) -> int:
        """
        Learn the repository's total row count

        Raises:
            CatalogUnavailableError: If the count query fails
        """
        # Imported here, the client module depends on this one
        from .client import fetch_listing_page

        try:
            page = fetch_listing_page(
                handle, int(repository),
                rows=RepositoryConstants.COUNT_QUERY_ROWS,
                page=RepositoryConstants.COUNT_QUERY_PAGE
            )
        except (NetworkError, ParsingError) as e:
            raise CatalogUnavailableError(
                str(ErrorMessages.RepositoryError.COUNT_QUERY_FAILED).format(
                    repository=repository.name, error=e
                )
            )
        return page.total

    def connect(self, repository_name: str, thumbprint: Optional[str] = None) -> Session:
        """
        Authenticate with a client certificate and select a repository

        Args:
            repository_name: One of the known repository names
            thumbprint: Certificate thumbprint (optional, reuses the stored selection)

        Returns:
            Session: The new current session

        Raises:
            UnknownRepositoryError: If the repository name is unknown
            CredentialAmbiguityError: If no certificate can be selected
            AuthenticationError: If the login handshake fails
            CatalogUnavailableError: If the row count query fails
        """
        repository = resolve_repository(repository_name)
        identity = self.auth.resolve_identity(thumbprint)

        handle = self._open_handle(identity)
        try:
            self._login(handle)
            total = self._count_rows(handle, repository)
        except Exception:
            handle.close()
            raise

        if self.session is not None:
            self.session.session_handle.close()

        self.session = Session(
            certificate_thumbprint=identity.thumbprint,
            repository_id=int(repository),
            repository_name=repository.name,
            session_handle=handle,
            total_row_count=total
        )
        logger.info(
            f"Connected to {repository.name} (collection {int(repository)}, {total} rows) "
            f"as {mask_sensitive_info(identity.thumbprint)}"
        )
        return self.session

    def reconnect(self) -> Session:
        """Re-run connect with the current session's certificate and repository"""
        session = self.require_session()
        logger.info(f"Re-authenticating to {session.repository_name}")
        return self.connect(session.repository_name, session.certificate_thumbprint)

    def require_session(self) -> Session:
        """
        Return the current session

        Raises:
            AuthenticationError: If connect has not succeeded yet
        """
        if self.session is None:
            raise AuthenticationError(str(ErrorMessages.AuthError.NOT_CONNECTED))
        return self.session

    def close(self) -> None:
        """Close the current session handle"""
        if self.session is not None:
            self.session.session_handle.close()
            self.session = None
