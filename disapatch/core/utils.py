"""
Core Utilities

Common utility functions used across the DISA Patch tool.
"""

import logging
import re
import sys
import time
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Tuple, Type
from urllib.parse import urlparse

from .exceptions import (
    ConfigurationError, DisaPatchError, AuthenticationError, NetworkError
)
from .constants import ErrorMessages, NetworkConstants, RepositoryConstants

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    """
    Set up logging configuration for the application.
    Separates WARNING/INFO to stdout and ERROR to stderr.

    Args:
        debug: Enable debug logging level
    """
    level = logging.DEBUG if debug else logging.INFO

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Create stdout handler for INFO, WARNING, DEBUG
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.setFormatter(formatter)
    stdout_handler.addFilter(lambda record: record.levelno < logging.ERROR)

    # Create stderr handler for ERROR and CRITICAL only
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.ERROR)
    stderr_handler.setFormatter(formatter)

    root_logger.addHandler(stdout_handler)
    root_logger.addHandler(stderr_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)

    if debug:
        logger.debug("Debug mode enabled")


def retry_call(
    func: Callable[[], Any],
    attempts: int = NetworkConstants.DEFAULT_RETRIES + 1,
    delay: float = NetworkConstants.DEFAULT_RETRY_DELAY,
    backoff: float = NetworkConstants.RETRY_BACKOFF,
    retry_on: Tuple[Type[BaseException], ...] = (NetworkError,),
    on_retry: Optional[Callable[[BaseException, int], None]] = None,
    description: str = "request",
) -> Any:
    """
    Call func, retrying on the given exception types.

    Args:
        func: Zero-argument callable to invoke
        attempts: Total number of attempts (1 disables retrying)
        delay: Seconds to wait before the second attempt
        backoff: Multiplier applied to the delay after each failed attempt
        retry_on: Exception types that trigger another attempt
        on_retry: Called with (error, next_attempt_number) before each retry;
            exceptions it raises propagate immediately
        description: Human readable name used in log messages

    Returns:
        Whatever func returns

    Raises:
        The last exception raised by func once attempts are exhausted
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    wait = delay
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except retry_on as e:
            if attempt >= attempts:
                logger.debug(f"{description} failed after {attempts} attempt(s): {e}")
                raise
            logger.debug(f"{description} failed (attempt {attempt}/{attempts}): {e}")
            if on_retry:
                on_retry(e, attempt + 1)
            if wait > 0:
                time.sleep(wait)
            wait *= backoff


def normalize_thumbprint(thumbprint: str) -> str:
    """
    Normalize a certificate thumbprint to 40 upper-case hex characters.

    Raises:
        ConfigurationError: If the value is not a SHA-1 thumbprint
    """
    cleaned = re.sub(r'[\s:]', '', thumbprint or '').upper()
    if not re.fullmatch(r'[0-9A-F]{40}', cleaned):
        raise ConfigurationError(
            str(ErrorMessages.ConfigError.INVALID_THUMBPRINT).format(thumbprint=thumbprint)
        )
    return cleaned


def validate_base_url(url: str) -> bool:
    """
    Validate the portal base URL.

    Raises:
        ConfigurationError: If the URL is not an absolute http(s) URL
    """
    if not url or not re.match(r'^https?://[a-zA-Z0-9.-]+(?::[0-9]+)?/?$', url):
        raise ConfigurationError(
            str(ErrorMessages.ConfigError.INVALID_BASE_URL).format(url=url)
        )
    return True


def mask_sensitive_info(text: str, thumbprint: Optional[str] = None) -> str:
    """
    Mask certificate thumbprints in text for logging and debug output.

    Args:
        text: Text to mask
        thumbprint: Specific thumbprint to mask (optional)

    Returns:
        Text with thumbprints reduced to their first and last four characters
    """
    if not text:
        return text

    def _mask(value: str) -> str:
        return f"{value[:4]}…{value[-4:]}"

    masked_text = text
    if thumbprint and thumbprint in masked_text:
        masked_text = masked_text.replace(thumbprint, _mask(thumbprint))

    # Any other bare SHA-1 looking token
    return re.sub(r'\b[0-9A-Fa-f]{40}\b', lambda m: _mask(m.group(0)), masked_text)


def sanitize_filename(filename: str) -> str:
    """
    Sanitize a filename by removing or replacing invalid characters.

    Args:
        filename: Original filename

    Returns:
        str: Sanitized filename safe for filesystem use
    """
    sanitized = re.sub(r'[<>:"/\\|?*]', '_', filename)
    sanitized = sanitized.strip('. ')

    if not sanitized:
        sanitized = "unnamed"

    return sanitized


def format_bytes(bytes_count: int) -> str:
    """
    Format byte count into human-readable string.

    Args:
        bytes_count: Number of bytes

    Returns:
        str: Human-readable byte count (e.g., "1.5 MB")
    """
    if bytes_count == 0:
        return "0 B"

    units = ['B', 'KB', 'MB', 'GB', 'TB']
    unit_index = 0
    size = float(bytes_count)

    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1

    return f"{size:.1f} {units[unit_index]}"


def bytes_to_mb(bytes_count: int) -> float:
    """Convert a byte count to megabytes rounded to two decimals"""
    return round(bytes_count / RepositoryConstants.BYTES_PER_MB, 2)


def format_service_date(value: str) -> str:
    """
    Render a listing date for output.

    The listing service returns WCF dates such as ``/Date(1625097600000)/``
    (optionally with a ``+0000`` offset); those become UTC timestamps. Any other
    value is returned unchanged.
    """
    if not value:
        return value

    match = re.fullmatch(r'/Date\((-?\d+)(?:[+-]\d{4})?\)/', value.strip())
    if not match:
        return value

    moment = datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
    return moment.strftime(RepositoryConstants.POSTED_DATE_FORMAT)


def handle_api_error(
    error: Exception,
    context: str = "",
    exception_class: Optional[Type[DisaPatchError]] = None
) -> None:
    """
    Unified error handling function that inspects exceptions and raises appropriate custom exceptions

    Args:
        error: The caught exception to analyze and handle
        context: Optional context information for better error messages
        exception_class: The specific exception class to raise (defaults based on error type)

    Raises:
        DisaPatchError: Appropriate error type with user-friendly message from ErrorMessages constants
    """
    error_str = str(error).lower()
    status_code = getattr(error, 'status_code', None)

    if exception_class is None:
        if status_code in (401, 403) or any(
            indicator in error_str for indicator in ["unauthorized", "forbidden"]
        ):
            exception_class = AuthenticationError
        else:
            exception_class = NetworkError

    context_msg = f"{context}: " if context else ""

    # Handle SSL/TLS related errors
    if any(ssl_indicator in error_str for ssl_indicator in ["ssl", "certificate", "tls"]):
        if "certificate verify failed" in error_str or "certificate_verify_failed" in error_str:
            raise exception_class(f"{context_msg}{ErrorMessages.SSLError.CERT_VERIFICATION_FAILED}") from error
        raise exception_class(
            f"{context_msg}{str(ErrorMessages.SSLError.CONNECTION_ERROR).format(error=error)}"
        ) from error

    if status_code in (401, 403):
        raise exception_class(
            f"{context_msg}{str(ErrorMessages.AuthError.REJECTED).format(status=status_code)}"
        ) from error

    if "timeout" in error_str or "timed out" in error_str:
        raise exception_class(f"{context_msg}{ErrorMessages.NetworkError.CONNECTION_TIMEOUT}") from error

    if "connection refused" in error_str:
        raise exception_class(f"{context_msg}{ErrorMessages.NetworkError.CONNECTION_REFUSED}") from error

    raise exception_class(f"{context_msg}{error}") from error


def get_host(url: str) -> str:
    """Return the host part of a URL, or the URL itself if it has none"""
    return urlparse(url).hostname or url
