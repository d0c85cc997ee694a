"""
Constants Module

Centralized constants for the DISA Patch tool to eliminate magic strings
and improve maintainability.
"""

from enum import Enum, IntEnum


class BaseStrEnum(str, Enum):
    """Base enum class that inherits from str"""

    def __str__(self) -> str:
        """Return the enum value as string"""
        return self.value

    def __repr__(self) -> str:
        """Return a detailed representation of the enum"""
        return f"{self.__class__.__name__}.{self.name}"


class RepositoryConstants:
    """Patch repository constants"""

    DEFAULT_REPOSITORY = "MicrosoftSecurityBulletins"

    class Repository(IntEnum):
        """Known patch repositories and their collection ids"""
        MicrosoftSecurityBulletins = 15
        MicrosoftSecurityAdvisories = 734
        MicrosoftApplications = 732
        MicrosoftToolkits = 733

        @classmethod
        def from_name(cls, name: str) -> "RepositoryConstants.Repository":
            """Look up a repository by name, case-insensitively"""
            for member in cls:
                if member.name.lower() == (name or "").lower():
                    return member
            raise KeyError(name)

        @classmethod
        def get_names(cls) -> list:
            """Get all repository names"""
            return [member.name for member in cls]

    # Only this repository gets product/architecture classification
    CLASSIFIED_REPOSITORY = Repository.MicrosoftSecurityBulletins

    # Informational count query issued at connect time
    COUNT_QUERY_ROWS = 15
    COUNT_QUERY_PAGE = 1

    class SortColumn(BaseStrEnum):
        """Sortable listing columns"""
        TITLE = "TITLE"
        CREATED_DATE = "CREATED_DATE"

        @classmethod
        def from_option(cls, option: str) -> "RepositoryConstants.SortColumn":
            """Map a CLI sort option onto a listing column"""
            aliases = {
                "title": cls.TITLE,
                "created": cls.CREATED_DATE,
                "createddate": cls.CREATED_DATE,
                "created_date": cls.CREATED_DATE,
            }
            try:
                return aliases[option.lower()]
            except KeyError:
                raise ValueError(f"Unsupported sort column: {option}")

    class SortDirection(BaseStrEnum):
        """Listing sort directions"""
        ASCENDING = "asc"
        DESCENDING = "desc"

    class FilterOp(BaseStrEnum):
        """Listing filter operators"""
        GREATER_OR_EQUAL = "ge"
        CONTAINS = "cn"

    class RowField(BaseStrEnum):
        """Listing row field names"""
        ASSET_ID = "STANDARDASSETID"
        TITLE = "TITLE"
        CREATED_DATE = "CREATED_DATE"

    FILTER_GROUP_OP = "AND"

    # Day-month-year abbreviated, e.g. 01-Jul-2021
    FILTER_DATE_FORMAT = "%d-%b-%Y"

    # Output rendering of /Date(ms)/ service dates
    POSTED_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    # Candidate anchors on a detail page
    INSTALLER_EXTENSIONS = ("msu", "exe", "msi", "msp", "cab", "zip", "tar")

    BYTES_PER_MB = 1024 * 1024


class NetworkConstants:
    """Network-related constants with improved enum-based structure"""

    DEFAULT_BASE_URL = "https://patches.csd.disa.mil"

    # Timeout constants (seconds) - simple attributes for configurable values
    DEFAULT_TIMEOUT = 30
    DOWNLOAD_TIMEOUT = 300

    # Retry constants - one extra attempt, doubling delay
    DEFAULT_RETRIES = 1
    DEFAULT_RETRY_DELAY = 1.0
    RETRY_BACKOFF = 2.0

    # Buffer size constants - simple attributes for configurable values
    DEFAULT_BUFFER_SIZE = 65536

    # User Agent - simple attribute for configurable value
    USER_AGENT = "disa-patch/1.0"

    class Endpoint(BaseStrEnum):
        """Portal endpoint paths"""
        LOGIN = "/PkiLogin/Default.aspx"
        LISTING = "/Service/CollectionInfoService.svc/GetAssetsListingOfCollection"
        DETAIL = "/Metadata.aspx"

    class ContentType(BaseStrEnum):
        """Content-Type header values"""
        JSON = "application/json; charset=utf-8"

    class HTTPHeader(BaseStrEnum):
        """Standard HTTP header names"""
        CONTENT_TYPE = "Content-Type"
        CONTENT_LENGTH = "Content-Length"
        CONTENT_DISPOSITION = "Content-Disposition"
        USER_AGENT = "User-Agent"
        ACCEPT = "Accept"

    # Content-Disposition prefixes stripped to obtain the filename
    ATTACHMENT_PREFIXES = ("attachment;filename=", "attachment; filename=")


class ErrorMessages:
    """Centralized error message templates with improved enum-based structure"""

    class SSLError(BaseStrEnum):
        """SSL-related error message templates"""
        CERT_VERIFICATION_FAILED = (
            "SSL certificate verification failed for the patch portal.\n"
            "Make sure the DoD root certificates are trusted on this machine."
        )

        CONNECTION_ERROR = (
            "SSL connection error occurred. Check that the selected client certificate is valid.\n"
            "Original error: {error}"
        )

        VERIFICATION_DISABLED_WARNING = (
            "SSL verification disabled - connections will not verify the portal certificate. "
            "This is insecure and should only be used for troubleshooting"
        )

    class AuthError(BaseStrEnum):
        """Authentication-related error message templates"""
        LOGIN_FAILED = "Certificate login to {url} failed: {error}"
        REJECTED = "The portal rejected the client certificate (HTTP {status})."
        NOT_CONNECTED = "Not connected. Connect to a repository first."

    class CredentialError(BaseStrEnum):
        """Certificate selection error message templates"""
        NO_CERTIFICATES = (
            "No client certificates found in {store}.\n"
            "Export your CAC/PKI certificate as PEM into that directory or pass --cert-store."
        )

        AMBIGUOUS = (
            "Multiple client certificates found in {store} and no thumbprint was given.\n"
            "Available thumbprints: {thumbprints}\n"
            "Pass --thumbprint to choose one."
        )

        NOT_FOUND = "No certificate with thumbprint {thumbprint} found in {store}"

    class RepositoryError(BaseStrEnum):
        """Repository and catalog error message templates"""
        UNKNOWN_REPOSITORY = (
            "Unknown repository '{name}'.\n"
            "Available repositories: {available}"
        )

        CATALOG_UNAVAILABLE = "Listing query for repository {repository} failed: {error}"
        COUNT_QUERY_FAILED = "Row count query for repository {repository} failed: {error}"

    class NetworkError(BaseStrEnum):
        """Network-related error message templates"""
        CONNECTION_TIMEOUT = (
            "Connection timeout or network error occurred.\n"
            "This could mean:\n"
            "  • The patch portal is not responding\n"
            "  • A proxy is required to reach the portal\n\n"
            "Try:\n"
            "  • Retrying the command\n"
            "  • Using --debug flag for more detailed logs"
        )

        CONNECTION_REFUSED = (
            "Connection refused by the patch portal.\n"
            "Try:\n"
            "  • Checking the portal base URL in your configuration\n"
            "  • Retrying with --debug for detailed logs"
        )

    class ConfigError(BaseStrEnum):
        """Configuration-related error message templates"""
        INVALID_THUMBPRINT = "Invalid certificate thumbprint format: {thumbprint}"
        INVALID_BASE_URL = "Invalid portal URL format: {url}"
        CONFIG_FILE_NOT_FOUND = "Configuration file not found: {config_path}"


class FileConstants:
    """File and directory related constants"""

    DEFAULT_CONFIG_FILE = "disa-patch.yaml"
    DEFAULT_CERT_STORE = "~/.disapatch/certs"
    DEFAULT_DOWNLOAD_DIR = "./downloads"

    class FileExtension(BaseStrEnum):
        """File extensions used in the DISA Patch tool"""
        PEM = ".pem"
        CRT = ".crt"
        CER = ".cer"
        KEY = ".key"
        PART = ".part"

        @classmethod
        def get_certificate_extensions(cls) -> list:
            """Get file extensions for PEM client certificates"""
            return [cls.PEM, cls.CRT, cls.CER]
