"""
Protocols and Interfaces

Defines protocols (interfaces) for dependency injection and type hints.
"""

import ssl
from pathlib import Path
from typing import Protocol, Dict, Any, Iterator, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .auth import CertificateIdentity
    from ..repository.models import FileRecord, Session


class AuthProvider(Protocol):
    """Protocol for client certificate providers"""

    def resolve_identity(self, thumbprint: Optional[str] = None) -> "CertificateIdentity":
        """Determine the certificate identity to authenticate with"""
        ...

    def build_ssl_context(self, identity: "CertificateIdentity") -> ssl.SSLContext:
        """Build a mutual-TLS context for the identity"""
        ...


class ConfigProvider(Protocol):
    """Protocol for configuration providers"""

    def load_config(self, config_path: str) -> Dict[str, Any]:
        """Load configuration from YAML file"""
        ...

    def get_config_template_content(self) -> str:
        """Generate configuration template content as string without file I/O"""
        ...

    def generate_config_template(self, output_dir: str = None) -> str:
        """Generate configuration template file"""
        ...

    def get_value(self, key: str, default: Any = None) -> Any:
        """Get configuration value by key"""
        ...


class RepositoryProvider(Protocol):
    """Protocol for patch repository services"""

    session: Optional["Session"]

    def connect(self, repository_name: str, thumbprint: Optional[str] = None) -> "Session":
        """Authenticate and select a repository"""
        ...

    def get_files(self, since=None, search: Optional[str] = None, sort_by: Optional[str] = None,
                  descending: bool = False, limit: Optional[int] = None,
                  page: int = 1) -> Iterator["FileRecord"]:
        """Enumerate downloadable files"""
        ...

    def save_file(self, record: "FileRecord", directory: Path, force: bool = False) -> Path:
        """Download one file record"""
        ...

    def is_downloaded(self, record: "FileRecord", directory: Path) -> bool:
        """Whether the record's file is already present"""
        ...

    def get_stats(self) -> Dict[str, Any]:
        """Session and cache statistics"""
        ...

    def close(self) -> None:
        """Close the portal session"""
        ...


class HelpProvider(Protocol):
    """Protocol for help providers"""

    def show_help(self, topic: str = None) -> None:
        """Show help for a specific topic"""
        ...

    def show_command_examples(self, command: str) -> None:
        """Show usage examples of one command"""
        ...

    def show_examples(self) -> None:
        """Show usage examples"""
        ...
