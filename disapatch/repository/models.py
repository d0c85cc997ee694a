"""
Repository Models

Typed records flowing through the enumeration pipeline.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .session import PortalSession


@dataclass
class Session:
    """An authenticated portal session bound to one repository"""
    certificate_thumbprint: str
    repository_id: int
    repository_name: str
    session_handle: "PortalSession"
    total_row_count: int


@dataclass(frozen=True)
class CatalogRow:
    """One entry of the repository listing"""
    asset_id: str
    title: str
    created_date: str


@dataclass(frozen=True)
class LinkDetail:
    """Filename and size of a resolved download URL"""
    url: str
    filename: Optional[str] = None
    size_bytes: int = 0
    skip: bool = False

    @classmethod
    def skip_sentinel(cls, url: str) -> "LinkDetail":
        """Marker for a URL that was probed and has no real attachment"""
        return cls(url=url, skip=True)


@dataclass(frozen=True)
class Classification:
    """Attributes derived from a security bulletin title and filename"""
    clean_title: str
    architecture: Optional[str] = None
    product: Optional[str] = None
    kb: Optional[str] = None
    guid: Optional[str] = None
    disa_date: Optional[str] = None


@dataclass(frozen=True)
class FileRecord:
    """A downloadable file, the unit of output"""
    title: str
    filename: str
    size_mb: float
    download_link: str
    posted_date: str
    size_bytes: int = 0
    classification: Optional[Classification] = None

    @property
    def architecture(self) -> Optional[str]:
        return self.classification.architecture if self.classification else None

    @property
    def product(self) -> Optional[str]:
        return self.classification.product if self.classification else None

    @property
    def kb(self) -> Optional[str]:
        return self.classification.kb if self.classification else None

    @property
    def guid(self) -> Optional[str]:
        return self.classification.guid if self.classification else None

    @property
    def disa_date(self) -> Optional[str]:
        return self.classification.disa_date if self.classification else None

    def to_dict(self) -> Dict[str, Any]:
        """Render the record with the portal's field names"""
        if self.classification is None:
            return {
                "Title": self.title,
                "FileName": self.filename,
                "SizeMB": self.size_mb,
                "DownloadLink": self.download_link,
                "PostedDate": self.posted_date,
            }

        return {
            "Title": self.title,
            "FileName": self.filename,
            "Architecture": self.architecture,
            "Product": self.product,
            "SizeMB": self.size_mb,
            "DownloadLink": self.download_link,
            "PostedDate": self.posted_date,
            "GUID": self.guid,
            "DisaDate": self.disa_date,
            "KB": self.kb,
        }


@dataclass(frozen=True)
class ListingPage:
    """One decoded listing response"""
    total: int
    rows: Tuple[CatalogRow, ...] = ()
