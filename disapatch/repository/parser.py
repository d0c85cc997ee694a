"""
Portal Response Parsers

Decodes the listing service's double-encoded JSON and extracts download
anchors from asset detail pages.
"""

import json
import logging
import re
from typing import Any, Dict, List
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from ..core.constants import RepositoryConstants
from ..core.exceptions import ParsingError
from .models import CatalogRow, ListingPage

logger = logging.getLogger(__name__)


class ListingParser:
    """Parses GetAssetsListingOfCollection responses into catalog rows"""

    # WCF wraps the serialized result in a single-key object
    ENVELOPE_KEY = "d"

    def _decode(self, payload: Any) -> Dict[str, Any]:
        """
        Unwrap the response envelope and decode the embedded JSON string

        Raises:
            ParsingError: If the payload does not decode to a JSON object
        """
        if isinstance(payload, dict) and self.ENVELOPE_KEY in payload:
            payload = payload[self.ENVELOPE_KEY]

        if isinstance(payload, (str, bytes)):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError as e:
                raise ParsingError(f"Listing result is not valid JSON: {e}")

        if not isinstance(payload, dict):
            raise ParsingError(
                f"Listing result must be a JSON object, got {type(payload).__name__}"
            )
        return payload

    def _parse_row(self, raw: Any, index: int) -> CatalogRow:
        """Convert one raw row, failing on missing identity fields"""
        if not isinstance(raw, dict):
            raise ParsingError(f"Listing row {index} is not an object")

        fields = RepositoryConstants.RowField
        asset_id = raw.get(str(fields.ASSET_ID))
        title = raw.get(str(fields.TITLE))
        if asset_id in (None, "") or not title:
            raise ParsingError(
                f"Listing row {index} is missing {fields.ASSET_ID} or {fields.TITLE}"
            )

        return CatalogRow(
            asset_id=str(asset_id),
            title=str(title).strip(),
            created_date=str(raw.get(str(fields.CREATED_DATE)) or "")
        )

    def parse(self, payload: Any) -> ListingPage:
        """
        Parse a listing response body

        Args:
            payload: Response body, already decoded once from JSON

        Returns:
            ListingPage with the advertised total and the rows in received order

        Raises:
            ParsingError: If the structure does not match the listing schema
        """
        result = self._decode(payload)

        try:
            total = int(result.get("Total", 0))
        except (TypeError, ValueError):
            raise ParsingError(f"Listing Total is not a number: {result.get('Total')!r}")

        raw_rows = result.get("Rows") or []
        if not isinstance(raw_rows, list):
            raise ParsingError("Listing Rows must be a list")

        rows = tuple(self._parse_row(raw, index) for index, raw in enumerate(raw_rows))
        logger.debug(f"Parsed {len(rows)} listing row(s) of {total} total")
        return ListingPage(total=total, rows=rows)


class DetailPageParser:
    """Extracts installer download links from an asset detail page"""

    def __init__(self, extensions=RepositoryConstants.INSTALLER_EXTENSIONS):
        """
        Initialize detail page parser

        Args:
            extensions: Installer file extensions that qualify an anchor
        """
        alternatives = '|'.join(re.escape(ext) for ext in extensions)
        self.pattern = re.compile(rf'\.(?:{alternatives})\b', re.IGNORECASE)

    @staticmethod
    def normalize_link(href: str, base_url: str) -> str:
        """
        Turn an anchor target into an absolute download URL

        Relative targets are resolved against the portal root and escaped
        ampersands left in the markup are unescaped.
        """
        href = href.strip().replace("&amp;", "&")
        return urljoin(f"{base_url.rstrip('/')}/", href)

    def extract_links(self, html: str, base_url: str) -> List[str]:
        """
        Find qualifying download links in page order

        Args:
            html: Detail page markup
            base_url: Portal root used to resolve relative links

        Returns:
            Unique normalized URLs in order of appearance
        """
        soup = BeautifulSoup(html, "html.parser")
        links = []
        seen = set()

        for anchor in soup.find_all("a"):
            href = anchor.get("href")
            if not href or not self.pattern.search(str(anchor)):
                continue

            url = self.normalize_link(href, base_url)
            if url not in seen:
                seen.add(url)
                links.append(url)

        logger.debug(f"Found {len(links)} candidate download link(s)")
        return links
