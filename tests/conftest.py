"""Shared test fixtures: a fake patch portal on httpx.MockTransport and a fake certificate provider."""

import json
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional

import httpx
import pytest

from disapatch.core.auth import CertificateIdentity
from disapatch.core.constants import NetworkConstants
from disapatch.repository import RepositoryService

BASE_URL = "https://portal.test"
THUMBPRINT = "0123456789ABCDEF0123456789ABCDEF01234567"

LOGIN = str(NetworkConstants.Endpoint.LOGIN)
LISTING = str(NetworkConstants.Endpoint.LISTING)
DETAIL = str(NetworkConstants.Endpoint.DETAIL)


def make_row(asset_id, title: str, created: str = "/Date(1625097600000)/") -> Dict[str, object]:
    """A raw listing row as the collection service returns it"""
    return {"STANDARDASSETID": asset_id, "TITLE": title, "CREATED_DATE": created}


def listing_body(rows: List[Dict[str, object]], total: Optional[int] = None) -> Dict[str, str]:
    """Wrap rows in the double-encoded listing envelope"""
    result = {"Total": len(rows) if total is None else total, "Rows": rows}
    return {"d": json.dumps(result)}


def detail_html(*hrefs: str) -> str:
    """A detail page with one anchor per href"""
    anchors = "\n".join(f'<a href="{href}">{href.rsplit("/", 1)[-1]}</a>' for href in hrefs)
    return f"<html><body><h1>Asset</h1><a href='/Home.aspx'>Home</a>\n{anchors}</body></html>"


class FakePortal:
    """In-memory patch portal; counts calls per endpoint"""

    def __init__(self):
        self.rows: List[Dict[str, object]] = []
        self.total: Optional[int] = None
        self.detail_pages: Dict[str, str] = {}
        self.attachments: Dict[str, Dict[str, str]] = {}
        self.downloads: Dict[str, bytes] = {}
        self.login_status = 200
        # endpoint key -> number of upcoming requests answered with HTTP 500
        self.failures: Counter = Counter()
        self.calls: Counter = Counter()
        self.listing_requests: List[Dict[str, object]] = []

    def add_file(self, url: str, filename: Optional[str], content: bytes = b"x" * 2048) -> None:
        """Register a download URL; filename None means no Content-Disposition"""
        headers = {"Content-Length": str(len(content))}
        if filename:
            headers["Content-Disposition"] = f"attachment; filename={filename}"
        self.attachments[url] = headers
        self.downloads[url] = content

    def _failing(self, key: str) -> bool:
        if self.failures[key] > 0:
            self.failures[key] -= 1
            return True
        return False

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path

        if path == LOGIN:
            self.calls["login"] += 1
            return httpx.Response(self.login_status, text="<html>ok</html>")

        if path == LISTING:
            self.calls["listing"] += 1
            self.listing_requests.append(json.loads(request.content))
            if self._failing("listing"):
                return httpx.Response(500, text="Server Error")
            return httpx.Response(200, json=listing_body(self.rows, self.total))

        if path == DETAIL:
            asset_id = request.url.params.get("id")
            self.calls[f"detail:{asset_id}"] += 1
            if self._failing(f"detail:{asset_id}"):
                return httpx.Response(500, text="Server Error")
            if asset_id not in self.detail_pages:
                return httpx.Response(404, text="Not Found")
            return httpx.Response(200, text=self.detail_pages[asset_id])

        url = str(request.url)
        if request.method == "HEAD":
            self.calls[f"head:{url}"] += 1
            if self._failing(f"head:{url}"):
                return httpx.Response(500)
            if url not in self.attachments:
                return httpx.Response(404)
            return httpx.Response(200, headers=self.attachments[url])

        if request.method == "GET" and url in self.downloads:
            self.calls[f"get:{url}"] += 1
            if self._failing(f"get:{url}"):
                return httpx.Response(500)
            return httpx.Response(200, content=self.downloads[url])

        return httpx.Response(404, text="Not Found")


class FakeAuth:
    """Certificate provider that never touches the filesystem"""

    def __init__(self, thumbprint: str = THUMBPRINT):
        self.thumbprint = thumbprint
        self.requested: List[Optional[str]] = []

    def resolve_identity(self, thumbprint: Optional[str] = None) -> CertificateIdentity:
        self.requested.append(thumbprint)
        return CertificateIdentity(thumbprint=thumbprint or self.thumbprint, cert_file=Path("client.pem"))

    def build_ssl_context(self, identity):
        raise AssertionError("No SSL context is built when a transport is injected")


@pytest.fixture
def portal() -> FakePortal:
    """Return an empty fake portal."""
    return FakePortal()


@pytest.fixture
def fake_auth() -> FakeAuth:
    """Return a fake certificate provider."""
    return FakeAuth()


@pytest.fixture
def service(portal: FakePortal, fake_auth: FakeAuth) -> RepositoryService:
    """Return a repository service wired to the fake portal."""
    svc = RepositoryService(
        fake_auth,
        base_url=BASE_URL,
        retries=1,
        retry_delay=0,
        transport=httpx.MockTransport(portal.handler)
    )
    yield svc
    svc.close()


@pytest.fixture
def bulletin_portal(portal: FakePortal) -> FakePortal:
    """Portal with two bulletin rows: one with an installer, one without."""
    url = f"{BASE_URL}/Files/windows10.0-kb5004237-x64_a1b2c3d4.msu"
    portal.rows = [
        make_row(101, "July 2021 Windows 10 Version 21H1 (KB5004237) x64"),
        make_row(102, "July 2021 Release Notes"),
    ]
    portal.detail_pages = {
        "101": detail_html("/Files/windows10.0-kb5004237-x64_a1b2c3d4.msu"),
        "102": detail_html("/Files/release-notes.pdf"),
    }
    portal.add_file(url, "windows10.0-kb5004237-x64_a1b2c3d4.msu")
    return portal
