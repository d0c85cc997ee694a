"""Tests for listing and detail page parsing."""

import json

import pytest

from disapatch.core.exceptions import ParsingError
from disapatch.repository.parser import DetailPageParser, ListingParser

from conftest import BASE_URL, listing_body, make_row


class TestListingParser:
    def test_double_encoded_envelope(self):
        page = ListingParser().parse(listing_body([make_row(7, " KB title ")], total=42))

        assert page.total == 42
        assert len(page.rows) == 1
        row = page.rows[0]
        assert row.asset_id == "7"
        assert row.title == "KB title"
        assert row.created_date == "/Date(1625097600000)/"

    def test_plain_object(self):
        page = ListingParser().parse({"Total": 0, "Rows": []})
        assert page.total == 0
        assert page.rows == ()

    def test_rows_keep_received_order(self):
        rows = [make_row(i, f"Title {i}") for i in (3, 1, 2)]
        page = ListingParser().parse(listing_body(rows))
        assert [row.asset_id for row in page.rows] == ["3", "1", "2"]

    @pytest.mark.parametrize("payload", [
        {"d": "not json"},
        {"d": json.dumps([1, 2])},
        {"d": json.dumps({"Total": "many", "Rows": []})},
        {"d": json.dumps({"Total": 1, "Rows": {"x": 1}})},
        {"d": json.dumps({"Total": 1, "Rows": [{"TITLE": "no id"}]})},
        {"d": json.dumps({"Total": 1, "Rows": [{"STANDARDASSETID": 1}]})},
        None,
    ])
    def test_bad_shapes_fail_fast(self, payload):
        with pytest.raises(ParsingError):
            ListingParser().parse(payload)


class TestDetailPageParser:
    def test_only_installer_anchors(self):
        html = """
        <a href="/Home.aspx">Home</a>
        <a href="/Files/update.msu">update.msu</a>
        <a href="/Files/readme.pdf">readme</a>
        <a href="/Download.ashx?id=9">Setup.EXE</a>
        """
        links = DetailPageParser().extract_links(html, BASE_URL)
        assert links == [
            f"{BASE_URL}/Files/update.msu",
            f"{BASE_URL}/Download.ashx?id=9",
        ]

    def test_duplicates_collapse_in_page_order(self):
        html = '<a href="b.cab">b</a><a href="a.zip">a</a><a href="b.cab">again</a>'
        assert DetailPageParser().extract_links(html, BASE_URL) == [
            f"{BASE_URL}/b.cab",
            f"{BASE_URL}/a.zip",
        ]

    def test_absolute_links_and_escaped_ampersands(self):
        assert DetailPageParser.normalize_link(
            "https://cdn.test/get.aspx?a=1&amp;b=kb.msi", BASE_URL
        ) == "https://cdn.test/get.aspx?a=1&b=kb.msi"

    def test_extension_must_end_a_word(self):
        html = '<a href="/Files/file.msuX">x</a>'
        assert DetailPageParser().extract_links(html, BASE_URL) == []

    def test_custom_extensions(self):
        html = '<a href="/a.msu">a</a><a href="/b.iso">b</a>'
        assert DetailPageParser(extensions=("iso",)).extract_links(html, BASE_URL) == [
            f"{BASE_URL}/b.iso"
        ]
