# ABOUTME: Unit tests for the Google Books, Open Library, Rakuten, and NDL providers.
# ABOUTME: Uses a FakeHttpClient to check request shapes and failure absorption.

import logging

import pytest

from bookcover.providers.google_books import GoogleBooksProvider
from bookcover.providers.http import MalformedResponseError, ProviderUnavailableError
from bookcover.providers.ndl import NdlProvider
from bookcover.providers.openlibrary import OpenLibraryProvider
from bookcover.providers.provider import CoverProvider
from bookcover.providers.rakuten import RakutenBooksProvider
from bookcover.types import BookQuery, ImageQuality, SearchPlan
from tests.fixtures.fakes import FakeHttpClient
from tests.fixtures.provider_responses import (
    GOOGLE_EMPTY_RESPONSE,
    GOOGLE_VOLUMES_RESPONSE,
    GURI_ISBN,
    NDL_RSS_RESPONSE,
    OPENLIBRARY_AUTHOR_RESPONSE,
    OPENLIBRARY_EDITION_NO_COVER,
    OPENLIBRARY_EDITION_RESPONSE,
    RAKUTEN_RESPONSE,
)

GURI = BookQuery(title="ぐりとぐら", author="中川李枝子", isbn=GURI_ISBN)
GURI_NO_ISBN = BookQuery(title="ぐりとぐら", author="中川李枝子")
ISBN_PLAN = SearchPlan(
    strategy_name="isbn_exact", priority=10, query_terms=f"isbn:{GURI_ISBN}", use_isbn=True
)
TEXT_PLAN = SearchPlan(
    strategy_name="exact_title_author",
    priority=9,
    query_terms='"ぐりとぐら" 中川李枝子',
    title_terms="ぐりとぐら",
    author_terms="中川李枝子",
)
YEAR_PLAN = SearchPlan(
    strategy_name="title_author_year",
    priority=8,
    query_terms="ぐりとぐら 中川李枝子",
    title_terms="ぐりとぐら",
    author_terms="中川李枝子",
    year_range=(1961, 1965),
)


@pytest.mark.parametrize(
    ("provider", "name"),
    [
        (GoogleBooksProvider(FakeHttpClient()), "google_books"),
        (OpenLibraryProvider(FakeHttpClient()), "openlibrary"),
        (RakutenBooksProvider(FakeHttpClient(), application_id="app"), "rakuten"),
        (NdlProvider(FakeHttpClient()), "ndl"),
    ],
)
def test_providers_satisfy_protocol(provider: CoverProvider, name: str) -> None:
    """Every adapter implements the CoverProvider protocol under its own name."""
    assert isinstance(provider, CoverProvider)
    assert provider.name == name


class TestGoogleBooksProvider:
    """Tests for GoogleBooksProvider."""

    def test_text_search_params(self) -> None:
        client = FakeHttpClient({"volumes": GOOGLE_VOLUMES_RESPONSE})
        provider = GoogleBooksProvider(client, api_key="secret")
        results = provider.search(TEXT_PLAN, GURI)

        assert len(results) == 1
        url, params = client.request_log[0]
        assert url.endswith("/books/v1/volumes")
        assert params["q"] == '"ぐりとぐら" 中川李枝子'
        assert params["langRestrict"] == "ja"
        assert params["key"] == "secret"

    def test_isbn_search_uses_isbn_query(self) -> None:
        client = FakeHttpClient({"volumes": GOOGLE_VOLUMES_RESPONSE})
        results = GoogleBooksProvider(client).search(ISBN_PLAN, GURI)
        assert client.request_log[0][1]["q"] == f"isbn:{GURI_ISBN}"
        assert results[0].isbn_matched is True

    def test_isbn_plan_without_trusted_isbn_makes_no_request(self) -> None:
        client = FakeHttpClient({"volumes": GOOGLE_VOLUMES_RESPONSE})
        assert GoogleBooksProvider(client).search(ISBN_PLAN, GURI_NO_ISBN) == []
        assert client.request_log == []

    def test_no_language_restriction(self) -> None:
        client = FakeHttpClient({"volumes": GOOGLE_EMPTY_RESPONSE})
        plan = SearchPlan(
            strategy_name="alternate_edition",
            priority=4,
            query_terms="ぐりとぐら",
            language_restrict=False,
        )
        assert GoogleBooksProvider(client).search(plan, GURI) == []
        assert "langRestrict" not in client.request_log[0][1]

    def test_failure_returns_empty(self, caplog: pytest.LogCaptureFixture) -> None:
        client = FakeHttpClient({"volumes": ProviderUnavailableError("HTTP 503")})
        with caplog.at_level(logging.WARNING):
            assert GoogleBooksProvider(client).search(TEXT_PLAN, GURI) == []
        assert "Google Books search failed" in caplog.text

    def test_malformed_returns_empty(self) -> None:
        client = FakeHttpClient({"volumes": {"items": "broken"}})
        assert GoogleBooksProvider(client).search(TEXT_PLAN, GURI) == []

    @pytest.mark.parametrize(
        "payload",
        [
            {"items": ["oops"]},
            {"items": [{"volumeInfo": {"imageLinks": "https://img/1.jpg"}}]},
            {"items": [{"volumeInfo": "broken"}]},
            ["not", "an", "object"],
        ],
    )
    def test_wrong_shape_logged_and_empty(
        self, payload: object, caplog: pytest.LogCaptureFixture
    ) -> None:
        client = FakeHttpClient({"volumes": payload})
        with caplog.at_level(logging.WARNING):
            assert GoogleBooksProvider(client).search(TEXT_PLAN, GURI) == []
        assert "Unexpected Google Books payload shape" in caplog.text


class TestOpenLibraryProvider:
    """Tests for OpenLibraryProvider."""

    def test_isbn_lookup(self) -> None:
        client = FakeHttpClient(
            {"/isbn/": OPENLIBRARY_EDITION_RESPONSE, "/authors/": OPENLIBRARY_AUTHOR_RESPONSE}
        )
        results = OpenLibraryProvider(client).search(ISBN_PLAN, GURI)

        assert len(results) == 1
        candidate = results[0]
        assert candidate.image_url == "https://covers.openlibrary.org/b/id/8231856-L.jpg"
        assert candidate.image_quality == ImageQuality.LARGE
        assert candidate.source_authors == ["中川李枝子"]
        assert candidate.language == "ja"
        assert candidate.isbn_matched is True
        assert client.request_log[0][0] == f"https://openlibrary.org/isbn/{GURI_ISBN}.json"

    def test_text_plan_ignored(self) -> None:
        client = FakeHttpClient({"/isbn/": OPENLIBRARY_EDITION_RESPONSE})
        assert OpenLibraryProvider(client).search(TEXT_PLAN, GURI) == []
        assert client.request_log == []

    def test_edition_without_cover(self) -> None:
        client = FakeHttpClient({"/isbn/": OPENLIBRARY_EDITION_NO_COVER})
        assert OpenLibraryProvider(client).search(ISBN_PLAN, GURI) == []

    def test_author_failure_keeps_candidate(self) -> None:
        client = FakeHttpClient(
            {
                "/isbn/": OPENLIBRARY_EDITION_RESPONSE,
                "/authors/": ProviderUnavailableError("HTTP 500"),
            }
        )
        results = OpenLibraryProvider(client).search(ISBN_PLAN, GURI)
        assert results[0].source_authors == []

    def test_lookup_failure_returns_empty(self) -> None:
        client = FakeHttpClient({"/isbn/": ProviderUnavailableError("HTTP 404")})
        assert OpenLibraryProvider(client).search(ISBN_PLAN, GURI) == []

    @pytest.mark.parametrize(
        "payload",
        [["edition"], {"covers": [1], "languages": 5}, {"covers": 7}],
    )
    def test_wrong_shape_returns_empty(
        self, payload: object, caplog: pytest.LogCaptureFixture
    ) -> None:
        client = FakeHttpClient({"/isbn/": payload})
        with caplog.at_level(logging.WARNING):
            assert OpenLibraryProvider(client).search(ISBN_PLAN, GURI) == []
        assert "ISBN lookup failed" in caplog.text

    def test_string_language_entry(self) -> None:
        edition = {"title": "ぐりとぐら", "languages": ["jpn"], "covers": [1]}
        client = FakeHttpClient({"/isbn/": edition})
        results = OpenLibraryProvider(client).search(ISBN_PLAN, GURI)
        assert results[0].language == "ja"

    def test_malformed_author_record_skipped(self) -> None:
        client = FakeHttpClient(
            {"/isbn/": OPENLIBRARY_EDITION_RESPONSE, "/authors/": ["中川李枝子"]}
        )
        results = OpenLibraryProvider(client).search(ISBN_PLAN, GURI)
        assert results[0].source_authors == []


class TestRakutenBooksProvider:
    """Tests for RakutenBooksProvider."""

    def test_title_author_params(self) -> None:
        client = FakeHttpClient({"rakuten": RAKUTEN_RESPONSE})
        results = RakutenBooksProvider(client, application_id="app-1").search(TEXT_PLAN, GURI)

        assert len(results) == 1
        params = client.request_log[0][1]
        assert params["applicationId"] == "app-1"
        assert params["title"] == "ぐりとぐら"
        assert params["author"] == "中川李枝子"
        assert "isbn" not in params

    def test_isbn_params(self) -> None:
        client = FakeHttpClient({"rakuten": RAKUTEN_RESPONSE})
        results = RakutenBooksProvider(client, application_id="app-1").search(ISBN_PLAN, GURI)
        assert client.request_log[0][1]["isbn"] == GURI_ISBN
        assert results[0].isbn_matched is True

    def test_failure_returns_empty(self) -> None:
        client = FakeHttpClient({"rakuten": MalformedResponseError("bad")})
        assert RakutenBooksProvider(client, application_id="a").search(TEXT_PLAN, GURI) == []

    def test_wrong_item_shape_logged_and_empty(self, caplog: pytest.LogCaptureFixture) -> None:
        client = FakeHttpClient({"rakuten": {"Items": [1, 2]}})
        with caplog.at_level(logging.WARNING):
            assert RakutenBooksProvider(client, application_id="a").search(TEXT_PLAN, GURI) == []
        assert "Unexpected Rakuten payload shape" in caplog.text


class TestNdlProvider:
    """Tests for NdlProvider."""

    def test_title_creator_and_year_params(self) -> None:
        client = FakeHttpClient(text_responses={"opensearch": NDL_RSS_RESPONSE})
        results = NdlProvider(client).search(YEAR_PLAN, GURI)

        assert len(results) == 1
        params = client.request_log[0][1]
        assert params["title"] == "ぐりとぐら"
        assert params["creator"] == "中川李枝子"
        assert params["from"] == "1961"
        assert params["until"] == "1965"

    def test_isbn_params(self) -> None:
        client = FakeHttpClient(text_responses={"opensearch": NDL_RSS_RESPONSE})
        results = NdlProvider(client).search(ISBN_PLAN, GURI)
        assert client.request_log[0][1]["isbn"] == GURI_ISBN
        assert results[0].isbn_matched is True

    def test_unparseable_feed_returns_empty(self) -> None:
        client = FakeHttpClient(text_responses={"opensearch": "<rss><broken"})
        assert NdlProvider(client).search(TEXT_PLAN, GURI) == []
