# ABOUTME: Parsing functions for provider API responses (Google Books, Open Library, Rakuten, NDL).
# ABOUTME: Converts provider-specific payloads into Candidate instances with the richest image tier.

import xml.etree.ElementTree as ET
from typing import Any

from bookcover.providers.http import MalformedResponseError
from bookcover.types import Candidate, ImageQuality, SearchPlan, normalize_isbn

_OL_COVERS_BASE = "https://covers.openlibrary.org/b"
_NDL_THUMBNAIL_BASE = "https://ndlsearch.ndl.go.jp/thumbnail"

# Image link keys per provider, richest first.
_GOOGLE_IMAGE_TIERS: tuple[tuple[str, ImageQuality], ...] = (
    ("extraLarge", ImageQuality.LARGE),
    ("large", ImageQuality.LARGE),
    ("medium", ImageQuality.MEDIUM),
    ("small", ImageQuality.SMALL),
    ("thumbnail", ImageQuality.THUMBNAIL),
    ("smallThumbnail", ImageQuality.THUMBNAIL),
)
_RAKUTEN_IMAGE_TIERS: tuple[tuple[str, ImageQuality], ...] = (
    ("largeImageUrl", ImageQuality.LARGE),
    ("mediumImageUrl", ImageQuality.MEDIUM),
    ("smallImageUrl", ImageQuality.SMALL),
)

# Open Library uses MARC language codes.
_MARC_LANGUAGES = {"jpn": "ja", "eng": "en", "fre": "fr", "ger": "de", "chi": "zh", "kor": "ko"}

_NDL_NS = {
    "dc": "http://purl.org/dc/elements/1.1/",
    "dcndl": "http://ndl.go.jp/dcndl/terms/",
    "xsi": "http://www.w3.org/2001/XMLSchema-instance",
}
_XSI_TYPE = f"{{{_NDL_NS['xsi']}}}type"


def best_image_link(
    links: dict[str, Any], tiers: tuple[tuple[str, ImageQuality], ...]
) -> tuple[str, ImageQuality] | None:
    """Pick the richest available image link, upgraded to https."""
    for key, quality in tiers:
        url = links.get(key)
        if url:
            return str(url).replace("http://", "https://", 1), quality
    return None


def _plan_fields(plan: SearchPlan) -> dict[str, Any]:
    return {"plan_name": plan.strategy_name, "plan_priority": plan.priority}


def _string_list(value: Any) -> list[str]:
    """Coerce a field that may be a single string or a list of strings."""
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v]


def _malformed(provider: str, exc: Exception) -> MalformedResponseError:
    return MalformedResponseError(f"Unexpected {provider} payload shape: {exc}")


def parse_google_volumes(
    data: dict[str, Any], plan: SearchPlan, *, provider_name: str, query_isbn: str | None
) -> list[Candidate]:
    """Parse a Google Books volumes response into candidates with images.

    Raises:
        MalformedResponseError: If any part of the payload has the wrong shape.
    """
    try:
        items = data.get("items", [])
        if not isinstance(items, list):
            raise MalformedResponseError("Google Books 'items' is not a list")
        results: list[Candidate] = []
        for item in items:
            candidate = _google_candidate(item, plan, provider_name, query_isbn)
            if candidate is not None:
                results.append(candidate)
        return results
    except (AttributeError, TypeError, KeyError) as exc:
        raise _malformed("Google Books", exc) from exc


def _google_candidate(
    item: dict[str, Any], plan: SearchPlan, provider_name: str, query_isbn: str | None
) -> Candidate | None:
    volume = item.get("volumeInfo") or {}
    image = best_image_link(volume.get("imageLinks") or {}, _GOOGLE_IMAGE_TIERS)
    if image is None:
        return None
    url, quality = image

    isbn = None
    for identifier in volume.get("industryIdentifiers") or []:
        if identifier.get("type") == "ISBN_13":
            isbn = identifier.get("identifier")
            break

    return Candidate(
        source_title=str(volume.get("title") or ""),
        source_authors=_string_list(volume.get("authors")),
        image_url=url,
        image_quality=quality,
        provider_name=provider_name,
        language=str(volume["language"]) if volume.get("language") else None,
        categories=_string_list(volume.get("categories")),
        isbn=isbn,
        isbn_matched=bool(plan.use_isbn and query_isbn and isbn == query_isbn),
        **_plan_fields(plan),
    )


def parse_openlibrary_edition(data: dict[str, Any]) -> dict[str, Any]:
    """Extract title, language, ISBN, cover id, and author keys from an edition.

    Raises:
        MalformedResponseError: If the edition record has the wrong shape.
    """
    try:
        language = None
        languages = data.get("languages") or []
        if languages:
            first = languages[0]
            lang_key = first.get("key", "") if isinstance(first, dict) else str(first)
            code = lang_key.rsplit("/", 1)[-1]
            language = _MARC_LANGUAGES.get(code, code)

        isbn_13 = _string_list(data.get("isbn_13"))
        covers = [c for c in data.get("covers") or [] if isinstance(c, int) and c > 0]
        authors = [a for a in data.get("authors") or [] if isinstance(a, dict)]
        return {
            "title": str(data.get("title") or ""),
            "language": language,
            "isbn": isbn_13[0] if isbn_13 else None,
            "cover_id": covers[0] if covers else None,
            "author_keys": [a["key"] for a in authors if a.get("key")],
            "subjects": _string_list(data.get("subjects")),
        }
    except (AttributeError, TypeError, KeyError) as exc:
        raise _malformed("Open Library", exc) from exc


def build_cover_url(cover_id: int, size: str = "L") -> str:
    """Build an Open Library cover image URL for a cover id.

    Args:
        cover_id: The numeric cover id from an edition record.
        size: Image size: "S" (small), "M" (medium), or "L" (large).
    """
    return f"{_OL_COVERS_BASE}/id/{cover_id}-{size}.jpg"


def parse_rakuten_items(
    data: dict[str, Any], plan: SearchPlan, *, provider_name: str, query_isbn: str | None
) -> list[Candidate]:
    """Parse a Rakuten Books search response (format version 1 or 2).

    Raises:
        MalformedResponseError: If any part of the payload has the wrong shape.
    """
    try:
        items = data.get("Items", [])
        if not isinstance(items, list):
            raise MalformedResponseError("Rakuten 'Items' is not a list")
        results: list[Candidate] = []
        for entry in items:
            candidate = _rakuten_candidate(entry, plan, provider_name, query_isbn)
            if candidate is not None:
                results.append(candidate)
        return results
    except (AttributeError, TypeError, KeyError) as exc:
        raise _malformed("Rakuten", exc) from exc


def _rakuten_candidate(
    entry: dict[str, Any], plan: SearchPlan, provider_name: str, query_isbn: str | None
) -> Candidate | None:
    book = entry.get("Item", entry)
    image = best_image_link(book, _RAKUTEN_IMAGE_TIERS)
    if image is None:
        return None
    url, quality = image
    # Rakuten serves thumbnails with a size query; drop it to get the full image.
    url = url.split("?", 1)[0]

    authors = [a.strip() for a in str(book.get("author") or "").split("/") if a.strip()]
    genre = str(book.get("booksGenreId") or "")
    isbn = str(book["isbn"]) if book.get("isbn") else None

    return Candidate(
        source_title=str(book.get("title") or ""),
        source_authors=authors,
        image_url=url,
        image_quality=quality,
        provider_name=provider_name,
        language="ja",
        categories=[g for g in genre.split("/") if g],
        isbn=isbn,
        isbn_matched=bool(plan.use_isbn and query_isbn and isbn == query_isbn),
        **_plan_fields(plan),
    )


def parse_ndl_rss(
    xml_text: str, plan: SearchPlan, *, provider_name: str, query_isbn: str | None
) -> list[Candidate]:
    """Parse an NDL OpenSearch RSS feed into candidates.

    NDL exposes no image links in the feed; records with an ISBN are mapped to
    the NDL thumbnail endpoint.
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise MalformedResponseError(f"Invalid NDL RSS: {exc}") from exc

    results: list[Candidate] = []
    seen: set[str] = set()
    for item in root.iter("item"):
        isbn = None
        for identifier in item.findall("dc:identifier", _NDL_NS):
            if identifier.get(_XSI_TYPE) == "dcndl:ISBN" and identifier.text:
                isbn = normalize_isbn(identifier.text)
                break
        if not isbn or isbn in seen:
            continue
        seen.add(isbn)

        title = item.findtext("dc:title", default="", namespaces=_NDL_NS) or item.findtext(
            "title", default=""
        )
        authors = [c.text.strip() for c in item.findall("dc:creator", _NDL_NS) if c.text]

        results.append(
            Candidate(
                source_title=title.strip(),
                source_authors=authors,
                image_url=f"{_NDL_THUMBNAIL_BASE}/{isbn}.jpg",
                image_quality=ImageQuality.SMALL,
                provider_name=provider_name,
                language="ja",
                categories=[
                    s.text for s in item.findall("dc:subject", _NDL_NS) if s.text
                ],
                isbn=isbn,
                isbn_matched=bool(plan.use_isbn and query_isbn and isbn == query_isbn),
                **_plan_fields(plan),
            )
        )
    return results
