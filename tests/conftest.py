# ABOUTME: Shared pytest fixtures for bookcover tests.
# ABOUTME: Isolates tests from BOOKCOVER_* environment variables and provides sample queries.

import os

import pytest

from bookcover.types import BookQuery


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove BOOKCOVER_* variables so configuration starts from defaults."""
    for name in list(os.environ):
        if name.startswith("BOOKCOVER_"):
            monkeypatch.delenv(name)


@pytest.fixture
def guri_query() -> BookQuery:
    """The classic picture book used across resolution scenarios."""
    return BookQuery(title="ぐりとぐら", author="中川李枝子", isbn="9784834000829")
