import os
from collections.abc import Generator
from typing import Any

import psycopg
import pytest

from flipbook.config.settings import Settings
from flipbook.database.connection import close_pool, get_connection, init_pool, init_schema
from flipbook.database.models import DocumentRecord
from flipbook.database.repositories.document_repository import DocumentRepository


def _test_settings() -> Settings:
    os.environ.setdefault("DB_DATABASE", "flipbook_test")
    return Settings()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    return _test_settings()


@pytest.fixture(scope="session")
def integration_pool(test_settings: Settings) -> Generator[None, None, None]:
    try:
        init_pool(test_settings, max_size=4)
        init_schema()
    except Exception as e:
        close_pool()
        pytest.skip(f"PostgreSQL test DB not available: {e}. Set DB_* env to run.")
    try:
        yield
    finally:
        close_pool()


@pytest.fixture
def db_conn(integration_pool: None) -> Generator[psycopg.Connection[Any], None, None]:
    with get_connection() as conn:
        yield conn


@pytest.fixture
def integration_cleanup(integration_pool: None) -> Generator[list[int], None, None]:
    """Document ids to delete (with everything hanging off them) after the test."""
    document_ids: list[int] = []
    yield document_ids
    repo = DocumentRepository()
    for document_id in document_ids:
        try:
            repo.delete_document(document_id)
        except Exception:
            pass


@pytest.fixture
def seed_document(integration_cleanup: list[int]) -> DocumentRecord:
    document = DocumentRepository().create_document(
        title="Integration document",
        owner_id="integration-owner",
        storage_key=None,
        original_filename="integration.pdf",
    )
    integration_cleanup.append(document.id)
    return document
