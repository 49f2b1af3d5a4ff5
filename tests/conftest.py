"""
Pytest configuration for similar-references tests.

The `corpus` fixture builds this SQLite corpus (entity ids on the left):

    1 (A)  field_related [5, 7]   field_tags [2]   field_author [100]   field_legacy [5]
    2 (B)  field_related [7, 9]                                         field_legacy [5]
    3 (C)  field_related [5]      field_tags [2]
    4 (D)  field_related [11]     field_tags [12]
    5 (E)                                          field_author [100]
    6 (F)  (no references)

field_author targets users; field_legacy is deleted in the catalog;
field_empty exists but holds no values.
"""

import os

import pytest

from similar_references.connection import SQLiteDB
from similar_references.fixtures import load_corpus
from similar_references.schema import mark_field_deleted
from similar_references.similarity import ReferenceField

A, B, C, D, E, F = 1, 2, 3, 4, 5, 6

CORPUS = {
    "fields": [
        {"name": "field_related", "target_type": "node"},
        {"name": "field_tags", "target_type": "node"},
        {"name": "field_empty", "target_type": "node"},
        {"name": "field_author", "target_type": "user"},
        {"name": "field_legacy", "target_type": "node"},
    ],
    "entities": [
        {
            "id": A,
            "title": "A",
            "references": {
                "field_related": [5, 7],
                "field_tags": [2],
                "field_author": [100],
                "field_legacy": [5],
            },
        },
        {"id": B, "title": "B", "references": {"field_related": [7, 9], "field_legacy": [5]}},
        {"id": C, "title": "C", "references": {"field_related": [5], "field_tags": [2]}},
        {"id": D, "title": "D", "references": {"field_related": [11], "field_tags": [12]}},
        {"id": E, "title": "E", "references": {"field_author": [100]}},
        {"id": F, "title": "F"},
    ],
}


def pytest_configure(config):
    """Configure pytest with database URL if available."""
    # Try to load from .env file if environment variables not already set
    env_file = os.path.join(os.path.dirname(__file__), "..", ".env")
    if os.path.exists(env_file):
        with open(env_file) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    key = key.strip()
                    value = value.strip().strip('"').strip("'")
                    if key not in os.environ:
                        os.environ[key] = value


@pytest.fixture
def db(tmp_path):
    """An empty SQLite database in a temporary directory."""
    database = SQLiteDB(db_path=tmp_path / "corpus.sqlite")
    yield database
    database.close()


@pytest.fixture
def corpus(db):
    """The documented test corpus loaded into `db`."""
    load_corpus(db, CORPUS, entity_type="node")
    mark_field_deleted(db, ReferenceField("field_legacy", "node"))
    return db


@pytest.fixture(scope="session")
def postgres_url():
    """Get the PostgreSQL database URL."""
    url = os.environ.get("DATABASE_URL")
    if not url:
        pytest.skip("DATABASE_URL not set")
    return url
