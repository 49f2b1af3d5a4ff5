"""
Tests for the SQLite connection manager and schema helpers.
"""

import pytest

from similar_references.connection import SQLiteDB
from similar_references.schema import (
    create_reference_field,
    get_schema_version,
    get_table_counts,
    init_database,
    set_reference_values,
)
from similar_references.similarity import ReferenceField, TargetIdResolver

TAGS = ReferenceField("field_tags")


class TestSQLiteDB:
    def test_placeholder(self, db):
        assert db.placeholder == "?"

    def test_rows_are_dicts(self, db):
        assert db.fetchone("SELECT 1 AS a, 2 AS b") == {"a": 1, "b": 2}

    def test_meta(self, db):
        init_database(db)
        db.set_meta("source", "fixture")
        db.set_meta("source", "import")
        assert db.get_meta("source") == "import"
        assert db.get_meta("missing") is None


class TestSchema:
    def test_version_before_init(self, db):
        assert get_schema_version(db) == "0.0"

    def test_init_is_idempotent(self, db):
        init_database(db)
        init_database(db)
        assert db.is_initialized()
        assert get_schema_version(db) == "1.0"

    def test_read_only_init_refused(self, db, tmp_path):
        init_database(db)
        read_only = SQLiteDB(db_path=db.db_path, read_only=True)
        with pytest.raises(RuntimeError, match="read-only"):
            init_database(read_only)
        read_only.close()

    def test_reference_field_tables(self, db):
        init_database(db)
        create_reference_field(db, TAGS)

        assert db.table_exists("node__field_tags")
        assert get_table_counts(db, ["field_storage_config"]) == {"field_storage_config": 1}

    def test_set_reference_values_replaces(self, db):
        init_database(db)
        create_reference_field(db, TAGS)

        assert set_reference_values(db, TAGS, 1, [2, 3]) == 2
        assert set_reference_values(db, TAGS, 1, [4]) == 1
        assert TargetIdResolver(db).resolve(TAGS, 1) == frozenset({4})

    def test_counts_reject_bad_table_names(self, db):
        with pytest.raises(ValueError):
            get_table_counts(db, ["meta; DROP TABLE meta"])
