"""Tests for the append-only JSONL decision log."""

import json
import logging

import pytest

from continuity.errors import StorageError
from continuity.storage import DecisionLog
from continuity.types import DecisionQuery


class TestAppendAndRead:
    """Appending and reading back decisions."""

    def test_new_log_is_empty(self, decision_log):
        assert decision_log.log_path.exists()
        assert decision_log.read_all() == []
        assert decision_log.count() == 0

    def test_empty_file_is_a_valid_log(self, tmp_path):
        (tmp_path / "decisions.jsonl").write_text("")
        log = DecisionLog(tmp_path)
        assert log.read_all() == []

    def test_append_writes_one_line_per_decision(self, decision_log, make_decision):
        decision_log.append(make_decision("Use SQLite"))
        decision_log.append(make_decision("Use JSONL for decisions"))

        lines = decision_log.log_path.read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["decision"] == "Use SQLite"

    def test_round_trip_preserves_fields(self, decision_log, make_decision):
        original = make_decision(
            alternatives=["Postgres", "Flat files"],
            impact="high",
            revisit_trigger="More than one writer process",
            session_id="session-1",
        )
        decision_log.append(original)

        assert decision_log.get_by_id(original.id) == original

    def test_get_by_id_unknown(self, decision_log):
        assert decision_log.get_by_id("nope") is None

    def test_append_failure_raises_storage_error(self, decision_log, make_decision):
        decision_log.log_path.unlink()
        decision_log.log_path.mkdir()

        with pytest.raises(StorageError, match="Cannot append decision"):
            decision_log.append(make_decision())


class TestCorruptLines:
    """One bad line never makes the log unreadable."""

    def test_corrupt_line_skipped_with_warning(self, decision_log, make_decision, caplog):
        decision_log.append(make_decision("First"))
        with open(decision_log.log_path, "a", encoding="utf-8") as f:
            f.write("{not json\n")
            f.write('{"id": "missing-fields"}\n')
        decision_log.append(make_decision("Second"))

        with caplog.at_level(logging.WARNING):
            decisions = decision_log.read_all()

        assert [d.decision for d in decisions] == ["First", "Second"]
        assert "Skipping malformed decision at line 2" in caplog.text
        assert "Skipping malformed decision at line 3" in caplog.text

    def test_blank_lines_ignored(self, decision_log, make_decision):
        decision_log.append(make_decision())
        with open(decision_log.log_path, "a", encoding="utf-8") as f:
            f.write("\n\n")
        assert decision_log.count() == 1


class TestQuery:
    """Filters are ANDed; absent filters match everything."""

    @pytest.fixture
    def populated(self, decision_log, make_decision):
        decision_log.append(
            make_decision("Use SQLite for checkpoints", workspace="alpha", category="technical")
        )
        decision_log.append(
            make_decision(
                "Adopt trunk-based development",
                workspace="alpha",
                category="process",
                alternatives=["GitFlow"],
            )
        )
        decision_log.append(
            make_decision("Use ruff for linting", workspace="beta", category="tooling")
        )
        return decision_log

    def test_no_filters_returns_everything_in_order(self, populated):
        results = populated.query(DecisionQuery())
        assert [d.id for d in results] == ["dec-1", "dec-2", "dec-3"]

    def test_workspace_filter(self, populated):
        assert [d.id for d in populated.get_all("alpha")] == ["dec-1", "dec-2"]

    def test_category_filter(self, populated):
        results = populated.query(DecisionQuery(category="tooling"))
        assert [d.id for d in results] == ["dec-3"]

    def test_keyword_is_case_insensitive(self, populated):
        results = populated.query(DecisionQuery(keyword="SQLITE"))
        assert [d.id for d in results] == ["dec-1"]

    def test_keyword_searches_alternatives(self, populated):
        results = populated.query(DecisionQuery(keyword="gitflow"))
        assert [d.id for d in results] == ["dec-2"]

    def test_keyword_searches_rationale(self, populated):
        results = populated.query(DecisionQuery(keyword="durable"))
        assert len(results) == 3

    def test_since_is_a_lexicographic_lower_bound(self, populated):
        results = populated.query(DecisionQuery(since="2026-01-02"))
        assert [d.id for d in results] == ["dec-2", "dec-3"]

    def test_filters_are_anded(self, populated):
        results = populated.query(DecisionQuery(workspace="alpha", keyword="ruff"))
        assert results == []
