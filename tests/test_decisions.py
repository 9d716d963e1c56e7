"""Tests for decision logging through the Continuity facade."""

import pytest

from continuity.errors import ValidationError


def _log(c, decision="Use SQLite for checkpoint storage", workspace="w", **kwargs):
    kwargs.setdefault("category", "technical")
    kwargs.setdefault("rationale", "Single file, transactional")
    return c.log_decision(workspace, decision=decision, **kwargs)


class TestLogDecision:
    def test_result_fields(self, continuity):
        result = _log(continuity)

        assert result["success"] is True
        assert result["decision_id"]
        assert result["workspace"] == "w"
        assert result["category"] == "technical"
        assert result["decision"] == "Use SQLite for checkpoint storage"
        assert result["warning"] is None
        assert result["total_decisions"] == 1

    def test_defaults_and_optional_fields(self, continuity):
        result = _log(
            continuity,
            alternatives=["Postgres"],
            revisit_trigger="Second writer process",
        )

        stored = continuity.decision_log.get_by_id(result["decision_id"])
        assert stored.impact == "medium"
        assert stored.alternatives == ["Postgres"]
        assert stored.revisit_trigger == "Second writer process"
        assert stored.session_id is None

    def test_records_tracked_session(self, continuity):
        session_id = continuity.checkpoint("w", "one")["session_id"]

        result = _log(continuity)

        assert continuity.decision_log.get_by_id(result["decision_id"]).session_id == session_id

    def test_similar_decision_warns_but_records(self, continuity):
        first = _log(continuity, "Use SQLite for checkpoint storage")

        second = _log(continuity, "Use SQLite for everything else too")

        assert second["success"] is True
        assert first["decision_id"] in second["warning"]
        assert '"Use SQLite for checkpoint storage"' in second["warning"]
        assert second["warning"].endswith("consider reviewing for conflicts.")
        assert second["total_decisions"] == 2

    def test_similarity_is_per_workspace(self, continuity):
        _log(continuity, "Use SQLite for checkpoint storage", workspace="a")

        result = _log(continuity, "Use SQLite for checkpoint storage", workspace="b")

        assert result["warning"] is None

    def test_different_leading_words_do_not_warn(self, continuity):
        _log(continuity, "Use SQLite for checkpoint storage")

        assert _log(continuity, "Adopt trunk-based development")["warning"] is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"category": "vibes"},
            {"category": None},
            {"rationale": ""},
            {"decision": "   "},
            {"impact": "huge"},
            {"alternatives": "Postgres"},
        ],
    )
    def test_invalid_input_records_nothing(self, continuity, kwargs):
        with pytest.raises(ValidationError):
            _log(continuity, **kwargs)

        assert continuity.decision_log.count() == 0


class TestQueryDecisions:
    @pytest.fixture
    def logged(self, continuity):
        _log(continuity, "Use SQLite for checkpoint storage", workspace="alpha")
        _log(continuity, "Adopt trunk-based development", workspace="alpha", category="process")
        _log(continuity, "Use ruff for linting", workspace="beta", category="tooling")
        return continuity

    def test_everything(self, logged):
        result = logged.query_decisions()

        assert result["total"] == 3
        assert [d["workspace"] for d in result["decisions"]] == ["alpha", "alpha", "beta"]

    def test_filters(self, logged):
        assert logged.query_decisions(workspace="alpha")["total"] == 2
        assert logged.query_decisions(category="tooling")["total"] == 1
        assert logged.query_decisions(keyword="TRUNK")["total"] == 1
        assert logged.query_decisions(workspace="beta", keyword="sqlite")["total"] == 0

    def test_since_in_the_future(self, logged):
        assert logged.query_decisions(since="2999-01-01")["total"] == 0

    def test_invalid_category(self, logged):
        with pytest.raises(ValidationError):
            logged.query_decisions(category="vibes")
