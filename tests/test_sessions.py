"""Tests for full session save, load and explicit start."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from continuity.core import Continuity
from continuity.core.sessions import SESSION_END_OPERATION, _age_hours, _parse_operations
from continuity.errors import StorageError, ValidationError
from continuity.types import SessionStatus


def _save(c, workspace="w", **kwargs):
    kwargs.setdefault("phase", "implementation")
    kwargs.setdefault("next_steps", ["Write the tests"])
    return c.save_session(workspace, **kwargs)


class TestSaveSession:
    """Full snapshot + clean end."""

    def test_result_fields(self, continuity):
        result = _save(continuity, completed_operations=["Wrote parser", "Wrote lexer"])

        assert result["success"] is True
        assert result["session_id"]
        assert result["operations_saved"] == 2
        assert Path(result["handoff_path"]).suffix == ".md"
        assert Path(result["json_path"]).suffix == ".json"
        assert Path(result["handoff_path"]).exists()

    def test_snapshot_contents(self, continuity):
        result = _save(
            continuity,
            completed_operations=[{"description": "Migrated schema", "result": "partial"}],
            active_files=["db.py"],
            decisions_made=["Keep WAL mode"],
            git_branch="main",
            warnings=["Slow on NFS"],
        )

        with open(result["json_path"], encoding="utf-8") as f:
            snapshot = json.load(f)

        assert snapshot["id"] == result["session_id"]
        assert snapshot["workspace"] == "w"
        assert snapshot["phase"] == "implementation"
        assert snapshot["completed_operations"][0]["result"] == "partial"
        assert snapshot["active_files"] == ["db.py"]
        assert snapshot["git_state"]["branch"] == "main"

        markdown = Path(result["handoff_path"]).read_text(encoding="utf-8")
        assert "# Session Handoff: w" in markdown
        assert "[PARTIAL] Migrated schema" in markdown
        assert "[WARN] Slow on NFS" in markdown

    def test_untracked_save_creates_clean_record(self, continuity):
        result = _save(continuity)

        record = continuity.store.get_session(result["session_id"])
        assert record.status == SessionStatus.ENDED
        assert record.handoff_path == result["handoff_path"]

    def test_save_ends_tracked_session_cleanly(self, continuity):
        cp = continuity.checkpoint("w", "one")

        result = _save(continuity, completed_operations=["one"])

        assert result["session_id"] == cp["session_id"]
        record = continuity.store.get_session(cp["session_id"])
        assert record.ended_cleanly is True
        assert record.end_time is not None
        assert continuity.store.get_unclean_sessions() == []

    def test_save_appends_session_end_checkpoint(self, continuity):
        _save(continuity, next_steps=["Ship it"])

        latest = continuity.store.get_latest_checkpoint("w")
        assert latest.operation == SESSION_END_OPERATION
        assert latest.state["next_steps"] == ["Ship it"]

    def test_save_clears_running_state(self, continuity):
        continuity.checkpoint("w", "one")
        _save(continuity)

        assert continuity.get_accumulated_state("w") is None
        assert continuity.checkpoint("w", "two")["checkpoint_number"] == 1

    def test_save_indexes_snapshot(self, continuity):
        result = _save(continuity)

        refs = continuity.store.find_snapshot_refs(session_id=result["session_id"])
        assert len(refs) == 1
        assert refs[0].auto_escalated is False

    def test_then_no_crash(self, continuity):
        continuity.checkpoint("w", "one")
        _save(continuity)

        assert continuity.recover_crash("w")["detected"] is False

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"phase": ""},
            {"next_steps": None},
            {"next_steps": "ship"},
            {"completed_operations": [42]},
            {"completed_operations": [{"description": ""}]},
            {"completed_operations": [{"description": "x", "result": "meh"}]},
        ],
    )
    def test_invalid_input_writes_nothing(self, continuity, config, kwargs):
        with pytest.raises(ValidationError):
            _save(continuity, **kwargs)

        assert list(config.sessions_dir.glob("*.json")) == []

    def test_artifact_failure_propagates(self, continuity):
        continuity.checkpoint("w", "one")

        with patch.object(continuity._archive, "write", side_effect=StorageError("disk full")):
            with pytest.raises(StorageError):
                _save(continuity)

        # Running state survives for a retry
        assert continuity.get_accumulated_state("w").checkpoint_count == 1


class TestParseOperations:
    TS = "2026-01-01T00:00:00+00:00"

    def test_strings_and_objects(self):
        ops = _parse_operations(["plain", {"description": "obj", "result": "failure"}], self.TS)

        assert [(o.description, o.result) for o in ops] == [
            ("plain", "success"),
            ("obj", "failure"),
        ]
        assert all(o.timestamp == self.TS for o in ops)

    def test_absent_is_empty(self):
        assert _parse_operations(None, self.TS) == []

    def test_not_a_list(self):
        with pytest.raises(ValidationError, match="completed_operations must be an array"):
            _parse_operations("one", self.TS)


class TestAgeHours:
    def test_rounds_to_one_decimal(self):
        ts = (datetime.now(timezone.utc) - timedelta(minutes=90)).isoformat()
        assert _age_hours(ts) == 1.5

    def test_fresh_snapshot(self):
        assert _age_hours(datetime.now(timezone.utc).isoformat()) == 0.0

    def test_unparseable_timestamp(self):
        assert _age_hours("not a time") == 0.0


class TestLoadSession:
    """Resuming from the newest matching snapshot."""

    def test_fresh_start(self, continuity):
        result = continuity.load_session(workspace="w")

        assert result["success"] is False
        assert result["message"] == 'No session found for workspace "w". Starting fresh.'

    def test_fresh_start_without_filters(self, continuity):
        result = continuity.load_session()
        assert result == {"success": False, "message": "No session found. Starting fresh."}

    def test_load_returns_saved_fields(self, continuity):
        saved = _save(
            continuity,
            next_steps=["Write the pruning test"],
            active_files=["sqlite.py"],
            decisions_made=["Keep WAL"],
            warnings=["Flaky on CI"],
        )

        result = continuity.load_session(workspace="w")

        assert result["success"] is True
        assert result["session_id"] == saved["session_id"]
        assert result["workspace"] == "w"
        assert result["phase"] == "implementation"
        assert result["age_hours"] == 0.0
        assert result["next_steps"] == ["Write the pruning test"]
        assert result["active_files"] == ["sqlite.py"]
        assert result["decisions_made"] == ["Keep WAL"]
        assert result["warnings"] == ["Flaky on CI"]
        assert result["json_path"] == saved["json_path"]
        assert "## Next Steps" in result["handoff_markdown"]

    def test_load_newest_for_workspace(self, continuity):
        _save(continuity, phase="first")
        _save(continuity, workspace="other", phase="elsewhere")
        _save(continuity, phase="second")

        assert continuity.load_session(workspace="w")["phase"] == "second"
        assert continuity.load_session()["phase"] == "second"

    def test_load_by_session_id(self, continuity):
        first = _save(continuity, phase="first")
        _save(continuity, phase="second")

        result = continuity.load_session(session_id=first["session_id"])
        assert result["phase"] == "first"

    def test_load_skips_malformed_snapshot(self, continuity, config):
        _save(continuity, phase="good")
        (config.sessions_dir / "9999-12-31_w_235959.json").write_text("{broken")

        assert continuity.load_session(workspace="w")["phase"] == "good"

    def test_markdown_rerendered_when_missing(self, continuity):
        saved = _save(continuity)
        Path(saved["handoff_path"]).unlink()

        result = continuity.load_session(workspace="w")
        assert result["handoff_markdown"].startswith("# Session Handoff: w")

    def test_load_opens_a_session(self, continuity):
        _save(continuity)

        result = continuity.load_session(workspace="w")

        record = continuity.store.get_session(result["current_session_id"])
        assert record.status == SessionStatus.OPEN

    def test_load_without_save_is_a_crash_next_time(self, continuity):
        _save(continuity)
        continuity.load_session(workspace="w")

        recovery = continuity.recover_crash("w")

        assert recovery["detected"] is True

    def test_invalid_workspace(self, continuity):
        with pytest.raises(ValidationError):
            continuity.load_session(workspace="../w")


class TestStartSession:
    def test_replaces_tracked_session(self, continuity):
        first = continuity.start_session("w")
        second = continuity.start_session("w")

        assert first != second
        assert continuity.store.get_session(first).status == SessionStatus.CLOSED
        assert continuity.store.get_session(second).status == SessionStatus.OPEN

    def test_checkpoint_uses_started_session(self, continuity):
        session_id = continuity.start_session("w")
        assert continuity.checkpoint("w", "one")["session_id"] == session_id


class TestResumeSession:
    """Adopting a session record left open by another instance."""

    def test_nothing_to_resume(self, continuity):
        assert continuity.resume_session("w") is None

    def test_adopts_newest_open_record(self, continuity, config):
        other = Continuity(config=config)
        try:
            opened = other.checkpoint("w", "one")["session_id"]
        finally:
            other.close()

        assert continuity.resume_session("w") == opened
        assert continuity.checkpoint("w", "two")["session_id"] == opened
        assert continuity.store.get_session(opened).operations_count == 2

    def test_keeps_tracked_session(self, continuity, make_session):
        tracked = continuity.start_session("w")
        continuity.store.create_session(make_session(workspace="w", id="newer"))

        assert continuity.resume_session("w") == tracked

    def test_resumed_session_saved_cleanly(self, continuity, make_session):
        continuity.store.create_session(make_session(workspace="w", id="left-open"))
        continuity.resume_session("w")

        assert _save(continuity)["session_id"] == "left-open"
        assert continuity.store.get_session("left-open").status == SessionStatus.ENDED
        assert continuity.recover_crash("w")["detected"] is False
