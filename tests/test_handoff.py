"""Tests for handoff completeness scoring."""

import pytest

from continuity.handoff import REQUIRED_POINTS, handoff_report, score_handoff


def _complete_handoff():
    return {
        "workspace": "fine-print",
        "phase": "implementing checkpoint pruning",
        "next_steps": ["Write the pruning regression tests"],
        "active_files": ["continuity/storage/sqlite.py"],
        "completed_operations": [{"description": "Added prune query"}],
        "git_branch": "feature/prune",
        "warnings": ["WAL file grows under load"],
        "decisions_made": ["Break timestamp ties by insertion order"],
    }


class TestScoreHandoff:
    """Point table, penalties and diagnostics."""

    def test_complete_handoff_scores_100(self):
        quality = score_handoff(_complete_handoff())

        assert quality.completeness_score == 100
        assert quality.missing_elements == []
        assert quality.warnings == []
        assert quality.suggestions == []

    def test_empty_handoff(self):
        quality = score_handoff({})

        assert quality.completeness_score == 0
        assert quality.missing_elements == list(REQUIRED_POINTS)
        assert len(quality.suggestions) == 3

    def test_workspace_only(self):
        quality = score_handoff({"workspace": "w"})
        assert quality.completeness_score == 10
        assert "workspace" not in quality.missing_elements

    def test_empty_lists_count_as_missing(self):
        fields = _complete_handoff()
        fields["next_steps"] = []
        fields["active_files"] = []

        quality = score_handoff(fields)

        assert quality.completeness_score == 70
        assert quality.missing_elements == ["next_steps", "active_files"]

    def test_missing_optional_fields_add_suggestions(self):
        fields = _complete_handoff()
        del fields["git_branch"]
        del fields["decisions_made"]

        quality = score_handoff(fields)

        assert quality.completeness_score == 75
        assert quality.missing_elements == []
        assert "Add git branch for context" in quality.suggestions
        assert "Log any decisions made this session" in quality.suggestions

    def test_warnings_absence_has_no_penalty_or_suggestion(self):
        fields = _complete_handoff()
        del fields["warnings"]

        quality = score_handoff(fields)

        assert quality.completeness_score == 95
        assert quality.suggestions == []

    @pytest.mark.parametrize("phase,bonus", [("impl", True), ("dev", False), ("", False)])
    def test_phase_specificity_bonus(self, phase, bonus):
        fields = _complete_handoff()
        fields["phase"] = phase

        quality = score_handoff(fields)

        has_phase_suggestion = any("specific about the phase" in s for s in quality.suggestions)
        assert has_phase_suggestion is not bonus

    def test_short_first_next_step_penalized(self):
        fields = _complete_handoff()
        fields["next_steps"] = ["fix it"]

        quality = score_handoff(fields)

        assert quality.completeness_score == 95
        assert len(quality.warnings) == 1
        assert "very short" in quality.warnings[0]

    def test_too_many_next_steps_penalized(self):
        fields = _complete_handoff()
        fields["next_steps"] = [f"Do the numbered step {i}" for i in range(11)]

        quality = score_handoff(fields)

        assert quality.completeness_score == 95
        assert any("Too many next_steps" in w for w in quality.warnings)

    def test_penalties_stack(self):
        quality = score_handoff({"next_steps": ["x"] * 11})

        # +20 for next_steps, -5 short first step, -5 too many
        assert quality.completeness_score == 10
        assert len(quality.warnings) == 2

    @pytest.mark.parametrize("field", list(REQUIRED_POINTS))
    def test_adding_a_required_field_never_lowers_score(self, field):
        complete = _complete_handoff()
        without = {k: v for k, v in complete.items() if k != field}

        assert (
            score_handoff(complete).completeness_score
            >= score_handoff(without).completeness_score
        )


class TestHandoffReport:
    """Readiness against a threshold."""

    def test_ready_at_threshold(self):
        report = handoff_report(_complete_handoff(), threshold=100)

        assert report["completeness_score"] == 100
        assert report["threshold"] == 100
        assert report["ready"] is True

    def test_not_ready_below_threshold(self):
        report = handoff_report({"workspace": "w"}, threshold=80)

        assert report["ready"] is False
        assert report["missing_elements"]
