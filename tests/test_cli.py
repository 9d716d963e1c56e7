"""Tests for the continuity command-line interface."""

import io
import json
from unittest.mock import patch

import pytest

from continuity.cli.__main__ import build_parser, main


def _run(capsys, data_dir, *argv):
    main(["--data-dir", str(data_dir), *argv])
    return capsys.readouterr().out


def _run_json(capsys, data_dir, *argv):
    return json.loads(_run(capsys, data_dir, *argv))


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_repeatable_options(self):
        args = build_parser().parse_args(["checkpoint", "w", "op", "-f", "a.py", "-f", "b.py"])
        assert args.file == ["a.py", "b.py"]
        assert args.trigger == "manual"

    def test_invalid_choice_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["checkpoint", "w", "op", "--trigger", "cron"])


class TestCommands:
    """Each subcommand prints JSON from the matching operation."""

    def test_checkpoint(self, capsys, data_dir):
        result = _run_json(
            capsys, data_dir, "checkpoint", "w", "Wrote CLI", "--phase", "impl", "-n", "Test it"
        )

        assert result["success"] is True
        assert result["checkpoint_number"] == 1

    def test_each_invocation_starts_fresh(self, capsys, data_dir):
        _run_json(capsys, data_dir, "checkpoint", "w", "one")
        second = _run_json(capsys, data_dir, "checkpoint", "w", "two")

        assert second["checkpoint_number"] == 1

    def test_recover_after_checkpoint(self, capsys, data_dir):
        _run(capsys, data_dir, "checkpoint", "w", "one", "-n", "two")

        prompt = _run(capsys, data_dir, "recover", "-w", "w", "--prompt")

        assert prompt.startswith("[CRASH DETECTED]")
        assert "Resume from: two" in prompt

    def test_checkpoints_across_invocations_share_one_session(self, capsys, data_dir):
        ids = {
            _run_json(capsys, data_dir, "checkpoint", "w", op)["session_id"]
            for op in ("one", "two", "three")
        }
        assert len(ids) == 1

        detected = [_run_json(capsys, data_dir, "recover", "-w", "w")["detected"] for _ in range(2)]
        assert detected == [True, False]

    def test_save_ends_the_session(self, capsys, data_dir):
        checkpoint = _run_json(capsys, data_dir, "checkpoint", "w", "one")

        saved = _run_json(
            capsys, data_dir, "save", "w", "--phase", "testing", "-n", "Ship", "-o", "Wrote tests"
        )

        assert saved["success"] is True
        assert saved["session_id"] == checkpoint["session_id"]
        assert saved["operations_saved"] == 1
        assert _run_json(capsys, data_dir, "recover", "-w", "w")["detected"] is False

        loaded = _run_json(capsys, data_dir, "load", "-w", "w")
        assert loaded["next_steps"] == ["Ship"]

    def test_save_requires_phase(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["save", "w"])

    def test_recover_clean(self, capsys, data_dir):
        result = _run_json(capsys, data_dir, "recover")
        assert result["detected"] is False

    def test_load_fresh(self, capsys, data_dir):
        result = _run_json(capsys, data_dir, "load", "-w", "w")
        assert result["success"] is False

    def test_decision_log_and_query(self, capsys, data_dir):
        logged = _run_json(
            capsys,
            data_dir,
            "decision", "log", "w", "technical", "Use argparse", "Matches the rest of the tooling",
            "-a", "click",
        )
        assert logged["total_decisions"] == 1

        queried = _run_json(capsys, data_dir, "decision", "query", "-k", "CLICK")
        assert queried["total"] == 1
        assert queried["decisions"][0]["decision"] == "Use argparse"

    def test_compress_file(self, capsys, data_dir, tmp_path):
        source = tmp_path / "context.md"
        source.write_text("## Next Steps\n- ship it\n")

        out = _run(capsys, data_dir, "compress", str(source), "--text")

        assert "ship it" in out

    def test_compress_stdin(self, capsys, data_dir):
        with patch("sys.stdin", io.StringIO("short context")):
            result = _run_json(capsys, data_dir, "compress")

        assert result["compressed"] == "short context"
        assert result["compression_ratio"] == 1

    def test_score(self, capsys, data_dir):
        result = _run_json(capsys, data_dir, "score", "w", "--phase", "implementation")

        assert result["completeness_score"] == 30
        assert result["ready"] is False
        assert "next_steps" in result["missing_elements"]

    def test_mcp_delegates_to_server(self, data_dir):
        with patch("continuity.mcp.server.main") as mock_main:
            main(["--data-dir", str(data_dir), "mcp", "--log-level", "DEBUG"])

        mock_main.assert_called_once_with(data_dir=str(data_dir), log_level="DEBUG")


class TestErrors:
    def test_validation_error_exits_1(self, capsys, data_dir):
        with pytest.raises(SystemExit) as exc_info:
            main(["--data-dir", str(data_dir), "checkpoint", "../w", "op"])

        assert exc_info.value.code == 1
        assert capsys.readouterr().out == ""

    def test_missing_compress_file_exits_1(self, data_dir, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            main(["--data-dir", str(data_dir), "compress", str(tmp_path / "missing.md")])

        assert exc_info.value.code == 1
