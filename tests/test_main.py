"""Tests for the command line entry point."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

import main


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root = logging.getLogger()
    while main._installed_handlers:
        handler = main._installed_handlers.pop()
        root.removeHandler(handler)
        handler.close()


@pytest.fixture
def trees(make_tree):
    original = make_tree("orig", {"a": b"1", "b": b"2", "sub/c": b"3", "sub/d": b"4"})
    backup = make_tree("backup", {"a": b"1", "b": b"2", "sub/c": b"3"})
    return original, backup


@pytest.fixture
def no_config(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("BACKUPVERIFY_CONFIG", str(tmp_path / "absent.json"))


class TestParseArguments:

    def test_defaults(self):
        args = main.parse_arguments(["orig", "bak"])
        assert args.original_dir == "orig"
        assert args.backup_dir == "bak"
        assert args.follow_symlinks is None
        assert args.one_filesystem is None
        assert args.count_unmatched is None
        assert args.ignore_dirs == []
        assert args.samples is None

    def test_flags(self):
        args = main.parse_arguments([
            "-v", "-m", "-f", "-x", "--no-count",
            "-i", ".cache", "--ignore", "tmp",
            "-s", "20", "--max-diff", "1.5",
            "orig", "bak",
        ])
        assert args.verbose and args.machine_readable
        assert args.follow_symlinks is True
        assert args.one_filesystem is True
        assert args.count_unmatched is False
        assert args.ignore_dirs == [".cache", "tmp"]
        assert args.samples == "20"
        assert args.max_diff_percent == 1.5

    def test_missing_positional_is_a_usage_error(self):
        with pytest.raises(SystemExit) as exc_info:
            main.parse_arguments(["only-one"])
        assert exc_info.value.code == 2


class TestBuildOptions:

    def test_cli_overrides_settings(self):
        args = main.parse_arguments(["--no-follow", "-s", "4", "-i", "b", "o", "k"])
        settings = main.VerifySettings(sample_count=9, follow_symlinks=True, ignore_dirs=["a"])
        options = main.build_options(args, settings)
        assert options.sample_count == 4
        assert options.follow_symlinks is False
        assert options.ignore_dirs == {"a", "b"}

    def test_settings_fill_unset_flags(self):
        args = main.parse_arguments(["o", "k"])
        settings = main.VerifySettings(sample_count=9, one_filesystem=True, count_unmatched=False)
        options = main.build_options(args, settings)
        assert options.sample_count == 9
        assert options.one_filesystem is True
        assert options.count_unmatched is False

    @pytest.mark.parametrize("value", ["many", "1.5", "-3"])
    def test_bad_sample_count(self, value):
        args = main.parse_arguments([f"--samples={value}", "o", "k"])
        with pytest.raises(main.ConfigError):
            main.build_options(args, main.VerifySettings())

    def test_bad_threshold_in_settings(self):
        args = main.parse_arguments(["o", "k"])
        with pytest.raises(main.ConfigError):
            main.resolve_threshold(args, main.VerifySettings(max_diff_percent="lots"))


@pytest.mark.usefixtures("no_config")
class TestMain:

    def test_human_report(self, trees, capsys):
        original, backup = trees
        assert main.main([str(original), str(backup)]) == main.EXIT_OK
        out = capsys.readouterr().out
        assert "FILE sub/d: missing from backup" in out
        assert "Difference:" in out
        assert "20.00%" in out

    def test_machine_report_is_alone_on_stdout(self, trees, capsys):
        original, backup = trees
        assert main.main(["-m", str(original), str(backup)]) == main.EXIT_OK
        captured = capsys.readouterr()
        assert captured.out.strip() == (
            "items:5 diffs:1 similar:4 skipped:0 errors:0 "
            "symerrors:0 symmismatches:0 diffpercent:20.00"
        )
        assert "FILE sub/d" in captured.err

    def test_threshold_exceeded(self, trees):
        original, backup = trees
        assert main.main(["--max-diff", "10", str(original), str(backup)]) == main.EXIT_DIFFERENCES

    def test_threshold_met(self, trees):
        original, backup = trees
        assert main.main(["--max-diff", "20", str(original), str(backup)]) == main.EXIT_OK

    def test_bad_sample_argument(self, trees, capsys):
        original, backup = trees
        assert main.main(["-s", "lots", str(original), str(backup)]) == main.EXIT_CONFIG_ERROR
        assert "The -s argument was bad" in capsys.readouterr().out

    def test_missing_backup_root(self, trees, tmp_path):
        original, _ = trees
        assert main.main([str(original), str(tmp_path / "nowhere")]) == main.EXIT_CONFIG_ERROR

    def test_verbose_prints_debug_lines(self, trees, capsys):
        original, backup = trees
        main.main(["-v", str(original), str(backup)])
        out = capsys.readouterr().out
        assert "DEBUG a: identical" in out

    def test_settings_file_and_log_file(self, trees, tmp_path, capsys):
        original, backup = trees
        log_file = tmp_path / "logs" / "verify.log"
        config = tmp_path / "settings.json"
        config.write_text(json.dumps({"ignore_dirs": ["sub"], "log_file": str(log_file)}))

        assert main.main(["-m", "--config", str(config), str(original), str(backup)]) == main.EXIT_OK
        assert capsys.readouterr().out.startswith("items:2 diffs:0 similar:2 skipped:1 ")
        assert "SKIP sub: ignored" in log_file.read_text(encoding="utf-8")


def test_exit_status_for_cancelled_run():
    assert main.exit_status(main.Summary(cancelled=True), None) == main.EXIT_DIFFERENCES
