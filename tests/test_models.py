"""Tests for the run summary and options."""

from __future__ import annotations

import pytest

from backupverify.core.models import (
    ComparisonOutcome,
    ConfigError,
    PathPair,
    Summary,
    VerifyOptions,
)


class TestSummary:

    def test_empty_run_has_zero_percent(self):
        summary = Summary()
        assert summary.diff_percent == 0.0
        assert summary.similar_count == 0
        assert summary.is_identical

    def test_diff_percent(self):
        summary = Summary(item_count=8, diff_count=2)
        assert summary.diff_percent == 25.0
        assert summary.similar_count == 6

    def test_identical_changes_nothing(self):
        summary = Summary()
        summary.record(ComparisonOutcome.IDENTICAL)
        assert summary == Summary()

    def test_missing_is_weighted_by_subtree(self):
        summary = Summary(item_count=1)
        summary.record(ComparisonOutcome.MISSING_IN_BACKUP, extra=4)
        assert summary.item_count == 5
        assert summary.diff_count == 5

    def test_type_mismatch_counts_like_missing(self):
        summary = Summary(item_count=1)
        summary.record(ComparisonOutcome.TYPE_MISMATCH, extra=2)
        assert (summary.item_count, summary.diff_count) == (3, 3)

    def test_symlink_mismatch(self):
        summary = Summary(item_count=1)
        summary.record(ComparisonOutcome.SYMLINK_MISMATCH)
        assert summary.symlink_mismatch_count == 1
        assert summary.diff_count == 1
        assert summary.item_count == 1

    def test_symlink_error_is_separate_from_mismatch(self):
        summary = Summary(item_count=1)
        summary.record(ComparisonOutcome.SYMLINK_ERROR)
        assert summary.symlink_error_count == 1
        assert summary.symlink_mismatch_count == 0
        assert summary.diff_count == 1

    def test_skipped_is_not_a_difference(self):
        summary = Summary(item_count=1)
        summary.record(ComparisonOutcome.SKIPPED)
        assert summary.skipped_count == 1
        assert summary.diff_count == 0

    def test_error_counts_as_difference(self):
        summary = Summary(item_count=1)
        summary.record(ComparisonOutcome.ERROR)
        assert summary.error_count == 1
        assert summary.diff_count == 1

    def test_cancelled_run_is_not_identical(self):
        assert not Summary(cancelled=True).is_identical


class TestVerifyOptions:

    def test_defaults_are_valid(self):
        VerifyOptions().validate()

    @pytest.mark.parametrize("count", [-1, "3", 2.5, None, True])
    def test_bad_sample_count(self, count):
        with pytest.raises(ConfigError):
            VerifyOptions(sample_count=count).validate()

    def test_bad_sample_width(self):
        with pytest.raises(ConfigError):
            VerifyOptions(sample_width=0).validate()

    def test_ignore_by_name_path_and_wildcard(self):
        options = VerifyOptions(ignore_dirs={".cache", "var/tmp", "build-*"})
        assert options.is_ignored(".cache", "home/.cache")
        assert options.is_ignored("tmp", "var/tmp")
        assert not options.is_ignored("tmp", "home/tmp")
        assert options.is_ignored("build-2024", "src/build-2024")
        assert not options.is_ignored("src", "src")


class TestPathPair:

    def test_child_keeps_relative_path(self, tmp_path):
        root = PathPair.for_roots(tmp_path / "orig", tmp_path / "bak")
        child = root.child("sub").child("file.txt")
        assert child.original == tmp_path / "orig" / "sub" / "file.txt"
        assert child.backup == tmp_path / "bak" / "sub" / "file.txt"
        assert child.relative_path == "sub/file.txt"
        assert root.display_path == "."
