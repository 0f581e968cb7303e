"""
Backup tree comparison engine.

Walks an original tree and checks that every entry has a faithful
counterpart in the backup tree:
- Missing entries (weighted by subtree size for directories)
- Type mismatches (file vs directory)
- Symlink mismatches and unreadable links
- Size and sampled-content differences between files
- Skips for ignored directories, other filesystems and symlinked dirs

Entries that exist only in the backup are not looked at.

Every outcome is logged as one line whose first word is its prefix:
DIR, FILE, SKIP, SYMMIS, SYMLINK, DIFFS, ERROR or DEBUG.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, Optional

from backupverify.core.models import (
    ComparisonOutcome,
    ConfigError,
    EntryKind,
    PathPair,
    SampleReadError,
    StatError,
    Summary,
    SymlinkReadError,
    VerifyOptions,
    VerifyProgress,
)
from backupverify.core.verify.boundary import BoundaryGuard
from backupverify.core.verify.probe import FilesystemProbe
from backupverify.core.verify.sampler import ContentSampler
from backupverify.core.verify.scanner import SubtreeCounter


class TreeComparator:
    """
    Recursive, depth-first comparison of an original tree against a backup.

    Each run gets its own Summary; the comparator is the only code that
    mutates it while the walk is in progress.
    """

    def __init__(
        self,
        options: Optional[VerifyOptions] = None,
        probe: Optional[FilesystemProbe] = None,
        sampler: Optional[ContentSampler] = None,
        guard: Optional[BoundaryGuard] = None,
    ):
        self.options = options or VerifyOptions()
        self._probe = probe or FilesystemProbe()
        self._sampler = sampler or ContentSampler(self.options.sample_width)
        self._guard = guard or BoundaryGuard()
        self._counter = SubtreeCounter(self.options, self._probe, self._guard)
        self._cancelled = False
        self._progress_callback: Optional[Callable[[VerifyProgress], None]] = None
        self._original_root = Path()
        self._backup_root = Path()
        self._active_dirs: set[tuple[int, int]] = set()

    def compare(
        self,
        original_root: Path | str,
        backup_root: Path | str,
        progress_callback: Optional[Callable[[VerifyProgress], None]] = None
    ) -> Summary:
        """
        Verify a backup tree against its original.

        Args:
            original_root: Trusted source directory
            backup_root: Backup directory to verify
            progress_callback: Called once per enumerated entry

        Returns:
            Summary of the run

        Raises:
            ConfigError: If the options are invalid or a root is unusable
        """
        self.options.validate()

        original_root = Path(original_root)
        backup_root = Path(backup_root)

        self._check_root(original_root, "original")
        self._check_root(backup_root, "backup")

        self._cancelled = False
        self._progress_callback = progress_callback
        self._original_root = Path(os.path.abspath(original_root))
        self._backup_root = Path(os.path.abspath(backup_root))
        self._active_dirs = set()

        summary = Summary()
        root = PathPair.for_roots(original_root, backup_root)
        root_device = self._device_id(root, summary)

        self._enter(root)
        try:
            self._walk_directory(root, root_device, summary)
        finally:
            self._leave(root)

        if self._cancelled:
            logging.info("TreeComparator - Verification cancelled, counts are partial")
            summary.cancelled = True

        logging.debug(
            f"DEBUG Verified {summary.item_count} items, "
            f"{summary.diff_count} differences ({summary.diff_percent:.2f}%)"
        )
        return summary

    def cancel(self) -> None:
        """Stop the walk at the next entry."""
        self._cancelled = True

    # -------------------------------------------------------------------------
    # Root validation
    # -------------------------------------------------------------------------

    def _check_root(self, path: Path, label: str) -> None:
        if not path.exists():
            logging.error(f"TreeComparator - {label.capitalize()} root not found: {path}")
            raise ConfigError(f"{label.capitalize()} directory not found: {path}", path)
        if not path.is_dir():
            logging.error(f"TreeComparator - {label.capitalize()} root is not a directory: {path}")
            raise ConfigError(f"{label.capitalize()} path is not a directory: {path}", path)
        try:
            self._probe.list_dir(path)
        except StatError as e:
            logging.error(f"TreeComparator - {label.capitalize()} root is not readable: {path}")
            raise ConfigError(f"{label.capitalize()} directory is not readable: {e}", path) from e

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    def _walk_directory(
        self,
        pair: PathPair,
        device: Optional[int],
        summary: Summary
    ) -> None:
        """Compare every entry of an original directory."""
        try:
            names = self._probe.list_dir(pair.original)
        except StatError as e:
            logging.error(f"ERROR {pair.display_path}: {e}")
            summary.record(ComparisonOutcome.ERROR)
            return

        for name in names:
            if self._cancelled:
                return

            child = pair.child(name)
            original_kind, original_error = self._probe.inspect(child.original)

            if original_kind == EntryKind.DIRECTORY \
                    and self.options.is_ignored(name, child.relative_path):
                logging.info(f"SKIP {child.display_path}: ignored")
                summary.record(ComparisonOutcome.SKIPPED)
                continue

            summary.add_item_count(1)
            self._report_progress(child.relative_path, summary.item_count)

            if original_kind == EntryKind.MISSING:
                # Listed a moment ago, gone or unreadable now
                reason = original_error or "vanished during verification"
                logging.error(f"ERROR {child.display_path}: cannot stat original: {reason}")
                summary.record(ComparisonOutcome.ERROR)
                continue

            self._compare_entry(child, original_kind, device, summary)

    def _compare_entry(
        self,
        pair: PathPair,
        original_kind: EntryKind,
        parent_device: Optional[int],
        summary: Summary
    ) -> None:
        """Classify one pair and dispatch on the relationship of both sides."""
        backup_kind, backup_error = self._probe.inspect(pair.backup)

        # An unmatched directory on another device is skipped, not weighed
        if original_kind == EntryKind.DIRECTORY and backup_kind != EntryKind.DIRECTORY \
                and self.options.one_filesystem:
            device = self._device_id(pair, summary)
            if not self._within_boundary(pair, parent_device, device, summary):
                return

        if backup_kind == EntryKind.MISSING:
            self._record_missing(pair, original_kind, backup_error, parent_device, summary)
            return

        # Symlinks are resolved before the directory/file dispatch
        if original_kind == EntryKind.SYMLINK or backup_kind == EntryKind.SYMLINK:
            self._compare_symlinks(pair, original_kind, backup_kind, parent_device, summary)
            return

        if original_kind != backup_kind:
            extra = self._subtree_weight(pair, original_kind, parent_device, summary)
            logging.info(
                f"{self._prefix(original_kind)} {pair.display_path}: type mismatch "
                f"({self._kind_name(original_kind)} in original, "
                f"{self._kind_name(backup_kind)} in backup)"
            )
            summary.record(ComparisonOutcome.TYPE_MISMATCH, extra)
            return

        if original_kind == EntryKind.DIRECTORY:
            self._compare_directories(pair, parent_device, summary)
        elif original_kind == EntryKind.REGULAR_FILE:
            self._compare_files(pair, summary)
        elif original_kind == EntryKind.OTHER:
            logging.debug(f"DEBUG {pair.display_path}: special file present in both")
            summary.record(ComparisonOutcome.IDENTICAL)
        else:
            raise ValueError(f"Unexpected entry kind {original_kind} for {pair.original}")

    def _record_missing(
        self,
        pair: PathPair,
        original_kind: EntryKind,
        backup_error: Optional[OSError],
        parent_device: Optional[int],
        summary: Summary
    ) -> None:
        if backup_error is not None:
            logging.error(f"ERROR {pair.display_path}: cannot stat backup: {backup_error}")
            summary.add_error_count(1)

        extra = self._subtree_weight(pair, original_kind, parent_device, summary)
        if original_kind == EntryKind.DIRECTORY:
            logging.info(f"DIR {pair.display_path}: missing from backup ({extra} entries inside)")
        else:
            logging.info(f"FILE {pair.display_path}: missing from backup")
        summary.record(ComparisonOutcome.MISSING_IN_BACKUP, extra)

    def _compare_symlinks(
        self,
        pair: PathPair,
        original_kind: EntryKind,
        backup_kind: EntryKind,
        parent_device: Optional[int],
        summary: Summary
    ) -> None:
        if original_kind != backup_kind:
            extra = self._subtree_weight(pair, original_kind, parent_device, summary)
            logging.info(
                f"SYMMIS {pair.display_path}: {self._kind_name(original_kind)} in original, "
                f"{self._kind_name(backup_kind)} in backup"
            )
            summary.record(ComparisonOutcome.SYMLINK_MISMATCH, extra)
            return

        try:
            original_target = self._probe.symlink_target(pair.original)
            backup_target = self._probe.symlink_target(pair.backup)
        except SymlinkReadError as e:
            logging.error(f"ERROR {pair.display_path}: {e}")
            summary.record(ComparisonOutcome.SYMLINK_ERROR)
            return

        target_is_dir = self._probe.classify(pair.original, follow_symlinks=True) == EntryKind.DIRECTORY

        if not self._same_target(original_target, backup_target):
            # An unfollowed directory link weighs one item; its target is not part of the tree
            extra = 0
            if target_is_dir and self.options.follow_symlinks:
                extra = self._subtree_weight(pair, EntryKind.DIRECTORY, parent_device, summary)
            logging.info(
                f"SYMMIS {pair.display_path}: points to {original_target} in original, "
                f"{backup_target} in backup"
            )
            summary.record(ComparisonOutcome.SYMLINK_MISMATCH, extra)
            return

        if not target_is_dir:
            logging.debug(f"DEBUG {pair.display_path}: symlinks match")
            summary.record(ComparisonOutcome.IDENTICAL)
            return

        if not self.options.follow_symlinks:
            logging.info(f"SYMLINK {pair.display_path}: symlink to directory, not following")
            summary.record(ComparisonOutcome.SKIPPED)
            return

        logging.debug(f"DEBUG {pair.display_path}: following symlinked directory")
        self._compare_directories(pair, parent_device, summary)

    def _compare_directories(
        self,
        pair: PathPair,
        parent_device: Optional[int],
        summary: Summary
    ) -> None:
        device = self._device_id(pair, summary)

        if not self._within_boundary(pair, parent_device, device, summary):
            return

        if not self._enter(pair):
            logging.info(f"SKIP {pair.display_path}: symlink loop")
            summary.record(ComparisonOutcome.SKIPPED)
            return

        logging.debug(f"DEBUG {pair.display_path}: descending")
        try:
            self._walk_directory(pair, device, summary)
        finally:
            self._leave(pair)

    def _compare_files(self, pair: PathPair, summary: Summary) -> None:
        try:
            original_size = self._probe.size(pair.original)
            backup_size = self._probe.size(pair.backup)
        except StatError as e:
            logging.error(f"ERROR {pair.display_path}: {e}")
            summary.record(ComparisonOutcome.ERROR)
            return

        if original_size != backup_size:
            logging.info(
                f"FILE {pair.display_path}: size differs "
                f"({original_size} bytes in original, {backup_size} in backup)"
            )
            # A size mismatch is counted as an error as well as a difference
            summary.add_error_count(1)
            summary.record(ComparisonOutcome.DIFFERENT)
            return

        try:
            same = self._sampler.sample_equal(
                pair.original,
                pair.backup,
                original_size,
                self.options.sample_count,
                self.options.sample_width,
            )
        except SampleReadError as e:
            logging.error(f"ERROR {pair.display_path}: {e}")
            summary.record(ComparisonOutcome.ERROR)
            return

        if same:
            logging.debug(f"DEBUG {pair.display_path}: identical")
            summary.record(ComparisonOutcome.IDENTICAL)
        else:
            logging.info(f"FILE {pair.display_path}: content differs")
            summary.record(ComparisonOutcome.DIFFERENT)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _within_boundary(
        self,
        pair: PathPair,
        parent_device: Optional[int],
        device: Optional[int],
        summary: Summary
    ) -> bool:
        """Check the boundary guard; a declined directory is logged and skipped."""
        if self._guard.should_descend(parent_device, device, self.options.one_filesystem):
            return True
        logging.info(f"DIFFS {pair.display_path}: on a different filesystem, not descending")
        summary.record(ComparisonOutcome.SKIPPED)
        return False

    def _subtree_weight(
        self,
        pair: PathPair,
        original_kind: EntryKind,
        parent_device: Optional[int],
        summary: Summary
    ) -> int:
        """Number of entries below an original directory, 0 for anything else."""
        if original_kind not in (EntryKind.DIRECTORY, EntryKind.SYMLINK):
            return 0
        if not self.options.count_unmatched:
            return 0
        if original_kind == EntryKind.SYMLINK:
            # Only a followed link to a directory has a subtree of its own
            if not self.options.follow_symlinks:
                return 0
            if self._probe.classify(pair.original, follow_symlinks=True) != EntryKind.DIRECTORY:
                return 0

        counted = self._counter.count(pair.original, pair.relative_path, parent_device)
        summary.add_error_count(counted.errors)
        return counted.entries

    def _same_target(self, original_target: Path, backup_target: Path) -> bool:
        """
        Check if two link targets point to the same place.

        Targets inside their own tree are compared by relative path, so a
        link copied along with its tree still matches.
        """
        original_rel = self._relative_to(original_target, self._original_root)
        backup_rel = self._relative_to(backup_target, self._backup_root)

        if original_rel is not None and backup_rel is not None:
            return original_rel == backup_rel
        return os.path.abspath(original_target) == os.path.abspath(backup_target)

    @staticmethod
    def _relative_to(target: Path, root: Path) -> Optional[Path]:
        try:
            return Path(os.path.abspath(target)).relative_to(root)
        except ValueError:
            return None

    def _device_id(self, pair: PathPair, summary: Summary) -> Optional[int]:
        try:
            return self._probe.device_id(pair.original)
        except StatError as e:
            logging.error(f"ERROR {pair.display_path}: {e}")
            summary.add_error_count(1)
            return None

    def _enter(self, pair: PathPair) -> bool:
        """Mark a directory as being walked; False if it already is."""
        try:
            key = self._probe.file_id(pair.original)
        except StatError as e:
            logging.debug(f"TreeComparator - No identity for {pair.original}: {e}")
            return True
        if key in self._active_dirs:
            return False
        self._active_dirs.add(key)
        return True

    def _leave(self, pair: PathPair) -> None:
        try:
            self._active_dirs.discard(self._probe.file_id(pair.original))
        except StatError as e:
            logging.debug(f"TreeComparator - No identity for {pair.original}: {e}")

    def _report_progress(self, current_path: str, items_processed: int) -> None:
        """Report progress to callback."""
        if self._progress_callback:
            self._progress_callback(VerifyProgress(
                current_path=current_path,
                items_processed=items_processed,
            ))

    @staticmethod
    def _prefix(kind: EntryKind) -> str:
        return "DIR" if kind == EntryKind.DIRECTORY else "FILE"

    @staticmethod
    def _kind_name(kind: EntryKind) -> str:
        names = {
            EntryKind.DIRECTORY: "directory",
            EntryKind.REGULAR_FILE: "file",
            EntryKind.SYMLINK: "symlink",
            EntryKind.MISSING: "missing",
            EntryKind.OTHER: "special file",
        }
        return names[kind]
