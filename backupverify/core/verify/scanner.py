"""
Subtree counting for missing or mismatched directories.

When a directory is absent from the backup, it is weighed by the number
of entries it contains rather than as a single item. Counting walks only
the original tree and never touches the run summary; the caller applies
the returned totals.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from backupverify.core.models import StatError, SubtreeCount, VerifyOptions
from backupverify.core.verify.boundary import BoundaryGuard
from backupverify.core.verify.probe import FilesystemProbe


class SubtreeCounter:
    """
    Counts the entries below a directory.

    Honours the ignore list and, when staying on one filesystem, applies
    the same boundary rule as the comparator: a directory on another
    device is counted as an entry but its contents are not. Symlinks are
    counted as entries but never followed.
    """

    def __init__(
        self,
        options: Optional[VerifyOptions] = None,
        probe: Optional[FilesystemProbe] = None,
        guard: Optional[BoundaryGuard] = None,
    ):
        self.options = options or VerifyOptions()
        self._probe = probe or FilesystemProbe()
        self._guard = guard or BoundaryGuard()

    def count(
        self,
        root_path: Path | str,
        relative_root: str = "",
        parent_device: Optional[int] = None
    ) -> SubtreeCount:
        """
        Count files, directories and links below `root_path`.

        Args:
            root_path: Directory in the original tree
            relative_root: Path of `root_path` relative to the original root,
                used to match path-style ignore patterns and in log lines
            parent_device: Device of the directory holding `root_path`;
                with one_filesystem, a root on another device counts nothing

        Returns:
            SubtreeCount with the entry total and unreadable directories
        """
        root_path = Path(root_path)
        result = SubtreeCount()
        label = relative_root or str(root_path)

        try:
            root_device = self._probe.device_id(root_path)
        except StatError as e:
            logging.error(f"ERROR {label}: cannot stat for counting: {e}")
            result.errors += 1
            return result

        if not self._guard.should_descend(parent_device, root_device, self.options.one_filesystem):
            logging.debug(f"DEBUG {label}: on a different filesystem, not counted")
            return result

        devices = {root_path: root_device}

        def on_walk_error(error: OSError) -> None:
            result.errors += 1
            logging.error(f"ERROR {error.filename}: cannot list for counting: {error.strerror}")

        for dirpath, dirnames, filenames in os.walk(
            root_path,
            topdown=True,
            followlinks=False,
            onerror=on_walk_error
        ):
            current_path = Path(dirpath)
            rel_dir = current_path.relative_to(root_path)

            kept = []
            for dirname in sorted(dirnames):
                rel_path = self._relative(relative_root, rel_dir, dirname)
                if self.options.is_ignored(dirname, rel_path):
                    continue
                kept.append(dirname)

            # Symlinked directories are listed in dirnames but not walked
            result.entries += len(kept) + len(filenames)

            if self.options.one_filesystem:
                kept = [
                    d for d in kept
                    if self._within_boundary(current_path / d, devices, current_path, result)
                ]

            dirnames[:] = kept

        return result

    def _within_boundary(
        self,
        path: Path,
        devices: dict[Path, Optional[int]],
        parent: Path,
        result: SubtreeCount
    ) -> bool:
        """Check a child directory against its parent's device, remembering its own."""
        try:
            device = self._probe.device_id(path)
        except StatError as e:
            logging.error(f"ERROR {path}: cannot stat for counting: {e}")
            result.errors += 1
            device = None

        if not self._guard.should_descend(devices.get(parent), device, True):
            logging.debug(f"DEBUG {path}: on a different filesystem, not counted")
            return False

        devices[path] = device
        return True

    @staticmethod
    def _relative(relative_root: str, rel_dir: Path, name: str) -> str:
        parts = [p for p in (relative_root, rel_dir.as_posix(), name) if p and p != '.']
        return '/'.join(parts)
