"""
Filesystem probe.

Read-only queries used by the comparator:
- Path classification (directory, file, symlink, missing)
- File sizes and device identifiers
- Symlink targets
- Directory listings
"""

from __future__ import annotations

import logging
import os
import stat
from pathlib import Path
from typing import Optional

from backupverify.core.models import EntryKind, StatError, SymlinkReadError


class FilesystemProbe:
    """
    Stateless filesystem query layer.

    Nothing is cached: every call goes back to the filesystem, so a path
    that changes during a run is seen in its current state.
    """

    def inspect(
        self,
        path: Path | str,
        follow_symlinks: bool = False
    ) -> tuple[EntryKind, Optional[OSError]]:
        """
        Classify a path and report why it could not be read.

        Args:
            path: Path to classify
            follow_symlinks: Classify the link target instead of the link

        Returns:
            The entry kind and, for MISSING, the error that caused it
            (None when the path simply does not exist).
        """
        try:
            st = os.stat(path) if follow_symlinks else os.lstat(path)
        except FileNotFoundError:
            return EntryKind.MISSING, None
        except OSError as e:
            logging.debug(f"FilesystemProbe - Cannot stat {path}: {e}")
            return EntryKind.MISSING, e

        # Symlink test comes first; a link is never reported as its target
        if stat.S_ISLNK(st.st_mode):
            return EntryKind.SYMLINK, None
        if stat.S_ISDIR(st.st_mode):
            return EntryKind.DIRECTORY, None
        if stat.S_ISREG(st.st_mode):
            return EntryKind.REGULAR_FILE, None
        return EntryKind.OTHER, None

    def classify(self, path: Path | str, follow_symlinks: bool = False) -> EntryKind:
        """Classify a path; unreadable paths are MISSING."""
        kind, _ = self.inspect(path, follow_symlinks)
        return kind

    def size(self, path: Path | str) -> int:
        """Get the size of a file in bytes."""
        try:
            return os.stat(path).st_size
        except OSError as e:
            raise StatError(f"Cannot get size of {path}: {e}", path) from e

    def device_id(self, path: Path | str) -> Optional[int]:
        """
        Get the device identifier of a path.

        Returns None where the platform has no device concept, which
        makes every boundary check pass.
        """
        try:
            st = os.stat(path)
        except OSError as e:
            raise StatError(f"Cannot get device of {path}: {e}", path) from e

        if os.name == 'nt' and st.st_dev == 0:
            return None
        return st.st_dev

    def file_id(self, path: Path | str) -> tuple[int, int]:
        """Get the (device, inode) pair identifying a directory."""
        try:
            st = os.stat(path)
        except OSError as e:
            raise StatError(f"Cannot stat {path}: {e}", path) from e
        return st.st_dev, st.st_ino

    def symlink_target(self, path: Path | str) -> Path:
        """
        Get the absolute target of a symlink.

        Relative link text is joined to the link's directory and
        normalised without touching the filesystem.

        Raises:
            SymlinkReadError: If the path is not a link, cannot be read,
                or its target does not exist.
        """
        try:
            target = os.readlink(path)
        except OSError as e:
            raise SymlinkReadError(f"Cannot read symlink {path}: {e}", path) from e

        absolute = os.path.normpath(os.path.join(os.path.dirname(os.fspath(path)), target))

        if not os.path.exists(path):
            raise SymlinkReadError(f"Symlink {path} points to missing {absolute}", path)

        return Path(absolute)

    def list_dir(self, path: Path | str) -> list[str]:
        """List directory entry names in sorted order."""
        try:
            with os.scandir(path) as entries:
                names = [entry.name for entry in entries]
        except OSError as e:
            raise StatError(f"Cannot list directory {path}: {e}", path) from e

        names.sort()
        return names
