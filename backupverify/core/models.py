"""
Core data models for backup verification.

This module defines the data structures shared by the verifier:
- Entry classification and comparison outcomes
- Path pairs walked by the comparator
- Verification options
- The run summary (result aggregator)
- Error taxonomy

All models are UI-agnostic and carry no filesystem state of their own.
"""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Optional


# =============================================================================
# Enumerations
# =============================================================================

class EntryKind(Enum):
    """Classification of a single filesystem path."""
    DIRECTORY = auto()
    REGULAR_FILE = auto()
    SYMLINK = auto()
    MISSING = auto()    # Nonexistent or unreadable
    OTHER = auto()      # Socket, FIFO, device node


class ComparisonOutcome(Enum):
    """Result of comparing one original/backup path pair."""
    IDENTICAL = auto()
    DIFFERENT = auto()
    MISSING_IN_BACKUP = auto()
    TYPE_MISMATCH = auto()
    SYMLINK_MISMATCH = auto()
    SYMLINK_ERROR = auto()   # Link could not be read or resolved
    SKIPPED = auto()
    ERROR = auto()


# =============================================================================
# Traversal Models
# =============================================================================

@dataclass(frozen=True)
class PathPair:
    """
    An original path and its counterpart in the backup tree.

    The backup path is always the backup root joined with the same
    relative path as the original.
    """
    original: Path
    backup: Path
    relative_path: str = ""

    @classmethod
    def for_roots(cls, original_root: Path | str, backup_root: Path | str) -> 'PathPair':
        return cls(original=Path(original_root), backup=Path(backup_root))

    def child(self, name: str) -> 'PathPair':
        """Pair for an entry directly below this one."""
        relative = f"{self.relative_path}/{name}" if self.relative_path else name
        return PathPair(
            original=self.original / name,
            backup=self.backup / name,
            relative_path=relative,
        )

    @property
    def display_path(self) -> str:
        return self.relative_path or "."


@dataclass
class SubtreeCount:
    """Result of counting the entries below a directory."""
    entries: int = 0
    errors: int = 0


@dataclass
class VerifyProgress:
    """Progress information for a verification run."""
    current_path: str
    items_processed: int


# =============================================================================
# Options
# =============================================================================

@dataclass
class VerifyOptions:
    """Options for a verification run."""
    verbose: bool = False
    one_filesystem: bool = False
    follow_symlinks: bool = False
    ignore_dirs: set[str] = field(default_factory=set)
    sample_count: int = 0
    sample_width: int = 32
    machine_readable: bool = False
    count_unmatched: bool = True  # Weigh missing directories by their contents

    def validate(self) -> None:
        """Check option values, raising ConfigError if unusable."""
        if isinstance(self.sample_count, bool) or not isinstance(self.sample_count, int):
            raise ConfigError(f"Sample count must be an integer, got {self.sample_count!r}")
        if self.sample_count < 0:
            raise ConfigError(f"Sample count must not be negative, got {self.sample_count}")
        if isinstance(self.sample_width, bool) or not isinstance(self.sample_width, int) \
                or self.sample_width < 1:
            raise ConfigError(f"Sample width must be a positive integer, got {self.sample_width!r}")

    def is_ignored(self, name: str, relative_path: str) -> bool:
        """Check if a directory matches one of the ignore patterns."""
        for pattern in self.ignore_dirs:
            if fnmatch.fnmatch(name, pattern):
                return True
            if fnmatch.fnmatch(relative_path, pattern.strip('/')):
                return True
        return False


# =============================================================================
# Result Aggregation
# =============================================================================

@dataclass
class Summary:
    """
    Counters accumulated over one verification run.

    A Summary is created empty for each run and mutated only by the
    comparator that owns the run.
    """
    item_count: int = 0
    diff_count: int = 0
    skipped_count: int = 0
    error_count: int = 0
    symlink_error_count: int = 0
    symlink_mismatch_count: int = 0
    cancelled: bool = False

    def add_item_count(self, num: int) -> None:
        self.item_count += num

    def add_diff_count(self, num: int) -> None:
        self.diff_count += num

    def add_skipped_count(self, num: int) -> None:
        self.skipped_count += num

    def add_error_count(self, num: int) -> None:
        self.error_count += num

    def add_symlink_error_count(self, num: int) -> None:
        self.symlink_error_count += num

    def add_symlink_mismatch_count(self, num: int) -> None:
        self.symlink_mismatch_count += num

    def record(self, outcome: ComparisonOutcome, extra: int = 0) -> None:
        """
        Update the counters for one comparison outcome.

        Args:
            outcome: Outcome of the comparison
            extra: Descendant entries of the original path to weigh into
                missing, type-mismatched and symlink-mismatched items
        """
        if outcome == ComparisonOutcome.IDENTICAL:
            return
        if outcome == ComparisonOutcome.DIFFERENT:
            self.add_diff_count(1)
        elif outcome in (ComparisonOutcome.MISSING_IN_BACKUP, ComparisonOutcome.TYPE_MISMATCH):
            self.add_item_count(extra)
            self.add_diff_count(1 + extra)
        elif outcome == ComparisonOutcome.SYMLINK_MISMATCH:
            self.add_symlink_mismatch_count(1)
            self.add_item_count(extra)
            self.add_diff_count(1 + extra)
        elif outcome == ComparisonOutcome.SYMLINK_ERROR:
            self.add_symlink_error_count(1)
            self.add_diff_count(1)
        elif outcome == ComparisonOutcome.SKIPPED:
            self.add_skipped_count(1)
        elif outcome == ComparisonOutcome.ERROR:
            self.add_error_count(1)
            self.add_diff_count(1)
        else:
            raise ValueError(f"Unknown outcome: {outcome}")

    @property
    def similar_count(self) -> int:
        """Items that were verified as matching."""
        return self.item_count - self.diff_count

    @property
    def diff_percent(self) -> float:
        """Percentage of items that differ (0 for an empty run)."""
        if self.item_count == 0:
            return 0.0
        return (self.diff_count / self.item_count) * 100

    @property
    def is_identical(self) -> bool:
        return self.diff_count == 0 and not self.cancelled


# =============================================================================
# Error Models
# =============================================================================

class VerifyError(Exception):
    """Base class for verification errors."""

    def __init__(self, message: str, path: Optional[Path | str] = None):
        super().__init__(message)
        self.path = path


class StatError(VerifyError):
    """A path could not be stat'ed or listed."""
    pass


class SymlinkReadError(VerifyError):
    """A symlink could not be read or points nowhere."""
    pass


class SampleReadError(VerifyError):
    """Reading a sample from a file failed."""
    pass


class ConfigError(VerifyError):
    """Invalid configuration; verification cannot start."""
    pass
