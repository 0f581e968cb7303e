"""
Backup verification module.

Provides functionality for:
- Filesystem probing
- Random content sampling
- Filesystem boundary checks
- Subtree counting
- Original-to-backup tree comparison
"""

from backupverify.core.verify.probe import FilesystemProbe
from backupverify.core.verify.sampler import ContentSampler, DEFAULT_SAMPLE_WIDTH
from backupverify.core.verify.boundary import BoundaryGuard
from backupverify.core.verify.scanner import SubtreeCounter
from backupverify.core.verify.comparator import TreeComparator

__all__ = [
    # Probe
    'FilesystemProbe',
    # Sampler
    'ContentSampler',
    'DEFAULT_SAMPLE_WIDTH',
    # Boundary
    'BoundaryGuard',
    # Scanner
    'SubtreeCounter',
    # Comparator
    'TreeComparator',
]
