"""
Filesystem boundary guard.
"""

from __future__ import annotations

from typing import Optional


class BoundaryGuard:
    """Decides whether traversal may cross into a child directory."""

    def should_descend(
        self,
        parent_device: Optional[int],
        child_device: Optional[int],
        one_filesystem: bool
    ) -> bool:
        """
        Check if a child directory should be descended into.

        Unknown device ids (None) always pass.
        """
        if not one_filesystem:
            return True
        if parent_device is None or child_device is None:
            return True
        return parent_device == child_device
