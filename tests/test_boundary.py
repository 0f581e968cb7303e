"""Tests for the filesystem boundary guard."""

from __future__ import annotations

import pytest

from backupverify.core.verify.boundary import BoundaryGuard


@pytest.mark.parametrize(
    "parent, child, one_filesystem, expected",
    [
        (1, 1, True, True),
        (1, 2, True, False),
        (1, 2, False, True),
        (None, 2, True, True),
        (1, None, True, True),
    ],
)
def test_should_descend(parent, child, one_filesystem, expected):
    assert BoundaryGuard().should_descend(parent, child, one_filesystem) is expected
