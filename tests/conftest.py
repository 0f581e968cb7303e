"""Shared fixtures for building original/backup trees."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture
def make_tree(tmp_path: Path):
    """Create a directory tree from a dict of {relative_path: content}.

    A value of None creates an empty directory.
    """

    def _make(name: str, entries: dict[str, bytes | None]) -> Path:
        root = tmp_path / name
        root.mkdir(parents=True, exist_ok=True)
        for rel, content in entries.items():
            p = root / rel
            if content is None:
                p.mkdir(parents=True, exist_ok=True)
            else:
                p.parent.mkdir(parents=True, exist_ok=True)
                p.write_bytes(content)
        return root

    return _make


@pytest.fixture
def sample_files() -> dict[str, bytes | None]:
    return {
        "a.txt": b"alpha",
        "sub/b.txt": b"bravo bravo",
        "sub/deeper/c.bin": bytes(range(256)) * 4,
        "empty": None,
    }
