"""Tests for random content sampling."""

from __future__ import annotations

from pathlib import Path

import pytest

from backupverify.core.models import SampleReadError
from backupverify.core.verify.sampler import ContentSampler


@pytest.fixture
def write(tmp_path: Path):
    def _write(name: str, content: bytes) -> Path:
        p = tmp_path / name
        p.write_bytes(content)
        return p
    return _write


class TestSampleEqual:

    def test_zero_samples_trusts_size(self, write):
        a = write("a", b"aaaaaaaaaa")
        b = write("b", b"bbbbbbbbbb")
        assert ContentSampler().sample_equal(a, b, 10, 0) is True

    def test_identical_files(self, write):
        content = bytes(range(256)) * 40
        a = write("a", content)
        b = write("b", content)
        assert ContentSampler().sample_equal(a, b, len(content), 25) is True

    def test_differing_last_byte_is_always_seen(self, write):
        # Every 32-byte window starting in a 10-byte file reaches the last byte
        a = write("a", b"aaaaaaaaaa")
        b = write("b", b"aaaaaaaaab")
        assert ContentSampler().sample_equal(a, b, 10, 50) is False

    def test_completely_different_content(self, write):
        a = write("a", b"\x00" * 4096)
        b = write("b", b"\xff" * 4096)
        assert ContentSampler(sample_width=8).sample_equal(a, b, 4096, 30) is False

    def test_empty_files(self, write):
        a = write("a", b"")
        b = write("b", b"")
        assert ContentSampler().sample_equal(a, b, 0, 5) is True

    def test_width_override(self, write):
        a = write("a", b"abc")
        b = write("b", b"abd")
        # Width 1 can land on a matching byte, so only a mismatch everywhere is definite
        assert ContentSampler(sample_width=1).sample_equal(a, b, 3, 10, sample_width=3) is False

    def test_unreadable_file(self, write, tmp_path: Path):
        a = write("a", b"0123456789")
        with pytest.raises(SampleReadError):
            ContentSampler().sample_equal(a, tmp_path / "missing", 10, 1)

    def test_file_shorter_than_claimed(self, write):
        a = write("a", b"0123456789")
        b = write("b", b"0123456789")
        with pytest.raises(SampleReadError):
            ContentSampler().sample_equal(a, b, 100, 3)
