"""
Random content sampling for equal-sized files.

Instead of hashing whole files, a number of short byte ranges are read
from both files at random offsets and compared. Offsets come from the
operating system's CSPRNG, so repeated runs over the same pair look at
different ranges.
"""

from __future__ import annotations

import logging
import secrets
from pathlib import Path
from typing import Optional

from backupverify.core.models import SampleReadError


DEFAULT_SAMPLE_WIDTH = 32


class ContentSampler:
    """
    Spot-checks two files of equal length.

    The files count as equal as soon as one sampled range matches. More
    samples lower the chance of a false "equal", but never to zero while
    the sample count is smaller than the file.
    """

    def __init__(self, sample_width: int = DEFAULT_SAMPLE_WIDTH):
        self.sample_width = sample_width

    def sample_equal(
        self,
        file_a: Path | str,
        file_b: Path | str,
        size: int,
        sample_count: int,
        sample_width: Optional[int] = None
    ) -> bool:
        """
        Compare random samples of two files.

        The caller must already have checked that both files are `size`
        bytes long.

        Args:
            file_a: First file
            file_b: Second file
            size: Common size of both files in bytes
            sample_count: Number of samples; 0 accepts size equality alone
            sample_width: Bytes per sample (defaults to the sampler's width)

        Returns:
            True if any sample matched (or no samples were requested)

        Raises:
            SampleReadError: If either file cannot be opened or read
        """
        if sample_count == 0:
            return True
        if size == 0:
            return True

        width = sample_width or self.sample_width

        try:
            with open(file_a, 'rb') as fa, open(file_b, 'rb') as fb:
                for _ in range(sample_count):
                    start = secrets.randbelow(size)
                    length = min(width, size - start)

                    chunk_a = self._read_at(fa, start, length, file_a)
                    chunk_b = self._read_at(fb, start, length, file_b)

                    if chunk_a == chunk_b:
                        return True
        except OSError as e:
            raise SampleReadError(f"Error sampling {file_a} / {file_b}: {e}", file_a) from e

        logging.debug(f"ContentSampler - No matching sample in {sample_count} tries for {file_a}")
        return False

    @staticmethod
    def _read_at(handle, offset: int, length: int, path: Path | str) -> bytes:
        handle.seek(offset)
        data = handle.read(length)
        # File shrank since it was stat'ed
        if len(data) != length:
            raise SampleReadError(
                f"Short read from {path}: wanted {length} bytes at {offset}, got {len(data)}",
                path
            )
        return data
