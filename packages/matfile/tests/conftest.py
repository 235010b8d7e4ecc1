"""Pytest configuration for matfile tests."""

from __future__ import annotations

import struct
import sys
from pathlib import Path

import pytest

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if SRC_DIR.exists() and str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

TESTS_DIR = Path(__file__).resolve().parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

from mat_builders import compressed, header_bytes, matrix_payload, tag  # noqa: E402


@pytest.fixture
def sample_file() -> bytes:
    """A small file: header, one plain matrix, one compressed matrix."""

    first = tag(
        14,
        matrix_payload(6, (3, 2), b"R", struct.pack("<6d", 1, 2, 3, 4, 5, 6)),
    )
    second = compressed(
        tag(14, matrix_payload(12, (1, 3), b"T", struct.pack("<3i", 7, 8, 9), 5))
    )
    return header_bytes() + first + second
