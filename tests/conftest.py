"""
Shared test setup: point storage and the database at a throwaway directory
before any project module is imported.
"""
from __future__ import annotations

import os
import tempfile
from pathlib import Path

_TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="chronology-tests-"))
os.environ.setdefault("DATA_DIR", str(_TEST_DATA_DIR))
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_TEST_DATA_DIR / 'test_chronology.db'}")
os.environ.setdefault("DISABLE_OCR", "1")
os.environ.setdefault("AUDIT_LOGGING", "false")

import pytest  # noqa: E402

from tests.fixtures.generate_fixture import write_fixture  # noqa: E402


@pytest.fixture
def sample_pdf(tmp_path) -> Path:
    return write_fixture(tmp_path / "sample_record.pdf")
