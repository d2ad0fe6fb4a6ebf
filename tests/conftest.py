"""Shared test fixtures for the text-extraction test suite."""

from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture
def sample_pdf(tmp_path: Path) -> Path:
    """A small file standing in for an uploaded PDF."""
    p = tmp_path / "budget.pdf"
    p.write_bytes(b"%PDF-1.4\n% test document body\n")
    return p


@pytest.fixture
def other_pdf(tmp_path: Path) -> Path:
    p = tmp_path / "plan-summary.pdf"
    p.write_bytes(b"%PDF-1.4\n% a different document\n")
    return p


@pytest.fixture(autouse=True)
def _clean_extraction_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer TEXT_EXTRACTION_* settings out of the tests."""
    for name in list(os.environ):
        if name.startswith("TEXT_EXTRACTION_"):
            monkeypatch.delenv(name, raising=False)
