from __future__ import annotations

import sys
from pathlib import Path

import pytest


def pytest_sessionstart(session):
    """
    backend/ (where the docgen package lives) must be on sys.path,
    even when pytest is started from the repository root.
    """
    backend_dir = Path(__file__).resolve().parents[1]  # .../backend
    p = str(backend_dir)
    if p not in sys.path:
        sys.path.insert(0, p)


@pytest.fixture
def record_id() -> str:
    from builders import RECORD_ID

    return RECORD_ID


@pytest.fixture
def raw_record() -> dict:
    from builders import make_record

    return make_record()


@pytest.fixture
def temp_output_dir(tmp_path: Path) -> Path:
    """
    Scratch folder for stores and rendered files.
    """
    out = tmp_path / "out"
    out.mkdir(parents=True, exist_ok=True)
    return out
