from __future__ import annotations

import sys
import textwrap
from pathlib import Path
from typing import Callable

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))

import pytest

from vouch.analysis.matchers import CUSTOM_MATCHERS


@pytest.fixture
def write_module(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write(relative: str, source: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path

    return _write


@pytest.fixture(autouse=True)
def _fresh_custom_matchers():
    CUSTOM_MATCHERS._compiled.clear()
    CUSTOM_MATCHERS.compilations = 0
    yield
