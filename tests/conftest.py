"""Pytest fixtures and path configuration for master chart tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

TESTS_DIR = Path(__file__).resolve().parent
REPO_ROOT = TESTS_DIR.parent
SRC_DIR = REPO_ROOT / "src"
for path in (SRC_DIR, TESTS_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from chart_fakes import ScriptedModelClient, fast_config  # noqa: E402


@pytest.fixture
def scripted_client() -> ScriptedModelClient:
    return ScriptedModelClient(concepts=12)


@pytest.fixture
def pipeline_config():
    return fast_config()
