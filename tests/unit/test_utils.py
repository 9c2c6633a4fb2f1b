from __future__ import annotations

import logging
import os
from pathlib import Path

import pytest

from master_chart.utils.env import ENV_FILE_VARIABLE, load_repo_dotenv, repo_env_path
from master_chart.utils.logging import configure_logging


@pytest.fixture
def fresh_dotenv():
    load_repo_dotenv.cache_clear()
    yield load_repo_dotenv
    load_repo_dotenv.cache_clear()


def test_env_file_override(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv(ENV_FILE_VARIABLE, str(tmp_path / "bedrock.env"))

    assert repo_env_path() == tmp_path / "bedrock.env"


def test_dotenv_never_overrides_process_environment(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, fresh_dotenv
) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "MASTER_CHART_TEST_FILE_ONLY=from-file\nMASTER_CHART_TEST_SHARED=from-file\n",
        encoding="utf-8",
    )
    monkeypatch.setenv(ENV_FILE_VARIABLE, str(env_file))
    monkeypatch.setenv("MASTER_CHART_TEST_SHARED", "from-shell")

    try:
        assert fresh_dotenv() == env_file
        assert os.environ["MASTER_CHART_TEST_FILE_ONLY"] == "from-file"
        assert os.environ["MASTER_CHART_TEST_SHARED"] == "from-shell"
    finally:
        os.environ.pop("MASTER_CHART_TEST_FILE_ONLY", None)


def test_missing_env_file_is_not_an_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, fresh_dotenv
) -> None:
    monkeypatch.setenv(ENV_FILE_VARIABLE, str(tmp_path / "absent.env"))

    assert fresh_dotenv() is None


def test_configure_logging_accepts_level_names() -> None:
    logger = configure_logging("debug", name="master_chart_test_debug")

    assert logger.level == logging.DEBUG
    assert not logger.propagate
    assert len(logger.handlers) == 1

    configure_logging("WARNING", name="master_chart_test_debug")
    assert len(logger.handlers) == 1
    assert logger.level == logging.WARNING


def test_sdk_loggers_are_quietened() -> None:
    configure_logging(logging.INFO, name="master_chart_test_quiet", quiet_loggers=("chart.sdk",))

    assert logging.getLogger("chart.sdk").level == logging.WARNING
