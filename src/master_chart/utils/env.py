"""Credential loading from the repository ``.env`` file."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

_REPO_ROOT = Path(__file__).resolve().parents[3]

# Points at an alternative env file, e.g. per-backend credential sets.
ENV_FILE_VARIABLE = "MASTER_CHART_ENV_FILE"


def repo_env_path() -> Path:
    override = os.getenv(ENV_FILE_VARIABLE)
    if override:
        return Path(override).expanduser()
    return _REPO_ROOT / ".env"


@lru_cache(maxsize=1)
def load_repo_dotenv() -> Path | None:
    """Load the env file once per process and return its path, or None if there is none.

    Variables already present in the environment are never overridden.
    """

    env_path = repo_env_path()
    if not env_path.is_file():
        logger.debug("No env file at %s; using the process environment only", env_path)
        return None
    load_dotenv(env_path, override=False)
    return env_path


__all__ = ["ENV_FILE_VARIABLE", "load_repo_dotenv", "repo_env_path"]
