"""Environment loading, logging setup and the vendor model clients."""

from .env import load_repo_dotenv, repo_env_path
from .logging import configure_logging

__all__ = [
    "configure_logging",
    "load_repo_dotenv",
    "repo_env_path",
]
