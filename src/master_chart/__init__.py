"""Multi-pass master chart generator: lifecycle analysis, dependency mapping, batched
chart content and quality validation over streamed LLM calls."""

from importlib import import_module
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from .utils.env import load_repo_dotenv

load_repo_dotenv()

try:
    __version__ = version("master-chart")
except PackageNotFoundError:  # source checkout on sys.path, not installed
    __version__ = "0.0.0"

_SUBPACKAGES = ("generation", "utils")
__all__ = ("__version__", *_SUBPACKAGES)


def __getattr__(name: str) -> Any:
    if name in _SUBPACKAGES:
        module = import_module(f"{__name__}.{name}")
        globals()[name] = module
        return module
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
