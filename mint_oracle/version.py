"""
Version of the running oracle, reported by the HTTP app.
"""
import importlib.metadata
import pathlib
from typing import Optional

import tomli

DISTRIBUTION = "mint-oracle"
UNKNOWN_VERSION = "0.3.0"

PYPROJECT = pathlib.Path(__file__).resolve().parent.parent / "pyproject.toml"


def _source_tree_version(pyproject: Optional[pathlib.Path] = None) -> Optional[str]:
    """Project version from a source checkout, or None if it can't be read."""
    try:
        with (pyproject or PYPROJECT).open("rb") as f:
            return tomli.load(f)["project"]["version"]
    except (OSError, KeyError, tomli.TOMLDecodeError):
        return None


def get_version() -> str:
    """Installed distribution version, falling back to the checkout's pyproject."""
    try:
        return importlib.metadata.version(DISTRIBUTION)
    except importlib.metadata.PackageNotFoundError:
        return _source_tree_version() or UNKNOWN_VERSION


__version__ = get_version()
