"""
cubicmem - two-tier agent memory (LRU short-term cache + SQLite long-term store)
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from pathlib import Path


def _get_version() -> str:
    """Installed distribution version, else the one in a source checkout's pyproject.toml."""
    try:
        return version("cubic-memory")
    except PackageNotFoundError:
        pass
    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
    if not pyproject_path.exists():
        return "0.0.0-unknown"
    import tomllib

    return tomllib.loads(pyproject_path.read_text(encoding="utf-8"))["project"]["version"]


__version__ = _get_version()
__logo__ = "🧠"
