"""
Project metadata lookups used by the log formatters (service name and version).

The installed distribution metadata is preferred; in a source checkout the
values are read from the nearest pyproject.toml instead.
"""

import tomllib
from functools import lru_cache
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Any

DEFAULT_PROJECT_NAME = "usercrud-api"


def find_pyproject(start: Path, max_up: int = 5) -> Path | None:
    """Walk up from `start` (at most `max_up` levels) looking for pyproject.toml."""
    for directory in [start, *start.parents][:max_up]:
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def load_pyproject_data(pyproject_path: Path) -> dict:
    with pyproject_path.open("rb") as f:
        return tomllib.load(f)


def get_pyproject_value(key: str, start: str | Path | None = None, max_up: int = 5, default: Any = None) -> Any:
    """
    Return a dot-separated key ("project.version") from the nearest pyproject.toml,
    or `default` when the file, the key or a parse fails.
    """
    start_path = Path(start).resolve() if start is not None else Path(__file__).resolve().parent
    pyproject = find_pyproject(start_path, max_up=max_up)
    if pyproject is None or not key:
        return default

    try:
        current: Any = load_pyproject_data(pyproject)
    except (OSError, tomllib.TOMLDecodeError):
        return default

    for part in key.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


def get_project_name(start: str | Path | None = None, default: str = DEFAULT_PROJECT_NAME) -> str:
    return get_pyproject_value("project.name", start=start, default=default)


@lru_cache()
def get_project_version(default: str = "unknown") -> str:
    name = get_project_name()
    try:
        return importlib_metadata.version(name)
    except importlib_metadata.PackageNotFoundError:
        # Not installed (plain source checkout): fall back to the file
        return get_pyproject_value("project.version", default=default)


__all__ = [
    "DEFAULT_PROJECT_NAME",
    "find_pyproject",
    "load_pyproject_data",
    "get_pyproject_value",
    "get_project_name",
    "get_project_version",
]
