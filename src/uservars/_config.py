"""Configuration loading from pyproject.toml."""

import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ._errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 64


@dataclass(slots=True, frozen=True)
class UserVarsConfig:
    """Configuration loaded from the ``[tool.uservars]`` table of pyproject.toml.

    Attributes:
        global_root: Whether global variables live at the root of the path
            namespace (``name``) or under ``global.name``.
        max_depth: Longest reference chain followed, or None for no limit.
            ``max_depth = 0`` in TOML means no limit.
        project_root: Directory containing the pyproject.toml the config was
            read from, if any.

    """

    global_root: bool = True
    max_depth: int | None = DEFAULT_MAX_DEPTH
    project_root: Path | None = None


def find_pyproject_toml(start_dir: Path | None = None) -> Path | None:
    """Find pyproject.toml by walking up from start_dir.

    Args:
        start_dir: Starting directory. Defaults to current working directory.

    Returns:
        Path to pyproject.toml if found, None otherwise.

    """
    if start_dir is None:
        start_dir = Path.cwd()

    current = start_dir.resolve()
    for directory in (current, *current.parents):
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def _parse_global_root(value: Any) -> bool:
    if not isinstance(value, bool):
        msg = f"Invalid [tool.uservars].global-root: expected boolean, got {value!r}"
        raise ConfigError(msg)
    return value


def _parse_max_depth(value: Any) -> int | None:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        msg = f"Invalid [tool.uservars].max-depth: expected non-negative integer, got {value!r}"
        raise ConfigError(msg)
    return value or None


def load_config(pyproject_path: Path) -> UserVarsConfig:
    """Load and validate [tool.uservars] config from pyproject.toml.

    Both ``global-root`` and ``global_root`` spellings are accepted (likewise
    for ``max-depth``).

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed UserVarsConfig

    Raises:
        ConfigError: If the file is not valid TOML or a setting has the wrong type

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    section = data.get("tool", {}).get("uservars", {})
    if not isinstance(section, dict):
        msg = "Invalid [tool.uservars] configuration: expected a table"
        raise ConfigError(msg)
    if not section:
        return UserVarsConfig(project_root=project_root)

    settings = {key.replace("-", "_"): value for key, value in section.items()}
    unknown = sorted(set(settings) - {"global_root", "max_depth"})
    if unknown:
        logger.warning("Ignoring unknown [tool.uservars] keys: %s", ", ".join(unknown))

    global_root = True
    if "global_root" in settings:
        global_root = _parse_global_root(settings["global_root"])

    max_depth: int | None = DEFAULT_MAX_DEPTH
    if "max_depth" in settings:
        max_depth = _parse_max_depth(settings["max_depth"])

    return UserVarsConfig(
        global_root=global_root,
        max_depth=max_depth,
        project_root=project_root,
    )


def get_config(start_dir: Path | None = None) -> UserVarsConfig:
    """Get config from pyproject.toml in start_dir (default: cwd) or its parents.

    Returns:
        UserVarsConfig (defaults if no pyproject.toml or no [tool.uservars] section)

    """
    pyproject_path = find_pyproject_toml(start_dir)
    if pyproject_path is None:
        return UserVarsConfig()
    return load_config(pyproject_path)
