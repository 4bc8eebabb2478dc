"""Configuration loading from pyproject.toml."""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import cast


class ConfigError(Exception):
    """Error in multiverse configuration."""


@dataclass(slots=True, frozen=True)
class ScriptSource:
    """Script path with optional variable name."""

    script: Path
    name: str | None = None


@dataclass(slots=True, frozen=True)
class ModuleSource:
    """Module path with variable name (e.g., 'examples.hurricane:mv')."""

    module_path: str


MultiverseSource = ScriptSource | ModuleSource


@dataclass(slots=True, frozen=True)
class MultiverseConfig:
    """Configuration loaded from pyproject.toml.

    All relative paths are resolved from the project root (directory containing pyproject.toml).
    """

    multiverse: MultiverseSource | None = None
    data: Path | None = None
    output: Path | None = None
    grid_resolution: int | None = None
    max_workers: int | None = None
    timeout: float | None = None
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

    while True:
        candidate = current / "pyproject.toml"
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            # Reached filesystem root
            return None
        current = parent


def _parse_multiverse_source(value: object, project_root: Path) -> MultiverseSource:
    """Parse the multiverse field from config.

    Args:
        value: The raw value from TOML (string or dict)
        project_root: Project root directory for resolving relative paths

    Returns:
        Parsed MultiverseSource

    Raises:
        ConfigError: If the value format is invalid

    """
    if isinstance(value, str):
        # Module path format: "module.path:variable"
        if ":" not in value:
            msg = f"Invalid module path '{value}'. Expected format: 'module.path:variable_name'"
            raise ConfigError(msg)
        return ModuleSource(module_path=value)

    if isinstance(value, dict):
        # Script path format: { script = "path.py", name = "mv" }
        value_dict = cast("dict[str, object]", value)
        if "script" not in value_dict:
            msg = "Invalid [tool.multiverse].multiverse configuration. Expected string or table with 'script' key."
            raise ConfigError(msg)

        script_value = value_dict["script"]
        if not isinstance(script_value, str):
            msg = "Invalid [tool.multiverse].multiverse.script: expected string path"
            raise ConfigError(msg)
        script_path = Path(script_value)
        if not script_path.is_absolute():
            script_path = project_root / script_path

        name = value_dict.get("name")
        if name is not None and not isinstance(name, str):
            msg = "Invalid [tool.multiverse].multiverse.name: expected string"
            raise ConfigError(msg)

        return ScriptSource(script=script_path, name=name)

    msg = "Invalid [tool.multiverse].multiverse configuration. Expected string or table with 'script' key."
    raise ConfigError(msg)


def _parse_path(section: dict[str, object], key: str, project_root: Path) -> Path | None:
    if key not in section:
        return None
    value = section[key]
    if not isinstance(value, str):
        msg = f"Invalid [tool.multiverse].{key}: expected string path"
        raise ConfigError(msg)
    path = Path(value)
    if not path.is_absolute():
        path = project_root / path
    return path


def _parse_positive_int(section: dict[str, object], key: str) -> int | None:
    if key not in section:
        return None
    value = section[key]
    # bool is a subclass of int
    if not isinstance(value, int) or isinstance(value, bool) or value < 1:
        msg = f"Invalid [tool.multiverse].{key}: expected a positive integer"
        raise ConfigError(msg)
    return value


def _parse_timeout(section: dict[str, object]) -> float | None:
    if "timeout" not in section:
        return None
    value = section["timeout"]
    if not isinstance(value, int | float) or isinstance(value, bool) or value <= 0:
        msg = "Invalid [tool.multiverse].timeout: expected a positive number of seconds"
        raise ConfigError(msg)
    return float(value)


def load_config(pyproject_path: Path) -> MultiverseConfig:
    """Load and validate [tool.multiverse] config from pyproject.toml.

    Args:
        pyproject_path: Path to pyproject.toml

    Returns:
        Parsed MultiverseConfig

    Raises:
        ConfigError: If the configuration is invalid

    """
    project_root = pyproject_path.parent

    with pyproject_path.open("rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            msg = f"Invalid TOML in {pyproject_path}: {e}"
            raise ConfigError(msg) from e

    tool_section = data.get("tool", {})
    section = tool_section.get("multiverse", {})

    if not section:
        # No [tool.multiverse] section - return empty config
        return MultiverseConfig(project_root=project_root)

    source: MultiverseSource | None = None
    if "multiverse" in section:
        source = _parse_multiverse_source(section["multiverse"], project_root)

    return MultiverseConfig(
        multiverse=source,
        data=_parse_path(section, "data", project_root),
        output=_parse_path(section, "output", project_root),
        grid_resolution=_parse_positive_int(section, "grid_resolution"),
        max_workers=_parse_positive_int(section, "max_workers"),
        timeout=_parse_timeout(section),
        project_root=project_root,
    )


def get_config() -> MultiverseConfig:
    """Get config from pyproject.toml in current directory or parents.

    Returns:
        MultiverseConfig (may be empty if no pyproject.toml or no [tool.multiverse] section)

    """
    pyproject_path = find_pyproject_toml()
    if pyproject_path is None:
        return MultiverseConfig()
    return load_config(pyproject_path)
