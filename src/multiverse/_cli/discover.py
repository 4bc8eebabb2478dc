"""Locate the `Multiverse` a command operates on.

A target is a script path or a ``module.path:variable`` string. A script that
lives inside a package is imported under its dotted package name, so relative
imports in the script keep working.
"""

from __future__ import annotations

import importlib
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from multiverse._models import Multiverse

from .config import ModuleSource, ScriptSource

if TYPE_CHECKING:
    from types import ModuleType

    from .config import MultiverseSource

logger = logging.getLogger(__name__)


class DiscoveryError(Exception):
    """The target cannot be imported or does not hold exactly one `Multiverse`."""


def parse_target(target: str, variable: str | None = None) -> MultiverseSource:
    """Interpret a command-line target as a script path or a module path.

    A target containing ``:`` is a module path unless it names an existing file.
    """
    if ":" in target and not Path(target).exists():
        return ModuleSource(module_path=target)
    return ScriptSource(script=Path(target), name=variable)


def script_import_name(script: Path) -> tuple[str, Path]:
    """Return the dotted import name of a script and the directory to import it from.

    Every enclosing directory holding an ``__init__.py`` becomes part of the name.

    Example:
        A script at ``analysis/studies/hurricanes.py`` where only ``studies``
        is a package is imported as ``studies.hurricanes`` from ``analysis``.

    """
    script = script.resolve()
    parts = [] if script.stem == "__init__" else [script.stem]
    root = script.parent
    while (root / "__init__.py").is_file():
        parts.insert(0, root.name)
        root = root.parent
    return ".".join(parts), root


def _import(module_name: str, search_path: Path | None) -> ModuleType:
    if search_path is not None and str(search_path) not in sys.path:
        sys.path.insert(0, str(search_path))
    logger.debug(f"Importing '{module_name}'" + (f" from {search_path}" if search_path is not None else ""))
    try:
        return importlib.import_module(module_name)
    except ImportError as e:
        msg = f"Cannot import '{module_name}': {e}"
        raise DiscoveryError(msg) from e


def _select(module: ModuleType, variable: str | None) -> Multiverse:
    if variable:
        if not hasattr(module, variable):
            msg = f"Module '{module.__name__}' has no attribute '{variable}'"
            raise DiscoveryError(msg)
        candidate = getattr(module, variable)
        if not isinstance(candidate, Multiverse):
            msg = f"'{variable}' in '{module.__name__}' is a {type(candidate).__name__}, not a Multiverse"
            raise DiscoveryError(msg)
        return candidate

    found: dict[int, tuple[str, Multiverse]] = {}
    for name, value in vars(module).items():
        if isinstance(value, Multiverse):
            found.setdefault(id(value), (name, value))
    if not found:
        msg = f"No Multiverse found in '{module.__name__}'"
        raise DiscoveryError(msg)
    if len(found) > 1:
        names = ", ".join(sorted(name for name, _ in found.values()))
        msg = f"Several multiverses found in '{module.__name__}' ({names}), choose one with --name"
        raise DiscoveryError(msg)
    ((name, multiverse),) = found.values()
    logger.debug(f"Found multiverse '{name}' in '{module.__name__}'")
    return multiverse


def load_multiverse(
    source: MultiverseSource,
    variable: str | None = None,
    *,
    project_root: Path | None = None,
) -> Multiverse:
    """Import the source and return the `Multiverse` it declares.

    Args:
        source: Script or module to import.
        variable: Variable holding the multiverse. Overrides the name configured for
            a script. When no name is known, the module must declare exactly one.
        project_root: Directory module paths are imported from, in addition to
            the interpreter's search path.

    Raises:
        DiscoveryError: If the source cannot be imported or holds no unambiguous multiverse.

    """
    match source:
        case ScriptSource(script=script, name=name):
            if not script.is_file():
                msg = f"Script not found: {script}"
                raise DiscoveryError(msg)
            module_name, search_path = script_import_name(script)
            return _select(_import(module_name, search_path), variable or name)
        case ModuleSource(module_path=module_path):
            module_name, _, attribute = module_path.partition(":")
            return _select(_import(module_name, project_root), attribute or variable)
