"""code.json: the pipeline source in display-sized fragments plus parameter metadata."""

from __future__ import annotations

import inspect
import logging
import textwrap
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ._json import write_json

if TYPE_CHECKING:
    from collections.abc import Callable

    from multiverse._models import Multiverse, Step

logger = logging.getLogger(__name__)

DEFAULT_MAX_FRAGMENT_LINES = 20


def _source_of(func: Callable[..., Any]) -> str:
    """Return the dedented source of a callable, or a placeholder when unavailable."""
    try:
        return textwrap.dedent(inspect.getsource(func)).rstrip()
    except (OSError, TypeError):
        name = getattr(func, "__qualname__", None) or repr(func)
        return f"# source unavailable: {name}"


def _render_step(step: Step) -> str:
    """Render one step as human-readable source text."""
    lines = [f"# step: {step.name}"]
    if step.parameter is not None:
        lines.append(f"# branch on {step.parameter.name}: {' | '.join(step.parameter.option_names)}")

    if step.source is not None:
        lines.append(textwrap.dedent(step.source).rstrip())
    elif step.func is not None:
        lines.append(_source_of(step.func))
    elif step.parameter is not None:
        for option in step.parameter.options:
            lines.append(f"# {step.parameter.name} == {option.name!r}")
            lines.append(_source_of(option.value))
    return "\n".join(lines)


def _split_fragment(text: str, max_lines: int) -> list[str]:
    lines = text.splitlines()
    return ["\n".join(lines[i : i + max_lines]) for i in range(0, len(lines), max_lines)] or [""]


def code_fragments(multiverse: Multiverse, *, max_lines: int = DEFAULT_MAX_FRAGMENT_LINES) -> list[str]:
    """Render the pipeline as an ordered list of fragments of at most `max_lines` lines.

    Each step starts a new fragment; long steps are split across several.
    """
    if max_lines < 1:
        msg = f"max_lines must be at least 1, got {max_lines}."
        raise ValueError(msg)
    fragments: list[str] = []
    for step in multiverse.steps.values():
        fragments.extend(_split_fragment(_render_step(step), max_lines))
    return fragments


def export_code(
    multiverse: Multiverse,
    path: Path | str | None = None,
    *,
    max_lines: int = DEFAULT_MAX_FRAGMENT_LINES,
) -> dict[str, Any] | None:
    """Export the pipeline code and parameter options in the code.json format.

    The structure is ``{"code": [fragment, ...], "parameters": {name: [option, ...]}}``.
    Conditions are not serialized.

    Args:
        multiverse: The declarations to export.
        path: Destination file. When ``None``, the structure is returned.
        max_lines: Maximum number of lines per code fragment.

    Returns:
        The code structure when `path` is ``None``, otherwise ``None``.

    """
    structure = {
        "code": code_fragments(multiverse, max_lines=max_lines),
        "parameters": {name: list(parameter.option_names) for name, parameter in multiverse.parameters.items()},
    }
    if path is None:
        return structure
    write_json(structure, path)
    logger.debug(f"Exported code of '{multiverse.name}' to {Path(path)}")
    return None
