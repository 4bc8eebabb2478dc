"""The single JSON serializer shared by every exporter."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def dumps_json(structure: Any) -> str:
    """Serialize an export structure to its canonical JSON text.

    Writing to a path and serializing the returned in-memory structure both go
    through this function, so the two modes are byte-identical.
    """
    return json.dumps(structure, indent=2, ensure_ascii=False, allow_nan=False) + "\n"


def write_json(structure: Any, path: Path | str) -> None:
    """Write an export structure to `path`, replacing the file only on success."""
    path = Path(path)
    text = dumps_json(structure)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        Path(tmp_name).replace(path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug(f"Wrote {path}")
