"""JSON dumps for human review: dry-run output and raw GitHub snapshots."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

from .exceptions import MigrationError

logger: logging.Logger = logging.getLogger(__name__)


def to_json(data: Any) -> str:  # noqa: ANN401 - any JSON-able structure
    return json.dumps(data, indent=4, default=str)


def write_json(data: Any, path: str | Path | None = None) -> None:  # noqa: ANN401 - any JSON-able structure
    """Write ``data`` as indented JSON to ``path``, or to stdout when no path is given."""
    text = to_json(data)
    if path is None:
        print(text, file=sys.stdout)
        return

    try:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        _ = target.write_text(text + "\n", encoding="utf-8")
    except OSError as e:
        msg = f"Failed to write {path}: {e}"
        raise MigrationError(msg) from e
    logger.info(f"Wrote {path}")
