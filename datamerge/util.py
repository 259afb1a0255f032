from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Tuple

logger = logging.getLogger(__name__)

MERGE_TYPES: Tuple[str, ...] = ("inner", "left", "right", "full")

DEFAULT_MAX_ROWS = 500
MAX_ROWS_LIMIT = 5000
# Second, smaller cap applied only to the model-facing tool output.
MAX_ROWS_FOR_MODEL = 50

DEFAULT_LEFT_PREFIX = "left"
DEFAULT_RIGHT_PREFIX = "right"


def _is_probably_url(s: str) -> bool:
    return s.startswith("http://") or s.startswith("https://") or s.startswith("s3://")


def _norm_path(p: str, *, base_dir: Optional[Path]) -> str:
    """Normalize a URI/path relative to a base directory (when provided).

    - Leaves absolute paths and URLs unchanged.
    - If base_dir is provided and p is relative, returns an absolute resolved path.
    """
    if not isinstance(p, str) or not p:
        return p
    if _is_probably_url(p):
        return p
    pp = Path(p)
    if pp.is_absolute():
        return str(pp)
    if base_dir is None:
        return p
    return str((base_dir / pp).resolve())


def _json_or_none(value: Any) -> Optional[str]:
    """Compact JSON text, or None when the value cannot be serialized."""
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError, RecursionError) as e:
        logger.debug("JSON serialization failed for %s: %s", type(value).__name__, e)
        return None


def _safe_json(value: Any) -> str:
    text = _json_or_none(value)
    return text if text is not None else str(value)
