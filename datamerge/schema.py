from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from datamerge.errors import DataMergeUserError
from datamerge.models.dataset import Dataset
from datamerge.util import (
    DEFAULT_LEFT_PREFIX,
    DEFAULT_MAX_ROWS,
    DEFAULT_RIGHT_PREFIX,
    _norm_path,
)

logger = logging.getLogger(__name__)

_REQUEST_FIELDS = ("left", "right", "leftKey", "rightKey", "mergeType", "leftPrefix", "rightPrefix",
                   "maxRows", "title")


def _dataset_to_ir(ds: Dataset) -> Dict[str, Any]:
    d: Dict[str, Any] = {"rows": [dict(r) for r in ds.rows]}
    if ds.label is not None:
        d["label"] = ds.label
    if ds.connection_id is not None:
        d["connectionId"] = ds.connection_id
    return d


def _dataset_from_ir(d: Any, *, side: str) -> Dataset:
    """Build a Dataset from {rows: [...]} or {uri: file.csv, options: {...}}."""
    if not isinstance(d, dict):
        raise DataMergeUserError(
            "E_IR_DATASET",
            f"IR '{side}' dataset must be a mapping.",
            hint=f"Example: {side}: {{rows: [{{id: 1}}], label: users_db}}",
        )
    label = d.get("label")
    connection_id = d.get("connectionId")
    uri = d.get("uri")
    if uri is not None:
        if "rows" in d:
            raise DataMergeUserError(
                "E_IR_DATASET",
                f"IR '{side}' dataset accepts either 'rows' or 'uri', not both.",
                hint="Use 'rows' for inline query results, 'uri' for a CSV file.",
            )
        if not isinstance(uri, str) or not uri:
            raise DataMergeUserError(
                "E_IR_DATASET",
                f"IR '{side}' dataset 'uri' must be a non-empty string.",
                hint=f"Example: {side}: {{uri: people.csv}}",
            )
        return Dataset.from_csv(uri, label=label, connection_id=connection_id, **(d.get("options") or {}))

    rows = d.get("rows")
    if not isinstance(rows, list):
        raise DataMergeUserError(
            "E_IR_DATASET",
            f"IR '{side}' dataset requires a 'rows' list.",
            hint=f"Example: {side}: {{rows: [{{id: 1, name: a}}]}}",
        )
    return Dataset(rows, label=label, connection_id=connection_id)


def _normalize_ir(ir: Any, *, base_dir: Optional[Path], strict: bool = True) -> Dict[str, Any]:
    """Normalize IR structure and paths.

    Guarantees:
      - returns a dict holding every request field
      - mergeType, leftPrefix, rightPrefix and maxRows get their defaults when missing
      - any dataset uri is normalized against base_dir
      - missing/None dataset options become {}
      - unknown fields raise when strict, and are dropped otherwise

    This does not change semantics; it makes the IR portable and deterministic.
    """
    if not isinstance(ir, dict):
        raise DataMergeUserError(
            "E_IR_ROOT",
            "IR must be a mapping at the root.",
            hint="Expected keys: left, right, leftKey, rightKey.",
        )

    unknown: List[str] = sorted(str(k) for k in ir if k not in _REQUEST_FIELDS)
    if unknown and strict:
        raise DataMergeUserError(
            "E_IR_UNKNOWN_FIELD",
            f"IR has unknown field(s): {unknown}.",
            hint="Supported fields: " + ", ".join(_REQUEST_FIELDS),
        )

    if unknown:
        logger.debug("Ignoring unknown request field(s): %s", unknown)
    ir2: Dict[str, Any] = {k: v for k, v in ir.items() if k in _REQUEST_FIELDS}
    for side in ("left", "right"):
        ds = ir2.get(side)
        if not isinstance(ds, dict):
            raise DataMergeUserError(
                "E_IR_DATASET",
                f"IR requires a '{side}' dataset mapping.",
                hint=f"Example: {side}: {{rows: [{{id: 1}}]}}",
            )
        ds2: Dict[str, Any] = dict(ds)
        u = ds2.get("uri")
        if isinstance(u, str):
            ds2["uri"] = _norm_path(u, base_dir=base_dir)
        if "options" in ds2 and ds2["options"] is None:
            ds2["options"] = {}
        ir2[side] = ds2

    if ir2.get("mergeType") is None:
        ir2["mergeType"] = "inner"
    if ir2.get("leftPrefix") is None:
        ir2["leftPrefix"] = DEFAULT_LEFT_PREFIX
    if ir2.get("rightPrefix") is None:
        ir2["rightPrefix"] = DEFAULT_RIGHT_PREFIX
    if ir2.get("maxRows") is None:
        ir2["maxRows"] = DEFAULT_MAX_ROWS
    ir2.setdefault("title", None)
    return ir2
