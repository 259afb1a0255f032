"""``merge_query_results`` tool envelope.

Wraps :func:`datamerge.merge.merge_results` in the response shape a chat agent expects:
the full render payload for display plus a smaller slice of rows for the model.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from datamerge.errors import DataMergeUserError
from datamerge.merge import merge_results
from datamerge.models.request import MergeRequest
from datamerge.models.result import MergeResult, MergeStats
from datamerge.util import MAX_ROWS_FOR_MODEL

logger = logging.getLogger(__name__)

TOOL_NAME = "merge_query_results"


def _side(params: Mapping[str, Any], side: str) -> Mapping[str, Any]:
    ds = params.get(side)
    return ds if isinstance(ds, Mapping) else {}


def _str_or_none(v: Any) -> Optional[str]:
    return v if isinstance(v, str) and v else None


def _rejected_payload(params: Mapping[str, Any], message: str) -> Dict[str, Any]:
    """Error payload for params that never became a MergeRequest."""
    left, right = _side(params, "left"), _side(params, "right")
    left_label = _str_or_none(left.get("label")) or _str_or_none(left.get("connectionId")) or "left"
    right_label = _str_or_none(right.get("label")) or _str_or_none(right.get("connectionId")) or "right"
    merge_type = params.get("mergeType") or "inner"
    left_key, right_key = params.get("leftKey"), params.get("rightKey")
    title = _str_or_none(params.get("title")) or (
        f"Merged {left_label} ({left_key}) {str(merge_type).upper()} {right_label} ({right_key})"
    )
    left_rows, right_rows = left.get("rows"), right.get("rows")
    stats = MergeStats(
        left_rows=len(left_rows) if isinstance(left_rows, list) else 0,
        right_rows=len(right_rows) if isinstance(right_rows, list) else 0,
    )
    return MergeResult(
        title=title,
        merge_type=str(merge_type),
        left_label=left_label,
        right_label=right_label,
        left_key=str(left_key),
        right_key=str(right_key),
        left_connection_id=_str_or_none(left.get("connectionId")),
        right_connection_id=_str_or_none(right.get("connectionId")),
        stats=stats,
        error=message,
    ).to_dict()


def _error_envelope(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "status": "error",
        "data": {
            "error": payload["error"],
            "mergeType": payload["mergeType"],
            "leftConnectionId": payload["leftConnectionId"],
            "rightConnectionId": payload["rightConnectionId"],
            "leftKey": payload["leftKey"],
            "rightKey": payload["rightKey"],
        },
        "message": payload["error"],
        "renderData": payload,
    }


def tool_response(result: MergeResult, *, model_rows: int = MAX_ROWS_FOR_MODEL) -> Dict[str, Any]:
    """Build the tool response for a finished merge."""
    payload = result.to_dict()
    if not result.ok:
        return _error_envelope(payload)

    model_slice = payload["rows"][:model_rows]
    return {
        "status": "success",
        "data": {
            "title": result.title,
            "mergeType": result.merge_type,
            "rowCount": result.total_row_count,
            "rowsProvided": len(model_slice),
            "columns": payload["columns"],
            "rows": model_slice,
            "rowsTruncated": result.total_row_count > model_rows,
            "stats": payload["stats"],
            "leftConnectionId": result.left_connection_id,
            "rightConnectionId": result.right_connection_id,
            "leftKey": result.left_key,
            "rightKey": result.right_key,
        },
        "renderData": payload,
    }


def run_merge_tool(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Parse tool params, merge, and return the envelope. Never raises."""
    try:
        request = MergeRequest.from_ir(params, strict=False)
    except DataMergeUserError as e:
        logger.warning("%s rejected params: %s", TOOL_NAME, e)
        return _error_envelope(_rejected_payload(params if isinstance(params, Mapping) else {}, e.message))
    except Exception as e:
        logger.exception("%s could not build a request", TOOL_NAME)
        message = str(e) or "Failed to merge query results"
        return _error_envelope(_rejected_payload(params if isinstance(params, Mapping) else {}, message))
    return tool_response(merge_results(request))
