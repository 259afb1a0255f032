from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, NamedTuple, Sequence

from datamerge.errors import DataMergeUserError, MissingJoinKeyError
from datamerge.join import build_index, collect_columns, execute, project
from datamerge.keys import CellValue
from datamerge.models.request import MergeRequest
from datamerge.models.result import MergeResult, MergeStats, package
from datamerge.util import DEFAULT_LEFT_PREFIX, DEFAULT_RIGHT_PREFIX

logger = logging.getLogger(__name__)


class MergedRows(NamedTuple):
    rows: List[Dict[str, CellValue]]
    columns: List[str]
    stats: MergeStats


def merge_rows(
    left_rows: Sequence[Mapping[str, Any]],
    right_rows: Sequence[Mapping[str, Any]],
    left_key: str,
    right_key: str,
    merge_type: str = "inner",
    left_prefix: str = DEFAULT_LEFT_PREFIX,
    right_prefix: str = DEFAULT_RIGHT_PREFIX,
) -> MergedRows:
    """Join two row lists by key and return every merged row, untruncated."""
    left_columns = collect_columns(left_rows)
    right_columns = collect_columns(right_rows)
    columns = [f"{left_prefix}.{c}" for c in left_columns] + [f"{right_prefix}.{c}" for c in right_columns]

    index = build_index(right_rows, right_key)
    outcome = execute(left_rows, right_rows, index, left_key, merge_type)
    rows = [
        project(lrow, rrow, left_columns, right_columns, left_prefix, right_prefix)
        for lrow, rrow in outcome.pairs
    ]
    return MergedRows(rows, columns, outcome.stats)


def _check_join_keys(request: MergeRequest) -> None:
    missing = []
    if not request.left.has_column(request.left_key):
        missing.append(("leftKey", request.left_key))
    if not request.right.has_column(request.right_key):
        missing.append(("rightKey", request.right_key))
    if missing:
        raise MissingJoinKeyError(missing)


def _base_fields(request: MergeRequest) -> Dict[str, Any]:
    return {
        "title": request.resolved_title(),
        "merge_type": request.merge_type,
        "left_label": request.left_label,
        "right_label": request.right_label,
        "left_key": request.left_key,
        "right_key": request.right_key,
        "left_connection_id": request.left.connection_id,
        "right_connection_id": request.right.connection_id,
    }


def _error_result(request: MergeRequest, message: str, code: str) -> MergeResult:
    return MergeResult(
        **_base_fields(request),
        stats=MergeStats(left_rows=len(request.left), right_rows=len(request.right)),
        error=message,
        error_code=code,
    )


def merge_results(request: MergeRequest) -> MergeResult:
    """Merge the request's datasets and package the result for display.

    Never raises: a missing join key or any unexpected failure comes back as a
    MergeResult with ``error`` set and an empty table.
    """
    try:
        _check_join_keys(request)
        merged = merge_rows(
            request.left.rows,
            request.right.rows,
            request.left_key,
            request.right_key,
            merge_type=request.merge_type,
            left_prefix=request.left_prefix,
            right_prefix=request.right_prefix,
        )
        packaged = package(merged.rows, merged.columns, request.max_rows)
    except DataMergeUserError as e:
        logger.warning("Merge rejected: %s", e)
        return _error_result(request, e.message, e.code)
    except Exception as e:
        logger.exception("Merge failed: %s", request)
        return _error_result(request, str(e) or "Failed to merge query results", "E_MERGE_FAILED")

    logger.info(
        "Merged %s: %d rows (%d rendered), matched=%d unmatched_left=%d unmatched_right=%d",
        request, packaged.total_row_count, packaged.row_count, merged.stats.matched_pairs,
        merged.stats.unmatched_left, merged.stats.unmatched_right,
    )
    return MergeResult(
        **_base_fields(request),
        columns=merged.columns,
        rows=packaged.rows,
        row_count=packaged.row_count,
        total_row_count=packaged.total_row_count,
        truncated=packaged.truncated,
        stats=merged.stats,
    )
