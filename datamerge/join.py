from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence, Set, Tuple

from datamerge.keys import CellValue, normalize, to_cell_value
from datamerge.models.result import MergeStats

logger = logging.getLogger(__name__)

Row = Mapping[str, Any]
Pair = Tuple[Optional[Row], Optional[Row]]


class IndexedRow(NamedTuple):
    row: Row
    index: int


class JoinOutcome(NamedTuple):
    pairs: List[Pair]
    stats: MergeStats


def collect_columns(rows: Sequence[Row]) -> List[str]:
    """Union of the keys seen across rows, in first-seen order."""
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


def build_index(rows: Sequence[Row], key_column: str) -> Dict[str, List[IndexedRow]]:
    """Bucket rows by normalized key value. Rows with an unkeyable value are left out."""
    index: Dict[str, List[IndexedRow]] = {}
    for i, row in enumerate(rows):
        key = normalize(row.get(key_column))
        if key is None:
            continue
        index.setdefault(key, []).append(IndexedRow(row, i))
    logger.debug("Indexed %d of %d rows on %r into %d keys",
                 sum(len(b) for b in index.values()), len(rows), key_column, len(index))
    return index


def execute(
    left_rows: Sequence[Row],
    right_rows: Sequence[Row],
    right_index: Mapping[str, List[IndexedRow]],
    left_key: str,
    merge_type: str,
) -> JoinOutcome:
    """Pair left rows with their indexed right matches and apply the merge type.

    Duplicate keys fan out into the full cross product. A right row is consumed by
    its first match and never reported as unmatched afterwards.
    """
    pairs: List[Pair] = []
    consumed: Set[int] = set()
    matched_pairs = 0
    unmatched_left = 0

    for left_row in left_rows:
        key = normalize(left_row.get(left_key))
        matches = right_index.get(key) if key is not None else None

        if matches:
            for match in matches:
                matched_pairs += 1
                consumed.add(match.index)
                pairs.append((left_row, match.row))
            continue

        unmatched_left += 1
        if merge_type in ("left", "full"):
            pairs.append((left_row, None))

    unmatched_right = 0
    if merge_type in ("right", "full"):
        for i, right_row in enumerate(right_rows):
            if i in consumed:
                continue
            unmatched_right += 1
            pairs.append((None, right_row))

    stats = MergeStats(
        left_rows=len(left_rows),
        right_rows=len(right_rows),
        matched_pairs=matched_pairs,
        unmatched_left=unmatched_left,
        unmatched_right=unmatched_right,
    )
    logger.debug("%s join on %r: %d pairs, matched=%d unmatched_left=%d unmatched_right=%d",
                 merge_type, left_key, len(pairs), matched_pairs, unmatched_left, unmatched_right)
    return JoinOutcome(pairs, stats)


def project(
    left_row: Optional[Row],
    right_row: Optional[Row],
    left_columns: Sequence[str],
    right_columns: Sequence[str],
    left_prefix: str,
    right_prefix: str,
) -> Dict[str, CellValue]:
    """One output row; a missing side or column becomes null."""
    merged: Dict[str, CellValue] = {}
    for col in left_columns:
        merged[f"{left_prefix}.{col}"] = to_cell_value(left_row.get(col)) if left_row is not None else None
    for col in right_columns:
        merged[f"{right_prefix}.{col}"] = to_cell_value(right_row.get(col)) if right_row is not None else None
    return merged
