from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Sequence

import petl as etl

from datamerge.keys import CellValue


@dataclass(frozen=True)
class MergeStats:
    left_rows: int = 0
    right_rows: int = 0
    matched_pairs: int = 0
    unmatched_left: int = 0
    unmatched_right: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "leftRows": self.left_rows,
            "rightRows": self.right_rows,
            "matchedPairs": self.matched_pairs,
            "unmatchedLeft": self.unmatched_left,
            "unmatchedRight": self.unmatched_right,
        }


class Packaged(NamedTuple):
    rows: List[List[CellValue]]
    row_count: int
    total_row_count: int
    truncated: bool


def package(merged_rows: Sequence[Mapping[str, CellValue]], columns: Sequence[str], max_rows: int) -> Packaged:
    """Cut merged rows down to the display cap and align them to ``columns``.

    The total is taken before truncation, so callers can report how much was hidden.
    """
    total = len(merged_rows)
    rendered = [[row.get(col) for col in columns] for row in merged_rows[:max_rows]]
    return Packaged(rendered, len(rendered), total, total > len(rendered))


@dataclass(frozen=True)
class MergeResult:
    """Outcome of one merge: the rendered table, its metadata and the match statistics.

    On failure ``error`` holds a readable message, the table is empty and ``stats`` only
    carries the raw input row counts.
    """
    title: str
    merge_type: str
    left_label: str
    right_label: str
    left_key: str
    right_key: str
    left_connection_id: Optional[str] = None
    right_connection_id: Optional[str] = None
    columns: List[str] = field(default_factory=list)
    rows: List[List[CellValue]] = field(default_factory=list)
    row_count: int = 0
    total_row_count: int = 0
    truncated: bool = False
    stats: MergeStats = field(default_factory=MergeStats)
    error: Optional[str] = None
    error_code: Optional[str] = None

    # --- preview limits ---
    preview_rows: int = 10
    preview_max_chars: int = 6_000

    @property
    def ok(self) -> bool:
        return self.error is None

    def table(self):
        """The rendered rows as a PETL table (header first)."""
        return etl.wrap([list(self.columns)] + [list(r) for r in self.rows])

    def to_dict(self) -> Dict[str, Any]:
        """Render payload with the tool's wire field names."""
        return {
            "title": self.title,
            "mergeType": self.merge_type,
            "leftLabel": self.left_label,
            "rightLabel": self.right_label,
            "leftConnectionId": self.left_connection_id,
            "rightConnectionId": self.right_connection_id,
            "leftKey": self.left_key,
            "rightKey": self.right_key,
            "columns": list(self.columns),
            "rows": [list(r) for r in self.rows],
            "rowCount": self.row_count,
            "totalRowCount": self.total_row_count,
            "truncated": self.truncated,
            "stats": self.stats.to_dict(),
            "error": self.error,
        }

    def _preview_str(self) -> str:
        s = str(etl.look(self.table(), limit=self.preview_rows))
        if len(s) > self.preview_max_chars:
            s = s[: self.preview_max_chars] + "\n… (truncated)"
        return s

    def __str__(self) -> str:
        hdr = (
            f"{self.title}  {self.merge_type.upper()}  "
            f"{self.left_label}.{self.left_key}  {self.right_label}.{self.right_key}"
        )
        if self.error is not None:
            return hdr + f"\nMerge Error: {self.error}"
        footer = (
            f"{self.total_row_count} merged rows  matched: {self.stats.matched_pairs}  "
            f"unmatched-left: {self.stats.unmatched_left}  unmatched-right: {self.stats.unmatched_right}"
        )
        if self.truncated:
            footer += "  render truncated"
        if not self.columns:
            return hdr + "\n" + footer
        return hdr + "\n" + self._preview_str() + "\n" + footer
