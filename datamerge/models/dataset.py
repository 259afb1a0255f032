from __future__ import annotations

import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import petl as etl

from datamerge.errors import DataMergeUserError
from datamerge.join import collect_columns


@dataclass(frozen=True)
class Dataset:
    """Rows fetched earlier (typically a query result) plus optional display metadata.

    ``label`` and ``connection_id`` are only used for titles and messages; they never
    affect how rows are matched. Rows may carry different columns from one another.
    """
    rows: Sequence[Mapping[str, Any]]
    label: Optional[str] = None
    connection_id: Optional[str] = None

    # --- preview limits ---
    preview_rows: int = 5
    preview_max_chars: int = 6_000  # prevent huge terminal spam

    def __post_init__(self) -> None:
        if isinstance(self.rows, (str, bytes, Mapping)) or not isinstance(self.rows, Sequence):
            raise DataMergeUserError(
                "E_DATASET_ROWS",
                f"Dataset rows must be a list of mappings, got {type(self.rows).__name__}.",
                hint="Example: Dataset([{'id': 1, 'name': 'a'}, {'id': 2, 'name': 'b'}])",
            )
        bad = [i for i, r in enumerate(self.rows) if not isinstance(r, Mapping)]
        if bad:
            raise DataMergeUserError(
                "E_DATASET_ROWS",
                f"Dataset row #{bad[0]} is not a mapping ({len(bad)} bad row(s) in total).",
                hint="Each row must map column names to values, e.g. {'id': 1}.",
            )
        for name in ("label", "connection_id"):
            v = getattr(self, name)
            if v is not None and not isinstance(v, str):
                raise DataMergeUserError(
                    "E_DATASET_LABEL",
                    f"Dataset {name} must be a string when provided.",
                    hint="Example: Dataset(rows, label='users_db', connection_id='conn-1')",
                )
        # Rows are copied; later edits to the caller's dicts do not show through.
        frozen: Tuple[Dict[str, Any], ...] = tuple(dict(r) for r in self.rows)
        object.__setattr__(self, "rows", frozen)

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def columns(self) -> List[str]:
        return collect_columns(self.rows)

    def has_column(self, name: str) -> bool:
        """True if at least one row carries ``name`` (even with a null value)."""
        return any(name in row for row in self.rows)

    def display_label(self, default: str) -> str:
        return self.label or self.connection_id or default

    # ---------- PETL interop ----------
    def table(self):
        """Return the rows as a PETL table; rows lacking a column read as None."""
        return etl.fromdicts(self.rows, header=self.columns)

    @classmethod
    def from_table(cls, table, *, label: Optional[str] = None, connection_id: Optional[str] = None) -> "Dataset":
        try:
            rows = [dict(r) for r in etl.dicts(table)]
        except Exception as e:
            raise DataMergeUserError(
                "E_DATASET_READ",
                f"Could not read rows from table: {type(e).__name__}: {e}",
                hint="Pass a PETL table (header row first) or a list of row mappings.",
            ) from e
        return cls(rows, label=label, connection_id=connection_id)

    @classmethod
    def from_csv(
        cls,
        path: str,
        *,
        label: Optional[str] = None,
        connection_id: Optional[str] = None,
        **options: Any,
    ) -> "Dataset":
        """Load every row of a CSV file. Values stay strings; numeric text still joins with numbers."""
        path = str(path)
        if not os.path.isfile(path):
            raise DataMergeUserError(
                "E_DATASET_NOT_FOUND",
                f"CSV file not found: '{path}'.",
                hint="Check the path, or pass rows directly with Dataset([...]).",
            )
        return cls.from_table(etl.fromcsv(path, **options), label=label, connection_id=connection_id)

    # ---------- Peepholes / inspection ----------
    def _preview_str(self) -> str:
        """
        Bounded preview string. Shows at most preview_rows rows.
        """
        if not self.rows:
            return "(no rows)"
        s = str(etl.look(self.table(), limit=self.preview_rows))
        if len(s) > self.preview_max_chars:
            s = s[: self.preview_max_chars] + "\n… (truncated)"
        return s

    def __str__(self) -> str:
        hdr = f'Dataset("{self.display_label("unlabeled")}")  rows={len(self.rows)}'
        if self.connection_id:
            hdr += f"  connection={self.connection_id}"
        return hdr + "\nPreview:\n" + self._preview_str()
