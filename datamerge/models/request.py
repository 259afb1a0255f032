from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from datamerge.errors import DataMergeUserError
from datamerge.models.dataset import Dataset
from datamerge.schema import _dataset_from_ir, _dataset_to_ir, _normalize_ir
from datamerge.util import (
    DEFAULT_LEFT_PREFIX,
    DEFAULT_MAX_ROWS,
    DEFAULT_RIGHT_PREFIX,
    MAX_ROWS_LIMIT,
    MERGE_TYPES,
)


@dataclass(frozen=True)
class MergeRequest:
    """Everything needed to merge two datasets by key.

    Plain row lists are accepted for ``left``/``right`` and wrapped into a Dataset.
    """
    left: Dataset
    right: Dataset
    left_key: str
    right_key: str
    merge_type: str = "inner"
    left_prefix: str = DEFAULT_LEFT_PREFIX
    right_prefix: str = DEFAULT_RIGHT_PREFIX
    max_rows: int = DEFAULT_MAX_ROWS
    title: Optional[str] = None

    def __post_init__(self) -> None:
        for side in ("left", "right"):
            ds = getattr(self, side)
            if isinstance(ds, Dataset):
                continue
            if isinstance(ds, (list, tuple)):
                object.__setattr__(self, side, Dataset(ds))
                continue
            raise DataMergeUserError(
                "E_REQUEST_DATASET",
                f"MergeRequest.{side} must be a Dataset or a list of row mappings.",
                hint=f"Example: MergeRequest({side}=Dataset([{{'id': 1}}]), ...)",
            )

        for name in ("left_key", "right_key"):
            v = getattr(self, name)
            if not isinstance(v, str) or not v:
                raise DataMergeUserError(
                    "E_REQUEST_KEY",
                    f"MergeRequest.{name} must be a non-empty column name string.",
                    hint="Example: left_key='user_id', right_key='id'",
                )

        if self.merge_type not in MERGE_TYPES:
            raise DataMergeUserError(
                "E_REQUEST_MERGE_TYPE",
                f"merge_type must be one of: {', '.join(MERGE_TYPES)} (got {self.merge_type!r}).",
                hint="Use 'full' for a full outer join.",
            )

        for name in ("left_prefix", "right_prefix"):
            v = getattr(self, name)
            if not isinstance(v, str) or not v:
                raise DataMergeUserError(
                    "E_REQUEST_PREFIX",
                    f"MergeRequest.{name} must be a non-empty string.",
                    hint="Example: left_prefix='users', right_prefix='billing'",
                )
        if self.left_prefix == self.right_prefix:
            raise DataMergeUserError(
                "E_REQUEST_PREFIX",
                f"left_prefix and right_prefix must differ (both are {self.left_prefix!r}).",
                hint="Output columns are named '<prefix>.<column>'; equal prefixes would collide.",
            )

        if (
            not isinstance(self.max_rows, int)
            or isinstance(self.max_rows, bool)
            or not 1 <= self.max_rows <= MAX_ROWS_LIMIT
        ):
            raise DataMergeUserError(
                "E_REQUEST_MAX_ROWS",
                f"max_rows must be an integer between 1 and {MAX_ROWS_LIMIT} (got {self.max_rows!r}).",
                hint=f"Default is {DEFAULT_MAX_ROWS}.",
            )

        if self.title is not None and not isinstance(self.title, str):
            raise DataMergeUserError(
                "E_REQUEST_TITLE",
                "MergeRequest.title must be a string when provided.",
            )

    @property
    def left_label(self) -> str:
        return self.left.display_label("left")

    @property
    def right_label(self) -> str:
        return self.right.display_label("right")

    def resolved_title(self) -> str:
        if self.title:
            return self.title
        return (
            f"Merged {self.left_label} ({self.left_key}) {self.merge_type.upper()} "
            f"{self.right_label} ({self.right_key})"
        )

    def __str__(self) -> str:
        return (
            f"MergeRequest({self.left_label}.{self.left_key} {self.merge_type.upper()} "
            f"{self.right_label}.{self.right_key}, rows={len(self.left)}x{len(self.right)}, "
            f"max_rows={self.max_rows})"
        )

    # ---------- IR / YAML ----------
    def to_ir(self) -> Dict[str, Any]:
        """Serialize to the tool input shape (camelCase, YAML/JSON friendly)."""
        d: Dict[str, Any] = {
            "left": _dataset_to_ir(self.left),
            "right": _dataset_to_ir(self.right),
            "leftKey": self.left_key,
            "rightKey": self.right_key,
            "mergeType": self.merge_type,
            "leftPrefix": self.left_prefix,
            "rightPrefix": self.right_prefix,
            "maxRows": self.max_rows,
        }
        if self.title is not None:
            d["title"] = self.title
        return d

    @classmethod
    def from_ir(
        cls, ir: Mapping[str, Any], *, base_dir: Optional[Path] = None, strict: bool = True
    ) -> "MergeRequest":
        """Deserialize a request from IR (dict), filling defaults.

        With ``strict=False`` unknown fields are ignored instead of rejected.
        """
        ir = _normalize_ir(dict(ir) if isinstance(ir, Mapping) else ir, base_dir=base_dir, strict=strict)
        return cls(
            left=_dataset_from_ir(ir["left"], side="left"),
            right=_dataset_from_ir(ir["right"], side="right"),
            left_key=ir.get("leftKey"),
            right_key=ir.get("rightKey"),
            merge_type=ir["mergeType"],
            left_prefix=ir["leftPrefix"],
            right_prefix=ir["rightPrefix"],
            max_rows=ir["maxRows"],
            title=ir["title"],
        )

    def to_yaml(self, path: Optional[Union[str, Path]] = None) -> str:
        """Dump IR to YAML string. If `path` is provided, also write the file."""
        text = yaml.safe_dump(self.to_ir(), sort_keys=False, allow_unicode=True)
        if path is not None:
            Path(path).write_text(text, encoding="utf-8")
        return text

    @classmethod
    def from_yaml(cls, text_or_path: Union[str, Path], *, base_dir: Optional[Path] = None) -> "MergeRequest":
        """Load a request from a YAML string or file path."""
        text: str
        if isinstance(text_or_path, Path):
            base_dir = base_dir or text_or_path.parent
            text = text_or_path.read_text(encoding="utf-8")
        elif "\n" not in text_or_path and Path(text_or_path).suffix in (".yaml", ".yml") \
                and Path(text_or_path).is_file():
            p = Path(text_or_path)
            base_dir = base_dir or p.parent
            text = p.read_text(encoding="utf-8")
        else:
            text = str(text_or_path)
        try:
            ir = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise DataMergeUserError(
                "E_YAML_PARSE",
                f"Failed to parse YAML: {e}",
                hint="Check indentation and quoting.",
            ) from e
        return cls.from_ir(ir, base_dir=base_dir)

    def save_yaml(self, path: Union[str, Path]) -> None:
        """Write YAML IR to a file."""
        self.to_yaml(path)

    @classmethod
    def load_yaml(cls, path: Union[str, Path]) -> "MergeRequest":
        """Load YAML IR from a file."""
        p = Path(path)
        return cls.from_yaml(p.read_text(encoding="utf-8"), base_dir=p.parent)
