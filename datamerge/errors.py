from __future__ import annotations

from typing import Optional, Sequence, Tuple


class DataMergeUserError(Exception):
    """A merge request problem the caller can fix.

    ``code`` is a stable ``E_*`` identifier, ``message`` is what the tool envelope shows,
    and ``hint`` is an optional suggestion appended when the error is printed.
    """

    def __init__(self, code: str, message: str, *, hint: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.hint = hint

    def __str__(self) -> str:
        if self.hint:
            return f"[{self.code}] {self.message}\nHint: {self.hint}"
        return f"[{self.code}] {self.message}"


class MissingJoinKeyError(DataMergeUserError):
    """A join key column that appears on no row of its dataset.

    ``missing`` holds ``(param, column)`` pairs in left-then-right order,
    e.g. ``(("rightKey", "id"),)``.
    """

    def __init__(self, missing: Sequence[Tuple[str, str]]):
        self.missing: Tuple[Tuple[str, str], ...] = tuple(missing)
        super().__init__(
            "E_MERGE_MISSING_KEY",
            "Missing join key(s): " + ", ".join(f'{param} "{column}"' for param, column in self.missing),
            hint="The key column must appear on at least one row of its dataset. Check spelling/case.",
        )

    @property
    def sides(self) -> Tuple[str, ...]:
        return tuple("left" if param == "leftKey" else "right" for param, _ in self.missing)
