"""An ordered table of received frames, merging frames that compare equal."""

from __future__ import annotations

from typing import Iterable, Iterator, NamedTuple

from .data_frame import DataFrame

__all__ = ["FrameTable", "SelectionRange"]


class SelectionRange(NamedTuple):
    """A rectangular selection of table cells, inclusive on all sides."""

    top: int
    left: int
    bottom: int
    right: int


class FrameTable:
    """Frames kept in sorted order, one row per distinct frame.

    A new frame equal to one already held updates that row instead of adding
    another. The column headers are taken from the first frame added.
    """

    def __init__(self) -> None:
        self._frames: list[DataFrame] = []
        self._headers: list[str] = []

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[DataFrame]:
        return iter(self._frames)

    def headers(self) -> list[str]:
        """Column headers: the field abbreviations of the first frame."""
        return list(self._headers)

    def add_frame(self, frame: DataFrame) -> int:
        """Insert or merge a frame; return the row it occupies."""
        if not self._frames:
            self._headers = [frame.field_abbrev(i) for i in frame.field_indexes()]
            self._frames.append(frame)
            return 0

        for row, existing in enumerate(self._frames):
            if frame > existing:
                continue
            if frame == existing:
                existing.update_from(frame)
                return row
            self._frames.insert(row, frame)
            return row

        self._frames.append(frame)
        return len(self._frames) - 1

    def clear(self) -> None:
        self._frames.clear()
        self._headers = []

    def cell_value(self, row: int, col: int) -> str:
        """The value string of one cell."""
        if not 0 <= row < len(self._frames):
            raise IndexError(f"row {row} out of range; table has {len(self._frames)} rows")
        frame = self._frames[row]
        indexes = frame.field_indexes()
        if not 0 <= col < len(indexes):
            raise IndexError(f"column {col} out of range")
        return frame.value_string(indexes[col])

    def copy_cells(self, ranges: Iterable[tuple[int, int, int, int]]) -> str:
        """Selected cells as comma-separated lines, one per row touched by a selection."""
        selections = [SelectionRange(*r) for r in ranges]
        lines = []
        for row, frame in enumerate(self._frames):
            columns = [(s.left, s.right) for s in selections if s.top <= row <= s.bottom]
            if not columns:
                continue
            values = [
                frame.value_string(index)
                for col, index in enumerate(frame.field_indexes())
                if any(left <= col <= right for left, right in columns)
            ]
            lines.append(",".join(values) + "\n")
        return "".join(lines)

    def render(self) -> str:
        """The table as aligned plain text: a header line then one line per frame."""
        rows = [self._headers] + [
            [frame.value_string(i) for i in frame.field_indexes()] for frame in self._frames
        ]
        width = max((len(r) for r in rows), default=0)
        widths = [
            max((len(r[c]) for r in rows if c < len(r)), default=0) for c in range(width)
        ]
        lines = [
            "  ".join(cell.ljust(widths[c]) for c, cell in enumerate(r)).rstrip()
            for r in rows
        ]
        return "\n".join(lines)