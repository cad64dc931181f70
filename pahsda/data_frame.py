"""Frames made of indexed fields, orderable by a chosen subset of those fields."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from .frame_data_field import FrameDataField

__all__ = ["DataFrame", "FieldError"]


class FieldError(LookupError):
    """Raised when a frame is asked to use a field index it does not have."""


def _signed(byte: int) -> int:
    # Field bytes are ordered as signed chars, so 0x80..0xff sort below 0x00.
    return byte - 256 if byte > 127 else byte


class DataFrame:
    """A frame divided into named fields, indexed in display order.

    Frames are compared only on the fields given to :meth:`set_sorting_indexes`,
    in that order, byte by byte over the shorter of the two values.
    """

    __hash__ = None  # type: ignore[assignment]

    def __init__(self, timestamp: Optional[datetime] = None) -> None:
        self._fields: dict[int, str] = {}
        self._abbreviations: dict[int, str] = {}
        self._values: dict[int, FrameDataField] = {}
        self._sorting: list[int] = []
        self._highlighted: list[int] = []
        self._highlight_duration = 0
        self._timestamp = timestamp if timestamp is not None else datetime.now()

    @property
    def timestamp(self) -> datetime:
        return self._timestamp

    @property
    def sorting_indexes(self) -> list[int]:
        return list(self._sorting)

    @property
    def highlighted_fields(self) -> list[int]:
        return list(self._highlighted)

    @property
    def highlight_duration(self) -> int:
        return self._highlight_duration

    def __len__(self) -> int:
        return len(self._fields)

    def field_indexes(self) -> list[int]:
        """All field indexes in ascending order."""
        return sorted(self._fields)

    def field_name(self, index: int) -> str:
        return self._fields.get(index, "")

    def field_abbrev(self, index: int) -> str:
        return self._abbreviations.get(index, "")

    def raw_value(self, index: int) -> bytes:
        """The field's bytes, or empty bytes if the field has no value."""
        value = self._values.get(index)
        return value.raw if value is not None else b""

    def value_string(self, index: int) -> str:
        value = self._values.get(index)
        return value.value_string() if value is not None else ""

    def rich_string(self, index: int) -> str:
        value = self._values.get(index)
        return value.rich_string() if value is not None else ""

    def field(self, index: int) -> FrameDataField:
        """The value object of a field, for binding a display to it."""
        if index not in self._fields:
            raise FieldError(f"frame has no field {index}")
        try:
            return self._values[index]
        except KeyError:
            raise FieldError(f"field {index} has no value yet") from None

    def add_field(self, index: int, name: str, abbrev: str) -> None:
        if index in self._fields:
            raise FieldError(
                f"field index {index} already exists ({self._fields[index]!r})"
            )
        self._fields[index] = name
        self._abbreviations[index] = abbrev

    def update_field_value(self, index: int, raw: bytes) -> None:
        """Set a field's bytes, highlighting changes if the value already existed."""
        if index not in self._fields:
            raise FieldError(f"frame has no field {index}")
        value = self._values.get(index)
        if value is None:
            value = FrameDataField()
            value.set_value(raw)
            self._values[index] = value
        else:
            value.update_value(raw)

    def set_sorting_indexes(self, ordering: Iterable[int]) -> None:
        ordering = list(ordering)
        for index in ordering:
            if index not in self._fields:
                raise FieldError(f"invalid sorting index {index}")
        self._sorting = ordering

    def update_from(self, other: "DataFrame") -> None:
        """Take over the values and timestamp of an equal, newer frame."""
        for index, value in self._values.items():
            value.update_value(other.raw_value(index))
        self._timestamp = other.timestamp

    def _compare(self, other: "DataFrame") -> int:
        for index in self._sorting:
            if index not in self._fields or index not in other._fields:
                raise FieldError(
                    f"comparing frames that do not both have sorting index {index}"
                )
            for left, right in zip(self.raw_value(index), other.raw_value(index)):
                if left != right:
                    return -1 if _signed(left) < _signed(right) else 1
        return 0

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, DataFrame):
            return NotImplemented
        return self._compare(other) < 0

    def __le__(self, other: object) -> bool:
        if not isinstance(other, DataFrame):
            return NotImplemented
        return self._compare(other) <= 0

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DataFrame):
            return NotImplemented
        return self._compare(other) == 0

    def __ne__(self, other: object) -> bool:
        if not isinstance(other, DataFrame):
            return NotImplemented
        return self._compare(other) != 0

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, DataFrame):
            return NotImplemented
        return self._compare(other) >= 0

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, DataFrame):
            return NotImplemented
        return self._compare(other) > 0

    def __str__(self) -> str:
        parts = ["Fields: "]
        for index in self.field_indexes():
            parts.append(
                f"  {index} = {self._fields[index]} = {self.value_string(index)}, "
            )
        return "".join(parts)

    def set_highlighting(self, indexes: Iterable[int], ticks: int) -> None:
        """Highlight changes of the given fields for ``ticks`` ticks; unknown indexes are skipped."""
        self._highlighted = []
        for index in indexes:
            if index not in self._fields:
                continue
            self._highlighted.append(index)
            value = self._values.get(index)
            if value is not None:
                value.set_highlight_duration(ticks)
        self._highlight_duration = ticks

    def color_field(self, index: int, color: str) -> None:
        value = self._values.get(index)
        if value is not None:
            value.force_color(color)

    def set_field_display_ascii(self, index: int, display_as_ascii: bool) -> None:
        value = self._values.get(index)
        if value is not None:
            value.set_ascii(display_as_ascii)