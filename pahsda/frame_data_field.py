"""A single field of a data frame, with change highlighting for display."""

from __future__ import annotations

import enum
from typing import Callable, Optional

from .helpers import bytes_to_hex_string

__all__ = [
    "BACKGROUND_SHADES",
    "TICK_INTERVAL_MS",
    "FieldOption",
    "FrameDataField",
    "readable_ascii",
]

# Lightest first; a byte fades towards white as its highlight ticks run out.
BACKGROUND_SHADES = (
    "#ffffff",
    "#e6e6ff",
    "#ccccff",
    "#b3b3ff",
    "#9999ff",
    "#8080ff",
    "#6666ff",
    "#4d4dff",
    "#3333ff",
)

TICK_INTERVAL_MS = 500


class FieldOption(enum.Flag):
    NONE = 0
    SET_COLOR = 1
    ASCII_DISPLAY = 2


def readable_ascii(byte: int) -> str:
    """Return a readable rendering of one byte."""
    byte &= 0xFF
    if 20 <= byte <= 0x7E:
        return chr(byte)
    special = {0x09: "\t", 0x0A: "\n", 0x0C: "\f", 0x0D: "\r"}
    if byte in special:
        return special[byte]
    return f"\\x{byte:02x}"


class FrameDataField:
    """Holds the raw bytes of one field and renders them as rich text.

    When a highlight duration is configured, bytes that change are marked for
    that many ticks; call :meth:`tick` every ``TICK_INTERVAL_MS`` while
    :attr:`timer_active` is true.
    """

    def __init__(self) -> None:
        self._data = b""
        self._highlighted: dict[int, int] = {}
        self._interval = 0
        self._style = ""
        self._options = FieldOption.NONE
        self._forced_color = ""
        self._label: Optional[Callable[[str], None]] = None
        self._timer_active = False

    @property
    def raw(self) -> bytes:
        return self._data

    @property
    def highlight_interval(self) -> int:
        return self._interval

    @property
    def highlighted(self) -> dict[int, int]:
        """Byte positions currently highlighted, mapped to their remaining ticks."""
        return dict(self._highlighted)

    @property
    def style(self) -> str:
        return self._style

    @property
    def options(self) -> FieldOption:
        return self._options

    @property
    def forced_color(self) -> str:
        return self._forced_color

    @property
    def timer_active(self) -> bool:
        return self._timer_active

    def _color_index(self, ticks_left: int) -> int:
        if self._interval <= 0:
            return 0
        per_tick = len(BACKGROUND_SHADES) // self._interval
        return max(0, min(ticks_left * per_tick, len(BACKGROUND_SHADES) - 1))

    def set_highlight_duration(self, ticks: int) -> None:
        """Configure how many ticks a changed byte stays highlighted."""
        if ticks < 0:
            raise ValueError("highlight duration must not be negative")
        self._interval = ticks
        lines = ["<style>\n"]
        for i in range(ticks, -1, -1):
            shade = BACKGROUND_SHADES[self._color_index(i)]
            lines.append(f"  .fdf{i} {{ background-color: {shade} }} \n")
        lines.append("</style>")
        self._style = "".join(lines)

    def _refresh_label(self) -> None:
        if self._label is not None:
            self._label(self.rich_string())

    def update_value(self, data: bytes) -> None:
        """Replace the value, highlighting bytes that changed."""
        data = bytes(data)
        if not self._interval:
            self._data = data
            self._refresh_label()
            return

        if self._options & FieldOption.ASCII_DISPLAY:
            if self._data == data:
                return
            self._data = data
            self._refresh_label()
            return

        change_found = False
        for i, (old, new) in enumerate(zip(self._data, data)):
            if old != new:
                self._highlighted[i] = self._interval
                change_found = True

        self._data = data
        self._refresh_label()

        if change_found and not self._timer_active:
            self._timer_active = True

    def set_value(self, data: bytes) -> None:
        """Set the value without any highlighting or display update."""
        self._data = bytes(data)

    def bind_label(self, callback: Callable[[str], None]) -> str:
        """Attach a display callback that receives the rich string on every change.

        On the first binding with highlighting enabled, every byte is highlighted.
        Returns the current rich string, which is also passed to the callback.
        """
        first = self._label is None
        self._label = callback
        if first and self._interval:
            for i in range(len(self._data)):
                self._highlighted[i] = self._interval
            self._timer_active = True
        text = self.rich_string()
        callback(text)
        return text

    def value_string(self) -> str:
        if self._options & FieldOption.ASCII_DISPLAY:
            return "".join(readable_ascii(b) for b in self._data)
        return bytes_to_hex_string(self._data)

    def rich_string(self) -> str:
        parts = [self._style]
        ascii_mode = bool(self._options & FieldOption.ASCII_DISPLAY)
        forced = bool(self._options & FieldOption.SET_COLOR)
        for i, byte in enumerate(self._data):
            if ascii_mode:
                text = readable_ascii(byte)
            else:
                if i:
                    parts.append(" ")
                text = f"{byte:02x}"
            if forced:
                parts.append("<b class='forcemode'>")
            else:
                parts.append(f"<b class='fdf{self._highlighted.get(i, 0)}'>")
            parts.append(text)
            parts.append("</b>")
        return "".join(parts)

    def force_color(self, color: str) -> None:
        """Permanently colour the whole field with the given background colour."""
        self._options |= FieldOption.SET_COLOR
        self._forced_color = color
        self._style = (
            "<style>\n"
            f"  .forcemode {{ background-color: {color} }} \n"
            "</style>"
        )

    def unforce_color(self) -> None:
        self._options &= ~FieldOption.SET_COLOR
        self.set_highlight_duration(self._interval)

    def set_ascii(self, display_as_ascii: bool) -> None:
        if display_as_ascii:
            self._options |= FieldOption.ASCII_DISPLAY
        else:
            self._options &= ~FieldOption.ASCII_DISPLAY

    def tick(self) -> bool:
        """Advance highlight fading by one tick; return whether more ticks are needed."""
        again = False
        for position, remaining in list(self._highlighted.items()):
            if remaining == 1:
                del self._highlighted[position]
            else:
                self._highlighted[position] = remaining - 1
                again = True
        self._refresh_label()
        self._timer_active = again
        return again