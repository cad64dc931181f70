"""Protocol frame factories and their discovery."""

from __future__ import annotations

import abc
import inspect
from typing import Any, ClassVar, Iterator

from .data_frame import DataFrame

__all__ = ["FrameFactory", "NullProtocol", "discover_factories"]


class FrameFactory(abc.ABC):
    """Turns a stream of received bytes into data frames for one protocol."""

    _registry: ClassVar[list[type[FrameFactory]]] = []

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        FrameFactory._registry.append(cls)

    @abc.abstractmethod
    def push_bytes(self, data: bytes) -> None:
        """Feed newly received bytes to the framer."""

    @abc.abstractmethod
    def is_frame_ready(self) -> bool:
        """Whether a complete frame can be taken with :meth:`next_frame`."""

    @abc.abstractmethod
    def next_frame(self) -> DataFrame:
        """Take the next complete frame."""

    @abc.abstractmethod
    def status(self) -> str:
        """A one-line summary of the framer's counters."""

    @abc.abstractmethod
    def protocol_name(self) -> str:
        """The name under which the protocol is offered to the user."""

    def frames(self) -> Iterator[DataFrame]:
        """Yield every frame that is ready."""
        while self.is_frame_ready():
            yield self.next_frame()


class NullProtocol(FrameFactory):
    """A protocol that discards all bytes and never produces a frame."""

    def __init__(self) -> None:
        self._buffer = bytearray()
        self._frame_count = 0
        self._bytes_received = 0
        self._bytes_framed = 0

    def push_bytes(self, data: bytes) -> None:
        """Discard the bytes."""

    def is_frame_ready(self) -> bool:
        return False

    def next_frame(self) -> DataFrame:
        raise LookupError("no frame is ready")

    def status(self) -> str:
        buffered = len(self._buffer)
        discarded = self._bytes_received - self._bytes_framed - buffered
        return (
            f"BytesRxed={self._bytes_received}, BytesFramed={self._bytes_framed}, "
            f"FrameCount={self._frame_count}, BytesBuffered={buffered}, "
            f"BytesDiscarded={discarded}"
        )

    def protocol_name(self) -> str:
        return "Test Plugin"


def _concrete_subclasses() -> Iterator[type[FrameFactory]]:
    seen: set[type] = set()
    for cls in list(FrameFactory._registry):
        if cls in seen:
            continue
        seen.add(cls)
        if not inspect.isabstract(cls):
            yield cls


def discover_factories() -> dict[str, FrameFactory]:
    """Return the available protocols by name.

    Every concrete :class:`FrameFactory` subclass defined in the running
    program is instantiated with no arguments; ones that fail to construct
    are skipped. The built-in :class:`NullProtocol` is always present.
    """
    found: list[FrameFactory] = [NullProtocol()]
    for cls in _concrete_subclasses():
        if cls is NullProtocol:
            continue
        try:
            found.append(cls())
        except Exception:
            continue
    factories: dict[str, FrameFactory] = {}
    for factory in found:
        try:
            name = factory.protocol_name()
        except Exception:
            continue
        factories.setdefault(name, factory)
    return factories