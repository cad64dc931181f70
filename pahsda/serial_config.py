"""Serial port settings chosen by list position, and port discovery."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Iterable, Sequence, TypeVar

import serial
from serial.tools import list_ports as _list_ports

__all__ = [
    "BAUD_RATES",
    "DATA_BITS",
    "FLOW_CONTROLS",
    "FlowControl",
    "LOCATION_LABEL",
    "MFG_LABEL",
    "PARITIES",
    "STOP_BITS",
    "SerialSettings",
    "baud_rate_for",
    "data_bits_for",
    "describe_port",
    "flow_control_for",
    "list_ports",
    "parity_for",
    "stop_bits_for",
]

log = logging.getLogger(__name__)

LOCATION_LABEL = "Location: "
MFG_LABEL = "Manufacturer: "


class FlowControl(enum.Enum):
    NONE = "none"
    HARDWARE = "hardware"
    SOFTWARE = "software"


BAUD_RATES = (1200, 2400, 4800, 9600, 19200, 38400, 57600, 115200)
DATA_BITS = (serial.FIVEBITS, serial.SIXBITS, serial.SEVENBITS, serial.EIGHTBITS)
PARITIES = (
    serial.PARITY_NONE,
    serial.PARITY_EVEN,
    serial.PARITY_ODD,
    serial.PARITY_SPACE,
    serial.PARITY_MARK,
)
STOP_BITS = (serial.STOPBITS_ONE, serial.STOPBITS_ONE_POINT_FIVE, serial.STOPBITS_TWO)
FLOW_CONTROLS = (FlowControl.NONE, FlowControl.HARDWARE, FlowControl.SOFTWARE)

_T = TypeVar("_T")


def _choose(options: Sequence[_T], index: int, default: _T, what: str) -> _T:
    if 0 <= index < len(options):
        return options[index]
    log.warning("Unknown %s selection %d, using %s", what, index, default)
    return default


def baud_rate_for(index: int) -> int:
    """Baud rate for a position in the baud-rate list; 9600 if out of range."""
    return _choose(BAUD_RATES, index, 9600, "baud rate")


def data_bits_for(index: int) -> int:
    """Data bits for a position in the data-bits list; 8 if out of range."""
    return _choose(DATA_BITS, index, serial.EIGHTBITS, "data bits")


def parity_for(index: int) -> str:
    """Parity for a position in the parity list; none if out of range."""
    return _choose(PARITIES, index, serial.PARITY_NONE, "parity")


def stop_bits_for(index: int) -> float:
    """Stop bits for a position in the stop-bits list; one if out of range."""
    return _choose(STOP_BITS, index, serial.STOPBITS_ONE, "stop bits")


def flow_control_for(index: int) -> FlowControl:
    """Flow control for a position in the flow-control list; none if out of range."""
    return _choose(FLOW_CONTROLS, index, FlowControl.NONE, "flow control")


@dataclass(frozen=True)
class SerialSettings:
    """Line settings used to open a serial port."""

    baudrate: int = 9600
    bytesize: int = serial.EIGHTBITS
    parity: str = serial.PARITY_NONE
    stopbits: float = serial.STOPBITS_ONE
    flow_control: FlowControl = FlowControl.NONE

    @classmethod
    def from_indexes(
        cls, baud: int, data_bits: int, parity: int, stop_bits: int, flow_control: int
    ) -> "SerialSettings":
        """Build settings from positions in the respective option lists."""
        return cls(
            baudrate=baud_rate_for(baud),
            bytesize=data_bits_for(data_bits),
            parity=parity_for(parity),
            stopbits=stop_bits_for(stop_bits),
            flow_control=flow_control_for(flow_control),
        )

    def open(self, port: str) -> serial.SerialBase:
        """Open the named port (or pyserial URL) with these settings."""
        log.debug("Opening serial port %s", port)
        return serial.serial_for_url(
            port,
            baudrate=self.baudrate,
            bytesize=self.bytesize,
            parity=self.parity,
            stopbits=self.stopbits,
            rtscts=self.flow_control is FlowControl.HARDWARE,
            xonxoff=self.flow_control is FlowControl.SOFTWARE,
        )


def list_ports() -> list:
    """The serial ports present on the system."""
    return list(_list_ports.comports())


def describe_port(name: str, ports: Iterable) -> tuple[str, str]:
    """Location and manufacturer labels for the port with the given name.

    Both labels are left without a value when no port matches.
    """
    for info in ports:
        if info.name == name:
            return (
                LOCATION_LABEL + (info.device or ""),
                MFG_LABEL + (info.manufacturer or ""),
            )
    return LOCATION_LABEL, MFG_LABEL