"""A capture session that routes bytes from a source through a protocol into a frame table."""

from __future__ import annotations

import argparse
import logging
import os
import selectors
import socket
import sys
import threading
import time
from typing import Mapping, Optional, Protocol

import serial

from .frame_table import FrameTable
from .protocol import FrameFactory, discover_factories
from .serial_config import FlowControl, SerialSettings
from .timed_file import POLL_INTERVAL, TimedFileReader

__all__ = [
    "INJECTOR_PORT",
    "InjectorServer",
    "SessionError",
    "TrafficSession",
    "main",
    "parse_server_address",
]

log = logging.getLogger(__name__)

INJECTOR_PORT = 30003
_CONNECT_TIMEOUT = 10.0
_RECV_SIZE = 65536


class SessionError(RuntimeError):
    """Raised when a session operation cannot be carried out."""


def parse_server_address(text: str) -> tuple[str, int]:
    """Split ``host:port`` into a host name and a port number in 0..65535."""
    host, colon, port_text = text.partition(":")
    if not colon:
        raise ValueError(
            "Invalid Server Address: you must specify server address and port "
            "to connect to (servername:portNum)"
        )
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(
            "Invalid Server Port: you must specify a valid port (servername:portNum)"
        ) from None
    if not 0 <= port <= 65535:
        raise ValueError(
            "Invalid Server Port: you must specify a valid port (servername:portNum)"
        )
    return host, port


class _Source(Protocol):
    def read_available(self) -> bytes: ...

    def write(self, data: bytes) -> int: ...

    @property
    def finished(self) -> bool: ...

    def close(self) -> None: ...


class _FileSource:
    def __init__(self, reader: TimedFileReader) -> None:
        self._reader = reader

    def read_available(self) -> bytes:
        count = self._reader.bytes_available()
        return self._reader.read(count) if count else b""

    def write(self, data: bytes) -> int:
        log.debug("Data file is read-only; %d bytes not written", len(data))
        return 0

    @property
    def finished(self) -> bool:
        return self._reader.is_finished()

    def close(self) -> None:
        self._reader.close()


class _SocketSource:
    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        self._peer_closed = False

    def read_available(self) -> bytes:
        chunks = []
        while not self._peer_closed:
            try:
                chunk = self._sock.recv(_RECV_SIZE)
            except (BlockingIOError, InterruptedError):
                break
            except OSError as exc:
                log.warning("TCP connection error: %s", exc)
                self._peer_closed = True
                break
            if not chunk:
                self._peer_closed = True
                break
            chunks.append(chunk)
        return b"".join(chunks)

    def write(self, data: bytes) -> int:
        try:
            return self._sock.send(data)
        except (BlockingIOError, InterruptedError):
            return 0
        except OSError as exc:
            log.warning("TCP write failed: %s", exc)
            return 0

    @property
    def finished(self) -> bool:
        return self._peer_closed

    def close(self) -> None:
        self._sock.close()


class _SerialSource:
    def __init__(self, port: serial.SerialBase) -> None:
        self._port = port

    def read_available(self) -> bytes:
        count = self._port.in_waiting
        return self._port.read(count) if count else b""

    def write(self, data: bytes) -> int:
        written = self._port.write(data)
        return len(data) if written is None else written

    @property
    def finished(self) -> bool:
        return False

    def close(self) -> None:
        self._port.close()


class TrafficSession:
    """Holds the selected protocol, the open data source and the table of frames."""

    def __init__(self, factories: Optional[Mapping[str, FrameFactory]] = None) -> None:
        self._factories = dict(discover_factories() if factories is None else factories)
        self._protocol: Optional[FrameFactory] = None
        self._source: Optional[_Source] = None
        self._table = FrameTable()
        self._lock = threading.RLock()

    @property
    def factories(self) -> dict[str, FrameFactory]:
        return dict(self._factories)

    @property
    def protocol(self) -> Optional[FrameFactory]:
        return self._protocol

    @property
    def table(self) -> FrameTable:
        return self._table

    @property
    def is_open(self) -> bool:
        return self._source is not None

    @property
    def finished(self) -> bool:
        """True when the open source will deliver no more data."""
        with self._lock:
            return self._source is not None and self._source.finished

    def select_protocol(self, name: str) -> None:
        """Switch to the named protocol, clearing the frames if it changes."""
        with self._lock:
            factory = self._factories.get(name)
            if factory is None:
                self._table.clear()
                self._protocol = None
                raise SessionError(f"Invalid protocol selected: {name!r}")
            if factory is self._protocol:
                log.debug("Selected the same protocol that was already loaded")
                return
            self._table.clear()
            self._protocol = factory
            log.debug("%s", factory.status())

    def _require_protocol(self, what: str) -> None:
        if self._protocol is None:
            raise SessionError(
                f"You must select a protocol first before opening up a {what}"
            )

    def _drop_source(self) -> None:
        if self._source is not None:
            log.debug("Closing the old interface")
            self._source.close()
            self._source = None

    def open_file(self, path: "str | os.PathLike[str]", seconds: int) -> None:
        """Replay a binary file through the protocol over ``seconds`` seconds."""
        with self._lock:
            self._require_protocol("binary data file")
            self._drop_source()
            try:
                reader = TimedFileReader(path)
            except OSError as exc:
                raise SessionError(f"cannot open data file {os.fspath(path)!r}: {exc}") from exc
            try:
                reader.set_time_to_read(seconds)
            except ValueError:
                reader.close()
                raise
            self._table.clear()
            reader.start()
            self._source = _FileSource(reader)

    def open_tcp(self, address: str) -> None:
        """Connect to ``host:port`` and read the protocol's bytes from it."""
        with self._lock:
            self._drop_source()
            try:
                host, port = parse_server_address(address)
            except ValueError as exc:
                raise SessionError(str(exc)) from exc
            self._require_protocol("data connection")
            try:
                sock = socket.create_connection((host, port), timeout=_CONNECT_TIMEOUT)
            except OSError as exc:
                raise SessionError(f"cannot connect to {address}: {exc}") from exc
            sock.setblocking(False)
            self._table.clear()
            self._source = _SocketSource(sock)

    def open_serial(self, port: str, settings: Optional[SerialSettings] = None) -> None:
        """Open a serial port (or pyserial URL) with the given line settings."""
        with self._lock:
            self._drop_source()
            self._require_protocol("data connection")
            settings = settings if settings is not None else SerialSettings()
            try:
                device = settings.open(port)
            except (serial.SerialException, OSError, ValueError) as exc:
                raise SessionError(f"cannot open serial port {port!r}: {exc}") from exc
            self._table.clear()
            source = _SerialSource(device)
            self._source = source
            pending = source.read_available()
            if pending:
                self._protocol.push_bytes(pending)

    def close(self) -> Optional[str]:
        """Close the open source; return the protocol's status, or None if nothing was open."""
        with self._lock:
            if self._source is None:
                return None
            self._drop_source()
            status = self.status()
            log.debug("Status of protocol:\n%s", status)
            return status

    def poll(self) -> list[int]:
        """Read what the source has ready, frame it, and return the table rows touched."""
        with self._lock:
            if self._protocol is None:
                log.warning("Received data, but no protocol configured to receive it")
                return []
            if self._source is None:
                return []
            data = self._source.read_available()
            if data:
                self._protocol.push_bytes(data)
            return [self._table.add_frame(frame) for frame in self._protocol.frames()]

    def inject(self, data: bytes) -> int:
        """Write bytes to the open source and feed them to the protocol; return bytes written."""
        with self._lock:
            if self._source is None:
                raise SessionError("Injector trying to inject data, but no interface up yet")
            data = bytes(data)
            written = self._source.write(data)
            if written == len(data):
                log.debug("Injected %d bytes: %s", written, data.hex(" "))
            else:
                log.debug(
                    "Failed to inject data. Received %d bytes to inject, wrote %d bytes",
                    len(data),
                    written,
                )
            if self._protocol is not None:
                self._protocol.push_bytes(data)
            return written

    def status(self) -> str:
        """The current protocol's status line, or an empty string without a protocol."""
        with self._lock:
            return self._protocol.status() if self._protocol is not None else ""


class InjectorServer:
    """TCP service whose single client's bytes are injected into a session.

    A new connection replaces any existing client.
    """

    def __init__(
        self, session: TrafficSession, host: str = "0.0.0.0", port: int = INJECTOR_PORT
    ) -> None:
        self._session = session
        self._listener = socket.create_server((host, port), backlog=1)
        self._listener.setblocking(False)
        self._wake_r, self._wake_w = socket.socketpair()
        self._wake_r.setblocking(False)
        self._selector = selectors.DefaultSelector()
        self._selector.register(self._listener, selectors.EVENT_READ, "accept")
        self._selector.register(self._wake_r, selectors.EVENT_READ, "wake")
        self._client: Optional[socket.socket] = None
        self._stop = threading.Event()
        self._closed = False

    @property
    def address(self) -> tuple[str, int]:
        host, port = self._listener.getsockname()[:2]
        return host, port

    def serve_forever(self) -> None:
        """Accept clients and inject their data until :meth:`shutdown` is called."""
        try:
            while not self._stop.is_set():
                for key, _ in self._selector.select(timeout=0.5):
                    if key.data == "wake":
                        try:
                            self._wake_r.recv(_RECV_SIZE)
                        except BlockingIOError:
                            pass
                    elif key.data == "accept":
                        self._accept()
                    else:
                        self._receive()
        finally:
            self._close()

    def shutdown(self) -> None:
        """Stop :meth:`serve_forever`; the server's sockets are then closed."""
        self._stop.set()
        try:
            self._wake_w.send(b"\0")
        except OSError:
            pass

    def _accept(self) -> None:
        try:
            conn, peer = self._listener.accept()
        except (BlockingIOError, InterruptedError):
            log.warning("Connection signalled, but no connection pending")
            return
        if self._client is not None:
            log.debug("Dropping connection with existing injector client")
            self._drop_client()
        conn.setblocking(False)
        self._client = conn
        self._selector.register(conn, selectors.EVENT_READ, "client")
        log.debug("Accepted new connection from %s", peer)

    def _receive(self) -> None:
        if self._client is None:
            return
        try:
            data = self._client.recv(_RECV_SIZE)
        except (BlockingIOError, InterruptedError):
            return
        except OSError as exc:
            log.warning("Injector client had an error: %s", exc)
            self._drop_client()
            return
        if not data:
            log.debug("Injector client disconnected")
            self._drop_client()
            return
        try:
            self._session.inject(data)
        except SessionError as exc:
            log.warning("%s", exc)

    def _drop_client(self) -> None:
        if self._client is None:
            return
        try:
            self._selector.unregister(self._client)
        except (KeyError, ValueError):
            pass
        self._client.close()
        self._client = None

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._drop_client()
        self._selector.close()
        self._listener.close()
        self._wake_r.close()
        self._wake_w.close()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pahsda",
        description="Protocol Analyzer Highlighting Structured Data for Analysis",
    )
    parser.add_argument("--list-protocols", action="store_true", help="list protocols and exit")
    parser.add_argument("--protocol", help="protocol to decode with (default: first available)")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--file", help="binary data file to replay")
    source.add_argument("--tcp", metavar="HOST:PORT", help="TCP server to read from")
    source.add_argument("--serial", metavar="PORT", help="serial port or pyserial URL")
    parser.add_argument("--seconds", type=int, default=120, help="time to replay the file over")
    parser.add_argument("--baud", type=int, default=9600)
    parser.add_argument("--data-bits", type=int, choices=(5, 6, 7, 8), default=8)
    parser.add_argument(
        "--parity",
        choices=(
            serial.PARITY_NONE,
            serial.PARITY_EVEN,
            serial.PARITY_ODD,
            serial.PARITY_SPACE,
            serial.PARITY_MARK,
        ),
        default=serial.PARITY_NONE,
    )
    parser.add_argument("--stop-bits", type=float, choices=(1.0, 1.5, 2.0), default=1.0)
    parser.add_argument(
        "--flow", choices=[f.value for f in FlowControl], default=FlowControl.NONE.value
    )
    parser.add_argument("--injector-port", type=int, default=INJECTOR_PORT)
    parser.add_argument("--no-injector", action="store_true", help="do not start the injector")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Run a capture session from the command line, printing the frame table as it changes."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    factories = discover_factories()

    if args.list_protocols:
        for name in factories:
            print(name)
        return 0

    if not (args.file or args.tcp or args.serial):
        parser.error("one of --file, --tcp or --serial is required")
    if not 1 <= args.seconds <= 7200:
        parser.error("--seconds must be between 1 and 7200")

    session = TrafficSession(factories)
    try:
        session.select_protocol(args.protocol or next(iter(factories)))
        if args.file:
            session.open_file(args.file, args.seconds)
        elif args.tcp:
            session.open_tcp(args.tcp)
        else:
            stop_bits = 1 if args.stop_bits == 1.0 else 2 if args.stop_bits == 2.0 else 1.5
            settings = SerialSettings(
                baudrate=args.baud,
                bytesize=args.data_bits,
                parity=args.parity,
                stopbits=stop_bits,
                flow_control=FlowControl(args.flow),
            )
            session.open_serial(args.serial, settings)
    except (SessionError, ValueError) as exc:
        print(f"pahsda: {exc}", file=sys.stderr)
        session.close()
        return 2

    server: Optional[InjectorServer] = None
    thread: Optional[threading.Thread] = None
    if not args.no_injector:
        try:
            server = InjectorServer(session, port=args.injector_port)
        except OSError as exc:
            log.warning("Error listening on port %d: %s", args.injector_port, exc)
        else:
            thread = threading.Thread(target=server.serve_forever, daemon=True)
            thread.start()

    last_status = 0.0
    try:
        while True:
            done = session.finished
            if session.poll():
                print(session.table.render(), flush=True)
                print(flush=True)
            now = time.monotonic()
            if now - last_status >= 1.0:
                status = session.status()
                if status:
                    print(status, file=sys.stderr, flush=True)
                last_status = now
            if done:
                break
            time.sleep(POLL_INTERVAL)
    except KeyboardInterrupt:
        pass
    finally:
        if server is not None:
            server.shutdown()
            if thread is not None:
                thread.join(timeout=2.0)
        session.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())