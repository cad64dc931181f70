import socket
import threading
import time
from unittest.mock import patch

import pytest

from pahsda.data_frame import DataFrame
from pahsda.protocol import FrameFactory, NullProtocol
from pahsda.session import (
    InjectorServer,
    SessionError,
    TrafficSession,
    main,
    parse_server_address,
)
from pahsda.serial_config import SerialSettings


class PairProtocol(FrameFactory):
    """Frames every two bytes: an id byte (sorted on) and a value byte."""

    def __init__(self):
        self._buffer = bytearray()
        self._ready = []
        self.count = 0

    def push_bytes(self, data):
        self._buffer.extend(data)
        while len(self._buffer) >= 2:
            chunk = bytes(self._buffer[:2])
            del self._buffer[:2]
            frame = DataFrame()
            frame.add_field(0, "Identifier", "ID")
            frame.add_field(1, "Value", "VAL")
            frame.update_field_value(0, chunk[:1])
            frame.update_field_value(1, chunk[1:])
            frame.set_sorting_indexes([0])
            self._ready.append(frame)
            self.count += 1

    def is_frame_ready(self):
        return bool(self._ready)

    def next_frame(self):
        return self._ready.pop(0)

    def status(self):
        return f"frames={self.count}"

    def protocol_name(self):
        return "Pairs"


def _wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def session():
    factories = {"Pairs": PairProtocol(), "Test Plugin": NullProtocol()}
    s = TrafficSession(factories)
    yield s
    s.close()


def test_parse_server_address_default_value():
    assert parse_server_address("127.0.0.1:23") == ("127.0.0.1", 23)


@pytest.mark.parametrize("text", ["localhost", "host:abc", "host:70000", "host:-1", "host:"])
def test_parse_server_address_rejects_invalid(text):
    with pytest.raises(ValueError):
        parse_server_address(text)


def test_select_unknown_protocol_clears_selection(session):
    session.select_protocol("Pairs")
    with pytest.raises(SessionError):
        session.select_protocol("missing")
    assert session.protocol is None
    assert session.status() == ""


def test_null_protocol_status_format():
    s = TrafficSession({"Test Plugin": NullProtocol()})
    s.select_protocol("Test Plugin")
    assert s.status() == (
        "BytesRxed=0, BytesFramed=0, FrameCount=0, BytesBuffered=0, BytesDiscarded=0"
    )


def test_open_without_protocol_raises(session, tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"\x01\x02")
    with pytest.raises(SessionError):
        session.open_file(path, 10)
    with pytest.raises(SessionError):
        session.open_serial("loop://", SerialSettings())
    assert session.is_open is False


def test_open_missing_file_raises(session, tmp_path):
    session.select_protocol("Pairs")
    with pytest.raises(SessionError):
        session.open_file(tmp_path / "absent.bin", 10)
    assert session.is_open is False


def test_inject_without_interface_raises(session):
    session.select_protocol("Pairs")
    with pytest.raises(SessionError):
        session.inject(b"\x01\x02")


def test_file_replay_over_time(session, tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"\x02\xbb\x01\xaa")
    now = [0.0]
    session.select_protocol("Pairs")
    with patch("time.monotonic", lambda: now[0]):
        session.open_file(path, 10)

    assert session.poll() == []
    assert len(session.table) == 0

    now[0] = 5.0
    assert session.poll() == [0]
    assert session.finished is False

    now[0] = 10.0
    assert session.finished is True
    session.poll()
    assert [f.value_string(0) for f in session.table] == ["01", "02"]
    assert session.table.cell_value(1, 1) == "bb"


def test_inject_into_file_writes_nothing_but_frames(session, tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"")
    session.select_protocol("Pairs")
    session.open_file(path, 10)
    assert session.inject(b"\x07\x08") == 0
    assert session.poll() == [0]
    assert session.table.cell_value(0, 0) == "07"


def test_serial_loop_merges_equal_frames(session):
    session.select_protocol("Pairs")
    session.open_serial("loop://", SerialSettings())
    assert session.inject(b"\x01\x10") == 2
    session.poll()
    assert session.inject(b"\x01\x20") == 2
    session.poll()
    assert len(session.table) == 1
    assert session.table.cell_value(0, 1) == "20"
    assert session.table.headers() == ["ID", "VAL"]


def test_select_protocol_clears_only_on_change(session):
    session.select_protocol("Pairs")
    session.open_serial("loop://", SerialSettings())
    session.inject(b"\x03\x04")
    session.poll()
    session.select_protocol("Pairs")
    assert len(session.table) == 1
    session.select_protocol("Test Plugin")
    assert len(session.table) == 0


def test_close_returns_status_once(session):
    session.select_protocol("Pairs")
    session.open_serial("loop://", SerialSettings())
    session.inject(b"\x01\x02")
    assert session.close() == session.protocol.status()
    assert session.is_open is False
    assert session.close() is None


def test_tcp_source_reads_and_writes(session):
    server = socket.create_server(("127.0.0.1", 0))
    port = server.getsockname()[1]
    session.select_protocol("Pairs")
    try:
        session.open_tcp(f"127.0.0.1:{port}")
        conn, _ = server.accept()
        conn.settimeout(5)
        conn.sendall(b"\x02\x20\x01\x10")
        assert _wait_for(lambda: session.poll() is not None and len(session.table) >= 2)
        assert [f.value_string(0) for f in session.table] == ["01", "02"]

        assert session.inject(b"\x09\x09") == 2
        assert conn.recv(2) == b"\x09\x09"

        conn.close()
        assert _wait_for(lambda: session.poll() is not None and session.finished)
    finally:
        server.close()


def test_open_tcp_rejects_bad_address(session):
    session.select_protocol("Pairs")
    with pytest.raises(SessionError):
        session.open_tcp("no-port-here")
    assert session.is_open is False


def test_injector_server_injects_client_data(session):
    session.select_protocol("Pairs")
    session.open_serial("loop://", SerialSettings())
    server = InjectorServer(session, "127.0.0.1", 0)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        with socket.create_connection(server.address, timeout=5) as client:
            client.sendall(b"\x05\x06")
            assert _wait_for(lambda: session.poll() is not None and len(session.table) == 1)
        assert session.table.cell_value(0, 0) == "05"
    finally:
        server.shutdown()
        thread.join(5)
    assert not thread.is_alive()


def test_main_lists_protocols(capsys):
    assert main(["--list-protocols"]) == 0
    assert "Test Plugin" in capsys.readouterr().out.splitlines()


def test_main_unknown_protocol(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"\x00")
    assert main(["--protocol", "nope", "--file", str(path), "--no-injector"]) == 2


def test_main_requires_a_source():
    with pytest.raises(SystemExit) as info:
        main(["--protocol", "Test Plugin"])
    assert info.value.code == 2


def test_main_rejects_out_of_range_seconds(tmp_path):
    path = tmp_path / "data.bin"
    path.write_bytes(b"\x00")
    with pytest.raises(SystemExit) as info:
        main(["--file", str(path), "--seconds", "0"])
    assert info.value.code == 2