# pahsda

A protocol analyzer for structured data frames. Bytes come in from a serial
port, a TCP connection, or a binary capture file replayed over a chosen
number of seconds. A protocol factory cuts the byte stream into frames.
Frames whose sorting fields match are merged into one row of a table, so a
changing value updates an existing row instead of adding a new one, and the
bytes that changed can be highlighted.

## Installing

```
pip install .
```

Serial support uses `pyserial`, which is installed with the package.

## The `pahsda` command

```
pahsda --help
```

The command selects a protocol, opens one data source, and prints the frame
table as plain text every time it changes. The protocol's status line is
printed to standard error about once a second.

Options:

- `--list-protocols`: print the names of the available protocols and exit.
- `--protocol NAME`: protocol to decode with (default: the first available).
- `--file PATH`: replay a binary file; `--seconds N` (1 to 7200, default 120)
  is how long the replay takes. The command ends when the replay is done.
- `--tcp HOST:PORT`: read from a TCP server.
- `--serial PORT`: read from a serial port or pyserial URL, with `--baud`
  (default 9600), `--data-bits` (5–8, default 8), `--parity` (`N`, `E`, `O`,
  `S`, `M`), `--stop-bits` (1, 1.5, 2) and `--flow` (`none`, `hardware`,
  `software`).
- `--injector-port N` (default 30003) and `--no-injector`: see below.

Exactly one of `--file`, `--tcp` or `--serial` is required. Stop the command
with Ctrl-C.

### The injector

Unless `--no-injector` is given, the command listens on all interfaces on
the injector port. It serves one client at a time; a new connection replaces
the old one. Bytes the client sends are written to the open data source and
also fed to the protocol, so they show up in the table. A replayed file
accepts no writes, so there the bytes only go to the protocol.

## Using it from Python

### Frames and the frame table

Frames are built from numbered fields. The sorting indexes decide which
fields identify a frame, and so which frames are merged into one row:

```python
from datetime import datetime

from pahsda.data_frame import DataFrame
from pahsda.frame_table import FrameTable

frame = DataFrame(datetime.now())
frame.add_field(0, "Message id", "ID")
frame.add_field(1, "Payload", "DATA")
frame.update_field_value(0, b"\x01")
frame.update_field_value(1, b"\x10\x20\x30")
frame.set_sorting_indexes([0])

table = FrameTable()
table.add_frame(frame)
print(table.headers())        # ['ID', 'DATA']
print(table.render())
print(table.cell_value(0, 1))  # '10 20 30'
print(table.copy_cells([(0, 0, 0, 1)]))  # '01,10 20 30\n'
```

Using a field index the frame does not have raises `FieldError`. Frames
compare with `<`, `==` and the other operators on their sorting fields only.
`FrameTable.add_frame` keeps rows in that order and returns the row the frame
went to; a frame equal to an existing row is merged into it with
`DataFrame.update_from`. `copy_cells` takes `(top, left, bottom, right)`
selections and returns the selected values as comma-separated lines.

### Highlighting changes

Each field value is a `FrameDataField`. With a highlight duration set, bytes
that change are marked for that many ticks in the rich (HTML) string:

```python
frame.set_highlighting([1], 4)
frame.update_field_value(1, b"\x10\x21\x30")
print(frame.rich_string(1))   # the changed byte carries class 'fdf4'

field = frame.field(1)
while field.tick():           # one tick fades every highlight by one step
    pass
```

Call `tick()` every `TICK_INTERVAL_MS` (500 ms) while `timer_active` is true.
`bind_label(callback)` attaches a display callback that receives the rich
string on every change. `DataFrame.color_field` colours a field permanently,
and `DataFrame.set_field_display_ascii` shows it as readable text instead of
hex.

### Protocols

A protocol is a subclass of `pahsda.protocol.FrameFactory` implementing
`push_bytes`, `is_frame_ready`, `next_frame`, `status` and `protocol_name`;
`frames()` yields every frame that is ready. `discover_factories()` returns
one instance of every concrete subclass defined in the running program, keyed
by protocol name, and always includes the built-in `NullProtocol`
("Test Plugin").

### Sessions

`TrafficSession` ties a protocol to a data source and a `FrameTable`:

```python
from pahsda.protocol import discover_factories
from pahsda.session import TrafficSession

session = TrafficSession(discover_factories())
session.select_protocol("Test Plugin")
session.open_file("capture.bin", 120)
session.poll()
print(session.status())
session.close()
```

`open_tcp("host:port")` and `open_serial(port, settings)` open the other
kinds of source. `poll()` reads what is ready, frames it and returns the
table rows touched; `inject(data)` writes to the source and feeds the
protocol. Failures raise `SessionError`. `InjectorServer(session, host, port)`
runs the injector with `serve_forever()` until `shutdown()`.

### Replaying a file and serial ports

`pahsda.timed_file.TimedFileReader` makes a file's bytes available linearly
over time:

```python
from pahsda.timed_file import TimedFileReader

with TimedFileReader("capture.bin") as reader:
    reader.set_time_to_read(10)
    reader.start()
    chunk = reader.read(reader.bytes_available())
```

`pahsda.serial_config` offers `SerialSettings` (also built from list
positions with `SerialSettings.from_indexes`), `SerialSettings.open(port)`,
`list_ports()` and `describe_port(name, ports)`.

## What it does not do

- There is no graphical window. The command prints a plain-text table; the
  coloured highlighting exists only as the rich strings described above.
- Protocols are not loaded from separate files. The only protocol that ships
  with the package is `NullProtocol`, which discards every byte and never
  produces a frame, so the `pahsda` command on its own shows no frames.
  Decoding a real protocol means defining a `FrameFactory` subclass in a
  program that uses the package.

## Tests

```
pip install .[test]
pytest
```