# memoria

Building blocks for the memory module of a small teaching operating system.
The package places processes in user memory with fixed or dynamic
partitions. It keeps a table of processes, their threads and the threads'
saved registers. It also encodes and decodes the packets that the memory
module exchanges with the CPU, kernel and file-system modules.

## Modules

- `memoria.config` reads the configuration file. `load_config(path)` and
  `MemoryConfig.from_file(path)` return a frozen `MemoryConfig`. They raise
  `ConfigError` if the file cannot be read, a key is missing, or a value is
  invalid. `parse_properties` and `has_all_properties` are available on
  their own. `Scheme` (`FIJAS`, `DINAMICAS`) and `FitAlgorithm` (`FIRST`,
  `BEST`, `WORST`) name the allowed values.
- `memoria.models` holds `Registers`, `Thread`, `Process`, `Context` and
  `ProcessTable`. `ProcessTable` is a thread-safe table of loaded processes.
  It adds and removes processes and threads, copies and stores contexts,
  finds the process that owns an address, and returns a thread's
  instruction at a program counter. Failed lookups raise `ProcessNotFound`
  or `ThreadNotFound`.
- `memoria.instructions`: `read_instructions(directory, filename)` loads a
  pseudocode file, one instruction per line. `parse_instructions` does the
  same for any iterable of lines.
- `memoria.fixed`: `FixedPartitions` holds one process per block. The block
  sizes come from `PARTICIONES`. `choose_block` applies the fit algorithm,
  `base_of` gives a block's start address, and `allocate` and `release`
  place and free processes. If no block fits, `NoSpaceError` is raised.
  `round_up_to_multiple` is a small helper that comes with it.
- `memoria.dynamic`: `DynamicPartitions` splits free space on allocation.
  On release it merges a freed `Partition` with its free neighbours.
- `memoria.protocol` defines the wire format. Each message is an `OpCode`
  (int32), then the payload size, then length-prefixed items. All integers
  are little endian. `Packet` builds a message and `Buffer` is a FIFO of
  items. On a socket, `recv_operation` and `recv_packet` read a message
  back; `recv_operation` raises `ConnectionClosed` if the peer is gone.
  `start_server`, `accept_client` and `connect` open TCP sockets.
- `memoria.messages` decodes the kernel and CPU requests, such as
  `decode_create_process`, `decode_context` and `decode_write_request`. It
  also builds the matching replies as `Packet`s, such as
  `create_process_reply`, `context_reply`, `read_reply` and
  `dump_creation`.

## Example

```python
from memoria.config import FitAlgorithm
from memoria.dynamic import DynamicPartitions
from memoria.fixed import FixedPartitions

dynamic = DynamicPartitions(1024, FitAlgorithm.FIRST)
process = dynamic.allocate(1, 64)        # base 0, limit 64
dynamic.release(1)                        # back to one free 1024-byte partition

fixed = FixedPartitions([32, 16, 64], FitAlgorithm.BEST)
process = fixed.allocate(1, 10)           # block 1: base 32, limit 48
```

```python
from memoria.messages import create_process_reply
from memoria.protocol import OpCode, parse_payload

packet = create_process_reply(7, OpCode.INICIAR_PROCESO_RTA_OK)
wire = packet.serialize()
items = parse_payload(bytes(packet.payload))   # [b"\x07\x00\x00\x00"]
```

## Configuration file

The configuration file holds `KEY=VALUE` lines. Blank lines and lines
starting with `#` are ignored.

```
PUERTO_ESCUCHA=8002
IP_FILESYSTEM=127.0.0.1
PUERTO_FILESYSTEM=8003
TAM_MEMORIA=1024
PATH_INSTRUCCIONES=/home/user/scripts
RETARDO_RESPUESTA=100
ESQUEMA=DINAMICAS
ALGORITMO_BUSQUEDA=FIRST
PARTICIONES=[32,16,64,128,256,512]
LOG_LEVEL=TRACE
```

Every key must be present. `PARTICIONES` must be a bracketed list of
integers. `LOG_LEVEL` is one of `TRACE`, `DEBUG`, `INFO`, `WARNING` or
`ERROR`. `RETARDO_RESPUESTA` is in milliseconds.
`MemoryConfig.response_delay_seconds` gives the same delay in seconds.

## What it does not do

The package has no command and no network server. It does not accept CPU
or kernel connections and does not dispatch their requests. It also does
not hold the bytes of user memory: the partition classes only track where
each process lives. As a result, nothing here reads or writes words in
memory, produces memory dumps, or sends dumps to a file system. The
protocol and message helpers give a server what it needs to do these
things, but that server is not included.

## Tests

```
pip install .[test]
pytest
```