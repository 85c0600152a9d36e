"""Decoding requests from the kernel and CPU and building the replies."""

from __future__ import annotations

from dataclasses import astuple, dataclass
from typing import List, Optional, Sequence, Tuple

from memoria.models import Context, Registers
from memoria.protocol import OpCode, Packet, pack_uint32, unpack_uint32

_NO_VALUE = 0xFFFFFFFF
_CONTEXT_FIELDS = 13


@dataclass(frozen=True)
class CreateProcessRequest:
    """The kernel asks for a process of ``size`` bytes."""

    pid: int
    size: int


@dataclass(frozen=True)
class CreateThreadRequest:
    """The kernel asks to load ``filename`` as a thread."""

    pid: int
    tid: int
    filename: str


@dataclass(frozen=True)
class InstructionRequest:
    """The CPU asks for the instruction at ``program_counter``."""

    pid: int
    tid: int
    program_counter: int


@dataclass(frozen=True)
class MemoryAccessRequest:
    """The CPU reads or writes a word at a physical address."""

    pid: int
    tid: int
    address: int
    size: int = 4
    value: int = 0


def _item(values: Sequence[bytes], index: int) -> bytes:
    if index >= len(values):
        raise ValueError(f"message has {len(values)} items, item {index} is missing")
    return values[index]


def _uint(values: Sequence[bytes], index: int) -> int:
    return unpack_uint32(_item(values, index))


def _string(values: Sequence[bytes], index: int) -> str:
    return _item(values, index).split(b"\0", 1)[0].decode("utf-8")


def decode_create_process(values: Sequence[bytes]) -> CreateProcessRequest:
    """Decode a process-creation request: pid and size."""
    return CreateProcessRequest(pid=_uint(values, 0), size=_uint(values, 1))


def decode_create_thread(values: Sequence[bytes]) -> CreateThreadRequest:
    """Decode a thread-creation request: pid, tid and pseudocode file name."""
    return CreateThreadRequest(
        pid=_uint(values, 0), tid=_uint(values, 1), filename=_string(values, 2)
    )


def decode_pid(values: Sequence[bytes]) -> int:
    """Decode a message whose first item is a pid."""
    return _uint(values, 0)


def decode_pid_tid(values: Sequence[bytes]) -> Tuple[int, int]:
    """Decode a message whose first two items are a pid and a tid."""
    return _uint(values, 0), _uint(values, 1)


def decode_context(values: Sequence[bytes]) -> Context:
    """Decode pid, tid, the nine registers, base and limit."""
    numbers = [_uint(values, index) for index in range(_CONTEXT_FIELDS)]
    return Context(
        pid=numbers[0],
        tid=numbers[1],
        registers=Registers(*numbers[2:11]),
        base=numbers[11],
        limit=numbers[12],
    )


def decode_instruction_request(values: Sequence[bytes]) -> InstructionRequest:
    """Decode pid, tid and program counter."""
    return InstructionRequest(
        pid=_uint(values, 0), tid=_uint(values, 1), program_counter=_uint(values, 2)
    )


def decode_read_request(values: Sequence[bytes]) -> MemoryAccessRequest:
    """Decode pid, tid and the physical address to read."""
    return MemoryAccessRequest(
        pid=_uint(values, 0), tid=_uint(values, 1), address=_uint(values, 2)
    )


def decode_write_request(values: Sequence[bytes]) -> MemoryAccessRequest:
    """Decode pid, tid, the physical address and the value to write."""
    return MemoryAccessRequest(
        pid=_uint(values, 0),
        tid=_uint(values, 1),
        address=_uint(values, 2),
        value=_uint(values, 3),
    )


def _packet(code: int, *numbers: int) -> Packet:
    packet = Packet(int(code))
    for number in numbers:
        packet.add_uint32(number)
    return packet


def create_process_reply(pid: int, code: int) -> Packet:
    """Answer to a process-creation request."""
    return _packet(code, pid)


def create_thread_reply(pid: int, tid: int, code: int) -> Packet:
    """Answer to a thread-creation request."""
    return _packet(code, pid, tid)


def finish_process_reply(pid: int, code: int) -> Packet:
    """Answer to a process-finishing request."""
    return _packet(code, pid)


def finish_thread_reply(pid: int, tid: int, code: int) -> Packet:
    """Answer to a thread-finishing request."""
    return _packet(code, pid, tid)


def dump_confirmation(code: int) -> Packet:
    """Tell the kernel how a memory dump went."""
    return _packet(code, OpCode.PEDIDO_MEMORY_DUMP)


def context_reply(context: Context) -> Packet:
    """Send a thread's context to the CPU."""
    return _packet(
        OpCode.SOLICITUD_CONTEXTO_RTA,
        context.pid,
        context.tid,
        *astuple(context.registers),
        context.base,
        context.limit,
    )


def instruction_reply(instruction: str) -> Packet:
    """Send an instruction to the CPU as a null-terminated string."""
    return Packet(OpCode.SOLICITUD_INSTRUCCION_RTA).add(
        instruction.encode("utf-8") + b"\0"
    )


def read_reply(pid: int, value: int, code: int) -> Optional[Packet]:
    """Answer to a read: pid, the size read and the value.

    A value of 0xFFFFFFFF is the no-value marker; then nothing is sent and
    None is returned.
    """
    if value & 0xFFFFFFFF == _NO_VALUE:
        return None
    return _packet(code, pid, 4, value)


def write_reply(pid: int, code: int) -> Packet:
    """Answer to a write."""
    return _packet(code, pid)


def update_context_reply(context: Context, code: int) -> Packet:
    """Answer to a context update."""
    return _packet(code, context.pid, context.tid)


def dump_creation(filename: str, content: bytes) -> Packet:
    """Ask the file system to store a dump: name, content size and content."""
    data = bytes(content)
    packet = Packet(OpCode.CREACION_DUMP)
    packet.add(filename.encode("utf-8") + b"\0")
    packet.add(pack_uint32(len(data)))
    packet.add(data)
    return packet


def payload_items(packet: Packet) -> List[bytes]:
    """The items of an outgoing packet, in order."""
    from memoria.protocol import parse_payload

    return parse_payload(bytes(packet.payload))