import pytest

from memoria.messages import (
    CreateProcessRequest,
    CreateThreadRequest,
    InstructionRequest,
    MemoryAccessRequest,
    context_reply,
    create_process_reply,
    create_thread_reply,
    decode_context,
    decode_create_process,
    decode_create_thread,
    decode_instruction_request,
    decode_pid,
    decode_pid_tid,
    decode_read_request,
    decode_write_request,
    dump_confirmation,
    dump_creation,
    finish_process_reply,
    finish_thread_reply,
    instruction_reply,
    read_reply,
    update_context_reply,
    write_reply,
)
from memoria.models import Context, Registers
from memoria.protocol import OpCode, pack_uint32, parse_payload


def items(packet):
    return parse_payload(bytes(packet.payload))


def test_decode_create_process():
    values = [pack_uint32(5), pack_uint32(128), b"prog\0"]
    assert decode_create_process(values) == CreateProcessRequest(pid=5, size=128)


def test_decode_create_thread_strips_terminator():
    values = [pack_uint32(2), pack_uint32(1), b"prog.txt\0"]
    assert decode_create_thread(values) == CreateThreadRequest(2, 1, "prog.txt")


def test_decode_pid_and_pid_tid():
    values = [pack_uint32(4), pack_uint32(9)]
    assert decode_pid(values) == 4
    assert decode_pid_tid(values) == (4, 9)


def test_missing_item_raises():
    with pytest.raises(ValueError):
        decode_pid_tid([pack_uint32(1)])


def test_decode_requests():
    values = [pack_uint32(1), pack_uint32(2), pack_uint32(64), pack_uint32(77)]
    assert decode_instruction_request(values) == InstructionRequest(1, 2, 64)
    assert decode_read_request(values) == MemoryAccessRequest(1, 2, 64)
    assert decode_write_request(values) == MemoryAccessRequest(1, 2, 64, value=77)


def test_context_round_trip():
    context = Context(pid=3, tid=1, registers=Registers(*range(1, 10)), base=32, limit=48)
    packet = context_reply(context)
    assert packet.op_code == OpCode.SOLICITUD_CONTEXTO_RTA
    assert decode_context(items(packet)) == context


def test_decode_context_too_short():
    with pytest.raises(ValueError):
        decode_context([pack_uint32(1)] * 12)


def test_create_process_reply_wire_bytes():
    packet = create_process_reply(7, OpCode.INICIAR_PROCESO_RTA_OK)
    assert packet.serialize() == (
        b"\x25\x00\x00\x00" b"\x08\x00\x00\x00" b"\x04\x00\x00\x00" b"\x07\x00\x00\x00"
    )


def test_thread_replies():
    packet = create_thread_reply(1, 2, OpCode.INICIAR_HILO_RTA_OK)
    assert packet.op_code == OpCode.INICIAR_HILO_RTA_OK
    assert items(packet) == [pack_uint32(1), pack_uint32(2)]
    finished = finish_thread_reply(1, 2, OpCode.FINALIZAR_HILO_RTA_ERROR_NO_EXISTE)
    assert items(finished) == [pack_uint32(1), pack_uint32(2)]
    assert finished.op_code == OpCode.FINALIZAR_HILO_RTA_ERROR_NO_EXISTE


def test_finish_process_and_write_replies():
    assert items(finish_process_reply(6, OpCode.FINALIZAR_PROCESO_RTA_OK)) == [pack_uint32(6)]
    reply = write_reply(6, OpCode.WRITE_MEMORIA_RTA_ERROR)
    assert reply.op_code == OpCode.WRITE_MEMORIA_RTA_ERROR
    assert items(reply) == [pack_uint32(6)]


def test_dump_confirmation_carries_request_code():
    packet = dump_confirmation(OpCode.PEDIDO_MEMORY_DUMP_RTA_OK)
    assert packet.op_code == OpCode.PEDIDO_MEMORY_DUMP_RTA_OK
    assert items(packet) == [pack_uint32(OpCode.PEDIDO_MEMORY_DUMP)]


def test_instruction_reply_is_null_terminated():
    packet = instruction_reply("SET AX 1")
    assert items(packet) == [b"SET AX 1\0"]


def test_read_reply_items():
    packet = read_reply(2, 55, OpCode.READ_MEMORIA_RTA_OK)
    assert items(packet) == [pack_uint32(2), pack_uint32(4), pack_uint32(55)]


def test_read_reply_no_value_is_not_sent():
    assert read_reply(2, 0xFFFFFFFF, OpCode.READ_MEMORIA_RTA_ERROR) is None
    assert read_reply(2, -1, OpCode.READ_MEMORIA_RTA_ERROR) is None


def test_update_context_reply():
    packet = update_context_reply(Context(pid=8, tid=3), OpCode.DEVOLUCION_CONTEXTO_RTA_OK)
    assert items(packet) == [pack_uint32(8), pack_uint32(3)]


def test_dump_creation_items():
    content = bytes(range(10))
    packet = dump_creation("1-0-5.dmp", content)
    assert packet.op_code == OpCode.CREACION_DUMP
    assert items(packet) == [b"1-0-5.dmp\0", pack_uint32(len(content)), content]