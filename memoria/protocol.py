"""Length-prefixed packet protocol shared by the memory server and its peers.

A packet on the wire is ``op_code`` (int32), ``payload size`` (int32) and
the payload, which is a sequence of items each prefixed by its int32 length.
All integers are little endian.
"""

from __future__ import annotations

import logging
import socket
import struct
from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional, Union

logger = logging.getLogger(__name__)

_UINT32 = struct.Struct("<I")
_INT32 = struct.Struct("<i")


class OpCode(IntEnum):
    """Operation codes exchanged between the modules of the system."""

    HANDSHAKE = 1
    HANDSHAKE_OK = 2
    OK = 3

    MUTEX_CREAR = 4
    MUTEX_BLOQUEAR = 5
    MUTEX_DESBLOQUEAR = 6
    HILO_CANCELAR = 7
    HILO_SALIR = 8
    HILO_JUNTAR = 9
    HILO_CREAR = 10
    PROCESO_CREAR = 11
    PROCESO_SALIR = 12
    PROCESO_EJECUTAR = 13
    IO_EJECUTAR = 14
    FIN_DE_QUANTUM = 15
    SOLICITUD_DE_MUTEX_BLOQUEADA = 16
    SEGMENTATION_FAULT = 17
    RESPUESTA_SYSCALL = 18
    CONTINUA_EJECUTANDO_HILO = 19
    REPLANIFICACION = 20

    SOLICITUD_CONTEXTO = 21
    SOLICITUD_CONTEXTO_RTA = 22
    SOLICITUD_INSTRUCCION = 23
    SOLICITUD_INSTRUCCION_RTA = 24
    READ_MEMORIA = 25
    READ_MEMORIA_RTA_OK = 26
    READ_MEMORIA_RTA_ERROR = 27
    WRITE_MEMORIA = 28
    WRITE_MEMORIA_RTA_OK = 29
    WRITE_MEMORIA_RTA_ERROR = 30
    DEVOLUCION_CONTEXTO = 31
    DEVOLUCION_CONTEXTO_RTA_OK = 32
    DEVOLUCION_CONTEXTO_RTA_ERROR = 33
    BASE_PARTICION = 34
    BASE_PARTICION_RTA = 35

    INICIAR_PROCESO = 36
    INICIAR_PROCESO_RTA_OK = 37
    INICIAR_PROCESO_RTA_ERROR = 38
    INICIAR_PROCESO_RTA_ERROR_YA_EXISTE = 39
    INICIAR_PROCESO_RTA_ERROR_SIN_ESPACIO = 40
    FINALIZAR_PROCESO = 41
    FINALIZAR_PROCESO_RTA_OK = 42
    FINALIZAR_PROCESO_RTA_ERROR_NO_EXISTE = 43
    INICIAR_HILO = 44
    INICIAR_HILO_RTA_OK = 45
    INICIAR_HILO_RTA_ERROR_YA_EXISTE = 46
    FINALIZAR_HILO = 47
    FINALIZAR_HILO_RTA_OK = 48
    FINALIZAR_HILO_RTA_ERROR_NO_EXISTE = 49
    PEDIDO_MEMORY_DUMP = 50
    PEDIDO_MEMORY_DUMP_RTA_OK = 51
    PEDIDO_MEMORY_DUMP_RTA_ERROR = 52

    CREACION_DUMP = 53


class ConnectionClosed(ConnectionError):
    """The peer closed the connection before a full message arrived."""


def pack_uint32(value: int) -> bytes:
    """Encode ``value`` as a little-endian uint32, wrapping like C does."""
    return _UINT32.pack(value & 0xFFFFFFFF)


def unpack_uint32(data: bytes) -> int:
    """Decode the first four bytes of ``data`` as a little-endian uint32."""
    if len(data) < _UINT32.size:
        raise ValueError(f"need 4 bytes to decode a uint32, got {len(data)}")
    return _UINT32.unpack_from(data)[0]


@dataclass
class Packet:
    """An outgoing message: an operation code and its length-prefixed items."""

    op_code: int
    payload: bytearray = field(default_factory=bytearray)

    def add(self, value: bytes) -> "Packet":
        """Append one item, prefixed by its length."""
        data = bytes(value)
        self.payload += _UINT32.pack(len(data))
        self.payload += data
        return self

    def add_uint32(self, value: int) -> "Packet":
        """Append a four-byte unsigned integer item."""
        return self.add(pack_uint32(value))

    def serialize(self) -> bytes:
        """Return the bytes that go on the wire."""
        return (
            _INT32.pack(int(self.op_code))
            + _UINT32.pack(len(self.payload))
            + bytes(self.payload)
        )

    def send(self, sock: socket.socket) -> None:
        """Write the whole packet to ``sock``."""
        sock.sendall(self.serialize())
        logger.debug("sent packet %s (%d payload bytes)", self.op_code, len(self.payload))


@dataclass
class Buffer:
    """A queue of length-prefixed items, consumed from the front."""

    data: bytearray = field(default_factory=bytearray)

    def __len__(self) -> int:
        return len(self.data)

    def add(self, value: bytes) -> "Buffer":
        """Append one item, prefixed by its length."""
        item = bytes(value)
        self.data += _UINT32.pack(len(item))
        self.data += item
        return self

    def extract(self) -> bytes:
        """Remove and return the first item."""
        if not self.data:
            raise ValueError("cannot extract from an empty buffer")
        if len(self.data) < _UINT32.size:
            raise ValueError("buffer is shorter than a length prefix")
        (length,) = _UINT32.unpack_from(self.data)
        end = _UINT32.size + length
        if end > len(self.data):
            raise ValueError("buffer holds fewer bytes than its length prefix")
        content = bytes(self.data[_UINT32.size:end])
        del self.data[:end]
        return content


def parse_payload(payload: bytes) -> List[bytes]:
    """Split a packet payload into its items."""
    view = memoryview(payload)
    values: List[bytes] = []
    offset = 0
    while offset < len(view):
        if offset + _UINT32.size > len(view):
            raise ValueError("truncated length prefix in payload")
        (length,) = _UINT32.unpack_from(view, offset)
        offset += _UINT32.size
        if offset + length > len(view):
            raise ValueError("truncated item in payload")
        values.append(bytes(view[offset:offset + length]))
        offset += length
    return values


def _recv_exact(sock: socket.socket, size: int) -> bytes:
    chunks = bytearray()
    while len(chunks) < size:
        chunk = sock.recv(size - len(chunks))
        if not chunk:
            raise ConnectionClosed(
                f"connection closed after {len(chunks)} of {size} bytes"
            )
        chunks += chunk
    return bytes(chunks)


def recv_operation(sock: socket.socket) -> Union[OpCode, int]:
    """Read an operation code; close the socket and raise if the peer is gone."""
    try:
        data = _recv_exact(sock, _INT32.size)
    except (ConnectionClosed, OSError) as exc:
        sock.close()
        raise ConnectionClosed("peer disconnected") from exc
    (code,) = _INT32.unpack(data)
    try:
        return OpCode(code)
    except ValueError:
        return code


def recv_packet(sock: socket.socket) -> List[bytes]:
    """Read a payload (size then bytes) and return its items."""
    (size,) = _UINT32.unpack(_recv_exact(sock, _UINT32.size))
    return parse_payload(_recv_exact(sock, size))


def start_server(host: Optional[str], port: Union[str, int]) -> socket.socket:
    """Bind and listen on the first address for ``host``/``port`` that works."""
    infos = socket.getaddrinfo(
        host, port, socket.AF_UNSPEC, socket.SOCK_STREAM, 0, socket.AI_PASSIVE
    )
    last_error: Optional[OSError] = None
    for family, socktype, proto, _, address in infos:
        try:
            server = socket.socket(family, socktype, proto)
        except OSError as exc:
            last_error = exc
            continue
        server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            server.bind(address)
        except OSError as exc:
            logger.error("bind to %s failed: %s", address, exc)
            server.close()
            last_error = exc
            continue
        server.listen(socket.SOMAXCONN)
        logger.debug("listening on %s:%s", host, port)
        return server
    raise OSError(f"could not listen on {host}:{port}") from last_error


def accept_client(server: socket.socket) -> socket.socket:
    """Wait for and return the next client connection."""
    client, address = server.accept()
    logger.debug("client connected from %s", address)
    return client


def connect(host: str, port: Union[str, int]) -> socket.socket:
    """Connect to the first address resolved for ``host``/``port``."""
    family, socktype, proto, _, address = socket.getaddrinfo(
        host, port, socket.AF_UNSPEC, socket.SOCK_STREAM
    )[0]
    sock = socket.socket(family, socktype, proto)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.connect(address)
    except OSError:
        logger.error("could not connect to %s:%s", host, port)
        sock.close()
        raise
    logger.debug("connected to %s:%s", host, port)
    return sock