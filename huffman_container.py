# filename: huffman_container.py
"""Versioned binary container for a frequency table plus its bit payload.

Every integer is big-endian, independent of host byte order::

    magic "HUFC" | version u8 | token kind u8 | flags u8
    entry count u32 | entries in ascending token order: token, count u64
    token count u64 | bit length u64 | ceil(bit length / 8) packed bytes

Tokens are written as u8 (byte kind), i64 (int kind) or a u32 length followed
by UTF-8 text (str kind) or raw bytes (bytes kind). Pad bits in the last
payload byte are zero.
"""

import logging
import struct
from dataclasses import dataclass
from typing import Mapping, Optional

from bitarray import bitarray

from huffman_errors import CorruptContainer, InvalidAlphabet, Truncated

logger = logging.getLogger(__name__)

MAGIC = b"HUFC"
VERSION = 1

KIND_NONE = 0
KIND_BYTE = 1
KIND_INT = 2
KIND_STR = 3
KIND_BYTES = 4

FLAG_EXTERNAL_TABLE = 0x01
KNOWN_FLAGS = FLAG_EXTERNAL_TABLE

HEADER = struct.Struct(">4sBBB")
ENTRY_COUNT = struct.Struct(">I")
COUNT = struct.Struct(">Q")
PAYLOAD_HEADER = struct.Struct(">QQ")
LENGTH = struct.Struct(">I")
INT_TOKEN = struct.Struct(">q")

MAX_COUNT = 2 ** 64 - 1


@dataclass(frozen=True)
class Container:
    """What crosses the system boundary: table, token count and bits.

    ``frequency_table`` is ``None`` when the table is supplied externally.
    """

    frequency_table: Optional[Mapping]
    token_count: int
    bits: bitarray


def token_kind(tokens):
    """Pick the narrowest token kind able to hold every token."""
    tokens = list(tokens)
    if not tokens:
        return KIND_NONE
    if all(isinstance(t, int) and not isinstance(t, bool) for t in tokens):
        if all(0 <= t <= 0xFF for t in tokens):
            return KIND_BYTE
        return KIND_INT
    if all(isinstance(t, str) for t in tokens):
        return KIND_STR
    if all(isinstance(t, bytes) for t in tokens):
        return KIND_BYTES
    types = sorted({type(t).__name__ for t in tokens})
    raise InvalidAlphabet(f"cannot serialize tokens of type(s) {', '.join(types)}")


def _pack_token(kind, token):
    if kind == KIND_BYTE:
        return bytes((token,))
    if kind == KIND_INT:
        try:
            return INT_TOKEN.pack(token)
        except struct.error:
            raise InvalidAlphabet(f"int token {token} does not fit in 64 bits") from None
    raw = token.encode("utf-8") if kind == KIND_STR else token
    return LENGTH.pack(len(raw)) + raw


def pack_container(container):
    table = container.frequency_table
    flags = 0
    if table is None:
        flags |= FLAG_EXTERNAL_TABLE
        table = {}

    # Sorting gives one canonical serialization per table
    tokens = sorted(table)
    kind = token_kind(tokens)

    out = bytearray(HEADER.pack(MAGIC, VERSION, kind, flags))
    out += ENTRY_COUNT.pack(len(tokens))
    for token in tokens:
        count = table[token]
        if not isinstance(count, int) or isinstance(count, bool):
            raise InvalidAlphabet(f"token {token!r} has non-integer count {count!r}")
        if not 0 < count <= MAX_COUNT:
            raise InvalidAlphabet(f"token {token!r} has count {count} outside 1..2**64-1")
        out += _pack_token(kind, token)
        out += COUNT.pack(count)

    bits = container.bits
    out += PAYLOAD_HEADER.pack(container.token_count, len(bits))
    out += bits.tobytes()
    logger.debug(
        "packed container: %d entries, %d tokens, %d bits, %d bytes",
        len(tokens), container.token_count, len(bits), len(out),
    )
    return bytes(out)


class _Reader:
    def __init__(self, buffer):
        self.view = memoryview(buffer)
        self.offset = 0

    def take(self, size, what):
        end = self.offset + size
        if end > len(self.view):
            raise Truncated(
                f"{what} needs {size} bytes at offset {self.offset}, "
                f"only {len(self.view) - self.offset} remain"
            )
        chunk = self.view[self.offset:end]
        self.offset = end
        return chunk

    def unpack(self, layout, what):
        return layout.unpack(self.take(layout.size, what))

    def remaining(self):
        return len(self.view) - self.offset


def _unpack_token(reader, kind):
    if kind == KIND_BYTE:
        return reader.take(1, "byte token")[0]
    if kind == KIND_INT:
        return reader.unpack(INT_TOKEN, "int token")[0]
    (length,) = reader.unpack(LENGTH, "token length")
    raw = bytes(reader.take(length, "token"))
    if kind == KIND_BYTES:
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CorruptContainer(f"str token is not valid UTF-8: {exc}") from exc


def unpack_container(buffer):
    reader = _Reader(buffer)
    magic, version, kind, flags = reader.unpack(HEADER, "header")
    if magic != MAGIC:
        raise CorruptContainer(f"bad magic {bytes(magic)!r}, expected {MAGIC!r}")
    if version != VERSION:
        raise CorruptContainer(f"unsupported container version {version}")
    if kind > KIND_BYTES:
        raise CorruptContainer(f"unknown token kind {kind}")
    if flags & ~KNOWN_FLAGS:
        raise CorruptContainer(f"unknown flag bits 0x{flags:02x}")

    external = bool(flags & FLAG_EXTERNAL_TABLE)
    (entry_count,) = reader.unpack(ENTRY_COUNT, "entry count")
    if external and (entry_count or kind != KIND_NONE):
        raise CorruptContainer("external-table container must not embed entries")
    if not external and (entry_count == 0 or kind == KIND_NONE):
        raise CorruptContainer("container embeds no frequency table")

    table = None
    if not external:
        table = {}
        previous = None
        for position in range(entry_count):
            token = _unpack_token(reader, kind)
            (count,) = reader.unpack(COUNT, "token count")
            if count == 0:
                raise CorruptContainer(f"token {token!r} has a zero count")
            if position and not previous < token:
                raise CorruptContainer("frequency table entries are not in ascending order")
            table[token] = count
            previous = token
        if token_kind(table) != kind:
            raise CorruptContainer(f"token kind {kind} is not the canonical kind for its tokens")

    token_count, bit_length = reader.unpack(PAYLOAD_HEADER, "payload header")
    byte_length = (bit_length + 7) // 8
    payload = reader.take(byte_length, "payload")
    if reader.remaining():
        raise CorruptContainer(f"{reader.remaining()} unexpected bytes after payload")

    bits = bitarray(endian="big")
    bits.frombytes(bytes(payload))
    if bits[bit_length:].any():
        raise CorruptContainer("non-zero padding bits after payload")
    del bits[bit_length:]

    logger.debug(
        "unpacked container: %s table, %d tokens, %d bits",
        "external" if external else f"{entry_count}-entry", token_count, bit_length,
    )
    return Container(table, token_count, bits)
