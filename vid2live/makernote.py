"""Apple-style MakerNote block: encoder and decoder.

Layout::

    b"Apple iOS\\0"  b"\\x00\\x01"  b"MM"        14-byte header
    uint16 entry count                         big-endian IFD
    count * (uint16 tag, uint16 type, uint32 count, uint32 value/offset)
    uint32 next IFD offset (always 0)
    value data for entries wider than 4 bytes

Offsets are relative to the start of the block. Numeric keys are written as
tag numbers, so ``{"17": "ID", "21": 0}`` becomes tags 17 and 21.
"""

import struct
from typing import Union

HEADER = b"Apple iOS\x00" + b"\x00\x01" + b"MM"

TYPE_BYTE = 1
TYPE_ASCII = 2
TYPE_SHORT = 3
TYPE_LONG = 4
TYPE_RATIONAL = 5
TYPE_UNDEFINED = 7
TYPE_SLONG = 9
TYPE_SRATIONAL = 10

_TYPE_SIZES = {
    TYPE_BYTE: 1,
    TYPE_ASCII: 1,
    TYPE_SHORT: 2,
    TYPE_LONG: 4,
    TYPE_RATIONAL: 8,
    TYPE_UNDEFINED: 1,
    TYPE_SLONG: 4,
    TYPE_SRATIONAL: 8,
}

Value = Union[str, int, float, bytes, tuple]


class MakerNoteError(ValueError):
    pass


def _encode_value(value: Value) -> tuple[int, int, bytes]:
    """Return (type, count, payload) for one entry."""
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, str):
        payload = value.encode("ascii") + b"\x00"
        return TYPE_ASCII, len(payload), payload
    if isinstance(value, bytes):
        return TYPE_UNDEFINED, len(value), value
    if isinstance(value, int):
        if not -(2 ** 31) <= value < 2 ** 31:
            raise MakerNoteError(f"Integer out of SLONG range: {value}")
        return TYPE_SLONG, 1, struct.pack(">i", value)
    if isinstance(value, float):
        denominator = 1_000_000
        return TYPE_SRATIONAL, 1, struct.pack(">ii", round(value * denominator), denominator)
    raise MakerNoteError(f"Unsupported maker note value type: {type(value).__name__}")


def encode(fields: dict[str, Value]) -> bytes:
    """Serialise *fields* (numeric string keys) into a MakerNote block."""
    entries = []
    for key, value in fields.items():
        try:
            tag = int(key)
        except ValueError:
            raise MakerNoteError(f"Maker note keys must be numeric, got {key!r}") from None
        if not 0 <= tag <= 0xFFFF:
            raise MakerNoteError(f"Maker note tag out of range: {tag}")
        entries.append((tag, *_encode_value(value)))
    entries.sort(key=lambda entry: entry[0])

    ifd_size = 2 + 12 * len(entries) + 4
    data_offset = len(HEADER) + ifd_size

    ifd = bytearray(struct.pack(">H", len(entries)))
    data = bytearray()
    for tag, typ, count, payload in entries:
        if len(payload) <= 4:
            ifd += struct.pack(">HHI", tag, typ, count) + payload.ljust(4, b"\x00")
        else:
            ifd += struct.pack(">HHII", tag, typ, count, data_offset + len(data))
            data += payload
            if len(data) % 2:
                data += b"\x00"
    ifd += struct.pack(">I", 0)

    return HEADER + bytes(ifd) + bytes(data)


def _decode_value(typ: int, count: int, raw: bytes) -> Value:
    if typ == TYPE_ASCII:
        return raw.split(b"\x00", 1)[0].decode("ascii", errors="replace")
    if typ in (TYPE_UNDEFINED, TYPE_BYTE):
        return raw if count != 1 or typ == TYPE_UNDEFINED else raw[0]
    formats = {
        TYPE_SHORT: ">H",
        TYPE_LONG: ">I",
        TYPE_SLONG: ">i",
        TYPE_RATIONAL: ">II",
        TYPE_SRATIONAL: ">ii",
    }
    fmt = formats[typ]
    values = [struct.unpack_from(fmt, raw, i * struct.calcsize(fmt)) for i in range(count)]
    if typ in (TYPE_RATIONAL, TYPE_SRATIONAL):
        scalars: list[Value] = [num / den if den else 0.0 for num, den in values]
    else:
        scalars = [v[0] for v in values]
    return scalars[0] if count == 1 else tuple(scalars)


def decode(block: bytes) -> dict[str, Value]:
    """Parse a MakerNote block written by :func:`encode` (or by a camera)."""
    if not block.startswith(HEADER[:10]):
        raise MakerNoteError("Not an Apple maker note (bad signature)")
    if len(block) < len(HEADER) + 2:
        raise MakerNoteError("Maker note truncated before IFD")
    if block[12:14] != b"MM":
        raise MakerNoteError("Only big-endian maker notes are supported")

    pos = len(HEADER)
    (count,) = struct.unpack_from(">H", block, pos)
    pos += 2
    if pos + 12 * count > len(block):
        raise MakerNoteError("Maker note truncated inside IFD")

    fields: dict[str, Value] = {}
    for _ in range(count):
        tag, typ, n = struct.unpack_from(">HHI", block, pos)
        value_field = block[pos + 8:pos + 12]
        pos += 12
        size = _TYPE_SIZES.get(typ)
        if size is None:
            continue
        length = size * n
        if length <= 4:
            raw = value_field[:length]
        else:
            (offset,) = struct.unpack(">I", value_field)
            if offset + length > len(block):
                raise MakerNoteError(f"Tag {tag} points past the end of the block")
            raw = block[offset:offset + length]
        fields[str(tag)] = _decode_value(typ, n, raw)
    return fields
