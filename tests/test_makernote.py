"""Tests for the maker note block codec."""

import struct

import pytest

from vid2live import makernote
from vid2live.makernote import HEADER, MakerNoteError, decode, encode


class TestEncode:
    def test_header_and_entry_count(self):
        block = encode({"17": "ABC", "21": 0})
        assert block.startswith(HEADER)
        assert struct.unpack_from(">H", block, len(HEADER)) == (2,)

    def test_tags_sorted(self):
        block = encode({"21": 0, "17": "X"})
        first_tag = struct.unpack_from(">H", block, len(HEADER) + 2)[0]
        assert first_tag == 17

    def test_long_string_goes_to_data_area(self):
        content_id = "0F5C1F27-5A8B-4E47-9D0E-2C4D3A1B9F60"
        block = encode({"17": content_id})
        tag, typ, count, offset = struct.unpack_from(">HHII", block, len(HEADER) + 2)
        assert (tag, typ, count) == (17, makernote.TYPE_ASCII, len(content_id) + 1)
        assert block[offset:offset + len(content_id)] == content_id.encode()

    def test_short_value_inline(self):
        block = encode({"21": 7})
        _, typ, count = struct.unpack_from(">HHI", block, len(HEADER) + 2)
        value = struct.unpack_from(">i", block, len(HEADER) + 10)[0]
        assert (typ, count, value) == (makernote.TYPE_SLONG, 1, 7)

    def test_non_numeric_key(self):
        with pytest.raises(MakerNoteError, match="numeric"):
            encode({"content": "x"})

    def test_unsupported_value(self):
        with pytest.raises(MakerNoteError):
            encode({"1": [1, 2]})


class TestDecode:
    def test_live_photo_fields(self):
        fields = decode(encode({"17": "0F5C1F27-5A8B-4E47-9D0E-2C4D3A1B9F60", "21": 0}))
        assert fields == {"17": "0F5C1F27-5A8B-4E47-9D0E-2C4D3A1B9F60", "21": 0}

    def test_mixed_types(self):
        fields = decode(encode({"3": b"\x01\x02\x03\x04\x05", "8": -1.25, "11": "hi"}))
        assert fields["3"] == b"\x01\x02\x03\x04\x05"
        assert fields["8"] == pytest.approx(-1.25)
        assert fields["11"] == "hi"

    def test_bad_signature(self):
        with pytest.raises(MakerNoteError, match="signature"):
            decode(b"Nikon\x00\x02\x10\x00\x00MM\x00\x00")

    def test_truncated_ifd(self):
        block = encode({"17": "ABC"})
        with pytest.raises(MakerNoteError, match="truncated"):
            decode(block[:len(HEADER) + 6])

    def test_little_endian_rejected(self):
        block = bytearray(encode({"21": 0}))
        block[12:14] = b"II"
        with pytest.raises(MakerNoteError, match="big-endian"):
            decode(bytes(block))
