"""Unit tests for codecs.values module."""

import pytest
from eth_utils import to_checksum_address

from dwebns.codecs.values import AddressCodec, TextCodec, ValueCodec
from dwebns.exceptions import DecodeError, InvalidValueError


class TestAddressCodec:
    """AddressCodec encode/decode."""

    def test_is_value_codec(self):
        assert isinstance(AddressCodec(), ValueCodec)

    def test_encode_is_one_padded_word(self, address):
        data = AddressCodec().encode(address)
        assert len(data) == 32
        assert data[:12] == bytes(12)
        assert data[12:] == bytes.fromhex(address[2:])

    def test_lowercase_input_decodes_checksummed(self, address):
        codec = AddressCodec()
        assert codec.decode(codec.encode(address.lower())) == address

    def test_surrounding_whitespace_is_ignored(self, address):
        codec = AddressCodec()
        assert codec.encode(f"  {address}\n") == codec.encode(address)

    @pytest.mark.parametrize(
        "value",
        ["", "not-an-address", "0x1234", "0x" + "zz" * 20, "0x" + "ab" * 21],
    )
    def test_encode_rejects_invalid(self, value):
        with pytest.raises(InvalidValueError):
            AddressCodec().encode(value)

    def test_encode_rejects_bad_checksum(self, address):
        # Flip the case of every letter: mixed case with a wrong checksum.
        flipped = "0x" + address[2:].swapcase()
        if flipped[2:] in (address[2:].lower(), address[2:].upper()):
            pytest.skip("address has no letters to flip")
        with pytest.raises(InvalidValueError):
            AddressCodec().encode(flipped)

    def test_invalid_value_error_is_value_error(self):
        with pytest.raises(ValueError):
            AddressCodec().encode("nope")

    @pytest.mark.parametrize("size", [0, 20, 31, 33, 64])
    def test_decode_rejects_wrong_width(self, size):
        with pytest.raises(DecodeError, match="32 bytes"):
            AddressCodec().decode(b"\x01" * size)

    def test_decode_rejects_dirty_padding(self):
        with pytest.raises(DecodeError):
            AddressCodec().decode(b"\x01" * 32)

    def test_decode_zero_address(self):
        assert AddressCodec().decode(bytes(32)) == to_checksum_address("0x" + "00" * 20)


class TestTextCodec:
    """TextCodec encode/decode."""

    def test_is_value_codec(self):
        assert isinstance(TextCodec(), ValueCodec)

    @pytest.mark.parametrize("value", ["QmTestCID123", "did:example:123456", "日本語", "a b"])
    def test_round_trip(self, value):
        codec = TextCodec()
        assert codec.decode(codec.encode(value)) == value

    def test_encode_is_utf8(self):
        assert TextCodec().encode("café") == "café".encode()

    def test_lone_surrogate_rejected(self):
        with pytest.raises(InvalidValueError):
            TextCodec().encode("\ud800")

    def test_decode_invalid_utf8(self):
        with pytest.raises(DecodeError, match="UTF-8"):
            TextCodec().decode(b"\xff\xfe")
