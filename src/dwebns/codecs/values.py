"""
Type-specific value codecs.

A value codec converts between the user-facing string form of a record and
the opaque bytes stored in a ``RecordChanged`` event. Two shapes cover every
deployed record type:

- [AddressCodec][dwebns.codecs.values.AddressCodec]: one ABI ``address``
  word (12 zero bytes followed by the 20-byte address), decoded to the
  EIP-55 checksummed form.
- [TextCodec][dwebns.codecs.values.TextCodec]: raw UTF-8 bytes.

Codecs raise [InvalidValueError][dwebns.exceptions.InvalidValueError] on
encode and [DecodeError][dwebns.exceptions.DecodeError] on decode. Recovery
from decode failures is the registry's job, not the codec's.

See Also:
    [CodecRegistry][dwebns.codecs.registry.CodecRegistry]: Maps record types
        to these codecs.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from eth_abi import decode as abi_decode
from eth_abi import encode as abi_encode
from eth_abi.exceptions import DecodingError, EncodingError
from eth_utils import is_address, to_checksum_address

from dwebns.exceptions import DecodeError, InvalidValueError


ADDRESS_WORD_SIZE = 32


@runtime_checkable
class ValueCodec(Protocol):
    """Bidirectional converter between a record's string value and its bytes."""

    def encode(self, value: str) -> bytes: ...

    def decode(self, data: bytes) -> str: ...


class AddressCodec:
    """ABI-encoded 20-byte address in a single 32-byte word.

    Examples:
        ```python
        codec = AddressCodec()
        data = codec.encode("0x742d35cc6634c0532925a3b844bc9e7595f0beb0")
        len(data)            # 32
        codec.decode(data)   # "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0"
        ```
    """

    __slots__ = ()

    def encode(self, value: str) -> bytes:
        candidate = value.strip()
        if not is_address(candidate):
            raise InvalidValueError(f"Not a valid address: {value!r}")
        try:
            return abi_encode(["address"], [to_checksum_address(candidate)])
        except EncodingError as e:
            raise InvalidValueError(f"Cannot encode address {value!r}: {e}") from e

    def decode(self, data: bytes) -> str:
        if len(data) != ADDRESS_WORD_SIZE:
            raise DecodeError(f"Address data must be {ADDRESS_WORD_SIZE} bytes, got {len(data)}")
        try:
            (address,) = abi_decode(["address"], data, strict=True)
        except DecodingError as e:
            raise DecodeError(f"Malformed address word: {data.hex()}") from e
        return to_checksum_address(address)

    def __repr__(self) -> str:
        return "AddressCodec()"


class TextCodec:
    """Raw UTF-8 text. Used for DNS, identity, content and unknown types."""

    __slots__ = ()

    def encode(self, value: str) -> bytes:
        try:
            return value.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidValueError(f"Value is not encodable as UTF-8: {e}") from e

    def decode(self, data: bytes) -> str:
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"Value is not valid UTF-8: {data.hex()}") from e

    def __repr__(self) -> str:
        return "TextCodec()"
