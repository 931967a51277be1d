"""
Record type to value codec registry.

The registry is an explicit object handed to the reducer and the submitter,
so tests and callers can swap codecs per type without touching global state.
Lookup order for a record type:

1. An explicit per-type registration
   ([register()][dwebns.codecs.registry.CodecRegistry.register]).
2. The default codec of the type's [RecordBand][dwebns.models.constants.RecordBand],
   when one was given.
3. The fallback codec ([TextCodec][dwebns.codecs.values.TextCodec] by default),
   which covers every band without a default, including unknown tags.

Note:
    Empty data always decodes to ``""`` regardless of the codec: an empty
    payload is a tombstone, not a value.

Examples:
    ```python
    registry = default_registry()
    data = registry.encode(RecordType.ETH_ADDRESS, "0x742d...")
    registry.decode(RecordType.ETH_ADDRESS, data)
    registry.decode(RecordType.ETH_ADDRESS, b"\\x01\\x02")   # "0x0102"
    ```
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dwebns.exceptions import DecodeError, InvalidValueError
from dwebns.models.constants import RecordBand, RecordType, band_of, record_type_name

from .keys import to_hex
from .values import AddressCodec, TextCodec, ValueCodec


if TYPE_CHECKING:
    from collections.abc import Mapping


logger = logging.getLogger(__name__)

ADDRESS_TYPES = (RecordType.ETH_ADDRESS, RecordType.BTC_ADDRESS, RecordType.SOL_ADDRESS)


class CodecRegistry:
    """Resolves the value codec for a record type and applies it.

    Args:
        band_defaults: Default codec per band.
        fallback: Codec for bands without a default.

    See Also:
        [default_registry()][dwebns.codecs.registry.default_registry]: The
            registry used when none is injected.
    """

    __slots__ = ("_band_defaults", "_fallback", "_overrides")

    def __init__(
        self,
        band_defaults: Mapping[RecordBand, ValueCodec] | None = None,
        fallback: ValueCodec | None = None,
    ) -> None:
        self._band_defaults: dict[RecordBand, ValueCodec] = dict(band_defaults or {})
        self._fallback: ValueCodec = fallback if fallback is not None else TextCodec()
        self._overrides: dict[int, ValueCodec] = {}

    def register(self, record_type: int, codec: ValueCodec) -> None:
        """Register *codec* for one record type, overriding its band default."""
        if not isinstance(codec, ValueCodec):
            raise TypeError(f"codec must implement encode/decode, got {type(codec).__name__}")
        self._overrides[int(record_type)] = codec

    def codec_for(self, record_type: int) -> ValueCodec:
        """Return the codec that handles *record_type*."""
        codec = self._overrides.get(int(record_type))
        if codec is not None:
            return codec
        return self._band_defaults.get(band_of(record_type), self._fallback)

    def encode(self, record_type: int, value: str) -> bytes:
        """Encode *value* for storage.

        Raises:
            InvalidValueError: If the value does not fit the type's format.
        """
        try:
            return self.codec_for(record_type).encode(value)
        except InvalidValueError:
            raise
        except (ValueError, TypeError) as e:
            raise InvalidValueError(
                f"Invalid value for {record_type_name(record_type)}: {e}"
            ) from e

    def decode(self, record_type: int, data: bytes) -> str:
        """Decode *data*, falling back to ``0x``-hex when it is malformed.

        Never raises; use
        [decode_strict()][dwebns.codecs.registry.CodecRegistry.decode_strict]
        to detect malformed payloads.
        """
        try:
            return self.decode_strict(record_type, data)
        except DecodeError as e:
            logger.debug("value_decode_failed type=%s error=%s", record_type, e)
            return to_hex(data)

    def decode_strict(self, record_type: int, data: bytes) -> str:
        """Decode *data* with the type's codec.

        Raises:
            DecodeError: If *data* is malformed for the type.
        """
        if not data:
            return ""
        try:
            return self.codec_for(record_type).decode(data)
        except DecodeError:
            raise
        except (ValueError, TypeError) as e:
            raise DecodeError(f"Cannot decode {record_type_name(record_type)}: {e}") from e

    def __repr__(self) -> str:
        parts = [f"{b.value}={c!r}" for b, c in self._band_defaults.items()]
        parts.append(f"fallback={self._fallback!r}")
        parts.append(f"overrides={len(self._overrides)}")
        return f"CodecRegistry({', '.join(parts)})"


def default_registry() -> CodecRegistry:
    """Build the registry matching the deployed record types.

    Only the known chain address types use
    [AddressCodec][dwebns.codecs.values.AddressCodec]. Every other tag is
    text, including address-band tags not yet assigned.
    """
    registry = CodecRegistry()
    for record_type in ADDRESS_TYPES:
        registry.register(record_type, AddressCodec())
    return registry
