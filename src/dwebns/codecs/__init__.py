"""Byte-level codecs for record keys and values.

Sits between [dwebns.models][dwebns.models] and
[dwebns.services][dwebns.services]. No I/O.

Attributes:
    encode_key, decode_key: Fixed-width 32-byte key codec for names and labels.
    CodecRegistry: Maps record types to [ValueCodec][dwebns.codecs.values.ValueCodec]
        implementations, with per-band defaults and per-type overrides.
    AddressCodec, TextCodec: The two value shapes used by deployed types.
"""

from .keys import (
    EMPTY_KEY,
    decode_key,
    decode_key_or_placeholder,
    encode_key,
    from_hex,
    is_empty_label,
    key_fits,
    normalize_label,
    normalize_name,
    to_hex,
)
from .registry import CodecRegistry, default_registry
from .values import AddressCodec, TextCodec, ValueCodec


__all__ = [
    "EMPTY_KEY",
    "AddressCodec",
    "CodecRegistry",
    "TextCodec",
    "ValueCodec",
    "decode_key",
    "decode_key_or_placeholder",
    "default_registry",
    "encode_key",
    "from_hex",
    "is_empty_label",
    "key_fits",
    "normalize_label",
    "normalize_name",
    "to_hex",
]
