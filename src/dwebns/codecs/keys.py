"""Fixed-width key codec for names and labels.

Names and labels travel on the ledger as ``bytes32`` values: the UTF-8
encoding left-aligned and zero-padded. Inputs longer than 32 bytes are
truncated, the same way every other writer of the shared log does it.
Keys written by anyone must be readable, so
[decode_key_or_placeholder()][dwebns.codecs.keys.decode_key_or_placeholder]
never raises.

Examples:
    ```python
    key = encode_key("alice")
    decode_key(key)                   # "alice"
    is_empty_label(encode_key(""))    # True
    ```
"""

from __future__ import annotations

from dwebns.exceptions import DecodeError
from dwebns.models.constants import KEY_SIZE


EMPTY_KEY = bytes(KEY_SIZE)


def encode_key(text: str) -> bytes:
    """Encode *text* into a 32-byte key, truncating silently past 32 bytes.

    Truncation can split a multi-byte character; such keys decode to a
    placeholder. Callers that care should check
    [key_fits()][dwebns.codecs.keys.key_fits] first.
    """
    raw = text.encode("utf-8")[:KEY_SIZE]
    return raw.ljust(KEY_SIZE, b"\x00")


def key_fits(text: str) -> bool:
    """Whether *text* encodes to at most 32 bytes (i.e. round-trips)."""
    return len(text.encode("utf-8")) <= KEY_SIZE


def decode_key(key: bytes) -> str:
    """Decode a 32-byte key back to text.

    Raises:
        DecodeError: If the key is not 32 bytes, or the bytes left after
            stripping trailing zeros are not valid UTF-8. Interior zero
            bytes are kept as ``\\x00`` characters.
    """
    if len(key) != KEY_SIZE:
        raise DecodeError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
    stripped = key.rstrip(b"\x00")
    try:
        return stripped.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Key is not valid UTF-8: {to_hex(stripped)}") from e


def decode_key_or_placeholder(key: bytes) -> str:
    """Decode a key, returning ``0x<hex>`` of the stripped bytes when malformed.

    The placeholder is unique per key, so two different malformed labels never
    collapse into the same record.
    """
    try:
        return decode_key(key)
    except DecodeError:
        return to_hex(key.rstrip(b"\x00"))


def is_empty_label(key: bytes) -> bool:
    """True iff all 32 bytes are zero (the "no label" sentinel)."""
    return len(key) == KEY_SIZE and key == EMPTY_KEY


def normalize_name(name: str) -> str:
    """Strip surrounding whitespace and lowercase a name before keying it."""
    return name.strip().lower()


def normalize_label(label: str | None) -> str:
    """Map ``None`` and whitespace-only labels to ``""``; keep others verbatim."""
    if label is None or not label.strip():
        return ""
    return label


def to_hex(data: bytes) -> str:
    """Return ``0x``-prefixed lowercase hex."""
    return "0x" + data.hex()


def from_hex(text: str) -> bytes:
    """Parse ``0x``-prefixed (or bare) hex into bytes.

    Raises:
        DecodeError: If *text* is not valid hex.
    """
    body = text[2:] if text[:2].lower() == "0x" else text
    try:
        return bytes.fromhex(body)
    except ValueError as e:
        raise DecodeError(f"Invalid hex string: {text[:80]!r}") from e
