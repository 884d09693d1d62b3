"""Conversion of resolved values to canonical text.

Text always leaves this module as NFC-normalized ``str``. Bytes are decoded
as UTF-8 unless a BOM or the byte layout says UTF-16 LE. Data that fits
neither cleanly is rejected rather than returned garbled.
"""

from __future__ import annotations

import codecs
import unicodedata
from typing import Any

from factkit.infra.errors import NormalizationError

_BOMS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)

# Share of NUL high bytes above which even-length data is read as UTF-16 LE
_UTF16_NUL_SHARE = 0.5

# C0 control characters other than tab, newline and carriage return
_CONTROL_CHARS = frozenset(chr(c) for c in range(0x20)) - {"\t", "\n", "\r"}


def _has_controls(text: str) -> bool:
    return any(ch in _CONTROL_CHARS for ch in text)


def _nul_high_byte_share(data: bytes) -> float:
    high = data[1::2]
    return high.count(0) / len(high) if high else 0.0


def _decode_utf16_le(data: bytes) -> str | None:
    """Strict UTF-16 LE decode; None unless the result is clean text."""
    if len(data) % 2:
        return None
    try:
        text = data.decode("utf-16-le")
    except UnicodeDecodeError:
        return None
    return None if _has_controls(text) else text


def decode_bytes(data: bytes) -> str:
    """Decode raw output bytes into text.

    Raises NormalizationError if no supported encoding fits.
    """
    for bom, encoding in _BOMS:
        if data.startswith(bom):
            try:
                return data.decode(encoding)
            except UnicodeDecodeError as exc:
                raise NormalizationError(f"invalid {encoding} data: {exc}") from exc

    if len(data) % 2 == 0 and _nul_high_byte_share(data) >= _UTF16_NUL_SHARE:
        text = _decode_utf16_le(data)
        if text is not None:
            return text

    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise NormalizationError(f"value is not valid UTF-8: {exc}") from exc

    if not _has_controls(text):
        return text

    # Control characters in "valid" UTF-8 usually mean BOM-less UTF-16 LE
    # whose code points sit below U+2000 (basic Cyrillic, for instance): every
    # high byte is then itself a control byte
    if all(b < 0x20 for b in data[1::2]):
        utf16 = _decode_utf16_le(data)
        if utf16 is not None:
            return utf16
    raise NormalizationError("value contains control characters in an unknown encoding")


def normalize_text(value: str) -> str:
    if "\x00" in value:
        raise NormalizationError("string values must not contain NUL characters")
    return unicodedata.normalize("NFC", value)


def normalize_value(value: Any) -> Any:
    """Normalize a resolved value.

    - None stays None.
    - bytes are decoded, then treated as text.
    - str is NFC-normalized.
    - bool, int and float pass through.
    - lists, tuples and dicts are normalized element-wise (tuples become lists).

    Raises NormalizationError for anything else.
    """
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, bytes):
        return normalize_text(decode_bytes(value))
    if isinstance(value, str):
        return normalize_text(value)
    if isinstance(value, (list, tuple)):
        return [normalize_value(item) for item in value]
    if isinstance(value, dict):
        return {normalize_value(k): normalize_value(v) for k, v in value.items()}
    raise NormalizationError(
        f"cannot normalize value of type {type(value).__name__}"
    )
