# SPDX-License-Identifier: Apache-2.0
# Copyright (c) 2026 MuVeraAI Corporation

"""
Low-level byte encodings shared by the address, codec and operation layers.

- base58 (Bitcoin alphabet) is the text form of every 32-byte identity and
  address on the ledger.
- compact-u16 is the variable-length integer used for array lengths in the
  wire format of a transaction.
- borsh strings (u32 little-endian length + UTF-8 bytes) are the on-ledger
  representation of ``title`` and ``description``.
"""

from __future__ import annotations

import struct

BASE58_ALPHABET: str = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"

_BASE58_INDEX: dict[str, int] = {char: index for index, char in enumerate(BASE58_ALPHABET)}


# ─── base58 ───────────────────────────────────────────────────────────────────


def b58encode(data: bytes) -> str:
    """Encode ``data`` as base58, preserving leading zero bytes as ``"1"``."""
    leading_zeros = len(data) - len(data.lstrip(b"\x00"))
    number = int.from_bytes(data, "big")

    encoded: list[str] = []
    while number > 0:
        number, remainder = divmod(number, 58)
        encoded.append(BASE58_ALPHABET[remainder])

    return "1" * leading_zeros + "".join(reversed(encoded))


def b58decode(text: str) -> bytes:
    """
    Decode a base58 string.

    Raises ValueError on characters outside the alphabet (``0``, ``O``, ``I``
    and ``l`` are never valid).
    """
    number = 0
    for char in text:
        try:
            number = number * 58 + _BASE58_INDEX[char]
        except KeyError:
            raise ValueError(f"Invalid base58 character {char!r}") from None

    leading_ones = len(text) - len(text.lstrip("1"))
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    return b"\x00" * leading_ones + body


# ─── compact-u16 ──────────────────────────────────────────────────────────────


def encode_compact_u16(value: int) -> bytes:
    """Encode a length prefix as 1-3 bytes, 7 bits per byte, low bits first."""
    if not 0 <= value <= 0xFFFF:
        raise ValueError(f"compact-u16 value out of range: {value!r}")

    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


# ─── borsh strings ────────────────────────────────────────────────────────────


def pack_string(value: str) -> bytes:
    raw = value.encode("utf-8")
    return struct.pack("<I", len(raw)) + raw


def unpack_string(data: bytes, offset: int) -> tuple[str, int]:
    """Return ``(string, next_offset)``; raises ValueError on truncated input."""
    if offset + 4 > len(data):
        raise ValueError("Truncated string length prefix")
    (length,) = struct.unpack_from("<I", data, offset)
    start = offset + 4
    end = start + length
    if end > len(data):
        raise ValueError(f"String of {length} bytes overruns buffer of {len(data)} bytes")
    return data[start:end].decode("utf-8"), end
