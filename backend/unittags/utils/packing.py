"""Bit and byte helpers for vendor alias payloads.

Bit sequences are numpy uint8 arrays of 0/1 values, MSB first, so a payload
can be sliced into arbitrary-width fields (20-bit WACN, 12-bit system ID,
7-bit alias symbols) without hand-rolled shifting loops.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

import numpy as np

CRC16_CCITT_POLY = 0x1021
CRC16_CCITT_INIT = 0xFFFF


@dataclass(frozen=True)
class BitFieldSpec:
    """Specification for a named bitfield."""

    name: str
    width: int
    min_value: int = 0
    max_value: int | None = None

    def __post_init__(self) -> None:
        if self.width <= 0:
            raise ValueError(f"{self.name} width must be positive (got {self.width})")
        max_for_width = (1 << self.width) - 1
        max_value = max_for_width if self.max_value is None else int(self.max_value)
        if max_value > max_for_width:
            raise ValueError(
                f"{self.name} max_value {max_value} exceeds width {self.width}"
            )
        object.__setattr__(self, "max_value", max_value)

    def validate(self, value: int) -> int:
        int_value = int(value)
        if int_value < self.min_value or int_value > int(self.max_value):
            raise ValueError(
                f"{self.name} out of range {self.min_value}-{self.max_value} "
                f"(got {int_value})"
            )
        return int_value


def bytes_to_bits(data: bytes | bytearray | np.ndarray) -> np.ndarray:
    """Expand bytes into a big-endian bit array."""
    return np.unpackbits(np.frombuffer(bytes(data), dtype=np.uint8))


def bits_to_bytes(bits: Sequence[int] | np.ndarray) -> bytes:
    """Pack bits (MSB first) into bytes, zero-padding the final byte."""
    return np.packbits(np.asarray(bits, dtype=np.uint8)).tobytes()


def bits_to_int(bits: Sequence[int] | np.ndarray, start: int, length: int) -> int:
    """Extract an unsigned integer from a bit sequence."""
    if length <= 0:
        raise ValueError("length must be positive")
    if start < 0 or start + length > len(bits):
        raise ValueError(
            f"cannot read {length} bits from offset {start} (len={len(bits)})"
        )
    value = 0
    for bit in bits[start:start + length]:
        value = (value << 1) | (int(bit) & 1)
    return value


def int_to_bits(value: int, width: int) -> np.ndarray:
    """Convert int to a big-endian bit array of fixed width."""
    if width <= 0:
        raise ValueError("width must be positive")
    if value < 0 or value >= (1 << width):
        raise ValueError(f"value {value} does not fit in {width} bits")
    shifts = np.arange(width - 1, -1, -1, dtype=np.int64)
    return ((int(value) >> shifts) & 1).astype(np.uint8)


def pack_bit_fields(
    fields: Sequence[BitFieldSpec],
    values: Mapping[str, int],
) -> bytes:
    """Pack named bitfields into bytes (total width must be byte aligned)."""
    if sum(f.width for f in fields) % 8:
        raise ValueError("bit fields must total a multiple of 8 bits")
    chunks = []
    for field in fields:
        if field.name not in values:
            raise ValueError(f"missing value for {field.name}")
        chunks.append(int_to_bits(field.validate(values[field.name]), field.width))
    return bits_to_bytes(np.concatenate(chunks))


def unpack_bit_fields(
    data: bytes | bytearray,
    fields: Sequence[BitFieldSpec],
    *,
    offset: int = 0,
) -> dict[str, int]:
    """Extract named bitfields from a byte buffer, starting at a bit offset."""
    bits = bytes_to_bits(data)
    results: dict[str, int] = {}
    cursor = offset
    for field in fields:
        if cursor + field.width > len(bits):
            raise ValueError(
                f"not enough bits to read {field.name} ({field.width} bits at {cursor})"
            )
        results[field.name] = field.validate(bits_to_int(bits, cursor, field.width))
        cursor += field.width
    return results


def unpack_symbols(data: bytes | bytearray | np.ndarray, width: int) -> list[int]:
    """Split a byte stream into consecutive ``width``-bit symbols.

    Trailing bits that do not fill a whole symbol are discarded.
    """
    bits = bytes_to_bits(data)
    count = len(bits) // width
    if count == 0:
        return []
    grouped = bits[: count * width].reshape(count, width).astype(np.int64)
    weights = 1 << np.arange(width - 1, -1, -1, dtype=np.int64)
    return [int(v) for v in grouped @ weights]


def pack_symbols(symbols: Sequence[int], width: int) -> bytes:
    """Pack ``width``-bit symbols MSB first, zero-padding the final byte."""
    if not symbols:
        return b""
    bits = np.concatenate([int_to_bits(int(s), width) for s in symbols])
    return bits_to_bytes(bits)


def crc16_ccitt(
    data: bytes | bytearray,
    *,
    polynomial: int = CRC16_CCITT_POLY,
    init: int = CRC16_CCITT_INIT,
) -> int:
    """CRC-16/CCITT (no reflection, no final xor) over a byte buffer."""
    crc = init & 0xFFFF
    for byte in bytes(data):
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ polynomial) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return crc


__all__ = [
    "BitFieldSpec",
    "bits_to_bytes",
    "bits_to_int",
    "bytes_to_bits",
    "crc16_ccitt",
    "int_to_bits",
    "pack_bit_fields",
    "pack_symbols",
    "unpack_bit_fields",
    "unpack_symbols",
]
