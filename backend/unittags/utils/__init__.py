"""Utility modules for unittags."""

from unittags.utils.packing import (
    BitFieldSpec,
    bits_to_bytes,
    bits_to_int,
    bytes_to_bits,
    crc16_ccitt,
    int_to_bits,
    pack_bit_fields,
    pack_symbols,
    unpack_bit_fields,
    unpack_symbols,
)

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
