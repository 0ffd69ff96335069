"""Motorola over-the-air talker alias decoder (P25 Phase 1 and Phase 2).

Motorola systems broadcast unit aliases on the control channel as a
manufacturer-specific (MFID 0x90) announcement split across several
signalling messages. The receiver buffers the fragments for one announcement
(already ordered by sequence) and hands them here once enough have arrived.

Phase 1 (FDMA) announcement, 10-byte TSBK bodies with the CRC stripped:

    fragment 0 (header):  opcode 0x15 | MFID | talkgroup(16) | blocks | seq
    fragment 1..n (data): opcode 0x17 | MFID | block# | 7 payload bytes

    payload: WACN(20) SYS(12) RADIO(24) LEN(8) | alias[LEN] | CRC16

Phase 2 (TDMA) announcement, 18-byte MAC messages, no separate header:

    fragment 0..n:        opcode 0x91 | MFID | length | frag# | 14 payload bytes

    payload: CRC16 | talkgroup(16) | WACN(20) SYS(12) RADIO(24) LEN(8) | alias[LEN]

The CRC is CRC-16/CCITT over everything after (Phase 2) or before (Phase 1)
the checksum field, excluding trailing padding. Alias text is a scrambled
stream of 7-bit characters; see decode_alias_text().

Both entry points are pure functions and safe to call from any thread.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from unittags.errors import IntegrityError
from unittags.models import DecodeResult
from unittags.utils.packing import BitFieldSpec, crc16_ccitt, unpack_bit_fields, unpack_symbols

logger = logging.getLogger(__name__)

MAX_FRAGMENTS = 10
MOTOROLA_MFID = 0x90

SOURCE_FDMA = "MotoP25_FDMA"
SOURCE_TDMA = "MotoP25_TDMA"

# Fragment opcodes
OPCODE_P1_HEADER = 0x15
OPCODE_P1_DATA = 0x17
OPCODE_P2_DATA = 0x91

ALIAS_SYMBOL_BITS = 7
CRC_BYTES = 2
TALKGROUP_BYTES = 2

# Fixed-width fields that precede the encoded alias in both generations
ALIAS_HEADER_FIELDS = (
    BitFieldSpec("wacn", 20),
    BitFieldSpec("system", 12),
    BitFieldSpec("radio", 24),
    BitFieldSpec("length", 8),
)
ALIAS_HEADER_BYTES = sum(f.width for f in ALIAS_HEADER_FIELDS) // 8


@dataclass(frozen=True)
class FragmentFraming:
    """Generation-specific fragment layout.

    Attributes:
        source: Source tag reported in DecodeResult
        min_fragments: Fewest populated buffers that can hold an announcement
        first_data_fragment: Index of the first buffer carrying payload bytes
        chunk_offset: Byte offset of the payload chunk within a fragment
        chunk_length: Payload bytes carried per fragment
        data_opcode: Opcode every payload-carrying fragment starts with
    """
    source: str
    min_fragments: int
    first_data_fragment: int
    chunk_offset: int
    chunk_length: int
    data_opcode: int

    @property
    def fragment_length(self) -> int:
        return self.chunk_offset + self.chunk_length


PHASE1_FRAMING = FragmentFraming(
    source=SOURCE_FDMA,
    min_fragments=3,
    first_data_fragment=1,
    chunk_offset=3,
    chunk_length=7,
    data_opcode=OPCODE_P1_DATA,
)

PHASE2_FRAMING = FragmentFraming(
    source=SOURCE_TDMA,
    min_fragments=2,
    first_data_fragment=0,
    chunk_offset=4,
    chunk_length=14,
    data_opcode=OPCODE_P2_DATA,
)

# Phase 1 header fragment: opcode, MFID, talkgroup(2), block count, sequence
PHASE1_HEADER_LENGTH = 6


@dataclass(frozen=True)
class AliasBody:
    """Fields parsed from the common part of an alias payload."""
    wacn: int
    system: int
    radio_id: int
    encoded_alias: bytes
    end: int  # Offset just past the encoded alias


def decode_alias_text(encoded: bytes | bytearray) -> str:
    """Decode the scrambled 7-bit alias stream into display text.

    Each encoded byte is descrambled with a running accumulator seeded with
    the array length: the accumulator for byte i is the length plus the sum of
    all earlier encoded bytes, mod 256. The plain bytes are a big-endian stream
    of 7-bit ASCII symbols; a zero symbol terminates the text and non-printable
    symbols are dropped.
    """
    enc = np.frombuffer(bytes(encoded), dtype=np.uint8).astype(np.int64)
    # Exclusive prefix sum: accumulator value before each byte
    acc = len(enc) + np.cumsum(enc) - enc
    plain = ((enc - acc) & 0xFF).astype(np.uint8)

    chars: list[str] = []
    for symbol in unpack_symbols(plain, ALIAS_SYMBOL_BITS):
        if symbol == 0:
            break
        if 0x20 <= symbol <= 0x7E:
            chars.append(chr(symbol))
    return "".join(chars).rstrip()


def decode_motorola_alias(fragments: Sequence[bytes], messages: int) -> DecodeResult:
    """Decode a Phase 1 (FDMA) Motorola alias announcement.

    Args:
        fragments: Up to 10 fragment buffers; fragment 0 is the header
        messages: Number of populated leading buffers

    Returns:
        DecodeResult, success=False on short input, bad framing or CRC mismatch
    """
    framing = PHASE1_FRAMING
    if not _has_enough_fragments(fragments, messages, framing):
        return DecodeResult.failed(framing.source)

    try:
        talkgroup = _read_phase1_header(fragments[0])
        payload = _assemble_payload(fragments, messages, framing)
        body = _parse_body(payload, 0)
        received_crc = _read_uint(payload, body.end, CRC_BYTES)
        _validate_crc(payload[:body.end], received_crc)
    except IntegrityError as e:
        logger.debug(f"{framing.source} alias rejected: {e}")
        return DecodeResult.failed(framing.source)
    except ValueError as e:
        logger.debug(f"{framing.source} alias malformed: {e}")
        return DecodeResult.failed(framing.source)

    return _build_result(body, talkgroup, framing.source)


def decode_motorola_alias_p2(fragments: Sequence[bytes], messages: int) -> DecodeResult:
    """Decode a Phase 2 (TDMA) Motorola alias announcement.

    Args:
        fragments: Up to 10 MAC message buffers
        messages: Number of populated leading buffers

    Returns:
        DecodeResult, success=False on short input, bad framing or CRC mismatch
    """
    framing = PHASE2_FRAMING
    if not _has_enough_fragments(fragments, messages, framing):
        return DecodeResult.failed(framing.source)

    try:
        payload = _assemble_payload(fragments, messages, framing)
        received_crc = _read_uint(payload, 0, CRC_BYTES)
        talkgroup = _read_uint(payload, CRC_BYTES, TALKGROUP_BYTES)
        body = _parse_body(payload, CRC_BYTES + TALKGROUP_BYTES)
        _validate_crc(payload[CRC_BYTES:body.end], received_crc)
    except IntegrityError as e:
        logger.debug(f"{framing.source} alias rejected: {e}")
        return DecodeResult.failed(framing.source)
    except ValueError as e:
        logger.debug(f"{framing.source} alias malformed: {e}")
        return DecodeResult.failed(framing.source)

    return _build_result(body, talkgroup, framing.source)


def _has_enough_fragments(
    fragments: Sequence[bytes], messages: int, framing: FragmentFraming
) -> bool:
    # Checked before touching any buffer contents
    if messages < framing.min_fragments:
        logger.debug(
            f"{framing.source} alias needs {framing.min_fragments} fragments, have {messages}"
        )
        return False
    if messages > MAX_FRAGMENTS or messages > len(fragments):
        logger.debug(
            f"{framing.source} alias fragment count {messages} exceeds buffers "
            f"({len(fragments)}, max {MAX_FRAGMENTS})"
        )
        return False
    return True


def _read_phase1_header(header: bytes) -> int:
    """Validate the Phase 1 header fragment and return its talkgroup."""
    header = bytes(header)
    if len(header) < PHASE1_HEADER_LENGTH:
        raise ValueError(f"header fragment is {len(header)} bytes, need {PHASE1_HEADER_LENGTH}")
    if header[0] != OPCODE_P1_HEADER:
        raise ValueError(f"header fragment opcode 0x{header[0]:02X} is not an alias header")
    if header[1] != MOTOROLA_MFID:
        raise ValueError(f"header fragment MFID 0x{header[1]:02X} is not Motorola")
    return _read_uint(header, 2, TALKGROUP_BYTES)


def _assemble_payload(
    fragments: Sequence[bytes], messages: int, framing: FragmentFraming
) -> bytes:
    """Concatenate the payload chunks of the populated fragments, in order."""
    chunks: list[bytes] = []
    for index in range(framing.first_data_fragment, messages):
        fragment = bytes(fragments[index])
        if len(fragment) < framing.fragment_length:
            raise ValueError(
                f"fragment {index} is {len(fragment)} bytes, need {framing.fragment_length}"
            )
        if fragment[0] != framing.data_opcode:
            raise ValueError(f"fragment {index} opcode 0x{fragment[0]:02X} is not an alias block")
        if fragment[1] != MOTOROLA_MFID:
            raise ValueError(f"fragment {index} MFID 0x{fragment[1]:02X} is not Motorola")
        chunks.append(fragment[framing.chunk_offset:framing.fragment_length])
    payload = b"".join(chunks)
    logger.debug(f"{framing.source} assembled payload: {payload.hex()}")
    return payload


def _parse_body(payload: bytes, offset: int) -> AliasBody:
    """Parse WACN/SYS/RADIO/LEN and slice the encoded alias."""
    header_end = offset + ALIAS_HEADER_BYTES
    if header_end > len(payload):
        raise ValueError(f"payload is {len(payload)} bytes, alias header ends at {header_end}")
    fields = unpack_bit_fields(payload[offset:header_end], ALIAS_HEADER_FIELDS)

    alias_end = header_end + fields["length"]
    if alias_end > len(payload):
        raise ValueError(f"alias length {fields['length']} runs past payload ({len(payload)} bytes)")

    return AliasBody(
        wacn=fields["wacn"],
        system=fields["system"],
        radio_id=fields["radio"],
        encoded_alias=payload[header_end:alias_end],
        end=alias_end,
    )


def _read_uint(data: bytes, offset: int, width: int) -> int:
    if offset < 0 or offset + width > len(data):
        raise ValueError(f"cannot read {width} bytes at {offset} (len={len(data)})")
    return int.from_bytes(data[offset:offset + width], "big")


def _validate_crc(covered: bytes, received: int) -> None:
    computed = crc16_ccitt(covered)
    if computed != received:
        raise IntegrityError(received, computed)


def _build_result(body: AliasBody, talkgroup: int, source: str) -> DecodeResult:
    alias = decode_alias_text(body.encoded_alias)
    if not alias or body.radio_id == 0:
        logger.debug(f"{source} alias discarded: radio={body.radio_id} alias={alias!r}")
        return DecodeResult.failed(source)

    logger.debug(f"{source} alias decoded: radio={body.radio_id} alias={alias!r} tg={talkgroup}")
    return DecodeResult(
        success=True,
        radio_id=body.radio_id,
        alias=alias,
        source=source,
        wacn=f"{body.wacn:05X}",
        sys=f"{body.system:03X}",
        talkgroup_id=talkgroup,
    )


__all__ = [
    "MAX_FRAGMENTS",
    "MOTOROLA_MFID",
    "PHASE1_FRAMING",
    "PHASE2_FRAMING",
    "SOURCE_FDMA",
    "SOURCE_TDMA",
    "FragmentFraming",
    "decode_alias_text",
    "decode_motorola_alias",
    "decode_motorola_alias_p2",
]
