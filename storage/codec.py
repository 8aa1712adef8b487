"""Control file encoding and decoding.

File layout (global/pg_control, 8192 bytes):
    [ControlFileData:296][zero padding:7896]

The CRC is CRC-32C over bytes [0, 288) of ControlFileData, stored
little-endian at offset 288. See models.control for the field layout.
"""

import struct
from enum import Enum

import crc32c
import structlog
from pydantic import BaseModel

from exceptions import InvalidSegmentSizeError, UnsupportedControlFileError
from models.control import (
    CONTROL_FILE_CRC_OFFSET,
    CONTROL_FILE_DATA_SIZE,
    PG_CONTROL_FILE_SIZE,
    PG_CONTROL_VERSION,
    ControlRecord,
)
from models.identifiers import is_valid_wal_seg_size

log = structlog.get_logger()

# pg_control_version sits right after the 8-byte system identifier
_VERSION_FMT = "<I"
_VERSION_OFFSET = 8


class IntegrityStatus(Enum):
    VERIFIED = "verified"
    CHECKSUM_MISMATCH = "checksum_mismatch"


class DecodeResult(BaseModel):
    """A decoded control record and whether its stored CRC checked out.

    A CHECKSUM_MISMATCH record is usable but best-effort: the operator has
    been warned and every value in it should be treated as a guess.
    """

    record: ControlRecord
    integrity: IntegrityStatus

    @property
    def verified(self) -> bool:
        return self.integrity is IntegrityStatus.VERIFIED


def compute_checksum(data: bytes) -> int:
    """Compute the CRC-32C covering everything before the crc field."""
    return crc32c.crc32c(data[:CONTROL_FILE_CRC_OFFSET]) & 0xFFFFFFFF


def decode_control_file(data: bytes) -> DecodeResult:
    """Decode pg_control bytes.

    Raises UnsupportedControlFileError when the data is too short or carries a
    different pg_control_version, and InvalidSegmentSizeError when the stored
    WAL segment size is unusable. A CRC mismatch is only logged.
    """
    if len(data) < CONTROL_FILE_DATA_SIZE:
        raise UnsupportedControlFileError(
            f"Control file too short: expected at least {CONTROL_FILE_DATA_SIZE} bytes, got {len(data)}"
        )

    (version,) = struct.unpack_from(_VERSION_FMT, data, _VERSION_OFFSET)
    if version != PG_CONTROL_VERSION:
        raise UnsupportedControlFileError(
            f"Unsupported pg_control_version: expected {PG_CONTROL_VERSION}, got {version}"
        )

    record = ControlRecord.from_bytes(data)

    expected = compute_checksum(data)
    if record.crc == expected:
        integrity = IntegrityStatus.VERIFIED
    else:
        log.warning(
            "pg_control exists but has invalid CRC; proceed with caution",
            stored=f"0x{record.crc:08X}",
            computed=f"0x{expected:08X}",
        )
        integrity = IntegrityStatus.CHECKSUM_MISMATCH

    if not is_valid_wal_seg_size(record.xlog_seg_size):
        raise InvalidSegmentSizeError(
            f"pg_control specifies invalid WAL segment size ({record.xlog_seg_size} bytes)"
        )

    return DecodeResult(record=record, integrity=integrity)


def encode_control_file(record: ControlRecord) -> bytes:
    """Encode a record into a full pg_control file with a fresh CRC.

    The record itself is left untouched; only the returned bytes carry the new
    crc.
    """
    if not is_valid_wal_seg_size(record.xlog_seg_size):
        raise InvalidSegmentSizeError(f"Refusing to encode invalid WAL segment size ({record.xlog_seg_size} bytes)")

    # Pack with the stored crc, then patch in the one computed over the result
    data = bytearray(record.to_bytes())
    checksum = compute_checksum(bytes(data))
    struct.pack_into("<I", data, CONTROL_FILE_CRC_OFFSET, checksum)

    return bytes(data).ljust(PG_CONTROL_FILE_SIZE, b"\x00")
