"""Storage layer: control file codec, WAL file names and data directory I/O."""

from storage.codec import DecodeResult, IntegrityStatus, decode_control_file, encode_control_file
from storage.datadir import DataDirectory
from storage.wal import WalSegmentPosition, resolve_wal_file_name

__all__ = [
    "DataDirectory",
    "DecodeResult",
    "IntegrityStatus",
    "WalSegmentPosition",
    "decode_control_file",
    "encode_control_file",
    "resolve_wal_file_name",
]
