"""WAL segment file name resolution.

A WAL file name is 24 hex digits:

    TTTTTTTT LLLLLLLL SSSSSSSS
    timeline log-id   segment within log-id

Each "log id" spans 4 GiB of WAL, so how many segments it holds (and so the
segment number a name stands for) depends on the WAL segment size.
"""

import re

from pydantic import BaseModel, ConfigDict

from exceptions import InvalidSegmentSizeError, InvalidWalFileNameError
from models.identifiers import is_valid_wal_seg_size

WAL_FILE_NAME_LEN = 24

_WAL_FILE_NAME_RE = re.compile(r"[0-9A-Fa-f]{24}")

# Bytes addressed by one log id
_LOG_ID_SPAN = 0x100000000


class WalSegmentPosition(BaseModel):
    """Where a WAL file sits in the history: its timeline and first byte."""

    model_config = ConfigDict(frozen=True)

    timeline: int
    segment_no: int
    start_offset: int


def is_valid_wal_file_name(name: str) -> bool:
    return _WAL_FILE_NAME_RE.fullmatch(name) is not None


def segments_per_log_id(segment_size: int) -> int:
    return _LOG_ID_SPAN // segment_size


def resolve_wal_file_name(name: str, segment_size: int) -> WalSegmentPosition:
    """Split a WAL file name into timeline, segment number and start offset.

    segment_size must be the final size for this run: the same name maps to
    a different offset under a different segment size.
    """
    if not is_valid_wal_file_name(name):
        raise InvalidWalFileNameError(f"WAL file name must be {WAL_FILE_NAME_LEN} hex digits, got {name!r}")
    if not is_valid_wal_seg_size(segment_size):
        raise InvalidSegmentSizeError(f"Invalid WAL segment size ({segment_size} bytes)")

    timeline = int(name[0:8], 16)
    log_id = int(name[8:16], 16)
    seg = int(name[16:24], 16)

    segment_no = log_id * segments_per_log_id(segment_size) + seg
    return WalSegmentPosition(
        timeline=timeline,
        segment_no=segment_no,
        start_offset=segment_no * segment_size,
    )
