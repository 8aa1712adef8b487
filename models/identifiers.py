"""Identifier constants, sentinels and bit helpers for control file fields.

PostgreSQL keeps a 64-bit "full" transaction id as a single value:

    [epoch:32][xid:32]

The epoch counts xid wraparounds. Both halves are only ever read through the
helpers below so a write to one half can never clobber the other.
"""

from typing import Annotated

from pydantic import Field

UInt32 = Annotated[int, Field(ge=0, le=0xFFFFFFFF)]
UInt64 = Annotated[int, Field(ge=0, le=0xFFFFFFFFFFFFFFFF)]
Int32 = Annotated[int, Field(ge=-(2**31), le=2**31 - 1)]
Int64 = Annotated[int, Field(ge=-(2**63), le=2**63 - 1)]

# Transaction ids 0..2 are reserved (invalid, bootstrap, frozen)
INVALID_TRANSACTION_ID = 0
FIRST_NORMAL_TRANSACTION_ID = 3

INVALID_OID = 0

INVALID_MULTI_XACT_ID = 0
FIRST_MULTI_XACT_ID = 1

# All-ones values the tool treats as "not set"; never written explicitly
UNSET_EPOCH = 0xFFFFFFFF
UNSET_MULTI_OFFSET = 0xFFFFFFFF

MIN_WAL_SEG_SIZE = 1024 * 1024
MAX_WAL_SEG_SIZE = 1024 * 1024 * 1024
DEFAULT_WAL_SEG_SIZE = 16 * 1024 * 1024

_XID_MASK = 0xFFFFFFFF


def is_normal_xid(xid: int) -> bool:
    return xid >= FIRST_NORMAL_TRANSACTION_ID


def is_valid_wal_seg_size(size: int) -> bool:
    """Power of two between 1 MiB and 1 GiB inclusive."""
    return MIN_WAL_SEG_SIZE <= size <= MAX_WAL_SEG_SIZE and size & (size - 1) == 0


def full_xid(epoch: int, xid: int) -> int:
    """Pack an epoch and a 32-bit xid into a full transaction id."""
    return ((epoch & _XID_MASK) << 32) | (xid & _XID_MASK)


def epoch_of(full: int) -> int:
    return full >> 32


def xid_of(full: int) -> int:
    return full & _XID_MASK
