"""Field override engine.

Each setter checks its input first and only then touches the record, so a
rejected override leaves the working copy exactly as it was. apply_overrides
checks the whole request before applying any of it.

The epoch and the next xid share one 64-bit nextXid; their setters rebuild
the packed value from the half they own plus the half already stored, so both
can be requested together in either order.
"""

import structlog

from exceptions import (
    InvalidEpochError,
    InvalidMultiTransactionIdError,
    InvalidOffsetError,
    InvalidOidError,
    InvalidSegmentSizeError,
    InvalidTransactionIdError,
    InvalidWalFileNameError,
)
from models.control import ControlRecord
from models.identifiers import (
    FIRST_MULTI_XACT_ID,
    FIRST_NORMAL_TRANSACTION_ID,
    INVALID_MULTI_XACT_ID,
    INVALID_OID,
    INVALID_TRANSACTION_ID,
    UNSET_EPOCH,
    UNSET_MULTI_OFFSET,
    full_xid,
    is_normal_xid,
    is_valid_wal_seg_size,
)
from models.overrides import OverrideRequest
from storage.wal import WalSegmentPosition, is_valid_wal_file_name, resolve_wal_file_name

log = structlog.get_logger()


def _check_next_oid(oid: int) -> None:
    if oid == INVALID_OID:
        raise InvalidOidError("OID (-o) must not be 0")


def _check_next_xid(xid: int) -> None:
    if not is_normal_xid(xid):
        raise InvalidTransactionIdError(
            f"transaction ID (-x) must be greater than or equal to {FIRST_NORMAL_TRANSACTION_ID}"
        )


def _check_xid_epoch(epoch: int) -> None:
    if epoch == UNSET_EPOCH:
        raise InvalidEpochError(f"transaction ID epoch (-e) must not be {UNSET_EPOCH:#x}")


def _check_multi_xids(next_multi: int, oldest_multi: int) -> None:
    if next_multi == INVALID_MULTI_XACT_ID:
        raise InvalidMultiTransactionIdError("multitransaction ID (-m) must not be 0")
    if oldest_multi == INVALID_MULTI_XACT_ID:
        raise InvalidMultiTransactionIdError("oldest multitransaction ID (-m) must not be 0")


def _check_next_multi_offset(offset: int) -> None:
    if offset == UNSET_MULTI_OFFSET:
        raise InvalidOffsetError(f"multitransaction offset (-O) must not be {UNSET_MULTI_OFFSET:#x}")


def _check_commit_ts_xids(oldest: int, newest: int) -> None:
    for xid in (oldest, newest):
        if xid != INVALID_TRANSACTION_ID and not is_normal_xid(xid):
            raise InvalidTransactionIdError(
                f"transaction ID (-c) must be either {INVALID_TRANSACTION_ID} "
                f"or greater than or equal to {FIRST_NORMAL_TRANSACTION_ID}"
            )


def _check_oldest_xid(xid: int) -> None:
    if not is_normal_xid(xid):
        raise InvalidTransactionIdError(
            f"oldest transaction ID (-u) must be greater than or equal to {FIRST_NORMAL_TRANSACTION_ID}"
        )


def _check_wal_segment_size(size: int) -> None:
    if not is_valid_wal_seg_size(size):
        raise InvalidSegmentSizeError("WAL segment size must be a power of two between 1 MB and 1024 MB")


def corrected_oldest_multi(oldest_multi: int) -> int:
    """Move a wrapped-around oldest multixact id past the reserved range, once."""
    if oldest_multi < FIRST_MULTI_XACT_ID:
        return oldest_multi + FIRST_MULTI_XACT_ID
    return oldest_multi


def set_next_oid(record: ControlRecord, oid: int) -> None:
    _check_next_oid(oid)
    record.checkpoint_copy.next_oid = oid


def set_next_xid(record: ControlRecord, xid: int) -> None:
    """Replace the low half of nextXid, keeping its epoch."""
    _check_next_xid(xid)
    checkpoint = record.checkpoint_copy
    checkpoint.next_full_xid = full_xid(checkpoint.next_xid_epoch, xid)


def set_xid_epoch(record: ControlRecord, epoch: int) -> None:
    """Replace the high half of nextXid, keeping the xid."""
    _check_xid_epoch(epoch)
    checkpoint = record.checkpoint_copy
    checkpoint.next_full_xid = full_xid(epoch, checkpoint.next_xid)


def set_multi_xids(record: ControlRecord, next_multi: int, oldest_multi: int) -> None:
    """Set nextMulti and oldestMulti and forget which database held the oldest.

    An oldest value below FIRST_MULTI_XACT_ID is treated as having wrapped
    and is moved up by FIRST_MULTI_XACT_ID, once.
    """
    _check_multi_xids(next_multi, oldest_multi)
    checkpoint = record.checkpoint_copy
    checkpoint.next_multi = next_multi
    checkpoint.oldest_multi = corrected_oldest_multi(oldest_multi)
    checkpoint.oldest_multi_db = INVALID_OID


def set_next_multi_offset(record: ControlRecord, offset: int) -> None:
    _check_next_multi_offset(offset)
    record.checkpoint_copy.next_multi_offset = offset


def set_commit_ts_xids(record: ControlRecord, oldest: int, newest: int) -> None:
    """Set the commit timestamp bounds; a 0 leaves that bound as it is."""
    _check_commit_ts_xids(oldest, newest)
    checkpoint = record.checkpoint_copy
    if oldest != INVALID_TRANSACTION_ID:
        checkpoint.oldest_commit_ts_xid = oldest
    if newest != INVALID_TRANSACTION_ID:
        checkpoint.newest_commit_ts_xid = newest


def set_oldest_xid(record: ControlRecord, xid: int) -> None:
    _check_oldest_xid(xid)
    checkpoint = record.checkpoint_copy
    checkpoint.oldest_xid = xid
    checkpoint.oldest_xid_db = INVALID_OID


def set_wal_segment_size(record: ControlRecord, size: int) -> None:
    _check_wal_segment_size(size)
    record.xlog_seg_size = size


def raise_timeline_floor(record: ControlRecord, timeline: int) -> bool:
    """Move to `timeline` if it is past the current one. Returns True if moved."""
    checkpoint = record.checkpoint_copy
    if timeline <= checkpoint.this_timeline_id:
        return False
    checkpoint.this_timeline_id = timeline
    checkpoint.prev_timeline_id = timeline
    return True


def validate_request(request: OverrideRequest) -> None:
    """Check every requested override without touching any record."""
    if request.next_oid is not None:
        _check_next_oid(request.next_oid)
    if request.next_xid is not None:
        _check_next_xid(request.next_xid)
    if request.xid_epoch is not None:
        _check_xid_epoch(request.xid_epoch)
    if request.multi_xids is not None:
        _check_multi_xids(*request.multi_xids)
    if request.next_multi_offset is not None:
        _check_next_multi_offset(request.next_multi_offset)
    if request.commit_ts_xids is not None:
        _check_commit_ts_xids(*request.commit_ts_xids)
    if request.oldest_xid is not None:
        _check_oldest_xid(request.oldest_xid)
    if request.wal_segment_size is not None:
        _check_wal_segment_size(request.wal_segment_size)
    if request.next_wal_file is not None and not is_valid_wal_file_name(request.next_wal_file):
        raise InvalidWalFileNameError(f"invalid WAL file name (-l): {request.next_wal_file!r}")


def apply_overrides(record: ControlRecord, request: OverrideRequest) -> ControlRecord:
    """Apply every requested override to `record` and return it.

    The whole request is validated first. The WAL file name is resolved with
    the segment size this run will write: the requested one if any, else the
    one already in the record.
    """
    validate_request(request)

    segment_size = request.wal_segment_size or record.xlog_seg_size
    position: WalSegmentPosition | None = None
    if request.next_wal_file is not None:
        position = resolve_wal_file_name(request.next_wal_file, segment_size)
        log.info(
            "resolved next WAL file",
            wal_file=request.next_wal_file,
            timeline=position.timeline,
            segment_no=position.segment_no,
            start_offset=position.start_offset,
        )

    if request.next_oid is not None:
        set_next_oid(record, request.next_oid)
        log.info("set next OID", next_oid=request.next_oid)

    if request.next_xid is not None:
        set_next_xid(record, request.next_xid)
        log.info("set next transaction ID", next_xid=request.next_xid)

    if request.multi_xids is not None:
        set_multi_xids(record, *request.multi_xids)
        log.info(
            "set multitransaction IDs",
            next_multi=record.checkpoint_copy.next_multi,
            oldest_multi=record.checkpoint_copy.oldest_multi,
        )

    if request.next_multi_offset is not None:
        set_next_multi_offset(record, request.next_multi_offset)
        log.info("set next multitransaction offset", next_multi_offset=request.next_multi_offset)

    if position is not None and raise_timeline_floor(record, position.timeline):
        log.info("raised timeline", timeline=position.timeline)

    if request.commit_ts_xids is not None:
        set_commit_ts_xids(record, *request.commit_ts_xids)
        log.info(
            "set commit timestamp transaction IDs",
            oldest=record.checkpoint_copy.oldest_commit_ts_xid,
            newest=record.checkpoint_copy.newest_commit_ts_xid,
        )

    if request.xid_epoch is not None:
        set_xid_epoch(record, request.xid_epoch)
        log.info("set transaction ID epoch", epoch=request.xid_epoch)

    if request.oldest_xid is not None:
        set_oldest_xid(record, request.oldest_xid)
        log.info("set oldest transaction ID", oldest_xid=request.oldest_xid)

    if request.wal_segment_size is not None:
        set_wal_segment_size(record, request.wal_segment_size)
        log.info("set WAL segment size", wal_segment_size=request.wal_segment_size)

    return record
