"""Tests for the field override engine."""

import pytest
from structlog.testing import capture_logs

from editor.overrides import (
    apply_overrides,
    corrected_oldest_multi,
    raise_timeline_floor,
    set_commit_ts_xids,
    set_multi_xids,
    set_next_multi_offset,
    set_next_oid,
    set_next_xid,
    set_oldest_xid,
    set_wal_segment_size,
    set_xid_epoch,
    validate_request,
)
from exceptions import (
    InvalidEpochError,
    InvalidMultiTransactionIdError,
    InvalidOffsetError,
    InvalidOidError,
    InvalidSegmentSizeError,
    InvalidTransactionIdError,
    InvalidWalFileNameError,
    OverrideError,
)
from models import OverrideRequest
from models.identifiers import FIRST_MULTI_XACT_ID, INVALID_OID, UNSET_EPOCH, UNSET_MULTI_OFFSET, full_xid

MB = 1024 * 1024


class TestNextOid:
    def test_sets_value(self, control_record):
        set_next_oid(control_record, 16384)
        assert control_record.checkpoint_copy.next_oid == 16384

    def test_rejects_zero(self, control_record):
        with pytest.raises(InvalidOidError):
            set_next_oid(control_record, 0)
        assert control_record.checkpoint_copy.next_oid == 100


class TestNextXidAndEpoch:
    def test_xid_keeps_epoch(self, control_record):
        control_record.checkpoint_copy.next_full_xid = full_xid(9, 1000)
        set_next_xid(control_record, 5000)
        assert control_record.checkpoint_copy.next_xid_epoch == 9
        assert control_record.checkpoint_copy.next_xid == 5000

    def test_epoch_keeps_xid(self, control_record):
        set_xid_epoch(control_record, 4)
        assert control_record.checkpoint_copy.next_xid_epoch == 4
        assert control_record.checkpoint_copy.next_xid == 1000

    def test_order_does_not_matter(self, control_record):
        other = control_record.model_copy(deep=True)

        set_xid_epoch(control_record, 2)
        set_next_xid(control_record, 5000)
        set_next_xid(other, 5000)
        set_xid_epoch(other, 2)

        expected = full_xid(2, 5000)
        assert control_record.checkpoint_copy.next_full_xid == expected
        assert other.checkpoint_copy.next_full_xid == expected

    @pytest.mark.parametrize("xid", [0, 1, 2])
    def test_rejects_special_xids(self, control_record, xid):
        with pytest.raises(InvalidTransactionIdError, match="greater than or equal to 3"):
            set_next_xid(control_record, xid)
        assert control_record.checkpoint_copy.next_xid == 1000

    def test_accepts_first_normal_xid(self, control_record):
        set_next_xid(control_record, 3)
        assert control_record.checkpoint_copy.next_xid == 3

    def test_rejects_unset_epoch(self, control_record):
        before = control_record.model_copy(deep=True)
        with pytest.raises(InvalidEpochError):
            set_xid_epoch(control_record, UNSET_EPOCH)
        assert control_record == before

    def test_accepts_largest_epoch(self, control_record):
        set_xid_epoch(control_record, UNSET_EPOCH - 1)
        assert control_record.checkpoint_copy.next_xid_epoch == UNSET_EPOCH - 1


class TestMultiXids:
    def test_sets_both_and_resets_db(self, control_record):
        set_multi_xids(control_record, 500, 200)
        cp = control_record.checkpoint_copy
        assert cp.next_multi == 500
        assert cp.oldest_multi == 200
        assert cp.oldest_multi_db == INVALID_OID

    @pytest.mark.parametrize("pair", [(0, 5), (5, 0), (0, 0)])
    def test_rejects_zero(self, control_record, pair):
        before = control_record.model_copy(deep=True)
        with pytest.raises(InvalidMultiTransactionIdError):
            set_multi_xids(control_record, *pair)
        assert control_record == before

    def test_wraparound_below_first_id(self):
        assert corrected_oldest_multi(0) == 0 + FIRST_MULTI_XACT_ID

    @pytest.mark.parametrize("value", [FIRST_MULTI_XACT_ID, 2, 1000, 0xFFFFFFFF])
    def test_no_correction_at_or_above_first_id(self, value):
        assert corrected_oldest_multi(value) == value


class TestMultiOffset:
    def test_sets_value(self, control_record):
        set_next_multi_offset(control_record, 0)
        assert control_record.checkpoint_copy.next_multi_offset == 0
        set_next_multi_offset(control_record, 123456)
        assert control_record.checkpoint_copy.next_multi_offset == 123456

    def test_rejects_unset_offset(self, control_record):
        before = control_record.model_copy(deep=True)
        with pytest.raises(InvalidOffsetError):
            set_next_multi_offset(control_record, UNSET_MULTI_OFFSET)
        assert control_record == before


class TestCommitTsXids:
    def test_sets_both(self, control_record):
        set_commit_ts_xids(control_record, 1000, 2000)
        assert control_record.checkpoint_copy.oldest_commit_ts_xid == 1000
        assert control_record.checkpoint_copy.newest_commit_ts_xid == 2000

    def test_zero_leaves_bound_alone(self, control_record):
        control_record.checkpoint_copy.oldest_commit_ts_xid = 700
        set_commit_ts_xids(control_record, 0, 2000)
        assert control_record.checkpoint_copy.oldest_commit_ts_xid == 700
        assert control_record.checkpoint_copy.newest_commit_ts_xid == 2000

    @pytest.mark.parametrize("pair", [(1, 2000), (1000, 2), (2, 0)])
    def test_rejects_special_xids(self, control_record, pair):
        with pytest.raises(InvalidTransactionIdError, match="must be either 0"):
            set_commit_ts_xids(control_record, *pair)
        assert control_record.checkpoint_copy.newest_commit_ts_xid == 0


class TestOldestXid:
    def test_sets_value_and_resets_db(self, control_record):
        set_oldest_xid(control_record, 900)
        assert control_record.checkpoint_copy.oldest_xid == 900
        assert control_record.checkpoint_copy.oldest_xid_db == INVALID_OID

    def test_rejects_special_xid(self, control_record):
        with pytest.raises(InvalidTransactionIdError, match="oldest transaction ID"):
            set_oldest_xid(control_record, 2)
        assert control_record.checkpoint_copy.oldest_xid_db == 1


class TestWalSegmentSize:
    def test_sets_value(self, control_record):
        set_wal_segment_size(control_record, 64 * MB)
        assert control_record.xlog_seg_size == 64 * MB

    @pytest.mark.parametrize("size", [0, 3 * MB, 2048 * MB, MB // 2])
    def test_rejects_invalid(self, control_record, size):
        with pytest.raises(InvalidSegmentSizeError):
            set_wal_segment_size(control_record, size)
        assert control_record.xlog_seg_size == 16 * MB


class TestTimelineFloor:
    def test_raises_both_timelines(self, control_record):
        assert raise_timeline_floor(control_record, 5)
        assert control_record.checkpoint_copy.this_timeline_id == 5
        assert control_record.checkpoint_copy.prev_timeline_id == 5

    @pytest.mark.parametrize("timeline", [0, 1])
    def test_noop_when_not_greater(self, control_record, timeline):
        assert not raise_timeline_floor(control_record, timeline)
        assert control_record.checkpoint_copy.this_timeline_id == 1


class TestValidateRequest:
    def test_empty_request(self):
        validate_request(OverrideRequest())

    @pytest.mark.parametrize(
        "fields, error",
        [
            ({"next_oid": 0}, InvalidOidError),
            ({"next_xid": 2}, InvalidTransactionIdError),
            ({"xid_epoch": UNSET_EPOCH}, InvalidEpochError),
            ({"multi_xids": (1, 0)}, InvalidMultiTransactionIdError),
            ({"next_multi_offset": UNSET_MULTI_OFFSET}, InvalidOffsetError),
            ({"commit_ts_xids": (1, 0)}, InvalidTransactionIdError),
            ({"oldest_xid": 0}, InvalidTransactionIdError),
            ({"wal_segment_size": 3 * MB}, InvalidSegmentSizeError),
            ({"next_wal_file": "00000001"}, InvalidWalFileNameError),
        ],
    )
    def test_rejects(self, fields, error):
        with pytest.raises(error):
            validate_request(OverrideRequest(**fields))

    def test_errors_are_value_errors(self):
        with pytest.raises(ValueError):
            validate_request(OverrideRequest(next_oid=0))
        assert issubclass(InvalidOidError, OverrideError)


class TestApplyOverrides:
    def test_empty_request_changes_nothing(self, control_record):
        before = control_record.model_copy(deep=True)
        apply_overrides(control_record, OverrideRequest())
        assert control_record == before

    def test_epoch_and_xid_together(self, control_record):
        apply_overrides(control_record, OverrideRequest(next_xid=5000, xid_epoch=2))
        assert control_record.checkpoint_copy.next_xid_epoch == 2
        assert control_record.checkpoint_copy.next_xid == 5000
        assert control_record.checkpoint_copy.next_oid == 100

    def test_invalid_field_leaves_record_untouched(self, control_record):
        before = control_record.model_copy(deep=True)
        request = OverrideRequest(next_oid=5000, next_xid=6000, xid_epoch=UNSET_EPOCH)
        with pytest.raises(InvalidEpochError):
            apply_overrides(control_record, request)
        assert control_record == before

    def test_all_fields(self, control_record):
        request = OverrideRequest(
            next_oid=20000,
            next_xid=70000,
            xid_epoch=1,
            oldest_xid=600,
            multi_xids=(40, 30),
            next_multi_offset=99,
            commit_ts_xids=(500, 69000),
            next_wal_file="000000020000000000000010",
            wal_segment_size=32 * MB,
        )
        apply_overrides(control_record, request)

        cp = control_record.checkpoint_copy
        assert cp.next_oid == 20000
        assert cp.next_full_xid == full_xid(1, 70000)
        assert (cp.oldest_xid, cp.oldest_xid_db) == (600, INVALID_OID)
        assert (cp.next_multi, cp.oldest_multi, cp.oldest_multi_db) == (40, 30, INVALID_OID)
        assert cp.next_multi_offset == 99
        assert (cp.oldest_commit_ts_xid, cp.newest_commit_ts_xid) == (500, 69000)
        assert (cp.this_timeline_id, cp.prev_timeline_id) == (2, 2)
        assert control_record.xlog_seg_size == 32 * MB

    def test_wal_file_uses_requested_segment_size(self, control_record):
        request = OverrideRequest(next_wal_file="000000010000000100000002", wal_segment_size=64 * MB)
        with capture_logs() as logs:
            apply_overrides(control_record, request)

        (resolved,) = [e for e in logs if e["event"] == "resolved next WAL file"]
        assert resolved["segment_no"] == 64 + 2
        assert resolved["start_offset"] == (64 + 2) * 64 * MB

    def test_wal_file_uses_stored_segment_size(self, control_record):
        request = OverrideRequest(next_wal_file="000000010000000100000002")
        with capture_logs() as logs:
            apply_overrides(control_record, request)

        (resolved,) = [e for e in logs if e["event"] == "resolved next WAL file"]
        assert resolved["segment_no"] == 256 + 2

    def test_lower_wal_timeline_keeps_current(self, control_record):
        control_record.checkpoint_copy.this_timeline_id = 7
        control_record.checkpoint_copy.prev_timeline_id = 6
        apply_overrides(control_record, OverrideRequest(next_wal_file="000000030000000000000001"))
        assert control_record.checkpoint_copy.this_timeline_id == 7
        assert control_record.checkpoint_copy.prev_timeline_id == 6
