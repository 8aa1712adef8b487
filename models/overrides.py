"""Override request: the set of field changes asked for in one invocation."""

from pydantic import BaseModel, ConfigDict

from models.identifiers import UInt32


class OverrideRequest(BaseModel):
    """Immutable set of requested control file overrides.

    Every field defaults to None, meaning "leave the record alone". Range
    checks here only cover the storage width; the rules that depend on
    reserved ids and sentinels are enforced by editor.overrides so each one
    can raise its own error.

    Fields:
        next_oid: New nextOid
        next_xid: New low half of nextXid (epoch kept)
        xid_epoch: New high half of nextXid (xid kept)
        oldest_xid: New oldestXid; oldestXidDB is reset
        multi_xids: (next, oldest) multitransaction ids
        next_multi_offset: New nextMultiOffset
        commit_ts_xids: (oldest, newest) commit timestamp bounds, 0 = unchanged
        next_wal_file: WAL file name giving the minimum timeline
        wal_segment_size: New WAL segment size in bytes
    """

    model_config = ConfigDict(frozen=True)

    next_oid: UInt32 | None = None
    next_xid: UInt32 | None = None
    xid_epoch: UInt32 | None = None
    oldest_xid: UInt32 | None = None
    multi_xids: tuple[UInt32, UInt32] | None = None
    next_multi_offset: UInt32 | None = None
    commit_ts_xids: tuple[UInt32, UInt32] | None = None
    next_wal_file: str | None = None
    wal_segment_size: int | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in type(self).model_fields)
