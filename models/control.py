"""Control file models.

Mirrors PostgreSQL 17's ControlFileData and its embedded CheckPoint, laid out
with natural C alignment on a little-endian machine.

Struct format reference (https://docs.python.org/3/library/struct.html):
    <  = little-endian byte order, no implicit alignment
    x  = pad byte
    ?  = bool (1 byte)
    i  = int (4 bytes)
    I  = unsigned int (4 bytes)
    q  = long long (8 bytes)
    Q  = unsigned long long (8 bytes)
    d  = double (8 bytes)
    s  = raw bytes
"""

import struct
from enum import IntEnum
from typing import ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.identifiers import Int32, Int64, UInt32, UInt64, epoch_of, xid_of

PG_CONTROL_VERSION = 1700

# Bytes actually written to global/pg_control; the struct is zero padded to this
PG_CONTROL_FILE_SIZE = 8192

MOCK_AUTH_NONCE_LEN = 32

# CheckPoint format:
# [redo:8][this_tli:4][prev_tli:4][full_page_writes:1][pad:3][wal_level:4]
# [next_full_xid:8][next_oid:4][next_multi:4][next_multi_offset:4][oldest_xid:4]
# [oldest_xid_db:4][oldest_multi:4][oldest_multi_db:4][pad:4][time:8]
# [oldest_commit_ts_xid:4][newest_commit_ts_xid:4][oldest_active_xid:4][pad:4]
CHECKPOINT_FMT = "<QII?3xiQIIIIIII4xqIII4x"
CHECKPOINT_SIZE = 88

# ControlFileData format, checkpoint copy embedded as 88 raw bytes at offset 40.
# The CRC sits at offset 288 and covers everything before it.
CONTROL_FILE_FMT = "<QIIi4xqQ88sQQI4xQQ?3xi?3xiiiii?3xIdIIIIIIII?3xI32sI4x"
CONTROL_FILE_DATA_SIZE = 296
CONTROL_FILE_CRC_OFFSET = 288


class DBState(IntEnum):
    """Cluster state as recorded by the postmaster."""

    STARTUP = 0
    SHUTDOWNED = 1
    SHUTDOWNED_IN_RECOVERY = 2
    SHUTDOWNING = 3
    IN_CRASH_RECOVERY = 4
    IN_ARCHIVE_RECOVERY = 5
    IN_PRODUCTION = 6


class CheckPoint(BaseModel):
    """Contents of the latest checkpoint record, copied into the control file.

    next_full_xid packs the epoch (high 32 bits) and the next transaction id
    (low 32 bits). Use the next_xid_epoch / next_xid properties to read the
    halves and models.identifiers.full_xid to build a new value.
    """

    model_config = ConfigDict(validate_assignment=True)

    SIZE: ClassVar[int] = CHECKPOINT_SIZE

    redo: UInt64 = 0
    this_timeline_id: UInt32 = 1
    prev_timeline_id: UInt32 = 1
    full_page_writes: bool = True
    wal_level: Int32 = 0
    next_full_xid: UInt64 = 0
    next_oid: UInt32 = 0
    next_multi: UInt32 = 0
    next_multi_offset: UInt32 = 0
    oldest_xid: UInt32 = 0
    oldest_xid_db: UInt32 = 0
    oldest_multi: UInt32 = 0
    oldest_multi_db: UInt32 = 0
    time: Int64 = 0
    oldest_commit_ts_xid: UInt32 = 0
    newest_commit_ts_xid: UInt32 = 0
    oldest_active_xid: UInt32 = 0

    @property
    def next_xid_epoch(self) -> int:
        return epoch_of(self.next_full_xid)

    @property
    def next_xid(self) -> int:
        return xid_of(self.next_full_xid)

    def to_bytes(self) -> bytes:
        """Serialize to bytes. See module docstring for format details."""
        return struct.pack(
            CHECKPOINT_FMT,
            self.redo,
            self.this_timeline_id,
            self.prev_timeline_id,
            self.full_page_writes,
            self.wal_level,
            self.next_full_xid,
            self.next_oid,
            self.next_multi,
            self.next_multi_offset,
            self.oldest_xid,
            self.oldest_xid_db,
            self.oldest_multi,
            self.oldest_multi_db,
            self.time,
            self.oldest_commit_ts_xid,
            self.newest_commit_ts_xid,
            self.oldest_active_xid,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> Self:
        """Deserialize from bytes."""
        if len(data) < CHECKPOINT_SIZE:
            raise ValueError(f"Data too short: expected at least {CHECKPOINT_SIZE} bytes, got {len(data)}")

        (
            redo,
            this_timeline_id,
            prev_timeline_id,
            full_page_writes,
            wal_level,
            next_full_xid,
            next_oid,
            next_multi,
            next_multi_offset,
            oldest_xid,
            oldest_xid_db,
            oldest_multi,
            oldest_multi_db,
            time,
            oldest_commit_ts_xid,
            newest_commit_ts_xid,
            oldest_active_xid,
        ) = struct.unpack(CHECKPOINT_FMT, data[:CHECKPOINT_SIZE])

        return cls(
            redo=redo,
            this_timeline_id=this_timeline_id,
            prev_timeline_id=prev_timeline_id,
            full_page_writes=full_page_writes,
            wal_level=wal_level,
            next_full_xid=next_full_xid,
            next_oid=next_oid,
            next_multi=next_multi,
            next_multi_offset=next_multi_offset,
            oldest_xid=oldest_xid,
            oldest_xid_db=oldest_xid_db,
            oldest_multi=oldest_multi,
            oldest_multi_db=oldest_multi_db,
            time=time,
            oldest_commit_ts_xid=oldest_commit_ts_xid,
            newest_commit_ts_xid=newest_commit_ts_xid,
            oldest_active_xid=oldest_active_xid,
        )


class ControlRecord(BaseModel):
    """The cluster control record stored in global/pg_control.

    Layout (296 bytes, zero padded to 8192 on disk):
        offset  size  field
        ------  ----  -----
        0       8     system_identifier
        8       4     pg_control_version
        12      4     catalog_version_no
        16      4     state
        24      8     time
        32      8     checkpoint
        40      88    checkpoint_copy
        128     8     unlogged_lsn
        136     8     min_recovery_point
        144     4     min_recovery_point_tli
        152     8     backup_start_point
        160     8     backup_end_point
        168     1     backup_end_required
        172     4     wal_level
        176     1     wal_log_hints
        180     20    max_connections .. max_locks_per_xact
        200     1     track_commit_timestamp
        204     4     max_align
        208     8     float_format
        216     32    blcksz .. loblksize
        248     1     float8_by_val
        252     4     data_checksum_version
        256     32    mock_authentication_nonce
        288     4     crc (CRC-32C of bytes 0..287)

    Field values are kept as read, including a stored crc that may not match.
    Recomputing and checking the crc is the codec's job (storage.codec).
    state is kept as a raw int so a damaged record still decodes; DBState
    names the known values.
    """

    model_config = ConfigDict(validate_assignment=True)

    SIZE: ClassVar[int] = CONTROL_FILE_DATA_SIZE

    system_identifier: UInt64 = 0
    pg_control_version: UInt32 = PG_CONTROL_VERSION
    catalog_version_no: UInt32 = 0
    state: Int32 = DBState.SHUTDOWNED
    time: Int64 = 0
    checkpoint: UInt64 = 0  # Location of the latest checkpoint record
    checkpoint_copy: CheckPoint = Field(default_factory=CheckPoint)
    unlogged_lsn: UInt64 = 0
    min_recovery_point: UInt64 = 0
    min_recovery_point_tli: UInt32 = 0
    backup_start_point: UInt64 = 0
    backup_end_point: UInt64 = 0
    backup_end_required: bool = False
    wal_level: Int32 = 0
    wal_log_hints: bool = False
    max_connections: Int32 = 100
    max_worker_processes: Int32 = 8
    max_wal_senders: Int32 = 10
    max_prepared_xacts: Int32 = 0
    max_locks_per_xact: Int32 = 64
    track_commit_timestamp: bool = False
    max_align: UInt32 = 8
    float_format: float = 1234567.0
    blcksz: UInt32 = 8192
    relseg_size: UInt32 = 131072
    xlog_blcksz: UInt32 = 8192
    xlog_seg_size: UInt32 = 16 * 1024 * 1024
    name_data_len: UInt32 = 64
    index_max_keys: UInt32 = 32
    toast_max_chunk_size: UInt32 = 1996
    loblksize: UInt32 = 2048
    float8_by_val: bool = True
    data_checksum_version: UInt32 = 0
    mock_authentication_nonce: bytes = b"\x00" * MOCK_AUTH_NONCE_LEN
    crc: UInt32 = 0

    @field_validator("mock_authentication_nonce")
    @classmethod
    def validate_nonce(cls, v: bytes) -> bytes:
        if len(v) != MOCK_AUTH_NONCE_LEN:
            raise ValueError(f"Authentication nonce must be {MOCK_AUTH_NONCE_LEN} bytes, got {len(v)}")
        return v

    def to_bytes(self) -> bytes:
        """Serialize to the 296-byte struct, writing crc as stored on the model."""
        return struct.pack(
            CONTROL_FILE_FMT,
            self.system_identifier,
            self.pg_control_version,
            self.catalog_version_no,
            self.state,
            self.time,
            self.checkpoint,
            self.checkpoint_copy.to_bytes(),
            self.unlogged_lsn,
            self.min_recovery_point,
            self.min_recovery_point_tli,
            self.backup_start_point,
            self.backup_end_point,
            self.backup_end_required,
            self.wal_level,
            self.wal_log_hints,
            self.max_connections,
            self.max_worker_processes,
            self.max_wal_senders,
            self.max_prepared_xacts,
            self.max_locks_per_xact,
            self.track_commit_timestamp,
            self.max_align,
            self.float_format,
            self.blcksz,
            self.relseg_size,
            self.xlog_blcksz,
            self.xlog_seg_size,
            self.name_data_len,
            self.index_max_keys,
            self.toast_max_chunk_size,
            self.loblksize,
            self.float8_by_val,
            self.data_checksum_version,
            self.mock_authentication_nonce,
            self.crc,
        )

    @classmethod
    def from_bytes(cls, data: bytes) -> Self:
        """Deserialize from bytes. Anything past the struct is ignored."""
        if len(data) < CONTROL_FILE_DATA_SIZE:
            raise ValueError(f"Data too short: expected at least {CONTROL_FILE_DATA_SIZE} bytes, got {len(data)}")

        (
            system_identifier,
            pg_control_version,
            catalog_version_no,
            state,
            time,
            checkpoint,
            checkpoint_copy,
            unlogged_lsn,
            min_recovery_point,
            min_recovery_point_tli,
            backup_start_point,
            backup_end_point,
            backup_end_required,
            wal_level,
            wal_log_hints,
            max_connections,
            max_worker_processes,
            max_wal_senders,
            max_prepared_xacts,
            max_locks_per_xact,
            track_commit_timestamp,
            max_align,
            float_format,
            blcksz,
            relseg_size,
            xlog_blcksz,
            xlog_seg_size,
            name_data_len,
            index_max_keys,
            toast_max_chunk_size,
            loblksize,
            float8_by_val,
            data_checksum_version,
            mock_authentication_nonce,
            crc,
        ) = struct.unpack(CONTROL_FILE_FMT, data[:CONTROL_FILE_DATA_SIZE])

        return cls(
            system_identifier=system_identifier,
            pg_control_version=pg_control_version,
            catalog_version_no=catalog_version_no,
            state=state,
            time=time,
            checkpoint=checkpoint,
            checkpoint_copy=CheckPoint.from_bytes(checkpoint_copy),
            unlogged_lsn=unlogged_lsn,
            min_recovery_point=min_recovery_point,
            min_recovery_point_tli=min_recovery_point_tli,
            backup_start_point=backup_start_point,
            backup_end_point=backup_end_point,
            backup_end_required=backup_end_required,
            wal_level=wal_level,
            wal_log_hints=wal_log_hints,
            max_connections=max_connections,
            max_worker_processes=max_worker_processes,
            max_wal_senders=max_wal_senders,
            max_prepared_xacts=max_prepared_xacts,
            max_locks_per_xact=max_locks_per_xact,
            track_commit_timestamp=track_commit_timestamp,
            max_align=max_align,
            float_format=float_format,
            blcksz=blcksz,
            relseg_size=relseg_size,
            xlog_blcksz=xlog_blcksz,
            xlog_seg_size=xlog_seg_size,
            name_data_len=name_data_len,
            index_max_keys=index_max_keys,
            toast_max_chunk_size=toast_max_chunk_size,
            loblksize=loblksize,
            float8_by_val=float8_by_val,
            data_checksum_version=data_checksum_version,
            mock_authentication_nonce=mock_authentication_nonce,
            crc=crc,
        )
