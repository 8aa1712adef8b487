#!/usr/bin/env python3
"""Control file inspection tool for checking the result of an edit.

Usage:
    uv run python tools/control_inspect.py --pgdata ./tmp/pgdata-out
    uv run python tools/control_inspect.py --pgdata ./tmp/pgdata-out --checkpoint
"""

import argparse
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from exceptions import DecodeError
from models.control import ControlRecord, DBState
from storage.codec import DecodeResult, decode_control_file
from storage.datadir import DataDirectory
from storage.wal import segments_per_log_id


def _state_name(state: int) -> str:
    try:
        return DBState(state).name
    except ValueError:
        return f"unrecognized ({state})"


def _lsn(value: int) -> str:
    """Format a WAL position the way PostgreSQL prints it."""
    return f"{value >> 32:X}/{value & 0xFFFFFFFF:X}"


def print_summary(result: DecodeResult) -> None:
    """Print control file summary."""
    record = result.record
    print("=== Control File ===")
    print(f"  CRC: 0x{record.crc:08X} ({result.integrity.value})")
    print(f"  pg_control version number: {record.pg_control_version}")
    print(f"  Catalog version number: {record.catalog_version_no}")
    print(f"  Database system identifier: {record.system_identifier}")
    print(f"  Database cluster state: {_state_name(record.state)}")
    print(f"  pg_control last modified: {record.time}")
    print(f"  Latest checkpoint location: {_lsn(record.checkpoint)}")
    print(f"  Bytes per WAL segment: {record.xlog_seg_size}")
    print(f"  WAL block size: {record.xlog_blcksz}")
    print(f"  Database block size: {record.blcksz}")
    print(f"  Data page checksum version: {record.data_checksum_version}")
    print()


def print_checkpoint(record: ControlRecord) -> None:
    """Print the latest checkpoint copy."""
    cp = record.checkpoint_copy
    print("=== Latest Checkpoint ===")
    print(f"  REDO location: {_lsn(cp.redo)}")
    print(f"  REDO WAL segment: {cp.redo // record.xlog_seg_size} "
          f"({segments_per_log_id(record.xlog_seg_size)} segments per log id)")
    print(f"  TimeLineID: {cp.this_timeline_id}")
    print(f"  PrevTimeLineID: {cp.prev_timeline_id}")
    print(f"  full_page_writes: {'on' if cp.full_page_writes else 'off'}")
    print(f"  NextXID: {cp.next_xid_epoch}:{cp.next_xid}")
    print(f"  NextOID: {cp.next_oid}")
    print(f"  NextMultiXactId: {cp.next_multi}")
    print(f"  NextMultiOffset: {cp.next_multi_offset}")
    print(f"  oldestXID: {cp.oldest_xid}")
    print(f"  oldestXID's DB: {cp.oldest_xid_db}")
    print(f"  oldestActiveXID: {cp.oldest_active_xid}")
    print(f"  oldestMultiXid: {cp.oldest_multi}")
    print(f"  oldestMulti's DB: {cp.oldest_multi_db}")
    print(f"  oldestCommitTsXid: {cp.oldest_commit_ts_xid}")
    print(f"  newestCommitTsXid: {cp.newest_commit_ts_xid}")
    print()


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect a PostgreSQL control file")
    parser.add_argument("--pgdata", required=True, help="Path to data directory")
    parser.add_argument("--checkpoint", action="store_true", help="Only show the latest checkpoint")

    args = parser.parse_args()

    datadir = DataDirectory(args.pgdata)
    if not datadir.control_file_path.exists():
        print(f"Error: Control file not found: {datadir.control_file_path}", file=sys.stderr)
        sys.exit(1)

    try:
        result = decode_control_file(datadir.read_control_file())
    except DecodeError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.checkpoint:
        print_checkpoint(result.record)
    else:
        print_summary(result)
        print_checkpoint(result.record)


if __name__ == "__main__":
    main()
