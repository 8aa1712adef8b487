from pathlib import Path

import pytest
import structlog

from models.control import CheckPoint, ControlRecord, DBState
from models.identifiers import full_xid
from storage.codec import encode_control_file
from storage.datadir import CONTROL_FILE_NAME, GLOBAL_DIR


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any logging setup a CLI test installed."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def control_record() -> ControlRecord:
    """A shut down cluster: nextOid 100, nextXid 0:1000, 16 MiB WAL segments."""
    return ControlRecord(
        system_identifier=7312345678901234567,
        catalog_version_no=202406281,
        state=DBState.SHUTDOWNED,
        time=1718000000,
        checkpoint=0x1000028,
        checkpoint_copy=CheckPoint(
            redo=0x1000028,
            this_timeline_id=1,
            prev_timeline_id=1,
            full_page_writes=True,
            wal_level=1,
            next_full_xid=full_xid(0, 1000),
            next_oid=100,
            next_multi=1,
            next_multi_offset=0,
            oldest_xid=730,
            oldest_xid_db=1,
            oldest_multi=1,
            oldest_multi_db=1,
            time=1718000000,
            oldest_commit_ts_xid=0,
            newest_commit_ts_xid=0,
            oldest_active_xid=0,
        ),
        wal_level=1,
        xlog_seg_size=16 * 1024 * 1024,
        mock_authentication_nonce=bytes(range(32)),
    )


@pytest.fixture
def make_pgdata(tmp_path: Path):
    """Return a function that writes a control file into a fresh data directory."""

    def _make(data: bytes | ControlRecord, name: str = "pgdata-in") -> Path:
        if isinstance(data, ControlRecord):
            data = encode_control_file(data)
        pgdata = tmp_path / name
        (pgdata / GLOBAL_DIR).mkdir(parents=True)
        (pgdata / GLOBAL_DIR / CONTROL_FILE_NAME).write_bytes(data)
        return pgdata

    return _make
