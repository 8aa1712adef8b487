"""One full edit: read, decode, override, encode, write."""

import time
from pathlib import Path

import structlog

from editor.overrides import apply_overrides, validate_request
from models.control import ControlRecord
from models.overrides import OverrideRequest
from storage.codec import decode_control_file, encode_control_file
from storage.datadir import DataDirectory

log = structlog.get_logger()


def edit_control_file(
    source: Path | str,
    target: Path | str,
    request: OverrideRequest,
    sync: bool = True,
) -> ControlRecord:
    """Copy source's control file into target with `request` applied.

    Everything that can be rejected is checked before the output directory
    is touched. The source data directory is only read.
    """
    validate_request(request)

    data = DataDirectory(source).read_control_file()
    result = decode_control_file(data)
    record = result.record
    if not result.verified:
        log.warning("input control file failed its CRC check; output values are best-effort", source=str(source))

    if request.is_empty():
        log.info("no overrides requested; writing a copy with a refreshed CRC")
    apply_overrides(record, request)

    record.time = int(time.time())
    payload = encode_control_file(record)

    DataDirectory(target, sync=sync).write_control_file(payload)
    return record
