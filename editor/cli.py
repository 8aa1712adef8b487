"""Command line entry point.

Usage:
    pg_control_editor -D OLD_PGDATA -d NEW_PGDATA [OPTION]...
"""

import argparse
import re
import sys
from pathlib import Path

import structlog

from editor.config import Config
from editor.log import configure_logging
from editor.pipeline import edit_control_file
from exceptions import ControlEditorError
from models.overrides import OverrideRequest

log = structlog.get_logger()

PROG = "pg_control_editor"

_OCTAL_RE = re.compile(r"0[0-7]+")
_MB = 1024 * 1024


def parse_uint32(text: str) -> int:
    """Parse an unsigned 32-bit number written in decimal, hex (0x) or octal."""
    try:
        if _OCTAL_RE.fullmatch(text):
            value = int(text, 8)
        else:
            value = int(text, 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number: {text!r}") from None
    if not 0 <= value <= 0xFFFFFFFF:
        raise argparse.ArgumentTypeError(f"value out of range: {text!r}")
    return value


def parse_uint32_pair(text: str) -> tuple[int, int]:
    """Parse "A,B" into two unsigned 32-bit numbers."""
    first, sep, second = text.partition(",")
    if not sep:
        raise argparse.ArgumentTypeError(f"expected two comma-separated values, got {text!r}")
    return parse_uint32(first), parse_uint32(second)


def parse_wal_segsize_mb(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid value {text!r} for --wal-segsize") from None
    if not 1 <= value <= 1024:
        raise argparse.ArgumentTypeError("--wal-segsize must be in range 1..1024")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description=f"{PROG} is a tool to modify a control file.",
        add_help=False,
    )
    parser.add_argument("-D", "--pgdata-in", metavar="DATADIR", help="input data directory")
    parser.add_argument("-d", "--pgdata-out", metavar="DATADIR", help="output data directory")
    parser.add_argument("-?", "--help", action="help", help="show this help, then exit")

    overrides = parser.add_argument_group("Options to override control file values")
    overrides.add_argument(
        "-c",
        "--commit-timestamp-ids",
        metavar="XID,XID",
        type=parse_uint32_pair,
        help="set oldest and newest transactions bearing commit timestamp (zero means no change)",
    )
    overrides.add_argument("-e", "--epoch", metavar="XIDEPOCH", type=parse_uint32, help="set next transaction ID epoch")
    overrides.add_argument(
        "-l", "--next-wal-file", metavar="WALFILE", help="set minimum starting location for new WAL"
    )
    overrides.add_argument(
        "-m", "--multixact-ids", metavar="MXID,MXID", type=parse_uint32_pair, help="set next and oldest multitransaction ID"
    )
    overrides.add_argument("-o", "--next-oid", metavar="OID", type=parse_uint32, help="set next OID")
    overrides.add_argument(
        "-O", "--multixact-offset", metavar="OFFSET", type=parse_uint32, help="set next multitransaction offset"
    )
    overrides.add_argument(
        "-u", "--oldest-transaction-id", metavar="XID", type=parse_uint32, help="set oldest transaction ID"
    )
    overrides.add_argument(
        "-x", "--next-transaction-id", metavar="XID", type=parse_uint32, help="set next transaction ID"
    )
    overrides.add_argument(
        "--wal-segsize", metavar="SIZE", type=parse_wal_segsize_mb, help="size of WAL segments, in megabytes"
    )
    return parser


def request_from_args(args: argparse.Namespace) -> OverrideRequest:
    return OverrideRequest(
        next_oid=args.next_oid,
        next_xid=args.next_transaction_id,
        xid_epoch=args.epoch,
        oldest_xid=args.oldest_transaction_id,
        multi_xids=args.multixact_ids,
        next_multi_offset=args.multixact_offset,
        commit_ts_xids=args.commit_timestamp_ids,
        next_wal_file=args.next_wal_file,
        wal_segment_size=args.wal_segsize * _MB if args.wal_segsize is not None else None,
    )


def main(argv: list[str] | None = None) -> int:
    config = Config()
    configure_logging(config.LOG_LEVEL)

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.pgdata_in is None or args.pgdata_out is None:
        parser.error("Both input/output data directory should be specified.")
    if Path(args.pgdata_in).resolve() == Path(args.pgdata_out).resolve():
        parser.error("input and output data directories must differ")

    request = request_from_args(args)

    try:
        edit_control_file(args.pgdata_in, args.pgdata_out, request, sync=config.FSYNC)
    except FileNotFoundError as e:
        log.error("could not open control file for reading", path=e.filename, reason=e.strerror)
        log.error(f"If you are sure the data directory path is correct, execute\n  touch {e.filename}\nand try again.")
        return 1
    except ControlEditorError as e:
        log.error(str(e))
        return 1
    except OSError as e:
        log.error("I/O error", path=e.filename, reason=e.strerror)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
