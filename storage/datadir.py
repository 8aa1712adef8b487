"""Data directory I/O for the control file.

Directory layout (only the parts this tool touches):
    <datadir>/
        global/
            pg_control

Reading takes the first PG_CONTROL_FILE_SIZE bytes of the input control file.
Writing materializes the output directory tree on demand and writes the whole
encoded control file in a single write; nothing is patched in place.
"""

import errno
import os
from pathlib import Path

import structlog

from exceptions import MaterializeError
from models.control import PG_CONTROL_FILE_SIZE

log = structlog.get_logger()

GLOBAL_DIR = "global"
CONTROL_FILE_NAME = "pg_control"

DIR_MODE = 0o755
FILE_MODE = 0o644


class DataDirectory:
    """A PostgreSQL data directory, as far as the control file is concerned."""

    def __init__(self, path: Path | str, sync: bool = True):
        self.path = Path(path)
        self.sync = sync

    @property
    def global_dir(self) -> Path:
        return self.path / GLOBAL_DIR

    @property
    def control_file_path(self) -> Path:
        return self.global_dir / CONTROL_FILE_NAME

    def read_control_file(self) -> bytes:
        """Read the raw control file.

        Raises FileNotFoundError (or another OSError) untouched so the caller
        can tell a wrong path from a broken file.
        """
        with open(self.control_file_path, "rb") as f:
            return f.read(PG_CONTROL_FILE_SIZE)

    def write_control_file(self, data: bytes) -> Path:
        """Create the directory tree if needed and write the control file.

        An existing output control file is overwritten, with a warning.
        """
        self._ensure_dir(self.path)
        self._ensure_dir(self.global_dir)

        path = self.control_file_path
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, FILE_MODE)
        except FileExistsError:
            log.warning("output control file already exists; overwriting it", path=str(path))
            fd = self._open(path, os.O_WRONLY | os.O_TRUNC)
        except OSError as e:
            raise MaterializeError(e.errno, f"could not create file \"{path}\": {e.strerror}") from e

        # Unbuffered so a short write is seen as one
        with os.fdopen(fd, "wb", buffering=0) as f:
            try:
                written = f.write(data)
                if self.sync:
                    os.fsync(f.fileno())
            except OSError as e:
                raise MaterializeError(e.errno, f"could not write file \"{path}\": {e.strerror}") from e

        if written != len(data):
            raise MaterializeError(errno.EIO, f"could not write file \"{path}\": wrote {written} of {len(data)} bytes")

        log.info("wrote control file", path=str(path), size=len(data))
        return path

    def _ensure_dir(self, path: Path) -> None:
        try:
            path.mkdir(mode=DIR_MODE)
        except FileExistsError:
            if not path.is_dir():
                raise MaterializeError(errno.ENOTDIR, f"\"{path}\" exists but is not a directory")
        except OSError as e:
            raise MaterializeError(e.errno, f"could not create directory \"{path}\": {e.strerror}") from e

    @staticmethod
    def _open(path: Path, flags: int) -> int:
        try:
            return os.open(path, flags)
        except OSError as e:
            raise MaterializeError(e.errno, f"could not open file \"{path}\": {e.strerror}") from e
