"""File helpers and a size-based rotating file sink."""

from __future__ import annotations

import os
import time
from typing import IO

from beeloc.log.formatter import LogMessage
from beeloc.log.sinks import Sink

_OPEN_TRIES = 5
_OPEN_INTERVAL = 0.01
_RENAME_RETRY_DELAY = 0.1

_SEPARATORS = ("/", "\\") if os.name == "nt" else ("/",)


class FileSinkError(OSError):
    """Raised when a log file cannot be opened, written or rotated."""


def _last_separator(path: str) -> int:
    return max(path.rfind(sep) for sep in _SEPARATORS)


def split_by_extension(fname: str) -> tuple[str, str]:
    """Split a file name into its stem and extension; a leading dot is not an extension."""
    ext_index = fname.rfind(".")
    if ext_index <= 0 or ext_index == len(fname) - 1:
        return fname, ""
    folder_index = _last_separator(fname)
    if folder_index != -1 and folder_index >= ext_index - 1:
        return fname, ""
    return fname[:ext_index], fname[ext_index:]


def dir_name(path: str) -> str:
    """Return everything before the last path separator, or an empty string."""
    pos = _last_separator(path)
    return path[:pos] if pos != -1 else ""


def create_dir(path: str) -> bool:
    """Create ``path`` and its parents; return whether it exists afterwards."""
    if path and os.path.isdir(path):
        return True
    if not path:
        return False
    try:
        os.makedirs(path, exist_ok=True)
    except OSError:
        return False
    return os.path.isdir(path)


def calc_filename(filename: str, index: int) -> str:
    """Return the name of rotation ``index``: ``logs/a.txt`` and 3 give ``logs/a.3.txt``."""
    if index == 0:
        return filename
    base, ext = split_by_extension(filename)
    return f"{base}.{index}{ext}"


class FileHelper:
    """An append-mode log file, retrying briefly when it cannot be opened."""

    def __init__(self) -> None:
        self._fd: IO[bytes] | None = None
        self._filename = ""

    @property
    def filename(self) -> str:
        return self._filename

    def __enter__(self) -> FileHelper:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def open(self, fname: str | os.PathLike[str], truncate: bool = False) -> None:
        """Open ``fname`` for appending, emptying it first if ``truncate``."""
        self.close()
        self._filename = os.fspath(fname)
        parent = dir_name(self._filename)
        last_error: OSError | None = None
        for _ in range(_OPEN_TRIES):
            if parent:
                create_dir(parent)
            try:
                if truncate:
                    with open(self._filename, "wb"):
                        pass
                self._fd = open(self._filename, "ab")
                return
            except OSError as exc:
                last_error = exc
            time.sleep(_OPEN_INTERVAL)
        raise FileSinkError(f"Failed opening file {self._filename} for writing") from last_error

    def reopen(self, truncate: bool) -> None:
        if not self._filename:
            raise FileSinkError("Failed re opening file - was not opened before")
        self.open(self._filename, truncate)

    def flush(self) -> None:
        if self._fd is not None:
            self._fd.flush()

    def close(self) -> None:
        if self._fd is not None:
            self._fd.close()
            self._fd = None

    def write(self, data: bytes | str) -> None:
        if self._fd is None:
            raise FileSinkError(f"Failed writing to file {self._filename}: file is closed")
        payload = data.encode("utf-8") if isinstance(data, str) else data
        try:
            self._fd.write(payload)
        except OSError as exc:
            raise FileSinkError(f"Failed writing to file {self._filename}") from exc

    def size(self) -> int:
        """Return the current size of the open file in bytes."""
        if self._fd is None:
            raise FileSinkError(f"Cannot use size() on closed file {self._filename}")
        self._fd.flush()
        return os.fstat(self._fd.fileno()).st_size


class RotatingFileSink(Sink):
    """Writes to a file and rotates it once it would exceed ``max_size`` bytes.

    Rotation renames ``log.txt`` to ``log.1.txt``, ``log.1.txt`` to ``log.2.txt``
    and so on, keeping at most ``max_files`` old files.
    """

    def __init__(
        self,
        base_filename: str | os.PathLike[str],
        max_size: int,
        max_files: int,
        rotate_on_open: bool = False,
    ) -> None:
        super().__init__()
        self._base_filename = os.fspath(base_filename)
        self._max_size = max_size
        self._max_files = max_files
        self._file = FileHelper()
        self._file.open(calc_filename(self._base_filename, 0))
        self._current_size = self._file.size()
        if rotate_on_open and self._current_size > 0:
            self._rotate()

    def filename(self) -> str:
        """Return the name of the file currently written."""
        with self._lock:
            return self._file.filename

    def _sink_it(self, msg: LogMessage) -> None:
        formatted = self._formatter.format(msg).encode("utf-8")
        self._current_size += len(formatted)
        if self._current_size > self._max_size:
            self._rotate()
            self._current_size = len(formatted)
        self._file.write(formatted)

    def _flush(self) -> None:
        self._file.flush()

    def _rotate(self) -> None:
        self._file.close()
        for i in range(self._max_files, 0, -1):
            src = calc_filename(self._base_filename, i - 1)
            if not os.path.exists(src):
                continue
            target = calc_filename(self._base_filename, i)
            if not self._rename_file(src, target):
                time.sleep(_RENAME_RETRY_DELAY)
                if not self._rename_file(src, target):
                    self._file.reopen(True)
                    self._current_size = 0
                    raise FileSinkError(f"rotating_file_sink: failed renaming {src} to {target}")
        self._file.reopen(True)

    @staticmethod
    def _rename_file(src: str, target: str) -> bool:
        try:
            os.remove(target)
        except OSError:
            pass
        try:
            os.rename(src, target)
        except OSError:
            return False
        return True