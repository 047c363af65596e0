"""File, descriptor and stream helpers with errors raised as exceptions."""

from __future__ import annotations

import os
import select
import stat as _stat_mod
from typing import IO, Any, BinaryIO, Dict, Iterable, Optional, Set, Tuple, Union

__all__ = [
    "CannotStatFile",
    "CannotOpenFile",
    "FdIOError",
    "ScopedFD",
    "Poll",
    "basename",
    "dirname",
    "list_directory",
    "getcwd",
    "get_user_home_directory",
    "stat",
    "lstat",
    "isfile",
    "isdir",
    "islink",
    "lisfile",
    "lisdir",
    "readlink",
    "realpath",
    "read_all",
    "read",
    "readx",
    "writex",
    "preadx",
    "pwritex",
    "freadx",
    "fwritex",
    "fgetcx",
    "fgets",
    "load_file",
    "save_file",
    "fopen",
    "rename",
    "unlink",
    "make_fd_nonblocking",
    "pipe",
]

PathLike = Union[str, bytes, "os.PathLike[str]"]
BytesLike = Union[bytes, bytearray, memoryview, str]

_READ_SIZE = 16 * 1024


def _strerror(error: Optional[int]) -> str:
    return os.strerror(error) if error else "unknown error"


def _as_bytes(data: BytesLike) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


def _path_text(path: Any) -> str:
    value = os.fspath(path)
    return value.decode(errors="replace") if isinstance(value, bytes) else value


class _FileError(OSError):
    def __init__(self, message: str, error: Optional[int]) -> None:
        super().__init__(message)
        self.errno = error
        self.error = error


class CannotStatFile(_FileError):
    """A file or descriptor could not be examined."""

    def __init__(self, target: Union[int, PathLike], error: Optional[int] = None) -> None:
        if isinstance(target, int):
            message = f"can't stat fd {target}: {_strerror(error)}"
        else:
            message = f"can't stat file {_path_text(target)}: {_strerror(error)}"
        super().__init__(message, error)


class CannotOpenFile(_FileError):
    """A file or descriptor could not be opened."""

    def __init__(self, target: Union[int, PathLike], error: Optional[int] = None) -> None:
        if isinstance(target, int):
            message = f"can't open fd {target}: {_strerror(error)}"
        else:
            message = f"can't open file {_path_text(target)}: {_strerror(error)}"
        super().__init__(message, error)


class FdIOError(_FileError):
    """A read or write on a descriptor failed or was incomplete."""

    def __init__(self, fd: int, what: Optional[str] = None,
                 error: Optional[int] = None) -> None:
        if what is None:
            super().__init__(f"io error on fd {fd}: {_strerror(error)}", error)
        else:
            super().__init__(f"io error on fd {fd}: {what}", -1)
        self.fd = fd


# ---------------------------------------------------------------------------
# Paths and directory listing


def basename(filename: str) -> str:
    """Return the part of filename after the last slash."""
    return filename.rpartition("/")[2]


def dirname(filename: str) -> str:
    """Return the part of filename before the last slash, or '' if none."""
    head, sep, _ = filename.rpartition("/")
    return head if sep else ""


def list_directory(dirname: PathLike) -> Set[str]:
    """Return the names of the entries in a directory."""
    try:
        return set(os.listdir(dirname))
    except OSError as e:
        raise CannotOpenFile(dirname, e.errno) from e


def getcwd() -> str:
    """Return the current working directory."""
    try:
        return os.getcwd()
    except OSError as e:
        raise RuntimeError("cannot get working directory") from e


def get_user_home_directory() -> str:
    """Return $HOME, or the current user's home directory from the password database."""
    home = os.environ.get("HOME")
    if home:
        return home
    try:
        import pwd

        return pwd.getpwuid(os.getuid()).pw_dir
    except (ImportError, KeyError, AttributeError) as e:
        raise RuntimeError("can't get home directory for current user") from e


# ---------------------------------------------------------------------------
# Stat helpers


def _stream_fd(stream: Any) -> int:
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        return -1


def stat(target: Union[int, PathLike, IO[Any]]) -> os.stat_result:
    """Stat a path, a descriptor or an open file object (following links)."""
    if isinstance(target, int):
        try:
            return os.fstat(target)
        except OSError as e:
            raise CannotStatFile(target, e.errno) from e
    if hasattr(target, "fileno") and not isinstance(target, (str, bytes, os.PathLike)):
        fd = _stream_fd(target)
        try:
            return os.fstat(fd)
        except OSError as e:
            raise CannotStatFile(fd, e.errno) from e
    try:
        return os.stat(target)
    except OSError as e:
        raise CannotStatFile(target, e.errno) from e


def lstat(filename: PathLike) -> os.stat_result:
    """Stat a path without following a final symbolic link."""
    try:
        return os.lstat(filename)
    except OSError as e:
        raise CannotStatFile(filename, e.errno) from e


def _check(target: Any, test, stat_fn) -> bool:
    if isinstance(target, os.stat_result):
        return test(target.st_mode)
    try:
        return test(stat_fn(target).st_mode)
    except CannotStatFile:
        return False


def isfile(target: Union[os.stat_result, PathLike]) -> bool:
    """True if the stat result or path (following links) is a regular file."""
    return _check(target, _stat_mod.S_ISREG, stat)


def isdir(target: Union[os.stat_result, PathLike]) -> bool:
    """True if the stat result or path (following links) is a directory."""
    return _check(target, _stat_mod.S_ISDIR, stat)


def islink(target: Union[os.stat_result, PathLike]) -> bool:
    """True if the stat result or path (not following links) is a symbolic link."""
    return _check(target, _stat_mod.S_ISLNK, lstat)


def lisfile(filename: PathLike) -> bool:
    """True if the path itself, not following links, is a regular file."""
    return _check(filename, _stat_mod.S_ISREG, lstat)


def lisdir(filename: PathLike) -> bool:
    """True if the path itself, not following links, is a directory."""
    return _check(filename, _stat_mod.S_ISDIR, lstat)


def readlink(filename: PathLike) -> str:
    """Return the target of a symbolic link."""
    try:
        return _path_text(os.readlink(filename))
    except OSError as e:
        raise CannotStatFile(filename, e.errno) from e


def realpath(path: PathLike) -> str:
    """Return the canonical absolute path of an existing file."""
    try:
        return _path_text(os.path.realpath(path, strict=True))
    except OSError as e:
        raise CannotStatFile(path, e.errno) from e


# ---------------------------------------------------------------------------
# Owned descriptors


class ScopedFD:
    """A file descriptor that is closed when the owner is done with it."""

    def __init__(self, target: Union[int, PathLike, None] = None,
                 mode: int = os.O_RDONLY, perm: int = 0o755) -> None:
        self._fd = -1
        if isinstance(target, int):
            self._fd = target
        elif target is not None:
            self.open(target, mode, perm)

    def open(self, filename: PathLike, mode: int = os.O_RDONLY, perm: int = 0o755) -> None:
        """Close any held descriptor and open filename."""
        self.close()
        try:
            self._fd = os.open(filename, mode, perm)
        except OSError as e:
            raise CannotOpenFile(filename, e.errno) from e

    def close(self) -> None:
        """Close the descriptor if one is held."""
        if self._fd >= 0:
            try:
                os.close(self._fd)
            except OSError:
                pass
            self._fd = -1

    def is_open(self) -> bool:
        return self._fd >= 0

    def fileno(self) -> int:
        """Return the held descriptor, or -1."""
        return self._fd

    def __int__(self) -> int:
        return self._fd

    def __index__(self) -> int:
        return self._fd

    def __hash__(self) -> int:
        return hash(self._fd)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ScopedFD):
            return self._fd == other._fd
        if isinstance(other, int):
            return self._fd == other
        return NotImplemented

    def __enter__(self) -> "ScopedFD":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __del__(self) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ScopedFD({self._fd})"


# ---------------------------------------------------------------------------
# Reading and writing


def read_all(source: Union[int, BinaryIO]) -> bytes:
    """Read a descriptor or binary stream in blocks until a short read."""
    fd = source if isinstance(source, int) else None
    chunks = []
    while True:
        try:
            if fd is not None:
                chunk = os.read(fd, _READ_SIZE)
            else:
                chunk = source.read(_READ_SIZE) or b""
        except OSError as e:
            raise FdIOError(fd if fd is not None else _stream_fd(source),
                            error=e.errno) from e
        chunks.append(chunk)
        if len(chunk) < _READ_SIZE:
            break
    return b"".join(chunks)


def read(fd: int, size: int) -> bytes:
    """Read up to size bytes from a descriptor."""
    try:
        return os.read(fd, size)
    except OSError as e:
        raise FdIOError(fd, error=e.errno) from e


def readx(fd: int, size: int) -> bytes:
    """Read exactly size bytes from a descriptor in one call."""
    data = read(fd, size)
    if len(data) != size:
        raise FdIOError(fd, f"expected {size} bytes, read {len(data)} bytes")
    return data


def writex(fd: int, data: BytesLike) -> None:
    """Write all of data to a descriptor in one call."""
    payload = _as_bytes(data)
    try:
        written = os.write(fd, payload)
    except OSError as e:
        raise FdIOError(fd, error=e.errno) from e
    if written != len(payload):
        raise FdIOError(fd, f"expected {len(payload)} bytes, wrote {written} bytes")


def preadx(fd: int, size: int, offset: int) -> bytes:
    """Read exactly size bytes at offset."""
    try:
        data = os.pread(fd, size, offset)
    except OSError as e:
        raise FdIOError(fd, error=e.errno) from e
    if len(data) != size:
        raise FdIOError(fd, f"expected {size} bytes, read {len(data)} bytes")
    return data


def pwritex(fd: int, data: BytesLike, offset: int) -> None:
    """Write all of data at offset."""
    payload = _as_bytes(data)
    try:
        written = os.pwrite(fd, payload, offset)
    except OSError as e:
        raise FdIOError(fd, error=e.errno) from e
    if written != len(payload):
        raise FdIOError(fd, f"expected {len(payload)} bytes, wrote {written} bytes")


def freadx(stream: BinaryIO, size: int) -> bytes:
    """Read exactly size bytes from a binary stream."""
    try:
        data = stream.read(size) or b""
    except OSError as e:
        raise FdIOError(_stream_fd(stream), error=e.errno) from e
    if len(data) != size:
        raise FdIOError(_stream_fd(stream),
                        f"expected {size} bytes, read {len(data)} bytes")
    return data


def fwritex(stream: BinaryIO, data: BytesLike) -> None:
    """Write all of data to a binary stream."""
    payload = _as_bytes(data)
    try:
        written = stream.write(payload)
    except OSError as e:
        raise FdIOError(_stream_fd(stream), error=e.errno) from e
    if written is not None and written != len(payload):
        raise FdIOError(_stream_fd(stream),
                        f"expected {len(payload)} bytes, wrote {written} bytes")


def fgetcx(stream: BinaryIO) -> int:
    """Read one byte from a stream; raises FdIOError at end of stream."""
    try:
        data = stream.read(1)
    except OSError as e:
        raise FdIOError(_stream_fd(stream), "cannot read from stream") from e
    if not data:
        raise FdIOError(_stream_fd(stream), "end of stream")
    return data[0]


def fgets(stream: BinaryIO) -> bytes:
    """Read one line, keeping its newline; returns b'' at end of stream."""
    try:
        return stream.readline()
    except OSError as e:
        raise FdIOError(_stream_fd(stream), "cannot read from stream") from e


# ---------------------------------------------------------------------------
# Whole files


def load_file(filename: PathLike) -> bytes:
    """Return the entire contents of a file."""
    with ScopedFD(filename, os.O_RDONLY) as fd:
        file_size = stat(fd.fileno()).st_size
        chunks = []
        remaining = file_size
        try:
            while remaining > 0:
                chunk = os.read(fd.fileno(), remaining)
                if not chunk:
                    break
                chunks.append(chunk)
                remaining -= len(chunk)
        except OSError as e:
            raise RuntimeError(
                f"can't read from {_path_text(filename)}: {_strerror(e.errno)}") from e
        data = b"".join(chunks)
        if len(data) != file_size:
            raise RuntimeError(f"can't read from {_path_text(filename)}: "
                               f"{len(data)}/{file_size} bytes read")
        return data


def save_file(filename: PathLike, data: BytesLike) -> None:
    """Create or truncate a file and write data to it."""
    payload = _as_bytes(data)
    with ScopedFD(filename, os.O_CREAT | os.O_TRUNC | os.O_WRONLY) as fd:
        try:
            written = os.write(fd.fileno(), payload)
        except OSError as e:
            raise RuntimeError(
                f"can't write to {_path_text(filename)}: {_strerror(e.errno)}") from e
        if written != len(payload):
            raise RuntimeError(f"can't write to {_path_text(filename)}: "
                               f"{written}/{len(payload)} bytes written")


class _BorrowedStream:
    """Wraps a stream that the caller does not own; closing it does nothing."""

    def __init__(self, stream: IO[Any]) -> None:
        self._stream = stream

    def close(self) -> None:
        pass

    def __enter__(self) -> "_BorrowedStream":
        return self

    def __exit__(self, *args: Any) -> None:
        pass

    def __iter__(self):
        return iter(self._stream)

    def __getattr__(self, name: str) -> Any:
        return getattr(self._stream, name)


def fopen(filename: PathLike, mode: str = "rb", dash_file: Optional[IO[Any]] = None):
    """Open a file in binary mode.

    If dash_file is given and filename is '-', dash_file is returned wrapped so
    that closing the result leaves it open.
    """
    if dash_file is not None and filename == "-":
        return _BorrowedStream(dash_file)
    if "b" not in mode:
        mode += "b"
    try:
        return open(filename, mode)
    except OSError as e:
        raise CannotOpenFile(filename, e.errno) from e


def rename(old_filename: PathLike, new_filename: PathLike) -> None:
    """Rename a file."""
    try:
        os.rename(old_filename, new_filename)
    except OSError as e:
        raise RuntimeError(
            f"can't rename file {_path_text(old_filename)} to "
            f"{_path_text(new_filename)}: {_strerror(e.errno)}") from e


def unlink(filename: PathLike, recursive: bool = False) -> None:
    """Delete a file, or a directory tree when recursive; missing files are ignored."""
    path = _path_text(filename)
    if recursive and isdir(path):
        for item in list_directory(path):
            unlink(path + "/" + item, True)
        try:
            os.rmdir(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise RuntimeError(f"can't delete directory {path}: {_strerror(e.errno)}") from e
        return
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        raise RuntimeError(f"can't delete file {path}: {_strerror(e.errno)}") from e


def make_fd_nonblocking(fd: int) -> None:
    """Set O_NONBLOCK on a descriptor."""
    try:
        os.set_blocking(fd, False)
    except OSError as e:
        raise RuntimeError(f"can't set socket flags: {_strerror(e.errno)}") from e


def pipe() -> Tuple[int, int]:
    """Create a pipe and return (read_fd, write_fd)."""
    try:
        return os.pipe()
    except OSError as e:
        raise RuntimeError(f"pipe failed: {_strerror(e.errno)}") from e


# ---------------------------------------------------------------------------
# Polling


class Poll:
    """A set of descriptors with event masks that can be polled together."""

    def __init__(self) -> None:
        self._events: Dict[int, int] = {}
        self._poller = select.poll()

    def add(self, fd: int, events: int) -> None:
        """Watch fd for events, replacing any earlier mask for it."""
        self._poller.register(fd, events)
        self._events[fd] = events

    def remove(self, fd: int, close_fd: bool = False) -> None:
        """Stop watching fd, optionally closing it; unknown fds are ignored."""
        if fd not in self._events:
            return
        del self._events[fd]
        try:
            self._poller.unregister(fd)
        except (KeyError, ValueError):
            pass
        if close_fd:
            os.close(fd)

    def empty(self) -> bool:
        return not self._events

    def fds(self) -> Iterable[int]:
        """Return the watched descriptors in ascending order."""
        return sorted(self._events)

    def poll(self, timeout_ms: int = 0) -> Dict[int, int]:
        """Return {fd: returned events} for descriptors with pending events."""
        try:
            results = self._poller.poll(timeout_ms)
        except InterruptedError:
            return {}
        except OSError as e:
            raise RuntimeError(f"poll failed: {_strerror(e.errno)}") from e
        return {fd: revents for fd, revents in results if revents}