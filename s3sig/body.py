"""
Request payload hashing.

A body is wrapped into one of four variants before hashing. File-backed
handles are digested through their descriptor with positioned reads so the
caller's handle is neither read nor rewound; other streams are buffered once.
"""

import abc
import io
import os
import stat
from hashlib import sha256
from typing import Any, Optional

EMPTY_SHA256_HASH = sha256(b"").hexdigest()

# Size of each read when hashing file-backed payloads.
PAYLOAD_BUFFER = 1024 * 1024

# Without positioned reads a file can only be hashed by reopening its path.
HAS_PREAD = hasattr(os, "pread")


class Body(abc.ABC):
    """A request payload that knows how to hash itself."""

    #: Payload bytes consumed from a stream that could not be rewound.
    buffered: Optional[bytes] = None

    @abc.abstractmethod
    def digest(self) -> str:
        """Hex SHA-256 of the payload."""

    @staticmethod
    def wrap(body: Any) -> "Body":
        if body is None:
            return EmptyBody()
        if isinstance(body, (bytes, bytearray, memoryview)):
            return BytesBody(bytes(body))
        if isinstance(body, str):
            return BytesBody(body.encode("utf-8"))
        if hasattr(body, "read"):
            if _is_regular_file(body) and (HAS_PREAD or _has_path(body)):
                return FileBody(body)
            return StreamBody(body)
        raise TypeError(f"Unsupported request body type: {type(body).__name__}")


class EmptyBody(Body):
    def digest(self) -> str:
        return EMPTY_SHA256_HASH


class BytesBody(Body):
    def __init__(self, data: bytes) -> None:
        self.data = data

    def digest(self) -> str:
        return sha256(self.data).hexdigest()


class FileBody(Body):
    """
    A binary handle backed by a regular file.

    Hashes from the handle's current position to the end of the file without
    calling ``read`` or ``seek`` on it, so its position is left as it was.
    """

    def __init__(self, handle: Any) -> None:
        self.handle = handle

    def digest(self) -> str:
        checksum = sha256()
        offset = self.handle.tell()
        if HAS_PREAD:
            fd = self.handle.fileno()
            while True:
                chunk = os.pread(fd, PAYLOAD_BUFFER, offset)
                if not chunk:
                    break
                checksum.update(chunk)
                offset += len(chunk)
        else:
            with open(self.handle.name, "rb") as reader:
                reader.seek(offset)
                for chunk in iter(lambda: reader.read(PAYLOAD_BUFFER), b""):
                    checksum.update(chunk)
        return checksum.hexdigest()


class StreamBody(Body):
    """Any other readable object. Read fully into memory to hash it."""

    def __init__(self, stream: Any) -> None:
        self.stream = stream

    def digest(self) -> str:
        position = self.stream.tell() if _is_seekable(self.stream) else None
        data = self.stream.read()
        if data is None:
            data = b""
        elif isinstance(data, str):
            data = data.encode("utf-8")
        if position is not None:
            self.stream.seek(position)
        else:
            self.buffered = data
        return sha256(data).hexdigest()


def _has_path(handle: Any) -> bool:
    return isinstance(getattr(handle, "name", None), (str, os.PathLike))


def _is_seekable(stream: Any) -> bool:
    seekable = getattr(stream, "seekable", None)
    if seekable is not None:
        return seekable()
    return hasattr(stream, "seek") and hasattr(stream, "tell")


def _is_regular_file(handle: Any) -> bool:
    if isinstance(handle, io.TextIOBase):
        return False
    mode = getattr(handle, "mode", "b")
    if isinstance(mode, str) and "b" not in mode:
        return False
    fileno = getattr(handle, "fileno", None)
    if fileno is None:
        return False
    try:
        fd = fileno()
    except (OSError, ValueError):
        # io.UnsupportedOperation is both, raised by in-memory streams.
        return False
    if not isinstance(fd, int):
        return False
    return stat.S_ISREG(os.fstat(fd).st_mode)
