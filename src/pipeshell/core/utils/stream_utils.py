# src/pipeshell/core/utils/stream_utils.py
import errno
from contextlib import nullcontext
from typing import BinaryIO, ContextManager, Optional

# Stages exchange bytes; text is converted at the edges so that undecodable
# input survives a round trip unchanged.
ENCODING = "utf-8"
ERRORS = "surrogateescape"


def encode_text(text: str) -> bytes:
    return text.encode(ENCODING, ERRORS)


def decode_bytes(data: bytes) -> str:
    return data.decode(ENCODING, ERRORS)


def write_line(stream: BinaryIO, text: str) -> None:
    """Writes `text` plus a newline to a binary stream."""
    stream.write(encode_text(text + "\n"))


def open_source(path: Optional[str], fallback: BinaryIO) -> ContextManager[BinaryIO]:
    """
    Returns a context manager yielding the file at `path` opened for binary
    reading, or `fallback` (left open on exit) when no path is given.

    Raises:
        OSError: if the file cannot be opened.
    """
    if not path:
        return nullcontext(fallback)
    try:
        return open(path, "rb")
    except ValueError as e:
        # e.g. an embedded null byte
        raise OSError(errno.EINVAL, str(e), path) from e
