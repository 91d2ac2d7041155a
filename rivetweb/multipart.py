"""Incremental reader for ``multipart/form-data`` request bodies."""

from __future__ import annotations

import io
from email.message import Message
from typing import BinaryIO, Optional, Union

FILLUNIT = 8 * 1024

_WHITESPACE = b" \t\r\n\x0b\x0c"

BytesLike = Union[bytes, bytearray, memoryview]


class ClientBody:
    """The body of a client request, read in blocks.

    ``remaining`` counts the bytes the client has still to send. It may be
    adjusted by callers, as the multipart reader relies on it to decide how
    much to ask for.
    """

    def __init__(self, source: Union[BytesLike, BinaryIO], length: Optional[int] = None):
        if isinstance(source, (bytes, bytearray, memoryview)):
            data = bytes(source)
            if length is not None:
                data = data[:length]
            self._stream: BinaryIO = io.BytesIO(data)
            self._unread = len(data)
        else:
            if length is None:
                raise ValueError("a length is required for a stream body")
            self._stream = source
            self._unread = length
        self.remaining = self._unread

    def read(self, size: int) -> bytes:
        """Read at most ``size`` bytes; an empty result means the body is exhausted."""
        limit = min(size, self._unread)
        if limit <= 0:
            return b""
        data = self._stream.read(limit) or b""
        self._unread -= len(data)
        self.remaining -= len(data)
        return data


def find_bytes(haystack: BytesLike, needle: bytes, partial: bool = False) -> Optional[int]:
    """Return the offset of the first match of ``needle`` in ``haystack``.

    With ``partial``, a prefix of ``needle`` that runs to the end of
    ``haystack`` also counts as a match. Returns ``None`` when nothing matches.
    """
    if not needle:
        raise ValueError("needle must not be empty")
    first = needle[:1]
    size = len(needle)
    pos = haystack.find(first)
    while pos != -1:
        tail = bytes(haystack[pos:pos + size])
        if tail == needle:
            return pos
        if partial and len(tail) < size and needle.startswith(tail):
            return pos
        pos = haystack.find(first, pos + 1)
    return None


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="surrogateescape")


class MultipartBuffer:
    """Splits a multipart body into header blocks and part contents."""

    def __init__(self, boundary: Union[str, bytes], length: int, body: ClientBody):
        if isinstance(boundary, str):
            boundary = boundary.encode("utf-8")
        self.body = body
        self.length = length
        self.bufsize = max(len(boundary) + 6, FILLUNIT)
        self.boundary = b"--" + boundary
        self.boundary_next = b"\n" + self.boundary
        self._buf = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes received from the client and not yet consumed."""
        return bytes(self._buf)

    def fill_buffer(self) -> int:
        """Read more client data into the buffer; return the number of bytes added."""
        to_read = self.bufsize - len(self._buf)
        if to_read >= self.body.remaining:
            # The closing boundary is left unread on purpose.
            to_read = self.body.remaining - len(self.boundary)
        if to_read <= 0:
            return 0
        data = self.body.read(to_read)
        self._buf += data
        return len(data)

    def next_line(self) -> Optional[bytes]:
        """Take the next LF or CRLF terminated line out of the buffer.

        Returns ``None`` when no complete line is buffered and the buffer is
        not full; a full buffer without a line end is returned whole.
        """
        idx = self._buf.find(b"\n")
        if idx == -1:
            if len(self._buf) < self.bufsize:
                return None
            line = bytes(self._buf)
            self._buf.clear()
            return line
        line = bytes(self._buf[:idx])
        del self._buf[:idx + 1]
        if line.endswith(b"\r"):
            line = line[:-1]
        return line

    def get_line(self) -> Optional[bytes]:
        """Return the next line, reading from the client once if needed."""
        line = self.next_line()
        if line is None:
            self.fill_buffer()
            line = self.next_line()
        return line

    def find_boundary(self, boundary: bytes) -> bool:
        """Skip lines until one equals ``boundary``; return whether it was found."""
        while True:
            line = self.get_line()
            if line is None:
                return False
            if line == boundary:
                return True

    def headers(self) -> Optional[Message]:
        """Read the header block of the next part.

        Returns ``None`` when no further boundary is found. Header names are
        looked up without regard to case; a line without a colon gives an
        empty value.
        """
        if not self.find_boundary(self.boundary):
            return None
        table = Message()
        while True:
            line = self.get_line()
            if not line:
                break
            key, sep, value = line.partition(b":")
            if sep:
                value = value.lstrip(_WHITESPACE)
            table[_decode(key)] = _decode(value)
        return table

    def read(self, size: int) -> bytes:
        """Read at most ``size`` bytes of the current part's content.

        An empty result means the part's boundary has been reached.
        """
        if size > len(self._buf):
            self.fill_buffer()
        bound = find_bytes(self._buf, self.boundary_next, partial=True)
        limit = len(self._buf) if bound is None else bound
        count = min(limit, size)
        if count <= 0:
            return b""
        chunk = bytes(self._buf[:count])
        if bound is not None and count == bound and chunk.endswith(b"\r"):
            chunk = chunk[:-1]
        del self._buf[:len(chunk)]
        return chunk

    def read_body(self) -> bytes:
        """Read the whole content of the current part."""
        return b"".join(iter(lambda: self.read(FILLUNIT), b""))

    def eof(self) -> bool:
        """Return true when the buffer is empty and the client has nothing more."""
        return not self._buf and self.fill_buffer() < 1