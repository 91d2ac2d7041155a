import io

import pytest

from rivetweb.multipart import FILLUNIT, ClientBody, MultipartBuffer, find_bytes


def _body(boundary, parts):
    chunks = []
    for headers, content in parts:
        chunks.append(b"--" + boundary + b"\r\n")
        for header in headers:
            chunks.append(header + b"\r\n")
        chunks.append(b"\r\n")
        chunks.append(content + b"\r\n")
    chunks.append(b"--" + boundary + b"--\r\n")
    return b"".join(chunks)


def _buffer(boundary, data):
    return MultipartBuffer(boundary, len(data), ClientBody(data))


def test_client_body_reads_in_blocks():
    body = ClientBody(b"abcdef")
    assert body.read(4) == b"abcd"
    assert body.remaining == 2
    assert body.read(10) == b"ef"
    assert body.read(10) == b""
    assert body.remaining == 0


def test_client_body_stream_limited_by_length():
    body = ClientBody(io.BytesIO(b"abcdef"), length=3)
    assert body.read(10) == b"abc"
    assert body.read(10) == b""


def test_client_body_stream_needs_length():
    with pytest.raises(ValueError):
        ClientBody(io.BytesIO(b"abc"))


@pytest.mark.parametrize(
    "haystack,needle",
    [
        (b"hello world", b"wor"),
        (b"aaab", b"ab"),
        (b"xx\n--B\n--B", b"\n--B"),
        (b"needle", b"needle"),
    ],
)
def test_find_bytes_full_match(haystack, needle):
    assert find_bytes(haystack, needle) == haystack.find(needle)
    assert find_bytes(haystack, needle, True) == haystack.find(needle)


def test_find_bytes_missing():
    assert find_bytes(b"hello", b"xyz") is None
    assert find_bytes(b"hello", b"lo!", False) is None


def test_find_bytes_partial_at_end():
    haystack = b"data\n--B"
    needle = b"\n--Boundary"
    assert find_bytes(haystack, needle, True) == haystack.index(b"\n")
    assert find_bytes(haystack, needle, False) is None


def test_find_bytes_rejects_empty_needle():
    with pytest.raises(ValueError):
        find_bytes(b"abc", b"")


def test_buffer_size():
    assert MultipartBuffer("B", 0, ClientBody(b"")).bufsize == FILLUNIT
    long_boundary = "x" * (FILLUNIT + 10)
    mb = MultipartBuffer(long_boundary, 0, ClientBody(b""))
    assert mb.bufsize == len(long_boundary) + 6
    assert mb.boundary == b"--" + long_boundary.encode()
    assert mb.boundary_next == b"\n--" + long_boundary.encode()


def test_single_field():
    disposition = b'Content-Disposition: form-data; name="a"'
    mb = _buffer(b"B", _body(b"B", [([disposition], b"hello")]))
    headers = mb.headers()
    assert headers["Content-Disposition"] == 'form-data; name="a"'
    assert headers["content-disposition"] == 'form-data; name="a"'
    assert mb.read_body() == b"hello"
    assert mb.headers() is None


def test_fields_in_order():
    parts = [
        ([b'Content-Disposition: form-data; name="one"'], b"first"),
        ([b'Content-Disposition: form-data; name="two"'], b"second value"),
        ([b'Content-Disposition: form-data; name="three"'], b""),
    ]
    mb = _buffer(b"sep42", _body(b"sep42", parts))
    seen = []
    while not mb.eof():
        headers = mb.headers()
        if headers is None:
            break
        seen.append((headers["Content-Disposition"], mb.read_body()))
    expected = [(h[0].split(b": ", 1)[1].decode(), c) for h, c in parts]
    assert seen == expected


def test_header_without_colon_and_spaces():
    headers = [b"X-Flag", b"Content-Type:   text/plain"]
    mb = _buffer(b"B", _body(b"B", [(headers, b"v")]))
    table = mb.headers()
    assert table["x-flag"] == ""
    assert table["content-type"] == "text/plain"
    assert table["missing"] is None


def test_eof():
    assert _buffer(b"B", b"").eof() is True
    disposition = b'Content-Disposition: form-data; name="a"'
    assert _buffer(b"B", _body(b"B", [([disposition], b"x")])).eof() is False


def test_full_buffer_without_line_end():
    mb = _buffer(b"B", b"x" * (FILLUNIT * 2))
    line = mb.get_line()
    assert line == b"x" * mb.bufsize
    assert mb.pending == b""


def test_incomplete_line_is_not_returned():
    mb = _buffer(b"B", b"line one\r\nrest of it")
    assert mb.get_line() == b"line one"
    before = mb.pending
    assert mb.next_line() is None
    assert mb.pending == before


def test_headers_without_boundary():
    mb = _buffer(b"B", b"garbage\r\nmore garbage\r\n")
    assert mb.headers() is None