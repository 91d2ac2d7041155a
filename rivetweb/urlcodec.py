"""URL decoding, query string splitting and expiry date formatting."""

from __future__ import annotations

import enum
import re
import time
from typing import List, Optional, Tuple, Union, overload

BAD_REQUEST = 400
NOT_FOUND = 404

_HEX = frozenset(b"0123456789abcdefABCDEF")
_WORD = re.compile(r"([^;&]*)[;&]*")
_DIGITS = re.compile(r"[0-9]*")

_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_MULTIPLIERS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 60 * 60 * 24,
    "M": 60 * 60 * 24 * 30,
    "y": 60 * 60 * 24 * 365,
}


class UrlEscapeError(ValueError):
    """An escape sequence that is malformed or decodes to a forbidden byte.

    ``status`` is the HTTP status the condition maps to.
    """

    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status


class ExpiresFormat(enum.IntEnum):
    """Date layouts produced by :func:`expires`."""

    HTTP = 1
    COOKIE = 2

    @property
    def separator(self) -> str:
        return " " if self is ExpiresFormat.HTTP else "-"


def _utf8_bytes(code: int) -> bytes:
    if code < 0x80:
        return bytes([code])
    if code < 0x800:
        return bytes([0xC0 | (code >> 6), 0x80 | (code & 0x3F)])
    return bytes([
        0xE0 | (code >> 12),
        0x80 | ((code >> 6) & 0x3F),
        0x80 | (code & 0x3F),
    ])


def _unicode_escape(digits: bytes) -> int:
    if len(digits) < 4 or any(d not in _HEX for d in digits):
        return 0
    return int(digits, 16)


def _unescape_bytes(raw: bytes) -> Tuple[bytes, bool, bool]:
    out = bytearray()
    bad_escape = False
    bad_path = False
    i = 0
    size = len(raw)
    while i < size:
        byte = raw[i]
        if byte != 0x25:
            out.append(byte)
            i += 1
            continue
        if raw[i + 1:i + 2] in (b"u", b"U"):
            out += _utf8_bytes(_unicode_escape(raw[i + 2:i + 6]))
            i += 6
            continue
        pair = raw[i + 1:i + 3]
        if len(pair) == 2 and all(c in _HEX for c in pair):
            value = int(pair, 16)
            out.append(value)
            if value in (0x2F, 0):
                bad_path = True
            i += 3
        else:
            bad_escape = True
            out.append(0x25)
            i += 1
    return bytes(out), bad_escape, bad_path


@overload
def unescape_url(data: str, strict: bool = ...) -> str: ...
@overload
def unescape_url(data: bytes, strict: bool = ...) -> bytes: ...


def unescape_url(data: Union[str, bytes], strict: bool = False) -> Union[str, bytes]:
    """Decode ``%XX`` and ``%uXXXX`` escapes.

    A malformed ``%`` is kept as it is. With ``strict`` a malformed escape
    raises :class:`UrlEscapeError` with status 400, and an escape decoding
    to ``/`` or NUL raises it with status 404.
    """
    raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
    decoded, bad_escape, bad_path = _unescape_bytes(raw)
    if strict:
        if bad_escape:
            raise UrlEscapeError("malformed escape sequence", BAD_REQUEST)
        if bad_path:
            raise UrlEscapeError("escape decodes to a path separator or NUL", NOT_FOUND)
    if isinstance(data, str):
        return decoded.decode("utf-8", errors="replace")
    return decoded


def _decode_component(text: str) -> str:
    return unescape_url(text.replace("+", " "))


def split_params(data: str) -> List[Tuple[str, str]]:
    """Split a query string into decoded ``(key, value)`` pairs in order.

    Pairs are separated by ``&`` or ``;``; a word without ``=`` has an empty
    value.
    """
    pairs: List[Tuple[str, str]] = []
    pos = 0
    while pos < len(data):
        match = _WORD.match(data, pos)
        pos = match.end()
        key, _, value = match.group(1).partition("=")
        pairs.append((_decode_component(key), _decode_component(value)))
    return pairs


def expires(
    time_str: Optional[str],
    kind: ExpiresFormat = ExpiresFormat.HTTP,
    now: Optional[float] = None,
) -> Optional[str]:
    """Turn a relative time such as ``+3d``, ``-1h`` or ``now`` into a GMT date.

    Units are s, m, h, d, M (30 days) and y (365 days); no unit means
    seconds. Any other string is returned unchanged.
    """
    if time_str is None:
        return None
    rest = time_str
    negative = False
    if rest.startswith("-"):
        negative = True
        rest = rest[1:]
    elif rest.startswith("+"):
        rest = rest[1:]
    elif rest.lower() != "now":
        return time_str

    digits = _DIGITS.match(rest)
    offset = int(digits.group()) if digits.group() else 0
    unit = rest[digits.end():digits.end() + 1]
    delta = _MULTIPLIERS.get(unit, 1) * (-offset if negative else offset)

    base = int(time.time()) if now is None else int(now)
    when = base + delta
    if not when:
        return time_str

    tm = time.gmtime(when)
    sep = ExpiresFormat(kind).separator
    return (
        f"{_DAYS[tm.tm_wday]}, {tm.tm_mday:02d}{sep}{_MONTHS[tm.tm_mon - 1]}{sep}"
        f"{tm.tm_year:02d} {tm.tm_hour:02d}:{tm.tm_min:02d}:{tm.tm_sec:02d} GMT"
    )