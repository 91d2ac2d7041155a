"""Translate Rivet templates into Tcl scripts.

Template text is emitted inside ``puts -nonewline "..."`` with Tcl
metacharacters escaped. Code between ``<?`` and ``?>`` is copied verbatim.
``<?= expr ?>`` writes the value of ``expr``.
"""

from __future__ import annotations

from dataclasses import dataclass
from os import PathLike
from typing import Union

START_TAG = "<?"
END_TAG = "?>"

_PUTS_OPEN = 'puts -nonewline "'
_ECHO_OPEN = "\nputs -nonewline "
_TEXT_REOPEN = '\nputs -nonewline "'
_TEXT_CLOSE = '"\n'
_NAMESPACE_OPEN = "namespace eval request {\n"
_NAMESPACE_CLOSE = "\n}\n"

_ESCAPES = {
    "{": "\\{",
    "}": "\\}",
    "$": "\\$",
    "[": "\\[",
    "]": "\\]",
    '"': '\\"',
    "\\": "\\\\",
}

Pathish = Union[str, "PathLike[str]"]


@dataclass(frozen=True)
class ParseResult:
    """Output of :func:`parse`.

    ``script`` is the generated Tcl text; ``inside`` is true when the input
    ended inside a ``<? ?>`` code section.
    """

    script: str
    inside: bool


def parse(data: str) -> ParseResult:
    """Translate template text into the body of a Tcl script.

    The result does not include the leading ``puts -nonewline "`` nor the
    closing quote; see :func:`parse_rivet_data` for a complete script.
    A partially matched tag at the very end of the input is dropped.
    """
    out: list[str] = []
    inside = False
    check_echo = False
    matched = 0

    for ch in data:
        if not inside:
            if ch == START_TAG[matched]:
                matched += 1
                if matched == len(START_TAG):
                    out.append(_TEXT_CLOSE)
                    inside = True
                    check_echo = True
                    matched = 0
                continue
            if matched:
                out.append(START_TAG[:matched])
                matched = 0
            out.append(_ESCAPES.get(ch, ch))
            continue

        if check_echo:
            check_echo = False
            if ch == "=":
                out.append(_ECHO_OPEN)
                continue

        if ch == END_TAG[matched]:
            matched += 1
            if matched == len(END_TAG):
                out.append(_TEXT_REOPEN)
                inside = False
                matched = 0
        else:
            if matched:
                out.append(END_TAG[:matched])
                matched = 0
            out.append(ch)

    return ParseResult("".join(out), inside)


def parse_rivet_data(data: str) -> str:
    """Return a complete Tcl script generated from template text."""
    result = parse(data)
    script = _PUTS_OPEN + result.script
    if not result.inside:
        script += _TEXT_CLOSE
    return script


def _read_text(filename: Pathish) -> str:
    with open(filename, encoding="utf-8", newline=None) as handle:
        return handle.read()


def get_rivet_file(filename: Pathish) -> str:
    """Read a template file and return the Tcl script it generates.

    Raises :class:`OSError` when the file cannot be read.
    """
    return parse_rivet_data(_read_text(filename))


def parse_rivet_file(filename: Pathish) -> str:
    """Return the script for a template file wrapped in the request namespace."""
    return _NAMESPACE_OPEN + get_rivet_file(filename) + _NAMESPACE_CLOSE


def get_tcl_file(filename: Pathish) -> str:
    """Return the contents of a plain Tcl file.

    Raises :class:`OSError` with a descriptive message when it cannot be read.
    """
    try:
        return _read_text(filename)
    except OSError as exc:
        reason = exc.strerror or str(exc)
        raise OSError(exc.errno, f'couldn\'t read file "{filename}": {reason}') from exc