"""Command line front end for the template translator."""

from __future__ import annotations

import argparse
import sys
from typing import Sequence

from .parser import get_rivet_file, parse_rivet_data, parse_rivet_file


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rivetweb",
        description="Translate a Rivet template into a Tcl script.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("filename", nargs="?", help="template file to translate")
    source.add_argument("--data", metavar="TEXT", help="translate TEXT instead of a file")
    parser.add_argument(
        "--bare",
        action="store_true",
        help="do not wrap a file's script in the request namespace",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command; return the process exit status."""
    args = _build_parser().parse_args(argv)

    if args.data is not None:
        sys.stdout.write(parse_rivet_data(args.data))
        return 0

    try:
        if args.bare:
            script = get_rivet_file(args.filename)
        else:
            script = parse_rivet_file(args.filename)
    except OSError as exc:
        reason = exc.strerror or str(exc)
        sys.stderr.write(f"rivetweb: {args.filename}: {reason}\n")
        return 1

    sys.stdout.write(script)
    return 0


if __name__ == "__main__":
    sys.exit(main())