# rivetweb

Tools for Rivet-style dynamic web pages:

- `rivetweb.parser` turns templates (text mixed with `<? ... ?>` code
  sections) into Tcl scripts;
- `rivetweb.urlcodec` decodes URL escapes (including `%uXXXX`), splits
  query strings and formats expiry dates;
- `rivetweb.multipart` reads `multipart/form-data` bodies;
- `rivetweb.request` gathers the query, body and file-upload parameters of
  a request.

The package has no dependencies beyond the standard library.

## Installing

```
pip install .
```

## Translating templates

```python
from rivetweb.parser import parse, parse_rivet_data, parse_rivet_file

script = parse_rivet_data('Hello <?= $name ?>!')
script = parse_rivet_file("page.rvt")
```

Text outside the tags is emitted inside `puts -nonewline "..."` with the
characters `{ } $ [ ] " \` escaped. Code between `<?` and `?>` is copied
unchanged, and `<?= expr ?>` writes the value of `expr`.

- `parse(data)` returns a `ParseResult` with the generated `script` body and
  `inside`, true when the input ended inside a code section.
- `parse_rivet_data(data)` returns a complete script.
- `get_rivet_file(filename)` reads a template file and returns its script.
- `parse_rivet_file(filename)` does the same and wraps the script in a
  `namespace eval request { ... }` block.
- `get_tcl_file(filename)` returns the contents of a plain Tcl file.

File functions raise `OSError` when the file cannot be read.

## Command line

```
rivetweb page.rvt
```

prints the script generated from `page.rvt`, wrapped in the request
namespace. Options:

- `--bare` leaves out the namespace block;
- `--data TEXT` translates `TEXT` instead of a file.

The exit status is 1 when the file cannot be read.

## URL data and dates

```python
from rivetweb.urlcodec import split_params, unescape_url, expires, ExpiresFormat

split_params("a=1&b=hello+world;c=%41")  # [("a", "1"), ("b", "hello world"), ("c", "A")]
unescape_url("%u00e9t%C3%A9")            # "été"
expires("+1d")                           # e.g. "Tue, 02 Jan 2024 00:00:00 GMT"
expires("-1h", ExpiresFormat.COOKIE)     # e.g. "Mon, 01-Jan-2024 23:00:00 GMT"
```

`unescape_url(data, strict=True)` raises `UrlEscapeError` (with `status`
400) for a malformed escape and (with `status` 404) for an escape decoding
to `/` or NUL; without `strict` a malformed `%` is kept. `expires` accepts
`now`, or a `+`/`-` offset with a unit of `s`, `m`, `h`, `d`, `M` (30 days)
or `y` (365 days); any other string is returned unchanged. A fixed `now`
timestamp may be passed.

## Requests

```python
from rivetweb.multipart import ClientBody
from rivetweb.request import ApacheRequest, HttpRequest

body = b"name=value&x=1"
http = HttpRequest(
    method="POST",
    uri="/app/page.rvt",
    args="q=search",
    headers={"Content-Type": "application/x-www-form-urlencoded"},
    body=ClientBody(body),
)
with ApacheRequest(http) as req:
    req.param("name")         # "value"
    req.query_params()        # [("q", "search")]
    req.post_params()         # [("name", "value"), ("x", "1")]
```

`ApacheRequest` parses once, on first access. It offers `param`, `params`,
`params_as_string`, `query_params`, `post_params`, `uploads`,
`find_upload`, `script_name`, `script_path` and `expires`. Parameter names
are matched without regard to case. Failures raise `RequestError` with an
HTTP `status`: 413 when the body exceeds `post_max`, 411 for a chunked
body, 403 for an upload when `disable_uploads` is set, and 500 when an
upload cannot be stored.

Uploaded files are written to temporary files (in `temp_dir` if given) and
described by `Upload` objects (`name`, `filename`, `size`, `fp`,
`tempname`, `info_get(key)`). Leaving the `with` block closes and removes
them. An `upload_hook(upload, chunk)` may be passed instead to receive the
file contents as they arrive.

`rivetweb.multipart.MultipartBuffer` does the low-level reading of a body
given as a `ClientBody`; `find_bytes` is its boundary search.

## What it does not do

rivetweb produces Tcl scripts but does not evaluate them, and it is not a
web server: the caller builds the `HttpRequest` from an incoming request and
sends the response itself.

## Tests

```
pip install .[test]
pytest
```