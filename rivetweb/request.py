"""Request parameters and file uploads of an HTTP request.

Parameters come from the query string and from the request body, which may
be ``application/x-www-form-urlencoded`` or ``multipart/form-data``. Query
parameters are kept ahead of body parameters, in the order received.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from email.message import Message
from typing import IO, Callable, Dict, List, Optional, Tuple

from .multipart import FILLUNIT, ClientBody, MultipartBuffer
from .urlcodec import ExpiresFormat, expires as _expires, split_params

HTTP_FORBIDDEN = 403
HTTP_LENGTH_REQUIRED = 411
HTTP_REQUEST_ENTITY_TOO_LARGE = 413
HTTP_INTERNAL_SERVER_ERROR = 500

MULTIPART_ENCTYPE = "multipart/form-data"

_READ_BLOCK = 8192
_BODY_METHODS = frozenset({"POST", "PUT", "DELETE"})
_SPACES = " \t\r\n\x0b\x0c"

UploadHook = Callable[["Upload", bytes], None]


class RequestError(Exception):
    """A request that cannot be served; ``status`` is the HTTP status code."""

    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status


@dataclass
class HttpRequest:
    """The parts of an incoming HTTP request the parameter parser needs.

    ``body`` is ``None`` when the request carries no body. ``chunked`` marks a
    body sent with chunked transfer encoding, which is refused.
    """

    method: str = "GET"
    uri: str = "/"
    path_info: str = ""
    args: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[ClientBody] = None
    request_time: float = 0.0
    chunked: bool = False

    def header(self, name: str) -> Optional[str]:
        """Look up a header without regard to case."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@dataclass
class Upload:
    """A file sent in a multipart form."""

    name: str
    filename: str
    info: Message = field(default_factory=Message)
    fp: Optional[IO[bytes]] = None
    tempname: Optional[str] = None
    size: int = 0

    def info_get(self, key: str) -> Optional[str]:
        """Return a header of this part, looked up without regard to case."""
        return self.info.get(key)


def _getword(text: str, stop: str) -> Tuple[str, str]:
    idx = text.find(stop)
    if idx == -1:
        return text, ""
    rest = text[idx + 1:]
    return text[:idx], rest.lstrip(stop)


def _getword_conf(text: str) -> Tuple[str, str]:
    text = text.lstrip(_SPACES)
    if not text:
        return "", ""
    quote = text[0]
    if quote in "\"'":
        chars: List[str] = []
        i = 1
        while i < len(text) and text[i] != quote:
            if text[i] == "\\" and i + 1 < len(text) and text[i + 1] == quote:
                i += 1
            chars.append(text[i])
            i += 1
        if i < len(text):
            i += 1
        return "".join(chars), text[i:].lstrip(_SPACES)
    i = 0
    while i < len(text) and text[i] not in _SPACES:
        i += 1
    return text[:i], text[i:].lstrip(_SPACES)


def _find_path_info(uri: str, path_info: str) -> int:
    lu = len(uri)
    lp = len(path_info)
    while True:
        if lu == 0:
            lu = -1
            break
        lu -= 1
        if lp == 0:
            break
        lp -= 1
        if uri[lu] != path_info[lp]:
            break
        if path_info[lp] == "/":
            while lu and uri[lu - 1] == "/":
                lu -= 1
    if lu == -1:
        lu = 0
    while lu < len(uri) and uri[lu] != "/":
        lu += 1
    return lu


def _boundary_from(content_type: str) -> Optional[str]:
    rest = content_type
    while True:
        word, rest = _getword(rest, "=")
        if len(word) < len("boundary"):
            return None
        if word[-len("boundary"):].lower() == "boundary":
            break
    boundary, _ = _getword_conf(rest)
    return boundary


def _text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


class ApacheRequest:
    """Parses and holds the parameters and uploads of one request.

    Parsing happens once, on first access. Temporary files holding uploads
    are removed when the object is used as a context manager and exits.
    """

    def __init__(
        self,
        request: HttpRequest,
        post_max: int = -1,
        disable_uploads: bool = False,
        temp_dir: Optional[str] = None,
        upload_hook: Optional[UploadHook] = None,
    ):
        self.request = request
        self.post_max = post_max
        self.disable_uploads = disable_uploads
        self.temp_dir = temp_dir
        self.upload_hook = upload_hook
        self.raw_post: Optional[str] = None
        self.parsed = False
        self.error: Optional[RequestError] = None
        self._parms: List[Tuple[str, str]] = []
        self._nargs = 0
        self._uploads: List[Upload] = []

    def __enter__(self) -> "ApacheRequest":
        return self

    def __exit__(self, *exc_info: object) -> None:
        for upload in self._uploads:
            if upload.fp is not None:
                upload.fp.close()
            if upload.tempname is not None:
                try:
                    os.remove(upload.tempname)
                except OSError:
                    pass

    # -- parsing ---------------------------------------------------------

    def parse(self) -> None:
        """Parse the request once; raise :class:`RequestError` on failure.

        A failure is remembered and raised again on later calls.
        """
        if self.parsed:
            if self.error is not None:
                raise self.error
            return
        try:
            if self.request.args:
                self._parms.extend(split_params(self.request.args))
                self._nargs = len(self._parms)
            content_type = self.request.header("Content-Type")
            if (
                self.request.method.upper() == "POST"
                and content_type
                and content_type[:len(MULTIPART_ENCTYPE)].lower() == MULTIPART_ENCTYPE
            ):
                self.parse_multipart(content_type)
            else:
                self.parse_urlencoded()
        except RequestError as exc:
            self.error = exc
            raise
        finally:
            self.parsed = True

    def _client_body(self) -> Optional[ClientBody]:
        if self.request.chunked:
            raise RequestError("chunked request body not accepted", HTTP_LENGTH_REQUIRED)
        body = self.request.body
        if body is None or body.remaining <= 0:
            return None
        if self.post_max > 0 and body.remaining > self.post_max:
            raise RequestError(
                f"entity too large ({body.remaining}, max={self.post_max})",
                HTTP_REQUEST_ENTITY_TOO_LARGE,
            )
        return body

    def parse_urlencoded(self) -> None:
        """Read a url-encoded body of a POST, PUT or DELETE request."""
        if self.request.method.upper() not in _BODY_METHODS:
            return
        body = self._client_body()
        if body is None:
            return
        length = body.remaining
        data = b"".join(iter(lambda: body.read(_READ_BLOCK), b""))[:length]
        data = data.split(b"\0", 1)[0]
        self.raw_post = _text(data)
        self._parms.extend(split_params(self.raw_post))

    def parse_multipart(self, content_type: str) -> None:
        """Read a ``multipart/form-data`` body, collecting fields and uploads."""
        body = self._client_body()
        if body is None:
            return
        length = body.remaining
        boundary = _boundary_from(content_type)
        if boundary is None:
            return
        mbuff = MultipartBuffer(boundary, length, body)

        while not mbuff.eof():
            header = mbuff.headers()
            if header is None:
                while body.read(FILLUNIT):
                    pass
                return

            disposition = header.get("Content-Disposition")
            if disposition is None:
                continue
            param, filename = self._disposition(disposition)

            if filename is None:
                self._parms.append((param or "", _text(mbuff.read_body())))
                continue
            if not param:
                continue
            if self.disable_uploads:
                raise RequestError("file upload forbidden", HTTP_FORBIDDEN)

            self._parms.append((param, filename))
            upload = Upload(name=param, filename=filename, info=header)
            self._uploads.append(upload)
            if self.upload_hook is None:
                self._open_tempfile(upload)

            mbuff.fill_buffer()
            if mbuff.pending.startswith(mbuff.boundary):
                # empty file sent without its trailing CRLF
                body.remaining -= 2
                continue

            for chunk in iter(lambda: mbuff.read(FILLUNIT), b""):
                if self.upload_hook is not None:
                    self.upload_hook(upload, chunk)
                else:
                    try:
                        upload.fp.write(chunk)
                    except OSError as exc:
                        raise RequestError(str(exc), HTTP_INTERNAL_SERVER_ERROR) from exc
                upload.size += len(chunk)

        for upload in self._uploads:
            if upload.fp is not None:
                upload.fp.flush()

    @staticmethod
    def _disposition(value: str) -> Tuple[Optional[str], Optional[str]]:
        param: Optional[str] = None
        filename: Optional[str] = None
        rest = value
        while rest:
            pair, rest = _getword(rest, ";")
            rest = rest.lstrip(_SPACES)
            if "=" not in pair:
                continue
            key, pair = _getword(pair, "=")
            if key.lower() == "name":
                param, _ = _getword_conf(pair)
            elif key.lower() == "filename":
                filename, _ = _getword_conf(pair)
        return param, filename

    def _open_tempfile(self, upload: Upload) -> None:
        try:
            handle = tempfile.NamedTemporaryFile(
                mode="w+b",
                prefix=f"{int(self.request.request_time)}.",
                dir=self.temp_dir,
                delete=False,
            )
        except OSError as exc:
            raise RequestError(
                f"failed to open temp file: {exc}", HTTP_INTERNAL_SERVER_ERROR
            ) from exc
        upload.fp = handle
        upload.tempname = handle.name

    # -- access ----------------------------------------------------------

    def param(self, key: str) -> Optional[str]:
        """Return the first value of ``key``, matched without regard to case."""
        values = self.params(key)
        return values[0] if values else None

    def params(self, key: str) -> List[str]:
        """Return every value of ``key`` in the order received."""
        self.parse()
        wanted = key.lower()
        return [value for name, value in self._parms if name.lower() == wanted]

    def params_as_string(self, key: str) -> Optional[str]:
        """Return the values of ``key`` joined by ``", "``, or ``None``."""
        values = self.params(key)
        return ", ".join(values) if values else None

    def query_params(self) -> List[Tuple[str, str]]:
        """The parameters that came from the query string."""
        return list(self._parms[:self._nargs])

    def post_params(self) -> List[Tuple[str, str]]:
        """The parameters that came from the request body."""
        return list(self._parms[self._nargs:])

    def script_name(self) -> str:
        """The request URI without its trailing path info."""
        uri = self.request.uri
        if self.request.path_info:
            return uri[:_find_path_info(uri, self.request.path_info)]
        return uri

    def script_path(self) -> str:
        """The directory part of :meth:`script_name`, ending in ``/``."""
        name = self.script_name()
        idx = name.rfind("/")
        return name[:idx + 1] if idx != -1 else ""

    def uploads(self) -> List[Upload]:
        """Return the uploaded files in the order received."""
        self.parse()
        return list(self._uploads)

    def find_upload(self, name: str) -> Optional[Upload]:
        """Return the first upload sent under the form field ``name``."""
        return next((u for u in self.uploads() if u.name == name), None)

    def expires(self, time_str: Optional[str]) -> Optional[str]:
        """Format a relative expiry time as an HTTP date."""
        return _expires(time_str, ExpiresFormat.HTTP)