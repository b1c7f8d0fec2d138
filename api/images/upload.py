"""
Single-file multipart receiver for image uploads.

The body is streamed through python-multipart and the file is kept in
memory only (no temp-file spill). Limits are enforced while bytes arrive,
so an oversized upload is rejected before anything reaches the database:

- exactly one file part, named `file`
- file size <= MAX_UPLOAD_BYTES (default 5 MiB)
"""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Request
from python_multipart.exceptions import MultipartParseError
from python_multipart.multipart import MultipartParser, parse_options_header

from core import config
from core.errors import UploadTooLargeError, ValidationError

FILE_FIELD = "file"
DEFAULT_MIMETYPE = "application/octet-stream"

# Room for boundaries and part headers on top of the file itself.
MULTIPART_OVERHEAD_BYTES = 64 * 1024


@dataclass(frozen=True)
class ReceivedFile:
    filename: str
    mimetype: str
    data: bytes

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def _decode(value: bytes) -> str:
    return value.decode("utf-8", errors="replace").strip()


def _too_large(max_bytes: int) -> UploadTooLargeError:
    return UploadTooLargeError(f"File too large. Max is {max_bytes} bytes.")


class _SingleFileCollector:
    """
    python-multipart callbacks that keep the `file` part and ignore the rest.
    """

    def __init__(self, max_bytes: int) -> None:
        self.max_bytes = max_bytes
        self.received: ReceivedFile | None = None
        self._file_parts = 0
        self._header_name = b""
        self._header_value = b""
        self._headers: dict[bytes, bytes] = {}
        self._capturing = False
        self._filename = ""
        self._mimetype = DEFAULT_MIMETYPE
        self._buf = bytearray()

    def callbacks(self) -> dict:
        return {
            "on_part_begin": self.on_part_begin,
            "on_part_data": self.on_part_data,
            "on_part_end": self.on_part_end,
            "on_header_field": self.on_header_field,
            "on_header_value": self.on_header_value,
            "on_header_end": self.on_header_end,
            "on_headers_finished": self.on_headers_finished,
        }

    def on_part_begin(self) -> None:
        self._headers = {}
        self._capturing = False

    def on_header_field(self, data: bytes, start: int, end: int) -> None:
        self._header_name += data[start:end]

    def on_header_value(self, data: bytes, start: int, end: int) -> None:
        self._header_value += data[start:end]

    def on_header_end(self) -> None:
        self._headers[self._header_name.lower()] = self._header_value
        self._header_name = b""
        self._header_value = b""

    def on_headers_finished(self) -> None:
        _, options = parse_options_header(self._headers.get(b"content-disposition", b""))
        filename = _decode(options.get(b"filename", b""))
        if not filename:
            # Plain form field, or a file input left empty by the browser.
            return

        self._file_parts += 1
        if self._file_parts > 1:
            raise ValidationError("Only one file may be uploaded.")

        if _decode(options.get(b"name", b"")) != FILE_FIELD:
            return

        self._capturing = True
        self._filename = filename
        self._mimetype = _decode(self._headers.get(b"content-type", b"")) or DEFAULT_MIMETYPE
        self._buf = bytearray()

    def on_part_data(self, data: bytes, start: int, end: int) -> None:
        if not self._capturing:
            return
        self._buf.extend(data[start:end])
        if len(self._buf) > self.max_bytes:
            raise _too_large(self.max_bytes)

    def on_part_end(self) -> None:
        if not self._capturing:
            return
        self._capturing = False
        self.received = ReceivedFile(
            filename=self._filename,
            mimetype=self._mimetype,
            data=bytes(self._buf),
        )
        self._buf = bytearray()


def _declared_length(request: Request) -> int | None:
    raw = request.headers.get("content-length", "").strip()
    if not raw.isdigit():
        return None
    return int(raw)


async def receive_upload(request: Request) -> ReceivedFile:
    """
    FastAPI dependency: buffer the single uploaded file or reject the request.
    """
    content_type, params = parse_options_header(request.headers.get("content-type", ""))
    boundary = params.get(b"boundary")
    if content_type.lower() != b"multipart/form-data" or not boundary:
        raise ValidationError("No file uploaded")

    max_bytes = config.max_upload_bytes()
    body_limit = max_bytes + MULTIPART_OVERHEAD_BYTES
    declared = _declared_length(request)
    if declared is not None and declared > body_limit:
        raise _too_large(max_bytes)

    collector = _SingleFileCollector(max_bytes)
    parser = MultipartParser(boundary, collector.callbacks())
    received = 0
    try:
        async for chunk in request.stream():
            if not chunk:
                continue
            received += len(chunk)
            if received > body_limit:
                raise _too_large(max_bytes)
            parser.write(chunk)
        parser.finalize()
    except MultipartParseError as exc:
        raise ValidationError("Malformed multipart body.") from exc

    if collector.received is None:
        raise ValidationError("No file uploaded")
    return collector.received
