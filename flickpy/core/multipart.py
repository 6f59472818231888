"""multipart/form-data encoding for photo uploads.

Security notes:
- The whole body is built in memory; callers enforce upload size caps.
- Never log the encoded body (it carries the photo bytes and the signature).
"""
from __future__ import annotations

import io
import os
import uuid
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from flickpy.errors import EncodingError

CONTENT_TYPES: Mapping[str, str] = MappingProxyType(
    {
        ".jpg": "image/jpeg",
        ".jpeg": "image/jpeg",
        ".jpe": "image/jpeg",
        ".gif": "image/gif",
        ".png": "image/png",
    }
)

_CRLF = b"\r\n"


def content_type_for(filename: str) -> Optional[str]:
    """Return the MIME type for a filename's extension, or None if unknown."""

    return CONTENT_TYPES.get(os.path.splitext(filename)[1].lower())


def _escape_quotes(s: str) -> str:
    if "\r" in s or "\n" in s:
        raise ValueError(f"line break in part header value: {s!r}")
    return s.replace("\\", "\\\\").replace('"', '\\"')


class _MultipartWriter:
    """Sequential writer for one multipart body.

    Parts must be written in order; `close` appends the terminating boundary.
    """

    def __init__(self, out: io.BytesIO, boundary: Optional[str] = None):
        self._out = out
        self.boundary = boundary or "flickpy-" + uuid.uuid4().hex
        self._closed = False

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    def _begin_part(self, headers: Mapping[str, str]) -> None:
        if self._closed:
            raise ValueError("writer already closed")
        self._out.write(f"--{self.boundary}".encode("utf-8") + _CRLF)
        for k, v in headers.items():
            self._out.write(f"{k}: {v}".encode("utf-8") + _CRLF)
        self._out.write(_CRLF)

    def write_field(self, name: str, value: str) -> None:
        if not isinstance(value, str):
            raise TypeError(f"field value must be str, got {type(value).__name__}")
        self._begin_part(
            {"Content-Disposition": f'form-data; name="{_escape_quotes(name)}"'}
        )
        self._out.write(value.encode("utf-8"))
        self._out.write(_CRLF)

    def create_form_file(self, field_name: str, filename: str, content_type: Optional[str]) -> None:
        headers = {
            "Content-Disposition": (
                f'form-data; name="{_escape_quotes(field_name)}"; '
                f'filename="{_escape_quotes(filename)}"'
            )
        }
        if content_type:
            headers["Content-Type"] = content_type
        self._begin_part(headers)

    def write(self, data: bytes) -> None:
        self._out.write(memoryview(data))
        self._out.write(_CRLF)

    def close(self) -> None:
        if self._closed:
            raise ValueError("writer already closed")
        self._out.write(f"--{self.boundary}--".encode("utf-8") + _CRLF)
        self._closed = True


def encode_upload(
    fields: Mapping[str, str],
    file_field_name: str,
    filename: str,
    file_bytes: bytes,
    *,
    boundary: Optional[str] = None,
) -> Tuple[bytes, str]:
    """Encode form fields and one file part.

    Returns (body, content_type_header). The header carries the boundary and
    must be sent unmodified as the request's Content-Type.

    Raises:
      EncodingError: naming the step that failed. Nothing is retried.
    """

    out = io.BytesIO()
    mpw = _MultipartWriter(out, boundary)

    for k, v in fields.items():
        try:
            mpw.write_field(k, v)
        except (TypeError, ValueError) as e:
            raise EncodingError(f"field write failed [{k}={v}]", e) from e

    try:
        mpw.create_form_file(file_field_name, filename, content_type_for(filename))
    except (TypeError, ValueError) as e:
        raise EncodingError(f"form file creation failed [{filename}]", e) from e

    try:
        mpw.write(file_bytes)
    except (TypeError, ValueError) as e:
        raise EncodingError("adding photo data failed", e) from e

    try:
        mpw.close()
    except ValueError as e:
        raise EncodingError("multipart close failed", e) from e

    return out.getvalue(), mpw.content_type
