"""Response decoding: envelope check first, then the caller's result shape.

Both passes read the same in-memory buffer, so the response stream is
drained exactly once.

Security notes:
- Response bodies are untrusted. XML is parsed with defusedxml to refuse
  entity expansion and external references.
- The raw payload is only echoed back when the envelope itself is malformed.
"""
from __future__ import annotations

import json
import logging
import re
from contextlib import closing
from dataclasses import dataclass
from typing import Any, BinaryIO, Dict, Optional, Type, TypeVar

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET
from pydantic import BaseModel, ValidationError

from flickpy.errors import ParseError, ServiceError

log = logging.getLogger("flickpy.decoding")

FORMAT_XML = "xml"
FORMAT_JSON = "json"
RESPONSE_FORMATS = frozenset({FORMAT_XML, FORMAT_JSON})

CONTENT_KEY = "_content"

T = TypeVar("T", bound=BaseModel)

# Legacy JSON responses arrive wrapped as jsonFlickrApi({...}).
_JSONP_BEGIN = re.compile(rb"^[ \t\r\n]*jsonFlickrApi\(")
_JSONP_END = re.compile(rb"\)[ \t\r\n]*$")


@dataclass(frozen=True, slots=True)
class Envelope:
    """Top-level response status.

    `code` and `message` are only set when `stat` is not "ok".
    """

    stat: str
    code: Optional[int] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.stat == "ok"

    def raise_for_status(self) -> None:
        if not self.ok:
            raise ServiceError(self.code or 0, self.message or "")


def strip_jsonp(raw: bytes) -> bytes:
    """Remove the jsonFlickrApi(...) wrapper, if any."""

    return _JSONP_END.sub(b"", _JSONP_BEGIN.sub(b"", raw))


def element_to_dict(elem: Any) -> Dict[str, Any]:
    """Convert an XML element into plain data for model validation.

    - attributes become keys
    - children with no attributes and no children become their text
    - repeated sibling tags become lists, in document order
    - an element's own non-blank text is stored under "_content"

    """

    out: Dict[str, Any] = dict(elem.attrib)
    text = (elem.text or "").strip()
    if text:
        out[CONTENT_KEY] = text

    seen = set()
    repeated = set()
    for child in elem:
        tag = child.tag
        if len(child.attrib) == 0 and len(child) == 0:
            value: Any = (child.text or "").strip()
        else:
            value = element_to_dict(child)

        if tag in repeated:
            out[tag].append(value)
        elif tag in seen:
            out[tag] = [out[tag], value]
            repeated.add(tag)
        else:
            # A child element shadows an attribute of the same name.
            out[tag] = value
            seen.add(tag)
    return out


def _parse_xml(data: bytes) -> Any:
    try:
        return DefusedET.fromstring(data)
    except (DefusedET.ParseError, DefusedXmlException) as e:
        raise ParseError(f"XML parsing failed: {e}", payload=data) from e


def xml_envelope(root: Any, data: bytes) -> Envelope:
    stat = root.get("stat", "")
    if stat == "ok":
        return Envelope(stat=stat)

    err = root.find("err")
    if err is None:
        return Envelope(stat=stat, code=0, message="")
    try:
        code = int(err.get("code", "0"))
    except ValueError as e:
        raise ParseError(f"XML parsing failed: bad error code: {e}", payload=data) from e
    return Envelope(stat=stat, code=code, message=err.get("msg", ""))


def json_envelope(obj: Any, data: bytes) -> Envelope:
    if not isinstance(obj, dict):
        raise ParseError("JSON parsing failed: top level is not an object", payload=data)
    stat = str(obj.get("stat", ""))
    if stat == "ok":
        return Envelope(stat=stat)
    try:
        code = int(obj.get("code", 0))
    except (TypeError, ValueError) as e:
        raise ParseError(f"JSON parsing failed: bad error code: {e}", payload=data) from e
    return Envelope(stat=stat, code=code, message=str(obj.get("message", "")))


def _validate(result_type: Type[T], obj: Any) -> T:
    try:
        return result_type.model_validate(obj)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors(include_input=False, include_url=False)
        )
        # Field locations only; the decoded values stay out of the message.
        raise ParseError(f"decoding {result_type.__name__} failed: {problems}") from None


def decode_xml(data: bytes, result_type: Type[T]) -> T:
    """Decode an XML `<rsp>` payload into `result_type`.

    Raises:
      ParseError: malformed markup (payload attached) or shape mismatch.
      ServiceError: `stat` is not "ok".
    """

    root = _parse_xml(data)
    xml_envelope(root, data).raise_for_status()

    # Second pass: the caller's shape is unknown until now.
    return _validate(result_type, element_to_dict(_parse_xml(data)))


def decode_json(data: bytes, result_type: Type[T]) -> T:
    """Decode a legacy JSON (optionally JSONP-wrapped) payload."""

    body = strip_jsonp(data)
    try:
        obj = json.loads(body.decode("utf-8", errors="strict"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ParseError(f"JSON parsing failed: {e}", payload=data) from e
    json_envelope(obj, data).raise_for_status()
    return _validate(result_type, json.loads(body))


def decode_response(
    stream: BinaryIO,
    result_type: Type[T],
    *,
    response_format: str = FORMAT_XML,
    logger: Optional[logging.Logger] = None,
) -> T:
    """Drain and close `stream`, then decode it.

    The stream is closed on every path, including errors.
    """

    lg = logger or log
    with closing(stream):
        data = stream.read()
    lg.debug("Parsing %s response (%d bytes)", response_format, len(data))

    if response_format == FORMAT_JSON:
        return decode_json(data, result_type)
    return decode_xml(data, result_type)
