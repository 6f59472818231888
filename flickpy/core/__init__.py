from .decoding import Envelope, decode_json, decode_response, decode_xml, strip_jsonp
from .multipart import CONTENT_TYPES, content_type_for, encode_upload
from .signing import sign, verify_signature
from .urls import Credentials, build_url, signed_url

__all__ = [
    "sign",
    "verify_signature",
    "Credentials",
    "build_url",
    "signed_url",
    "CONTENT_TYPES",
    "content_type_for",
    "encode_upload",
    "Envelope",
    "decode_response",
    "decode_xml",
    "decode_json",
    "strip_jsonp",
]
