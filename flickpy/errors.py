from __future__ import annotations

from typing import Optional


class FlickrError(Exception):
    """
    Base exception for all flickpy failures.
    """

    pass


class ConfigurationError(FlickrError):
    """
    Raised when client configuration is missing or invalid.
    """

    pass


class TransportError(FlickrError):
    """
    Raised when the HTTP round trip itself fails (DNS, refused, timeout, TLS).

    The message starts with the verb and URL of the failed request.
    """

    def __init__(self, verb: str, url: str, cause: BaseException):
        super().__init__(f"{verb} failed [{url}]: {cause}")
        self.verb = verb
        self.url = url
        self.cause = cause


class EncodingError(FlickrError):
    """
    Raised when a multipart upload body cannot be built.

    `stage` names the failing step, e.g. "field write failed [title=x]".
    """

    def __init__(self, stage: str, cause: Optional[BaseException] = None):
        msg = stage if cause is None else f"{stage}: {cause}"
        super().__init__(msg)
        self.stage = stage
        self.cause = cause


class ParseError(FlickrError):
    """
    Raised when a response body is not well-formed or does not fit the
    requested result shape.

    Security notes:
    - `payload` holds the raw (untrusted) response body when the envelope
      itself could not be parsed. It is None otherwise.
    """

    def __init__(self, message: str, payload: Optional[bytes] = None):
        if payload is not None:
            text = payload.decode("utf-8", errors="replace")
            message = f"{message}; payload={text}"
        super().__init__(message)
        self.payload = payload


class ServiceError(FlickrError):
    """
    Raised when the service answers with a well-formed failure envelope.
    """

    def __init__(self, code: int, message: str):
        super().__init__(f"Flickr error code {code}: {message}")
        self.code = code
        self.message = message
