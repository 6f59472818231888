from __future__ import annotations

import logging
import ssl
from typing import BinaryIO, Callable, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from flickpy.errors import TransportError

log = logging.getLogger("flickpy.transport")

Opener = Callable[[Request], BinaryIO]


def default_opener(timeout_sec: Optional[float] = None) -> Opener:
    """Return an opener backed by urllib with verification ON.

    Security notes:
    - Uses the default SSL context; TLS verification is never disabled.

    """

    ctx = ssl.create_default_context()

    def _open(req: Request) -> BinaryIO:
        if timeout_sec is None:
            return urlopen(req, context=ctx)
        return urlopen(req, timeout=timeout_sec, context=ctx)

    return _open


class HttpTransport:
    """Performs single GET/POST attempts and hands back the unread body.

    The opener is injected; it owns connection reuse, TLS and deadlines.
    Status codes are not inspected: an HTTP error response still carries the
    service's envelope, so its body is returned like any other.
    """

    def __init__(self, opener: Optional[Opener] = None, *, timeout_sec: Optional[float] = None):
        self._opener = opener or default_opener(timeout_sec)

    def fetch(self, url: str) -> BinaryIO:
        """HTTP GET."""

        return self._send("GET", Request(url=url, method="GET"))

    def post(self, req: Request) -> BinaryIO:
        """HTTP POST of a prepared request."""

        return self._send("POST", req)

    def _send(self, verb: str, req: Request) -> BinaryIO:
        url = req.full_url
        try:
            return self._opener(req)
        except HTTPError as e:
            log.debug("%s %s returned HTTP %s", verb, url, e.code)
            return e
        except (URLError, OSError) as e:
            raise TransportError(verb, url, e) from e
