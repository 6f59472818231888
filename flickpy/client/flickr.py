from __future__ import annotations

import http.client
import logging
from dataclasses import replace
from typing import BinaryIO, Dict, Iterable, List, Mapping, Optional, Type, TypeVar
from urllib.request import Request

from pydantic import BaseModel

from flickpy.client.transport import HttpTransport
from flickpy.config import (
    DEFAULT_MAX_UPLOAD_BYTES,
    DEFAULT_SERVICE_URL,
    DEFAULT_UPLOAD_URL,
    ClientConfig,
)
from flickpy.core.decoding import FORMAT_JSON, FORMAT_XML, RESPONSE_FORMATS, decode_response
from flickpy.core.multipart import encode_upload
from flickpy.core.signing import SIGNATURE_PARAM, sign
from flickpy.core.urls import AUTH_PATH, REST_PATH, Credentials, build_url, signed_url
from flickpy.errors import ConfigurationError, EncodingError, TransportError
from flickpy.models import (
    PhotoPage,
    PhotoSet,
    PhotoSetsResponse,
    SearchResponse,
    Ticket,
    TicketsResponse,
    TokenResponse,
    UploadResponse,
)

log = logging.getLogger("flickpy.client")

T = TypeVar("T", bound=BaseModel)

PHOTO_FIELD = "photo"


class FlickrClient:
    """Signed REST client for the Flickr API.

    Every call is synchronous: one request, one fully buffered response.

    Concurrency notes:
    - Credentials and URLs are read-only after construction and safe to share.
    - `auth_token` may be reassigned (e.g. after get_token). No lock is taken;
      callers must not change it while requests are in flight.

    """

    def __init__(
        self,
        credentials: Credentials,
        *,
        transport: Optional[HttpTransport] = None,
        logger: Optional[logging.Logger] = None,
        service_url: str = DEFAULT_SERVICE_URL,
        upload_url: str = DEFAULT_UPLOAD_URL,
        response_format: str = FORMAT_XML,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ):
        if response_format not in RESPONSE_FORMATS:
            raise ConfigurationError(f"unsupported response format: {response_format!r}")
        self._credentials = credentials
        self.auth_token: Optional[str] = credentials.auth_token
        self._transport = transport or HttpTransport()
        self._log = logger or log
        self.service_url = service_url.rstrip("/")
        self.upload_url = upload_url
        self.response_format = response_format
        self.max_upload_bytes = int(max_upload_bytes)

    @classmethod
    def from_config(
        cls, cfg: ClientConfig, *, transport: Optional[HttpTransport] = None
    ) -> "FlickrClient":
        """Create a client from a ClientConfig (see ClientConfig.from_env)."""

        logging.getLogger("flickpy").setLevel(cfg.log_level)
        return cls(
            cfg.credentials,
            transport=transport or HttpTransport(timeout_sec=cfg.timeout_sec),
            service_url=cfg.service_url,
            upload_url=cfg.upload_url,
            response_format=cfg.response_format,
            max_upload_bytes=cfg.max_upload_bytes,
        )

    @property
    def api_key(self) -> str:
        return self._credentials.api_key

    @property
    def credentials(self) -> Credentials:
        """Current credentials, including the current auth token."""

        return replace(self._credentials, auth_token=self.auth_token)

    def _format_params(self, params: Optional[Mapping[str, str]]) -> Dict[str, str]:
        a = dict(params or {})
        if self.response_format == FORMAT_JSON:
            a["format"] = "json"
        return a

    # ---- request building ----

    def url(
        self,
        method: str,
        params: Optional[Mapping[str, str]] = None,
        authenticated: bool = True,
    ) -> str:
        """Return the REST URL for `method`."""

        return build_url(
            self.service_url,
            REST_PATH,
            self.credentials,
            method,
            self._format_params(params),
            authenticated,
        )

    def auth_url(self, perms: str) -> str:
        """URL that asks the user to grant `perms` (READ_PERM, WRITE_PERM or DELETE_PERM)."""

        return signed_url(
            self.service_url,
            AUTH_PATH,
            self._credentials.secret,
            self.api_key,
            {"perms": perms},
        )

    def upload_request(
        self,
        filename: str,
        photo: bytes,
        params: Optional[Mapping[str, str]] = None,
    ) -> Request:
        """Build the signed multipart POST for an asynchronous upload.

        Raises:
          EncodingError: the photo exceeds max_upload_bytes or the body
            cannot be encoded.
        """

        if len(photo) > self.max_upload_bytes:
            raise EncodingError(
                f"photo too large for client upload cap: {len(photo)} > {self.max_upload_bytes}"
            )

        a = self._format_params(params)
        a["api_key"] = self.api_key
        if self.auth_token:
            a["auth_token"] = self.auth_token
        a["async"] = "1"
        a[SIGNATURE_PARAM] = sign(self._credentials.secret, a)

        body, content_type = encode_upload(a, PHOTO_FIELD, filename, photo)
        req = Request(url=self.upload_url, data=body, method="POST")
        req.add_header("Content-Type", content_type)
        req.add_header("Content-Length", str(len(body)))
        return req

    # ---- request execution ----

    def _decode(self, verb: str, url: str, stream: BinaryIO, result_type: Type[T]) -> T:
        try:
            return decode_response(
                stream, result_type, response_format=self.response_format, logger=self._log
            )
        except (ConnectionError, TimeoutError, http.client.HTTPException) as e:
            # Body read failures surface as transport errors.
            raise TransportError(verb, url, e) from e

    def call(
        self,
        method: str,
        result_type: Type[T],
        params: Optional[Mapping[str, str]] = None,
        authenticated: bool = True,
    ) -> T:
        """GET an API method and decode the response into `result_type`."""

        u = self.url(method, params, authenticated)
        self._log.debug("GET %s", method)
        stream = self._transport.fetch(u)
        return self._decode("GET", u, stream, result_type)

    def post(self, req: Request, result_type: Type[T]) -> T:
        """POST a prepared request and decode the response into `result_type`."""

        self._log.debug("POST %s", req.full_url)
        stream = self._transport.post(req)
        return self._decode("POST", req.full_url, stream, result_type)

    # ---- API methods ----

    def get_token(self, frob: str) -> str:
        """Exchange a temporary frob for a long-lived auth token."""

        r = self.call("flickr.auth.getToken", TokenResponse, {"frob": frob})
        return r.auth.token

    def search(self, **params: str) -> PhotoPage:
        """flickr.photos.search; keyword arguments are passed as query parameters."""

        r = self.call("flickr.photos.search", SearchResponse, params)
        return r.photos

    def photosets_get_list(self, user_id: Optional[str] = None) -> List[PhotoSet]:
        """List photosets of `user_id`, or of the authenticated user."""

        params = {"user_id": user_id} if user_id else {}
        r = self.call("flickr.photosets.getList", PhotoSetsResponse, params)
        return r.photosets.photosets

    def upload(
        self,
        filename: str,
        photo: bytes,
        params: Optional[Mapping[str, str]] = None,
    ) -> str:
        """Upload a photo asynchronously and return its ticket id."""

        r = self.post(self.upload_request(filename, photo, params), UploadResponse)
        return r.ticketid

    def check_tickets(self, ticket_ids: Iterable[str]) -> List[Ticket]:
        """Poll the status of asynchronous upload tickets."""

        r = self.call(
            "flickr.photos.upload.checkTickets",
            TicketsResponse,
            {"tickets": ",".join(ticket_ids)},
        )
        return r.uploader.tickets
