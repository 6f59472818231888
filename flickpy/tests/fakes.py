"""In-process stand-in for the Flickr REST and upload endpoints."""
from __future__ import annotations

import io
import json
from typing import List
from urllib.request import Request as UrlRequest
from xml.sax.saxutils import quoteattr

from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.requests import Request
from starlette.responses import Response

from flickpy.core.signing import verify_signature

API_KEY = "87337fd784"
SECRET = "sf97838dijd"
AUTH_TOKEN = "ase878723623"

SERVICE_URL = "http://testserver/services"
UPLOAD_URL = "http://testserver/services/upload/"

FAIL_XML = '<?xml version="1.0" encoding="utf-8" ?>\n<rsp stat="fail"><err code="{code}" msg={msg} /></rsp>'

TOKEN_XML = """<?xml version="1.0" encoding="utf-8" ?>
<rsp stat="ok">
  <auth>
    <token>121-84669832774</token>
    <perms>write</perms>
    <user nsid="7687633@N01" username="testuser" fullname="Test User" />
  </auth>
</rsp>"""

SEARCH_XML = """<rsp stat="ok">
  <photos page="2" pages="89" perpage="3" total="265">
    <photo id="2636" owner="47058503995@N01" secret="a123456" server="2" farm="1" title="test_04" ispublic="1" width_t="100" height_t="75" />
    <photo id="2635" owner="47058503995@N01" secret="b123456" server="2" farm="1" title="test_03" ispublic="0" />
    <photo id="2633" owner="47058503995@N01" secret="c123456" server="2" farm="1" title="test_01" ispublic="1" />
  </photos>
</rsp>"""

PHOTOSETS_XML = """<rsp stat="ok">
  <photosets cancreate="1">
    <photoset id="5" primary="2483" secret="abcdef" server="8" farm="1" photos="4">
      <title>Test</title>
      <description>foo</description>
    </photoset>
    <photoset id="4" primary="1234" secret="832659" server="3" farm="1" photos="12">
      <title>My Set</title>
      <description />
    </photoset>
  </photosets>
</rsp>"""

TICKETS_XML = """<rsp stat="ok">
  <uploader>
    <ticket id="128" complete="1" photoid="2995" />
    <ticket id="129" complete="0" />
    <ticket id="130" invalid="1" />
  </uploader>
</rsp>"""

TOKEN_JSONP = """jsonFlickrApi({
  "stat": "ok",
  "auth": {
    "token": {"_content": "121-84669832774"},
    "perms": {"_content": "write"},
    "user": {"nsid": "7687633@N01", "username": "testuser", "fullname": "Test User"}
  }
})"""

XML_RESPONSES = {
    "flickr.auth.getToken": TOKEN_XML,
    "flickr.photos.search": SEARCH_XML,
    "flickr.photosets.getList": PHOTOSETS_XML,
    "flickr.photos.upload.checkTickets": TICKETS_XML,
}

JSON_RESPONSES = {
    "flickr.auth.getToken": TOKEN_JSONP,
}

# Methods the fake serves without a signature.
PUBLIC_METHODS = frozenset({"flickr.photos.search"})


def _xml(body: str) -> Response:
    return Response(content=body, media_type="text/xml")


def _fail(params, code: int, msg: str) -> Response:
    if params.get("format") == "json":
        payload = json.dumps({"stat": "fail", "code": code, "message": msg})
        return Response(content=f"jsonFlickrApi({payload})", media_type="text/javascript")
    return _xml(FAIL_XML.format(code=code, msg=quoteattr(msg)))


def create_fake_flickr(secret: str = SECRET) -> FastAPI:
    """A minimal stand-in for the REST and upload endpoints.

    Every request is recorded on app.state before it is checked.
    """

    app = FastAPI()
    app.state.requests = []
    app.state.uploads = []

    @app.get("/services/rest/")
    def rest(request: Request) -> Response:
        params = dict(request.query_params)
        app.state.requests.append(params)
        method = params.get("method", "")

        if "api_sig" not in params:
            if method not in PUBLIC_METHODS:
                return _fail(params, 97, "Missing signature")
        elif not verify_signature(secret, params, params["api_sig"]):
            return _fail(params, 96, "Invalid signature")

        if params.get("format") == "json":
            body = JSON_RESPONSES.get(method)
            if body is None:
                return _fail(params, 112, f'Method "{method}" not found')
            return Response(content=body, media_type="text/javascript")

        body = XML_RESPONSES.get(method)
        if body is None:
            return _fail(params, 112, f'Method "{method}" not found')
        return _xml(body)

    @app.post("/services/upload/")
    async def upload(request: Request) -> Response:
        form = await request.form()
        fields = {k: v for k, v in form.items() if isinstance(v, str)}
        photo = form.get("photo")
        data = await photo.read() if photo is not None and not isinstance(photo, str) else None
        app.state.uploads.append(
            {
                "fields": fields,
                "filename": getattr(photo, "filename", None),
                "content_type": getattr(photo, "content_type", None),
                "data": data,
            }
        )
        if not verify_signature(secret, fields, fields.get("api_sig", "")):
            return _fail(fields, 96, "Invalid signature")
        return _xml('<rsp stat="ok"><ticketid>1234</ticketid></rsp>')

    return app


class AppOpener:
    """urllib-style opener that routes requests into an ASGI app."""

    def __init__(self, client: TestClient):
        self._client = client
        self.requests: List[UrlRequest] = []
        self.streams: List[io.BytesIO] = []

    def __call__(self, req: UrlRequest) -> io.BytesIO:
        self.requests.append(req)
        r = self._client.request(
            req.get_method(),
            req.full_url,
            content=req.data,
            headers=dict(req.header_items()),
        )
        stream = io.BytesIO(r.content)
        self.streams.append(stream)
        return stream
