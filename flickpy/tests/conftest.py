from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from flickpy.client import FlickrClient, HttpTransport
from flickpy.core import Credentials
from flickpy.tests.fakes import (
    API_KEY,
    AUTH_TOKEN,
    SECRET,
    SERVICE_URL,
    UPLOAD_URL,
    AppOpener,
    create_fake_flickr,
)


@pytest.fixture
def fake_app() -> FastAPI:
    return create_fake_flickr()


@pytest.fixture
def opener(fake_app: FastAPI) -> AppOpener:
    return AppOpener(TestClient(fake_app))


@pytest.fixture
def client(opener: AppOpener) -> FlickrClient:
    return FlickrClient(
        Credentials(api_key=API_KEY, secret=SECRET, auth_token=AUTH_TOKEN),
        transport=HttpTransport(opener),
        service_url=SERVICE_URL,
        upload_url=UPLOAD_URL,
    )
