from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from flickpy.core.decoding import FORMAT_XML, RESPONSE_FORMATS
from flickpy.core.urls import Credentials
from flickpy.errors import ConfigurationError

DEFAULT_SERVICE_URL = "https://api.flickr.com/services"
DEFAULT_UPLOAD_URL = "https://up.flickr.com/services/upload/"
DEFAULT_MAX_UPLOAD_BYTES = 25 * 1024 * 1024


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Configuration for a FlickrClient.

    Security notes:
    - `secret` is trusted local configuration; keep it out of logs and VCS.
    - `timeout_sec` is applied by the default transport only.

    """

    api_key: str
    secret: str
    auth_token: Optional[str] = None
    service_url: str = DEFAULT_SERVICE_URL
    upload_url: str = DEFAULT_UPLOAD_URL
    response_format: str = FORMAT_XML
    timeout_sec: Optional[int] = None
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.api_key or not self.secret:
            raise ConfigurationError("api_key and secret are required")
        if self.response_format not in RESPONSE_FORMATS:
            raise ConfigurationError(
                f"response_format must be one of {sorted(RESPONSE_FORMATS)}, "
                f"got {self.response_format!r}"
            )
        level = str(self.log_level).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigurationError(f"unknown log level: {self.log_level!r}")
        object.__setattr__(self, "log_level", level)
        object.__setattr__(self, "service_url", self.service_url.rstrip("/"))

    @property
    def credentials(self) -> Credentials:
        return Credentials(api_key=self.api_key, secret=self.secret, auth_token=self.auth_token)

    @staticmethod
    def from_env() -> "ClientConfig":
        """Create a config from environment variables.

        - FLICKPY_API_KEY, FLICKPY_SECRET (required)
        - FLICKPY_AUTH_TOKEN
        - FLICKPY_SERVICE_URL, FLICKPY_UPLOAD_URL
        - FLICKPY_RESPONSE_FORMAT (xml | json, default xml)
        - FLICKPY_TIMEOUT_SEC (default: no timeout)
        - FLICKPY_MAX_UPLOAD_BYTES (default 25 MiB)
        - FLICKPY_LOG_LEVEL (default INFO)

        """

        timeout = _env_int("FLICKPY_TIMEOUT_SEC", 0)
        return ClientConfig(
            api_key=os.environ.get("FLICKPY_API_KEY", "").strip(),
            secret=os.environ.get("FLICKPY_SECRET", "").strip(),
            auth_token=(os.environ.get("FLICKPY_AUTH_TOKEN") or None),
            service_url=os.environ.get("FLICKPY_SERVICE_URL") or DEFAULT_SERVICE_URL,
            upload_url=os.environ.get("FLICKPY_UPLOAD_URL") or DEFAULT_UPLOAD_URL,
            response_format=(os.environ.get("FLICKPY_RESPONSE_FORMAT") or FORMAT_XML).lower(),
            timeout_sec=timeout if timeout > 0 else None,
            max_upload_bytes=_env_int("FLICKPY_MAX_UPLOAD_BYTES", DEFAULT_MAX_UPLOAD_BYTES),
            log_level=os.environ.get("FLICKPY_LOG_LEVEL", "INFO").upper(),
        )


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back to `default`."""

    raw = os.environ.get(name, "").strip()
    if not raw:
        return int(default)
    try:
        return int(raw)
    except ValueError:
        return int(default)
