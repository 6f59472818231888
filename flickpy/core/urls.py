from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Optional
from urllib.parse import urlencode

from flickpy.core.signing import SIGNATURE_PARAM, sign

REST_PATH = "rest"
AUTH_PATH = "auth"


@dataclass(frozen=True, slots=True)
class Credentials:
    """Application credentials plus an optional per-user token.

    Security notes:
    - `secret` is only ever used for signing; it is never put on the wire.
    - `auth_token` is sent only when it is non-empty.

    """

    api_key: str
    secret: str
    auth_token: Optional[str] = None


def _clone(parameters: Optional[Mapping[str, str]]) -> Dict[str, str]:
    return dict(parameters or {})


def _assemble(service: str, path: str, query: Mapping[str, str]) -> str:
    return f"{service}/{path}/?{urlencode(query)}"


def signed_url(
    service: str, path: str, secret: str, api_key: str, parameters: Mapping[str, str]
) -> str:
    """Return `{service}/{path}/?...` with `api_key` and `api_sig` appended.

    The caller's mapping is copied, never modified.
    """

    a = _clone(parameters)
    a["api_key"] = api_key
    a[SIGNATURE_PARAM] = sign(secret, a)
    return _assemble(service, path, a)


def build_url(
    service: str,
    path: str,
    credentials: Credentials,
    method: str,
    parameters: Optional[Mapping[str, str]] = None,
    authenticated: bool = True,
) -> str:
    """Build the request URL for an API method.

    Authenticated URLs include the auth token (when present) and are signed
    over every query parameter. Unauthenticated URLs carry neither the token
    nor a signature.
    """

    a = _clone(parameters)
    a["method"] = method
    a["api_key"] = credentials.api_key
    if not authenticated:
        return _assemble(service, path, a)

    if credentials.auth_token:
        a["auth_token"] = credentials.auth_token
    return signed_url(service, path, credentials.secret, credentials.api_key, a)
