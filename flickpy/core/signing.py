from __future__ import annotations

import hashlib
import hmac
from typing import Mapping

SIGNATURE_PARAM = "api_sig"


def sign(secret: str, parameters: Mapping[str, str]) -> str:
    """Return the API signature for a parameter set.

    The digest covers the secret followed by `key + value` for every
    parameter, in ascending key order. Values are hashed raw (not
    URL-escaped) because the service recomputes the digest the same way.

    Security notes:
    - The secret is mixed in but never returned or logged.

    """

    m = hashlib.md5()
    m.update(secret.encode("utf-8"))
    for k in sorted(parameters):
        m.update((k + parameters[k]).encode("utf-8"))
    return m.hexdigest()


def verify_signature(secret: str, parameters: Mapping[str, str], signature: str) -> bool:
    """Check `signature` against the parameters it was sent with.

    `api_sig` itself is excluded from the recomputed digest.

    Security notes:
    - Constant-time compare to reduce timing side-channels.

    """

    unsigned = {k: v for k, v in parameters.items() if k != SIGNATURE_PARAM}
    return hmac.compare_digest(sign(secret, unsigned), signature or "")
