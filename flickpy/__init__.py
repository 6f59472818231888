"""flickpy: a signed REST client for the Flickr API.

Requests are signed with the application secret, sent over an injected
HTTP opener, and decoded from the service's `<rsp>` envelope into pydantic
models. Service failures (`stat="fail"`) raise ServiceError; network
failures raise TransportError.
"""

from .client import FlickrClient, HttpTransport  # noqa: F401
from .config import ClientConfig  # noqa: F401
from .core import Credentials, build_url, encode_upload, sign  # noqa: F401
from .errors import (  # noqa: F401
    ConfigurationError,
    EncodingError,
    FlickrError,
    ParseError,
    ServiceError,
    TransportError,
)

__version__ = "0.1.0"
