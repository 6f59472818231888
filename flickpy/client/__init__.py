"""HTTP client for the Flickr REST API.

Security notes:
- Treat service responses as untrusted input.
- Avoid logging signed URLs, auth tokens or raw photo bytes.
"""

from .flickr import FlickrClient  # noqa: F401
from .transport import HttpTransport, default_opener  # noqa: F401
