from __future__ import annotations

from typing import Any, List, Optional, get_origin

from pydantic import BaseModel, ConfigDict, Field, model_validator

from flickpy.core.decoding import CONTENT_KEY

# Image sizes supported by the static photo URLs.
SIZE_SMALL_SQUARE = "s"
SIZE_THUMBNAIL = "t"
SIZE_SMALL = "m"
SIZE_MEDIUM_500 = "-"
SIZE_MEDIUM_640 = "z"
SIZE_LARGE = "b"
SIZE_ORIGINAL = "o"

# Permission levels for auth_url().
READ_PERM = "read"
WRITE_PERM = "write"
DELETE_PERM = "delete"


def _unwrap_content(value: Any) -> Any:
    if isinstance(value, dict) and set(value) == {CONTENT_KEY}:
        return value[CONTENT_KEY]
    return value


class RspModel(BaseModel):
    """Base for decoded response payloads.

    Accepts the plain data produced from XML (attributes and text-only
    children) as well as legacy JSON objects:
    - `{"_content": x}` wrappers collapse to `x`
    - a single element where a list is declared becomes a one-item list

    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize(cls, data: Any) -> Any:
        # An empty element with no attributes decodes to "".
        if data == "":
            return {}
        if not isinstance(data, dict):
            return data
        out = {k: _unwrap_content(v) for k, v in data.items()}
        for name, field in cls.model_fields.items():
            key = field.alias or name
            if key not in out or out[key] is None:
                continue
            if get_origin(field.annotation) in (list, List) and not isinstance(out[key], list):
                out[key] = [out[key]]
        return out


class User(RspModel):
    nsid: str
    username: str = ""
    fullname: str = ""


class Auth(RspModel):
    token: str
    perms: str = ""
    user: Optional[User] = None


class TokenResponse(RspModel):
    """flickr.auth.getToken"""

    auth: Auth


class Photo(RspModel):
    id: str
    owner: str = ""
    secret: str = ""
    server: str = ""
    farm: str = ""
    title: str = ""
    ispublic: str = ""
    width_t: Optional[str] = None
    height_t: Optional[str] = None

    def url(self, size: str) -> str:
        """Static URL of this photo in the given size (one of the SIZE_* constants)."""

        if size == SIZE_MEDIUM_500:
            return (
                f"https://farm{self.farm}.staticflickr.com/"
                f"{self.server}/{self.id}_{self.secret}.jpg"
            )
        return (
            f"https://farm{self.farm}.staticflickr.com/"
            f"{self.server}/{self.id}_{self.secret}_{size}.jpg"
        )

    @property
    def ratio(self) -> Optional[float]:
        """Aspect ratio of the thumbnail (width / height), when known."""

        try:
            w, h = float(self.width_t or ""), float(self.height_t or "")
        except ValueError:
            return None
        return w / h if h else None


class PhotoPage(RspModel):
    page: int = 1
    pages: int = 0
    perpage: int = 0
    total: int = 0
    photos: List[Photo] = Field(default_factory=list, alias="photo")


class SearchResponse(RspModel):
    """flickr.photos.search"""

    photos: PhotoPage


class PhotoSet(RspModel):
    id: str
    primary: str = ""
    secret: str = ""
    server: str = ""
    farm: str = ""
    photos: int = 0
    title: str = ""
    description: str = ""


class PhotoSetList(RspModel):
    photosets: List[PhotoSet] = Field(default_factory=list, alias="photoset")


class PhotoSetsResponse(RspModel):
    """flickr.photosets.getList"""

    photosets: PhotoSetList


class UploadResponse(RspModel):
    """Asynchronous upload acknowledgement."""

    ticketid: str


class Ticket(RspModel):
    id: str
    complete: Optional[str] = None
    photoid: Optional[str] = None
    invalid: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.complete == "1"

    @property
    def is_invalid(self) -> bool:
        return self.invalid == "1"


class TicketList(RspModel):
    tickets: List[Ticket] = Field(default_factory=list, alias="ticket")


class TicketsResponse(RspModel):
    """flickr.photos.upload.checkTickets"""

    uploader: TicketList
