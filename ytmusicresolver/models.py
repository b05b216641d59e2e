"""Value objects shared by the cookie manager and the extractor plugin."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Union

from ytmusicresolver.constants import DEFAULT_COOKIE_DOMAIN, SOURCE_NAME


class SameSite(str, Enum):
    """SameSite policy, valued as in EditThisCookie exports."""

    STRICT = "strict"
    LAX = "lax"
    NONE = "no_restriction"
    UNSPECIFIED = "unspecified"

    @classmethod
    def parse(cls, value: Any) -> "SameSite":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            lowered = value.lower()
            if lowered == "none":
                return cls.NONE
            for member in cls:
                if member.value == lowered:
                    return member
        return cls.UNSPECIFIED


# Keys understood by Credential; anything else is carried through in `extra`.
_COOKIE_KEYS = {
    "name",
    "value",
    "domain",
    "path",
    "secure",
    "httpOnly",
    "sameSite",
    "expirationDate",
    "hostOnly",
    "session",
}


@dataclass
class Credential:
    """A single browser cookie.

    Identity within a set is ``(name, domain, path)``.  ``expires_at`` is a
    unix timestamp in seconds; ``None`` marks a session cookie that never
    expires by clock.
    """

    name: str
    value: str
    domain: str = DEFAULT_COOKIE_DOMAIN
    path: str = "/"
    secure: bool = False
    http_only: bool = False
    same_site: SameSite = SameSite.UNSPECIFIED
    expires_at: Optional[float] = None
    host_only: bool = False
    extra: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def key(self):
        return (self.name, self.domain, self.path)

    @property
    def is_session(self) -> bool:
        return self.expires_at is None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Credential":
        """Build a credential from an EditThisCookie-style record.

        Raises:
            ValueError: If the record is not a mapping or lacks a name.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Cookie record must be an object, got {type(data).__name__}")
        name = data.get("name")
        if not isinstance(name, str) or not name:
            raise ValueError("Cookie record is missing a name")

        expires = data.get("expirationDate")
        if data.get("session") is True or isinstance(expires, bool):
            expires = None
        elif expires is not None:
            if not isinstance(expires, (int, float)):
                raise ValueError(f"Cookie {name!r} has a non-numeric expirationDate")
            if expires <= 0:
                expires = None

        domain = data.get("domain") or DEFAULT_COOKIE_DOMAIN
        value = data.get("value")
        return cls(
            name=name,
            value="" if value is None else str(value),
            domain=domain,
            path=data.get("path") or "/",
            secure=bool(data.get("secure", False)),
            http_only=bool(data.get("httpOnly", False)),
            same_site=SameSite.parse(data.get("sameSite")),
            expires_at=expires,
            host_only=bool(data.get("hostOnly", not domain.startswith("."))),
            extra={k: v for k, v in data.items() if k not in _COOKIE_KEYS},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialise back to the EditThisCookie layout."""
        record: Dict[str, Any] = {"domain": self.domain}
        if self.expires_at is not None:
            record["expirationDate"] = self.expires_at
        record.update(
            {
                "hostOnly": self.host_only,
                "httpOnly": self.http_only,
                "name": self.name,
                "path": self.path,
                "sameSite": self.same_site.value,
                "secure": self.secure,
                "session": self.is_session,
            }
        )
        record.update(self.extra)
        record["value"] = self.value
        return record


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    has_expired: bool = False
    expiring_soon: bool = False
    nearest_expiry: Optional[datetime] = None
    message: str = ""


class ResourceKind(str, Enum):
    VIDEO = "video"
    PLAYLIST = "playlist"
    ALBUM = "album"
    ARTIST = "artist"


class ResourceRef(NamedTuple):
    """Result of classifying a URL: what it points at and its ID, if any."""

    kind: ResourceKind
    id: Optional[str]


@dataclass
class Uploader:
    name: str
    url: Optional[str] = None


@dataclass
class Song:
    """A single playable track handed to the host framework."""

    id: str
    name: str
    url: str
    thumbnail: Optional[str] = None
    duration: int = 0
    uploader: Optional[Uploader] = None
    is_live: bool = False
    views: int = 0
    source: str = SOURCE_NAME
    play_from_source: bool = True
    plugin: Any = field(default=None, repr=False, compare=False)
    member: Any = field(default=None, repr=False, compare=False)
    metadata: Any = field(default=None, repr=False, compare=False)


@dataclass
class Playlist:
    """An ordered collection of songs: a playlist, an album or an artist."""

    id: str
    name: str
    url: str
    songs: List[Song]
    thumbnail: Optional[str] = None
    source: str = SOURCE_NAME
    member: Any = field(default=None, repr=False, compare=False)
    metadata: Any = field(default=None, repr=False, compare=False)


Resolved = Union[Song, Playlist]
