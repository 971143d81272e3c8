"""Shared request data types."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from xml.etree.ElementTree import Element


class Part(str, Enum):
    """Request parts a mutation can target."""

    PATH = "path"
    COOKIES = "cookies"
    BODY = "body"
    QUERY_VALUES = "query-values"
    HEADERS = "headers"
    ALL = "all"
    DEFAULT = "default"


# Parts that map onto an actual location in a request, in producer order.
CONCRETE_PARTS = (Part.PATH, Part.QUERY_VALUES, Part.HEADERS, Part.COOKIES, Part.BODY)
DEFAULT_PARTS = (Part.QUERY_VALUES, Part.HEADERS, Part.BODY)


@dataclass(frozen=True)
class Transform:
    """A single mutation: inject `value` at `key` within `part`."""

    part: Part
    key: str
    value: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "part", Part(self.part))

    def targets(self, part: Part, name: str) -> bool:
        """Check if this mutation targets the field `name` of `part`."""
        return self.part is part and keys_match(self.key, name)


def keys_match(left: str, right: str) -> bool:
    """Case-insensitive field name comparison."""
    return left.casefold() == right.casefold()


@dataclass(frozen=True)
class MultipartField:
    """One multipart/form-data field; a non-empty filename makes it a file part.

    File contents are kept as bytes so they are re-sent exactly as received.
    """

    name: str
    value: str | bytes
    filename: str = ""
    content_type: str = ""


@dataclass(frozen=True)
class MultipartBody:
    fields: tuple[MultipartField, ...]


@dataclass(frozen=True)
class FormBody:
    fields: dict[str, list[str]]


@dataclass(frozen=True)
class JSONBody:
    document: Any


@dataclass(frozen=True)
class XMLBody:
    document: Element
    # (prefix, uri) declarations seen while parsing, in document order.
    namespaces: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class RawBody:
    content: bytes


@dataclass(frozen=True)
class NoBody:
    pass


Body = MultipartBody | FormBody | JSONBody | XMLBody | RawBody | NoBody


@dataclass
class NormalizedRequest:
    """Template request that mutations are applied against.

    The body holds exactly one variant, chosen when the template is built.
    """

    scheme: str
    host: str
    path: str
    method: str
    headers: dict[str, list[str]] = field(default_factory=dict)
    cookies: dict[str, list[str]] = field(default_factory=dict)
    query_values: dict[str, list[str]] = field(default_factory=dict)
    body: Body = field(default_factory=NoBody)

    def header(self, name: str) -> str:
        """Return the first value of a header, matched case-insensitively."""
        for key, values in self.headers.items():
            if keys_match(key, name) and values:
                return values[0]
        return ""


@dataclass(frozen=True)
class EncodedBody:
    """Output of a body encoder."""

    content: bytes
    content_type: str

    @property
    def length(self) -> int:
        return len(self.content)
