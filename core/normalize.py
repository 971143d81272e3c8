"""Build template requests from httpx requests, raw HTTP text or JSON templates."""

import json
import re
from email.message import EmailMessage
from email.parser import BytesParser
from email.policy import HTTP
from io import BytesIO
from typing import Any
from urllib.parse import parse_qsl
from xml.etree.ElementTree import ParseError

import httpx
from defusedxml import DefusedXmlException
from defusedxml.ElementTree import iterparse
from pydantic import BaseModel, ConfigDict, Field

from core.exceptions import TemplateError
from core.protocols import MutationLogger
from core.request_types import (
    Body,
    FormBody,
    JSONBody,
    MultipartBody,
    MultipartField,
    NoBody,
    NormalizedRequest,
    RawBody,
    XMLBody,
    keys_match,
)

HTTP_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

# First blank line; everything after it is the body, kept byte for byte.
_HEAD_END = re.compile(rb"\r?\n\r?\n")


def normalize_request(request: httpx.Request) -> NormalizedRequest:
    """Split an httpx request into a template with a parsed body."""
    headers: dict[str, list[str]] = {}
    cookies: dict[str, list[str]] = {}
    for raw_key, raw_value in request.headers.raw:
        key = raw_key.decode(request.headers.encoding)
        value = raw_value.decode(request.headers.encoding)
        if keys_match(key, "cookie"):
            for name, cookie in parse_cookie_header(value):
                cookies.setdefault(name, []).append(cookie)
            continue
        headers.setdefault(key, []).append(value)

    content_type = request.headers.get("content-type", "")
    return NormalizedRequest(
        scheme=request.url.scheme,
        host=request.url.netloc.decode("ascii"),
        path=request.url.raw_path.split(b"?", 1)[0].decode("ascii"),
        method=request.method,
        headers=headers,
        cookies=cookies,
        query_values=_group(request.url.params.multi_items()),
        body=parse_body(content_type, request.read()),
    )


def parse_raw_request(data: str | bytes, scheme: str = "https") -> NormalizedRequest:
    """Parse a raw HTTP/1.x request (as saved by an intercepting proxy).

    Line endings are normalized in the request head only; the body after the
    first blank line is kept exactly as given.
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    match = _HEAD_END.search(data)
    raw_head, body = (data[: match.start()], data[match.end() :]) if match else (data, b"")
    try:
        head = raw_head.decode("utf-8")
    except UnicodeDecodeError as e:
        raise TemplateError(f"request head is not valid UTF-8: {e}") from e

    lines = head.replace("\r\n", "\n").strip("\n").split("\n")
    request_line = lines[0].split(" ")
    if len(request_line) != 3 or request_line[2] not in HTTP_VERSIONS:
        raise TemplateError(f"invalid request line: {lines[0]!r}")
    method, target, _ = request_line

    header_items: list[tuple[str, str]] = []
    for line in lines[1:]:
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            raise TemplateError(f"invalid header line: {line!r}")
        header_items.append((name.strip(), value.strip()))

    host = next((value for name, value in header_items if keys_match(name, "host")), "")
    if not host:
        raise TemplateError("raw request has no Host header")
    try:
        request = httpx.Request(
            method,
            f"{scheme}://{host}{target}",
            headers=header_items,
            content=body or None,
        )
    except (httpx.InvalidURL, UnicodeError) as e:
        raise TemplateError(f"could not build request from raw text: {e}") from e
    return normalize_request(request)


def parse_body(content_type: str, content: bytes) -> Body:
    """Parse a body into its variant; unparseable structured bodies stay raw."""
    if not content:
        return NoBody()
    media_type = content_type.split(";", 1)[0].strip().lower()
    text = content.decode("utf-8", errors="replace")

    if media_type == "multipart/form-data":
        fields = parse_multipart(content_type, content)
        if fields:
            return MultipartBody(fields)
    elif media_type == "application/x-www-form-urlencoded":
        return FormBody(_group(parse_qsl(text, keep_blank_values=True)))
    elif media_type == "application/json" or media_type.endswith("+json"):
        try:
            return JSONBody(json.loads(text))
        except json.JSONDecodeError:
            pass
    elif media_type in ("text/xml", "application/xml") or media_type.endswith("+xml"):
        try:
            return parse_xml_body(content)
        except (ParseError, DefusedXmlException):
            pass
    return RawBody(content)


def parse_multipart(content_type: str, content: bytes) -> tuple[MultipartField, ...]:
    """Parse multipart/form-data into fields, in body order."""
    message = BytesParser(policy=HTTP).parsebytes(
        b"Content-Type: " + content_type.encode("latin-1") + b"\r\n\r\n" + content
    )
    if not isinstance(message, EmailMessage) or not message.is_multipart():
        return ()
    fields = []
    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        if not isinstance(name, str):
            continue
        payload = part.get_payload(decode=True) or b""
        filename = part.get_filename() or ""
        fields.append(
            MultipartField(
                name=name,
                value=payload if filename else _field_text(payload),
                filename=filename,
                content_type=part.get_content_type() if filename else "",
            )
        )
    return tuple(fields)


def parse_xml_body(content: bytes) -> XMLBody:
    """Parse an XML document, keeping its namespace prefix declarations.

    Raises ParseError or a DefusedXmlException for invalid or unsafe input.
    """
    namespaces: list[tuple[str, str]] = []
    root = None
    for event, item in iterparse(BytesIO(content), events=("start-ns", "start")):
        if event == "start-ns":
            if item not in namespaces:
                namespaces.append(item)
        elif root is None:
            root = item
    return XMLBody(root, tuple(namespaces))


def parse_cookie_header(value: str) -> list[tuple[str, str]]:
    """Split a Cookie header into (name, value) pairs."""
    pairs = []
    for item in value.split(";"):
        name, sep, cookie = item.strip().partition("=")
        if sep and name:
            pairs.append((name, cookie))
    return pairs


def _field_text(payload: bytes) -> str | bytes:
    # Text fields that are not UTF-8 stay bytes so they are re-sent unchanged.
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError:
        return payload


def _group(items: list[tuple[str, str]]) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for key, value in items:
        grouped.setdefault(key, []).append(value)
    return grouped


class MultipartFieldModel(BaseModel):
    name: str
    value: str = ""
    filename: str = ""
    content_type: str = ""


class RequestTemplate(BaseModel):
    """JSON template document.

    Only one body field is expected; when several are set, multipart wins
    over form, then JSON, XML and finally the raw string.
    """

    model_config = ConfigDict(populate_by_name=True)

    scheme: str = "https"
    host: str
    path: str = "/"
    method: str = "GET"
    headers: dict[str, list[str]] = Field(default_factory=dict)
    cookies: dict[str, list[str]] = Field(default_factory=dict)
    query: dict[str, list[str]] = Field(default_factory=dict)
    multipart: list[MultipartFieldModel] = Field(default_factory=list)
    form: dict[str, list[str]] = Field(default_factory=dict)
    json_data: Any = Field(default=None, alias="json")
    xml: str = ""
    raw: str = ""

    def to_request(self, logger: MutationLogger | None = None) -> NormalizedRequest:
        """Build the template, resolving the body variant once."""
        return NormalizedRequest(
            scheme=self.scheme,
            host=self.host,
            path=self.path,
            method=self.method,
            headers={key: list(values) for key, values in self.headers.items()},
            cookies={key: list(values) for key, values in self.cookies.items()},
            query_values={key: list(values) for key, values in self.query.items()},
            body=self._body(logger),
        )

    def _body(self, logger: MutationLogger | None) -> Body:
        populated = [
            name
            for name, present in (
                ("multipart", bool(self.multipart)),
                ("form", bool(self.form)),
                ("json", self.json_data is not None),
                ("xml", bool(self.xml)),
                ("raw", bool(self.raw)),
            )
            if present
        ]
        if len(populated) > 1 and logger is not None:
            logger.log_warning(
                f"Template has several bodies ({', '.join(populated)}), using {populated[0]}"
            )
        if not populated:
            return NoBody()

        chosen = populated[0]
        if chosen == "multipart":
            return MultipartBody(
                tuple(
                    MultipartField(f.name, f.value, f.filename, f.content_type)
                    for f in self.multipart
                )
            )
        if chosen == "form":
            return FormBody({key: list(values) for key, values in self.form.items()})
        if chosen == "json":
            return JSONBody(self.json_data)
        if chosen == "xml":
            try:
                return parse_xml_body(self.xml.encode("utf-8"))
            except (ParseError, DefusedXmlException) as e:
                raise TemplateError(f"invalid XML body: {e}") from e
        return RawBody(self.raw.encode("utf-8"))


def template_from_json(text: str, logger: MutationLogger | None = None) -> NormalizedRequest:
    """Parse a JSON template document into a template request."""
    try:
        return RequestTemplate.model_validate_json(text).to_request(logger)
    except ValueError as e:
        raise TemplateError(f"invalid template: {e}") from e
