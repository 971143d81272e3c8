"""Produce the ordered mutation sequence for a template request."""

import json
from collections.abc import Iterator
from typing import Any
from xml.etree.ElementTree import Element

from core.config import AnalyzerOptions
from core.parts import path_segments
from core.path_accessor import Segment, format_path
from core.request_types import (
    FormBody,
    JSONBody,
    MultipartBody,
    NormalizedRequest,
    Part,
    Transform,
    XMLBody,
    keys_match,
)

# Derived from the body or carried by the cookies part.
SKIPPED_HEADERS = ("content-length", "cookie")


class TransformProducer:
    """Enumerate every {part, key, value} mutation the options allow.

    Order is fixed: parts in producer order, fields in template order, then
    append suffixes before replacement values. The same template and options
    always yield the same sequence.
    """

    def __init__(self, options: AnalyzerOptions) -> None:
        self._options = options

    def create(self, request: NormalizedRequest) -> list[Transform]:
        transforms: list[Transform] = []
        seen: set[Transform] = set()
        for part in self._options.enabled_parts():
            for key, value in self._fields(request, part):
                if not self._options.allows(part, key, value):
                    continue
                for transform in self._mutations(part, key, value):
                    if transform not in seen:
                        seen.add(transform)
                        transforms.append(transform)
        return transforms

    def _mutations(self, part: Part, key: str, value: str) -> Iterator[Transform]:
        for suffix in self._options.append:
            yield Transform(part, key, value + suffix)
        for replacement in self._options.replace:
            yield Transform(part, key, replacement)

    def _fields(self, request: NormalizedRequest, part: Part) -> Iterator[tuple[str, str]]:
        if part is Part.PATH:
            for index, segment in enumerate(path_segments(request.path)):
                yield str(index), segment
        elif part is Part.QUERY_VALUES:
            yield from _multi_items(request.query_values)
        elif part is Part.HEADERS:
            for key, value in _multi_items(request.headers):
                if not any(keys_match(key, skipped) for skipped in SKIPPED_HEADERS):
                    yield key, value
        elif part is Part.COOKIES:
            yield from _multi_items(request.cookies)
        elif part is Part.BODY:
            yield from self._body_fields(request)

    def _body_fields(self, request: NormalizedRequest) -> Iterator[tuple[str, str]]:
        body = request.body
        max_depth = self._options.max_depth
        if isinstance(body, MultipartBody):
            for field in body.fields:
                value = field.value
                if isinstance(value, bytes):
                    value = value.decode("utf-8", errors="replace")
                yield field.name, value
        elif isinstance(body, FormBody):
            yield from _multi_items(body.fields)
        elif isinstance(body, JSONBody):
            for segments, value in _json_leaves(body.document, ()):
                if not max_depth or len(segments) <= max_depth:
                    yield format_path(segments), value
        elif isinstance(body, XMLBody):
            for segments, value in _xml_leaves(body.document, (_local_name(body.document.tag),)):
                if not max_depth or len(segments) <= max_depth:
                    yield format_path(segments), value


def _multi_items(values: dict[str, list[str]]) -> Iterator[tuple[str, str]]:
    for key, items in values.items():
        for value in items:
            yield key, value


def _json_leaves(node: Any, prefix: tuple[Segment, ...]) -> Iterator[tuple[tuple[Segment, ...], str]]:
    if isinstance(node, dict):
        for key, child in node.items():
            yield from _json_leaves(child, prefix + (str(key),))
    elif isinstance(node, list):
        for index, child in enumerate(node):
            yield from _json_leaves(child, prefix + (index,))
    elif prefix:
        yield prefix, node if isinstance(node, str) else json.dumps(node)


def _xml_leaves(element: Element, prefix: tuple[Segment, ...]) -> Iterator[tuple[tuple[Segment, ...], str]]:
    for name, value in element.attrib.items():
        yield prefix + (f"@{name}",), value

    children = [child for child in element if isinstance(child.tag, str)]
    if not children:
        yield prefix, element.text or ""
        return

    counts: dict[str, int] = {}
    for child in children:
        counts[_local_name(child.tag)] = counts.get(_local_name(child.tag), 0) + 1
    positions: dict[str, int] = {}
    for child in children:
        name = _local_name(child.tag)
        segments = prefix + (name,)
        if counts[name] > 1:
            segments += (positions.get(name, 0),)
            positions[name] = positions.get(name, 0) + 1
        yield from _xml_leaves(child, segments)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]
