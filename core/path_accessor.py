"""Path expressions over parsed JSON and XML documents.

A path is a dotted list of segments. Brackets select list items or
same-named XML siblings, and quote keys that contain separators:

    user.name
    items[0].id
    meta["x.trace"]
    order.item[1].@sku      (XML attribute)

`parse_path` turns an expression into a `Locator`; `new_accessor` wraps a
document so values can be read and replaced through locators.
"""

import re
from dataclasses import dataclass
from typing import Any
from xml.etree.ElementTree import Element

from core.exceptions import PathError, PathParseError, PathSetError

Segment = str | int

_PLAIN_SEGMENT = re.compile(r'[^.\[\]\\"]+')
_MISSING = object()


@dataclass(frozen=True)
class Locator:
    """Parsed path expression."""

    expression: str
    segments: tuple[Segment, ...]


def parse_path(expression: str) -> Locator:
    """Parse a path expression, raising PathParseError on bad syntax."""
    segments: list[Segment] = []
    previous = "start"
    pos = 0
    while pos < len(expression):
        char = expression[pos]
        if char == ".":
            if previous != "segment":
                raise PathParseError(f"empty segment at offset {pos} in {expression!r}", key=expression)
            previous = "dot"
            pos += 1
        elif char == "[":
            if previous == "dot":
                raise PathParseError(f"unexpected '[' after '.' in {expression!r}", key=expression)
            pos, segment = _parse_bracket(expression, pos)
            segments.append(segment)
            previous = "segment"
        else:
            if previous == "segment":
                raise PathParseError(f"missing '.' at offset {pos} in {expression!r}", key=expression)
            pos, segment = _parse_plain(expression, pos)
            segments.append(segment)
            previous = "segment"

    if previous != "segment":
        raise PathParseError(f"incomplete path expression {expression!r}", key=expression)
    return Locator(expression, tuple(segments))


def format_path(segments: list[Segment] | tuple[Segment, ...]) -> str:
    """Render segments back into an expression that parse_path accepts."""
    parts: list[str] = []
    for segment in segments:
        if isinstance(segment, int):
            parts.append(f"[{segment}]")
        elif _PLAIN_SEGMENT.fullmatch(segment):
            parts.append(f".{segment}" if parts else segment)
        else:
            escaped = segment.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'["{escaped}"]')
    return "".join(parts)


def _parse_plain(expression: str, pos: int) -> tuple[int, str]:
    chars: list[str] = []
    while pos < len(expression):
        char = expression[pos]
        if char in ".[":
            break
        if char == "]":
            raise PathParseError(f"unbalanced ']' at offset {pos} in {expression!r}", key=expression)
        if char == "\\":
            pos += 1
            if pos == len(expression):
                raise PathParseError(f"dangling escape in {expression!r}", key=expression)
            char = expression[pos]
        chars.append(char)
        pos += 1
    return pos, "".join(chars)


def _parse_bracket(expression: str, pos: int) -> tuple[int, Segment]:
    end = len(expression)
    pos += 1
    if pos < end and expression[pos] == '"':
        pos += 1
        chars: list[str] = []
        while pos < end and expression[pos] != '"':
            if expression[pos] == "\\" and pos + 1 < end:
                pos += 1
            chars.append(expression[pos])
            pos += 1
        if pos + 1 >= end or expression[pos + 1] != "]":
            raise PathParseError(f"unterminated quoted key in {expression!r}", key=expression)
        return pos + 2, "".join(chars)

    close = expression.find("]", pos)
    if close == -1:
        raise PathParseError(f"unterminated '[' in {expression!r}", key=expression)
    index = expression[pos:close]
    if not index.isdigit() or not index.isascii():
        raise PathParseError(f"invalid index {index!r} in {expression!r}", key=expression)
    return close + 1, int(index)


def _as_index(segment: Segment) -> int | None:
    if isinstance(segment, int):
        return segment
    if segment.isdigit() and segment.isascii():
        return int(segment)
    return None


class PathAccessor:
    """Read and replace values inside a structured document."""

    def get(self, locator: Locator) -> Any:
        raise NotImplementedError

    def set(self, locator: Locator, value: str) -> None:
        raise NotImplementedError

    def unwrap(self) -> Any:
        raise NotImplementedError


class JSONAccessor(PathAccessor):
    """Accessor over decoded JSON (nested dicts and lists)."""

    def __init__(self, document: Any) -> None:
        if not isinstance(document, (dict, list)):
            raise PathError(f"cannot access {type(document).__name__} document by path")
        self._document = document

    def get(self, locator: Locator) -> Any:
        node = self._walk(locator.segments)
        if node is _MISSING:
            raise PathError(f"path {locator.expression!r} not found", key=locator.expression)
        return node

    def set(self, locator: Locator, value: str) -> None:
        *parents, last = locator.segments
        node = self._walk(parents)
        if isinstance(node, dict):
            node[str(last)] = value
            return
        if isinstance(node, list):
            index = _as_index(last)
            if index is not None and index < len(node):
                node[index] = value
                return
        raise PathSetError(f"could not set path {locator.expression!r}", key=locator.expression)

    def unwrap(self) -> Any:
        return self._document

    def _walk(self, segments: list[Segment] | tuple[Segment, ...]) -> Any:
        node = self._document
        for segment in segments:
            if isinstance(node, dict):
                node = node.get(str(segment), _MISSING)
            elif isinstance(node, list):
                index = _as_index(segment)
                node = node[index] if index is not None and index < len(node) else _MISSING
            else:
                return _MISSING
            if node is _MISSING:
                return _MISSING
        return node


class XMLAccessor(PathAccessor):
    """Accessor over an ElementTree element.

    The first segment names the root element. Setting an element replaces
    its children with text.
    """

    def __init__(self, document: Element) -> None:
        if not isinstance(document, Element):
            raise PathError(f"cannot access {type(document).__name__} document as XML")
        self._root = document

    def get(self, locator: Locator) -> Any:
        element, attribute = self._resolve(locator)
        if element is None:
            raise PathError(f"path {locator.expression!r} not found", key=locator.expression)
        if attribute:
            if attribute not in element.attrib:
                raise PathError(f"attribute {attribute!r} not found", key=locator.expression)
            return element.attrib[attribute]
        if len(element):
            return element
        return element.text or ""

    def set(self, locator: Locator, value: str) -> None:
        element, attribute = self._resolve(locator)
        if element is None:
            raise PathSetError(f"could not set path {locator.expression!r}", key=locator.expression)
        if attribute:
            element.set(attribute, value)
            return
        for child in list(element):
            element.remove(child)
        element.text = value

    def unwrap(self) -> Element:
        return self._root

    def _resolve(self, locator: Locator) -> tuple[Element | None, str]:
        segments = list(locator.segments)
        siblings = [self._root]
        node: Element | None = None
        pos = 0
        while pos < len(segments):
            segment = segments[pos]
            if isinstance(segment, str) and segment.startswith("@"):
                if node is None or pos != len(segments) - 1:
                    return None, ""
                return node, segment[1:]
            if isinstance(segment, int):
                return None, ""
            matches = [el for el in siblings if _tag_matches(el.tag, segment)]
            index = 0
            if pos + 1 < len(segments):
                following = _as_index(segments[pos + 1])
                if following is not None:
                    index = following
                    pos += 1
            if index >= len(matches):
                return None, ""
            node = matches[index]
            siblings = list(node)
            pos += 1
        return node, ""


def _tag_matches(tag: Any, name: str) -> bool:
    if not isinstance(tag, str):
        return False
    return tag == name or (tag.startswith("{") and tag.rsplit("}", 1)[-1] == name)


def new_accessor(document: Any) -> PathAccessor:
    """Wrap a JSON or XML document in the matching accessor."""
    if isinstance(document, Element):
        return XMLAccessor(document)
    return JSONAccessor(document)
