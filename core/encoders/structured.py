"""Path-based encoders for JSON and XML bodies."""

import copy
import json
from threading import Lock
from typing import Any
from xml.etree import ElementTree

from core.exceptions import EncoderError
from core.path_accessor import new_accessor, parse_path
from core.request_types import EncodedBody, JSONBody, Part, Transform, XMLBody

# ElementTree keeps registered prefixes in a module-global map.
_NAMESPACE_LOCK = Lock()


class _StructuredEncoder:
    """Set the mutated value by path on a copy of the document, then serialize it."""

    content_type = ""

    def encode(self, body: JSONBody | XMLBody, transform: Transform | None) -> EncodedBody:
        document = body.document
        if transform is not None and transform.part is Part.BODY:
            accessor = new_accessor(copy.deepcopy(document))
            accessor.set(parse_path(transform.key), transform.value)
            document = accessor.unwrap()
        return EncodedBody(self._serialize(document, body), self.content_type)

    def _serialize(self, document: Any, body: Any) -> bytes:
        raise NotImplementedError


class JSONEncoder(_StructuredEncoder):
    """JSON encoder; characters such as <, > and & are written as-is."""

    content_type = "application/json"

    def _serialize(self, document: Any, body: JSONBody) -> bytes:
        try:
            text = json.dumps(document, ensure_ascii=False, separators=(",", ":"), allow_nan=False)
            return (text + "\n").encode("utf-8")
        except (TypeError, ValueError) as e:
            raise EncoderError(f"could not write json data: {e}", part=Part.BODY.value) from e


class XMLEncoder(_StructuredEncoder):
    """XML encoder that writes elements with the prefixes the template declared."""

    content_type = "text/xml"

    def _serialize(self, document: ElementTree.Element, body: XMLBody) -> bytes:
        default_namespace = None
        with _NAMESPACE_LOCK:
            for prefix, uri in body.namespaces:
                if not prefix:
                    default_namespace = uri
                    continue
                try:
                    ElementTree.register_namespace(prefix, uri)
                except ValueError:
                    # ns<N> prefixes are reserved; ElementTree generates them itself.
                    continue
            if default_namespace and not _all_qualified(document):
                default_namespace = None
            try:
                text = ElementTree.tostring(
                    document, encoding="unicode", default_namespace=default_namespace
                )
                return text.encode("utf-8")
            except (TypeError, ValueError) as e:
                raise EncoderError(f"could not write xml data: {e}", part=Part.BODY.value) from e


def _all_qualified(document: ElementTree.Element) -> bool:
    return all(
        element.tag.startswith("{")
        for element in document.iter()
        if isinstance(element.tag, str)
    )
