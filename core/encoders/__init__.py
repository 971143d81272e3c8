"""Body encoders, one per body variant.

Every encoder takes the template body plus at most one mutation and returns
the encoded bytes with their content type. Encoders never modify the
template; a failure affects only the mutation being encoded.
"""

from core.request_types import Body, FormBody, JSONBody, MultipartBody, RawBody, XMLBody

from .base import BodyEncoder
from .form import FORM_CONTENT_TYPE, FormEncoder
from .multipart import MultipartEncoder
from .raw import RawEncoder
from .structured import JSONEncoder, XMLEncoder

__all__ = [
    "FORM_CONTENT_TYPE",
    "BodyEncoder",
    "FormEncoder",
    "JSONEncoder",
    "MultipartEncoder",
    "RawEncoder",
    "XMLEncoder",
    "default_encoders",
    "encoder_for",
]


def default_encoders() -> dict[type, BodyEncoder]:
    """Map each encodable body variant to its encoder."""
    return {
        MultipartBody: MultipartEncoder(),
        FormBody: FormEncoder(),
        JSONBody: JSONEncoder(),
        XMLBody: XMLEncoder(),
        RawBody: RawEncoder(),
    }


def encoder_for(body: Body, encoders: dict[type, BodyEncoder]) -> BodyEncoder | None:
    """Return the encoder for a body variant, or None for an empty body."""
    return encoders.get(type(body))
