"""Pass-through encoder for bodies without a known structure."""

from core.request_types import EncodedBody, RawBody, Transform


class RawEncoder:
    """Return the raw body bytes unchanged.

    The content type is left empty so the template's own Content-Type
    header stays in force.
    """

    def encode(self, body: RawBody, transform: Transform | None) -> EncodedBody:
        return EncodedBody(body.content, "")
