"""application/x-www-form-urlencoded body encoder."""

import httpx

from core.exceptions import EncoderError
from core.request_types import EncodedBody, FormBody, Part, Transform

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class FormEncoder:
    """Rebuild a form body; the targeted key collapses to a single value."""

    def encode(self, body: FormBody, transform: Transform | None) -> EncodedBody:
        items: list[tuple[str, str]] = []
        for key, values in body.fields.items():
            if transform is not None and transform.targets(Part.BODY, key):
                items.append((key, transform.value))
            else:
                items.extend((key, value) for value in values)

        try:
            content = str(httpx.QueryParams(items)).encode("ascii")
        except UnicodeError as e:
            raise EncoderError(
                f"could not encode form body: {e}",
                part=Part.BODY.value,
                key=transform.key if transform else None,
            ) from e
        return EncodedBody(content, FORM_CONTENT_TYPE)
