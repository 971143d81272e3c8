"""multipart/form-data body encoder."""

import hashlib

from urllib3.fields import RequestField
from urllib3.filepost import encode_multipart_formdata

from core.exceptions import EncoderError
from core.request_types import EncodedBody, MultipartBody, MultipartField, Part, Transform

DEFAULT_FILE_CONTENT_TYPE = "application/octet-stream"


class MultipartEncoder:
    """Rebuild a multipart body, replacing the value of the targeted field.

    File parts keep their filename; the (possibly mutated) value becomes the
    file content. The boundary is derived from the rendered fields, so equal
    inputs always encode to equal bytes.
    """

    def encode(self, body: MultipartBody, transform: Transform | None) -> EncodedBody:
        fields = []
        for field in body.fields:
            value = field.value
            if transform is not None and transform.targets(Part.BODY, field.name):
                value = transform.value
            fields.append(_request_field(field, value))

        try:
            content, content_type = encode_multipart_formdata(fields, boundary=_boundary(fields))
        except (TypeError, ValueError) as e:
            raise EncoderError(
                f"could not write multipart body: {e}",
                part=Part.BODY.value,
                key=transform.key if transform else None,
            ) from e
        return EncodedBody(content, content_type)


def _request_field(field: MultipartField, value: str | bytes) -> RequestField:
    if field.filename:
        request_field = RequestField(name=field.name, data=value, filename=field.filename)
        request_field.make_multipart(
            content_type=field.content_type or DEFAULT_FILE_CONTENT_TYPE
        )
    else:
        request_field = RequestField(name=field.name, data=value)
        request_field.make_multipart()
    return request_field


def _boundary(fields: list[RequestField]) -> str:
    digest = hashlib.sha256()
    for field in fields:
        digest.update(field.render_headers().encode("utf-8", "surrogatepass"))
        data = field.data
        digest.update(data if isinstance(data, bytes) else str(data).encode("utf-8", "surrogatepass"))
    return digest.hexdigest()[:32]
