import httpx
import pytest

from core.exceptions import TemplateError
from core.normalize import (
    RequestTemplate,
    normalize_request,
    parse_body,
    parse_cookie_header,
    parse_raw_request,
    template_from_json,
)
from core.request_types import (
    FormBody,
    JSONBody,
    MultipartBody,
    MultipartField,
    NoBody,
    RawBody,
    XMLBody,
)

RAW_REQUEST = (
    "POST /api/login?next=%2Fhome&tab=1&tab=2 HTTP/1.1\r\n"
    "Host: shop.example.com\r\n"
    "Content-Type: application/x-www-form-urlencoded\r\n"
    "Content-Length: 28\r\n"
    "Cookie: session=abc; theme=dark\r\n"
    "\r\n"
    "user=alice&pass=s3cret&pass="
)


class TestNormalizeRequest:
    def test_json_request(self):
        request = httpx.Request(
            "POST",
            "https://api.example.com/v1/users?page=2",
            headers={"X-Trace": "t1", "Cookie": "a=1; b=2"},
            json={"user": {"name": "alice"}},
        )
        template = normalize_request(request)

        assert template.scheme == "https"
        assert template.host == "api.example.com"
        assert template.path == "/v1/users"
        assert template.method == "POST"
        assert template.query_values == {"page": ["2"]}
        assert template.cookies == {"a": ["1"], "b": ["2"]}
        assert template.header("x-trace") == "t1"
        assert template.header("Cookie") == ""
        assert template.header("Content-Length") == str(len(request.content))
        assert template.body == JSONBody({"user": {"name": "alice"}})

    def test_port_is_kept_in_host(self):
        template = normalize_request(httpx.Request("GET", "http://localhost:8080/x"))
        assert template.host == "localhost:8080"
        assert isinstance(template.body, NoBody)

    def test_form_request(self):
        request = httpx.Request("POST", "https://example.com/f", data={"a": ["1", "2"], "b": "3"})
        assert normalize_request(request).body == FormBody({"a": ["1", "2"], "b": ["3"]})

    def test_multipart_request(self):
        request = httpx.Request(
            "POST",
            "https://example.com/upload",
            data={"title": "hello"},
            files={"avatar": ("a.png", b"PNGDATA", "image/png")},
        )
        body = normalize_request(request).body
        assert isinstance(body, MultipartBody)
        assert body.fields == (
            MultipartField("title", "hello"),
            MultipartField("avatar", b"PNGDATA", filename="a.png", content_type="image/png"),
        )

    def test_xml_request(self):
        request = httpx.Request(
            "POST",
            "https://example.com/soap",
            headers={"Content-Type": "application/soap+xml"},
            content=b"<env><id>1</id></env>",
        )
        body = normalize_request(request).body
        assert isinstance(body, XMLBody)
        assert body.document.find("id").text == "1"


class TestParseBody:
    def test_empty(self):
        assert isinstance(parse_body("application/json", b""), NoBody)

    def test_invalid_json_falls_back_to_raw(self):
        assert parse_body("application/json", b"{oops") == RawBody(b"{oops")

    def test_vendor_json(self):
        assert parse_body("application/vnd.api+json; charset=utf-8", b"[1]") == JSONBody([1])

    def test_invalid_xml_falls_back_to_raw(self):
        assert parse_body("text/xml", b"<a><b></a>") == RawBody(b"<a><b></a>")

    def test_xml_entities_are_refused(self):
        document = b'<!DOCTYPE x [<!ENTITY e "boom">]><x>&e;</x>'
        assert isinstance(parse_body("application/xml", document), RawBody)

    def test_unknown_type_is_raw(self):
        assert parse_body("text/plain", b"hello") == RawBody(b"hello")

    def test_multipart_without_boundary_is_raw(self):
        assert isinstance(parse_body("multipart/form-data", b"--x\r\n"), RawBody)

    def test_binary_body_is_kept_as_bytes(self):
        content = b"\x89PNG\r\n\xff\xfe\x00"
        assert parse_body("application/octet-stream", content) == RawBody(content)

    def test_multipart_text_field_that_is_not_utf8(self):
        content = (
            b"--b\r\n"
            b'Content-Disposition: form-data; name="legacy"\r\n'
            b"\r\n"
            b"caf\xe9\r\n"
            b"--b--\r\n"
        )
        body = parse_body("multipart/form-data; boundary=b", content)
        assert body == MultipartBody((MultipartField("legacy", b"caf\xe9"),))

    def test_xml_namespace_prefixes_are_recorded(self):
        content = (
            b'<soap:Envelope xmlns:soap="http://schemas.xmlsoap.org/soap/envelope/">'
            b"<soap:Body><id>1</id></soap:Body></soap:Envelope>"
        )
        body = parse_body("text/xml", content)
        assert isinstance(body, XMLBody)
        assert body.namespaces == (("soap", "http://schemas.xmlsoap.org/soap/envelope/"),)


def test_parse_cookie_header():
    assert parse_cookie_header("a=1; b=; bad; c=x=y") == [("a", "1"), ("b", ""), ("c", "x=y")]


class TestParseRawRequest:
    def test_valid_request(self):
        template = parse_raw_request(RAW_REQUEST)
        assert template.method == "POST"
        assert template.host == "shop.example.com"
        assert template.path == "/api/login"
        assert template.query_values == {"next": ["/home"], "tab": ["1", "2"]}
        assert template.cookies == {"session": ["abc"], "theme": ["dark"]}
        assert template.body == FormBody({"user": ["alice"], "pass": ["s3cret", ""]})
        assert template.header("Content-Length") == "28"

    def test_body_line_endings_are_kept(self):
        raw = (
            b"POST /upload HTTP/1.1\r\n"
            b"Host: example.com\r\n"
            b"Content-Type: multipart/form-data; boundary=XyZ\r\n"
            b"\r\n"
            b"--XyZ\r\n"
            b'Content-Disposition: form-data; name="title"\r\n'
            b"\r\n"
            b"two\r\nlines\r\n"
            b"--XyZ--\r\n"
        )
        template = parse_raw_request(raw)
        assert template.body == MultipartBody((MultipartField("title", "two\r\nlines"),))

    def test_head_must_be_utf8(self):
        with pytest.raises(TemplateError):
            parse_raw_request(b"GET /\xff HTTP/1.1\r\nHost: example.com\r\n\r\n")

    def test_scheme_override(self):
        raw = "GET / HTTP/1.1\nHost: example.com\n\n"
        assert parse_raw_request(raw, scheme="http").scheme == "http"

    @pytest.mark.parametrize(
        "raw",
        [
            "GET /\nHost: example.com\n\n",
            "GET / HTTP/2\nHost: example.com\n\n",
            "GET / HTTP/1.1\nnot a header\n\n",
            "GET / HTTP/1.1\nAccept: */*\n\n",
        ],
    )
    def test_invalid_requests(self, raw):
        with pytest.raises(TemplateError):
            parse_raw_request(raw)


class TestRequestTemplate:
    def test_json_template(self):
        template = template_from_json(
            '{"host": "example.com", "method": "PUT", "query": {"q": ["1"]}, "json": {"a": 1}}'
        )
        assert template.method == "PUT"
        assert template.path == "/"
        assert template.query_values == {"q": ["1"]}
        assert template.body == JSONBody({"a": 1})

    def test_multipart_wins_with_warning(self, logger):
        template = RequestTemplate.model_validate(
            {
                "host": "example.com",
                "multipart": [{"name": "f", "value": "v"}],
                "json": {"a": 1},
                "raw": "x",
            }
        ).to_request(logger)
        assert template.body == MultipartBody((MultipartField("f", "v"),))
        assert logger.warnings == ["Template has several bodies (multipart, json, raw), using multipart"]

    def test_single_body_has_no_warning(self, logger):
        template = RequestTemplate(host="example.com", form={"a": ["1"]}).to_request(logger)
        assert template.body == FormBody({"a": ["1"]})
        assert logger.warnings == []

    def test_xml_template(self):
        template = RequestTemplate(host="example.com", xml="<a><b>1</b></a>").to_request()
        assert isinstance(template.body, XMLBody)

    def test_invalid_xml_template(self):
        with pytest.raises(TemplateError):
            RequestTemplate(host="example.com", xml="<a>").to_request()

    @pytest.mark.parametrize("text", ["{not json", '{"path": "/"}', '{"host": "h", "headers": {"a": "b"}}'])
    def test_invalid_templates(self, text):
        with pytest.raises(TemplateError):
            template_from_json(text)
