import pytest

from asyncaws import PARAM_NO_VALUE, URL, Headers, Params, Response, URLError
from asyncaws.utils import uri_encode


@pytest.mark.parametrize(
    "value, safe, expected",
    [
        ("simple-key_1.txt~", "", "simple-key_1.txt~"),
        ("a b+c", "", "a%20b%2Bc"),
        ("dir/file", "", "dir%2Ffile"),
        ("dir/file", "/", "dir/file"),
        ("ünï", "", "%C3%BCn%C3%AF"),
        ("*", "", "%2A"),
    ],
)
def test_uri_encode(value, safe, expected):
    assert uri_encode(value, safe=safe) == expected


def test_params_render():
    params = Params([("uploads", PARAM_NO_VALUE)])
    assert params.render() == "uploads"

    params = Params({"partNumber": "1", "uploadId": "id with space"})
    assert params.render() == "partNumber=1&uploadId=id%20with%20space"


def test_url_parse():
    url = URL.parse("https://example.com:8443/base/path?x=1&empty=")

    assert url.scheme == "https"
    assert url.host == "example.com"
    assert url.port == 8443
    assert url.path == "/base/path"
    assert list(url.params.items()) == [("x", "1"), ("empty", "")]
    assert url.origin == ("https", "example.com", 8443)
    assert url.netloc == "example.com:8443"


def test_url_default_port():
    url = URL.parse("http://example.com")
    assert url.origin.port == 80
    assert url.netloc == "example.com"
    assert url.target == "/"


@pytest.mark.parametrize("value", ["example.com/path", "ftp://example.com", "http://:80"])
def test_url_parse_invalid(value):
    with pytest.raises(URLError):
        URL.parse(value)


def test_url_join_keeps_base_path():
    base = URL.parse("http://localhost:4566/proxy/")
    url = base.join("/bucket/key", {"uploadId": "u"})

    assert str(url) == "http://localhost:4566/proxy/bucket/key?uploadId=u"
    assert str(base) == "http://localhost:4566/proxy/"


def test_headers_are_case_insensitive():
    headers = Headers([(b"Content-Type", b"text/plain"), ("X-Amz-Meta-A", "1")])
    headers.add("x-amz-meta-a", "2")

    assert headers["content-type"] == "text/plain"
    assert headers.get_all("X-AMZ-META-A") == ["1", "2"]
    assert headers.get_folded("x-amz-meta-a") == "1, 2"


def test_empty_response():
    resp = Response(status_code=200, headers={}, http_version="HTTP/1.1", data=b"")

    assert resp.text() == ""
    assert resp.json() == {}
    assert resp.encoding == "ascii"


@pytest.mark.parametrize("charset", ["ascii", "utf-8", "UTF-8", '"utf-8"', '"UTF-8"'])
def test_response_content_type_charset(charset):
    resp = Response(
        status_code=200,
        headers={"content-type": f"text/plain; charset={charset}"},
        http_version="HTTP/1.1",
    )

    assert resp.text() == ""
    assert resp.encoding == ("ascii" if charset == "ascii" else "utf-8")


def test_response_encoding_is_detected():
    resp = Response(
        status_code=200,
        headers={"content-type": "application/xml"},
        http_version="HTTP/1.1",
        data="<Key>ünïcödé</Key>".encode("utf-8"),
    )

    assert resp.content_type == "application/xml"
    assert resp.text() == "<Key>ünïcödé</Key>"


@pytest.mark.parametrize(
    "headers, expected",
    [
        ({}, None),
        ({"content-length": "10"}, 10),
        ([("content-length", "10"), ("content-length", "10")], 10),
        ([("content-length", "10"), ("content-length", "11")], None),
        ({"content-length": "abc"}, None),
    ],
)
def test_response_content_length(headers, expected):
    resp = Response(status_code=200, headers=headers, http_version="HTTP/1.1")
    assert resp.content_length == expected
