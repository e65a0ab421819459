import pytest

from hilink.exceptions import ProtocolError
from hilink.xmlcodec import XML_DECLARATION, XmlResponse, build_request


def test_build_request():
    body = build_request(
        [("username", "admin"), ("firstnonce", "abc"), ("mode", "1")]
    )
    assert body == (
        f"{XML_DECLARATION}<request><username>admin</username>"
        "<firstnonce>abc</firstnonce><mode>1</mode></request>"
    )


def test_build_request_escapes_values():
    body = build_request([("username", "a<b&c")])
    assert "<username>a&lt;b&amp;c</username>" in body
    assert XmlResponse.from_bytes(body).get("request.username") == "a<b&c"


def test_response_fields():
    doc = XmlResponse.from_bytes(
        b'<?xml version="1.0" encoding="UTF-8"?>\n'
        b"<response>\n  <salt> aabb </salt>\n  <iterations>100</iterations>\n"
        b"</response>\n"
    )
    assert doc.root_tag == "response"
    assert not doc.is_error
    assert doc.get("response.salt") == "aabb"
    assert doc.get("response.missing") is None
    assert doc.get("error.code") is None
    assert doc.require("response.iterations") == "100"
    assert doc.to_dict() == {"salt": "aabb", "iterations": "100"}


def test_error_document():
    doc = XmlResponse.from_bytes(
        "<error><code>108007</code><message></message><waittime>5</waittime></error>"
    )
    assert doc.is_error
    assert doc.get("error.code") == "108007"
    assert doc.get("error.waittime") == "5"
    assert doc.get("response.token") is None
    assert "108007" in repr(doc)


@pytest.mark.parametrize(
    "path",
    ["response.token", "response.empty", "response"],
    ids=["missing", "empty", "no-field"],
)
def test_require_missing(path):
    doc = XmlResponse.from_bytes(b"<response><empty></empty></response>")
    with pytest.raises(ProtocolError, match="missing"):
        doc.require(path)


@pytest.mark.parametrize(
    "body",
    [b"", b"   ", b"<response>", b"not xml", b"<a></b>"],
    ids=["empty", "blank", "unclosed", "text", "mismatched"],
)
def test_malformed(body):
    with pytest.raises(ProtocolError):
        XmlResponse.from_bytes(body)


def test_entities_not_resolved():
    body = (
        b'<?xml version="1.0"?><!DOCTYPE r [<!ENTITY x "expanded">]>'
        b"<response><token>&x;</token></response>"
    )
    doc = XmlResponse.from_bytes(body)
    assert doc.get("response.token") != "expanded"


def test_build_request_invalid_value():
    with pytest.raises(ProtocolError, match="username"):
        build_request([("username", "ad\x01min")])
