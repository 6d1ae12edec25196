import json

import pytest

from fastreq.body import Form, Json, Raw, Text, coerce_body, encode_body
from fastreq.request import Request, append_params


def test_json_body():
    payload, content_type = encode_body(Json({"b": 1, "a": "é"}))
    assert json.loads(payload.decode("utf-8")) == {"b": 1, "a": "é"}
    assert content_type == "application/json"


def test_form_body_sorted():
    payload, content_type = encode_body(Form({"z": "1", "a": "x y", "skip": None}))
    assert payload == b"a=x+y&z=1"
    assert content_type == "application/x-www-form-urlencoded"


def test_text_and_raw_have_no_content_type():
    assert encode_body(Text("hé")) == ("hé".encode("utf-8"), None)
    assert encode_body(Raw(bytearray(b"\x00"))) == (b"\x00", None)
    assert encode_body(None) == (None, None)


@pytest.mark.parametrize(
    "value, expected",
    [
        ({"a": 1}, Json({"a": 1})),
        ({"user": "alice"}, Json({"user": "alice"})),
        ("text", Text("text")),
        (b"raw", Raw(b"raw")),
        (None, None),
    ],
)
def test_coerce_by_shape(value, expected):
    assert coerce_body(value) == expected


def test_keyword_shortcuts():
    assert coerce_body(json=[1, 2]) == Json([1, 2])
    assert coerce_body(data={"a": "1"}) == Form({"a": "1"})
    assert coerce_body(content=b"x") == Raw(b"x")
    assert coerce_body(content="x") == Text("x")


def test_conflicting_bodies():
    with pytest.raises(ValueError):
        coerce_body("a", json={"b": 1})


def test_unsupported_body_type():
    with pytest.raises(TypeError):
        coerce_body(12345)


@pytest.mark.parametrize(
    "url, params, expected",
    [
        ("http://h/p", {"b": "2", "a": "1"}, "http://h/p?a=1&b=2"),
        ("http://h/p?x=0", {"a": "1"}, "http://h/p?x=0&a=1"),
        ("http://h/p", {"q": "a&b=c"}, "http://h/p?q=a%26b%3Dc"),
        ("http://h/p", {}, "http://h/p"),
        ("http://h/p", None, "http://h/p"),
    ],
)
def test_append_params(url, params, expected):
    assert append_params(url, params) == expected


def test_request_normalizes_headers():
    req = Request("post", "http://example.com:8080/a?b=1", content=b"abc")
    assert req.method == "POST"
    assert req.target == "/a?b=1"
    assert req.headers["Host"] == "example.com:8080"
    assert req.headers["Content-Length"] == "3"
    assert req.absolute_target() == "http://example.com:8080/a?b=1"


def test_request_rejects_unsupported_scheme():
    with pytest.raises(ValueError):
        Request("GET", "ftp://example.com/file")


@pytest.mark.parametrize(
    "url, target",
    [
        ("http://h/café", "/caf%C3%A9"),
        ("http://h/a b", "/a%20b"),
        ("http://h/a%20b", "/a%20b"),
        ("http://h/p?q=a b&r=%2F", "/p?q=a%20b&r=%2F"),
        ("http://h", "/"),
    ],
)
def test_request_target_is_escaped(url, target):
    assert Request("GET", url).target == target
