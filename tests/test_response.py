import pytest

from fastreq import HTTPStatusError, Request, Response, SaveError
from fastreq.errors import ConnectError


def make_response(status_code=200, content=b"", headers=None):
    return Response(
        status_code=status_code,
        headers=headers or {},
        content=content,
        request=Request("GET", "http://example.com/file"),
    )


@pytest.mark.parametrize("status_code", [200, 201, 204, 299])
def test_ok_for_2xx(status_code):
    assert make_response(status_code).ok


@pytest.mark.parametrize("status_code", [0, 100, 199, 300, 302, 404, 500])
def test_not_ok_outside_2xx(status_code):
    assert not make_response(status_code).ok


def test_raise_for_status_message_includes_body():
    resp = make_response(500, b"boom")
    with pytest.raises(HTTPStatusError) as info:
        resp.raise_for_status()
    assert info.value.status_code == 500
    assert str(info.value) == "HTTP 500: boom"
    assert info.value.response is resp


def test_raise_for_status_on_redirect_status():
    with pytest.raises(HTTPStatusError):
        make_response(304).raise_for_status()


def test_text_uses_charset():
    resp = make_response(content="olá".encode("iso-8859-1"), headers={"content-type": "text/plain; charset=iso-8859-1"})
    assert resp.encoding == "iso-8859-1"
    assert resp.text() == "olá"


def test_text_replaces_invalid_bytes():
    resp = make_response(content=b"ok\xff")
    assert resp.text() == "ok�"


def test_json_is_parsed_each_call():
    resp = make_response(content=b'{"a": {"b": [1, 2]}}')
    assert resp.json().get("a.b.1").as_int() == 2
    assert resp.json() is not resp.json()


def test_json_empty_body():
    assert not make_response(content=b"").json().exists


def test_save_to_overwrites(tmp_path):
    target = tmp_path / "out.txt"
    target.write_bytes(b"old content that is longer")
    make_response(content=b"new").save_to(target)
    assert target.read_bytes() == b"new"


def test_save_to_refuses_bad_status(tmp_path):
    with pytest.raises(SaveError) as info:
        make_response(404, b"missing").save_to(tmp_path / "x" / "y.txt")
    assert info.value.status_code == 404
    assert not (tmp_path / "x").exists()


def test_save_to_reports_filesystem_errors(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("a file, not a directory")
    with pytest.raises(SaveError) as info:
        make_response(content=b"data").save_to(blocker / "nested" / "file.bin")
    assert isinstance(info.value.__cause__, OSError)


def test_error_response():
    error = ConnectError("refused")
    resp = Response.from_error(error)
    assert resp.failed
    assert resp.status_code == 0
    assert resp.content == b""
    assert resp.url is None
    with pytest.raises(SaveError):
        resp.save_to("never-written")


def test_header_lookup_is_case_insensitive():
    resp = make_response(headers={"X-Thing": "1"})
    assert resp.header("x-thing") == "1"
    assert resp.header("missing", "d") == "d"
