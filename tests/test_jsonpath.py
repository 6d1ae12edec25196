from fastreq import JSONResult


DOC = JSONResult.parse(
    b'{"name": "fastreq", "version": "0.1", "count": 3, "nested": {"key": "value"},'
    b' "items": [{"id": 1}, {"id": 2}], "flag": true, "dotted.key": "x", "nothing": null}'
)


def test_dotted_lookup():
    assert DOC.get("name").as_str() == "fastreq"
    assert DOC.get("nested.key").as_str() == "value"
    assert DOC.get("items.1.id").as_int() == 2
    assert DOC["items"][0]["id"].as_int() == 1


def test_escaped_dot():
    assert DOC.get(r"dotted\.key").as_str() == "x"


def test_missing_paths_are_empty():
    missing = DOC.get("nested.nope.deeper")
    assert not missing.exists
    assert missing.as_str() == ""
    assert missing.as_int() == 0
    assert DOC.get("items.9").exists is False
    assert DOC.get("name.sub").exists is False


def test_null_exists_but_has_no_value():
    assert DOC.get("nothing").exists
    assert DOC.get("nothing").value is None
    assert DOC.get("nothing").as_str("default") == "default"


def test_conversions():
    assert DOC.get("version").as_float() == 0.1
    assert DOC.get("count").as_str() == "3"
    assert DOC.get("flag").as_bool() is True
    assert DOC.get("nested").as_str() == '{"key": "value"}'
    assert [item.get("id").as_int() for item in DOC.get("items")] == [1, 2]


def test_invalid_json():
    doc = JSONResult.parse(b"<html>")
    assert not doc
    assert doc.value is None
    assert doc.get("a").as_list() == []


def test_equality():
    assert DOC.get("count") == 3
    assert JSONResult() != None  # noqa: E711
