from __future__ import annotations

from rbr.core.structured import as_obj_list, as_str_dict, get_bool, get_int, get_list, get_str, get_table


def test_get_str_strips_and_drops_empty() -> None:
    table: dict[str, object] = {"tag_name": "  v1.2.3 ", "blank": "   ", "num": 3}
    assert get_str(table, "tag_name") == "v1.2.3"
    assert get_str(table, "blank") is None
    assert get_str(table, "num") is None
    assert get_str(table, "missing") is None


def test_get_int_rejects_bool() -> None:
    table: dict[str, object] = {"databaseId": 4242, "draft": True}
    assert get_int(table, "databaseId") == 4242
    assert get_int(table, "draft") is None


def test_get_bool() -> None:
    assert get_bool({"force": False}, "force") is False
    assert get_bool({"force": "yes"}, "force") is None


def test_nested_access() -> None:
    payload: dict[str, object] = {"release": {"assets": [{"name": "a.zip"}]}}
    release = get_table(payload, "release")
    assert release is not None
    assets = get_list(release, "assets")
    assert assets == [{"name": "a.zip"}]
    assert get_table(payload, "assets") is None


def test_as_helpers() -> None:
    assert as_str_dict({1: "x"}) is None
    assert as_str_dict([]) is None
    assert as_obj_list({}) is None
    assert as_obj_list([1]) == [1]
