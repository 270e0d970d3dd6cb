from __future__ import annotations

import pytest

from tornado_agents.core.errors import MalformedArgumentsError
from tornado_agents.tools.arguments import normalize_arguments, parse_arguments_object


@pytest.mark.parametrize("raw", [None, "", "   ", " \t\n ", "null", "undefined", "[]", "  null  ", "\n[]\n"])
def test_empty_forms_become_empty_object(raw: str | None) -> None:
    assert normalize_arguments(raw) == "{}"


@pytest.mark.parametrize("raw", ['{"a": 1}', '  {"a": 1}  ', "{not json", "42", "[1]", "NULL", "nullish"])
def test_other_text_passes_through_unchanged(raw: str) -> None:
    assert normalize_arguments(raw) == raw


@pytest.mark.parametrize("raw", [None, "", "null", '{"a": 1}', "{broken", "  x  "])
def test_normalize_is_idempotent(raw: str | None) -> None:
    once = normalize_arguments(raw)
    assert normalize_arguments(once) == once


def test_parse_arguments_object() -> None:
    assert parse_arguments_object("t", None) == {}
    assert parse_arguments_object("t", "[]") == {}
    assert parse_arguments_object("t", '{"city": "Prague"}') == {"city": "Prague"}


def test_parse_rejects_invalid_json() -> None:
    with pytest.raises(MalformedArgumentsError) as ei:
        parse_arguments_object("Search", "{not json")

    assert ei.value.tool_name == "Search"
    assert ei.value.raw_arguments == "{not json"
    assert "Search" in str(ei.value)
    assert "{not json" in str(ei.value)


@pytest.mark.parametrize("raw", ["42", '"text"', "[1, 2]"])
def test_parse_rejects_non_objects(raw: str) -> None:
    with pytest.raises(MalformedArgumentsError):
        parse_arguments_object("t", raw)
