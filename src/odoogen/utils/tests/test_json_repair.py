from __future__ import annotations

import json

import pytest

from odoogen.utils.json_repair import (
    TRUNCATION_MARKER,
    coerce_bool,
    coerce_validation_payload,
    extract_json_text,
    parse_json_lenient,
    repair_json,
    repair_validation_json,
)


OBJ = '{"is_odoo_request": true, "reason": "Odoo {module} with [views]"}'


@pytest.mark.parametrize(
    "raw",
    [
        f"```json\n{OBJ}\n```",
        f"Sure! Here you go:\n```json\n{OBJ}\n```\nLet me know if you need more.",
        f"Classification below.\n\n```\n{OBJ}\n```\n\nThanks",
    ],
)
def test_extract_returns_exact_object_from_fenced_block(raw):
    assert extract_json_text(raw) == OBJ


def test_extract_prefers_first_opening_structure():
    raw = 'Result: [1, 2, {"a": 3}] and then {"b": 4}'
    assert extract_json_text(raw) == '[1, 2, {"a": 3}]'


def test_extract_balances_nested_structures_and_ignores_braces_in_strings():
    raw = 'prefix {"a": {"b": [1, 2]}, "c": "}"} suffix'
    assert extract_json_text(raw) == '{"a": {"b": [1, 2]}, "c": "}"}'


def test_extract_falls_back_to_flat_match_when_unbalanced():
    raw = 'broken { "x": { "y": 1 } and later {"z": 2}'
    assert extract_json_text(raw) == '{ "y": 1 }'


def test_extract_without_json_returns_cleaned_text():
    assert extract_json_text("Output: nothing here") == "nothing here"


@pytest.mark.parametrize(
    "bad",
    [
        '{"a": 1, "b": [1, 2,],}',
        "{'a': 'single', 'b': 'it\\'s'}",
        "{a: 1, b: 'two'}",
        '[{"a": 1} {"a": 2}]',
        '{"flag": True, "none": None}',
        '{"text": "line one\nline two"}',
        '{"a": [1, 2',
        "{'a': 'x\\d',}",
        "{'re': '\\s+\\uZZZZ'}",
    ],
)
def test_repair_produces_parseable_json(bad):
    json.loads(repair_json(bad))


def test_repair_keeps_string_contents_untouched():
    text = '{"reason": "a , b : c", "q": "it\'s fine",}'
    assert json.loads(repair_json(text)) == {"reason": "a , b : c", "q": "it's fine"}


def test_repair_is_idempotent():
    once = repair_json("{a: 'x', 'b': [1,2,],}")
    assert repair_json(once) == once


def test_repair_never_raises_on_garbage():
    for garbage in ["", "   ", "{{{{", "]]]", None, "\\"]:
        repair_json(garbage)  # must not raise


@pytest.mark.parametrize(
    "value, expected",
    [(True, True), ("true", True), ("TRUE ", True), ("yes", True), (1, True), ("1", True),
     (False, False), ("false", False), ("no", False), (0, False), ("0", False)],
)
def test_coerce_bool_boolean_like_values(value, expected):
    assert coerce_bool(value) is expected


def test_coerce_bool_undecidable_is_none():
    assert coerce_bool("maybe") is None
    assert coerce_bool(None) is None


@pytest.mark.parametrize(
    "bad",
    [
        "{'is_odoo_request': 'true', 'reason': 'ok',}",
        '{"reason": "this is an odoo module request"}',
        '{"is_odoo_request": 0}',
        "not json at all, but it is for odoo",
        "",
    ],
)
def test_validation_repair_always_yields_both_keys(bad):
    data = json.loads(repair_validation_json(bad))
    assert isinstance(data["is_odoo_request"], bool)
    assert isinstance(data["reason"], str) and data["reason"]


def test_validation_repair_infers_from_text_when_key_missing():
    assert json.loads(repair_validation_json("This is not an Odoo request."))["is_odoo_request"] is False
    assert json.loads(repair_validation_json("Valid request for odoo module work"))["is_odoo_request"] is True


def test_validation_reason_is_capped():
    payload = coerce_validation_payload({"is_odoo_request": True, "reason": "x" * 900})
    assert payload["reason"] == "x" * 500 + TRUNCATION_MARKER


def test_validation_non_string_reason_is_stringified():
    payload = coerce_validation_payload({"is_odoo_request": "1", "reason": 42})
    assert payload == {"is_odoo_request": True, "reason": "42"}


def test_validation_intent_field_decides_when_flag_missing():
    assert coerce_validation_payload({"intent": "module_generate"})["is_odoo_request"] is True
    assert coerce_validation_payload({"intent": "general_chat"})["is_odoo_request"] is False


def test_parse_json_lenient_default():
    assert parse_json_lenient("no structure", default={"x": 1}) == {"x": 1}
    assert parse_json_lenient("```json\n{'a': 1,}\n```") == {"a": 1}


def test_repair_escapes_stray_backslashes():
    repaired = repair_json("{'pattern': 'x\\d', 'dir': 'C:\\Users'}")
    assert json.loads(repaired) == {"pattern": "x\\d", "dir": "C:\\Users"}
    assert repair_json(repaired) == repaired
