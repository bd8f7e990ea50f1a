import json

from autocrm.services.ai_response_validation import sanitize_json_payload


def test_sanitize_keeps_outermost_braces():
    raw = 'Sure!\n{"a": {"b": 1}}\tThanks'
    assert sanitize_json_payload(raw) == '{"a": {"b": 1}}'


def test_sanitize_handles_code_fence():
    raw = '```json\n{"urgency": 3, "scope": 4}\n```'
    assert json.loads(sanitize_json_payload(raw)) == {"urgency": 3, "scope": 4}


def test_sanitize_without_braces_is_empty():
    assert sanitize_json_payload("no json here") == ""
    assert sanitize_json_payload("} backwards {") == ""


def test_sanitize_drops_control_characters():
    assert sanitize_json_payload('{\r\n"a":\t1\n}') == '{"a":1}'
