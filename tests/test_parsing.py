"""Tests for the reply parse cascade."""

import json

from agents.parsing import (
    PARSE_STRATEGIES,
    json_bounds,
    parse_regex,
    parse_reply,
    parse_strict,
    prose_outside_json,
    repair_json,
)

VALID = {
    "summary": "SQLite adds a new JSON function",
    "keyPoints": ["jsonb storage"],
    "technicalInsights": ["Faster reads"],
    "trends": ["Embedded databases"],
    "tags": ["sqlite", "databases"],
}


def test_strategy_order():
    assert [name for name, _ in PARSE_STRATEGIES] == ["strict", "repaired", "regex"]


def test_strict_valid_json():
    payload, strategy = parse_reply(json.dumps(VALID))
    assert strategy == "strict"
    assert payload.summary == VALID["summary"]
    assert payload.key_points == ["jsonb storage"]
    assert payload.tags == ["sqlite", "databases"]


def test_strict_json_wrapped_in_prose():
    reply = f"Here is the analysis:\n```json\n{json.dumps(VALID)}\n```\nLet me know!"
    payload, strategy = parse_reply(reply)
    assert strategy == "strict"
    assert payload.trends == ["Embedded databases"]


def test_trailing_commas_repaired():
    reply = '{"summary": "s", "keyPoints": ["a", "b",], "technicalInsights": [], "trends": [], "tags": ["t"],}'
    payload, strategy = parse_reply(reply)
    assert strategy == "repaired"
    assert payload.key_points == ["a", "b"]


def test_unquoted_keys_repaired():
    reply = '{summary: "s", keyPoints: [], technicalInsights: ["i"], trends: [], tags: ["t"]}'
    payload, strategy = parse_reply(reply)
    assert strategy == "repaired"
    assert payload.technical_insights == ["i"]


def test_single_quoted_strings_repaired():
    reply = (
        'Here you go: {"summary":"ok","keyPoints":[],"technicalInsights":[],'
        '"trends":[],"tags":[\'x\']} thanks'
    )
    payload, strategy = parse_reply(reply)
    assert strategy == "repaired"
    assert payload.summary == "ok"
    assert payload.tags == ["x"]


def test_repair_leaves_double_quoted_content_alone():
    repaired = repair_json('{"a": "don\'t, stop",}')
    assert json.loads(repaired) == {"a": "don't, stop"}


def test_repair_mixed_mistakes():
    text = "{\"summary\": \"it's fine\", 'tags': ['a'], keyPoints: [], technicalInsights: [], trends: [],}"
    assert json.loads(repair_json(text)) == {
        "summary": "it's fine",
        "tags": ["a"],
        "keyPoints": [],
        "technicalInsights": [],
        "trends": [],
    }


def test_repair_single_quoted_with_embedded_double_quote():
    assert json.loads(repair_json("{'q': 'say \"hi\"'}")) == {"q": 'say "hi"'}


def test_field_fragments_in_prose():
    reply = 'Summary follows. "summary": "A thing happened", "tags": ["x", "y"] and that is all'
    payload, strategy = parse_reply(reply)
    assert strategy == "regex"
    assert payload.summary == "A thing happened"
    assert payload.tags == ["x", "y"]
    assert payload.key_points == []
    assert payload.trends == []


def test_regex_array_falls_back_to_comma_split():
    reply = '{"summary": "s", "tags": [a, b, "c"], "keyPoints": ["k"] and then it stopped'
    payload, strategy = parse_reply(reply)
    assert strategy == "regex"
    assert payload.tags == ["a", "b", "c"]
    assert payload.key_points == ["k"]


def test_regex_list_field_with_wrong_shape_becomes_empty():
    reply = '{"summary": "ok", "keyPoints": "not a list", "technicalInsights": [], "trends": [], "tags": ["t"]}'
    payload, strategy = parse_reply(reply)
    assert strategy == "regex"
    assert payload.key_points == []
    assert payload.tags == ["t"]


def test_regex_requires_summary():
    assert parse_regex('"tags": ["a"], "trends": ["b"]') is None


def test_pure_prose_fails_every_stage():
    payload, strategy = parse_reply("I'm sorry, I can't help with analyzing this item.")
    assert payload is None
    assert strategy is None


def test_wrong_summary_type_rejected():
    reply = '{"summary": 5, "keyPoints": [], "technicalInsights": [], "trends": [], "tags": []}'
    assert parse_strict(reply) is None
    assert parse_reply(reply) == (None, None)


def test_missing_list_field_rejected_by_strict():
    reply = '{"summary": "s", "keyPoints": [], "technicalInsights": [], "trends": []}'
    assert parse_strict(reply) is None
    payload, strategy = parse_reply(reply)
    assert strategy == "regex"
    assert payload.tags == []


def test_non_string_elements_coerced():
    reply = '{"summary": "s", "keyPoints": [1, 2.5, null], "technicalInsights": [], "trends": [], "tags": [true]}'
    payload, _ = parse_reply(reply)
    assert payload.key_points == ["1", "2.5"]
    assert payload.tags == ["True"]


def test_json_bounds_and_prose():
    text = 'before {"a": 1} after'
    assert json_bounds(text) == (7, 15)
    assert prose_outside_json(text).split() == ["before", "after"]
    assert json_bounds("no braces") is None
    assert prose_outside_json("no braces") == "no braces"
