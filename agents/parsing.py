"""Parse cascade for model replies.

Models are asked for one JSON object with five fields, but replies arrive
wrapped in prose, with trailing commas, bare keys or single quotes, or as
loose "key": value fragments. Each strategy below is a pure function
str -> AnalysisPayload | None, tried in order; the first payload that also
passes structural validation wins.

Strategies:
    strict:   slice first '{' to last '}', json.loads
    repaired: same slice, fix common JSON mistakes outside string literals
    regex:    pull each field out independently; needs at least a summary
"""

import json
import logging
import re
from typing import Any, Callable

from pydantic import ValidationError

from models.analysis import AnalysisPayload

logger = logging.getLogger(__name__)

ParseStrategy = Callable[[str], AnalysisPayload | None]


def json_bounds(text: str) -> tuple[int, int] | None:
    """Index range of the first '{' through the last '}', end exclusive."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return start, end + 1


def json_slice(text: str) -> str | None:
    bounds = json_bounds(text)
    return text[bounds[0]:bounds[1]] if bounds else None


def prose_outside_json(text: str) -> str:
    """The reply with its JSON slice removed."""
    bounds = json_bounds(text)
    if not bounds:
        return text
    return text[:bounds[0]] + " " + text[bounds[1]:]


def _validate(candidate: Any) -> AnalysisPayload | None:
    if not isinstance(candidate, dict):
        return None
    try:
        return AnalysisPayload.model_validate(candidate)
    except ValidationError as e:
        logger.debug("Candidate failed validation | errors=%d", e.error_count())
        return None


# === Strict ===

def parse_strict(text: str) -> AnalysisPayload | None:
    sliced = json_slice(text)
    if sliced is None:
        return None
    try:
        return _validate(json.loads(sliced))
    except ValueError:
        return None


# === Repaired ===

_BARE_KEY = re.compile(r"([A-Za-z_$][\w$-]*)(\s*:)")
_WORD = re.compile(r"[\w$-]+")


def _scan_string(text: str, start: int, quote: str) -> int:
    """Index just past the closing quote of the literal opening at start."""
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "\\":
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    return len(text)


def _requote(inner: str) -> str:
    """Turn the body of a single-quoted literal into a JSON string."""
    out = []
    i = 0
    while i < len(inner):
        ch = inner[i]
        if ch == "\\" and i + 1 < len(inner):
            nxt = inner[i + 1]
            out.append("'" if nxt == "'" else ch + nxt)
            i += 2
            continue
        out.append('\\"' if ch == '"' else ch)
        i += 1
    return '"' + "".join(out) + '"'


def repair_json(text: str) -> str:
    """Fix trailing commas, bare keys and single quotes.

    Double-quoted literals are copied through untouched, so apostrophes and
    commas inside real strings are never rewritten.
    """
    out: list[str] = []
    last = ""  # last significant character emitted
    i = 0
    n = len(text)

    def emit(chunk: str) -> None:
        nonlocal last
        out.append(chunk)
        stripped = chunk.rstrip()
        if stripped:
            last = stripped[-1]

    while i < n:
        ch = text[i]

        if ch == '"':
            end = _scan_string(text, i, '"')
            emit(text[i:end])
            i = end
        elif ch == "'":
            end = _scan_string(text, i, "'")
            closed = end - 1 > i and text[end - 1] == "'"
            emit(_requote(text[i + 1:end - 1] if closed else text[i + 1:end]))
            i = end
        elif ch == ",":
            j = i + 1
            while j < n and text[j].isspace():
                j += 1
            if j < n and text[j] in "]}":
                i += 1  # trailing comma
            else:
                emit(ch)
                i += 1
        elif ch.isalpha() or ch in "_$":
            match = _BARE_KEY.match(text, i)
            if match and last and last in "{,":
                emit(f'"{match.group(1)}"{match.group(2)}')
                i = match.end()
            else:
                word = _WORD.match(text, i).group(0)
                emit(word)
                i += len(word)
        else:
            emit(ch)
            i += 1

    return "".join(out)


def parse_repaired(text: str) -> AnalysisPayload | None:
    sliced = json_slice(text)
    if sliced is None:
        return None
    try:
        return _validate(json.loads(repair_json(sliced)))
    except ValueError:
        return None


# === Regex ===

_STRING_VALUE = r"(\"(?:[^\"\\]|\\.)*\"|'(?:[^'\\]|\\.)*')"

_FIELD_KEYS = {
    "summary": ("summary",),
    "key_points": ("keyPoints", "key_points"),
    "technical_insights": ("technicalInsights", "technical_insights"),
    "trends": ("trends",),
    "tags": ("tags",),
}


def _key_pattern(names: tuple[str, ...]) -> str:
    return r"[\"']?(?:" + "|".join(names) + r")[\"']?\s*:\s*"


_SUMMARY_RE = re.compile(_key_pattern(_FIELD_KEYS["summary"]) + _STRING_VALUE, re.IGNORECASE | re.DOTALL)

_LIST_RES = {
    field: re.compile(_key_pattern(names) + r"\[(.*?)\]", re.IGNORECASE | re.DOTALL)
    for field, names in _FIELD_KEYS.items()
    if field != "summary"
}


def _decode_string(literal: str) -> str:
    if literal.startswith("'"):
        literal = _requote(literal[1:-1])
    try:
        return json.loads(literal)
    except ValueError:
        return literal[1:-1]


def _parse_array_body(body: str) -> list[str]:
    """Array contents as JSON, else comma-split with quotes stripped."""
    for candidate in (f"[{body}]", repair_json(f"[{body}]")):
        try:
            value = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(value, list):
            return [v if isinstance(v, str) else str(v) for v in value if v is not None]

    parts = (part.strip().strip("\"'").strip() for part in body.split(","))
    return [part for part in parts if part]


def parse_regex(text: str) -> AnalysisPayload | None:
    scope = json_slice(text) or text

    summary_match = _SUMMARY_RE.search(scope)
    if not summary_match:
        return None

    candidate: dict[str, Any] = {"summary": _decode_string(summary_match.group(1))}
    for field, pattern in _LIST_RES.items():
        match = pattern.search(scope)
        candidate[field] = _parse_array_body(match.group(1)) if match else []

    return _validate(candidate)


PARSE_STRATEGIES: list[tuple[str, ParseStrategy]] = [
    ("strict", parse_strict),
    ("repaired", parse_repaired),
    ("regex", parse_regex),
]


def parse_reply(text: str) -> tuple[AnalysisPayload | None, str | None]:
    """Run the cascade.

    Returns:
        (payload, strategy name), or (None, None) if every stage failed
    """
    for name, strategy in PARSE_STRATEGIES:
        payload = strategy(text)
        if payload is not None:
            logger.debug("Reply parsed | strategy=%s", name)
            return payload, name
    logger.debug("Reply unparsable | length=%d", len(text))
    return None, None
