"""
Extraction and repair of JSON embedded in model output.

Models wrap the requested JSON in prose, leave trailing commas, use single
quotes, or put raw newlines inside strings. The parser takes the outermost
bracket span, tries a strict parse, and on failure applies one bounded
repair pass before giving up with MalformedModelOutput. The result's
top-level shape is guaranteed; its fields are not (see services.sanitize).
"""

import json
import logging
import re
from typing import Any

from kapsa.errors import MalformedModelOutput
from kapsa.services.inference import inference_client

logger = logging.getLogger(__name__)

_ARRAY_SPAN = re.compile(r"\[[\s\S]*\]")
_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA = re.compile(r",\s*([}\]])")

_STRING_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _escape_control_chars_in_strings(text: str) -> str:
    """Escape raw newlines/tabs that sit inside JSON string literals."""
    out = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            elif ch in _STRING_ESCAPES:
                out.append(_STRING_ESCAPES[ch])
                continue
        elif ch == '"':
            in_string = True
        out.append(ch)
    return "".join(out)


def _single_to_double_quotes(text: str) -> str:
    """
    Rewrite single-quoted string literals as double-quoted ones.

    Double-quoted strings are copied as-is, so apostrophes inside them survive.
    """
    out = []
    quote = None
    escaped = False
    for ch in text:
        if quote is None:
            if ch == "'":
                quote = ch
                out.append('"')
                continue
            if ch == '"':
                quote = ch
        elif escaped:
            escaped = False
            if quote == "'" and ch == "'":
                out[-1] = "'"
                continue
        elif ch == "\\":
            escaped = True
        elif ch == quote:
            quote = None
            if ch == "'":
                out.append('"')
                continue
        elif quote == "'" and ch == '"':
            out.append('\\"')
            continue
        out.append(ch)
    return "".join(out)


def repair_json(text: str) -> str:
    """Apply the fixed set of textual repairs once."""
    text = _TRAILING_COMMA.sub(r"\1", text)
    text = _single_to_double_quotes(text)
    return _escape_control_chars_in_strings(text)


def _extract(raw: Any, pattern: re.Pattern[str], expected: type, shape: str) -> Any:
    if not isinstance(raw, str):
        raise MalformedModelOutput()
    match = pattern.search(raw)
    if match is None:
        logger.warning("No JSON %s found in model output (%d chars)", shape, len(raw))
        raise MalformedModelOutput()

    span = match.group(0)
    try:
        value = json.loads(span)
    except json.JSONDecodeError:
        try:
            value = json.loads(repair_json(span))
        except json.JSONDecodeError as e:
            logger.warning("JSON %s could not be repaired: %s", shape, e)
            raise MalformedModelOutput() from e

    if not isinstance(value, expected):
        logger.warning("Model output parsed to %s, expected %s", type(value).__name__, shape)
        raise MalformedModelOutput()
    return value


def parse_json_array(raw: Any) -> list:
    """Parse the first ``[...]`` span of ``raw`` into a non-empty list."""
    value = _extract(raw, _ARRAY_SPAN, list, "array")
    if not value:
        raise MalformedModelOutput()
    return value


def parse_json_object(raw: Any) -> dict:
    """Parse the first ``{...}`` span of ``raw`` into a dict."""
    return _extract(raw, _OBJECT_SPAN, dict, "object")


async def generate_json_array(
    prompt: str,
    *,
    system_prompt: str,
    retry_prompt: str,
    max_tokens: int | None = None,
) -> list:
    """
    Generate and parse a JSON array, retrying the whole call once.

    The retry uses ``retry_prompt``, which should demand the bare array. A
    second parse failure propagates as MalformedModelOutput; inference
    errors propagate from either attempt.
    """
    raw = await inference_client.generate_text(prompt, system_prompt=system_prompt, max_tokens=max_tokens)
    try:
        return parse_json_array(raw)
    except MalformedModelOutput:
        logger.warning("First JSON array parse failed, retrying with stricter prompt")

    raw = await inference_client.generate_text(retry_prompt, system_prompt=system_prompt, max_tokens=max_tokens)
    return parse_json_array(raw)
