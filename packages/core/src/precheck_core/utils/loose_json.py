"""Tolerant JSON parsing for language model output.

Models are asked for JSON but regularly answer with something close to it:
JavaScript-style object literals with bare keys and single-quoted strings,
a trailing comma, a markdown fence, or a sentence of prose around the
payload. parse_loose_json() accepts all of those. Well-formed JSON is always
parsed with the standard decoder first, so the tolerant path only ever runs
on input the strict decoder rejected.
"""

from __future__ import annotations

import json
import re
from typing import Any, Iterator

_FENCE_OPEN_RE = re.compile(r"^```(?:json|javascript|js)?\s*", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\s*```$")

# Python literals show up when a model mimics repr() output.
_BARE_LITERALS = {"True": "true", "False": "false", "None": "null", "undefined": "null"}

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "/": "/",
    "\\": "\\",
    '"': '"',
    "'": "'",
}


class LooseJsonError(ValueError):
    """Raised when text cannot be interpreted as JSON, even loosely."""


def parse_loose_json(text: str) -> Any:
    """Parse ``text`` as JSON, tolerating the deviations models commonly produce."""
    if not isinstance(text, str):
        raise LooseJsonError(f"expected a string, got {type(text).__name__}")

    stripped = text.strip()
    try:
        return json.loads(stripped)
    except json.JSONDecodeError:
        pass

    cleaned = _FENCE_OPEN_RE.sub("", stripped)
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned.strip())

    last_error: Exception | None = None
    for start in _candidate_starts(cleaned):
        span = _extract_span(cleaned, start)
        try:
            return json.loads(_normalize(span))
        except (json.JSONDecodeError, LooseJsonError) as e:
            last_error = e

    if last_error is None:
        raise LooseJsonError(f"no JSON object or array found in: {text[:200]!r}")
    raise LooseJsonError(f"could not parse model output as JSON: {last_error}") from last_error


def _candidate_starts(text: str) -> Iterator[int]:
    # Every opening bracket is tried in order; prose such as "[x]" checklists
    # can put any number of them ahead of the payload.
    return (i for i, ch in enumerate(text) if ch in "{[")


def _extract_span(text: str, start: int) -> str:
    """Return text[start:] cut at the bracket closing the one at ``start``.

    Quoted strings of either quote style are skipped so brackets inside
    review comments do not affect the depth count. An unbalanced span is
    returned as-is and left for the decoder to reject.
    """
    depth = 0
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch in "\"'":
            i = _skip_string(text, i)
            continue
        if ch in "{[":
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
        i += 1
    return text[start:]


def _skip_string(text: str, start: int) -> int:
    quote = text[start]
    i = start + 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == quote:
            return i + 1
        i += 1
    return len(text)


def _read_string(text: str, start: int) -> tuple[str, int]:
    """Decode the quoted string at ``start``; return (value, index after it)."""
    quote = text[start]
    chars: list[str] = []
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\" and i + 1 < n:
            nxt = text[i + 1]
            if nxt == "u" and i + 6 <= n:
                try:
                    chars.append(chr(int(text[i + 2 : i + 6], 16)))
                except ValueError:
                    raise LooseJsonError(f"invalid unicode escape at offset {i}") from None
                i += 6
                continue
            chars.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        if ch == quote:
            return "".join(chars), i + 1
        chars.append(ch)
        i += 1
    raise LooseJsonError(f"unterminated string starting at offset {start}")


def _normalize(text: str) -> str:
    """Rewrite a JavaScript-ish object literal into strict JSON."""
    out: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]

        if ch in "\"'":
            value, i = _read_string(text, i)
            out.append(json.dumps(value))
            continue

        if ch.isalpha() or ch in "_$":
            j = i
            while j < n and (text[j].isalnum() or text[j] in "_$"):
                j += 1
            word = text[i:j]
            k = j
            while k < n and text[k].isspace():
                k += 1
            if k < n and text[k] == ":":
                out.append(json.dumps(word))
            else:
                out.append(_BARE_LITERALS.get(word, word))
            i = j
            continue

        if ch == ",":
            k = i + 1
            while k < n and text[k].isspace():
                k += 1
            if k < n and text[k] in "}]":
                i += 1
                continue

        out.append(ch)
        i += 1
    return "".join(out)
