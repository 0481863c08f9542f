from __future__ import annotations

import json
from typing import Any, Dict, Optional


def first_balanced_object(text: str) -> Optional[str]:
    """Return the first balanced ``{...}`` span in ``text``.

    Braces inside JSON string literals are ignored, so prose such as
    ``Here you go: {"summary": "a {b} c"} hope it helps`` yields the object.
    """
    if not text:
        return None
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # Unbalanced from this brace; try the next opening brace.
        start = text.find("{", start + 1)
    return None


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Parse the first JSON object embedded in free text, or None."""
    if not text:
        return None
    stripped = text.strip()
    try:
        parsed = json.loads(stripped)
    except (TypeError, ValueError):
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    span = first_balanced_object(stripped)
    while span is not None:
        try:
            parsed = json.loads(span)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            return parsed
        # A balanced span that is not JSON (e.g. "{name}" in prose); keep looking after it.
        offset = stripped.find(span) + 1
        stripped = stripped[offset:]
        span = first_balanced_object(stripped)
    return None
