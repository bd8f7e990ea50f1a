"""Helpers for cleaning AI JSON responses before decoding."""

import re

_CONTROL_CHARS = re.compile(r"[\r\n\t]")


def sanitize_json_payload(text: str) -> str:
    """Drop CR/LF/TAB, trim, and keep the span from the first '{' to the last '}'.

    Handles prose or code fences around the object. Returns an empty string
    when no braces are present, which the caller's decoder rejects.
    """
    cleaned = _CONTROL_CHARS.sub("", text).strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or end < start:
        return ""
    return cleaned[start : end + 1]
