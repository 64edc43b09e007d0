from __future__ import annotations
import json
from typing import Dict, Optional


def decode_form(s: str) -> Dict[str, str]:
    """
    Parse a "key=value&key=value" POST string into a dict.

    This is a simple parser: no nesting and no percent decoding. Tokens
    without '=' are skipped, a repeated key keeps the last value.
    """
    fields: Dict[str, str] = {}
    for token in s.split("&"):
        key, sep, value = token.partition("=")
        if sep:
            fields[key] = value
    return fields


def decode_post(body: bytes, content_type: Optional[str] = None) -> Dict[str, object]:
    """
    Decode a POST body sent by the web page.

    JSON is used when the content type says so or the body looks like a
    JSON object, anything else is treated as form data. Raises ValueError
    for malformed JSON or JSON that is not an object.
    """
    text = body.decode("utf-8", errors="replace").strip()
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype == "application/json" or text.startswith("{"):
        try:
            data = json.loads(text) if text else {}
        except json.JSONDecodeError as e:
            raise ValueError(f"invalid JSON: {e.msg}") from e
        if not isinstance(data, dict):
            raise ValueError("JSON body must be an object")
        return data
    return dict(decode_form(text))
