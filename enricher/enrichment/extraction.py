"""
Best-effort Structured Extraction

Pulls structured data out of free-text model answers:

- ``extract_json_object``: the first balanced ``{...}`` region that decodes
  to a JSON object
- ``extract_field_value``: a single trimmed value for per-field prompts
- ``match_output_fields``: maps decoded keys onto template output fields

Every failure is reported as ``ParseError``; the orchestrator counts it as a
field failure and never retries it.
"""

import json
import re
from typing import Any, Dict, Iterator, List, Tuple

from enricher.enrichment.errors import ParseError


_SMART_QUOTES = {
    "“": '"',
    "”": '"',
    "‘": "'",
    "’": "'",
}

_CODE_FENCE = re.compile(r"^```[\w-]*\s*|\s*```$")
_KEY_NORMALIZER = re.compile(r"[^a-z0-9]")


def _balanced_regions(text: str) -> Iterator[str]:
    """Yield every top-level balanced ``{...}`` region, left to right.

    Braces inside JSON string literals are ignored.
    """
    depth = 0
    start = None
    in_string = False
    escaped = False

    for index, char in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"' and depth > 0:
            in_string = True
        elif char == "{":
            if depth == 0:
                start = index
            depth += 1
        elif char == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield text[start:index + 1]


def extract_json_object(text: str) -> Dict[str, Any]:
    """Extract the first JSON object embedded in free text.

    Markdown code fences and smart quotes are tolerated. When the first
    balanced region is not valid JSON the following regions are tried.

    Raises:
        ParseError: If no balanced region decodes to a JSON object
    """
    if not text or not text.strip():
        raise ParseError("Empty response from model", response_text=text)

    for smart, plain in _SMART_QUOTES.items():
        text = text.replace(smart, plain)

    found_region = False
    for region in _balanced_regions(text):
        found_region = True
        try:
            data = json.loads(region)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    if found_region:
        raise ParseError(
            "Response contained braces but no valid JSON object",
            response_text=text
        )
    raise ParseError("Response did not contain a JSON object", response_text=text)


def extract_field_value(text: str) -> str:
    """Trim a per-field answer down to the bare value.

    Removes code fences, surrounding whitespace and one pair of matching
    surrounding quotes.

    Raises:
        ParseError: If nothing is left
    """
    value = _CODE_FENCE.sub("", (text or "").strip()).strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1].strip()
    if not value:
        raise ParseError("Empty response from model", response_text=text)
    return value


def _normalize_key(key: str) -> str:
    return _KEY_NORMALIZER.sub("", key.lower())


def _stringify(value: Any) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        return ", ".join(_stringify(item) for item in value if item is not None)
    return json.dumps(value, ensure_ascii=False)


def match_output_fields(
    data: Dict[str, Any],
    output_fields: List[str]
) -> Tuple[Dict[str, str], List[str]]:
    """Copy decoded values into output fields.

    Keys match exactly first, then ignoring case and separators
    (``Employee Count`` matches ``employee_count``). Null or empty values
    count as missing.

    Returns:
        (values by output field, output fields with no value)
    """
    normalized = {}
    for key, value in data.items():
        normalized.setdefault(_normalize_key(str(key)), value)

    values: Dict[str, str] = {}
    missing: List[str] = []
    for field_name in output_fields:
        if field_name in data:
            raw = data[field_name]
        else:
            raw = normalized.get(_normalize_key(field_name))

        text = "" if raw is None else _stringify(raw)
        if text:
            values[field_name] = text
        else:
            missing.append(field_name)

    return values, missing
