"""
Recovery of a JSON object from free-form language-model output.

Model output is usually valid JSON, but it occasionally arrives wrapped in
conversational text or markdown fences, or carries trailing commas and quoting
slips. `extract` tries the cheap strategies first and only falls back to the
textual repairs below when they fail. Malformed input is an expected outcome
here: every strategy signals failure by returning None, never by raising.
"""
import json
import logging
import re
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_BRACE_SPAN_RE = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_BARE_KEY_RE = re.compile(r"(\{|,)\s*(\w+)\s*:")
_ADJACENT_STRINGS_RE = re.compile(r'"\s*\n\s*"')
_NUMBER_THEN_STRING_RE = re.compile(r'(\d)\s*\n\s*"')
_STRING_THEN_NUMBER_RE = re.compile(r'"\s*\n\s*(\d)')
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1F\x7F]")


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(text)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def strip_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def quote_bare_keys(text: str) -> str:
    """Quote simple word keys: `{title: "X"}` -> `{"title": "X"}`."""
    return _BARE_KEY_RE.sub(r'\1"\2":', text)


def normalize_quotes(text: str) -> str:
    # Lossy for apostrophes inside values ("chef's knife"); kept as is.
    return text.replace("'", '"')


def insert_missing_commas(text: str) -> str:
    """Add the comma a model dropped at the end of a line inside an object or array."""
    text = _ADJACENT_STRINGS_RE.sub('",\n"', text)
    text = _NUMBER_THEN_STRING_RE.sub(r'\1,\n"', text)
    return _STRING_THEN_NUMBER_RE.sub(r'",\n\1', text)


def strip_control_chars(text: str) -> str:
    return _CONTROL_CHARS_RE.sub(" ", text)


REPAIR_STEPS: Tuple[Callable[[str], str], ...] = (
    strip_trailing_commas,
    quote_bare_keys,
    normalize_quotes,
    insert_missing_commas,
    strip_control_chars,
)


def repair_candidate(candidate: str) -> str:
    for step in REPAIR_STEPS:
        candidate = step(candidate)
    return candidate


def extract(text: str) -> Optional[Dict[str, Any]]:
    """
    Return the JSON object contained in `text`, or None when nothing can be recovered.

    Strategies, first success wins:
      1. the whole text parsed as JSON
      2. the content of a ``` / ```json fenced block
      3. the span from the first `{` to the last `}`, after REPAIR_STEPS
    """
    if not isinstance(text, str):
        return None

    data = _loads_object(text)
    if data is not None:
        return data

    fence = _CODE_FENCE_RE.search(text)
    if fence:
        data = _loads_object(fence.group(1).strip())
        if data is not None:
            return data

    span = _BRACE_SPAN_RE.search(text)
    if not span:
        logger.debug("No JSON object span found in model output (len=%d)", len(text))
        return None

    data = _loads_object(repair_candidate(span.group(0)))
    if data is None:
        logger.debug("JSON repair failed for model output: %s", text[:200])
    return data
