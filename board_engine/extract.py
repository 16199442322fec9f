"""
Board Coordinator — Response Extraction & Shape Coercion

Models wrap JSON in prose and markdown fences more often than not.
extract_json() digs out the outermost JSON value; the coerce_* helpers turn
it into GeneratedSection / GeneratedCell values, accepting the key names the
different prompt generations have used over time.

Anything that cannot be coerced raises MalformedResponseError, which the
requester retries within its normal budget.
"""

from __future__ import annotations

import json
import re
from typing import Any

from board_engine.errors import MalformedResponseError
from board_engine.types import GeneratedCell, GeneratedSection

_FENCE = re.compile(r"```(?:json|JSON)?\s*\n?(.*?)\n?```", re.DOTALL)

_TITLE_KEYS = ("title", "categoryName", "category", "name")
_CELLS_KEYS = ("cells", "questions", "items")
_PROMPT_KEYS = ("promptText", "questionText", "question", "text", "prompt")
_REVEALED_KEYS = ("revealedText", "answer", "answerText", "revealed")
_BONUS_KEYS = ("bonusFlag", "isDoubleOrNothing", "bonus")
_BOARD_WRAPPERS = ("categories", "sections", "board")


def _find_outermost(text: str) -> str:
    """Return the outermost bracket pair, respecting string literals."""
    starts = [i for i in (text.find("["), text.find("{")) if i != -1]
    if not starts:
        raise MalformedResponseError(f"No JSON found in response: {text[:200]}", raw_response=text)
    start = min(starts)
    opener = text[start]
    closer = "]" if opener == "[" else "}"

    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        c = text[i]
        if escape_next:
            escape_next = False
            continue
        if c == "\\" and in_string:
            escape_next = True
            continue
        if c == '"':
            in_string = not in_string
            continue
        if in_string:
            continue
        if c == opener:
            depth += 1
        elif c == closer:
            depth -= 1
            if depth == 0:
                return text[start:i + 1]
    return text[start:]


def extract_json(text: str | None) -> Any:
    """Parse the outermost JSON array or object out of a model response."""
    if text is None or not str(text).strip():
        raise MalformedResponseError("Empty response from provider", raw_response=text or "")
    text = str(text)

    fenced = _FENCE.search(text)
    body = fenced.group(1).strip() if fenced else text
    json_str = _find_outermost(body)

    try:
        return json.loads(json_str)
    except json.JSONDecodeError:
        pass

    # Unescaped backslashes are the usual culprit
    fixed = re.sub(r'\\(?!["\\/bfnrtu])', r"\\\\", json_str)
    try:
        return json.loads(fixed, strict=False)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            f"JSON parse failed: {e}", raw_response=text,
        ) from e


# ═══════════════════════════════════════════════════════════════════
# Coercion
# ═══════════════════════════════════════════════════════════════════

def _first(data: dict, keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _to_flag(value: Any) -> bool | None:
    """Models send flags as booleans, numbers or strings like "false"."""
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("true", "yes", "1"):
            return True
        if text in ("false", "no", "0", ""):
            return False
        return None
    return bool(value)


def coerce_cell(data: Any) -> GeneratedCell:
    if not isinstance(data, dict):
        raise MalformedResponseError(f"Expected a cell object, got {type(data).__name__}")
    prompt = _first(data, _PROMPT_KEYS)
    revealed = _first(data, _REVEALED_KEYS)
    if prompt is None or revealed is None:
        raise MalformedResponseError(f"Cell is missing text fields: {sorted(data)}")
    bonus = _first(data, _BONUS_KEYS)
    return GeneratedCell(
        prompt_text=str(prompt),
        revealed_text=str(revealed),
        bonus_flag=_to_flag(bonus),
    )


def coerce_section(data: Any) -> list[GeneratedCell]:
    """A section result is a list of cells, optionally wrapped in an object."""
    if isinstance(data, dict):
        inner = _first(data, _CELLS_KEYS)
        if inner is None:
            raise MalformedResponseError(f"Section object has no cells: {sorted(data)}")
        data = inner
    if not isinstance(data, list):
        raise MalformedResponseError(f"Expected a list of cells, got {type(data).__name__}")
    return [coerce_cell(item) for item in data]


def _coerce_board_section(data: Any, index: int) -> GeneratedSection:
    if not isinstance(data, dict):
        raise MalformedResponseError(f"Section {index} is not an object")
    title = _first(data, _TITLE_KEYS)
    cells = _first(data, _CELLS_KEYS) or []
    if not isinstance(cells, list):
        raise MalformedResponseError(f"Section {index} cells are not a list")
    return GeneratedSection(
        title=str(title) if title is not None else f"Category {index + 1}",
        cells=tuple(coerce_cell(c) for c in cells),
    )


def coerce_board(data: Any) -> list[GeneratedSection]:
    if isinstance(data, dict):
        inner = _first(data, _BOARD_WRAPPERS)
        if inner is None:
            raise MalformedResponseError(f"Board object has no sections: {sorted(data)}")
        data = inner
    if not isinstance(data, list):
        raise MalformedResponseError(f"Expected a list of sections, got {type(data).__name__}")
    return [_coerce_board_section(item, i) for i, item in enumerate(data)]
