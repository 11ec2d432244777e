"""
Request normalizer for the WDS proxy handlers.

Functions:
- normalize_vector_id(value) -> int | None
- normalize_product_id(value) -> int | None
- clamp_int(value, low, high, default) -> int
- safe_json(text) -> parsed JSON or None
- build_cube_metadata_payload(items) -> (payload, dropped)
- build_vector_data_payload(items) -> (payload, dropped)
- build_series_info_payload(items) -> (payload, dropped)
- parse_vector_id_list(value) -> list[int]

Identifiers are accepted as strings or numbers. A leading "v"/"V" is allowed on
vector ids ("v86822802" and "86822802" are the same series). Everything that is
not a digit is discarded before parsing. None is the invalid sentinel: callers
drop entries whose identifier normalizes to None.
"""

import json
import re
from typing import Any, Dict, List, Optional, Tuple

LATEST_N_MIN = 1
LATEST_N_MAX = 1000
LATEST_N_DEFAULT = 12

_NON_DIGITS = re.compile(r"[^0-9]")
_VECTOR_PREFIX = re.compile(r"^v", flags=re.I)
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        if value.is_integer():
            return str(int(value))
    if isinstance(value, (dict, list)):
        return None
    return str(value)


def _digits_to_int(text: str) -> Optional[int]:
    digits = _NON_DIGITS.sub("", text)
    if not digits:
        return None
    return int(digits)


def normalize_vector_id(value: Any) -> Optional[int]:
    text = _as_text(value)
    if text is None:
        return None
    return _digits_to_int(_VECTOR_PREFIX.sub("", text.strip()))


def normalize_product_id(value: Any) -> Optional[int]:
    text = _as_text(value)
    if text is None:
        return None
    return _digits_to_int(text.strip())


def clamp_int(value: Any, low: int, high: int, default: int) -> int:
    """
    Parse the leading integer of `value` (so "12abc" -> 12 and "5.7" -> 5) and
    clamp it into [low, high]. Returns `default` when nothing parses.
    """
    text = _as_text(value)
    if text is None:
        return default
    m = _LEADING_INT.match(text)
    if not m:
        return default
    return min(max(int(m.group(1)), low), high)


def clamp_latest_n(value: Any) -> int:
    return clamp_int(value, LATEST_N_MIN, LATEST_N_MAX, LATEST_N_DEFAULT)


def safe_json(text: Optional[str]) -> Any:
    """Parse a request body. Empty or malformed bodies yield None."""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


def _field(item: Any, name: str) -> Any:
    return item.get(name) if isinstance(item, dict) else None


def build_cube_metadata_payload(items: List[Any]) -> Tuple[List[Dict[str, int]], int]:
    payload = []
    for item in items:
        product_id = normalize_product_id(_field(item, "productId"))
        if product_id is not None:
            payload.append({"productId": product_id})
    return payload, len(items) - len(payload)


def build_vector_data_payload(items: List[Any]) -> Tuple[List[Dict[str, int]], int]:
    payload = []
    for item in items:
        vector_id = normalize_vector_id(_field(item, "vectorId"))
        if vector_id is not None:
            payload.append({
                "vectorId": vector_id,
                "latestN": clamp_latest_n(_field(item, "latestN")),
            })
    return payload, len(items) - len(payload)


def build_series_info_payload(items: List[Any]) -> Tuple[List[Dict[str, int]], int]:
    payload = []
    for item in items:
        vector_id = normalize_vector_id(_field(item, "vectorId"))
        if vector_id is not None:
            payload.append({"vectorId": vector_id})
    return payload, len(items) - len(payload)


def parse_vector_id_list(value: Any) -> List[int]:
    """
    Split a comma-separated vectorIds value ("v1,v2, 3") into normalized ids.
    A JSON list is joined with commas first. Blank and unparseable pieces are skipped.
    Objects, booleans and null carry no ids.
    """
    if isinstance(value, list):
        text = ",".join(_as_text(v) or "" for v in value)
    else:
        text = _as_text(value)
    if text is None:
        return []
    ids = []
    for piece in text.split(","):
        piece = piece.strip()
        if not piece:
            continue
        vector_id = normalize_vector_id(piece)
        if vector_id is not None:
            ids.append(vector_id)
    return ids
