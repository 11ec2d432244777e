"""
HTML fragment rendering for the lookup page.

Functions:
- render_vectors(entry) -> catalog entry as a list of vectors with Copy/Use buttons
- render_vector_data(payload) -> WDS data points as a Vector/RefPer/Value table
- render_series_info(payload) -> successful series records (vectorId + title)
- render_cube_metadata(payload) -> successful cube records (productId + title)
- render_error(message)

WDS responses are interpreted only enough to find SUCCESS records. Any shape that
does not match falls back to a pretty-printed <pre> of the raw JSON. Every
interpolated value goes through escape_html.
"""

import html
import json
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from statlookup.schemas import ProductLookupEntry, WdsRecord

_TH_STYLE = "text-align:left; border-bottom:1px solid #30363d; padding:6px;"


def escape_html(value: Any) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def render_json_fallback(payload: Any) -> str:
    return f"<pre>{escape_html(json.dumps(payload, indent=2, ensure_ascii=False, default=str))}</pre>"


def render_error(message: str) -> str:
    return f"<p>Error: {escape_html(message)}</p>"


def _success_records(payload: List[Any]) -> List[Dict[str, Any]]:
    records = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        try:
            rec = WdsRecord.model_validate(item)
        except ValidationError:
            continue
        if rec.status == "SUCCESS":
            records.append(rec.object or {})
    return records


def first_success_record(payload: Any) -> Optional[Dict[str, Any]]:
    """
    Return the `object` of the first SUCCESS record that carries an object payload,
    an empty one included. A bare record whose object already holds vectorDataPoint
    is accepted as-is.
    """
    if isinstance(payload, list):
        for item in payload:
            if not isinstance(item, dict):
                continue
            try:
                rec = WdsRecord.model_validate(item)
            except ValidationError:
                continue
            if rec.status == "SUCCESS" and rec.object is not None:
                return rec.object
        return None
    if isinstance(payload, dict):
        obj = payload.get("object")
        if isinstance(obj, dict) and obj.get("vectorDataPoint"):
            return obj
    return None


def render_vectors(entry: Optional[ProductLookupEntry]) -> str:
    if entry is None:
        return "<p>No match found for that Product ID.</p>"
    items = []
    for v in entry.vectors:
        vid = escape_html(v.vectorId)
        items.append(
            '<div class="item">'
            '<div class="flex">'
            f"<strong>{vid}</strong>"
            f'<button class="copy" data-copy="{vid}">Copy</button>'
            f'<button class="copy" data-fill="{vid}">Use</button>'
            "</div>"
            f'<div class="small">{escape_html(v.text)}</div>'
            "</div>"
        )
    title = f'<div class="small">{escape_html(entry.description)}</div>'
    return f'{title}<div class="list">{"".join(items)}</div>'


def render_vector_data(payload: Any) -> str:
    if payload is None or (not payload and not isinstance(payload, (list, dict))):
        return "<p>No data.</p>"

    obj = first_success_record(payload)
    if obj is None:
        return render_json_fallback(payload)

    points = obj.get("vectorDataPoint") or obj.get("vectorData") or []
    vector_label = f"v{obj['vectorId']}" if obj.get("vectorId") else ""
    if not isinstance(points, list) or len(points) == 0:
        return "<p>No datapoints returned.</p>"

    rows = []
    for point in points:
        point = point if isinstance(point, dict) else {}
        rows.append(
            f"<tr><td>{escape_html(vector_label)}</td>"
            f"<td>{escape_html(point.get('refPer') or '')}</td>"
            f"<td>{escape_html(point.get('value'))}</td></tr>"
        )

    head = "".join(f'<th style="{_TH_STYLE}">{name}</th>' for name in ("Vector", "RefPer", "Value"))
    return (
        f'<div class="small">Vector {escape_html(vector_label)}: {len(points)} rows</div>'
        '<div style="overflow:auto">'
        '<table style="width:100%; border-collapse: collapse;">'
        f"<thead><tr>{head}</tr></thead>"
        f"<tbody>{''.join(rows)}</tbody>"
        "</table></div>"
    )


def render_series_info(payload: Any) -> str:
    if not isinstance(payload, list):
        return render_json_fallback(payload)
    items = [
        f'<div class="item"><strong>v{escape_html(o.get("vectorId"))}</strong>'
        f'<div class="small">{escape_html(o.get("SeriesTitleEn") or "")}</div></div>'
        for o in _success_records(payload)
    ]
    return "".join(items) or "<p>No series info.</p>"


def render_cube_metadata(payload: Any) -> str:
    if not isinstance(payload, list):
        return render_json_fallback(payload)
    items = [
        f'<div class="item"><strong>{escape_html(o.get("productId"))}</strong>'
        f'<div class="small">{escape_html(o.get("cubeTitleEn") or "")}</div></div>'
        for o in _success_records(payload)
    ]
    return "".join(items) or "<p>No metadata.</p>"
