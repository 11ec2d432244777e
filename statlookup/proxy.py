"""
Stateless proxy handlers for the StatCan Web Data Service.

Each handler is a pure function of a ProxyEvent and returns a ProxyResponse dict:
    {"statusCode": int, "headers": {...}, "body": "<json string>" | ""}

Flow per call: method check -> parse body -> normalize + drop invalid entries ->
one upstream POST -> relay upstream JSON and status. Nothing is cached or retried.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Import modules (not bare functions) so monkeypatching in tests works correctly
import statlookup.connectors.wds_connector as _wds
import statlookup.processors.normalizer as _normalizer
from statlookup import monitoring

ProxyResponse = Dict[str, Any]

POST_ONLY = ("POST",)
GET_OR_POST = ("GET", "POST")


@dataclass
class ProxyEvent:
    http_method: str
    body: Optional[str] = None
    query: Dict[str, str] = field(default_factory=dict)


def cors_response(allow_methods: str = "POST, OPTIONS", status: int = 200) -> ProxyResponse:
    return {
        "statusCode": status,
        "headers": {
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Methods": allow_methods,
            "Access-Control-Allow-Headers": "Content-Type",
        },
        "body": "",
    }


def json_response(body: Any, status: int = 200, extra_headers: Optional[Dict[str, str]] = None) -> ProxyResponse:
    headers = {
        "Content-Type": "application/json",
        "Access-Control-Allow-Origin": "*",
    }
    if extra_headers:
        headers.update(extra_headers)
    return {"statusCode": status, "headers": headers, "body": json.dumps(body)}


def error_response(message: str, status: int, extra_headers: Optional[Dict[str, str]] = None) -> ProxyResponse:
    return json_response({"error": message}, status, extra_headers)


def _forward(handler: str, wds_method: str, payload: List[Dict[str, Any]]) -> ProxyResponse:
    monitoring.logger.info(
        "Forwarding batch to WDS",
        extra={"handler": handler, "wds_method": wds_method, "entries": len(payload)},
    )
    result = _wds.post_wds(wds_method, payload)
    return json_response(result["data"], 200 if result["ok"] else result["status_code"])


def _handle_batch(event: ProxyEvent, handler: str, wds_method: str, shape: str, id_field: str, build) -> ProxyResponse:
    try:
        method = (event.http_method or "").upper()
        if method == "OPTIONS":
            return cors_response()
        if method not in POST_ONLY:
            monitoring.inc_rejected(handler, "method")
            return error_response("Method not allowed", 405)

        body = _normalizer.safe_json(event.body)
        if not isinstance(body, list) or len(body) == 0:
            monitoring.inc_rejected(handler, "not_array")
            return error_response(f"Body must be an array of {shape}", 400)

        payload, dropped = build(body)
        monitoring.inc_dropped_entries(handler, dropped)
        if not payload:
            monitoring.inc_rejected(handler, "no_valid_ids")
            return error_response(f"No valid {id_field} in body", 400)

        return _forward(handler, wds_method, payload)
    except Exception as e:
        monitoring.logger.exception("Unexpected error in proxy handler", extra={"handler": handler})
        return error_response(str(e) or "Unexpected error", 500)


def handle_cube_metadata(event: ProxyEvent) -> ProxyResponse:
    """POST [{productId}] -> WDS getCubeMetadata."""
    return _handle_batch(
        event, "getCubeMetadata", _wds.CUBE_METADATA,
        "{productId}", "productId", _normalizer.build_cube_metadata_payload,
    )


def handle_data_from_vectors(event: ProxyEvent) -> ProxyResponse:
    """POST [{vectorId, latestN}] -> WDS getDataFromVectorsAndLatestNPeriods."""
    return _handle_batch(
        event, "getDataFromVectors", _wds.DATA_FROM_VECTORS,
        "{vectorId, latestN}", "vectorId", _normalizer.build_vector_data_payload,
    )


def handle_series_info(event: ProxyEvent) -> ProxyResponse:
    """POST [{vectorId}] -> WDS getSeriesInfoFromVector."""
    return _handle_batch(
        event, "getSeriesInfo", _wds.SERIES_INFO,
        "{vectorId}", "vectorId", _normalizer.build_series_info_payload,
    )


STATSCAN_METHODS_HEADER = {"Access-Control-Allow-Methods": "GET, POST, OPTIONS"}


def handle_statscan(event: ProxyEvent) -> ProxyResponse:
    """
    Generic vector fetch.

    GET  ?vectorIds=v86822802,v86822803&latestN=24
    POST {"vectorIds": "v86822802,86822803", "latestN": 24}

    Builds one [{vectorId, latestN}] batch with a shared latestN and forwards it to
    getDataFromVectorsAndLatestNPeriods. The raw WDS response is passed through.
    """
    handler = "statscan"
    try:
        method = (event.http_method or "").upper()
        if method == "OPTIONS":
            return cors_response("GET, POST, OPTIONS")
        if method not in GET_OR_POST:
            monitoring.inc_rejected(handler, "method")
            return error_response("Method not allowed", 405, STATSCAN_METHODS_HEADER)

        if method == "GET":
            params = event.query or {}
        else:
            body = _normalizer.safe_json(event.body)
            params = body if isinstance(body, dict) else {}

        latest_n = _normalizer.clamp_latest_n(params.get("latestN"))
        ids = _normalizer.parse_vector_id_list(params.get("vectorIds"))
        if not ids:
            monitoring.inc_rejected(handler, "no_valid_ids")
            return error_response("Provide vectorIds as comma-separated list", 400, STATSCAN_METHODS_HEADER)

        payload = [{"vectorId": vector_id, "latestN": latest_n} for vector_id in ids]
        monitoring.logger.info(
            "Forwarding batch to WDS",
            extra={"handler": handler, "wds_method": _wds.DATA_FROM_VECTORS, "entries": len(payload)},
        )
        result = _wds.post_wds(_wds.DATA_FROM_VECTORS, payload)
        if not result["ok"]:
            return json_response(
                {"error": "StatsCan error", "status": result["status_code"], "data": result["data"]},
                result["status_code"],
                STATSCAN_METHODS_HEADER,
            )
        return json_response(result["data"], 200, STATSCAN_METHODS_HEADER)
    except Exception as e:
        monitoring.logger.exception("Unexpected error in proxy handler", extra={"handler": handler})
        return error_response(str(e) or "Unexpected error", 500, STATSCAN_METHODS_HEADER)
