import json
import pytest

from statlookup.proxy import (
    ProxyEvent,
    handle_cube_metadata,
    handle_data_from_vectors,
    handle_series_info,
    handle_statscan,
)

# Patch the connector module the proxy imports
import statlookup.connectors.wds_connector as wconn

WDS_SUCCESS = [{"status": "SUCCESS", "object": {"vectorId": 41690973, "vectorDataPoint": []}}]


@pytest.fixture
def upstream(monkeypatch):
    """Record every upstream call and answer with a canned WDS response."""
    state = {"calls": [], "status": 200, "data": WDS_SUCCESS, "raise": None}

    def fake_post_wds(wds_method, payload, timeout=None):
        state["calls"].append((wds_method, payload))
        if state["raise"]:
            raise state["raise"]
        return {
            "status_code": state["status"],
            "ok": 200 <= state["status"] < 300,
            "data": state["data"],
            "metadata": {},
        }

    monkeypatch.setattr(wconn, "post_wds", fake_post_wds)
    return state


def post(body):
    return ProxyEvent(http_method="POST", body=body if isinstance(body, str) else json.dumps(body))


def test_forwards_only_valid_entries(upstream):
    resp = handle_data_from_vectors(post([
        {"vectorId": "v41690973", "latestN": 5000},
        {"vectorId": "not-a-vector"},
    ]))
    assert resp["statusCode"] == 200
    assert json.loads(resp["body"]) == WDS_SUCCESS
    assert upstream["calls"] == [
        (wconn.DATA_FROM_VECTORS, [{"vectorId": 41690973, "latestN": 1000}]),
    ]


def test_all_invalid_is_rejected_without_upstream_call(upstream):
    resp = handle_series_info(post([{"vectorId": "abc"}, {"vectorId": None}]))
    assert resp["statusCode"] == 400
    assert json.loads(resp["body"]) == {"error": "No valid vectorId in body"}
    assert upstream["calls"] == []


@pytest.mark.parametrize("body", ["{broken", "", {"productId": 1}, []])
def test_non_array_body_is_rejected(upstream, body):
    event = ProxyEvent(http_method="POST", body=body if isinstance(body, str) else json.dumps(body))
    resp = handle_cube_metadata(event)
    assert resp["statusCode"] == 400
    assert json.loads(resp["body"]) == {"error": "Body must be an array of {productId}"}
    assert upstream["calls"] == []


def test_options_preflight(upstream):
    for handler in (handle_cube_metadata, handle_data_from_vectors, handle_series_info, handle_statscan):
        resp = handler(ProxyEvent(http_method="OPTIONS"))
        assert resp["statusCode"] == 200
        assert resp["body"] == ""
        assert resp["headers"]["Access-Control-Allow-Origin"] == "*"
        assert "OPTIONS" in resp["headers"]["Access-Control-Allow-Methods"]
    assert upstream["calls"] == []


@pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
def test_per_purpose_handlers_are_post_only(upstream, method):
    resp = handle_cube_metadata(ProxyEvent(http_method=method, body='[{"productId": 1}]'))
    assert resp["statusCode"] == 405
    assert json.loads(resp["body"]) == {"error": "Method not allowed"}
    assert upstream["calls"] == []


def test_upstream_status_is_relayed(upstream):
    upstream["status"] = 404
    upstream["data"] = {"message": "not found"}
    resp = handle_cube_metadata(post([{"productId": "18100004"}]))
    assert resp["statusCode"] == 404
    assert json.loads(resp["body"]) == {"message": "not found"}


def test_upstream_exception_becomes_500(upstream):
    upstream["raise"] = wconn.WdsConnectorError("WDS request to getCubeMetadata failed: timeout")
    resp = handle_cube_metadata(post([{"productId": "18100004"}]))
    assert resp["statusCode"] == 500
    assert "timeout" in json.loads(resp["body"])["error"]


def test_json_responses_carry_cors_and_content_type(upstream):
    resp = handle_cube_metadata(post([{"productId": "18100004"}]))
    assert resp["headers"]["Content-Type"] == "application/json"
    assert resp["headers"]["Access-Control-Allow-Origin"] == "*"


def test_statscan_get_builds_shared_batch(upstream):
    event = ProxyEvent(http_method="GET", query={"vectorIds": "v86822802,86822803,junk", "latestN": "0"})
    resp = handle_statscan(event)
    assert resp["statusCode"] == 200
    assert resp["headers"]["Access-Control-Allow-Methods"] == "GET, POST, OPTIONS"
    assert upstream["calls"] == [
        (wconn.DATA_FROM_VECTORS, [
            {"vectorId": 86822802, "latestN": 1},
            {"vectorId": 86822803, "latestN": 1},
        ]),
    ]


def test_statscan_post_body(upstream):
    resp = handle_statscan(post({"vectorIds": "v1"}))
    assert resp["statusCode"] == 200
    assert upstream["calls"] == [(wconn.DATA_FROM_VECTORS, [{"vectorId": 1, "latestN": 12}])]


def test_statscan_requires_ids(upstream):
    resp = handle_statscan(ProxyEvent(http_method="GET", query={}))
    assert resp["statusCode"] == 400
    assert json.loads(resp["body"]) == {"error": "Provide vectorIds as comma-separated list"}
    assert upstream["calls"] == []


def test_statscan_wraps_upstream_error(upstream):
    upstream["status"] = 502
    upstream["data"] = {"message": "bad gateway"}
    resp = handle_statscan(ProxyEvent(http_method="GET", query={"vectorIds": "v1"}))
    assert resp["statusCode"] == 502
    assert json.loads(resp["body"]) == {
        "error": "StatsCan error",
        "status": 502,
        "data": {"message": "bad gateway"},
    }


def test_statscan_rejects_other_methods(upstream):
    resp = handle_statscan(ProxyEvent(http_method="DELETE"))
    assert resp["statusCode"] == 405
    assert upstream["calls"] == []


def test_statscan_object_vector_ids_are_rejected(upstream):
    resp = handle_statscan(post({"vectorIds": {"a": "v5"}}))
    assert resp["statusCode"] == 400
    assert json.loads(resp["body"]) == {"error": "Provide vectorIds as comma-separated list"}
    assert upstream["calls"] == []
