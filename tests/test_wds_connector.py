import pytest
import requests

# monkeypatch requests.post inside the connector module's namespace
import statlookup.connectors.wds_connector as wconn


class FakeResponse:
    def __init__(self, status_code=200, data=None, bad_json=False):
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._data = data
        self._bad_json = bad_json

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._data


def test_post_wds_success(monkeypatch):
    calls = []

    def fake_post(url, json=None, headers=None, timeout=None):
        calls.append({"url": url, "json": json, "timeout": timeout})
        return FakeResponse(200, [{"status": "SUCCESS", "object": {"vectorId": 1}}])

    monkeypatch.setattr(wconn.requests, "post", fake_post)

    res = wconn.post_wds(wconn.DATA_FROM_VECTORS, [{"vectorId": 1, "latestN": 12}])

    assert len(calls) == 1
    assert calls[0]["url"].endswith("/getDataFromVectorsAndLatestNPeriods")
    assert calls[0]["json"] == [{"vectorId": 1, "latestN": 12}]
    assert calls[0]["timeout"] == wconn.WDS_TIMEOUT
    assert res["ok"] is True
    assert res["status_code"] == 200
    assert res["data"][0]["status"] == "SUCCESS"
    assert res["metadata"]["source"] == "statcan-wds"
    assert res["metadata"]["fetched_at"] is not None


def test_post_wds_relays_non_2xx(monkeypatch):
    monkeypatch.setattr(wconn.requests, "post", lambda *a, **kw: FakeResponse(503, {"message": "down"}))
    res = wconn.post_wds(wconn.CUBE_METADATA, [{"productId": 1}])
    assert res["ok"] is False
    assert res["status_code"] == 503
    assert res["data"] == {"message": "down"}


def test_post_wds_transport_error(monkeypatch):
    def boom(*a, **kw):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(wconn.requests, "post", boom)
    with pytest.raises(wconn.WdsConnectorError) as exc:
        wconn.post_wds(wconn.SERIES_INFO, [{"vectorId": 1}])
    assert "connection refused" in str(exc.value)


def test_post_wds_bad_json_propagates(monkeypatch):
    monkeypatch.setattr(wconn.requests, "post", lambda *a, **kw: FakeResponse(200, bad_json=True))
    with pytest.raises(ValueError):
        wconn.post_wds(wconn.SERIES_INFO, [{"vectorId": 1}])
