# statlookup/connectors/wds_connector.py
import os
import time
import datetime
from typing import Any, Dict, List, Optional

import requests

from statlookup import monitoring

WDS_BASE_URL = os.getenv("WDS_BASE_URL", "https://www150.statcan.gc.ca/t1/wds/rest").rstrip("/")
WDS_TIMEOUT = float(os.getenv("WDS_TIMEOUT", "30"))

# WDS REST methods proxied by this service
CUBE_METADATA = "getCubeMetadata"
DATA_FROM_VECTORS = "getDataFromVectorsAndLatestNPeriods"
SERIES_INFO = "getSeriesInfoFromVector"


class WdsConnectorError(RuntimeError):
    """Raised when the Web Data Service cannot be reached."""


def wds_url(wds_method: str) -> str:
    return f"{WDS_BASE_URL}/{wds_method}"


def post_wds(
    wds_method: str,
    payload: List[Dict[str, Any]],
    timeout: Optional[float] = None,
) -> Dict[str, Any]:
    """
    POST a normalized batch to one WDS method. Makes exactly one request, no retries.

    Returns:
        {
            "status_code": int,
            "ok": bool,           # True for 2xx
            "data": <decoded JSON body>,
            "metadata": {"source": "statcan-wds", "endpoint": str, "fetched_at": ISO}
        }
    Raises WdsConnectorError on transport failure. A body that is not JSON raises
    ValueError (requests' JSONDecodeError).
    """
    url = wds_url(wds_method)
    start = time.time()
    try:
        resp = requests.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json"},
            timeout=timeout or WDS_TIMEOUT,
        )
    except requests.RequestException as e:
        monitoring.observe_upstream(start, wds_method, "transport_error")
        raise WdsConnectorError(f"WDS request to {wds_method} failed: {e}") from e

    try:
        data = resp.json()
    except ValueError:
        monitoring.observe_upstream(start, wds_method, "bad_json")
        raise

    monitoring.observe_upstream(start, wds_method, "ok" if resp.ok else f"http_{resp.status_code}")

    return {
        "status_code": resp.status_code,
        "ok": resp.ok,
        "data": data,
        "metadata": {
            "source": "statcan-wds",
            "endpoint": url,
            "fetched_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        },
    }
