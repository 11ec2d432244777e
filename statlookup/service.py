import json
from typing import Any, Dict, List, Optional

# Import modules (not bare functions) so monkeypatching in tests works correctly
import statlookup.catalog as _catalog
import statlookup.proxy as _proxy
from statlookup import monitoring
from statlookup import renderer


class UpstreamRequestError(RuntimeError):
    """A proxy call answered with a non-200 status."""

    def __init__(self, status: int, body: str):
        super().__init__(f"Request failed {status}: {body}")
        self.status = status
        self.body = body


class LookupService:
    """
    Server-side flow behind the lookup page. Each submission makes at most two
    sequential calls: the primary lookup, then an auxiliary metadata/series call
    whose failure is logged and left out of the page.
    """

    def __init__(self, data_path: Optional[str] = None):
        self.data_path = data_path

    def _call(self, handler, method: str, body: Any = None, query: Optional[Dict[str, str]] = None) -> Any:
        event = _proxy.ProxyEvent(
            http_method=method,
            body=json.dumps(body) if body is not None else None,
            query=query or {},
        )
        resp = handler(event)
        if resp["statusCode"] != 200:
            raise UpstreamRequestError(resp["statusCode"], resp["body"])
        return json.loads(resp["body"])

    def _auxiliary(self, label: str, handler, body: List[Dict[str, Any]], render) -> str:
        try:
            return render(self._call(handler, "POST", body))
        except Exception:
            monitoring.logger.warning("Auxiliary %s call failed", label, exc_info=True)
            return ""

    def lookup_product(self, product_id: Any) -> str:
        product_id = "" if product_id is None else str(product_id).strip()
        monitoring.logger.info("Product lookup", extra={"product_id": product_id})
        try:
            entry = _catalog.lookup_by_product_id(product_id, self.data_path)
        except _catalog.CatalogError as e:
            monitoring.logger.exception("Catalog lookup failed")
            return renderer.render_error(str(e))

        html = renderer.render_vectors(entry)
        meta = self._auxiliary(
            "cube metadata", _proxy.handle_cube_metadata,
            [{"productId": product_id}], renderer.render_cube_metadata,
        )
        return html + (f"<div>{meta}</div>" if meta else "")

    def show_vector(self, vector_id: Any, latest_n: Any = None, source: str = "vectors") -> str:
        vector_id = "" if vector_id is None else str(vector_id).strip()
        latest_n = "" if latest_n is None else str(latest_n).strip()
        monitoring.logger.info("Vector view", extra={"vector_id": vector_id, "source": source})
        try:
            if source == "statscan":
                query = {"vectorIds": vector_id}
                if latest_n:
                    query["latestN"] = latest_n
                data = self._call(_proxy.handle_statscan, "GET", query=query)
            else:
                data = self._call(
                    _proxy.handle_data_from_vectors, "POST",
                    [{"vectorId": vector_id, "latestN": latest_n or None}],
                )
        except Exception as e:
            return renderer.render_error(str(e))

        html = renderer.render_vector_data(data)
        if source == "statscan":
            return html
        info = self._auxiliary(
            "series info", _proxy.handle_series_info,
            [{"vectorId": vector_id}], renderer.render_series_info,
        )
        return html + (f"<div>{info}</div>" if info else "")
