import os
import time

# Load .env BEFORE any statlookup imports (they read env vars at import time)
from dotenv import load_dotenv
load_dotenv(override=True)

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.concurrency import run_in_threadpool
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse, Response, PlainTextResponse

import statlookup.catalog as _catalog
import statlookup.proxy as _proxy
from statlookup import monitoring
from statlookup.schemas import LookupRequest, VectorViewRequest
from statlookup.service import LookupService

app = FastAPI(title="StatCan Lookup (WDS proxy)")

# instantiate the page service once
service = LookupService()

# ---------------------------------------------------------------------------
# Serve frontend static files
# ---------------------------------------------------------------------------
FRONTEND_DIR = os.path.join(os.path.dirname(__file__), "..", "frontend")
if os.path.isdir(FRONTEND_DIR):
    app.mount("/frontend", StaticFiles(directory=FRONTEND_DIR), name="frontend")

# Handlers answer 405 themselves, so every common method is routed to them
PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
PROXY_PATHS = {"/getCubeMetadata", "/getDataFromVectors", "/getSeriesInfo", "/statscan"}


# ---------------------------------------------------------------------------
# Metrics middleware
# ---------------------------------------------------------------------------
@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.time()
    endpoint = request.url.path
    method = request.method
    status = "500"
    try:
        response = await call_next(request)
        status = str(response.status_code)
        return response
    except Exception:
        monitoring.logger.exception("Unhandled exception in request", extra={"path": endpoint})
        raise
    finally:
        monitoring.observe_request(start, endpoint, method, status)


# Methods outside PROXY_METHODS never reach the handlers; answer them in the proxy shape
@app.exception_handler(StarletteHTTPException)
async def proxy_method_not_allowed(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405 and request.url.path in PROXY_PATHS:
        resp = _proxy.error_response("Method not allowed", 405)
        return Response(content=resp["body"], status_code=resp["statusCode"], headers=resp["headers"])
    return await http_exception_handler(request, exc)


async def _proxy_call(handler, request: Request) -> Response:
    raw = await request.body()
    event = _proxy.ProxyEvent(
        http_method=request.method,
        body=raw.decode("utf-8", errors="replace") or None,
        # first value wins for repeated keys
        query={key: request.query_params.getlist(key)[0] for key in request.query_params.keys()},
    )
    # the upstream call blocks, keep it off the event loop
    resp = await run_in_threadpool(handler, event)
    return Response(content=resp["body"], status_code=resp["statusCode"], headers=resp["headers"])


# ---------------------------------------------------------------------------
# WDS proxy endpoints
# ---------------------------------------------------------------------------
@app.api_route("/getCubeMetadata", methods=PROXY_METHODS)
async def get_cube_metadata(request: Request):
    """
    POST /getCubeMetadata
    Body: [{"productId": 18100004}, ...]
    """
    return await _proxy_call(_proxy.handle_cube_metadata, request)


@app.api_route("/getDataFromVectors", methods=PROXY_METHODS)
async def get_data_from_vectors(request: Request):
    """
    POST /getDataFromVectors
    Body: [{"vectorId": "v41690973", "latestN": 12}, ...]
    """
    return await _proxy_call(_proxy.handle_data_from_vectors, request)


@app.api_route("/getSeriesInfo", methods=PROXY_METHODS)
async def get_series_info(request: Request):
    """
    POST /getSeriesInfo
    Body: [{"vectorId": "v41690973"}, ...]
    """
    return await _proxy_call(_proxy.handle_series_info, request)


@app.api_route("/statscan", methods=PROXY_METHODS)
async def statscan(request: Request):
    """
    GET  /statscan?vectorIds=v1,v2&latestN=12
    POST /statscan  Body: {"vectorIds": "v1,v2", "latestN": 12}
    """
    return await _proxy_call(_proxy.handle_statscan, request)


# ---------------------------------------------------------------------------
# Lookup page
# ---------------------------------------------------------------------------
@app.get("/")
def index():
    page = os.path.join(FRONTEND_DIR, "index.html")
    if not os.path.isfile(page):
        return PlainTextResponse("Frontend not found", status_code=404)
    return FileResponse(page, media_type="text/html")


@app.get("/data.json")
def data_json():
    path = _catalog.data_path()
    if not path.is_file():
        return JSONResponse(status_code=404, content={"error": "data.json not found"})
    return FileResponse(path, media_type="application/json")


@app.post("/ui/lookup", response_class=HTMLResponse)
def ui_lookup(req: LookupRequest):
    return HTMLResponse(service.lookup_product(req.productId))


@app.post("/ui/vector", response_class=HTMLResponse)
def ui_vector(req: VectorViewRequest):
    return HTMLResponse(service.show_vector(req.vectorId, req.latestN, req.source))


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    if not monitoring.PROMETHEUS_ENABLED:
        return PlainTextResponse("Prometheus disabled", status_code=404)
    payload, content_type = monitoring.prometheus_metrics_response()
    return Response(content=payload, media_type=content_type)
