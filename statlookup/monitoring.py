# statlookup/monitoring.py
"""
Centralized monitoring: Prometheus metrics, structured JSON logging, optional Sentry.

Env vars:
- PROMETHEUS_ENABLED (default: true)
- SENTRY_DSN (optional)
- LOG_AS_JSON (default: true)
- LOG_LEVEL (default: INFO)
- ENVIRONMENT (default: development)
"""

import os
import logging
import time
from typing import Tuple

import sentry_sdk
from prometheus_client import (
    Counter, Histogram,
    generate_latest, CONTENT_TYPE_LATEST, REGISTRY,
)
from pythonjsonlogger import jsonlogger

# --- ENV flags
PROMETHEUS_ENABLED = os.getenv("PROMETHEUS_ENABLED", "true").lower() in ("1", "true", "yes")
SENTRY_DSN = os.getenv("SENTRY_DSN", None)
LOG_AS_JSON = os.getenv("LOG_AS_JSON", "true").lower() in ("1", "true", "yes")
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


# --- Logger setup
def setup_logger(name: str = "statlookup", level: int = None) -> logging.Logger:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", "INFO")) if level is None else level
    logger = logging.getLogger(name)
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        if LOG_AS_JSON:
            fmt = jsonlogger.JsonFormatter(
                "%(asctime)s %(levelname)s %(name)s %(message)s"
            )
            handler.setFormatter(fmt)
        logger.addHandler(handler)
    return logger


logger = setup_logger()

# --- Sentry (optional)
if SENTRY_DSN:
    sentry_sdk.init(dsn=SENTRY_DSN, environment=ENVIRONMENT)
    logger.info("Sentry initialized")


# --- Prometheus metrics
REQUEST_COUNT = Counter(
    "statlookup_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status"],
)

REQUEST_LATENCY = Histogram(
    "statlookup_request_latency_seconds",
    "Request latency in seconds",
    ["endpoint"],
)

UPSTREAM_CALLS = Counter(
    "statlookup_wds_calls_total",
    "Calls made to the StatCan Web Data Service",
    ["wds_method", "outcome"],
)

UPSTREAM_LATENCY = Histogram(
    "statlookup_wds_latency_seconds",
    "Web Data Service call latency",
    ["wds_method"],
)

DROPPED_ENTRIES = Counter(
    "statlookup_dropped_entries_total",
    "Batch entries dropped because their identifier did not normalize",
    ["handler"],
)

REJECTED_REQUESTS = Counter(
    "statlookup_rejected_requests_total",
    "Proxy requests rejected before reaching the upstream",
    ["handler", "reason"],
)


# --- Helper wrappers (never crash the app)
def observe_request(start_ts: float, endpoint: str, method: str, status: str):
    try:
        REQUEST_LATENCY.labels(endpoint=endpoint).observe(time.time() - start_ts)
        REQUEST_COUNT.labels(method=method, endpoint=endpoint, status=status).inc()
    except Exception:
        pass


def observe_upstream(start_ts: float, wds_method: str, outcome: str):
    try:
        UPSTREAM_LATENCY.labels(wds_method=wds_method).observe(time.time() - start_ts)
        UPSTREAM_CALLS.labels(wds_method=wds_method, outcome=outcome).inc()
    except Exception:
        pass


def inc_dropped_entries(handler: str, count: int):
    if count <= 0:
        return
    try:
        DROPPED_ENTRIES.labels(handler=handler).inc(count)
    except Exception:
        pass


def inc_rejected(handler: str, reason: str):
    try:
        REJECTED_REQUESTS.labels(handler=handler, reason=reason).inc()
    except Exception:
        pass


def prometheus_metrics_response() -> Tuple[bytes, str]:
    """Return (body_bytes, content_type) for Prometheus scrape."""
    try:
        return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
    except Exception:
        return b"", CONTENT_TYPE_LATEST
