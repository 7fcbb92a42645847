"""In-memory request and store counters exposed at /metrics/app."""
from __future__ import annotations

import time
from collections import deque
from threading import Lock

from starlette.requests import Request
from starlette.responses import Response


def _percentile(sorted_ms: list[float], fraction: float) -> float | None:
    if not sorted_ms:
        return None
    return round(sorted_ms[int((len(sorted_ms) - 1) * fraction)], 2)


class RequestMetrics:
    """Rolling view of business traffic.

    401s (failed logins, dead sessions) and 409s (profile lock contention)
    are counted apart from server errors.
    """

    def __init__(
        self,
        window: int = 500,
        *,
        server_error_alert: float = 0.05,
        unauthorized_alert: float = 0.30,
        latency_p95_alert_ms: float = 1500,
        min_requests_for_alerts: int = 20,
    ):
        self._lock = Lock()
        self._window = window
        self._server_error_alert = server_error_alert
        self._unauthorized_alert = unauthorized_alert
        self._latency_p95_alert_ms = latency_p95_alert_ms
        self._min_requests = min_requests_for_alerts
        self.reset()

    def record(self, duration_sec: float, status_code: int) -> None:
        with self._lock:
            self._counts["request_count"] += 1
            if status_code >= 500:
                self._counts["server_error_count"] += 1
            elif status_code == 401:
                self._counts["unauthorized_count"] += 1
            elif status_code == 409:
                self._counts["conflict_count"] += 1
            elif status_code >= 400:
                self._counts["client_error_count"] += 1
            self._latencies.append(duration_sec * 1000)

    def snapshot(self) -> dict:
        with self._lock:
            out: dict = dict(self._counts)
            latencies = sorted(self._latencies)

        total = out["request_count"]
        out["error_count"] = (
            out["server_error_count"] + out["unauthorized_count"] + out["conflict_count"] + out["client_error_count"]
        )
        out["error_rate"] = round(out["error_count"] / total, 4) if total else 0.0
        out["latency_ms_p50"] = _percentile(latencies, 0.50)
        out["latency_ms_p95"] = _percentile(latencies, 0.95)

        alerts: list[str] = []
        if total >= self._min_requests:
            if out["server_error_count"] / total >= self._server_error_alert:
                alerts.append("high_server_error_rate")
            if out["unauthorized_count"] / total >= self._unauthorized_alert:
                alerts.append("high_unauthorized_rate")
        if out["latency_ms_p95"] is not None and out["latency_ms_p95"] >= self._latency_p95_alert_ms:
            alerts.append("high_latency_p95")
        out["alerts"] = alerts
        return out

    def reset(self) -> None:
        with self._lock:
            self._counts = {
                "request_count": 0,
                "server_error_count": 0,
                "unauthorized_count": 0,
                "conflict_count": 0,
                "client_error_count": 0,
            }
            self._latencies: deque[float] = deque(maxlen=self._window)


class StoreMetrics:
    def __init__(self):
        self._lock = Lock()
        self._counts = {"hits": 0, "misses": 0, "sets": 0, "deletes": 0, "lock_waits": 0, "lock_timeouts": 0}

    def incr(self, name: str) -> None:
        with self._lock:
            self._counts[name] += 1

    def snapshot(self) -> dict:
        with self._lock:
            counts = dict(self._counts)
        gets = counts["hits"] + counts["misses"]
        counts["get_total"] = gets
        counts["hit_ratio"] = round(counts["hits"] / gets, 4) if gets else None
        return counts

    def reset(self) -> None:
        with self._lock:
            for key in self._counts:
                self._counts[key] = 0


request_metrics = RequestMetrics()
store_metrics = StoreMetrics()


async def metrics_middleware(request: Request, call_next) -> Response:
    """Record request duration and status (skips /health and /metrics)."""
    path = request.url.path
    if path == "/health" or path.startswith("/metrics"):
        return await call_next(request)
    start = time.perf_counter()
    response = await call_next(request)
    request_metrics.record(time.perf_counter() - start, response.status_code)
    return response
