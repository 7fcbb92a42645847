from __future__ import annotations

from fastapi import APIRouter

from cabinet.core.metrics import request_metrics, store_metrics

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.get("/app")
async def app_metrics():
    """Request latency (p50/p95), error rate, store counters and alerts."""
    out = request_metrics.snapshot()
    out["store"] = store_metrics.snapshot()
    store = out["store"]
    if store.get("lock_waits", 0) >= 10 and store.get("lock_timeouts", 0) / store["lock_waits"] > 0.05:
        out["alerts"] = list(out.get("alerts", [])) + ["profile_lock_contention"]
    return out
