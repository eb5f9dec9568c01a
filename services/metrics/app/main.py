"""
Metrics Service — FastAPI エントリーポイント

すべてのドメインイベントを受け取るシンク。イベントからメトリクスを
導出して追記するだけで、発行側には常に成功を返す。

このサービスは発行側にとってブロッキングな依存ではない。
"""

import logging
import os

from fastapi import FastAPI, Query

from ...shared.errors import install_error_handlers
from ...shared.events import EventEnvelope
from . import projections, queries
from .store import MetricStore

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))

store = MetricStore()

app = FastAPI(title="Metrics Service")
install_error_handlers(app)


@app.post("/events")
async def ingest_event(event: EventEnvelope):
    entries = projections.ingest(store, event)
    return {
        "received": True,
        "eventType": event.event_type,
        "metricsRecorded": len(entries),
    }


# ── Query Endpoints (Read 側) ────────────────────


@app.get("/metrics")
async def query_metrics(
    service: str | None = None,
    metric: str | None = None,
    limit: int = Query(100, ge=1, le=1000),
):
    entries = queries.list_metrics(store, service, metric, limit)
    return {
        "metrics": entries,
        "count": len(entries),
        "summary": queries.summarize(entries),
        "totalRecorded": len(store.metrics),
    }


@app.get("/events")
async def query_events(
    event_type: str | None = Query(None, alias="eventType"),
    limit: int = Query(100, ge=1, le=1000),
):
    events = queries.list_events(store, event_type, limit)
    return {"events": events, "count": len(events)}


@app.get("/health")
async def health():
    return {
        "status": "ok",
        "service": "metrics-service",
        "stats": {"events": len(store.events), "metrics": len(store.metrics)},
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "services.metrics.app.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "3005")),
    )
