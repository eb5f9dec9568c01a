"""
Metrics Service — クエリハンドラ (Read 側)
"""

from .store import MetricEntry, MetricStore, ReceivedEvent


def list_metrics(
    store: MetricStore,
    service: str | None = None,
    metric: str | None = None,
    limit: int = 100,
) -> list[MetricEntry]:
    """条件に合うメトリクスを新しい順に返す。"""
    entries = [
        m
        for m in store.metrics
        if (service is None or m.service == service)
        and (metric is None or m.metric == metric)
    ]
    entries.sort(key=lambda m: m.timestamp, reverse=True)
    return entries[:limit]


def summarize(entries: list[MetricEntry]) -> dict[str, dict]:
    """`service.metric` ごとの count / total / avg / min / max"""
    summary: dict[str, dict] = {}
    for m in entries:
        key = f"{m.service}.{m.metric}"
        s = summary.setdefault(
            key, {"count": 0, "total": 0.0, "avg": 0.0, "min": m.value, "max": m.value}
        )
        s["count"] += 1
        s["total"] += m.value
        s["min"] = min(s["min"], m.value)
        s["max"] = max(s["max"], m.value)
        s["avg"] = s["total"] / s["count"]
    return summary


def list_events(
    store: MetricStore,
    event_type: str | None = None,
    limit: int = 100,
) -> list[ReceivedEvent]:
    events = [e for e in store.events if event_type is None or e.event_type == event_type]
    return list(reversed(events))[:limit]
