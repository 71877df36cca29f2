"""Prometheus metrics."""
from fastapi import FastAPI
from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

# Metrics
task_documents_written_total = Counter(
    "task_documents_written_total",
    "Task documents accepted by the persistence service",
    ["scope"],
)

task_documents_rejected_total = Counter(
    "task_documents_rejected_total",
    "Task documents rejected by the persistence service",
    ["reason"],
)


def setup_metrics(app: FastAPI) -> None:
    """Setup Prometheus metrics endpoint."""

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
