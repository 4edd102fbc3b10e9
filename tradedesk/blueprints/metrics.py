"""
Prometheus metrics: request counts per endpoint and invoice save outcomes.

Under gunicorn, set PROMETHEUS_MULTIPROC_DIR so /metrics aggregates all workers.
"""
import os

from flask import Blueprint, Response, request
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, Counter, generate_latest, multiprocess

metrics_bp = Blueprint('metrics', __name__)

_MULTIPROCESS = 'PROMETHEUS_MULTIPROC_DIR' in os.environ

if _MULTIPROCESS:
    # Values live in the shared directory; collect them on every scrape.
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
    _owner = None
else:
    registry = REGISTRY
    _owner = REGISTRY

form_requests_total = Counter(
    'tradedesk_requests_total', 'Requests by endpoint and response status',
    ['method', 'endpoint', 'status'], registry=_owner,
)

invoice_saves_total = Counter(
    'invoice_saves_total', 'Invoice save attempts by document type and outcome',
    ['kind', 'status'], registry=_owner,
)


def record_save(kind: str, status: str) -> None:
    invoice_saves_total.labels(kind=kind, status=status).inc()


def setup_metrics_instrumentation(app):
    """Count every response once it is built."""

    @app.after_request
    def count_request(response):
        form_requests_total.labels(
            method=request.method,
            endpoint=request.endpoint or 'unknown',
            status=response.status_code,
        ).inc()
        return response


@metrics_bp.route('/metrics')
def metrics():
    return Response(generate_latest(registry), mimetype=CONTENT_TYPE_LATEST)
