"""Prometheus metrics middleware and orchestration counters."""

import time
from typing import Callable

from fastapi import Request, Response
from prometheus_client import Counter, Histogram, Gauge, generate_latest, CONTENT_TYPE_LATEST


http_requests_total = Counter(
    'forge_http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status']
)

http_request_duration_seconds = Histogram(
    'forge_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0]
)

http_requests_in_progress = Gauge(
    'forge_http_requests_in_progress',
    'HTTP requests currently in progress',
    ['method', 'endpoint']
)

plans_total = Counter(
    'forge_plans_total',
    'Plans created, by source',
    ['source']  # model | fallback
)

tasks_total = Counter(
    'forge_tasks_total',
    'Planned tasks by outcome',
    ['agent', 'status']  # completed | failed | skipped
)

files_merged_total = Counter(
    'forge_files_merged_total',
    'Generated files merged into the file registry',
    ['action']
)

generation_seconds = Histogram(
    'forge_generation_seconds',
    'Generation service call duration in seconds',
    ['purpose'],
    buckets=[1, 5, 10, 30, 60, 120, 300]
)


class MetricsMiddleware:
    """Middleware to collect Prometheus metrics."""

    async def __call__(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        # Skip metrics for /metrics endpoint itself
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        endpoint = request.url.path

        http_requests_in_progress.labels(method=method, endpoint=endpoint).inc()
        start_time = time.time()

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception:
            status_code = 500
            raise
        finally:
            duration = time.time() - start_time
            http_requests_total.labels(method=method, endpoint=endpoint, status=status_code).inc()
            http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)
            http_requests_in_progress.labels(method=method, endpoint=endpoint).dec()

        return response


def get_metrics() -> Response:
    """Get Prometheus metrics."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


# Helper functions to track orchestration metrics

def track_plan_created(source: str):
    """Track a plan built by the model or by the fallback heuristic."""
    plans_total.labels(source=source).inc()


def track_task_finished(agent: str, status: str):
    tasks_total.labels(agent=agent, status=status).inc()


def track_file_merged(action: str):
    files_merged_total.labels(action=action).inc()


def track_generation(purpose: str, duration: float):
    generation_seconds.labels(purpose=purpose).observe(duration)
