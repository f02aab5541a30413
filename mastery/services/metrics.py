# -*- coding: utf-8 -*-
"""
Prometheus metrics for the automation service.

HTTP request counters plus workflow execution and action outcome counters.
Each app gets its own CollectorRegistry so test apps never collide.
"""

import time
from typing import Optional

from flask import Flask, current_app, g, has_app_context, request
from prometheus_client import CollectorRegistry, Counter, Histogram
from prometheus_client.exposition import generate_latest


def init_metrics(app: Flask) -> 'MetricsService':
    """Initialize metrics service and the /metrics endpoint."""
    service = MetricsService(enabled=app.config.get('MASTERY_METRICS_ENABLED', True))
    app.extensions['metrics'] = service

    if service.enabled:
        @app.before_request
        def _start_timer():
            g.metrics_start_time = time.time()

        @app.after_request
        def _record_request(response):
            started = getattr(g, 'metrics_start_time', None)
            duration = time.time() - started if started else 0.0
            route = request.url_rule.rule if request.url_rule else 'unmatched'
            service.record_http_request(route, request.method, response.status_code, duration)
            return response

        @app.route("/metrics")
        def metrics():
            return generate_latest(service.registry), 200, {
                'Content-Type': 'text/plain; version=0.0.4; charset=utf-8'}

    return service


def get_metrics_service() -> Optional['MetricsService']:
    """Get the metrics service instance from the current app context."""
    if has_app_context():
        return current_app.extensions.get('metrics')
    return None


class MetricsService:
    """Service for managing Prometheus metrics."""

    def __init__(self, enabled: bool = True, registry: Optional[CollectorRegistry] = None):
        self.enabled = enabled
        self.registry = registry if registry is not None else CollectorRegistry()

        if self.enabled:
            self.http_requests_total = Counter(
                "mastery_http_requests_total",
                "Total number of HTTP requests.",
                ["route", "method", "status"],
                registry=self.registry
            )
            self.http_request_duration_seconds = Histogram(
                "mastery_http_request_duration_seconds",
                "Duration of HTTP requests in seconds.",
                ["route", "method"],
                registry=self.registry
            )
            self.workflow_executions_total = Counter(
                "mastery_workflow_executions_total",
                "Workflow executions by final status.",
                ["status"],
                registry=self.registry
            )
            self.workflow_actions_total = Counter(
                "mastery_workflow_actions_total",
                "Workflow actions by type and outcome.",
                ["action", "status"],
                registry=self.registry
            )
            self.rate_limit_hits_total = Counter(
                "mastery_rate_limit_hits_total",
                "Requests rejected by the rate limiter.",
                ["endpoint"],
                registry=self.registry
            )

    def record_http_request(self, route: str, method: str, status_code: int, duration_seconds: float):
        if self.enabled:
            self.http_requests_total.labels(route=route, method=method, status=status_code).inc()
            self.http_request_duration_seconds.labels(route=route, method=method).observe(duration_seconds)

    def record_execution(self, status: str):
        if self.enabled:
            self.workflow_executions_total.labels(status=status).inc()

    def record_action(self, action: str, status: str):
        if self.enabled:
            self.workflow_actions_total.labels(action=action or 'unknown', status=status).inc()

    def record_rate_limit_hit(self, endpoint: str):
        if self.enabled:
            self.rate_limit_hits_total.labels(endpoint=endpoint or 'unknown').inc()

    def get_metrics(self) -> str:
        return generate_latest(self.registry).decode('utf-8')
