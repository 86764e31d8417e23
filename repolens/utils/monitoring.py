"""Prometheus metrics for tool executions and upstream calls."""

from __future__ import annotations

from prometheus_client import Counter, Histogram, start_http_server

# Tool executions: total by tool name and status
TOOL_EXECUTIONS = Counter(
    "repolens_tool_executions_total",
    "Total tool executions",
    ["tool_name", "status"],
)

# Outbound call duration in seconds (github, ai_service, token_endpoint)
UPSTREAM_LATENCY = Histogram(
    "repolens_upstream_latency_seconds",
    "Outbound call duration in seconds",
    ["service"],
    buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0),
)

TOKEN_EXCHANGES = Counter(
    "repolens_token_exchanges_total",
    "OAuth2 client-credentials exchanges",
    ["outcome"],
)


def start_metrics_server(port: int = 9090) -> None:
    """Start Prometheus HTTP server for scraping. Call from main when enabled."""
    start_http_server(port)


def record_tool_execution(tool_name: str, success: bool) -> None:
    status = "success" if success else "failure"
    TOOL_EXECUTIONS.labels(tool_name=tool_name, status=status).inc()


def record_upstream_latency(service: str, duration_seconds: float) -> None:
    UPSTREAM_LATENCY.labels(service=service).observe(duration_seconds)


def record_token_exchange(success: bool) -> None:
    TOKEN_EXCHANGES.labels(outcome="success" if success else "failure").inc()
