"""
Shared infrastructure for the report engine

Provides:
- logging: structured logging setup and context loggers
- metrics: Prometheus metrics for report runs and reconciliation
- tracing: OpenTelemetry spans
- retry: exponential backoff for compare-and-swap conflicts
"""

__version__ = "1.0.0"
__all__ = ["logging", "metrics", "tracing", "retry"]
