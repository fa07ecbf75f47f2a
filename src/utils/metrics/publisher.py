"""
Prometheus exposition for the report engine.

MetricsPublisher serves a registry on /metrics for the scheduler process;
ApplicationInfo publishes the build and an uptime gauge scraped alongside
the report and reconciliation metrics.
"""

import logging
import threading
import time

from prometheus_client import REGISTRY, CollectorRegistry, Gauge, Info, start_http_server

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """Serves one registry over HTTP; starting twice is a no-op."""

    def __init__(
        self,
        port: int = 9091,
        registry: CollectorRegistry | None = None,
        address: str = "0.0.0.0",
    ):
        """
        Args:
            port: Listening port
            registry: Registry to expose (default: global REGISTRY)
            address: Interface to bind
        """
        self.port = port
        self.address = address
        self.registry = registry or REGISTRY
        self._lock = threading.Lock()
        self._serving = False

    def start(self) -> None:
        """
        Start serving /metrics in a daemon thread

        Raises:
            RuntimeError: If the port cannot be bound
        """
        with self._lock:
            if self._serving:
                logger.warning(f"Metrics already exposed on {self.address}:{self.port}")
                return

            try:
                start_http_server(self.port, addr=self.address, registry=self.registry)
            except OSError as e:
                raise RuntimeError(f"Cannot expose metrics on port {self.port}: {e}") from e

            self._serving = True

        logger.info(f"Exposing metrics on {self.address}:{self.port}/metrics")

    def is_started(self) -> bool:
        return self._serving


class ApplicationInfo:
    """Build metadata and process uptime."""

    def __init__(
        self,
        app_name: str = "report-engine",
        version: str = "1.0.0",
        registry: CollectorRegistry | None = None,
    ):
        registry = registry or REGISTRY
        self._started = time.monotonic()

        self.info = Info("report_engine_application", "Report engine build", registry=registry)
        self.info.info({"name": app_name, "version": version})

        self.uptime_seconds = Gauge(
            "report_engine_uptime_seconds",
            "Seconds since the report engine started",
            registry=registry,
        )

    def update_uptime(self) -> None:
        self.uptime_seconds.set(self.get_uptime())

    def get_uptime(self) -> float:
        return time.monotonic() - self._started
