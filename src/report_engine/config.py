"""
Engine configuration.

Business constants are kept as named module-level values; everything that
varies per deployment is read from the environment by EngineConfig.from_env().

Environment variables:
    REPORT_STATE_DIR: Directory for persisted jobs, runs and reconciliations
    REPORT_OUTPUT_DIR: Directory for rendered report artifacts
    REPORT_POLL_INTERVAL: Scheduler poll interval in seconds (default: 60)
    REPORT_MAX_WORKERS: Concurrent scheduled jobs per tick (default: 4)
    REPORT_COLLABORATOR_TIMEOUT: Render/dispatch timeout in seconds (default: 300)
    RECONCILIATION_TOLERANCE: Max absolute difference treated as reconciled (default: 1.0)
    OWNER_REVENUE_SHARE: Owner share of property revenue (default: 0.85)
    METRICS_PORT: Prometheus exporter port (default: 9091)
    OTLP_ENDPOINT: OpenTelemetry collector endpoint (default: tracing disabled)
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .errors import ConfigError

# Absolute ledger/statement difference below which a period counts as reconciled
RECONCILIATION_TOLERANCE = 1.0

# Revenue split between property owners and the management company
OWNER_REVENUE_SHARE = 0.85


def _read_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


@dataclass
class EngineConfig:
    """Runtime settings for the report and reconciliation engine."""

    state_dir: str = "./report_state"
    output_dir: str = "./report_output"
    poll_interval: int = 60
    max_workers: int = 4
    collaborator_timeout: float = 300.0
    reconciliation_tolerance: float = RECONCILIATION_TOLERANCE
    owner_revenue_share: float = OWNER_REVENUE_SHARE
    metrics_port: int = 9091
    otlp_endpoint: str | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Check value ranges

        Raises:
            ConfigError: If any setting is out of range
        """
        if self.poll_interval <= 0:
            raise ConfigError("poll_interval must be positive")
        if self.max_workers <= 0:
            raise ConfigError("max_workers must be positive")
        if self.collaborator_timeout <= 0:
            raise ConfigError("collaborator_timeout must be positive")
        if self.reconciliation_tolerance < 0:
            raise ConfigError("reconciliation_tolerance cannot be negative")
        if not 0 <= self.owner_revenue_share <= 1:
            raise ConfigError("owner_revenue_share must be between 0 and 1")

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "EngineConfig":
        """
        Build configuration from environment variables

        Args:
            env: Mapping to read from (default: os.environ)

        Returns:
            Validated EngineConfig
        """
        env = os.environ if env is None else env

        return cls(
            state_dir=env.get("REPORT_STATE_DIR", "./report_state"),
            output_dir=env.get("REPORT_OUTPUT_DIR", "./report_output"),
            poll_interval=_read_int(env, "REPORT_POLL_INTERVAL", 60),
            max_workers=_read_int(env, "REPORT_MAX_WORKERS", 4),
            collaborator_timeout=_read_float(env, "REPORT_COLLABORATOR_TIMEOUT", 300.0),
            reconciliation_tolerance=_read_float(
                env, "RECONCILIATION_TOLERANCE", RECONCILIATION_TOLERANCE
            ),
            owner_revenue_share=_read_float(env, "OWNER_REVENUE_SHARE", OWNER_REVENUE_SHARE),
            metrics_port=_read_int(env, "METRICS_PORT", 9091),
            otlp_endpoint=env.get("OTLP_ENDPOINT") or None,
        )
