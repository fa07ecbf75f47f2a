"""
Exception hierarchy for the report engine.

Collaborator failures (aggregation, rendering, dispatch) are caught at the
pipeline boundary and recorded on the run; configuration errors are raised
before any run starts and are never silently defaulted.
"""


class ReportEngineError(Exception):
    """Base class for all report engine errors."""


class ConfigError(ReportEngineError):
    """Malformed schedule, report settings or engine configuration."""


class AggregationError(ReportEngineError):
    """Data source failure or inconsistent data during metric computation."""


class RenderError(ReportEngineError):
    """Renderer failed or timed out while producing an artifact."""


class DispatchError(ReportEngineError):
    """Dispatcher failed or timed out while delivering artifacts."""


class NotFoundError(ReportEngineError):
    """Referenced job, run or reconciliation record does not exist."""


class StateTransitionError(ReportEngineError):
    """Requested status change is not allowed from the current status."""


class ConcurrentUpdateError(ReportEngineError):
    """Compare-and-swap update lost against a concurrent writer."""


class ReconciliationError(ReportEngineError):
    """Reconciliation record violates its transaction partition invariant."""


__all__ = [
    "ReportEngineError",
    "ConfigError",
    "AggregationError",
    "RenderError",
    "DispatchError",
    "NotFoundError",
    "StateTransitionError",
    "ConcurrentUpdateError",
    "ReconciliationError",
]
