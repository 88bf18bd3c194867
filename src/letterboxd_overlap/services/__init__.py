"""Service layer for business logic."""

from . import aggregation, analysis, export, groups, telemetry

__all__ = [
    "aggregation",
    "analysis",
    "export",
    "groups",
    "telemetry",
]
