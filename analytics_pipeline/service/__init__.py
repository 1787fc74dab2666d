"""Pipeline registry service."""

from analytics_pipeline.service.registry import (
    MESSAGE_MISSING_RIGHTS,
    ReconcileReport,
    Registry,
)

__all__ = ["MESSAGE_MISSING_RIGHTS", "ReconcileReport", "Registry"]
