"""HTTP routes."""

from analytics_pipeline.app.api.admin import router as admin_router
from analytics_pipeline.app.api.pipelines import router as pipelines_router

__all__ = ["admin_router", "pipelines_router"]
