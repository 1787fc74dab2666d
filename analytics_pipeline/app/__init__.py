"""FastAPI layer: identity resolution, routes, error translation."""

from analytics_pipeline.app.main import create_app

__all__ = ["create_app"]
