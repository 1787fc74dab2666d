"""
Pipeline document storage.

    db/
    ├── query.py       # QueryArgs parsing and filter construction
    ├── repository.py  # PipelineRepository protocol
    ├── mongo.py       # MongoDB backend (motor)
    └── memory.py      # In-memory backend for tests and development
"""

from analytics_pipeline.db.memory import InMemoryPipelineRepository
from analytics_pipeline.db.mongo import MongoPipelineRepository
from analytics_pipeline.db.query import QueryArgs, SortSpec, build_filter, parse_order
from analytics_pipeline.db.repository import PipelineRepository

__all__ = [
    "InMemoryPipelineRepository",
    "MongoPipelineRepository",
    "PipelineRepository",
    "QueryArgs",
    "SortSpec",
    "build_filter",
    "parse_order",
]
