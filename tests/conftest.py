"""
Pytest configuration and fixtures for analytics pipeline tests.
"""

import sys
from pathlib import Path

import pytest
from jose import jwt

# Add the repository root to path for imports
# This allows `from analytics_pipeline import ...` to work
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from analytics_pipeline.db import InMemoryPipelineRepository  # noqa: E402
from analytics_pipeline.models import (  # noqa: E402
    InputSelection,
    InputTopic,
    Mapping,
    Operator,
    Pipeline,
)
from analytics_pipeline.permissions import InMemoryPermissionClient  # noqa: E402
from analytics_pipeline.service import Registry  # noqa: E402

ADMIN_TOKEN = "internal-admin-token"


def make_token(user_id: str, roles=(), groups=()) -> str:
    """Signed JWT with the claims the service reads."""
    claims = {
        "sub": user_id,
        "realm_access": {"roles": list(roles)},
        "groups": list(groups),
    }
    return "Bearer " + jwt.encode(claims, "test-secret", algorithm="HS256")


@pytest.fixture
def token_for():
    """Factory for caller tokens."""
    return make_token


@pytest.fixture
def repository():
    """Empty in-memory pipeline store."""
    return InMemoryPipelineRepository()


@pytest.fixture
def permissions():
    """Empty in-process permission client."""
    return InMemoryPermissionClient()


@pytest.fixture
def admin_token():
    """Token the registry uses for permission-store writes."""
    return ADMIN_TOKEN


@pytest.fixture
def registry(repository, permissions, admin_token):
    """Registry wired to the in-memory collaborators."""
    return Registry(repository, permissions, admin_token=admin_token)


@pytest.fixture
def sample_pipeline():
    """A pipeline payload as a client would post it."""
    return Pipeline(
        name="temperature-alerts",
        description="Alert on sensor spikes",
        flow_id="flow-1",
        image="registry.local/pipeline:1.0",
        window_time=30,
        merge_strategy="inner",
        consume_all_messages=True,
        metrics=True,
        operators=[
            Operator(
                id="op-adder",
                name="adder",
                image_id="img-adder",
                deployment_type="cloud",
                operator_id="operator-adder",
                config={"threshold": "10"},
                output_topic="analytics-adder",
                input_topics=[
                    InputTopic(
                        name="sensors",
                        filter_type="DeviceId",
                        filter_value="device-1",
                        mappings=[Mapping(dest="value", source="value.temperature")],
                    )
                ],
                input_selections=[
                    InputSelection(
                        input_name="value",
                        aspect_id="aspect-air",
                        function_id="fn-temperature",
                        characteristic_ids=["celsius"],
                        selectable_id="device-1",
                    )
                ],
                persist_data=True,
                cost=3,
            )
        ],
    )
