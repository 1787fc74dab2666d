"""
Pydantic models for analytics pipeline records.

A Pipeline is a stored definition of a processing graph. The service never
executes it; it only manages the record and who may access it.

Serialization:
    Field names are snake_case in Python and camelCase on the wire and in
    stored documents (``userId``, ``createdAt``, ``flowId`` ...). Use
    ``to_document()`` / ``from_document()`` when talking to the store so both
    sides agree on the shape.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Current UTC time, truncated to the millisecond precision MongoDB keeps."""
    now = datetime.now(UTC)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


class CamelModel(BaseModel):
    """Base model with camelCase aliases; accepts either naming on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# Operator graph
# =============================================================================


class Mapping(CamelModel):
    """Destination field fed from a source field of an input topic."""

    dest: str = ""
    source: str = ""


class InputTopic(CamelModel):
    """Topic an operator consumes, with an optional filter and field mappings."""

    name: str = ""
    filter_type: str = ""
    filter_value: str = ""
    mappings: list[Mapping] = Field(default_factory=list)


class InputSelection(CamelModel):
    """Semantic selection backing an input mapping."""

    input_name: str = Field("", description="References an input mapping name")
    aspect_id: str = ""
    function_id: str = ""
    characteristic_ids: list[str] = Field(default_factory=list)
    selectable_id: str = Field("", description="Device or device group id")


class UpstreamConfig(CamelModel):
    enabled: bool = False


class DownstreamConfig(CamelModel):
    enabled: bool = False
    instance_id: str = ""
    service_id: str = ""


class Operator(CamelModel):
    """A processing node within a pipeline."""

    id: str = ""
    name: str = ""
    application_id: str | None = None
    image_id: str = ""
    deployment_type: str = ""
    operator_id: str = ""
    config: dict[str, str] = Field(default_factory=dict)
    output_topic: str = ""
    input_topics: list[InputTopic] = Field(default_factory=list)
    input_selections: list[InputSelection] = Field(default_factory=list)
    persist_data: bool = False
    cost: int = Field(0, ge=0)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    downstream: DownstreamConfig = Field(default_factory=DownstreamConfig)


# =============================================================================
# Pipeline
# =============================================================================


class Pipeline(CamelModel):
    """
    Stored pipeline definition.

    ``id``, ``user_id`` and ``created_at`` are owned by the registry: they are
    assigned on save and carried over on update regardless of the payload.
    """

    id: str = ""
    user_id: str = ""
    name: str = ""
    description: str = ""
    flow_id: str = ""
    image: str = ""
    window_time: int = 0
    merge_strategy: str = ""
    consume_all_messages: bool = False
    metrics: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
    operators: list[Operator] = Field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        """Serialize for the document store (camelCase keys, native datetimes)."""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Pipeline:
        """Build from a stored document, ignoring store-native keys like ``_id``."""
        return cls.model_validate(doc)


# =============================================================================
# Responses
# =============================================================================


class PipelineResponse(CamelModel):
    id: str


class PipelinesResponse(CamelModel):
    """One page of pipelines plus the total count before paging."""

    data: list[Pipeline] = Field(default_factory=list)
    total: int = 0


class Response(CamelModel):
    message: str = ""


class PipelineUserCount(CamelModel):
    """Number of pipelines owned by one user."""

    user_id: str
    count: int


class OperatorUsage(CamelModel):
    """Pipelines referencing one operator id."""

    operator_id: str
    count: int
    pipeline_ids: list[str] = Field(default_factory=list)
