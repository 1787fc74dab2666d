"""
HTTP client for the analytics pipeline service.

For other services that store or read pipelines on behalf of a user. Every
call forwards the caller's token and, when given, an ``X-UserId`` header.

Usage:
    async with PipelineClient(PipelineClientConfig(base_url="http://analytics-pipeline:8000")) as api:
        pipeline_id = await api.save_pipeline(token, user_id, Pipeline(name="alerts"))
        page = await api.get_pipelines(token, user_id, limit=10, order="name")
        pipeline = await api.get_pipeline(token, user_id, pipeline_id)

Error Strategy:
    - 400 -> ValidationError
    - 401/403 -> AuthorizationError
    - 404 -> NotFoundError
    - Other error statuses, timeouts, network errors and unreadable bodies
      -> PipelineApiError
    - No retries
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import BaseModel

from analytics_pipeline.auth import bearer
from analytics_pipeline.errors import (
    AuthorizationError,
    NotFoundError,
    PipelineApiError,
    PipelineError,
    ValidationError,
)
from analytics_pipeline.models import Pipeline, PipelineResponse, PipelinesResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PipelineClientConfig:
    """Configuration for the pipeline service client."""

    base_url: str = "http://analytics-pipeline:8000"
    timeout: float = 10.0

    # Observability
    log_requests: bool = False
    log_responses: bool = False

    def __post_init__(self):
        if not self.base_url:
            raise ValueError("Pipeline service base URL is required")


class PipelineClient:
    """Async client for the pipeline and admin pipeline routes."""

    name = "pipelines"

    def __init__(self, config: PipelineClientConfig):
        self.config = config
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> PipelineClient:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Pipelines
    # =========================================================================

    async def save_pipeline(self, token: str, user_id: str, pipeline: Pipeline) -> str:
        """Store a new pipeline and return its generated id."""
        response = await self._request(
            "POST", "/pipeline", token=token, user_id=user_id, json=_body(pipeline)
        )
        return self._decode(response, PipelineResponse).id

    async def update_pipeline(self, token: str, user_id: str, pipeline: Pipeline) -> str:
        """Replace a stored pipeline; ``pipeline.id`` selects it."""
        response = await self._request(
            "PUT", "/pipeline", token=token, user_id=user_id, json=_body(pipeline)
        )
        return self._decode(response, PipelineResponse).id

    async def get_pipelines(
        self,
        token: str,
        user_id: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
        order: str | None = None,
        ascending: bool = True,
        search: str | None = None,
    ) -> PipelinesResponse:
        """Pipelines the caller owns or may read."""
        response = await self._request(
            "GET",
            "/pipeline",
            token=token,
            user_id=user_id,
            params=_list_params(limit, offset, order, ascending, search),
        )
        return self._decode(response, PipelinesResponse)

    async def get_pipelines_admin(
        self,
        token: str,
        user_id: str,
        *,
        limit: int | None = None,
        offset: int | None = None,
        order: str | None = None,
        ascending: bool = True,
        search: str | None = None,
    ) -> PipelinesResponse:
        """Every stored pipeline (admin role)."""
        response = await self._request(
            "GET",
            "/admin/pipeline",
            token=token,
            user_id=user_id,
            params=_list_params(limit, offset, order, ascending, search),
        )
        return self._decode(response, PipelinesResponse)

    async def get_pipeline(self, token: str, user_id: str, pipeline_id: str) -> Pipeline:
        response = await self._request(
            "GET", f"/pipeline/{pipeline_id}", token=token, user_id=user_id
        )
        return self._decode(response, Pipeline)

    async def delete_pipeline(self, token: str, user_id: str, pipeline_id: str) -> None:
        await self._request("DELETE", f"/pipeline/{pipeline_id}", token=token, user_id=user_id)
        logger.debug(f"[{self.name}] Deleted pipeline {pipeline_id}")

    async def delete_pipeline_admin(self, token: str, user_id: str, pipeline_id: str) -> None:
        await self._request(
            "DELETE", f"/admin/pipeline/{pipeline_id}", token=token, user_id=user_id
        )
        logger.debug(f"[{self.name}] Deleted pipeline {pipeline_id} as admin")

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: str,
        user_id: str = "",
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Execute a single HTTP request.

        Args:
            method: HTTP method
            path: URL path (appended to base_url)
            token: Caller token, forwarded in the Authorization header
            user_id: Sent as X-UserId when not empty
            params: Query parameters
            json: JSON body

        Raises:
            PipelineError: On transport failure or an error status
        """
        client = await self._get_client()

        headers = {}
        if token:
            headers["Authorization"] = bearer(token)
        if user_id:
            headers["X-UserId"] = user_id

        if self.config.log_requests:
            logger.debug(f"[{self.name}] {method} {path} params={params} body={json}")

        try:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.TimeoutException as e:
            raise PipelineApiError(f"Request timeout: {e}", cause=e) from e
        except httpx.TransportError as e:
            raise PipelineApiError(f"Network error: {e}", cause=e) from e

        if self.config.log_responses:
            logger.debug(
                f"[{self.name}] Response: status={response.status_code} "
                f"body={response.text[:500] if response.text else 'empty'}"
            )

        self._check_response(response, method, path)
        return response

    def _check_response(self, response: httpx.Response, method: str, path: str) -> None:
        """
        Raise the error matching a failed response.

        Raises:
            ValidationError: For 400
            AuthorizationError: For 401/403
            NotFoundError: For 404
            PipelineApiError: For other errors
        """
        if response.is_success:
            return

        status = response.status_code
        body = response.text
        message = _error_message(response)
        logger.warning(f"[{self.name}] {method} {path} failed: status={status}")

        error: PipelineError
        if status == 400:
            error = ValidationError(message)
        elif status in (401, 403):
            error = AuthorizationError(message)
        elif status == 404:
            error = NotFoundError(message)
        else:
            error = PipelineApiError(
                f"Request failed: {message}", status_code=status, response_body=body
            )
        raise error

    def _decode(self, response: httpx.Response, model: type[BaseModel]) -> Any:
        try:
            return model.model_validate_json(response.content)
        except ValueError as e:
            raise PipelineApiError(
                f"Invalid response body: {e}",
                status_code=response.status_code,
                response_body=response.text,
                cause=e,
            ) from e


def _body(pipeline: Pipeline) -> dict[str, Any]:
    return pipeline.model_dump(mode="json", by_alias=True, exclude_none=True)


def _list_params(
    limit: int | None,
    offset: int | None,
    order: str | None,
    ascending: bool,
    search: str | None,
) -> dict[str, Any]:
    params: dict[str, Any] = {}
    if limit is not None:
        params["limit"] = limit
    if offset is not None:
        params["offset"] = offset
    if order:
        params["order"] = f"{order}:{'asc' if ascending else 'desc'}"
    if search is not None:
        params["search"] = search
    return params


def _error_message(response: httpx.Response) -> str:
    """The ``error`` field of a JSON error body, else the raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return response.text
