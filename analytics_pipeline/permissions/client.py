"""
HTTP client for the permission service (permissions-v2 API).

Usage:
    async with PermissionsV2Client(PermissionsConfig(base_url="http://permv2:8080")) as perm:
        allowed = await perm.check_permission(token, PIPELINE_TOPIC, pipeline_id, Capability.READ)
        ids = await perm.list_accessible_resource_ids(token, PIPELINE_TOPIC, Capability.READ)

Error Strategy:
    - Timeouts and network errors -> PermissionServiceError (no status)
    - Non-2xx responses -> PermissionServiceError with status and body
    - 2xx responses with an unreadable body -> PermissionServiceError
    - check answering 403/404 -> False (a "no", not a failure)
    - No retries: a failed call fails the request immediately
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import TypeAdapter

from analytics_pipeline.auth import bearer
from analytics_pipeline.errors import PermissionServiceError
from analytics_pipeline.permissions.schemas import (
    Capability,
    Resource,
    ResourcePermissions,
    Topic,
)

logger = logging.getLogger(__name__)

# Response bodies; the service answers null for empty lists
_CHECK_BODY = TypeAdapter(bool | None)
_ID_LIST_BODY = TypeAdapter(list[str] | None)
_RESOURCE_LIST_BODY = TypeAdapter(list[Resource] | None)


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True, slots=True)
class PermissionsConfig:
    """Configuration for the permission service client."""

    base_url: str = "http://permv2.permissions:8080"
    timeout: float = 10.0

    # Observability
    log_requests: bool = False
    log_responses: bool = False

    def __post_init__(self):
        if not self.base_url:
            raise ValueError("Permission service base URL is required")


# =============================================================================
# Client
# =============================================================================


class PermissionsV2Client:
    """
    Async client for the permission service.

    The caller's token is sent per request in the Authorization header, so
    a single client instance serves every caller.
    """

    name = "permissions"

    def __init__(self, config: PermissionsConfig):
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

    async def __aenter__(self) -> PermissionsV2Client:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # =========================================================================
    # Permission API
    # =========================================================================

    async def check_permission(
        self,
        token: str,
        topic: str,
        resource_id: str,
        capability: Capability,
    ) -> bool:
        response = await self._request(
            "GET",
            f"/check/{topic}/{resource_id}",
            token=token,
            params={"permissions": capability.value},
            tolerated=(403, 404),
        )
        if response.status_code in (403, 404):
            return False
        return bool(self._decode(response, _CHECK_BODY))

    async def list_accessible_resource_ids(
        self,
        token: str,
        topic: str,
        capability: Capability,
    ) -> set[str]:
        response = await self._request(
            "GET",
            f"/accessible/{topic}",
            token=token,
            params={"permissions": capability.value},
        )
        return set(self._decode(response, _ID_LIST_BODY) or [])

    async def set_permission(
        self,
        admin_token: str,
        topic: str,
        resource_id: str,
        permissions: ResourcePermissions,
    ) -> None:
        await self._request(
            "PUT",
            f"/manage/{topic}/{resource_id}",
            token=admin_token,
            json=permissions.model_dump(),
        )
        logger.debug(f"[permissions] Set permissions of {topic}/{resource_id}")

    async def remove_resource(self, admin_token: str, topic: str, resource_id: str) -> None:
        await self._request("DELETE", f"/manage/{topic}/{resource_id}", token=admin_token)
        logger.debug(f"[permissions] Removed {topic}/{resource_id}")

    async def list_resources(self, admin_token: str, topic: str) -> list[Resource]:
        response = await self._request("GET", f"/manage/{topic}", token=admin_token)
        return self._decode(response, _RESOURCE_LIST_BODY) or []

    async def set_topic(self, admin_token: str, topic: Topic) -> None:
        await self._request(
            "PUT",
            f"/admin/topics/{topic.id}",
            token=admin_token,
            json=topic.model_dump(),
        )
        logger.info(f"[permissions] Registered topic {topic.id}")

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        token: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        tolerated: tuple[int, ...] = (),
    ) -> httpx.Response:
        """
        Execute a single HTTP request.

        Args:
            method: HTTP method
            path: URL path (appended to base_url)
            token: Caller token, forwarded in the Authorization header
            params: Query parameters
            json: JSON body
            tolerated: Error statuses returned to the caller instead of raised

        Raises:
            PermissionServiceError: On transport failure or an error status
        """
        client = await self._get_client()

        if self.config.log_requests:
            logger.debug(f"[{self.name}] {method} {path} params={params} body={json}")

        try:
            response = await client.request(
                method=method,
                url=path,
                params=params,
                json=json,
                headers={"Authorization": bearer(token)},
            )
        except httpx.TimeoutException as e:
            raise PermissionServiceError(f"Request timeout: {e}", cause=e) from e
        except httpx.TransportError as e:
            raise PermissionServiceError(f"Network error: {e}", cause=e) from e

        if self.config.log_responses:
            logger.debug(
                f"[{self.name}] Response: status={response.status_code} "
                f"body={response.text[:500] if response.text else 'empty'}"
            )

        if response.status_code in tolerated:
            return response

        self._check_response(response, method, path)
        return response

    def _check_response(self, response: httpx.Response, method: str, path: str) -> None:
        if response.is_success:
            return

        body = response.text
        logger.warning(
            f"[{self.name}] {method} {path} failed: status={response.status_code}"
        )
        raise PermissionServiceError(
            f"Request failed: {body}",
            status_code=response.status_code,
            response_body=body,
        )

    def _decode(self, response: httpx.Response, adapter: TypeAdapter) -> Any:
        """Parse and validate a successful response body."""
        try:
            return adapter.validate_json(response.content)
        except ValueError as e:
            logger.warning(
                f"[{self.name}] Unreadable body from {response.request.url.path}: "
                f"status={response.status_code}"
            )
            raise PermissionServiceError(
                f"Invalid response body: {e}",
                status_code=response.status_code,
                response_body=response.text,
                cause=e,
            ) from e
