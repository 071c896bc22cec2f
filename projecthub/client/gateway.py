"""HTTP transport for board status changes."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from projecthub.core.access import EntityKind
from projecthub.models.entities import WorkStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GatewayResult:
    success: bool
    message: str | None = None


class HttpStatusGateway:
    """Send ``PUT /{kind}/{id}/status`` with the status as a raw JSON string.

    Never raises for HTTP or transport failures; they come back as an
    unsuccessful :class:`GatewayResult`.
    """

    def __init__(self, client: httpx.Client, *, api_prefix: str = "/api/v1") -> None:
        self.client = client
        self.api_prefix = api_prefix.rstrip("/")

    def update_status(self, kind: EntityKind, item_id: str, status: WorkStatus) -> GatewayResult:
        url = f"{self.api_prefix}/{kind.value}/{item_id}/status"
        try:
            response = self.client.put(url, json=status.value)
        except httpx.HTTPError as exc:
            logger.warning("Status update for %s %s failed in transport: %s", kind.value, item_id, exc)
            return GatewayResult(success=False, message=str(exc))

        if response.is_success:
            return GatewayResult(success=True)

        try:
            body = response.json()
        except ValueError:
            body = response.text
        detail = body.get("detail") if isinstance(body, dict) else body
        logger.info("Status update for %s %s rejected with %s", kind.value, item_id, response.status_code)
        return GatewayResult(success=False, message=str(detail) if detail else f"HTTP {response.status_code}")
