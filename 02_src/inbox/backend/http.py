"""Conversation backend speaking to the inbox HTTP API."""

import asyncio
from typing import Any, AsyncIterator

import httpx

from ..config import FEED_POLL_INTERVAL
from ..errors import BackendError
from ..logging_config import get_logger
from ..models import ConversationPage, ParticipantProfile

logger = get_logger(__name__)

VIEWER_HEADER = "X-Viewer-Id"


class HttpConversationBackend:
    """Remote conversation backend over httpx.

    The live feed polls the newest page every ``poll_interval`` seconds and
    yields a snapshot only when the page differs from the previous one.
    """

    def __init__(
        self,
        base_url: str,
        viewer_id: str,
        poll_interval: float = FEED_POLL_INTERVAL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._viewer_id = viewer_id
        self._poll_interval = poll_interval
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={VIEWER_HEADER: viewer_id},
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def list_conversations_for_user(
        self, limit: int, cursor: str | None = None, gig_id: str | None = None
    ) -> ConversationPage:
        """Fetch one page of the viewer's conversations, optionally for one gig."""
        params: dict[str, Any] = {"limit": limit}
        if cursor is not None:
            params["cursor"] = cursor
        if gig_id is not None:
            params["gigId"] = gig_id

        data = await self._request("GET", "/api/conversations", params=params)
        return ConversationPage.from_payload(data)

    async def subscribe_conversations_for_user(
        self, limit: int
    ) -> AsyncIterator[ConversationPage]:
        """Poll the newest page and yield it whenever it changes."""
        last_payload: dict | None = None
        while True:
            page = await self.list_conversations_for_user(limit)
            payload = page.to_payload()
            if payload != last_payload:
                last_payload = payload
                yield page
            await asyncio.sleep(self._poll_interval)

    async def get_public_profiles(self, user_ids: list[str]) -> list[ParticipantProfile]:
        """Resolve public profiles for the given user ids."""
        if not user_ids:
            return []

        data = await self._request(
            "POST", "/api/profiles/lookup", json={"userIds": list(user_ids)}
        )
        return [ParticipantProfile.from_payload(item) for item in data]

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise BackendError(
                f"{method} {path} failed with status {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {path} failed: {e}") from e

        logger.debug("%s %s -> %s", method, path, response.status_code)
        return response.json()
