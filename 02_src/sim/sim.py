"""SIM implementation - hardcoded inbox scenario for testing."""

import asyncio
import random
from typing import Protocol

import httpx

from inbox.backend.http import VIEWER_HEADER
from inbox.logging_config import get_logger

logger = get_logger(__name__)

VIRTUAL_USERS = [
    {"user_id": "user_001", "name": "Alice Smith"},
    {"user_id": "user_002", "name": "Bob Jones"},
    {"user_id": "user_003", "name": "Charlie Brown"},
]

CONVERSATIONS = [
    {"creator": "user_001", "participants": ["user_002"], "type": "direct", "title": "Alice & Bob"},
    {"creator": "user_001", "participants": ["user_003"], "type": "application", "title": "Logo design gig"},
    {"creator": "user_002", "participants": ["user_001", "user_003"], "type": "contract", "title": "Website contract"},
]


class ISim(Protocol):
    """Generate inbox traffic through the HTTP API."""

    async def start(self) -> None:
        """Start hardcoded scenario."""
        ...

    async def stop(self) -> None:
        """Stop scenario."""
        ...


class Sim:
    """SIM with hardcoded scenario: profiles, conversations, then activity."""

    def __init__(
        self,
        api_url: str = "http://localhost:8000",
        rounds: int = 5,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_url = api_url
        self._rounds = rounds
        self._transport = transport
        self._running = False
        self._task: asyncio.Task | None = None
        self._client: httpx.AsyncClient | None = None

    async def start(self) -> None:
        """Start hardcoded scenario."""
        if self._running:
            return

        self._running = True
        self._client = httpx.AsyncClient(
            base_url=self._api_url, timeout=10.0, transport=self._transport
        )
        self._task = asyncio.create_task(self._run_scenario())

    async def stop(self) -> None:
        """Stop scenario."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._client:
            await self._client.aclose()
            self._client = None

    async def _run_scenario(self) -> None:
        """Run hardcoded scenario."""
        try:
            for user in VIRTUAL_USERS:
                await self._put_profile(user["user_id"], user["name"])

            conversation_ids = []
            for entry in CONVERSATIONS:
                conversation_id = await self._create_conversation(entry)
                if conversation_id:
                    conversation_ids.append(conversation_id)

            for _ in range(self._rounds):
                if not self._running or not conversation_ids:
                    break

                await self._record_activity(random.choice(conversation_ids))

                # Random delay between messages (1-3 seconds)
                await asyncio.sleep(random.uniform(1, 3))

        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("SIM scenario error: %s", e)
        finally:
            self._running = False
            logger.info("SIM scenario finished")

    async def _put_profile(self, user_id: str, name: str) -> None:
        if not self._client:
            return

        response = await self._client.put(f"/api/profiles/{user_id}", json={"name": name})
        if response.status_code != 200:
            logger.error("SIM: Error saving profile %s: %s", user_id, response.status_code)

    async def _create_conversation(self, entry: dict) -> str | None:
        if not self._client:
            return None

        response = await self._client.post(
            "/api/conversations",
            json={
                "type": entry["type"],
                "title": entry["title"],
                "participants": entry["participants"],
            },
            headers={VIEWER_HEADER: entry["creator"]},
        )
        if response.status_code != 200:
            logger.error("SIM: Error creating conversation: %s", response.status_code)
            return None

        conversation_id = response.json()["id"]
        logger.info("SIM: conversation %s -> %s", entry["title"], conversation_id)
        return conversation_id

    async def _record_activity(self, conversation_id: str) -> None:
        if not self._client:
            return

        try:
            response = await self._client.post(
                f"/api/conversations/{conversation_id}/activity", json={}
            )
            if response.status_code == 200:
                logger.info("SIM: activity on %s", conversation_id)
            else:
                logger.error("SIM: Error recording activity: %s", response.status_code)

        except httpx.HTTPError as e:
            logger.error("SIM: Failed to record activity: %s", e)
