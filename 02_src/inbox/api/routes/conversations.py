"""Conversation API routes."""

from typing import Any

from fastapi import APIRouter, Header, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ...app import IApplication
from ...backend.http import VIEWER_HEADER
from ...config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ...errors import (
    ConversationNotFoundError,
    InvalidCursorError,
    NotParticipantError,
)
from ...models import ConversationType


class ConversationPageResponse(BaseModel):
    """Response model for one page of conversations."""

    items: list[dict[str, Any]]
    cursor: str | None
    isDone: bool


class CreateConversationRequest(BaseModel):
    """Request model for creating (or reusing) a conversation."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: ConversationType
    title: str
    participants: list[str]
    gig_id: str | None = None
    meta: dict[str, Any] | None = None


class ActivityRequest(BaseModel):
    """Request model for recording conversation activity."""

    at: int | None = None


class ConversationIdResponse(BaseModel):
    """Response model carrying a conversation id."""

    id: str


def create_conversations_router(app: IApplication) -> APIRouter:
    """Create conversations router."""
    router = APIRouter(prefix="/api/conversations", tags=["conversations"])

    @router.get("", response_model=ConversationPageResponse)
    async def list_conversations(
        viewer_id: str = Header(..., alias=VIEWER_HEADER),
        limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
        cursor: str | None = Query(None, description="Opaque pagination cursor"),
        gig_id: str | None = Query(
            None, alias="gigId", description="Only this gig's conversations"
        ),
    ) -> dict:
        """List the viewer's conversations, newest activity first."""
        try:
            page = await app.backend_for(viewer_id).list_conversations_for_user(
                limit=limit, cursor=cursor, gig_id=gig_id
            )
            return page.to_payload()
        except InvalidCursorError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.get("/{conversation_id}")
    async def get_conversation(
        conversation_id: str,
        viewer_id: str = Header(..., alias=VIEWER_HEADER),
    ) -> dict:
        """Fetch one conversation the viewer participates in."""
        try:
            conversation = await app.service.get_conversation(
                conversation_id, viewer_id=viewer_id
            )
            return conversation.to_payload()
        except ConversationNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except NotParticipantError as e:
            raise HTTPException(status_code=403, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("", response_model=ConversationIdResponse)
    async def create_conversation(
        request: CreateConversationRequest,
        viewer_id: str = Header(..., alias=VIEWER_HEADER),
    ) -> dict:
        """Create a conversation with the viewer as creator."""
        try:
            conversation = await app.service.ensure_conversation(
                creator_id=viewer_id,
                type=request.type,
                title=request.title,
                participants=request.participants,
                gig_id=request.gig_id,
                meta=request.meta,
            )
            return {"id": conversation.id}
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/{conversation_id}/activity", response_model=ConversationIdResponse)
    async def record_activity(
        conversation_id: str,
        request: ActivityRequest | None = None,
    ) -> dict:
        """Record new activity (e.g. a sent message) on a conversation."""
        try:
            at = request.at if request else None
            conversation = await app.service.record_activity(conversation_id, at=at)
            return {"id": conversation.id}
        except ConversationNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.post("/{conversation_id}/archive", response_model=ConversationIdResponse)
    async def archive_conversation(
        conversation_id: str,
        viewer_id: str = Header(..., alias=VIEWER_HEADER),
    ) -> dict:
        """Archive a conversation the viewer participates in."""
        try:
            conversation = await app.service.archive_conversation(
                conversation_id, actor_id=viewer_id
            )
            return {"id": conversation.id}
        except ConversationNotFoundError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except NotParticipantError as e:
            raise HTTPException(status_code=403, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
