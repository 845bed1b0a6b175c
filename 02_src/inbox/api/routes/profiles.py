"""Profile API routes."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from ...app import IApplication
from ...models import ParticipantProfile


class ProfileLookupRequest(BaseModel):
    """Request model for a batch profile lookup."""

    userIds: list[str]


class ProfileResponse(BaseModel):
    """Response model for a public profile."""

    id: str
    name: str
    avatarUrl: str | None = None


class SaveProfileRequest(BaseModel):
    """Request model for saving a profile."""

    name: str
    avatarUrl: str | None = None


def create_profiles_router(app: IApplication) -> APIRouter:
    """Create profiles router."""
    router = APIRouter(prefix="/api/profiles", tags=["profiles"])

    @router.post("/lookup", response_model=list[ProfileResponse])
    async def lookup_profiles(request: ProfileLookupRequest) -> list[dict]:
        """Resolve public profiles for a batch of user ids."""
        try:
            profiles = await app.storage.get_profiles(request.userIds)
            return [profile.to_payload() for profile in profiles]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @router.put("/{user_id}", response_model=ProfileResponse)
    async def save_profile(user_id: str, request: SaveProfileRequest) -> dict:
        """Create or replace a public profile."""
        try:
            profile = ParticipantProfile(
                id=user_id, name=request.name, avatar_url=request.avatarUrl
            )
            await app.service.save_profile(profile)
            return profile.to_payload()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    return router
