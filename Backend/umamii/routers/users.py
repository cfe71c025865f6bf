import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from umamii.config import settings
from umamii.database import get_db
from umamii.dependencies import get_current_user
from umamii.models.user import User
from umamii.schemas.user import ProfileResponse
from umamii.services import profile_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/search", response_model=list[ProfileResponse])
async def search_users(
    q: str = Query(..., max_length=100),
    limit: int = Query(10, ge=1, le=settings.SEARCH_LIMIT_MAX),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Search users by name or username (excludes self)."""
    return await profile_service.search_users(db, q, user.id, limit)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await profile_service.get_profile(db, user_id)
