import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from umamii.config import settings
from umamii.database import get_db
from umamii.dependencies import get_current_user
from umamii.models.recommendation import Recommendation
from umamii.models.user import User
from umamii.schemas.recommendations import (
    RecommendationCreate,
    RecommendationResponse,
    RestaurantCreate,
    RestaurantResponse,
    UpvoteResponse,
)
from umamii.services import recommendation_service

router = APIRouter(tags=["recommendations"])


async def _responses(
    db: AsyncSession, viewer_id: uuid.UUID, recommendations: list[Recommendation]
) -> list[RecommendationResponse]:
    upvoted = set(await recommendation_service.user_upvotes(db, viewer_id))
    return [
        RecommendationResponse.model_validate(r).model_copy(
            update={"has_user_upvoted": r.id in upvoted}
        )
        for r in recommendations
    ]


@router.post("/restaurants", response_model=RestaurantResponse, status_code=201)
async def create_restaurant(
    data: RestaurantCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await recommendation_service.create_restaurant(db, **data.model_dump())


@router.get("/restaurants/search", response_model=list[RestaurantResponse])
async def search_restaurants(
    q: str = Query(..., max_length=100),
    limit: int = Query(10, ge=1, le=settings.SEARCH_LIMIT_MAX),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await recommendation_service.search_restaurants(db, q, limit)


@router.get("/restaurants/{restaurant_id}", response_model=RestaurantResponse)
async def get_restaurant(
    restaurant_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await recommendation_service.get_restaurant(db, restaurant_id)


@router.post("/recommendations", response_model=RecommendationResponse, status_code=201)
async def create_recommendation(
    data: RecommendationCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    recommendation = await recommendation_service.create_recommendation(
        db, user.id, **data.model_dump()
    )
    return RecommendationResponse.model_validate(recommendation)


@router.get("/recommendations", response_model=list[RecommendationResponse])
async def list_recommendations(
    limit: int = Query(50, ge=1, le=settings.FEED_LIMIT_MAX),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    recommendations = await recommendation_service.list_recommendations(db, limit)
    return await _responses(db, user.id, recommendations)


@router.get("/recommendations/feed", response_model=list[RecommendationResponse])
async def friends_feed(
    limit: int = Query(50, ge=1, le=settings.FEED_LIMIT_MAX),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Recommendations from the caller and their friends."""
    recommendations = await recommendation_service.friends_feed(db, user.id, limit)
    return await _responses(db, user.id, recommendations)


@router.get("/recommendations/upvoted", response_model=list[uuid.UUID])
async def my_upvotes(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await recommendation_service.user_upvotes(db, user.id)


@router.get("/recommendations/{recommendation_id}", response_model=RecommendationResponse)
async def get_recommendation(
    recommendation_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    recommendation = await recommendation_service.get_recommendation(db, recommendation_id)
    return (await _responses(db, user.id, [recommendation]))[0]


@router.post("/recommendations/{recommendation_id}/upvote", response_model=UpvoteResponse)
async def toggle_upvote(
    recommendation_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    upvoted, count = await recommendation_service.toggle_upvote(
        db, recommendation_id, user.id
    )
    return UpvoteResponse(recommendation_id=recommendation_id, upvoted=upvoted, upvotes=count)


@router.get("/users/{user_id}/recommendations", response_model=list[RecommendationResponse])
async def user_recommendations(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    recommendations = await recommendation_service.list_user_recommendations(db, user_id)
    return await _responses(db, user.id, recommendations)
