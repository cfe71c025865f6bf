"""Restaurants, the recommendations users write about them, and upvotes."""
import uuid

from sqlalchemy import case, delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from umamii.errors import InvalidState, NotFound
from umamii.models.recommendation import Recommendation, RecommendationUpvote
from umamii.models.restaurant import Restaurant
from umamii.models.user import User
from umamii.services.friend_service import friend_ids


def _with_details(stmt):
    return stmt.options(
        selectinload(Recommendation.restaurant),
        selectinload(Recommendation.user),
    )


async def create_restaurant(
    db: AsyncSession,
    name: str,
    address: str,
    latitude: float,
    longitude: float,
    cuisine: list[str] | None = None,
    rating: float | None = None,
    price_level: int | None = None,
    google_place_id: str | None = None,
) -> Restaurant:
    """Add a restaurant. A known Google place id returns the existing row."""
    if google_place_id:
        result = await db.execute(
            select(Restaurant).where(Restaurant.google_place_id == google_place_id)
        )
        existing = result.scalar_one_or_none()
        if existing is not None:
            return existing

    restaurant = Restaurant(
        name=name.strip(),
        address=address.strip(),
        latitude=latitude,
        longitude=longitude,
        cuisine=list(dict.fromkeys(cuisine or [])),
        rating=rating,
        price_level=price_level,
        google_place_id=google_place_id,
    )
    db.add(restaurant)
    await db.flush()
    return restaurant


async def get_restaurant(db: AsyncSession, restaurant_id: uuid.UUID) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise NotFound("Restaurant not found")
    return restaurant


async def search_restaurants(
    db: AsyncSession, query: str, limit: int = 10
) -> list[Restaurant]:
    """Search restaurants by name or address."""
    query = query.strip()
    if len(query) < 2 or limit <= 0:
        return []
    pattern = f"%{query}%"
    result = await db.execute(
        select(Restaurant)
        .where(or_(Restaurant.name.ilike(pattern), Restaurant.address.ilike(pattern)))
        .order_by(Restaurant.name, Restaurant.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_recommendation(
    db: AsyncSession, recommendation_id: uuid.UUID
) -> Recommendation:
    result = await db.execute(
        _with_details(select(Recommendation))
        .where(Recommendation.id == recommendation_id)
        .execution_options(populate_existing=True)
    )
    recommendation = result.scalar_one_or_none()
    if recommendation is None:
        raise NotFound("Recommendation not found")
    return recommendation


async def create_recommendation(
    db: AsyncSession,
    user_id: uuid.UUID,
    restaurant_id: uuid.UUID,
    personal_note: str,
    type: list[str] | None = None,
    cuisine: list[str] | None = None,
    photos: list[str] | None = None,
) -> Recommendation:
    """Recommend a restaurant and bump the author's recommendations_count."""
    await get_restaurant(db, restaurant_id)

    personal_note = personal_note.strip()
    if not personal_note:
        raise ValueError("Personal note cannot be empty")

    recommendation = Recommendation(
        restaurant_id=restaurant_id,
        user_id=user_id,
        personal_note=personal_note,
        type=list(dict.fromkeys(type or [])),
        cuisine=list(dict.fromkeys(cuisine or [])),
        photos=photos or [],
    )
    db.add(recommendation)
    await db.flush()

    await db.execute(
        update(User)
        .where(User.id == user_id)
        .values(recommendations_count=User.recommendations_count + 1)
        .execution_options(synchronize_session=False)
    )
    return await get_recommendation(db, recommendation.id)


async def list_recommendations(db: AsyncSession, limit: int = 50) -> list[Recommendation]:
    """All approved recommendations, newest first."""
    result = await db.execute(
        _with_details(select(Recommendation))
        .where(Recommendation.is_approved.is_(True))
        .order_by(Recommendation.created_at.desc(), Recommendation.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_user_recommendations(
    db: AsyncSession, user_id: uuid.UUID
) -> list[Recommendation]:
    result = await db.execute(
        _with_details(select(Recommendation))
        .where(Recommendation.user_id == user_id, Recommendation.is_approved.is_(True))
        .order_by(Recommendation.created_at.desc(), Recommendation.id)
    )
    return list(result.scalars().all())


async def friends_feed(
    db: AsyncSession, user_id: uuid.UUID, limit: int = 50
) -> list[Recommendation]:
    """Approved recommendations by the user and their accepted friends, newest first.

    Pending requests do not unlock a feed.
    """
    if limit <= 0:
        return []
    authors = [user_id, *await friend_ids(db, user_id)]
    result = await db.execute(
        _with_details(select(Recommendation))
        .where(Recommendation.user_id.in_(authors), Recommendation.is_approved.is_(True))
        .order_by(Recommendation.created_at.desc(), Recommendation.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def toggle_upvote(
    db: AsyncSession, recommendation_id: uuid.UUID, user_id: uuid.UUID
) -> tuple[bool, int]:
    """Add the user's upvote, or take it back if already given.

    Returns (upvoted, upvote count after the change).
    """
    if await db.get(Recommendation, recommendation_id) is None:
        raise NotFound("Recommendation not found")

    result = await db.execute(
        delete(RecommendationUpvote).where(
            RecommendationUpvote.recommendation_id == recommendation_id,
            RecommendationUpvote.user_id == user_id,
        )
    )
    if result.rowcount:
        upvoted = False
        new_value = case((Recommendation.upvotes > 0, Recommendation.upvotes - 1), else_=0)
    else:
        db.add(RecommendationUpvote(recommendation_id=recommendation_id, user_id=user_id))
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise InvalidState("Upvote already recorded")
        upvoted = True
        new_value = Recommendation.upvotes + 1

    await db.execute(
        update(Recommendation)
        .where(Recommendation.id == recommendation_id)
        .values(upvotes=new_value)
        .execution_options(synchronize_session=False)
    )
    count = await db.scalar(
        select(Recommendation.upvotes).where(Recommendation.id == recommendation_id)
    )
    return upvoted, count


async def user_upvotes(db: AsyncSession, user_id: uuid.UUID) -> list[uuid.UUID]:
    """Ids of the recommendations the user has upvoted, oldest upvote first."""
    result = await db.execute(
        select(RecommendationUpvote.recommendation_id)
        .where(RecommendationUpvote.user_id == user_id)
        .order_by(RecommendationUpvote.created_at, RecommendationUpvote.id)
    )
    return list(result.scalars().all())
