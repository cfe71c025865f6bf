import uuid
from collections.abc import Iterable

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from umamii.errors import NotFound
from umamii.models.user import User


async def get_profile(db: AsyncSession, user_id: uuid.UUID) -> User:
    """Get a single user profile or raise NotFound."""
    user = await db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


async def get_profiles(
    db: AsyncSession, user_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, User]:
    """Batch lookup of profiles keyed by id. Unknown ids are simply absent."""
    ids = list(set(user_ids))
    if not ids:
        return {}
    result = await db.execute(select(User).where(User.id.in_(ids)))
    return {u.id: u for u in result.scalars().all()}


async def search_users(
    db: AsyncSession, query: str, caller_id: uuid.UUID, limit: int = 10
) -> list[User]:
    """Search users by name or username (excludes the caller)."""
    query = query.strip()
    if len(query) < 2 or limit <= 0:
        return []
    pattern = f"%{query}%"
    result = await db.execute(
        select(User)
        .where(
            User.id != caller_id,
            or_(
                User.name.ilike(pattern),
                User.username.ilike(pattern),
            ),
        )
        .order_by(User.username)
        .limit(limit)
    )
    return list(result.scalars().all())


async def username_taken(
    db: AsyncSession, username: str, exclude_user_id: uuid.UUID | None = None
) -> bool:
    stmt = select(User.id).where(User.username == username)
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)
    result = await db.execute(stmt)
    return result.first() is not None


async def update_profile(db: AsyncSession, user_id: uuid.UUID, data: dict) -> User:
    """Partial profile update (profile setup and later edits).

    ``data`` holds only the fields the client sent. An explicit ``None``
    clears bio, avatar and preferences; name and username cannot be cleared.
    """
    user = await get_profile(db, user_id)

    for key in ("name", "username"):
        if key in data and data[key] is None:
            raise ValueError(f"{key.capitalize()} cannot be empty")

    username = data.get("username")
    if username is not None and username != user.username:
        if await username_taken(db, username, exclude_user_id=user.id):
            raise ValueError("Username already taken")
        user.username = username

    if "name" in data:
        name = data["name"].strip()
        if not name:
            raise ValueError("Name cannot be empty")
        user.name = name
    if "bio" in data:
        user.bio = (data["bio"] or "").strip() or None
    if "profile_picture_url" in data:
        user.profile_picture_url = data["profile_picture_url"] or None
    if "preferences" in data:
        # Keep first occurrence order, drop repeats
        user.preferences = list(dict.fromkeys(data["preferences"] or []))

    await db.flush()
    await db.refresh(user)
    return user
