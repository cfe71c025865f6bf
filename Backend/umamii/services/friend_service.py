"""Friend relationship graph.

Every edge is stored once, directed from requester to recipient, with a
canonical (user_id_1 < user_id_2) copy of the pair that the database keeps
unique. Views over the graph resolve "the other side" of an edge through
counterpart_of() only.
"""
import enum
import uuid
from typing import NamedTuple

from sqlalchemy import case, delete, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from umamii.errors import (
    DuplicateRelationship,
    InvalidState,
    NotAuthorized,
    NotFound,
    SelfRelationship,
)
from umamii.models.friendship import ACCEPTED, PENDING, Friendship
from umamii.models.user import User
from umamii.services.profile_service import get_profiles


class RelationshipStatus(str, enum.Enum):
    NONE = "none"
    FRIEND = "friend"
    PENDING_SENT = "pending_sent"
    PENDING_RECEIVED = "pending_received"


class Connection(NamedTuple):
    edge: Friendship
    user: User  # the counterpart

    @property
    def counterpart_id(self) -> uuid.UUID:
        return self.user.id


def counterpart_of(edge: Friendship, user_id: uuid.UUID) -> uuid.UUID:
    """Return the user on the other side of ``edge`` relative to ``user_id``."""
    if edge.requester_id == user_id:
        return edge.recipient_id
    if edge.recipient_id == user_id:
        return edge.requester_id
    raise NotAuthorized("User is not a party to this friendship")


def _canonical_pair(user_a: uuid.UUID, user_b: uuid.UUID) -> tuple[uuid.UUID, uuid.UUID]:
    return (min(user_a, user_b), max(user_a, user_b))


def _touching(user_id: uuid.UUID):
    return or_(
        Friendship.requester_id == user_id,
        Friendship.recipient_id == user_id,
    )


async def _get_edge(db: AsyncSession, edge_id: uuid.UUID) -> Friendship:
    # Locked and re-read from the database, never served from the identity map
    result = await db.execute(
        select(Friendship)
        .where(Friendship.id == edge_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    edge = result.scalar_one_or_none()
    if edge is None:
        raise NotFound("Friend request not found")
    return edge


def _is_pair_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    # PostgreSQL names the constraint, SQLite names its columns
    return (
        "uq_friendships_pair" in message
        or "UNIQUE constraint failed: friendships.user_id_1" in message
    )


async def _adjust_friend_counts(
    db: AsyncSession, user_ids: tuple[uuid.UUID, uuid.UUID], delta: int
) -> None:
    if delta >= 0:
        new_value = User.friends_count + delta
    else:
        new_value = case(
            (User.friends_count + delta > 0, User.friends_count + delta),
            else_=0,
        )
    await db.execute(
        update(User)
        .where(User.id.in_(user_ids))
        .values(friends_count=new_value)
        .execution_options(synchronize_session=False)
    )


async def find_edge(
    db: AsyncSession, user_a: uuid.UUID, user_b: uuid.UUID
) -> Friendship | None:
    """The edge between two users in either direction, if any."""
    uid1, uid2 = _canonical_pair(user_a, user_b)
    result = await db.execute(
        select(Friendship).where(
            Friendship.user_id_1 == uid1,
            Friendship.user_id_2 == uid2,
        )
    )
    return result.scalar_one_or_none()


async def send_request(
    db: AsyncSession, requester_id: uuid.UUID, recipient_id: uuid.UUID
) -> Friendship:
    """Create a pending edge from requester to recipient."""
    if requester_id == recipient_id:
        raise SelfRelationship()

    if await db.get(User, recipient_id) is None:
        raise NotFound("User not found")

    if await find_edge(db, requester_id, recipient_id) is not None:
        raise DuplicateRelationship()

    uid1, uid2 = _canonical_pair(requester_id, recipient_id)
    edge = Friendship(
        requester_id=requester_id,
        recipient_id=recipient_id,
        user_id_1=uid1,
        user_id_2=uid2,
        status=PENDING,
    )
    db.add(edge)
    try:
        await db.flush()
    except IntegrityError as exc:
        await db.rollback()
        if not _is_pair_conflict(exc):
            raise
        # Lost a race with a concurrent request for the same pair
        raise DuplicateRelationship()
    return edge


async def accept_request(
    db: AsyncSession, edge_id: uuid.UUID, caller_id: uuid.UUID
) -> Friendship:
    """Accept a pending request. Only the recipient can accept."""
    edge = await _get_edge(db, edge_id)
    if caller_id != edge.recipient_id:
        raise NotAuthorized("Only the recipient can accept this request")
    if not edge.is_pending:
        raise InvalidState("Friend request is not pending")

    # Conditional write: a concurrent accept or decline leaves nothing to match
    result = await db.execute(
        update(Friendship)
        .where(Friendship.id == edge.id, Friendship.status == PENDING)
        .values(status=ACCEPTED)
    )
    if result.rowcount != 1:
        raise InvalidState("Friend request is not pending")
    await _adjust_friend_counts(db, (edge.requester_id, edge.recipient_id), 1)
    return edge


async def decline_request(
    db: AsyncSession, edge_id: uuid.UUID, caller_id: uuid.UUID
) -> Friendship:
    """Decline a pending request and return the deleted edge.

    Nothing is kept, so either side may send a new request right away.
    """
    edge = await _get_edge(db, edge_id)
    if caller_id != edge.recipient_id:
        raise NotAuthorized("Only the recipient can decline this request")
    if not edge.is_pending:
        raise InvalidState("Friend request is not pending")

    result = await db.execute(
        delete(Friendship).where(Friendship.id == edge.id, Friendship.status == PENDING)
    )
    if result.rowcount != 1:
        raise InvalidState("Friend request is not pending")
    return edge


async def remove_friend(
    db: AsyncSession, edge_id: uuid.UUID, caller_id: uuid.UUID
) -> Friendship:
    """Remove an accepted friendship and return the deleted edge. Either party can remove."""
    edge = await _get_edge(db, edge_id)
    if caller_id not in (edge.requester_id, edge.recipient_id):
        raise NotAuthorized("Not a party to this friendship")
    if not edge.is_accepted:
        raise InvalidState("Not friends yet")

    result = await db.execute(
        delete(Friendship).where(Friendship.id == edge.id, Friendship.status == ACCEPTED)
    )
    if result.rowcount != 1:
        # Removed by the other party in the meantime
        raise NotFound("Friend request not found")
    await _adjust_friend_counts(db, (edge.requester_id, edge.recipient_id), -1)
    return edge


async def _with_counterparts(
    db: AsyncSession, edges: list[Friendship], user_id: uuid.UUID
) -> list[Connection]:
    counterpart_ids = [counterpart_of(e, user_id) for e in edges]
    profiles = await get_profiles(db, counterpart_ids)
    return [
        Connection(edge=e, user=profiles[cid])
        for e, cid in zip(edges, counterpart_ids)
        if cid in profiles
    ]


async def list_friends(db: AsyncSession, user_id: uuid.UUID) -> list[Connection]:
    """Accepted friends, whichever side of the edge the user is on. Oldest first."""
    result = await db.execute(
        select(Friendship)
        .where(_touching(user_id), Friendship.status == ACCEPTED)
        .order_by(Friendship.created_at, Friendship.id)
    )
    return await _with_counterparts(db, list(result.scalars().all()), user_id)


async def friend_ids(db: AsyncSession, user_id: uuid.UUID) -> list[uuid.UUID]:
    result = await db.execute(
        select(Friendship).where(_touching(user_id), Friendship.status == ACCEPTED)
    )
    return [counterpart_of(e, user_id) for e in result.scalars().all()]


async def list_incoming_requests(
    db: AsyncSession, user_id: uuid.UUID
) -> list[Connection]:
    """Pending requests sent to the user, newest first."""
    result = await db.execute(
        select(Friendship)
        .where(Friendship.recipient_id == user_id, Friendship.status == PENDING)
        .order_by(Friendship.created_at.desc(), Friendship.id)
    )
    return await _with_counterparts(db, list(result.scalars().all()), user_id)


async def list_outgoing_requests(
    db: AsyncSession, user_id: uuid.UUID
) -> list[Connection]:
    """Pending requests the user has sent, newest first."""
    result = await db.execute(
        select(Friendship)
        .where(Friendship.requester_id == user_id, Friendship.status == PENDING)
        .order_by(Friendship.created_at.desc(), Friendship.id)
    )
    return await _with_counterparts(db, list(result.scalars().all()), user_id)


async def suggest_candidates(
    db: AsyncSession, user_id: uuid.UUID, limit: int = 10
) -> list[User]:
    """Users with no edge of any status to ``user_id``, most active first.

    Activity is recommendations_count + friends_count; ties go to the lower
    user id so unchanged data always yields the same order.
    """
    if limit <= 0:
        return []

    result = await db.execute(select(Friendship).where(_touching(user_id)))
    excluded = {user_id}
    excluded.update(counterpart_of(e, user_id) for e in result.scalars().all())

    activity = User.recommendations_count + User.friends_count
    result = await db.execute(
        select(User)
        .where(User.id.not_in(list(excluded)))
        .order_by(activity.desc(), User.id)
        .limit(limit)
    )
    return list(result.scalars().all())


async def relationship_status(
    db: AsyncSession, user_id: uuid.UUID, other_id: uuid.UUID
) -> RelationshipStatus:
    """Which connect action applies between ``user_id`` and ``other_id``."""
    if user_id == other_id:
        return RelationshipStatus.NONE

    edge = await find_edge(db, user_id, other_id)
    if edge is None:
        return RelationshipStatus.NONE
    if edge.is_accepted:
        return RelationshipStatus.FRIEND
    if edge.requester_id == user_id:
        return RelationshipStatus.PENDING_SENT
    return RelationshipStatus.PENDING_RECEIVED
