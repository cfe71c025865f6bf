import json
import logging
import uuid

from umamii.models.friendship import Friendship

logger = logging.getLogger(__name__)

REQUEST_RECEIVED = "request_received"
REQUEST_ACCEPTED = "request_accepted"
REQUEST_DECLINED = "request_declined"


def friend_channel(user_id: uuid.UUID) -> str:
    """Redis pub/sub channel a client subscribes to for its own friend events."""
    return f"friend_requests:{user_id}"


async def publish_friend_event(
    redis_client,
    to_user_id: uuid.UUID,
    event: str,
    edge: Friendship,
    from_user_id: uuid.UUID,
    status: str | None = None,
) -> int:
    """Publish a friend-request event to a user's channel.

    Call it only once the change is committed, so subscribers never hear
    about an edge that was rolled back. Returns the number of subscribers
    that received it. Delivery is best effort: a Redis failure is logged and
    reported as 0.
    """
    if redis_client is None:
        return 0

    message = json.dumps({
        "event": event,
        "edge_id": str(edge.id),
        "from_user_id": str(from_user_id),
        "status": status or edge.status,
    })
    try:
        return await redis_client.publish(friend_channel(to_user_id), message)
    except Exception:
        logger.warning(
            "Failed to publish %s event to user %s", event, to_user_id, exc_info=True
        )
        return 0


async def notify_request_received(redis_client, edge: Friendship) -> int:
    return await publish_friend_event(
        redis_client, edge.recipient_id, REQUEST_RECEIVED, edge, edge.requester_id
    )


async def notify_request_accepted(redis_client, edge: Friendship) -> int:
    return await publish_friend_event(
        redis_client, edge.requester_id, REQUEST_ACCEPTED, edge, edge.recipient_id
    )


async def notify_request_declined(redis_client, edge: Friendship) -> int:
    """Tell the requester their request was declined.

    Called after the edge is deleted, so the status is given explicitly.
    """
    return await publish_friend_event(
        redis_client,
        edge.requester_id,
        REQUEST_DECLINED,
        edge,
        edge.recipient_id,
        status="declined",
    )
