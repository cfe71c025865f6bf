import json
import uuid

import pytest

from umamii.models.friendship import Friendship
from umamii.services.notification_service import (
    friend_channel,
    notify_request_accepted,
    notify_request_declined,
    notify_request_received,
)
from tests.conftest import FakeRedis


def _edge() -> Friendship:
    return Friendship(
        id=uuid.uuid4(),
        requester_id=uuid.uuid4(),
        recipient_id=uuid.uuid4(),
        status="pending",
    )


@pytest.mark.asyncio
async def test_request_received_goes_to_recipient():
    redis_client = FakeRedis()
    edge = _edge()

    delivered = await notify_request_received(redis_client, edge)
    assert delivered == 1

    channel, message = redis_client.published[0]
    assert channel == friend_channel(edge.recipient_id)
    payload = json.loads(message)
    assert payload == {
        "event": "request_received",
        "edge_id": str(edge.id),
        "from_user_id": str(edge.requester_id),
        "status": "pending",
    }


@pytest.mark.asyncio
async def test_accept_and_decline_go_to_requester():
    redis_client = FakeRedis()
    edge = _edge()

    await notify_request_declined(redis_client, edge)
    edge.status = "accepted"
    await notify_request_accepted(redis_client, edge)

    channels = {channel for channel, _ in redis_client.published}
    assert channels == {friend_channel(edge.requester_id)}
    events = [json.loads(m)["event"] for _, m in redis_client.published]
    assert events == ["request_declined", "request_accepted"]


@pytest.mark.asyncio
async def test_publish_failure_is_swallowed():
    class BrokenRedis(FakeRedis):
        async def publish(self, channel, message):
            raise ConnectionError("redis down")

    assert await notify_request_received(BrokenRedis(), _edge()) == 0


@pytest.mark.asyncio
async def test_no_redis_is_a_noop():
    assert await notify_request_received(None, _edge()) == 0
