import uuid
from datetime import datetime

from pydantic import BaseModel

from umamii.schemas.user import ProfileResponse


class FriendRequestCreate(BaseModel):
    recipient_id: uuid.UUID


class EdgeResponse(BaseModel):
    id: uuid.UUID
    requester_id: uuid.UUID
    recipient_id: uuid.UUID
    status: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ConnectionResponse(BaseModel):
    """An edge plus the profile of the user on the other side of it."""

    id: uuid.UUID  # edge id
    user: ProfileResponse
    status: str
    since: datetime


class RelationshipStatusResponse(BaseModel):
    user_id: uuid.UUID
    status: str
