import uuid

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from umamii.config import settings
from umamii.database import get_db
from umamii.dependencies import get_current_user
from umamii.models.user import User
from umamii.schemas.friends import (
    ConnectionResponse,
    EdgeResponse,
    FriendRequestCreate,
    RelationshipStatusResponse,
)
from umamii.schemas.user import ProfileResponse
from umamii.services import friend_service, notification_service
from umamii.services.friend_service import Connection

router = APIRouter(tags=["friends"])


def _connection_response(conn: Connection) -> ConnectionResponse:
    return ConnectionResponse(
        id=conn.edge.id,
        user=ProfileResponse.model_validate(conn.user),
        status=conn.edge.status,
        since=conn.edge.created_at,
    )


@router.get("/friends", response_model=list[ConnectionResponse])
async def list_friends(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connections = await friend_service.list_friends(db, user.id)
    return [_connection_response(c) for c in connections]


@router.get("/users/{user_id}/friends", response_model=list[ConnectionResponse])
async def list_user_friends(
    user_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connections = await friend_service.list_friends(db, user_id)
    return [_connection_response(c) for c in connections]


@router.get("/friends/requests/incoming", response_model=list[ConnectionResponse])
async def incoming_requests(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connections = await friend_service.list_incoming_requests(db, user.id)
    return [_connection_response(c) for c in connections]


@router.get("/friends/requests/outgoing", response_model=list[ConnectionResponse])
async def outgoing_requests(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    connections = await friend_service.list_outgoing_requests(db, user.id)
    return [_connection_response(c) for c in connections]


@router.post("/friends/requests", response_model=EdgeResponse, status_code=201)
async def send_request(
    data: FriendRequestCreate,
    req: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    edge = await friend_service.send_request(db, user.id, data.recipient_id)
    # Subscribers only hear about committed changes
    await db.commit()
    await notification_service.notify_request_received(req.app.state.redis, edge)
    return edge


@router.post("/friends/requests/{edge_id}/accept", response_model=EdgeResponse)
async def accept_request(
    edge_id: uuid.UUID,
    req: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    edge = await friend_service.accept_request(db, edge_id, user.id)
    await db.commit()
    await notification_service.notify_request_accepted(req.app.state.redis, edge)
    return edge


@router.post("/friends/requests/{edge_id}/decline", status_code=204)
async def decline_request(
    edge_id: uuid.UUID,
    req: Request,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    edge = await friend_service.decline_request(db, edge_id, user.id)
    await db.commit()
    await notification_service.notify_request_declined(req.app.state.redis, edge)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/friends/{edge_id}", status_code=204)
async def remove_friend(
    edge_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await friend_service.remove_friend(db, edge_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/friends/suggestions", response_model=list[ProfileResponse])
async def suggestions(
    limit: int = Query(10, ge=1, le=settings.SUGGESTION_LIMIT_MAX),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await friend_service.suggest_candidates(db, user.id, limit)


@router.get("/friends/status/{other_id}", response_model=RelationshipStatusResponse)
async def relationship_status(
    other_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await friend_service.relationship_status(db, user.id, other_id)
    return {"user_id": other_id, "status": result.value}
