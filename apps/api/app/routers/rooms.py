"""Room allocation and presence endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..schemas.rooms import NewRoomResponse, RoomSnapshot
from ..services.room_tokens import allocate_room_token
from ..services.signaling import SignalingHub

router = APIRouter()


def get_hub(request: Request) -> SignalingHub:
    """FastAPI dependency returning the application's signaling hub."""

    return request.app.state.hub


@router.get("/new-room", response_model=NewRoomResponse)
async def create_room_token(hub: SignalingHub = Depends(get_hub)) -> NewRoomResponse:
    """Return a short room id for a host to share."""

    token = await allocate_room_token(hub.settings.room_token_length, frozenset(hub.store.room_ids()))
    return NewRoomResponse(room_id=token.room_id)


@router.get("/rooms/{room_id}", response_model=RoomSnapshot)
async def get_room(room_id: str, hub: SignalingHub = Depends(get_hub)) -> RoomSnapshot:
    """Return who is currently in a room."""

    snapshot = hub.room_snapshot(room_id)
    if snapshot is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Room not found")
    return RoomSnapshot.model_validate(snapshot)
