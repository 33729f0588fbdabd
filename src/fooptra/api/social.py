"""Friends, user search and leaderboard endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import (
    APIRouter,
    Depends,
    Request,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from fastapi.encoders import jsonable_encoder

from fooptra.api.auth import require_user
from fooptra.api.schemas import FriendRequestCreate, RemoveFriend  # noqa: TC001
from fooptra.services.leaderboard import LeaderboardScope

if TYPE_CHECKING:
    from fooptra.containers import AppContainer
    from fooptra.services.social import FriendsSnapshot

router = APIRouter(tags=["social"])
_logger = logging.getLogger(__name__)


@router.get("/friends")
async def friends(
    request: Request, user_id: UUID = Depends(require_user)
) -> dict[str, object]:
    """Return friends with incoming and outgoing requests."""
    container: AppContainer = request.app.state.container
    snapshot = container.social_service.snapshot(user_id)
    return jsonable_encoder(snapshot)


@router.post("/friends/requests", status_code=status.HTTP_201_CREATED)
async def send_request(
    body: FriendRequestCreate,
    request: Request,
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Send a friend request; repeated requests are reported, not failed."""
    container: AppContainer = request.app.state.container
    outcome = container.social_service.send_request(user_id, body.recipient_id)
    return {"outcome": outcome}


@router.post("/friends/requests/{edge_id}/accept")
async def accept_request(
    edge_id: UUID, request: Request, user_id: UUID = Depends(require_user)
) -> dict[str, object]:
    """Accept a request addressed to the user."""
    container: AppContainer = request.app.state.container
    edge = container.social_service.accept(user_id, edge_id)
    return {"friendship": edge}


@router.post(
    "/friends/requests/{edge_id}/decline", status_code=status.HTTP_204_NO_CONTENT
)
async def decline_request(
    edge_id: UUID, request: Request, user_id: UUID = Depends(require_user)
) -> None:
    """Decline a request addressed to the user."""
    container: AppContainer = request.app.state.container
    container.social_service.decline(user_id, edge_id)


@router.delete("/friends/requests/{edge_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_request(
    edge_id: UUID, request: Request, user_id: UUID = Depends(require_user)
) -> None:
    """Withdraw a request the user sent."""
    container: AppContainer = request.app.state.container
    container.social_service.cancel_request(user_id, edge_id)


@router.post("/friends/{edge_id}/remove", status_code=status.HTTP_204_NO_CONTENT)
async def remove_friend(
    edge_id: UUID,
    body: RemoveFriend,
    request: Request,
    user_id: UUID = Depends(require_user),
) -> None:
    """Unfriend another user."""
    container: AppContainer = request.app.state.container
    container.social_service.remove(user_id, edge_id, body.other_user_id)


@router.get("/users/search")
async def search_users(
    request: Request, q: str = "", user_id: UUID = Depends(require_user)
) -> dict[str, object]:
    """Find users by name with the viewer's relationship to each."""
    container: AppContainer = request.app.state.container
    return {"results": container.social_service.search(user_id, q)}


@router.get("/leaderboard")
async def leaderboard(
    request: Request,
    scope: LeaderboardScope = LeaderboardScope.GLOBAL,
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Return the ranked board for the requested scope."""
    container: AppContainer = request.app.state.container
    view = container.leaderboard_service.board(user_id, scope)
    return {"scope": view.scope, "rows": view.rows, "viewer_rank": view.viewer_rank}


@router.websocket("/friends/ws")
async def friends_socket(websocket: WebSocket, token: str | None = None) -> None:
    """Push a fresh friends snapshot whenever a friendship row changes."""
    container: AppContainer = websocket.app.state.container
    user_id = container.identity_provider.current_user_id(token) if token else None
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    await websocket.accept()
    updates: asyncio.Queue[FriendsSnapshot] = asyncio.Queue()
    async with container.social_service.watch(
        user_id, on_change=updates.put_nowait
    ) as view:
        await websocket.send_json(jsonable_encoder(view.snapshot))
        disconnected = asyncio.create_task(_wait_for_disconnect(websocket))
        try:
            while True:
                next_update = asyncio.create_task(updates.get())
                done, _ = await asyncio.wait(
                    {next_update, disconnected},
                    return_when=asyncio.FIRST_COMPLETED,
                )
                if disconnected in done:
                    next_update.cancel()
                    break
                await websocket.send_json(jsonable_encoder(next_update.result()))
        finally:
            disconnected.cancel()
    _logger.info("Friends socket closed for %s", user_id)


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        return
