"""Image analysis and review session endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TC003

from fastapi import APIRouter, Depends, File, Request, UploadFile, status

from fooptra.api.auth import require_user
from fooptra.api.schemas import ItemEdit  # noqa: TC001
from fooptra.services.review import EditBuffer, ReviewSession

if TYPE_CHECKING:
    from fooptra.containers import AppContainer
    from fooptra.services.classification import AnalysisPhase

router = APIRouter(prefix="/analysis/sessions", tags=["analysis"])


def _session(request: Request, user_id: UUID, session_id: UUID) -> ReviewSession:
    container: AppContainer = request.app.state.container
    return container.review_sessions.get(user_id, session_id)


def session_payload(session: ReviewSession) -> dict[str, object]:
    """Serialize the reviewable state of a session."""
    return {
        "id": session.id,
        "state": session.state,
        "source_image_id": session.source_image_id,
        "items": [item.model_dump(mode="json") for item in session.items],
        "editing_index": session.editing_index,
        "buffer": (
            {
                "name": session.buffer.name,
                "category": session.buffer.category,
                "quantity": session.buffer.quantity,
            }
            if session.buffer
            else None
        ),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_session(
    request: Request, user_id: UUID = Depends(require_user)
) -> dict[str, object]:
    """Open an empty review session."""
    container: AppContainer = request.app.state.container
    return session_payload(container.review_sessions.create(user_id))


@router.get("/{session_id}")
async def get_session(
    session_id: UUID, request: Request, user_id: UUID = Depends(require_user)
) -> dict[str, object]:
    """Return the current session state."""
    return session_payload(_session(request, user_id, session_id))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_session(
    session_id: UUID, request: Request, user_id: UUID = Depends(require_user)
) -> None:
    """Abandon a session and everything in it."""
    container: AppContainer = request.app.state.container
    container.review_sessions.discard(user_id, session_id)


@router.post("/{session_id}/image")
async def analyze_image(
    session_id: UUID,
    request: Request,
    image: UploadFile = File(...),
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Classify an uploaded photo into the session's item list."""
    container: AppContainer = request.app.state.container
    session = _session(request, user_id, session_id)
    image_bytes = await image.read()
    phases: list[AnalysisPhase] = []
    applied = await session.run_analysis(
        container.classification_service,
        image_bytes,
        source_image_id=image.filename,
        on_phase=phases.append,
    )
    payload = session_payload(session)
    payload["phases"] = phases
    payload["applied"] = applied
    return payload


@router.post("/{session_id}/reset")
async def reset_session(
    session_id: UUID, request: Request, user_id: UUID = Depends(require_user)
) -> dict[str, object]:
    """Clear the session, ignoring any analysis still in flight."""
    session = _session(request, user_id, session_id)
    session.reset()
    return session_payload(session)


@router.post("/{session_id}/items", status_code=status.HTTP_201_CREATED)
async def add_item(
    session_id: UUID, request: Request, user_id: UUID = Depends(require_user)
) -> dict[str, object]:
    """Append a blank item and start editing it."""
    session = _session(request, user_id, session_id)
    session.add()
    return session_payload(session)


@router.post("/{session_id}/items/{index}/edit")
async def edit_item(
    session_id: UUID,
    index: int,
    request: Request,
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Enter edit mode for one item."""
    session = _session(request, user_id, session_id)
    session.edit(index)
    return session_payload(session)


@router.put("/{session_id}/items/{index}")
async def save_item(
    session_id: UUID,
    index: int,
    body: ItemEdit,
    request: Request,
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Validate and store the edited values."""
    session = _session(request, user_id, session_id)
    session.save(
        index,
        EditBuffer(name=body.name, category=body.category, quantity=body.quantity),
    )
    return session_payload(session)


@router.post("/{session_id}/cancel-edit")
async def cancel_edit(
    session_id: UUID, request: Request, user_id: UUID = Depends(require_user)
) -> dict[str, object]:
    """Leave edit mode without saving."""
    session = _session(request, user_id, session_id)
    session.cancel()
    return session_payload(session)


@router.delete("/{session_id}/items/{index}")
async def delete_item(
    session_id: UUID,
    index: int,
    request: Request,
    user_id: UUID = Depends(require_user),
) -> dict[str, object]:
    """Remove one item from the list."""
    session = _session(request, user_id, session_id)
    session.delete(index)
    return session_payload(session)


@router.post("/{session_id}/commit", status_code=status.HTTP_201_CREATED)
async def commit_session(
    session_id: UUID, request: Request, user_id: UUID = Depends(require_user)
) -> dict[str, object]:
    """Save every reviewed item as a waste entry."""
    container: AppContainer = request.app.state.container
    session, entries = container.review_sessions.commit(user_id, session_id)
    return {"entries": entries, "session": session_payload(session)}
