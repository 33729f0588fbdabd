"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fooptra.api.analysis import router as analysis_router
from fooptra.api.auth import require_user
from fooptra.api.schemas import ProfileUpdate, ThemeUpdate, WasteLogCreate
from fooptra.api.social import router as social_router
from fooptra.app_logging import configure_logging
from fooptra.config import parse_allowed_origins
from fooptra.containers import AppContainer
from fooptra.domain.errors import (
    ConsistencyConflict,
    FooptraError,
    NotFoundError,
    PermissionDenied,
    RemoteOperationError,
    ResourceLimitError,
    ValidationError,
)
from fooptra.services.gamification import level_progress
from fooptra.services.stats import TimeRange
from fooptra.services.tips import search_tips

_STATUS_CODES: dict[type[FooptraError], int] = {
    ValidationError: 422,
    NotFoundError: 404,
    ResourceLimitError: 413,
    RemoteOperationError: 502,
    ConsistencyConflict: 409,
    PermissionDenied: 403,
}


def status_for(exc: FooptraError) -> int:
    """Map a domain error to its HTTP status code."""
    for error_type, code in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            return code
    return 500


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    origins = parse_allowed_origins(container.settings.allowed_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(analysis_router)
    app.include_router(social_router)

    @app.exception_handler(FooptraError)
    async def handle_domain_error(request: Request, exc: FooptraError) -> JSONResponse:
        code = status_for(exc)
        if isinstance(exc, RemoteOperationError):
            logger.error(
                "Remote operation failed on %s", request.url.path, exc_info=exc
            )
        return JSONResponse(
            status_code=code,
            content={
                "error": exc.kind,
                "message": str(exc),
                "retryable": exc.retryable,
            },
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/waste-logs", status_code=status.HTTP_201_CREATED)
    async def create_waste_log(
        body: WasteLogCreate, user_id: UUID = Depends(require_user)
    ) -> dict[str, object]:
        """Log a waste entry by hand."""
        entry = container.waste_log_service.log_manual(
            owner_id=user_id,
            category=body.category,
            quantity_grams=body.quantity,
            reason=body.reason,
            entry_date=body.date,
            notes=body.notes,
        )
        return {"entry": entry}

    @app.get("/waste-logs")
    async def list_waste_logs(
        limit: int = 100, user_id: UUID = Depends(require_user)
    ) -> dict[str, object]:
        """Return the newest entries first."""
        return {"entries": container.waste_log_service.recent(user_id, limit)}

    @app.delete("/waste-logs/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
    async def delete_waste_log(
        entry_id: UUID, user_id: UUID = Depends(require_user)
    ) -> None:
        """Delete one of the user's entries."""
        container.waste_log_service.delete(user_id, entry_id)

    @app.get("/stats/dashboard")
    async def dashboard(user_id: UUID = Depends(require_user)) -> dict[str, object]:
        """Headline totals and environmental impact."""
        return {"dashboard": container.stats_service.dashboard(user_id)}

    @app.get("/stats/analytics")
    async def analytics(
        time_range: TimeRange = TimeRange.MONTH,
        user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Analytics for a week, month, quarter or year."""
        return {"analytics": container.stats_service.analytics(user_id, time_range)}

    @app.get("/stats/goals")
    async def goals(user_id: UUID = Depends(require_user)) -> dict[str, object]:
        """Progress of the latest goals."""
        progress = container.stats_service.goal_progress(user_id)
        return {
            "goals": [
                {
                    "goal": item.goal,
                    "wasted_grams": item.wasted_grams,
                    "percent": item.percent,
                    "completed": item.completed,
                }
                for item in progress
            ]
        }

    @app.get("/profile")
    async def get_profile(user_id: UUID = Depends(require_user)) -> dict[str, object]:
        """Return the signed-in user's profile."""
        return {"profile": container.profile_service.get(user_id)}

    @app.patch("/profile")
    async def update_profile(
        body: ProfileUpdate, user_id: UUID = Depends(require_user)
    ) -> dict[str, object]:
        """Edit name, bio, location or avatar."""
        updates = body.model_dump(exclude_unset=True)
        profile = container.profile_service.update_details(user_id, updates)
        return {"profile": profile}

    @app.patch("/profile/settings")
    async def update_settings(
        updates: dict[str, object], user_id: UUID = Depends(require_user)
    ) -> dict[str, object]:
        """Merge partial settings into the stored ones."""
        profile = container.profile_service.update_settings(user_id, updates)
        return {"profile": profile}

    @app.put("/profile/theme")
    async def set_theme(
        body: ThemeUpdate, user_id: UUID = Depends(require_user)
    ) -> dict[str, object]:
        """Switch between light and dark."""
        return {"profile": container.profile_service.set_theme(user_id, body.theme)}

    @app.get("/profile/progress")
    async def progress(user_id: UUID = Depends(require_user)) -> dict[str, object]:
        """Level progress bar values."""
        profile = container.profile_service.get(user_id)
        return {"progress": level_progress(profile)}

    @app.get("/tips")
    async def tips(query: str = "", category: str = "all") -> dict[str, object]:
        """Browse the static tip catalog."""
        return {"tips": search_tips(query, category)}

    @app.get("/tips/personalised")
    async def personalised_tips(
        user_id: UUID = Depends(require_user),
    ) -> dict[str, object]:
        """Generated tips based on the user's recent waste."""
        text = await container.tips_service.personalised_tips(user_id)
        return {"tips": text}

    return app
