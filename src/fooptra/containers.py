"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from fooptra.adapters.onnx_image_classifier import OnnxClassifierLoader
from fooptra.adapters.openai_text_client import OpenAITextClient
from fooptra.adapters.supabase_friend_repository import SupabaseFriendRepository
from fooptra.adapters.supabase_goal_repository import SupabaseGoalRepository
from fooptra.adapters.supabase_identity_provider import SupabaseIdentityProvider
from fooptra.adapters.supabase_profile_repository import SupabaseProfileRepository
from fooptra.adapters.supabase_realtime_feed import SupabaseRealtimeFeed
from fooptra.adapters.supabase_waste_log_repository import (
    SupabaseWasteLogRepository,
)
from fooptra.config import Settings
from fooptra.services.classification import ClassificationService
from fooptra.services.leaderboard import LeaderboardService
from fooptra.services.profiles import IdentityProvider, ProfileService
from fooptra.services.review import ReviewSessionRegistry
from fooptra.services.social import SocialGraphService
from fooptra.services.stats import StatsService
from fooptra.services.tips import TipsService
from fooptra.services.waste_logs import WasteLogService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    identity_provider: IdentityProvider
    waste_log_service: WasteLogService
    classification_service: ClassificationService
    review_sessions: ReviewSessionRegistry
    social_service: SocialGraphService
    profile_service: ProfileService
    leaderboard_service: LeaderboardService
    stats_service: StatsService
    tips_service: TipsService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    waste_log_repository = SupabaseWasteLogRepository(supabase_client)
    friend_repository = SupabaseFriendRepository(supabase_client)
    profile_repository = SupabaseProfileRepository(supabase_client)
    goal_repository = SupabaseGoalRepository(supabase_client)
    realtime_feed = SupabaseRealtimeFeed(
        url=resolved_settings.supabase_url, key=resolved_settings.realtime_key
    )
    waste_log_service = WasteLogService(waste_log_repository)
    classification_service = ClassificationService(
        loader=OnnxClassifierLoader(
            model_path=resolved_settings.classifier_model_path,
            labels_path=resolved_settings.classifier_labels_path,
        ),
        max_image_bytes=resolved_settings.max_image_bytes,
    )
    social_service = SocialGraphService(
        friend_repository=friend_repository,
        profile_repository=profile_repository,
        change_feed=realtime_feed,
    )
    stats_service = StatsService(waste_log_repository, goal_repository)
    openai_client = OpenAITextClient.create(resolved_settings.openai_api_key)
    tips_service = TipsService(
        client=openai_client,
        stats_service=stats_service,
        model=resolved_settings.openai_model,
    )

    async def close_resources() -> None:
        await realtime_feed.close()
        await openai_client.close()

    return AppContainer(
        settings=resolved_settings,
        identity_provider=SupabaseIdentityProvider(supabase_client),
        waste_log_service=waste_log_service,
        classification_service=classification_service,
        review_sessions=ReviewSessionRegistry(waste_log_service),
        social_service=social_service,
        profile_service=ProfileService(profile_repository),
        leaderboard_service=LeaderboardService(
            profile_repository=profile_repository,
            social_service=social_service,
            limit=resolved_settings.leaderboard_limit,
        ),
        stats_service=stats_service,
        tips_service=tips_service,
        close_resources=close_resources,
    )
