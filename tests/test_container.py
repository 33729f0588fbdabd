"""Tests for container wiring."""

import asyncio

from fooptra.containers import build_container


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert container.review_sessions is not None
    assert container.leaderboard_service.limit == settings.leaderboard_limit
    assert container.tips_service.model == settings.openai_model
    asyncio.run(container.close_resources())
