"""Row-change subscriptions over Supabase Realtime channels."""

import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

from supabase import AsyncClient, acreate_client

from fooptra.services.social import ChangeEvent, ChangeFeed, ChangeHandler, Unsubscribe

_logger = logging.getLogger(__name__)

# Realtime ignores column filters on DELETE, so deletes get their own channel.
FILTERED_EVENTS = ("INSERT", "UPDATE")


@dataclass
class SupabaseRealtimeFeed(ChangeFeed):
    """Change feed backed by postgres_changes channels."""

    url: str
    key: str
    schema: str = "public"
    _client: AsyncClient | None = field(default=None, init=False, repr=False)

    async def subscribe(
        self, table: str, column: str, value: str, handler: ChangeHandler
    ) -> Unsubscribe:
        """Subscribe to inserts and updates of rows where column equals value."""
        return await self._listen(
            f"{table}:{column}:{value}",
            table,
            handler,
            FILTERED_EVENTS,
            filter=f"{column}=eq.{value}",
        )

    async def subscribe_deletes(
        self, table: str, handler: ChangeHandler
    ) -> Unsubscribe:
        """Subscribe to every delete on the table."""
        return await self._listen(f"{table}:deletes", table, handler, ("DELETE",))

    async def close(self) -> None:
        """Drop every channel and forget the client."""
        if self._client is None:
            return
        await self._client.remove_all_channels()
        self._client = None

    async def _listen(
        self,
        prefix: str,
        table: str,
        handler: ChangeHandler,
        events: tuple[str, ...],
        **filters: str,
    ) -> Unsubscribe:
        client = await self._get_client()
        name = f"{prefix}:{uuid4().hex[:8]}"

        def on_change(payload: dict[str, Any]) -> None:
            try:
                handler(parse_change(table, payload))
            except Exception:
                _logger.exception("Change handler failed on %s", name)

        channel = client.channel(name)
        for event in events:
            channel.on_postgres_changes(
                event,
                schema=self.schema,
                table=table,
                callback=on_change,
                **filters,
            )
        await channel.subscribe()
        _logger.info("Subscribed to %s", name)

        async def unsubscribe() -> None:
            await client.remove_channel(channel)
            _logger.info("Unsubscribed from %s", name)

        return unsubscribe

    async def _get_client(self) -> AsyncClient:
        if self._client is None:
            self._client = await acreate_client(self.url, self.key)
        return self._client


def parse_change(table: str, payload: dict[str, Any]) -> ChangeEvent:
    """Normalise a postgres_changes payload."""
    data = payload.get("data", payload)
    return ChangeEvent(
        table=str(data.get("table") or table),
        event_type=str(data.get("type") or data.get("eventType") or "UNKNOWN"),
        record=dict(data.get("record") or data.get("new") or {}),
        old_record=dict(data.get("old_record") or data.get("old") or {}),
    )
