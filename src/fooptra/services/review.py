"""Review workflow for correcting detected items before they are saved."""

import logging
import math
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from uuid import UUID, uuid4

from fooptra.domain.errors import (
    FooptraError,
    NotFoundError,
    RemoteOperationError,
    ValidationError,
)
from fooptra.domain.waste import (
    DetectedItem,
    NewWasteEntry,
    WasteCategory,
    WasteEntry,
    WasteReason,
)
from fooptra.services.classification import ClassificationService, PhaseCallback
from fooptra.services.waste_logs import WasteLogService

NEW_ITEM_LABEL = "New Item"
NEW_ITEM_QUANTITY = 100
MANUAL_CONFIDENCE = 100
MAX_SESSIONS_PER_OWNER = 5

_logger = logging.getLogger(__name__)


class ReviewState(StrEnum):
    """Where the workflow currently is."""

    EMPTY = "empty"
    ANALYZING = "analyzing"
    REVIEWING = "reviewing"
    EDITING = "editing"


@dataclass
class EditBuffer:
    """Raw field values typed by the user while editing an item."""

    name: str
    category: str
    quantity: object


@dataclass
class ReviewSession:
    """Transient list of detected items owned by one user."""

    owner_id: UUID
    waste_log_service: WasteLogService
    id: UUID = field(default_factory=uuid4)
    source_image_id: str | None = None
    items: list[DetectedItem] = field(default_factory=list)
    editing_index: int | None = None
    buffer: EditBuffer | None = None
    analyzing: bool = False
    _fresh_index: int | None = None
    _generation: int = 0

    @property
    def state(self) -> ReviewState:
        if self.analyzing:
            return ReviewState.ANALYZING
        if self.editing_index is not None:
            return ReviewState.EDITING
        if self.items:
            return ReviewState.REVIEWING
        return ReviewState.EMPTY

    def begin_analysis(self, source_image_id: str | None = None) -> int:
        """Start a new analysis and return its generation token."""
        self.reset()
        self.source_image_id = source_image_id
        self.analyzing = True
        return self._generation

    def apply_analysis(self, token: int, items: list[DetectedItem]) -> bool:
        """Install analysis results unless the session has moved on."""
        if token != self._generation:
            _logger.info("Discarding stale analysis result for session %s", self.id)
            return False
        self.analyzing = False
        self._exit_edit()
        self.items = list(items)
        return True

    def fail_analysis(self, token: int) -> None:
        """Leave the analyzing state after a failed attempt."""
        if token == self._generation:
            self.analyzing = False

    async def run_analysis(
        self,
        classifier: ClassificationService,
        image_bytes: bytes,
        source_image_id: str | None = None,
        on_phase: PhaseCallback | None = None,
    ) -> bool:
        """Analyze an image into this session; False when the result went stale."""
        token = self.begin_analysis(source_image_id)
        try:
            items = await classifier.analyze(image_bytes, on_phase=on_phase)
        except FooptraError:
            self.fail_analysis(token)
            raise
        return self.apply_analysis(token, items)

    def reset(self) -> None:
        """Return to the pre-analysis state, invalidating in-flight results."""
        self._generation += 1
        self.items = []
        self.source_image_id = None
        self.analyzing = False
        self._exit_edit()

    def add(self) -> int:
        """Append a default item and start editing it."""
        self._ensure_not_analyzing()
        self._ensure_not_editing()
        self.items.append(
            DetectedItem(
                label=NEW_ITEM_LABEL,
                category=WasteCategory.OTHER,
                confidence=MANUAL_CONFIDENCE,
                estimated_quantity_grams=NEW_ITEM_QUANTITY,
            )
        )
        index = len(self.items) - 1
        self.edit(index)
        self._fresh_index = index
        return index

    def edit(self, index: int) -> EditBuffer:
        """Stage a copy of the item's fields in the edit buffer."""
        self._ensure_not_analyzing()
        self._ensure_not_editing()
        item = self._item_at(index)
        self.editing_index = index
        self.buffer = EditBuffer(
            name=item.label,
            category=(item.category or WasteCategory.OTHER).value,
            quantity=item.estimated_quantity_grams,
        )
        return self.buffer

    def save(self, index: int, buffer: EditBuffer) -> DetectedItem:
        """Validate the buffer and overwrite the item in place."""
        if self.editing_index != index:
            raise ValidationError("Item is not being edited")
        self.buffer = buffer
        name = buffer.name.strip() if isinstance(buffer.name, str) else ""
        if not name:
            raise ValidationError("Name is required")
        quantity = _parse_positive_number(buffer.quantity)
        if quantity is None:
            raise ValidationError("Quantity must be a number greater than zero")
        try:
            category = WasteCategory(buffer.category)
        except ValueError as exc:
            raise ValidationError(f"Unknown category: {buffer.category!r}") from exc

        updated = self.items[index].model_copy(
            update={
                "label": name,
                "category": category,
                "estimated_quantity_grams": quantity,
            }
        )
        self.items[index] = updated
        self._exit_edit()
        return updated

    def cancel(self) -> None:
        """Leave edit mode; a never-saved added item is removed again."""
        if self.editing_index is None:
            return
        fresh = self._fresh_index
        self._exit_edit()
        if fresh is not None:
            self.delete(fresh)

    def delete(self, index: int) -> None:
        """Remove an item; removing the last one clears the session."""
        self._ensure_not_analyzing()
        self._item_at(index)
        if self.editing_index == index:
            self._exit_edit()
        elif self.editing_index is not None and self.editing_index > index:
            self.editing_index -= 1
            if self._fresh_index is not None:
                self._fresh_index -= 1
        del self.items[index]
        if not self.items:
            self.reset()

    def commit(self, today: date | None = None) -> list[WasteEntry]:
        """Save every item as a waste entry in one batch."""
        self._ensure_not_analyzing()
        if self.editing_index is not None:
            raise ValidationError("Finish editing before saving")
        if not self.items:
            raise ValidationError("Nothing to save")
        entry_date = today or date.today()
        entries = [
            NewWasteEntry(
                owner_id=self.owner_id,
                category=item.category or WasteCategory.OTHER,
                quantity_grams=item.estimated_quantity_grams,
                reason=WasteReason.ANALYZED_FROM_IMAGE,
                date=entry_date,
                notes=(
                    f"AI detected: {item.label} "
                    f"({round(item.confidence)}% confidence)"
                ),
                source_image_id=self.source_image_id,
                ai_analyzed=True,
            )
            for item in self.items
        ]
        try:
            saved = self.waste_log_service.log_batch(entries)
        except RemoteOperationError:
            raise
        except FooptraError as exc:
            raise RemoteOperationError("Failed to save waste logs") from exc
        _logger.info("Saved %s analyzed entries for %s", len(saved), self.owner_id)
        self.reset()
        return saved

    def _item_at(self, index: int) -> DetectedItem:
        if not 0 <= index < len(self.items):
            raise NotFoundError(f"No item at position {index}")
        return self.items[index]

    def _ensure_not_analyzing(self) -> None:
        if self.analyzing:
            raise ValidationError("Wait for the image analysis to finish")

    def _ensure_not_editing(self) -> None:
        if self.editing_index is not None:
            raise ValidationError("Finish editing the current item first")

    def _exit_edit(self) -> None:
        self.editing_index = None
        self.buffer = None
        self._fresh_index = None


@dataclass
class ReviewSessionRegistry:
    """In-process store of review sessions keyed by owner and id.

    Each owner keeps at most ``max_per_owner`` sessions; opening another one
    evicts the least recently used. Committed sessions are dropped.
    """

    waste_log_service: WasteLogService
    max_per_owner: int = MAX_SESSIONS_PER_OWNER
    _sessions: dict[tuple[UUID, UUID], ReviewSession] = field(default_factory=dict)

    def create(self, owner_id: UUID) -> ReviewSession:
        """Open a new empty session for the user."""
        owned = [key for key in self._sessions if key[0] == owner_id]
        for key in owned[: max(0, len(owned) - self.max_per_owner + 1)]:
            _logger.info("Evicting idle review session %s", key[1])
            self._sessions.pop(key).reset()
        session = ReviewSession(
            owner_id=owner_id, waste_log_service=self.waste_log_service
        )
        self._sessions[(owner_id, session.id)] = session
        return session

    def get(self, owner_id: UUID, session_id: UUID) -> ReviewSession:
        """Return the user's session or raise NotFoundError."""
        key = (owner_id, session_id)
        session = self._sessions.pop(key, None)
        if session is None:
            raise NotFoundError("Review session not found")
        self._sessions[key] = session
        return session

    def commit(
        self, owner_id: UUID, session_id: UUID, today: date | None = None
    ) -> tuple[ReviewSession, list[WasteEntry]]:
        """Save the session's items and forget it once they are stored."""
        session = self.get(owner_id, session_id)
        saved = session.commit(today)
        self._sessions.pop((owner_id, session_id), None)
        return session, saved

    def discard(self, owner_id: UUID, session_id: UUID) -> None:
        """Forget a session; results still in flight for it are dropped."""
        session = self._sessions.pop((owner_id, session_id), None)
        if session is not None:
            session.reset()


def _parse_positive_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number) or number <= 0:
        return None
    return number
