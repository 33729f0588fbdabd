"""Domain models for waste logging and image analysis."""

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from fooptra.domain.errors import ValidationError


class WasteCategory(StrEnum):
    """Food categories a waste entry can be filed under."""

    VEGETABLES = "Vegetables"
    FRUITS = "Fruits"
    MEAT_FISH = "Meat & Fish"
    DAIRY = "Dairy"
    GRAINS = "Grains"
    BEVERAGES = "Beverages"
    COOKED_FOOD = "Cooked Food"
    OTHER = "Other"


class WasteReason(StrEnum):
    """Why the food was thrown away."""

    EXPIRED = "Expired"
    SPOILED = "Spoiled"
    OVER_PURCHASED = "Over-purchased"
    FORGOT = "Forgot to use"
    DISLIKED_TASTE = "Didn't like taste"
    COOKED_TOO_MUCH = "Cooked too much"
    OTHER = "Other"
    ANALYZED_FROM_IMAGE = "Analyzed from image"


def parse_category(value: object) -> WasteCategory:
    """Return the category for a stored or user-supplied value."""
    if isinstance(value, WasteCategory):
        return value
    try:
        return WasteCategory(str(value))
    except ValueError as exc:
        raise ValidationError(f"Unknown category: {value!r}") from exc


def parse_reason(value: object) -> WasteReason:
    """Return the reason for a stored or user-supplied value."""
    if isinstance(value, WasteReason):
        return value
    try:
        return WasteReason(str(value))
    except ValueError as exc:
        raise ValidationError(f"Unknown reason: {value!r}") from exc


def _validate_entry_fields(quantity_grams: float, entry_date: date) -> None:
    if quantity_grams <= 0:
        raise ValidationError("Quantity must be greater than zero")
    if entry_date > date.today():
        raise ValidationError("Date cannot be in the future")


@dataclass(frozen=True)
class NewWasteEntry:
    """Waste entry payload before the record store assigns identifiers."""

    owner_id: UUID
    category: WasteCategory
    quantity_grams: float
    reason: WasteReason
    date: date
    notes: str = ""
    source_image_id: str | None = None
    ai_analyzed: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", parse_category(self.category))
        object.__setattr__(self, "reason", parse_reason(self.reason))
        _validate_entry_fields(self.quantity_grams, self.date)


@dataclass(frozen=True)
class WasteEntry:
    """A persisted waste entry owned by one user."""

    id: UUID
    owner_id: UUID
    category: WasteCategory
    quantity_grams: float
    reason: WasteReason
    date: date
    notes: str
    source_image_id: str | None
    ai_analyzed: bool
    created_at: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", parse_category(self.category))
        object.__setattr__(self, "reason", parse_reason(self.reason))
        if self.quantity_grams <= 0:
            raise ValidationError("Quantity must be greater than zero")


class DetectedItem(BaseModel):
    """Unconfirmed food item produced by image classification."""

    label: str = Field(min_length=1)
    category: WasteCategory | None
    confidence: float = Field(ge=0.0, le=100.0)
    estimated_quantity_grams: float = Field(gt=0)
    original_model_label: str = ""

    @field_validator("label")
    @classmethod
    def _strip_label(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("label must not be blank")
        return stripped
