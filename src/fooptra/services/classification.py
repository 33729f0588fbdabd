"""Image classification pipeline turning a photo into detected food items."""

import logging
import random
import re
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

from fooptra.domain.errors import (
    FooptraError,
    NotFoundError,
    RemoteOperationError,
    ResourceLimitError,
)
from fooptra.domain.waste import DetectedItem, WasteCategory

MAX_IMAGE_BYTES = 10 * 1024 * 1024
TOP_K = 5
MIN_CONFIDENCE = 0.20
MIN_QUANTITY_GRAMS = 50
QUANTITY_VARIANCE_GRAMS = 80
DEFAULT_QUANTITY_GRAMS = 120

CATEGORY_KEYWORDS: dict[WasteCategory, tuple[str, ...]] = {
    WasteCategory.VEGETABLES: (
        "vegetable",
        "broccoli",
        "cauliflower",
        "cabbage",
        "zucchini",
        "cucumber",
        "mushroom",
        "bell pepper",
        "artichoke",
        "squash",
        "lettuce",
        "carrot",
        "potato",
        "tomato",
        "corn",
        "spinach",
        "onion",
        "eggplant",
    ),
    WasteCategory.FRUITS: (
        "fruit",
        "apple",
        "granny smith",
        "banana",
        "orange",
        "lemon",
        "strawberry",
        "pineapple",
        "grape",
        "pear",
        "fig",
        "pomegranate",
        "jackfruit",
        "mango",
        "melon",
        "peach",
        "cherry",
    ),
    WasteCategory.MEAT_FISH: (
        "meat",
        "beef",
        "pork",
        "chicken",
        "steak",
        "sausage",
        "ham",
        "fish",
        "salmon",
        "tuna",
        "shrimp",
        "crab",
        "lobster",
    ),
    WasteCategory.DAIRY: (
        "cheese",
        "milk",
        "yogurt",
        "butter",
        "cream",
        "ice cream",
    ),
    WasteCategory.GRAINS: (
        "bread",
        "bagel",
        "pretzel",
        "baguette",
        "loaf",
        "rice",
        "pasta",
        "noodle",
        "cereal",
        "dough",
        "oat",
        "cracker",
    ),
    WasteCategory.BEVERAGES: (
        "coffee",
        "espresso",
        "tea",
        "juice",
        "wine",
        "beer",
        "soda",
        "drink",
        "cocktail",
        "eggnog",
    ),
    WasteCategory.COOKED_FOOD: (
        "pizza",
        "burger",
        "cheeseburger",
        "hotdog",
        "sandwich",
        "burrito",
        "taco",
        "soup",
        "stew",
        "casserole",
        "potpie",
        "guacamole",
        "carbonara",
        "salad",
        "hot pot",
        "consomme",
        "trifle",
        "dish",
    ),
}

# Containers and kitchenware whose labels name the food they hold.
NON_FOOD_KEYWORDS: tuple[str, ...] = (
    "mug",
    "bottle",
    "can",
    "glass",
    "cup",
    "bowl",
    "jar",
    "jug",
    "pitcher",
    "shaker",
    "maker",
    "spoon",
    "knife",
    "opener",
    "rack",
)

BASE_QUANTITY_GRAMS: dict[str, int] = {
    "fruit": 150,
    "vegetable": 100,
    "bread": 80,
    "pizza": 250,
    "burger": 200,
    "salad": 150,
    "meat": 120,
    "fish": 150,
}

_KEYWORD_PATTERNS: dict[WasteCategory, list[re.Pattern[str]]] = {
    category: [re.compile(rf"\b{re.escape(keyword)}(?:e?s)?\b") for keyword in words]
    for category, words in CATEGORY_KEYWORDS.items()
}
_NON_FOOD_PATTERN = re.compile(
    r"\b(?:" + "|".join(map(re.escape, NON_FOOD_KEYWORDS)) + r")(?:e?s)?\b"
)

_logger = logging.getLogger(__name__)


class AnalysisPhase(StrEnum):
    """Progress phases reported while an image is analyzed."""

    LOADING_MODEL = "loading_model"
    ANALYZING_IMAGE = "analyzing_image"


@dataclass(frozen=True)
class Prediction:
    """Raw classifier output: a label and its probability (0-1)."""

    label: str
    probability: float


class ImageClassifier(Protocol):
    """A loaded general-purpose image classifier."""

    async def classify(self, image_bytes: bytes, top_k: int) -> list[Prediction]:
        """Return the top-k predictions for the image."""

    def close(self) -> None:
        """Release the model and any native resources."""


class ClassifierLoader(Protocol):
    """Loads a fresh classifier instance for one analysis."""

    async def load(self) -> ImageClassifier:
        """Load the model and return a ready classifier."""


PhaseCallback = Callable[[AnalysisPhase], None]


@dataclass
class ClassificationService:
    """Runs the classify, categorize, filter and estimate pipeline."""

    loader: ClassifierLoader
    max_image_bytes: int = MAX_IMAGE_BYTES
    top_k: int = TOP_K
    min_confidence: float = MIN_CONFIDENCE
    rng: random.Random = field(default_factory=random.Random)

    async def analyze(
        self, image_bytes: bytes, on_phase: PhaseCallback | None = None
    ) -> list[DetectedItem]:
        """Return detected food items, or raise when none are recognized."""
        if len(image_bytes) > self.max_image_bytes:
            limit_mb = self.max_image_bytes / (1024 * 1024)
            raise ResourceLimitError(f"Image is larger than {limit_mb:.0f}MB")

        _notify(on_phase, AnalysisPhase.LOADING_MODEL)
        async with self._loaded_classifier() as classifier:
            _notify(on_phase, AnalysisPhase.ANALYZING_IMAGE)
            started = time.perf_counter()
            try:
                predictions = await classifier.classify(image_bytes, self.top_k)
            except FooptraError:
                raise
            except Exception as exc:
                raise RemoteOperationError("Image analysis failed") from exc
            _logger.info(
                "Classified image: predictions=%s elapsed=%.2fs",
                len(predictions),
                time.perf_counter() - started,
            )

        items = self.to_detected_items(predictions)
        if not items:
            raise NotFoundError("No recognizable food detected")
        return items

    def to_detected_items(self, predictions: list[Prediction]) -> list[DetectedItem]:
        """Apply categorization, confidence filter and quantity estimate."""
        items: list[DetectedItem] = []
        for prediction in predictions:
            category = categorize_label(prediction.label)
            if category is None:
                continue
            if prediction.probability < self.min_confidence:
                continue
            items.append(
                DetectedItem(
                    label=clean_label(prediction.label),
                    category=category,
                    confidence=round(prediction.probability * 100),
                    estimated_quantity_grams=estimate_quantity(
                        prediction.label, prediction.probability, self.rng
                    ),
                    original_model_label=prediction.label,
                )
            )
        return items

    @asynccontextmanager
    async def _loaded_classifier(self) -> AsyncIterator[ImageClassifier]:
        started = time.perf_counter()
        try:
            classifier = await self.loader.load()
        except FooptraError:
            raise
        except Exception as exc:
            raise RemoteOperationError("Failed to load the image model") from exc
        _logger.info("Loaded image model in %.2fs", time.perf_counter() - started)
        try:
            yield classifier
        finally:
            classifier.close()


def categorize_label(label: str) -> WasteCategory | None:
    """Map a raw model label to a food category, or None for non-food."""
    lowered = label.lower().replace("_", " ")
    if _NON_FOOD_PATTERN.search(lowered):
        return None
    for category, patterns in _KEYWORD_PATTERNS.items():
        if any(pattern.search(lowered) for pattern in patterns):
            return category
    return None


def base_quantity(label: str) -> int:
    """Return the typical portion in grams for a raw label."""
    lowered = label.lower()
    for keyword, grams in BASE_QUANTITY_GRAMS.items():
        if keyword in lowered:
            return grams
    return DEFAULT_QUANTITY_GRAMS


def estimate_quantity(label: str, probability: float, rng: random.Random) -> int:
    """Estimate grams, perturbed more when the model is less confident."""
    spread = QUANTITY_VARIANCE_GRAMS * (1 - probability)
    estimate = base_quantity(label) + rng.uniform(-spread, spread)
    return max(MIN_QUANTITY_GRAMS, round(estimate))


def clean_label(label: str) -> str:
    """Drop comma-separated alternates and capitalize each word."""
    primary = label.split(",", 1)[0].replace("_", " ").strip()
    return " ".join(word[:1].upper() + word[1:] for word in primary.split())


def _notify(on_phase: PhaseCallback | None, phase: AnalysisPhase) -> None:
    if on_phase is not None:
        on_phase(phase)
