"""ONNX Runtime image classifier for on-device food recognition."""

import asyncio
import io
import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import onnxruntime as ort
from PIL import Image, UnidentifiedImageError

from fooptra.domain.errors import ValidationError
from fooptra.services.classification import (
    ClassifierLoader,
    ImageClassifier,
    Prediction,
)

INPUT_SIZE = 224
_IMAGENET_MEAN = np.array([0.485, 0.456, 0.406], dtype=np.float32)
_IMAGENET_STD = np.array([0.229, 0.224, 0.225], dtype=np.float32)

_logger = logging.getLogger(__name__)


def load_labels(labels_path: str) -> list[str]:
    """Read one class label per line, skipping blank lines."""
    text = Path(labels_path).read_text(encoding="utf-8")
    return [line.strip() for line in text.splitlines() if line.strip()]


def preprocess_image(image_bytes: bytes, size: int = INPUT_SIZE) -> np.ndarray:
    """Decode bytes into a normalized NCHW float32 batch of one."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as image:
            resized = image.convert("RGB").resize(
                (size, size), Image.Resampling.BILINEAR
            )
    except UnidentifiedImageError as exc:
        raise ValidationError("Uploaded file is not a readable image") from exc
    pixels = np.asarray(resized, dtype=np.float32) / 255.0
    normalized = (pixels - _IMAGENET_MEAN) / _IMAGENET_STD
    return np.expand_dims(normalized.transpose(2, 0, 1), axis=0)


def softmax(logits: np.ndarray) -> np.ndarray:
    """Numerically stable softmax over the last axis."""
    shifted = logits - np.max(logits, axis=-1, keepdims=True)
    exps = np.exp(shifted)
    return exps / np.sum(exps, axis=-1, keepdims=True)


def top_k_predictions(
    probabilities: np.ndarray, labels: list[str], k: int
) -> list[Prediction]:
    """Return the k most likely labels, highest first."""
    count = min(k, probabilities.shape[-1])
    indices = np.argsort(probabilities)[::-1][:count]
    return [
        Prediction(
            label=labels[index] if index < len(labels) else f"class {index}",
            probability=float(probabilities[index]),
        )
        for index in indices
    ]


@dataclass
class OnnxImageClassifier(ImageClassifier):
    """Classifier bound to a live ONNX Runtime session."""

    session: ort.InferenceSession | None
    labels: list[str]

    async def classify(self, image_bytes: bytes, top_k: int) -> list[Prediction]:
        """Run inference off the event loop and return top-k predictions."""
        return await asyncio.to_thread(self._classify_sync, image_bytes, top_k)

    def _classify_sync(self, image_bytes: bytes, top_k: int) -> list[Prediction]:
        if self.session is None:
            raise RuntimeError("Classifier session has been closed")
        batch = preprocess_image(image_bytes)
        input_name = self.session.get_inputs()[0].name
        outputs = self.session.run(None, {input_name: batch})
        scores = np.asarray(outputs[0], dtype=np.float32)[0]
        # Some exported models already end with a softmax layer.
        if scores.min() < 0 or not np.isclose(scores.sum(), 1.0, atol=1e-3):
            scores = softmax(scores)
        return top_k_predictions(scores, self.labels, top_k)

    def close(self) -> None:
        """Drop the session so native memory can be released."""
        self.session = None


@dataclass
class OnnxClassifierLoader(ClassifierLoader):
    """Creates a new ONNX session for every analysis."""

    model_path: str
    labels_path: str
    providers: tuple[str, ...] = ("CPUExecutionProvider",)

    async def load(self) -> OnnxImageClassifier:
        """Load labels and the ONNX session without blocking the loop."""
        return await asyncio.to_thread(self._load_sync)

    def _load_sync(self) -> OnnxImageClassifier:
        if not Path(self.model_path).exists():
            raise FileNotFoundError(f"ONNX model not found: {self.model_path}")
        labels = load_labels(self.labels_path)
        session = ort.InferenceSession(self.model_path, providers=list(self.providers))
        _logger.info(
            "ONNX classifier loaded: %s | providers=%s | labels=%s",
            self.model_path,
            list(self.providers),
            len(labels),
        )
        return OnnxImageClassifier(session=session, labels=labels)
