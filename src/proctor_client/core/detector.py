"""
Detector handle - asynchronous model loading and per-frame inference.

The detector only produces signals. Turning a signal into a violation
(and deciding whether to run at all) belongs to the detection loop.
"""

import logging
import threading
from typing import Any, Callable

import numpy as np
import torch
from ultralytics import YOLO

from ..models.violations import DetectionSignal

logger = logging.getLogger(__name__)

STATUS_LOADING = "loading"
STATUS_READY = "ready"
STATUS_FAILED = "failed"

# COCO class names treated as prohibited items in an exam
SUSPICIOUS_OBJECTS = frozenset({"cell phone", "book", "laptop", "remote"})
PERSON_CLASS = "person"

FrameAnalyzer = Callable[[np.ndarray], DetectionSignal]


class YoloFrameAnalyzer:
    """Counts people and flags suspicious objects using a YOLO model."""

    def __init__(self, model_file: str, confidence_threshold: float = 0.5):
        self.device = "cuda" if torch.cuda.is_available() else "cpu"
        self.confidence_threshold = confidence_threshold
        self.model = YOLO(model_file)
        self.model.to(self.device)

        logger.info(f"Model initialized: {model_file}")
        logger.info(f"Device: {self.device}")
        if self.device == "cuda":
            logger.info(f"GPU: {torch.cuda.get_device_name(0)}")
        else:
            logger.warning("Running on CPU - performance will be slow")

    def __call__(self, frame: np.ndarray) -> DetectionSignal:
        results = self.model.predict(
            source=frame,
            conf=self.confidence_threshold,
            device=self.device,
            verbose=False,
        )
        return signal_from_labels(_labels(results, self.model.names))


def _labels(results: Any, names: dict[int, str]) -> list[str]:
    labels = []
    for result in results:
        if result.boxes is None:
            continue
        for cls in result.boxes.cls.tolist():
            labels.append(names[int(cls)])
    return labels


def signal_from_labels(labels: list[str]) -> DetectionSignal:
    """Build a signal from detected class names."""
    objects = sorted({label for label in labels if label in SUSPICIOUS_OBJECTS})
    return DetectionSignal(
        detected=True,
        face_count=sum(1 for label in labels if label == PERSON_CLASS),
        objects=objects,
    )


def yolo_loader(model_file: str, confidence_threshold: float) -> Callable[[], FrameAnalyzer]:
    """Deferred YOLO construction for DetectorHandle."""
    return lambda: YoloFrameAnalyzer(model_file, confidence_threshold)


class DetectorHandle:
    """
    Owns a frame analyzer and its load status.

    Status goes loading -> ready | failed. A failed load is kept with its
    error and never raised to callers; monitoring carries on without
    detection.
    """

    def __init__(self, loader: Callable[[], FrameAnalyzer]):
        self._loader = loader
        self._analyzer: FrameAnalyzer | None = None
        self._status = STATUS_LOADING
        self._error: Exception | None = None
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()

    @property
    def status(self) -> str:
        with self._lock:
            return self._status

    @property
    def error(self) -> Exception | None:
        with self._lock:
            return self._error

    def is_ready(self) -> bool:
        return self.status == STATUS_READY

    def initialize(self, background: bool = True) -> None:
        """Load the model, on a daemon thread unless background=False."""
        if background:
            self._thread = threading.Thread(
                target=self._load, name="DetectorLoader", daemon=True
            )
            self._thread.start()
        else:
            self._load()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until a background load finishes. Returns True if ready."""
        if self._thread is not None:
            self._thread.join(timeout)
        return self.is_ready()

    def _load(self) -> None:
        logger.info("Loading detection model...")
        try:
            analyzer = self._loader()
        except Exception as e:
            logger.error(f"Failed to load detection model: {e}", exc_info=True)
            with self._lock:
                self._status = STATUS_FAILED
                self._error = e
            return

        with self._lock:
            self._analyzer = analyzer
            self._status = STATUS_READY
        logger.info("Detection model ready")

    def detect(self, frame: np.ndarray) -> DetectionSignal:
        """Run one pass. Returns detected=False when not ready or on error."""
        with self._lock:
            analyzer = self._analyzer if self._status == STATUS_READY else None
        if analyzer is None:
            return DetectionSignal(detected=False)
        try:
            return analyzer(frame)
        except Exception as e:
            logger.error(f"Detection failed: {e}")
            return DetectionSignal(detected=False)
