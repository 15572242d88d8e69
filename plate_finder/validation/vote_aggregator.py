"""
OCR candidate aggregation: confidence gate, plate-shape gate and majority vote
"""

import numbers
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

from .plate_shape import PlateShapePolicy, get_policy, normalize_text
from ..utils.logger import setup_logger


@dataclass(frozen=True)
class CandidateReading:
    """One OCR observation: normalized text plus confidence in [0, 1]"""
    text: str
    confidence: float

    @classmethod
    def from_raw(cls, text: Optional[str], confidence: float) -> "CandidateReading":
        return cls(normalize_text(text), float(confidence))

    @classmethod
    def coerce(cls, value) -> Optional["CandidateReading"]:
        """
        Accept a CandidateReading or a (text, confidence) pair

        Returns None for malformed values (wrong arity, non-string text,
        non-numeric confidence).
        """
        if isinstance(value, CandidateReading):
            text, confidence = value.text, value.confidence
        else:
            try:
                text, confidence = value
            except (TypeError, ValueError):
                return None

        if text is not None and not isinstance(text, str):
            return None
        if isinstance(confidence, bool) or not isinstance(confidence, numbers.Real):
            return None
        return cls.from_raw(text, confidence)


class TextVoteAggregator:
    """Turns noisy OCR readings into a validated plate number"""

    def __init__(self,
                 min_confidence: float = 0.7,
                 window_capacity: int = 3,
                 live_policy='strict',
                 capture_policy='loose',
                 capture_min_confidence: float = 0.0):
        """
        Initialize aggregator

        Args:
            min_confidence: Inclusive confidence gate for live readings
            window_capacity: Readings collected before each vote
            live_policy: Plate-shape policy (name or object) for live readings
            capture_policy: Plate-shape policy for single-capture readings
            capture_min_confidence: Inclusive confidence gate for captures
        """
        if window_capacity <= 0:
            raise ValueError(f"window_capacity must be positive, got {window_capacity}")
        for name, value in (('min_confidence', min_confidence),
                            ('capture_min_confidence', capture_min_confidence)):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be within [0, 1], got {value}")

        self.min_confidence = min_confidence
        self.window_capacity = window_capacity
        self.live_policy: PlateShapePolicy = get_policy(live_policy)
        self.capture_policy: PlateShapePolicy = get_policy(capture_policy)
        self.capture_min_confidence = capture_min_confidence

        self.logger = setup_logger(self.__class__.__name__)

        self.window: List[CandidateReading] = []

        self.total_readings = 0
        self.rejected_malformed = 0
        self.rejected_confidence = 0
        self.rejected_shape = 0
        self.votes_held = 0
        self.votes_validated = 0

    def _accept(self, reading: Optional[CandidateReading], min_confidence: float,
                policy: PlateShapePolicy) -> bool:
        self.total_readings += 1

        if reading is None:
            self.rejected_malformed += 1
            self.logger.debug("Skipped malformed reading")
            return False

        # Also rejects NaN
        if not 0.0 <= reading.confidence <= 1.0:
            self.rejected_confidence += 1
            self.logger.debug(
                "Rejected '%s': confidence %r outside [0, 1]", reading.text, reading.confidence
            )
            return False

        if reading.confidence < min_confidence:
            self.rejected_confidence += 1
            self.logger.debug(
                "Rejected '%s': confidence %.2f < %.2f",
                reading.text, reading.confidence, min_confidence,
            )
            return False

        if not policy.accepts(reading.text):
            self.rejected_shape += 1
            self.logger.debug("Rejected '%s': fails %s plate shape", reading.text, policy.name)
            return False

        return True

    def submit(self, readings: Iterable) -> Optional[str]:
        """Live-stream path. Returns a validated number or None."""
        result = self.submit_with_confidence(readings)
        return result[0] if result else None

    def submit_with_confidence(self, readings: Iterable) -> Optional[Tuple[str, float]]:
        """
        Feed live-stream readings into the validation window

        Every time the window fills, a vote is held and the window is
        cleared whatever the outcome. When one call fills the window more
        than once, the last validated result is returned.
        """
        result = None
        for value in readings or []:
            reading = CandidateReading.coerce(value)
            if not self._accept(reading, self.min_confidence, self.live_policy):
                continue

            self.window.append(reading)
            if len(self.window) >= self.window_capacity:
                outcome = self._resolve_window()
                if outcome is not None:
                    result = outcome

        return result

    def _resolve_window(self) -> Optional[Tuple[str, float]]:
        window, self.window = self.window, []
        self.votes_held += 1

        counts = Counter(r.text for r in window)
        text, count = counts.most_common(1)[0]

        # Strict majority of the capacity, not a plurality
        if count * 2 <= self.window_capacity:
            self.logger.debug(f"No majority in window {dict(counts)}")
            return None

        self.votes_validated += 1
        confidence = float(np.mean([r.confidence for r in window if r.text == text]))
        self.logger.info(
            f"Validated '{text}' by vote ({count}/{self.window_capacity}, conf: {confidence:.2f})"
        )
        return text, confidence

    def resolve_capture(self, readings: Iterable) -> Optional[str]:
        """Single high-resolution capture path. Returns the best reading or None."""
        result = self.resolve_capture_with_confidence(readings)
        return result[0] if result else None

    def resolve_capture_with_confidence(self, readings: Iterable) -> Optional[Tuple[str, float]]:
        accepted = [
            reading for reading in (CandidateReading.coerce(v) for v in readings or [])
            if self._accept(reading, self.capture_min_confidence, self.capture_policy)
        ]
        if not accepted:
            return None

        # sorted() is stable: equal confidences keep delivery order
        best = sorted(accepted, key=lambda r: r.confidence, reverse=True)[0]
        self.logger.info(
            f"Validated '{best.text}' from capture (conf: {best.confidence:.2f}, "
            f"{len(accepted)} candidate(s))"
        )
        return best.text, best.confidence

    def clear(self):
        self.window.clear()

    def get_statistics(self) -> dict:
        return {
            'total_readings': self.total_readings,
            'rejected_malformed': self.rejected_malformed,
            'rejected_confidence': self.rejected_confidence,
            'rejected_shape': self.rejected_shape,
            'votes_held': self.votes_held,
            'votes_validated': self.votes_validated,
            'window_size': len(self.window),
            'aggregator_settings': {
                'min_confidence': self.min_confidence,
                'window_capacity': self.window_capacity,
                'live_policy': self.live_policy.name,
                'capture_policy': self.capture_policy.name,
                'capture_min_confidence': self.capture_min_confidence,
            }
        }
