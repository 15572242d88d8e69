"""
Data model for tracked license plates
"""

import math
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in detector-buffer pixel coordinates"""
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def coerce(cls, value: Union["Rect", Sequence[float]]) -> Optional["Rect"]:
        """Accept a Rect or any (x, y, width, height) sequence; None if malformed"""
        if isinstance(value, Rect):
            return value
        if isinstance(value, (str, bytes)):
            return None
        try:
            x, y, width, height = (float(v) for v in value)
        except (TypeError, ValueError):
            return None
        if not all(math.isfinite(v) for v in (x, y, width, height)):
            return None
        return cls(x, y, width, height)

    @property
    def is_degenerate(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def to_xyxy(self) -> List[float]:
        return [self.x, self.y, self.x + self.width, self.y + self.height]


def _new_track_id() -> str:
    return uuid.uuid4().hex


@dataclass(eq=False)
class TrackedPlate:
    """One physically distinct plate currently being tracked"""
    last_rect: Rect
    first_seen: float
    last_seen: float
    number: Optional[str] = None
    number_confidence: float = 0.0
    match_count: int = 1
    id: str = field(default_factory=_new_track_id)

    def __eq__(self, other):
        if not isinstance(other, TrackedPlate):
            return NotImplemented
        return self.id == other.id

    def __hash__(self):
        return hash(self.id)

    @property
    def has_number(self) -> bool:
        return self.number is not None

    def touch(self, rect: Rect, now: float):
        """Record a matched detection"""
        self.last_rect = rect
        self.last_seen = max(now, self.first_seen)
        self.match_count += 1

    def assign_number(self, number: str, confidence: float, allow_overwrite: bool = False) -> bool:
        """
        Write a validated number onto the plate

        Returns:
            True if the stored number changed
        """
        if self.number is None:
            self.number = number
            self.number_confidence = confidence
            return True

        if not allow_overwrite or number == self.number:
            return False

        if confidence < self.number_confidence:
            return False

        self.number = number
        self.number_confidence = confidence
        return True

    def snapshot(self) -> "TrackedPlate":
        return TrackedPlate(
            last_rect=self.last_rect,
            first_seen=self.first_seen,
            last_seen=self.last_seen,
            number=self.number,
            number_confidence=self.number_confidence,
            match_count=self.match_count,
            id=self.id,
        )

    def get_summary(self) -> dict:
        return {
            'id': self.id,
            'number': self.number,
            'number_confidence': self.number_confidence,
            'rect': [self.last_rect.x, self.last_rect.y, self.last_rect.width, self.last_rect.height],
            'first_seen': self.first_seen,
            'last_seen': self.last_seen,
            'match_count': self.match_count,
            'duration_seconds': self.last_seen - self.first_seen,
        }
