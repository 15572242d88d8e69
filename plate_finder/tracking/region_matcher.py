"""
Region matcher: associates detection rectangles with persistent plate tracks

Each cycle is a one-to-one assignment. A track claims at most one detection
and a detection feeds at most one track, so two tracks never share a
detection and one detection never resurrects several stale tracks.
"""

import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import supervision as sv

from .tracked_plate import Rect, TrackedPlate
from ..utils.logger import setup_logger


class RegionMatcher:
    """Greedy IoU matcher with time-based track expiry"""

    def __init__(self,
                 iou_threshold: float = 0.3,
                 stale_after: float = 1.0,
                 clock: Callable[[], float] = time.time):
        """
        Initialize region matcher

        Args:
            iou_threshold: Minimum IoU for a detection to continue a track
            stale_after: Seconds a track may go unmatched before it expires
            clock: Time source used when update() gets no explicit timestamp
        """
        if not 0.0 <= iou_threshold <= 1.0:
            raise ValueError(f"iou_threshold must be within [0, 1], got {iou_threshold}")
        if stale_after <= 0:
            raise ValueError(f"stale_after must be positive, got {stale_after}")

        self.iou_threshold = iou_threshold
        self.stale_after = stale_after
        self.clock = clock

        self.logger = setup_logger(self.__class__.__name__)

        # Insertion order doubles as creation order
        self.active_tracks: Dict[str, TrackedPlate] = {}
        self.total_tracks_created = 0
        self.total_tracks_expired = 0

        self.logger.info(
            f"RegionMatcher initialized: iou={iou_threshold}, stale_after={stale_after}s"
        )

    @property
    def tracks(self) -> List[TrackedPlate]:
        return list(self.active_tracks.values())

    def get(self, track_id: str) -> Optional[TrackedPlate]:
        return self.active_tracks.get(track_id)

    def update(self, detections: Sequence, now: Optional[float] = None) -> List[TrackedPlate]:
        """
        Update tracks with a new detection batch

        Args:
            detections: Rect objects or (x, y, width, height) sequences
            now: Timestamp of the source frame

        Returns:
            Live tracks in creation order
        """
        if now is None:
            now = self.clock()

        rects = [Rect.coerce(d) for d in detections or []]
        valid_rects = [r for r in rects if r is not None and not r.is_degenerate]
        if len(valid_rects) != len(rects):
            self.logger.debug(
                f"Dropped {len(rects) - len(valid_rects)} malformed or degenerate rectangle(s)"
            )

        # Expire first so a stale track cannot claim this cycle's detections
        self.expire(now)

        tracks = self.tracks
        matches = self._match(tracks, valid_rects)

        matched_detections = set()
        for track_index, detection_index in matches:
            tracks[track_index].touch(valid_rects[detection_index], now)
            matched_detections.add(detection_index)

        for detection_index, rect in enumerate(valid_rects):
            if detection_index in matched_detections:
                continue
            track = TrackedPlate(last_rect=rect, first_seen=now, last_seen=now)
            self.active_tracks[track.id] = track
            self.total_tracks_created += 1
            self.logger.info(f"Created new track {track.id} at {rect.to_xyxy()}")

        return self.tracks

    def _match(self, tracks: List[TrackedPlate], rects: List[Rect]) -> List[Tuple[int, int]]:
        """Return (track_index, detection_index) pairs, best overlap first"""
        if not tracks or not rects:
            return []

        track_boxes = np.array([t.last_rect.to_xyxy() for t in tracks], dtype=np.float32)
        detection_boxes = np.array([r.to_xyxy() for r in rects], dtype=np.float32)
        iou_matrix = sv.box_iou_batch(track_boxes, detection_boxes)

        candidates = []
        for track_index, detection_index in zip(*np.nonzero(iou_matrix >= self.iou_threshold)):
            iou = float(iou_matrix[track_index, detection_index])
            if iou <= 0.0:
                continue
            candidates.append((iou, int(track_index), int(detection_index)))

        # Highest overlap, then oldest track, then creation order
        candidates.sort(key=lambda c: (-c[0], tracks[c[1]].first_seen, c[1]))

        used_tracks = set()
        used_detections = set()
        matches = []
        for iou, track_index, detection_index in candidates:
            if track_index in used_tracks or detection_index in used_detections:
                continue
            used_tracks.add(track_index)
            used_detections.add(detection_index)
            matches.append((track_index, detection_index))

        return matches

    def expire(self, now: Optional[float] = None) -> List[TrackedPlate]:
        """Remove tracks unmatched for longer than the staleness window"""
        if now is None:
            now = self.clock()

        expired = [
            track for track in self.active_tracks.values()
            if now - track.last_seen > self.stale_after
        ]
        for track in expired:
            del self.active_tracks[track.id]

        if expired:
            self.total_tracks_expired += len(expired)
            removed_info = [f"{t.id}:{t.number or 'Unknown'}" for t in expired]
            self.logger.info(f"Removed stale tracks: {', '.join(removed_info)}")

        return expired

    def tracks_without_numbers(self) -> List[TrackedPlate]:
        return [t for t in self.active_tracks.values() if not t.has_number]

    def get_statistics(self) -> dict:
        return {
            'total_tracks_created': self.total_tracks_created,
            'total_tracks_expired': self.total_tracks_expired,
            'active_tracks': len(self.active_tracks),
            'tracks_with_numbers': sum(1 for t in self.active_tracks.values() if t.has_number),
            'matcher_settings': {
                'iou_threshold': self.iou_threshold,
                'stale_after': self.stale_after,
            }
        }

    def reset(self):
        """Drop every track; ids are never reused"""
        self.active_tracks.clear()
        self.logger.info("RegionMatcher reset")
