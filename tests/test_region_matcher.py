"""
Tests for RegionMatcher: association, tie-breaking and expiry
"""

import pytest

from plate_finder.tracking.region_matcher import RegionMatcher
from plate_finder.tracking.tracked_plate import Rect, TrackedPlate


@pytest.fixture
def matcher():
    return RegionMatcher(iou_threshold=0.3, stale_after=1.0)


class TestTrackCreation:
    """Unmatched detections start new tracks"""

    def test_first_detection_creates_track(self, matcher):
        tracks = matcher.update([(10, 10, 50, 20)], now=0.0)

        assert len(tracks) == 1
        track = tracks[0]
        assert track.number is None
        assert track.first_seen == 0.0
        assert track.last_seen == 0.0
        assert track.last_rect == Rect(10, 10, 50, 20)

    def test_each_unmatched_detection_gets_own_id(self, matcher):
        tracks = matcher.update([(0, 0, 40, 20), (200, 0, 40, 20)], now=0.0)

        assert len(tracks) == 2
        assert tracks[0].id != tracks[1].id

    def test_empty_batch_creates_nothing(self, matcher):
        assert matcher.update([], now=0.0) == []
        assert matcher.update(None, now=0.1) == []

    def test_degenerate_rectangles_are_ignored(self, matcher):
        tracks = matcher.update([(10, 10, 0, 20), (10, 10, 50, -1)], now=0.0)

        assert tracks == []
        assert matcher.total_tracks_created == 0

    def test_malformed_rectangles_are_ignored(self, matcher):
        batch = [(10, 10, 50), None, "abcd", (0, 0, float('nan'), 10), (10, 10, 50, 20)]

        tracks = matcher.update(batch, now=0.0)

        assert len(tracks) == 1
        assert tracks[0].last_rect == Rect(10, 10, 50, 20)

    def test_rect_coerce_rejects_malformed_values(self):
        assert Rect.coerce((1, 2, 3)) is None
        assert Rect.coerce((1, 2, 3, 'x')) is None
        assert Rect.coerce(None) is None
        assert Rect.coerce([1, 2, 3, 4]) == Rect(1.0, 2.0, 3.0, 4.0)

    def test_accepts_rect_objects(self, matcher):
        tracks = matcher.update([Rect(10, 10, 50, 20)], now=0.0)
        assert len(tracks) == 1


class TestMatching:
    """Detections continue the best overlapping track"""

    def test_nearby_detection_keeps_id(self, matcher):
        first = matcher.update([(10, 10, 50, 20)], now=0.0)[0]
        tracks = matcher.update([(12, 10, 50, 20)], now=0.1)

        assert len(tracks) == 1
        assert tracks[0].id == first.id
        assert tracks[0].last_rect == Rect(12, 10, 50, 20)
        assert tracks[0].last_seen == 0.1
        assert tracks[0].first_seen == 0.0
        assert tracks[0].match_count == 2

    def test_low_overlap_starts_new_track(self, matcher):
        matcher.update([(0, 0, 40, 20)], now=0.0)
        # IoU 200 / 1400 ~ 0.14
        tracks = matcher.update([(30, 0, 40, 20)], now=0.1)

        assert len(tracks) == 2

    def test_oldest_track_wins_equal_overlap(self, matcher):
        older = matcher.update([(0, 0, 40, 20)], now=0.0)[0]
        tracks = matcher.update([(0, 0, 40, 20), (30, 0, 40, 20)], now=0.1)
        newer = [t for t in tracks if t.id != older.id][0]

        # Overlaps both tracks by exactly 500 / 1100
        matcher.update([(15, 0, 40, 20)], now=0.2)

        assert matcher.get(older.id).last_rect == Rect(15, 0, 40, 20)
        assert matcher.get(newer.id).last_rect == Rect(30, 0, 40, 20)
        assert len(matcher.tracks) == 2

    def test_highest_overlap_beats_age(self, matcher):
        older = matcher.update([(0, 0, 40, 20)], now=0.0)[0]
        tracks = matcher.update([(0, 0, 40, 20), (30, 0, 40, 20)], now=0.1)
        newer = [t for t in tracks if t.id != older.id][0]

        # IoU 0.33 with the older track, 0.6 with the newer one
        matcher.update([(20, 0, 40, 20)], now=0.2)

        assert matcher.get(newer.id).last_rect == Rect(20, 0, 40, 20)
        assert matcher.get(older.id).last_rect == Rect(0, 0, 40, 20)

    def test_one_detection_feeds_one_track(self, matcher):
        matcher.update([(0, 0, 40, 20), (10, 0, 40, 20)], now=0.0)
        matcher.update([(5, 0, 40, 20)], now=0.1)

        touched = [t for t in matcher.tracks if t.last_seen == 0.1]
        assert len(touched) == 1

    def test_two_detections_never_share_id(self, matcher):
        matcher.update([(10, 10, 50, 20)], now=0.0)
        tracks = matcher.update([(10, 10, 50, 20), (11, 10, 50, 20)], now=0.1)

        ids = [t.id for t in tracks]
        assert len(ids) == 2
        assert len(set(ids)) == 2


class TestExpiry:
    """Stale tracks are dropped and never revived"""

    def test_unmatched_track_survives_inside_window(self, matcher):
        track = matcher.update([(10, 10, 50, 20)], now=0.0)[0]

        tracks = matcher.update([], now=1.0)

        assert [t.id for t in tracks] == [track.id]

    def test_stale_track_is_removed(self, matcher):
        matcher.update([(10, 10, 50, 20)], now=0.0)

        assert matcher.update([], now=1.5) == []
        assert matcher.total_tracks_expired == 1

    def test_detection_after_expiry_gets_new_id(self, matcher):
        old = matcher.update([(10, 10, 50, 20)], now=0.0)[0]

        tracks = matcher.update([(10, 10, 50, 20)], now=1.5)

        assert len(tracks) == 1
        assert tracks[0].id != old.id
        assert matcher.get(old.id) is None

    def test_live_tracks_bounded_by_recent_detections(self, matcher):
        batches = [
            (0.0, [(0, 0, 40, 20), (100, 0, 40, 20)]),
            (0.4, [(300, 0, 40, 20)]),
            (0.8, []),
            (1.3, [(500, 0, 40, 20)]),
            (2.5, []),
        ]
        history = []
        for now, rects in batches:
            history.append((now, len(rects)))
            tracks = matcher.update(rects, now=now)
            recent = sum(count for t, count in history if now - t <= matcher.stale_after)
            assert len(tracks) <= recent


class TestConfiguration:

    def test_invalid_stale_window(self):
        with pytest.raises(ValueError):
            RegionMatcher(stale_after=0)

    def test_invalid_iou_threshold(self):
        with pytest.raises(ValueError):
            RegionMatcher(iou_threshold=1.5)

    def test_clock_used_without_timestamp(self):
        now = [5.0]
        matcher = RegionMatcher(clock=lambda: now[0])

        track = matcher.update([(0, 0, 40, 20)])[0]

        assert track.first_seen == 5.0

    def test_statistics(self, matcher):
        matcher.update([(0, 0, 40, 20), (100, 0, 40, 20)], now=0.0)
        stats = matcher.get_statistics()

        assert stats['total_tracks_created'] == 2
        assert stats['active_tracks'] == 2
        assert stats['tracks_with_numbers'] == 0


class TestTrackedPlate:

    def _plate(self):
        return TrackedPlate(last_rect=Rect(0, 0, 10, 10), first_seen=0.0, last_seen=0.0)

    def test_first_number_wins(self):
        plate = self._plate()

        assert plate.assign_number("AB1234", 0.8)
        assert not plate.assign_number("CD5678", 0.99)
        assert plate.number == "AB1234"

    def test_overwrite_requires_equal_or_higher_confidence(self):
        plate = self._plate()
        plate.assign_number("AB1234", 0.8)

        assert not plate.assign_number("CD5678", 0.5, allow_overwrite=True)
        assert plate.assign_number("CD5678", 0.9, allow_overwrite=True)
        assert plate.number == "CD5678"

    def test_equality_by_id(self):
        plate = self._plate()
        copy = plate.snapshot()

        assert copy == plate
        assert hash(copy) == hash(plate)
        assert self._plate() != plate
