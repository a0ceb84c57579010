"""Tests for SegmentModel: splitting, merging, boundary clamping and speeds."""

from __future__ import annotations

import pytest

from route_pacer.config import DEFAULT_PALETTE, Settings
from route_pacer.errors import MinimumGapViolation, SegmentEditRejected, SingleSegmentInvariant
from route_pacer.events import EventBus, SegmentsChanged
from route_pacer.planning.models import color_for
from route_pacer.planning.segments import SegmentModel
from route_pacer.route.geometry import GeometryIndex
from route_pacer.route.models import GeoPoint, RoutePolyline

# ---------------------------------------------------------------------------
# Test-data helpers
# ---------------------------------------------------------------------------


def make_geometry(total_m: float = 10_000.0) -> GeometryIndex:
    points = [GeoPoint(0.0, 0.0), GeoPoint(0.0, 0.05), GeoPoint(0.0, 0.1)]
    return GeometryIndex(RoutePolyline(points=points, distances_m=[0.0, total_m / 2, total_m]))


def make_model(n_segments: int = 1, **settings) -> SegmentModel:
    model = SegmentModel(make_geometry(), Settings(**settings))
    for _ in range(n_segments - 1):
        model.add_segment()
    return model


def assert_contiguous(model: SegmentModel) -> None:
    segs = model.segments
    gap = model.settings.min_segment_gap
    assert segs[0].start_ratio == 0.0
    assert segs[-1].end_ratio == 1.0
    for i, seg in enumerate(segs):
        assert seg.index == i
        assert seg.end_ratio - seg.start_ratio >= gap - 1e-9
    for a, b in zip(segs, segs[1:]):
        assert a.end_ratio == b.start_ratio


# ---------------------------------------------------------------------------
# Defaults and lookups
# ---------------------------------------------------------------------------


class TestDefaults:
    def test_single_default_segment(self):
        model = make_model()
        (seg,) = model.segments
        assert (seg.index, seg.start_ratio, seg.end_ratio, seg.speed_kmh) == (0, 0.0, 1.0, 25.0)

    def test_segments_returns_copies(self):
        model = make_model()
        model.segments[0].speed_kmh = 99.0
        assert model.segments[0].speed_kmh == 25.0

    def test_segment_distances_sum_to_route(self):
        model = make_model(n_segments=4)
        model.update_boundary(1, 0.37)
        total = sum(model.segment_distance_km(i) for i in range(len(model)))
        assert total == pytest.approx(10.0)

    def test_segment_at_ratio_is_half_open(self):
        model = make_model(n_segments=2)
        assert model.segment_at_ratio(0.0).index == 0
        assert model.segment_at_ratio(0.4999).index == 0
        assert model.segment_at_ratio(0.5).index == 1
        assert model.segment_at_ratio(1.0).index == 1

    def test_segment_at_ratio_clamps(self):
        model = make_model(n_segments=2)
        assert model.segment_at_ratio(-3.0).index == 0
        assert model.segment_at_ratio(3.0).index == 1

    def test_boundaries(self):
        model = make_model(n_segments=3)
        assert model.boundaries() == [0.0, 0.5, 0.75, 1.0]


# ---------------------------------------------------------------------------
# add_segment / remove_segment
# ---------------------------------------------------------------------------


class TestAddRemove:
    def test_add_splits_last_segment_in_half(self):
        model = make_model()
        model.set_speed(0, 32.0)
        new = model.add_segment()
        assert new.index == 1
        assert new.start_ratio == pytest.approx(0.5)
        assert new.speed_kmh == 32.0
        assert model.segments[0].end_ratio == pytest.approx(0.5)
        assert_contiguous(model)

    def test_add_fails_at_minimum_gap(self):
        model = make_model(min_segment_gap=0.3)
        model.add_segment()  # halves of 0.5
        before = model.segments
        with pytest.raises(MinimumGapViolation):
            model.add_segment()
        assert model.segments == before

    def test_add_allows_halves_equal_to_gap(self):
        model = make_model(min_segment_gap=0.25)
        model.add_segment()
        model.add_segment()
        assert len(model) == 3
        assert_contiguous(model)

    def test_repeated_adds_eventually_refused(self):
        model = make_model()
        with pytest.raises(MinimumGapViolation):
            for _ in range(100):
                model.add_segment()
        assert_contiguous(model)

    def test_remove_only_segment_raises(self):
        model = make_model()
        before = model.segments
        with pytest.raises(SingleSegmentInvariant):
            model.remove_segment(0)
        assert model.segments == before

    def test_rejections_share_a_base_class(self):
        assert issubclass(SingleSegmentInvariant, SegmentEditRejected)
        assert issubclass(MinimumGapViolation, SegmentEditRejected)

    def test_remove_middle_merges_into_following(self):
        model = make_model(n_segments=3)  # 0-0.5, 0.5-0.75, 0.75-1
        model.set_speed(2, 40.0)
        model.remove_segment(1)
        segs = model.segments
        assert len(segs) == 2
        assert segs[1].start_ratio == pytest.approx(0.5)
        assert segs[1].speed_kmh == 40.0
        assert_contiguous(model)

    def test_remove_last_merges_into_preceding(self):
        model = make_model(n_segments=3)
        model.remove_segment(2)
        segs = model.segments
        assert len(segs) == 2
        assert segs[1].end_ratio == 1.0
        assert segs[1].start_ratio == pytest.approx(0.5)
        assert_contiguous(model)

    def test_remove_first_renumbers(self):
        model = make_model(n_segments=3)
        model.remove_segment(0)
        assert [s.index for s in model.segments] == [0, 1]
        assert model.segments[0].start_ratio == 0.0

    def test_remove_unknown_index_raises(self):
        model = make_model(n_segments=2)
        with pytest.raises(IndexError):
            model.remove_segment(5)

    def test_reset_restores_default(self):
        model = make_model(n_segments=4)
        model.reset(make_geometry(total_m=5_000.0))
        assert len(model) == 1
        assert model.segment_distance_km(0) == pytest.approx(5.0)


# ---------------------------------------------------------------------------
# update_boundary
# ---------------------------------------------------------------------------


class TestUpdateBoundary:
    def test_moves_shared_edge_on_both_sides(self):
        model = make_model(n_segments=3)
        applied = model.update_boundary(1, 0.3, side="start")
        assert applied == pytest.approx(0.3)
        segs = model.segments
        assert segs[0].end_ratio == segs[1].start_ratio == pytest.approx(0.3)

    def test_end_handle_of_previous_segment_is_same_edge(self):
        a = make_model(n_segments=3)
        b = make_model(n_segments=3)
        a.update_boundary(1, 0.42, side="start")
        b.update_boundary(0, 0.42, side="end")
        assert a.segments == b.segments

    @pytest.mark.parametrize("ratio", [-10.0, -0.1, 0.0, 0.001, 0.2, 0.5, 0.74, 0.75, 0.99, 1.0, 5.0])
    def test_never_violates_minimum_gap(self, ratio):
        model = make_model(n_segments=3)
        model.update_boundary(1, ratio)
        model.update_boundary(2, 1.0 - ratio)
        assert_contiguous(model)

    def test_clamps_to_previous_boundary_plus_gap(self):
        model = make_model(n_segments=3)
        assert model.update_boundary(1, -1.0) == pytest.approx(0.01)

    def test_clamps_to_next_boundary_minus_gap(self):
        model = make_model(n_segments=3)
        assert model.update_boundary(1, 0.9) == pytest.approx(0.74)

    def test_route_endpoints_are_fixed(self):
        model = make_model(n_segments=2)
        with pytest.raises(ValueError):
            model.update_boundary(0, 0.2, side="start")
        with pytest.raises(ValueError):
            model.update_boundary(1, 0.8, side="end")

    def test_unknown_side_rejected(self):
        model = make_model(n_segments=2)
        with pytest.raises(ValueError, match="side"):
            model.update_boundary(1, 0.4, side="middle")

    def test_nan_rejected_without_change(self):
        model = make_model(n_segments=2)
        before = model.segments
        with pytest.raises(ValueError):
            model.update_boundary(1, float("nan"))
        assert model.segments == before


# ---------------------------------------------------------------------------
# Speeds and colours
# ---------------------------------------------------------------------------


class TestSpeedAndColour:
    @pytest.mark.parametrize("requested,expected", [(5.0, 10.0), (10.0, 10.0), (33.3, 33.3), (80.0, 60.0)])
    def test_set_speed_clamps(self, requested, expected):
        model = make_model()
        assert model.set_speed(0, requested) == pytest.approx(expected)
        assert model.segments[0].speed_kmh == pytest.approx(expected)

    def test_set_speed_leaves_ratios(self):
        model = make_model(n_segments=2)
        before = model.boundaries()
        model.set_speed(1, 45.0)
        assert model.boundaries() == before

    def test_color_for_cycles_palette(self):
        assert color_for(0) == DEFAULT_PALETTE[0]
        assert color_for(8) == DEFAULT_PALETTE[0]
        assert color_for(11) == DEFAULT_PALETTE[3]

    def test_color_follows_index_after_removal(self):
        model = make_model(n_segments=3)
        model.remove_segment(0)
        assert model.color(0) == DEFAULT_PALETTE[0]
        assert model.color(1) == DEFAULT_PALETTE[1]


# ---------------------------------------------------------------------------
# Change notification
# ---------------------------------------------------------------------------


class TestNotifications:
    def test_edits_publish_segments_changed(self):
        bus = EventBus()
        received: list[SegmentsChanged] = []
        bus.subscribe(SegmentsChanged, received.append)
        model = SegmentModel(make_geometry(), bus=bus)

        model.add_segment()
        model.set_speed(0, 30.0)
        model.update_boundary(1, 0.4)
        model.remove_segment(1)

        assert [e.reason for e in received] == ["add", "speed", "boundary", "remove"]
        assert [e.revision for e in received] == [1, 2, 3, 4]
        assert received[-1].segment_count == 1

    def test_rejected_edit_keeps_revision(self):
        model = make_model()
        rev = model.revision
        with pytest.raises(SingleSegmentInvariant):
            model.remove_segment(0)
        assert model.revision == rev

    def test_failing_subscriber_surfaces_after_edit_is_applied(self):
        bus = EventBus()

        def broken(event: SegmentsChanged) -> None:
            raise RuntimeError("listener down")

        bus.subscribe(SegmentsChanged, broken)
        model = SegmentModel(make_geometry(), bus=bus)

        with pytest.raises(RuntimeError, match="listener down"):
            model.add_segment()
        assert len(model) == 2
        assert model.revision == 1
