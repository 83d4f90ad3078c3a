"""Tests for cumulative rotation tracking."""

from __future__ import annotations

import pytest
from skeletons import make_samples

from skate_analyzer.analysis.rotation import (
    CumulativeRotationTracker,
    direction_locked_delta,
    dominant_direction,
    rotation_count,
    track_cumulative_rotation,
    wrap_delta,
)
from skate_analyzer.core.config import RotationSettings
from skate_analyzer.core.types import AngleSample, RotationDirection


def _to_signed(angle: float) -> float:
    """Express a [0, 360) angle in (-180, 180]."""
    return angle - 360.0 if angle > 180.0 else angle


class TestWrapDelta:
    """Tests for the ±180° delta rule."""

    def test_small_delta_unchanged(self) -> None:
        """Deltas within ±180 pass through."""
        assert wrap_delta(30.0) == 30.0
        assert wrap_delta(-30.0) == -30.0
        assert wrap_delta(180.0) == 180.0

    def test_wraps_large_deltas(self) -> None:
        """Deltas beyond ±180 are folded by one turn."""
        assert wrap_delta(350.0) == pytest.approx(-10.0)
        assert wrap_delta(-350.0) == pytest.approx(10.0)


class TestDominantDirection:
    """Tests for the first pass."""

    def test_ccw(self) -> None:
        """Increasing angles through the wrap are counter-clockwise."""
        direction, net = dominant_direction([300.0, 340.0, 20.0, 60.0])
        assert direction is RotationDirection.CCW
        assert net == pytest.approx(120.0)

    def test_cw(self) -> None:
        """Decreasing angles are clockwise."""
        direction, net = dominant_direction([60.0, 20.0, 340.0, 300.0])
        assert direction is RotationDirection.CW
        assert net == pytest.approx(-120.0)

    def test_static_is_none(self) -> None:
        """No motion has no direction."""
        direction, net = dominant_direction([45.0, 45.0, 45.0])
        assert direction is RotationDirection.NONE
        assert net == 0.0


class TestDirectionLockedDelta:
    """Tests for the second-pass correction."""

    def test_ccw_folds_large_backward_step(self) -> None:
        """A backward jump beyond the noise threshold continues the spin."""
        assert direction_locked_delta(-330.0, RotationDirection.CCW, 20.0) == pytest.approx(30.0)

    def test_ccw_keeps_small_wobble(self) -> None:
        """Counter-rotation within the noise threshold is kept."""
        assert direction_locked_delta(-15.0, RotationDirection.CCW, 20.0) == -15.0

    def test_cw_folds_large_forward_step(self) -> None:
        """Clockwise spins fold large positive steps."""
        assert direction_locked_delta(330.0, RotationDirection.CW, 20.0) == pytest.approx(-30.0)

    def test_none_passes_through(self) -> None:
        """Without a direction no correction is applied."""
        assert direction_locked_delta(-330.0, RotationDirection.NONE, 20.0) == -330.0


class TestCumulativeRotationTracker:
    """Tests for the two-pass tracker."""

    def test_three_ccw_turns(self, rotation_settings: RotationSettings) -> None:
        """30 uniform +36° steps make exactly three turns."""
        samples = make_samples([(i * 36.0) % 360.0 for i in range(31)])
        cumulative = CumulativeRotationTracker(rotation_settings).track(samples)

        assert cumulative[-1].angle == pytest.approx(1080.0)
        assert rotation_count(cumulative, 0, 30) == pytest.approx(3.0)

    def test_three_cw_turns(self, rotation_settings: RotationSettings) -> None:
        """Clockwise spins accumulate negatively but count positively."""
        samples = make_samples([(-i * 36.0) % 360.0 for i in range(31)])
        cumulative = CumulativeRotationTracker(rotation_settings).track(samples)

        assert cumulative[-1].angle == pytest.approx(-1080.0)
        assert rotation_count(cumulative, 0, 30) == pytest.approx(3.0)

    def test_first_sample_is_zero(self) -> None:
        """The series always starts at exactly zero."""
        samples = make_samples([123.0, 150.0, 170.0])
        cumulative = track_cumulative_rotation(samples)

        assert cumulative[0].angle == 0.0
        assert cumulative[0].frame_index == 0

    def test_final_sign_matches_first_pass(self) -> None:
        """The total turns the same way as the wrapped net rotation."""
        for angles in (
            [10.0, 50.0, 100.0, 150.0, 200.0, 250.0],
            [250.0, 200.0, 150.0, 100.0, 50.0, 10.0],
            [350.0, 10.0, 5.0, 30.0, 60.0],
        ):
            samples = make_samples(angles)
            _, net = dominant_direction(angles)
            cumulative = track_cumulative_rotation(samples)
            assert (cumulative[-1].angle > 0) == (net > 0)

    def test_encoding_invariance(self) -> None:
        """[0, 360) and (-180, 180] encodings give the same cumulative series."""
        steps = [25.0, 40.0, 15.0, 33.0, 50.0, 12.0, 38.0, 27.0, 45.0, 30.0] * 3
        angles = [0.0]
        for step in steps:
            angles.append((angles[-1] + step) % 360.0)

        unsigned = track_cumulative_rotation(make_samples(angles))
        signed = track_cumulative_rotation(make_samples([_to_signed(a) for a in angles]))

        assert len(unsigned) == len(signed)
        for a, b in zip(unsigned, signed):
            assert a.angle == pytest.approx(b.angle, abs=1e-9)

    def test_backward_glitch_is_absorbed(self, rotation_settings: RotationSettings) -> None:
        """A sample 300° behind lands on the heading 60° ahead and adds no turn."""
        angles = [(i * 30.0) % 360.0 for i in range(25)]
        angles[10] = (angles[9] - 300.0) % 360.0

        cumulative = CumulativeRotationTracker(rotation_settings).track(make_samples(angles))

        count = rotation_count(cumulative, 0, 24)
        assert count is not None
        assert abs(count - 2.0) < 0.1

    def test_backward_crossing_folded_into_spin(
        self, rotation_settings: RotationSettings
    ) -> None:
        """A 170° → 10° step mid-spin is read as 200° forward, not 160° back."""
        angles = [0.0, 40.0, 80.0, 130.0, 170.0, 10.0, 50.0, 90.0, 130.0, 170.0, 210.0, 250.0]

        direction, net = dominant_direction(angles)
        cumulative = CumulativeRotationTracker(rotation_settings).track(make_samples(angles))

        assert direction is RotationDirection.CCW
        assert net == pytest.approx(250.0)
        assert cumulative[4].angle == pytest.approx(170.0)
        assert cumulative[5].angle == pytest.approx(370.0)
        assert cumulative[-1].angle == pytest.approx(610.0)
        assert rotation_count(cumulative, 0, 11) == pytest.approx(610.0 / 360.0)

    def test_small_reversal_is_kept(self, rotation_settings: RotationSettings) -> None:
        """Landing wobble below the threshold reduces the total."""
        cumulative = CumulativeRotationTracker(rotation_settings).track(
            make_samples([0.0, 90.0, 180.0, 170.0])
        )
        assert cumulative[-1].angle == pytest.approx(170.0)

    def test_too_few_samples(self) -> None:
        """Fewer than two samples produce no series."""
        assert track_cumulative_rotation([]) == []
        assert track_cumulative_rotation(make_samples([10.0])) == []

    def test_idempotent(self) -> None:
        """Tracking the same input twice gives identical output."""
        samples = make_samples([(i * 17.0) % 360.0 for i in range(40)])
        tracker = CumulativeRotationTracker()
        assert tracker.track(samples) == tracker.track(samples)

    def test_noise_threshold_setting(self) -> None:
        """A wider threshold keeps larger reversals."""
        samples = make_samples([0.0, 90.0, 180.0, 150.0])
        narrow = track_cumulative_rotation(samples, RotationSettings(noise_threshold_deg=20.0))
        wide = track_cumulative_rotation(samples, RotationSettings(noise_threshold_deg=40.0))

        assert narrow[-1].angle == pytest.approx(510.0)
        assert wide[-1].angle == pytest.approx(150.0)


class TestRotationCount:
    """Tests for counting revolutions inside a frame window."""

    def test_window_subset(self) -> None:
        """Only the samples inside the window count."""
        cumulative = track_cumulative_rotation(
            make_samples([(i * 36.0) % 360.0 for i in range(31)])
        )
        assert rotation_count(cumulative, 10, 20) == pytest.approx(1.0)

    def test_window_snaps_to_available_samples(self) -> None:
        """Window edges snap inward to the nearest samples."""
        cumulative = [
            AngleSample(timestamp=0.0, frame_index=0, angle=0.0),
            AngleSample(timestamp=0.1, frame_index=3, angle=180.0),
            AngleSample(timestamp=0.2, frame_index=6, angle=540.0),
            AngleSample(timestamp=0.3, frame_index=9, angle=720.0),
        ]
        assert rotation_count(cumulative, 1, 8) == pytest.approx(1.0)

    def test_empty_window(self) -> None:
        """A window containing no samples has no count."""
        cumulative = [
            AngleSample(timestamp=0.0, frame_index=0, angle=0.0),
            AngleSample(timestamp=0.5, frame_index=10, angle=360.0),
        ]
        assert rotation_count(cumulative, 2, 8) is None

    def test_too_short_series(self) -> None:
        """A series shorter than two samples has no count."""
        assert rotation_count([], 0, 10) is None
