import pytest

from core.viewport import (
    ViewportController,
    ViewportState,
    ZoomLimits,
    clamp_time,
    sample_range,
    time_to_x,
    x_to_time,
)


def _state(t=0.0, pps=38.0, width=380.0, height=200.0):
    return ViewportState(current_time_s=t, px_per_second=pps, canvas_width_px=width, canvas_height_px=height)


def test_visible_duration_and_end_time():
    state = _state(t=4.0, pps=38.0, width=380.0)
    assert state.visible_duration_s == pytest.approx(10.0)
    assert state.end_time_s == pytest.approx(14.0)


def test_sample_range_floors_both_ends():
    state = _state(t=1.25, pps=10.0, width=25.0)  # 1.25 .. 3.75 s
    assert sample_range(state, 1000, 10.0) == (12, 37)


def test_sample_range_clamps_to_channel():
    state = _state(t=8.0, pps=10.0, width=50.0)  # 8 .. 13 s
    assert sample_range(state, 1000, 100.0) == (800, 1000)
    past_end = _state(t=20.0, pps=10.0, width=50.0)
    assert sample_range(past_end, 1000, 100.0) == (1000, 1000)


def test_sample_range_degenerate_inputs():
    assert sample_range(_state(), 0, 100.0) == (0, 0)
    assert sample_range(_state(), 100, 0.0) == (0, 0)
    assert sample_range(_state(width=0.0), 100, 10.0) == (0, 0)


def test_window_start_is_monotonic_in_time():
    times = [i * 0.137 for i in range(200)]
    starts = [sample_range(_state(t=t), 5000, 256.0)[0] for t in times]
    assert starts == sorted(starts)


def test_time_pixel_mapping_round_trips():
    state = _state(t=2.0, pps=50.0)
    assert time_to_x(2.0, state) == 0.0
    assert time_to_x(3.5, state) == pytest.approx(75.0)
    assert x_to_time(75.0, state) == pytest.approx(3.5)


def test_clamp_time():
    assert clamp_time(-1.0, 10.0) == 0.0
    assert clamp_time(11.0, 10.0) == 10.0
    assert clamp_time(3.0, -5.0) == 0.0


def test_controller_seek_and_advance_clamp():
    ctrl = ViewportController(total_duration=30.0)
    assert ctrl.seek(12.0) == 12.0
    assert ctrl.advance(100.0) == 30.0
    assert ctrl.at_end
    assert ctrl.seek(-4.0) == 0.0
    assert not ctrl.at_end


def test_controller_shrinking_duration_pulls_playhead_back():
    ctrl = ViewportController(total_duration=30.0)
    ctrl.seek(25.0)
    ctrl.set_total_duration(10.0)
    assert ctrl.state.current_time_s == 10.0


def test_zoom_is_clamped_to_limits():
    ctrl = ViewportController(limits=ZoomLimits(5.0, 100.0))
    assert ctrl.set_zoom(500.0) == 100.0
    assert ctrl.set_zoom(1.0) == 5.0
    assert ctrl.zoom_by(2.0) == 10.0
    with pytest.raises(ValueError):
        ctrl.set_zoom(0.0)
    with pytest.raises(ValueError):
        ctrl.zoom_by(-1.0)


def test_initial_state_is_sanitised():
    ctrl = ViewportController(_state(t=50.0, pps=9000.0), total_duration=20.0)
    assert ctrl.state.current_time_s == 20.0
    assert ctrl.state.px_per_second == 2000.0


def test_canvas_size_and_y_scale():
    ctrl = ViewportController()
    ctrl.set_canvas_size(640, -3)
    assert (ctrl.state.canvas_width_px, ctrl.state.canvas_height_px) == (640.0, 0.0)
    ctrl.set_y_scale(2.5)
    assert ctrl.state.y_scale == 2.5
    with pytest.raises(ValueError):
        ctrl.set_y_scale(0)
