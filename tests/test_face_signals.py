import numpy as np
import pytest

import face_signals as fs
from conftest import FACE_HEIGHT, FACE_WIDTH, REST_GAP, make_face


def test_level_head_has_zero_tilt():
    assert fs.head_tilt(make_face()) == pytest.approx(0.0)


def test_tilt_sign_follows_eye_line():
    assert fs.head_tilt(make_face(tilt=0.2)) == pytest.approx(0.2)
    assert fs.head_tilt(make_face(tilt=-0.35)) == pytest.approx(-0.35)


def test_tilt_falls_back_to_nose_without_eyes():
    pts = make_face(nose_x=0.56)[:20]
    baseline_nose = np.array([0.5, 0.5, 0.0])
    assert fs.head_tilt(pts, baseline_nose) == pytest.approx(0.06)
    assert fs.head_tilt(pts, None) is None


def test_mouth_open_delta_relative_to_rest():
    assert fs.mouth_distance(make_face()) == pytest.approx(REST_GAP)
    assert fs.mouth_open_delta(make_face(mouth_gap=0.05), REST_GAP) == pytest.approx(0.04)
    assert fs.mouth_open_delta(make_face()[:5], REST_GAP) is None


def test_truncated_frame_has_no_mouth_signal():
    # upper lip present, lower lip and its fallback missing
    assert fs.mouth_distance(make_face()[:14]) is None


def test_face_ratio():
    assert fs.face_height_width_ratio(make_face()) == pytest.approx(FACE_HEIGHT / FACE_WIDTH)
    lifted = fs.face_height_width_ratio(make_face(height_scale=0.6))
    assert lifted == pytest.approx(0.6 * FACE_HEIGHT / FACE_WIDTH)


def test_face_geometry_needs_full_mesh():
    short = make_face(n=467)
    assert fs.face_height_width_ratio(short) is None
    assert fs.head_roll_degrees(short) is None


def test_roll_degrees():
    assert fs.head_roll_degrees(make_face()) == pytest.approx(0.0)
    assert fs.head_roll_degrees(make_face(tilt=0.5)) == pytest.approx(30.0)


def test_to_points_reads_landmark_objects():
    class P:
        def __init__(self, x, y, z):
            self.x, self.y, self.z = x, y, z

    pts = fs.to_points([P(0.1, 0.2, 0.3), P(0.4, 0.5, 0.6)])
    assert pts.shape == (2, 3)
    assert pts[1, 2] == pytest.approx(0.6)
