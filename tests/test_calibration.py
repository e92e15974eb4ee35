import numpy as np
import pytest

from calibration import CalibrationState
from conftest import make_face


def test_baseline_is_mean_of_thirty_frames():
    cal = CalibrationState()
    noses = np.linspace(0.40, 0.60, 30)
    gaps = np.linspace(0.005, 0.015, 30)

    results = []
    for i in range(30):
        results.append(cal.add_frame(make_face(nose_x=noses[i], mouth_gap=gaps[i]), now=float(i)))

    finished = [r for r in results if r is not None]
    assert len(finished) == 1
    assert results[-1] is finished[0]
    assert cal.done
    assert cal.completed_at == 29.0

    baseline = finished[0]
    assert baseline.nose[0] == pytest.approx(noses.mean())
    assert baseline.mouth_rest_distance == pytest.approx(gaps.mean())
    assert baseline.face_ratio is None


def test_no_second_baseline_after_completion():
    cal = CalibrationState(max_frames=3)
    for i in range(3):
        cal.add_frame(make_face(), now=i)
    assert cal.add_frame(make_face(), now=4) is None
    assert cal.frames == 3


def test_frames_missing_landmarks_do_not_count():
    cal = CalibrationState(max_frames=3)
    cal.add_frame(make_face(), now=0)
    assert cal.add_frame(make_face()[:5], now=1) is None
    cal.add_frame(make_face(), now=2)
    assert cal.frames == 2
    assert cal.skipped == 1
    assert not cal.done
    assert cal.add_frame(make_face(), now=3) is not None


def test_progress():
    cal = CalibrationState(max_frames=4)
    cal.add_frame(make_face(), now=0)
    assert cal.progress == pytest.approx(0.25)


def test_reset_is_idempotent():
    cal = CalibrationState(max_frames=2)
    cal.add_frame(make_face(), now=0)
    cal.add_frame(make_face(), now=1)

    cal.reset()
    once = (cal.frames, cal.mouth_sum, cal.skipped, cal.baseline, cal.completed_at)
    cal.reset()
    twice = (cal.frames, cal.mouth_sum, cal.skipped, cal.baseline, cal.completed_at)

    assert once == twice == (0, 0.0, 0, None, None)
    assert not cal.nose_sum.any()
