from detection import DetectionStabilityState
from conftest import FRAME


def feed(state, pattern, t0=0.0):
    flips = []
    t = t0
    for found in pattern:
        if state.update(found, t):
            flips.append((t, state.face_detected))
        t += FRAME
    return flips, t


def detected_state():
    state = DetectionStabilityState()
    feed(state, [True] * 10)
    assert state.face_detected
    return state


def test_recovery_needs_consecutive_frames():
    state = DetectionStabilityState()
    assert state.update(True, 0.0) is False
    assert not state.face_detected
    assert state.update(True, FRAME) is True
    assert state.face_detected


def test_29_misses_then_a_face_does_not_report_loss():
    state = detected_state()
    flips, _ = feed(state, [False] * 29 + [True])
    assert flips == []
    assert state.face_detected
    assert state.failure_count == 0


def test_sustained_loss_reports_once():
    state = detected_state()
    flips, _ = feed(state, [False] * 31)
    assert len(flips) == 1
    assert flips[0][1] is False
    assert state.failure_count == 31


def test_loss_needs_low_success_rate():
    state = DetectionStabilityState(max_failure_count=3)
    feed(state, [True] * 10)
    # failure count reaches 3 but history still has 7/10 successes
    flips, _ = feed(state, [False] * 3)
    assert flips == []
    assert state.face_detected


def test_glitches_never_flicker():
    state = detected_state()
    flips, _ = feed(state, [False, False, True] * 40)
    assert flips == []


def test_history_is_bounded():
    state = DetectionStabilityState()
    feed(state, [True] * 50)
    assert len(state.history) == 10
    assert state.recent_success_rate == 1.0


def test_force_lost_and_reset():
    state = detected_state()
    state.force_lost()
    assert not state.face_detected
    assert state.failure_count == state.max_failure_count

    state.reset(now=5.0)
    assert state.failure_count == 0
    assert len(state.history) == 0
    assert state.seconds_since_success(6.0) == 1.0
