import random

import pytest

from conftest import FRAME, make_face
from head_control import HeadControl
from main import Orchestrator, status_lines
from tetris_game import TetrisGame


@pytest.fixture
def wired():
    game = TetrisGame(rng=random.Random(3))
    control = HeadControl(game)
    control.is_active = True
    return game, control, Orchestrator(game, control)


def calibrate(control):
    for i in range(30):
        control.on_frame(make_face(), now=i * FRAME)
    return 30 * FRAME


def test_game_starts_after_calibration(wired):
    game, control, _ = wired
    assert not game.game_running
    calibrate(control)
    assert game.game_running


def test_face_loss_pauses_and_return_resumes(wired):
    game, control, orch = wired
    t = calibrate(control)

    for i in range(31):
        control.on_frame(None, now=t + i * FRAME)
    assert not game.game_running
    assert orch.paused_by_camera

    t += 31 * FRAME
    control.on_frame(make_face(), now=t)
    control.on_frame(make_face(), now=t + FRAME)
    assert game.game_running
    assert not orch.paused_by_camera


def test_face_return_does_not_resume_manual_pause(wired):
    game, control, orch = wired
    t = calibrate(control)
    orch.toggle_pause()
    assert not game.game_running

    for i in range(31):
        control.on_frame(None, now=t + i * FRAME)
    t += 31 * FRAME
    control.on_frame(make_face(), now=t)
    control.on_frame(make_face(), now=t + FRAME)
    assert not game.game_running


def test_camera_restart_resumes_only_after_recalibration(wired):
    game, control, orch = wired
    t = calibrate(control)

    for i in range(31):
        control.on_frame(None, now=t + i * FRAME)
    assert orch.paused_by_camera
    control._restart_camera(control._generation)
    assert not control.is_calibrated

    t += 31 * FRAME
    for i in range(29):
        control.on_frame(make_face(), now=t + i * FRAME)
    assert control.face_detected
    assert not game.game_running

    control.on_frame(make_face(), now=t + 29 * FRAME)
    assert control.is_calibrated
    assert game.game_running
    assert not orch.paused_by_camera
    assert not game.game_running


def test_toggle_pause_needs_calibration_when_camera_on(wired):
    game, control, orch = wired
    orch.toggle_pause()
    assert not game.game_running

    control.is_active = False
    orch.toggle_pause()
    assert game.game_running


def test_piece_placed_resets_fast_drop(wired):
    game, control, _ = wired
    calibrate(control)
    control.lift.is_triggered = True
    control.lift.fast_drop_piece_id = game.current_piece.id
    game.hard_drop()
    assert not control.is_fast_drop_active()


def test_status_lines():
    game = TetrisGame(rng=random.Random(3))
    control = HeadControl(game)
    assert status_lines(control.status(now=0.0))[0].startswith("Camera off")

    control.is_active = True
    lines = status_lines(control.status(now=0.0))
    assert "Calibrating 0%" in lines

    control.error_message = "Camera Error - restart the game"
    assert status_lines(control.status(now=0.0)) == ["Camera Error - restart the game"]
