import math
from types import SimpleNamespace

import numpy as np
import pytest

import face_signals as fs

FRAME = 1.0 / 30

REST_GAP = 0.01
OPEN_GAP = 0.06
FACE_HEIGHT = 0.3
FACE_WIDTH = 0.4


def make_face(tilt=0.0, mouth_gap=REST_GAP, height_scale=1.0, nose_x=0.5, n=468):
    """Synthetic Face Mesh frame with controllable tilt, mouth and face height."""
    pts = np.full((n, 3), 0.5)
    pts[fs.NOSE_TIP] = (nose_x, 0.5, -0.05)

    angle = math.asin(tilt)
    eye_dx = 0.2
    pts[fs.LEFT_EYE] = (0.4, 0.4, 0.0)
    pts[fs.RIGHT_EYE] = (0.4 + eye_dx, 0.4 + eye_dx * math.tan(angle), 0.0)

    pts[fs.UPPER_LIP] = (0.5, 0.65, 0.0)
    pts[fs.LOWER_LIP] = (0.5, 0.65 + mouth_gap, 0.0)
    pts[fs.FOREHEAD] = (0.5, 0.65 - FACE_HEIGHT * height_scale, 0.0)
    pts[fs.LEFT_EAR] = (0.5 - FACE_WIDTH / 2, 0.45, 0.0)
    pts[fs.RIGHT_EAR] = (0.5 + FACE_WIDTH / 2, 0.45, 0.0)
    return pts


class FakeGame:
    def __init__(self, running=True, piece_id=1):
        self.game_running = running
        self.current_piece = SimpleNamespace(id=piece_id)
        self.calls = []
        self.move_result = True

    def move_piece(self, dx, dy):
        self.calls.append(("move", dx, dy))
        return self.move_result

    def rotate_piece(self):
        self.calls.append(("rotate",))

    def moves(self, dx, dy):
        return self.calls.count(("move", dx, dy))


class FakeSource:
    def __init__(self, fail_open=False):
        self.fail_open = fail_open
        self.opened = 0
        self.released = 0

    def open(self):
        if self.fail_open:
            raise RuntimeError("Could not open webcam.")
        self.opened += 1

    def release(self):
        self.released += 1


@pytest.fixture
def game():
    return FakeGame()


@pytest.fixture
def face():
    return make_face
