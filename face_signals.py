import math

import numpy as np

# MediaPipe Face Mesh landmark indices.
NOSE_TIP = 1
UPPER_LIP = 13
UPPER_LIP_ALT = 12
LOWER_LIP = 14
LOWER_LIP_ALT = 15
LEFT_EYE = 33
RIGHT_EYE = 362
FOREHEAD = 10
LEFT_EAR = 234
RIGHT_EAR = 454
LEFT_TEMPLE = 172
RIGHT_TEMPLE = 397

# Face-geometry signals need the full mesh.
FULL_MESH_SIZE = 468


def to_points(landmarks) -> np.ndarray:
    """Converts MediaPipe NormalizedLandmarks into an (N, 3) float array."""
    return np.array([(p.x, p.y, p.z) for p in landmarks], dtype=np.float64)


def point(pts, idx, fallback=None):
    """Returns landmark `idx` (or `fallback`), or None if the frame is too short."""
    if pts is None:
        return None
    if idx < len(pts):
        return pts[idx]
    if fallback is not None and fallback < len(pts):
        return pts[fallback]
    return None


def dist(a, b) -> float:
    return float(np.linalg.norm(a[:2] - b[:2]))


def eye_line_angle(pts):
    """Angle (radians) of the line from the left eye to the right eye."""
    left = point(pts, LEFT_EYE)
    right = point(pts, RIGHT_EYE)
    if left is None or right is None:
        return None
    return math.atan2(right[1] - left[1], right[0] - left[0])


def head_tilt(pts, baseline_nose=None):
    """
    Signed sideways lean in roughly [-1, 1], 0 when the eyes are level.
    Falls back to horizontal nose displacement from the calibrated nose.
    """
    angle = eye_line_angle(pts)
    if angle is not None:
        return math.sin(angle)

    nose = point(pts, NOSE_TIP)
    if nose is None or baseline_nose is None:
        return None
    return float(nose[0] - baseline_nose[0])


def mouth_distance(pts):
    upper = point(pts, UPPER_LIP, UPPER_LIP_ALT)
    lower = point(pts, LOWER_LIP, LOWER_LIP_ALT)
    if upper is None or lower is None:
        return None
    return abs(float(upper[1] - lower[1]))


def mouth_open_delta(pts, rest_distance):
    """Lip gap relative to the calibrated rest gap. Positive = opening."""
    current = mouth_distance(pts)
    if current is None or rest_distance is None:
        return None
    return current - rest_distance


def face_height(pts):
    if pts is None or len(pts) < FULL_MESH_SIZE:
        return None
    return dist(pts[FOREHEAD], pts[UPPER_LIP])


def face_width(pts):
    if pts is None or len(pts) < FULL_MESH_SIZE:
        return None
    left = point(pts, LEFT_EAR, LEFT_TEMPLE)
    right = point(pts, RIGHT_EAR, RIGHT_TEMPLE)
    if left is None or right is None:
        return None
    return dist(left, right)


def face_height_width_ratio(pts):
    """
    Forehead-to-mouth height over ear-to-ear width.
    The ratio shrinks when the chin is lifted towards the camera axis.
    """
    height = face_height(pts)
    width = face_width(pts)
    if height is None or not width:
        return None
    return height / width


def head_roll_degrees(pts):
    """Eye-line angle in degrees. Positive means the head leans right."""
    if pts is None or len(pts) < FULL_MESH_SIZE:
        return None
    angle = eye_line_angle(pts)
    if angle is None:
        return None
    return math.degrees(angle)
