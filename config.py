import logging

# Frame rate of the game loop (the camera runs at its own ~30 fps)
FPS = 60

# Window
WIN_W = 560
WIN_H = 640
TITLE = "Face Tetris (tilt=MOVE, open mouth=ROTATE, lift head=FAST DROP, C=Calibrate)"

LOG_LEVEL = logging.INFO

# Camera
CAM_INDEX = 0
CAM_WIDTH = 640
CAM_HEIGHT = 480

# Calibration
CALIBRATION_FRAMES = 30
CALIBRATION_BANNER_SECONDS = 5.0

# Gesture thresholds
TILT_THRESHOLD = 0.15
FAST_TILT_THRESHOLD = 0.30
MOUTH_OPEN_THRESHOLD = 0.02
LIFT_RATIO_THRESHOLD = 0.75
HEAD_ROLL_VETO_DEGREES = 45.0

# Timing (seconds)
ACTION_COOLDOWN_SECONDS = 0.15
CONTINUOUS_MOVE_HOLD_SECONDS = 1.0
CONTINUOUS_MOVE_INTERVAL = 0.15
FAST_MOVE_INTERVAL = 0.04
HEAD_LIFT_TRIGGER_DELAY = 0.5
FAST_DROP_INTERVAL = 0.08

# Sensitivity -> repeat speed mapping
SENSITIVITY_TILT_MIN = 0.05
SENSITIVITY_TILT_MAX = 0.30
MIN_CONTINUOUS_INTERVAL = 0.05
MIN_FAST_INTERVAL = 0.03

# Face-loss filtering
DETECTION_HISTORY_SIZE = 10
MAX_FAILURE_COUNT = 30
MIN_RECENT_SUCCESS_RATE = 0.2
RECOVER_FRAMES = 2
FACE_LOST_MESSAGE_SECONDS = 3.0

# Recovery
MAX_PROCESSING_ERRORS = 50
CAMERA_RESTART_DELAY = 2.0
