import logging
import os
import threading
import time

os.environ.setdefault("TF_CPP_MIN_LOG_LEVEL", "3")
os.environ.setdefault("GLOG_minloglevel", "3")

import cv2
import mediapipe as mp

import config as cfg
from face_signals import to_points

logger = logging.getLogger(__name__)


class FaceTracker:
    """
    Webcam + MediaPipe Face Mesh. read() returns the landmarks of one face
    as an (N, 3) array of normalized points, or None when no face is found.
    """

    def __init__(self, cam_index=cfg.CAM_INDEX, width=cfg.CAM_WIDTH, height=cfg.CAM_HEIGHT):
        self.cam_index = cam_index
        self.width = width
        self.height = height
        self.cap = None
        self.face_mesh = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self.cap is not None and self.cap.isOpened()

    def open(self):
        with self._lock:
            self._open()

    def _open(self):
        self.cap = cv2.VideoCapture(self.cam_index)
        if not self.cap.isOpened():
            self.cap = None
            raise RuntimeError("Could not open webcam.")
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, 30)

        self.face_mesh = mp.solutions.face_mesh.FaceMesh(
            static_image_mode=False,
            max_num_faces=1,
            refine_landmarks=False,
            min_detection_confidence=0.5,
            min_tracking_confidence=0.5
        )
        logger.info("Camera %s opened", self.cam_index)

    def read(self):
        """
        Returns (ok, landmarks). ok is False when the camera stream failed;
        landmarks is None when the frame had no face.
        """
        with self._lock:
            return self._read()

    def _read(self):
        if not self.is_open or self.face_mesh is None:
            return False, None

        ok, frame = self.cap.read()
        if not ok:
            return False, None

        # Selfie view: tilting right reads as right
        frame = cv2.flip(frame, 1)
        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        res = self.face_mesh.process(rgb)

        if not res.multi_face_landmarks:
            return True, None
        return True, to_points(res.multi_face_landmarks[0].landmark)

    def release(self):
        with self._lock:
            self._release()

    def _release(self):
        if self.face_mesh is not None:
            try:
                self.face_mesh.close()
            except Exception:
                logger.debug("FaceMesh close failed", exc_info=True)
            self.face_mesh = None
        if self.cap is not None:
            self.cap.release()
            self.cap = None
        logger.info("Camera released")


class CameraLoop:
    """
    Frame driver: a daemon thread that feeds every camera frame into
    `control.on_frame`. Runs independently of the game loop.
    """

    def __init__(self, tracker: FaceTracker, control, idle_sleep=0.05):
        self.tracker = tracker
        self.control = control
        self.idle_sleep = idle_sleep
        self._running = False
        self._th = None

    def start(self):
        self._running = True
        self._th = threading.Thread(target=self._loop, name="camera-loop", daemon=True)
        self._th.start()

    def stop(self):
        self._running = False
        if self._th is not None:
            self._th.join(timeout=1.0)
            self._th = None

    def _loop(self):
        while self._running:
            if not self.control.is_active:
                time.sleep(self.idle_sleep)
                continue
            try:
                ok, landmarks = self.tracker.read()
            except Exception:
                logger.exception("Camera read failed")
                ok, landmarks = False, None

            if not ok:
                self.control.handle_stream_interruption()
                time.sleep(self.idle_sleep)
                continue
            self.control.on_frame(landmarks)
