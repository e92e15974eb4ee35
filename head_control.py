import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

import config as cfg
import face_signals as fs
from calibration import CalibrationState
from detection import DetectionStabilityState
from input_state import Command, MouthState, TiltMoveState
from lift_state import LiftDropState

logger = logging.getLogger(__name__)


@dataclass
class Sensitivity:
    """Runtime thresholds plus the repeat intervals derived from them."""
    tilt_threshold: float
    lift_threshold: float
    mouth_threshold: float
    continuous_interval: float
    fast_interval: float
    fast_tilt_threshold: float = cfg.FAST_TILT_THRESHOLD

    @classmethod
    def from_thresholds(cls, tilt_threshold, lift_threshold, mouth_threshold):
        """
        Maps tilt sensitivity to move speed: a lower (more sensitive) tilt
        threshold also repeats faster. Intervals never go below the floors in
        config.
        """
        span = cfg.SENSITIVITY_TILT_MAX - cfg.SENSITIVITY_TILT_MIN
        factor = (cfg.SENSITIVITY_TILT_MAX - tilt_threshold) / span
        return cls(
            tilt_threshold=tilt_threshold,
            lift_threshold=lift_threshold,
            mouth_threshold=mouth_threshold,
            continuous_interval=max(cfg.MIN_CONTINUOUS_INTERVAL,
                                    cfg.CONTINUOUS_MOVE_INTERVAL - factor * 0.100),
            fast_interval=max(cfg.MIN_FAST_INTERVAL,
                              cfg.FAST_MOVE_INTERVAL - factor * 0.060),
        )

    @classmethod
    def default(cls):
        return cls.from_thresholds(cfg.TILT_THRESHOLD, cfg.LIFT_RATIO_THRESHOLD, cfg.MOUTH_OPEN_THRESHOLD)


class HeadControl:
    """
    Turns face landmark frames into game commands.

    `game` must provide move_piece(dx, dy) -> bool, rotate_piece(),
    game_running and current_piece (with an `id`). `source` is the landmark
    source (open() / release()); it is only used for stop() and restarts.

    Every public method is safe to call from any thread; they serialize on
    one lock. Only start() raises, with RuntimeError when the source cannot
    be opened; the rest never do.
    """

    def __init__(self, game, source=None, sensitivity: Optional[Sensitivity] = None):
        self.game = game
        self.source = source
        self.sensitivity = sensitivity or Sensitivity.default()

        self.action_cooldown = cfg.ACTION_COOLDOWN_SECONDS
        self.continuous_hold_seconds = cfg.CONTINUOUS_MOVE_HOLD_SECONDS
        self.max_processing_errors = cfg.MAX_PROCESSING_ERRORS
        self.restart_delay = cfg.CAMERA_RESTART_DELAY

        self.calibration = CalibrationState()
        self.detection = DetectionStabilityState()
        self.tilt = TiltMoveState()
        self.mouth = MouthState()
        self.lift = LiftDropState(lift_threshold=self.sensitivity.lift_threshold)

        self.last_action_time: Optional[float] = None
        self.last_tilt_value: Optional[float] = None
        self.processing_errors = 0
        self.frame_counter = 0

        self.is_active = False
        self.error_message: Optional[str] = None

        self._face_listeners: List[Callable[[bool], None]] = []
        self._calibration_listeners: List[Callable[[], None]] = []

        self._lock = threading.RLock()
        self._restart_timer: Optional[threading.Timer] = None
        self._restart_pending = False
        self._generation = 0

    # ---------------------------------------------------------------- events
    def add_face_status_listener(self, callback: Callable[[bool], None]):
        """`callback(is_detected)` fires only when the stable face status flips."""
        self._face_listeners.append(callback)

    def add_calibration_listener(self, callback: Callable[[], None]):
        """`callback()` fires once per calibration session when the baseline is ready."""
        self._calibration_listeners.append(callback)

    def _emit(self, listeners, *args):
        for callback in list(listeners):
            try:
                callback(*args)
            except Exception:
                logger.exception("Listener %r failed", callback)

    # ------------------------------------------------------------- lifecycle
    def start(self):
        """Opens the landmark source and begins a fresh calibration."""
        with self._lock:
            self.reset_calibration()
            self.error_message = None
            if self.source is not None:
                self.source.open()
            self.is_active = True
            logger.info("Head control started")

    def stop(self):
        """Releases the camera/detector and clears all state. Safe at any time."""
        with self._lock:
            self.is_active = False
            self._cancel_restart()
            if self.source is not None:
                try:
                    self.source.release()
                except Exception:
                    logger.exception("Releasing the landmark source failed")
            self.reset_calibration()
            logger.info("Head control stopped")

    def reset_calibration(self, now: Optional[float] = None):
        """Discards the baseline and every gesture state. Idempotent."""
        now = time.time() if now is None else now
        with self._lock:
            self._generation += 1
            self.calibration.reset()
            self.detection.reset(now)
            self.tilt.reset()
            self.mouth.reset()
            self.lift.reset()
            self.last_action_time = None
            self.last_tilt_value = None
            self.processing_errors = 0
            self.frame_counter = 0

    def update_sensitivity(self, tilt_threshold: float, lift_threshold: float, mouth_threshold: float):
        with self._lock:
            self.sensitivity = Sensitivity.from_thresholds(tilt_threshold, lift_threshold, mouth_threshold)
            self.lift.lift_threshold = lift_threshold
            logger.info(
                "Sensitivity: tilt=%.3f lift=%.2f mouth=%.3f, continuous=%.0fms fast=%.0fms",
                tilt_threshold, lift_threshold, mouth_threshold,
                self.sensitivity.continuous_interval * 1000, self.sensitivity.fast_interval * 1000,
            )

    def reset_drop_speed(self):
        """Called by the game when a piece is placed."""
        with self._lock:
            self.lift.reset()

    def is_fast_drop_active(self) -> bool:
        with self._lock:
            return self.lift.is_triggered

    @property
    def face_detected(self) -> bool:
        return self.detection.face_detected

    @property
    def is_calibrated(self) -> bool:
        return self.calibration.done

    # ------------------------------------------------------------- per frame
    def on_frame(self, landmarks, now: Optional[float] = None):
        """
        Single entry point for the landmark source. `landmarks` is an (N, 3)
        array of normalized points, or None when no face was found.
        """
        now = time.time() if now is None else now
        with self._lock:
            try:
                self._process(landmarks, now)
                self.processing_errors = 0
            except Exception:
                self.processing_errors += 1
                logger.exception("Frame processing failed (%d in a row)", self.processing_errors)
                if self.processing_errors > self.max_processing_errors:
                    logger.warning("Too many processing errors, restarting the camera")
                    self.processing_errors = 0
                    self._schedule_restart(delay=0.0)

    def _process(self, landmarks, now: float):
        found = landmarks is not None and len(landmarks) > 0
        if self.detection.update(found, now):
            logger.info("Face %s", "detected" if self.detection.face_detected else "lost")
            self._emit(self._face_listeners, self.detection.face_detected)

        if not found:
            return
        self.frame_counter += 1

        if not self.calibration.done:
            if self.calibration.add_frame(landmarks, now) is not None:
                self._emit(self._calibration_listeners)
            return

        self._detect_gestures(landmarks, now)
        if self.game.game_running:
            self._detect_head_lift(landmarks, now)

    def _detect_gestures(self, pts, now: float):
        baseline = self.calibration.baseline
        if self.last_action_time is not None and now - self.last_action_time < self.action_cooldown:
            return

        tilt = fs.head_tilt(pts, baseline.nose)
        mouth_delta = fs.mouth_open_delta(pts, baseline.mouth_rest_distance)
        if tilt is None or mouth_delta is None:
            return
        self.last_tilt_value = tilt

        s = self.sensitivity
        if self.mouth.update(mouth_delta, s.mouth_threshold):
            command = Command.ROTATE
        else:
            command = self.tilt.update(
                tilt, now,
                threshold=s.tilt_threshold,
                fast_threshold=s.fast_tilt_threshold,
                continuous_hold_seconds=self.continuous_hold_seconds,
                continuous_interval=s.continuous_interval,
                fast_interval=s.fast_interval,
            )

        if command is None:
            return
        self._execute(command)
        # Repeat moves are not throttled by the cooldown
        if not self.tilt.in_repeat_mode:
            self.last_action_time = now

    def _detect_head_lift(self, pts, now: float):
        ratio = fs.face_height_width_ratio(pts)
        if ratio is None:
            return

        baseline = self.calibration.baseline
        if baseline.face_ratio is None:
            baseline.face_ratio = ratio
            logger.info("Baseline face height/width ratio %.4f", ratio)
            return

        piece = self.game.current_piece
        piece_id = piece.id if piece is not None else None
        command = self.lift.update(ratio, baseline.face_ratio, fs.head_roll_degrees(pts), piece_id, now)

        if self.frame_counter % 30 == 0:
            logger.debug("Face ratio %.1f%% of baseline, lift phase %s",
                         (self.lift.last_ratio or 0.0) * 100, self.lift.phase)

        if command is not None and piece is not None:
            self._execute(command)

    def _execute(self, command: Command):
        game = self.game
        if not game.game_running:
            return
        if self.lift.is_triggered and command in (Command.LEFT, Command.RIGHT):
            logger.debug("%s ignored during fast drop", command.value)
            return

        if command is Command.LEFT:
            game.move_piece(-1, 0)
        elif command is Command.RIGHT:
            game.move_piece(1, 0)
        elif command is Command.ROTATE:
            game.rotate_piece()
        elif command is Command.DROP:
            if not game.move_piece(0, 1):
                logger.debug("Fast drop blocked, piece at the bottom")

    # -------------------------------------------------------------- recovery
    def handle_stream_interruption(self):
        """The camera stream ended or errored. Pauses via face loss, then restarts."""
        with self._lock:
            if self._restart_pending:
                return
            logger.warning("Camera stream interrupted")
            was_detected = self.detection.face_detected
            self.detection.force_lost()
            if was_detected:
                self._emit(self._face_listeners, False)
            self._schedule_restart()

    def _schedule_restart(self, delay: Optional[float] = None):
        if self._restart_pending:
            return
        self._restart_pending = True
        generation = self._generation
        delay = self.restart_delay if delay is None else delay
        self._restart_timer = threading.Timer(delay, self._restart_camera, args=(generation,))
        self._restart_timer.daemon = True
        self._restart_timer.start()

    def _cancel_restart(self):
        if self._restart_timer is not None:
            self._restart_timer.cancel()
        self._restart_timer = None
        self._restart_pending = False

    def _restart_camera(self, generation: int):
        with self._lock:
            self._restart_pending = False
            self._restart_timer = None
            if not self.is_active or generation != self._generation:
                logger.info("Camera restart skipped, controller was stopped or reset")
                return
            logger.info("Restarting camera...")
            try:
                if self.source is not None:
                    self.source.release()
                    self.source.open()
                self.reset_calibration()
                self.error_message = None
                logger.info("Camera restarted")
            except Exception:
                logger.exception("Camera restart failed")
                self.error_message = "Camera Error - restart the game"

    # ---------------------------------------------------------------- status
    def status(self, now: Optional[float] = None) -> dict:
        """Snapshot for the on-screen HUD."""
        now = time.time() if now is None else now
        with self._lock:
            completed_at = self.calibration.completed_at
            return {
                "active": self.is_active,
                "calibrated": self.calibration.done,
                "calibration_progress": self.calibration.progress,
                "just_calibrated": (completed_at is not None
                                    and now - completed_at < cfg.CALIBRATION_BANNER_SECONDS),
                "face_detected": self.detection.face_detected,
                "seconds_since_face": self.detection.seconds_since_success(now),
                "success_rate": self.detection.recent_success_rate,
                "tilt_state": self.tilt.current,
                "tilt": self.last_tilt_value,
                "continuous_mode": self.tilt.continuous_mode,
                "fast_mode": self.tilt.fast_mode,
                "mouth_open": self.mouth.is_open,
                "lift_phase": self.lift.phase,
                "lift_ratio": self.lift.last_ratio,
                "fast_drop": self.lift.is_triggered,
                "tilt_threshold": self.sensitivity.tilt_threshold,
                "lift_threshold": self.sensitivity.lift_threshold,
                "mouth_threshold": self.sensitivity.mouth_threshold,
                "error": self.error_message,
            }
