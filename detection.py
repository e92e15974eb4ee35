import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

import config as cfg

logger = logging.getLogger(__name__)


@dataclass
class DetectionStabilityState:
    """
    Smooths the per-frame "face found" signal.

    Loss is only reported after a long failure run AND a low recent success
    rate, so fast head motion or a hand passing the face does not pause the
    game. Recovery needs a short run of consecutive found frames.
    """
    history_size: int = cfg.DETECTION_HISTORY_SIZE
    max_failure_count: int = cfg.MAX_FAILURE_COUNT
    min_success_rate: float = cfg.MIN_RECENT_SUCCESS_RATE
    recover_frames: int = cfg.RECOVER_FRAMES

    face_detected: bool = False
    failure_count: int = 0
    success_streak: int = 0
    last_success_time: Optional[float] = None
    history: deque = field(default_factory=deque)

    def __post_init__(self):
        self.history = deque(self.history, maxlen=self.history_size)

    @property
    def recent_success_rate(self) -> float:
        if not self.history:
            return 0.0
        return sum(1 for seen in self.history if seen) / len(self.history)

    def reset(self, now: Optional[float] = None):
        self.face_detected = False
        self.failure_count = 0
        self.success_streak = 0
        self.last_success_time = now
        self.history.clear()

    def update(self, found: bool, now: float) -> bool:
        """Feeds one frame. Returns True if face_detected flipped."""
        previous = self.face_detected
        self.history.append(bool(found))

        if found:
            self.failure_count = 0
            self.success_streak += 1
            self.last_success_time = now
            if self.success_streak >= self.recover_frames:
                self.face_detected = True
        else:
            self.failure_count += 1
            self.success_streak = 0
            if self.failure_count % 30 == 0:
                logger.debug("%d consecutive frames without a face, recent success %.0f%%",
                             self.failure_count, self.recent_success_rate * 100)
            if (self.failure_count >= self.max_failure_count
                    and self.recent_success_rate < self.min_success_rate):
                self.face_detected = False

        return self.face_detected != previous

    def force_lost(self):
        """Marks the face as lost immediately (camera stream went away)."""
        self.failure_count = max(self.failure_count, self.max_failure_count)
        self.success_streak = 0
        self.face_detected = False

    def seconds_since_success(self, now: float) -> Optional[float]:
        if self.last_success_time is None:
            return None
        return now - self.last_success_time
