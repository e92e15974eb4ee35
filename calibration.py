import logging
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

import config as cfg
from face_signals import NOSE_TIP, mouth_distance, point

logger = logging.getLogger(__name__)


@dataclass
class Baseline:
    """Neutral reference values for one calibration session."""
    nose: np.ndarray
    mouth_rest_distance: float
    # Captured on the first frame after calibration, not during it.
    face_ratio: Optional[float] = None


@dataclass
class CalibrationState:
    max_frames: int = cfg.CALIBRATION_FRAMES

    frames: int = 0
    nose_sum: np.ndarray = field(default_factory=lambda: np.zeros(3))
    mouth_sum: float = 0.0
    skipped: int = 0

    baseline: Optional[Baseline] = None
    completed_at: Optional[float] = None

    @property
    def done(self) -> bool:
        return self.baseline is not None

    @property
    def progress(self) -> float:
        return min(1.0, self.frames / float(self.max_frames))

    def reset(self):
        self.frames = 0
        self.nose_sum = np.zeros(3)
        self.mouth_sum = 0.0
        self.skipped = 0
        self.baseline = None
        self.completed_at = None

    def add_frame(self, pts, now: float) -> Optional[Baseline]:
        """
        Accumulates one face frame. Returns the finished Baseline on the frame
        that completes calibration, otherwise None.

        A frame without nose or lip landmarks is dropped and does not count
        towards max_frames, so partial occlusion lengthens calibration.
        """
        if self.done:
            return None

        nose = point(pts, NOSE_TIP)
        mouth = mouth_distance(pts)
        if nose is None or mouth is None:
            self.skipped += 1
            return None

        self.nose_sum = self.nose_sum + np.asarray(nose[:3], dtype=np.float64)
        self.mouth_sum += mouth
        self.frames += 1

        if self.frames < self.max_frames:
            return None

        self.baseline = Baseline(
            nose=self.nose_sum / self.frames,
            mouth_rest_distance=self.mouth_sum / self.frames,
        )
        self.completed_at = now
        logger.info("Calibration complete after %d frames (%d skipped), mouth rest=%.4f",
                    self.frames, self.skipped, self.baseline.mouth_rest_distance)
        return self.baseline
