import logging
from dataclasses import dataclass
from typing import Optional

import config as cfg
from input_state import Command

logger = logging.getLogger(__name__)

IDLE = "idle"
LIFT_DETECTED = "lift_detected"
TRIGGERED = "triggered"


@dataclass
class LiftDropState:
    """
    Head-lift fast drop.

    Lifting the chin shrinks the face height/width ratio. Once the ratio has
    stayed below `lift_threshold` of its baseline for `trigger_delay` seconds,
    fast drop latches onto the current piece and emits DROP every
    `drop_interval` seconds until the piece changes or is placed. Lowering the
    head does not cancel an active fast drop. Each piece can trigger it once.
    """
    lift_threshold: float = cfg.LIFT_RATIO_THRESHOLD
    roll_veto_degrees: float = cfg.HEAD_ROLL_VETO_DEGREES
    trigger_delay: float = cfg.HEAD_LIFT_TRIGGER_DELAY
    drop_interval: float = cfg.FAST_DROP_INTERVAL

    is_head_lifted: bool = False
    is_triggered: bool = False
    lift_start_time: Optional[float] = None
    fast_drop_piece_id: Optional[object] = None
    current_piece_id: Optional[object] = None
    last_drop_time: Optional[float] = None
    last_ratio: Optional[float] = None

    @property
    def phase(self) -> str:
        if self.is_triggered:
            return TRIGGERED
        if self.is_head_lifted:
            return LIFT_DETECTED
        return IDLE

    def reset(self):
        """Back to IDLE. Called when a piece is placed or on recalibration."""
        if self.is_triggered:
            logger.debug("Fast drop reset (piece %s)", self.fast_drop_piece_id)
        self.is_head_lifted = False
        self.is_triggered = False
        self.lift_start_time = None
        self.fast_drop_piece_id = None
        self.current_piece_id = None
        self.last_drop_time = None
        self.last_ratio = None

    def is_lifted(self, ratio: float, baseline_ratio: float, roll_deg: Optional[float]) -> bool:
        severely_rolled = roll_deg is not None and abs(roll_deg) > self.roll_veto_degrees
        return (ratio / baseline_ratio) < self.lift_threshold and not severely_rolled

    def update(
        self,
        ratio: Optional[float],
        baseline_ratio: Optional[float],
        roll_deg: Optional[float],
        piece_id,
        now: float,
    ) -> Optional[Command]:
        if ratio is None or not baseline_ratio:
            return None

        self.last_ratio = ratio / baseline_ratio
        if piece_id is not None and piece_id != self.current_piece_id:
            logger.debug("Piece changed %s -> %s (fast drop piece %s)",
                         self.current_piece_id, piece_id, self.fast_drop_piece_id)
            self.current_piece_id = piece_id

        if self.is_lifted(ratio, baseline_ratio, roll_deg):
            if not self.is_head_lifted:
                self.is_head_lifted = True
                self.lift_start_time = now
                logger.debug("Head lift detected (ratio %.1f%%), waiting %.1fs",
                             self.last_ratio * 100, self.trigger_delay)
            elif not self.is_triggered and now - self.lift_start_time >= self.trigger_delay:
                if piece_id is not None and piece_id != self.fast_drop_piece_id:
                    self.is_triggered = True
                    self.fast_drop_piece_id = piece_id
                    self.last_drop_time = None
                    logger.info("Fast drop triggered for piece %s", piece_id)
        else:
            self.is_head_lifted = False
            self.lift_start_time = None

        if not self.is_triggered:
            return None

        if piece_id != self.fast_drop_piece_id:
            logger.debug("Piece %s replaced %s, fast drop cleared", piece_id, self.fast_drop_piece_id)
            self.is_triggered = False
            self.fast_drop_piece_id = None
            return None

        if self.last_drop_time is None or now - self.last_drop_time >= self.drop_interval:
            self.last_drop_time = now
            return Command.DROP
        return None
