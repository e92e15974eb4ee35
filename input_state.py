import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import config as cfg

logger = logging.getLogger(__name__)

LEFT = "left"
CENTER = "center"
RIGHT = "right"


class Command(Enum):
    LEFT = "left"
    RIGHT = "right"
    ROTATE = "rotate"
    DROP = "drop"


def classify_tilt(tilt: float, threshold: float) -> str:
    if tilt > threshold:
        return RIGHT
    if tilt < -threshold:
        return LEFT
    return CENTER


@dataclass
class TiltMoveState:
    """
    Turns the tilt signal into LEFT/RIGHT commands.

    One tap move on leaving center. Holding the tilt for
    continuous_hold_seconds starts repeating at continuous_interval. Tilting
    past fast_threshold repeats at fast_interval right away. Returning to
    center cancels everything.
    """
    current: str = CENTER
    last: str = CENTER

    continuous_mode: bool = False
    fast_mode: bool = False
    mode_start_time: Optional[float] = None
    last_repeat_time: float = 0.0

    @property
    def in_repeat_mode(self) -> bool:
        return self.continuous_mode or self.fast_mode

    def reset(self):
        self.current = CENTER
        self.last = CENTER
        self._clear_modes()
        self.last_repeat_time = 0.0

    def _clear_modes(self):
        if self.continuous_mode or self.fast_mode:
            logger.debug("Head back to center, leaving repeat mode")
        self.continuous_mode = False
        self.fast_mode = False
        self.mode_start_time = None

    def update(
        self,
        tilt: float,
        now: float,
        threshold: float = cfg.TILT_THRESHOLD,
        fast_threshold: float = cfg.FAST_TILT_THRESHOLD,
        continuous_hold_seconds: float = cfg.CONTINUOUS_MOVE_HOLD_SECONDS,
        continuous_interval: float = cfg.CONTINUOUS_MOVE_INTERVAL,
        fast_interval: float = cfg.FAST_MOVE_INTERVAL,
    ) -> Optional[Command]:
        self.current = classify_tilt(tilt, threshold)
        command = None

        if self.current == CENTER:
            self._clear_modes()
        else:
            is_fast = abs(tilt) > fast_threshold
            direction = Command.RIGHT if self.current == RIGHT else Command.LEFT

            if self.last != self.current:
                # Rising edge (or a swing straight across center): one tap move
                command = direction
                self.mode_start_time = now
                self.last_repeat_time = now
                self.continuous_mode = False
                self.fast_mode = is_fast

            else:
                held = now - (self.mode_start_time if self.mode_start_time is not None else now)

                if is_fast and self.fast_mode:
                    if now - self.last_repeat_time >= fast_interval:
                        command = direction
                        self.last_repeat_time = now
                elif held >= continuous_hold_seconds and not self.continuous_mode:
                    self.continuous_mode = True
                    self.last_repeat_time = now
                    command = direction
                elif self.continuous_mode and now - self.last_repeat_time >= continuous_interval:
                    command = direction
                    self.last_repeat_time = now

                self.fast_mode = is_fast

        self.last = self.current
        return command


@dataclass
class MouthState:
    was_open: bool = False
    is_open: bool = False

    def reset(self):
        self.was_open = False
        self.is_open = False

    def update(self, delta: Optional[float], threshold: float = cfg.MOUTH_OPEN_THRESHOLD) -> bool:
        """Returns True only on the frame the mouth opens."""
        self.is_open = delta is not None and delta > threshold
        fired = self.is_open and not self.was_open
        self.was_open = self.is_open
        return fired
