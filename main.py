import logging
import time

import pygame

import config as cfg
from face_controller import CameraLoop, FaceTracker
from head_control import HeadControl
from tetris_game import COLS, ROWS, TetrisGame

logger = logging.getLogger(__name__)

CELL = min(cfg.WIN_H // ROWS, (cfg.WIN_W - 200) // COLS)


class Orchestrator:
    """
    Wires head control to the game: auto-start on calibration, pause on face
    loss, resume only when the pause came from face loss.
    """

    def __init__(self, game, control):
        self.game = game
        self.control = control
        self.paused_by_camera = False

        control.add_calibration_listener(self.on_calibration_complete)
        control.add_face_status_listener(self.on_face_status_change)
        game.add_piece_placed_listener(control.reset_drop_speed)

    def on_calibration_complete(self):
        logger.info("Calibration completed, starting game")
        self.paused_by_camera = False
        self.game.start()

    def on_face_status_change(self, is_detected):
        if is_detected:
            # After a camera restart the calibration listener resumes instead
            if self.paused_by_camera and self.control.is_calibrated:
                logger.info("Face detected, resuming game")
                self.paused_by_camera = False
                self.game.start()
        elif self.game.game_running and not self.paused_by_camera:
            logger.info("No face detected, pausing game")
            self.game.pause()
            self.paused_by_camera = True

    def toggle_pause(self):
        if self.game.game_running:
            self.game.pause()
        elif self.control.is_calibrated or not self.control.is_active:
            self.paused_by_camera = False
            self.game.start()


def status_lines(st):
    """HUD text for the head-control state."""
    if st["error"]:
        return [st["error"]]
    if not st["active"]:
        return ["Camera off - keyboard only", "ENTER = start"]

    lines = []
    if not st["face_detected"]:
        since = st["seconds_since_face"]
        if since is not None and since > cfg.FACE_LOST_MESSAGE_SECONDS:
            lines += ["Face detection lost", "Try adjusting lighting"]
        else:
            lines.append("Please face the camera")
    if not st["calibrated"]:
        lines.append(f"Calibrating {int(st['calibration_progress'] * 100)}%")
        lines.append("Look straight ahead")
        return lines
    if st["just_calibrated"]:
        lines.append("Calibrated!")

    tilt = st["tilt"]
    lines.append(f"Tilt: {st['tilt_state']}" + (f" ({tilt:+.2f})" if tilt is not None else ""))
    mode = "FAST" if st["fast_mode"] else ("CONT" if st["continuous_mode"] else "-")
    lines.append(f"Move mode: {mode}")
    lines.append(f"Mouth: {'OPEN' if st['mouth_open'] else 'closed'}")
    ratio = st["lift_ratio"]
    lines.append(f"Lift: {st['lift_phase']}" + (f" {ratio * 100:.0f}%" if ratio is not None else ""))
    lines.append("")
    lines.append(f"Tilt sens [ ]: {st['tilt_threshold']:.2f}")
    lines.append(f"Mouth sens - =: {st['mouth_threshold']:.3f}")
    return lines


def main():
    logging.basicConfig(level=cfg.LOG_LEVEL,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    pygame.init()
    screen = pygame.display.set_mode((cfg.WIN_W, cfg.WIN_H))
    pygame.display.set_caption(cfg.TITLE)
    clock = pygame.time.Clock()
    font_small = pygame.font.SysFont(None, 22)

    game = TetrisGame()
    tracker = FaceTracker()
    control = HeadControl(game, source=tracker)
    orchestrator = Orchestrator(game, control)

    camera = CameraLoop(tracker, control)
    try:
        control.start()
    except RuntimeError:
        logger.exception("Camera unavailable, keyboard-only mode")
        control.stop()
    camera.start()

    soft_drop = False
    last_soft_drop = 0.0
    running = True

    while running:
        clock.tick(cfg.FPS)
        now = time.time()

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False

            elif event.type == pygame.KEYDOWN:
                st = control.status(now)
                if event.key == pygame.K_q:
                    running = False
                elif event.key == pygame.K_LEFT:
                    game.move_piece(-1, 0)
                elif event.key == pygame.K_RIGHT:
                    game.move_piece(1, 0)
                elif event.key == pygame.K_UP:
                    game.rotate_piece()
                elif event.key == pygame.K_DOWN:
                    soft_drop = True
                elif event.key == pygame.K_SPACE:
                    game.hard_drop()
                elif event.key in (pygame.K_p, pygame.K_RETURN):
                    orchestrator.toggle_pause()
                elif event.key == pygame.K_r:
                    game.reset()
                    control.reset_drop_speed()
                    if control.is_calibrated or not control.is_active:
                        game.start()
                elif event.key == pygame.K_c:
                    # Recalibration restarts the session; the game resumes when it completes
                    game.pause()
                    control.reset_calibration()
                elif event.key in (pygame.K_LEFTBRACKET, pygame.K_RIGHTBRACKET):
                    step = -0.01 if event.key == pygame.K_LEFTBRACKET else 0.01
                    tilt = min(cfg.SENSITIVITY_TILT_MAX, max(cfg.SENSITIVITY_TILT_MIN, st["tilt_threshold"] + step))
                    control.update_sensitivity(tilt, st["lift_threshold"], st["mouth_threshold"])
                elif event.key in (pygame.K_MINUS, pygame.K_EQUALS):
                    step = -0.005 if event.key == pygame.K_MINUS else 0.005
                    mouth = max(0.005, st["mouth_threshold"] + step)
                    control.update_sensitivity(st["tilt_threshold"], st["lift_threshold"], mouth)

            elif event.type == pygame.KEYUP and event.key == pygame.K_DOWN:
                soft_drop = False

        if soft_drop and now - last_soft_drop >= cfg.FAST_DROP_INTERVAL:
            game.move_piece(0, 1)
            last_soft_drop = now

        game.tick(now)

        lines = status_lines(control.status(now))
        if game.game_over:
            lines = ["GAME OVER", "R = restart"] + lines
        elif not game.game_running and control.is_calibrated:
            lines = ["PAUSED"] + lines
        game.draw(screen, CELL, lines, font_small, fast_drop=control.is_fast_drop_active())
        pygame.display.flip()

    camera.stop()
    control.stop()
    pygame.quit()


if __name__ == "__main__":
    main()
