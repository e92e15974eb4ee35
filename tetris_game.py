import itertools
import logging
import random
import threading
import time

import pygame

logger = logging.getLogger(__name__)

COLS = 10
ROWS = 20

SHAPES = {
    "I": ([[1, 1, 1, 1]], (0, 245, 255)),
    "O": ([[1, 1], [1, 1]], (255, 255, 0)),
    "T": ([[0, 1, 0], [1, 1, 1]], (128, 0, 128)),
    "S": ([[0, 1, 1], [1, 1, 0]], (0, 255, 0)),
    "Z": ([[1, 1, 0], [0, 1, 1]], (255, 0, 0)),
    "J": ([[1, 0, 0], [1, 1, 1]], (0, 0, 255)),
    "L": ([[0, 0, 1], [1, 1, 1]], (255, 165, 0)),
}

LINE_SCORES = {1: 100, 2: 300, 3: 600, 4: 1000}
BASE_DROP_INTERVAL = 0.56
MIN_DROP_INTERVAL = 0.1

KICKS = [(-1, 0), (1, 0), (0, -1), (-2, 0), (2, 0)]


def rotate_matrix(shape):
    """Clockwise rotation of a piece matrix."""
    return [list(row) for row in zip(*shape[::-1])]


class Piece:
    _ids = itertools.count(1)

    def __init__(self, kind, shape=None, x=0, y=0):
        self.id = next(Piece._ids)
        self.kind = kind
        base, self.color = SHAPES[kind]
        self.shape = shape if shape is not None else [list(r) for r in base]
        self.x = x
        self.y = y

    def cells(self, shape=None, dx=0, dy=0):
        shape = self.shape if shape is None else shape
        return [(self.x + c + dx, self.y + r + dy)
                for r, row in enumerate(shape) for c, v in enumerate(row) if v]


class TetrisGame:
    """
    Minimal block-stacking engine. Head control talks to it only through
    move_piece / rotate_piece / game_running / current_piece.
    """

    def __init__(self, rng=None):
        self.rng = rng or random.Random()
        self._lock = threading.RLock()
        self._placed_listeners = []
        self.reset()

    def reset(self):
        with self._lock:
            self.board = [[None] * COLS for _ in range(ROWS)]
            self.score = 0
            self.level = 1
            self.lines = 0
            self.drop_interval = BASE_DROP_INTERVAL
            self.game_running = False
            self.game_over = False
            self.last_drop = None
            self.current_piece = None
            self.next_piece = self._new_piece()
            self._spawn()

    def add_piece_placed_listener(self, callback):
        self._placed_listeners.append(callback)

    # ---------------------------------------------------------------- state
    def start(self):
        with self._lock:
            if self.game_over:
                self.reset()
            self.game_running = True
            self.last_drop = None
            logger.info("Game started")

    def pause(self):
        with self._lock:
            self.game_running = False
            logger.info("Game paused")

    # ----------------------------------------------------------- collisions
    def collides(self, piece, shape=None, dx=0, dy=0):
        for x, y in piece.cells(shape, dx, dy):
            if x < 0 or x >= COLS or y >= ROWS:
                return True
            if y >= 0 and self.board[y][x] is not None:
                return True
        return False

    # -------------------------------------------------------------- commands
    def move_piece(self, dx, dy) -> bool:
        with self._lock:
            piece = self.current_piece
            if piece is None or not self.game_running:
                return False
            if self.collides(piece, dx=dx, dy=dy):
                return False
            piece.x += dx
            piece.y += dy
            return True

    def rotate_piece(self):
        with self._lock:
            piece = self.current_piece
            if piece is None or not self.game_running:
                return
            rotated = rotate_matrix(piece.shape)
            for dx, dy in [(0, 0)] + KICKS:
                if not self.collides(piece, rotated, dx, dy):
                    piece.shape = rotated
                    piece.x += dx
                    piece.y += dy
                    return

    def hard_drop(self):
        with self._lock:
            if self.current_piece is None or not self.game_running:
                return
            while self.move_piece(0, 1):
                pass
            self._lock_piece()
        self._notify_placed()

    def tick(self, now=None):
        """Gravity step, called from the game loop."""
        now = time.time() if now is None else now
        with self._lock:
            if not self.game_running or self.current_piece is None:
                return
            if self.last_drop is None:
                self.last_drop = now
                return
            if now - self.last_drop < self.drop_interval:
                return
            self.last_drop = now
            if self.move_piece(0, 1):
                return
            self._lock_piece()
        self._notify_placed()

    # ------------------------------------------------------------- internals
    def _new_piece(self):
        return Piece(self.rng.choice(list(SHAPES)))

    def _spawn(self):
        piece = self.next_piece
        piece.x = COLS // 2 - len(piece.shape[0]) // 2
        piece.y = 0
        self.current_piece = piece
        self.next_piece = self._new_piece()
        if self.collides(piece):
            self.game_running = False
            self.game_over = True
            logger.info("Game over, score %d", self.score)

    def _lock_piece(self):
        piece = self.current_piece
        for x, y in piece.cells():
            if 0 <= y < ROWS:
                self.board[y][x] = piece.color
        self._clear_lines()
        self._spawn()

    def _notify_placed(self):
        # Outside the board lock: listeners may call back into head control
        for callback in list(self._placed_listeners):
            try:
                callback()
            except Exception:
                logger.exception("Piece-placed listener failed")

    def _clear_lines(self):
        keep = [row for row in self.board if any(cell is None for cell in row)]
        cleared = ROWS - len(keep)
        if not cleared:
            return
        self.board = [[None] * COLS for _ in range(cleared)] + keep
        self.lines += cleared
        self.score += LINE_SCORES.get(cleared, cleared * 100) * self.level
        self.level = self.lines // 10 + 1
        self.drop_interval = max(MIN_DROP_INTERVAL,
                                 BASE_DROP_INTERVAL - (self.level - 1) * 0.056)

    # --------------------------------------------------------------- drawing
    def draw(self, screen, cell, status_lines, font, fast_drop=False):
        screen.fill((15, 15, 20))
        with self._lock:
            for y in range(ROWS):
                for x in range(COLS):
                    rect = pygame.Rect(x * cell, y * cell, cell, cell)
                    if self.board[y][x] is not None:
                        pygame.draw.rect(screen, self.board[y][x], rect)
                    pygame.draw.rect(screen, (40, 40, 50), rect, 1)

            if self.current_piece is not None:
                outline = (255, 255, 255) if fast_drop else (20, 20, 20)
                for x, y in self.current_piece.cells():
                    if y >= 0:
                        rect = pygame.Rect(x * cell, y * cell, cell, cell)
                        pygame.draw.rect(screen, self.current_piece.color, rect)
                        pygame.draw.rect(screen, outline, rect, 2 if fast_drop else 1)

            hud = [f"Score: {self.score}", f"Lines: {self.lines}", f"Level: {self.level}", ""]

        x0 = COLS * cell + 10
        for i, line in enumerate(hud + list(status_lines)):
            txt = font.render(line, True, (220, 220, 220))
            screen.blit(txt, (x0, 10 + i * (font.get_linesize() + 2)))
