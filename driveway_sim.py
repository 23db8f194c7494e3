from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple
import numpy as np

GRID_WIDTH = 12
GRID_HEIGHT = 12
MAX_SHOVEL_CAPACITY = 3
GARAGE_MARKER = 2.0
INITIAL_SNOW = 1.0

UP = (0, -1)
RIGHT = (1, 0)
DOWN = (0, 1)
LEFT = (-1, 0)
DIRECTIONS: Tuple[Tuple[int, int], ...] = (UP, RIGHT, DOWN, LEFT)


class Zone(Enum):
    GARAGE = "garage"
    LEFT = "left"
    RIGHT = "right"
    BOTTOM = "bottom"
    DRIVEWAY = "driveway"

    @property
    def is_disposal(self) -> bool:
        return self in (Zone.LEFT, Zone.RIGHT, Zone.BOTTOM)


class Failure(Enum):
    GAME_OVER = "game already over"
    OUT_OF_BOUNDS = "out of driveway bounds"
    NOTHING_TO_SHOVEL = "no snow here"
    AT_CAPACITY = "shovel is full"
    NOTHING_HELD = "not holding any snow"
    NOT_ON_EDGE = "cannot throw here"
    NOTHING_TO_PUSH = "nothing to push"
    HANDS_FULL = "cannot push while holding snow"


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    reason: Optional[Failure] = None
    cost: float = 0.0

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def success(cls, cost: float) -> "ActionResult":
        return cls(True, None, float(cost))

    @classmethod
    def fail(cls, reason: Failure) -> "ActionResult":
        return cls(False, reason, 0.0)


@dataclass
class Player:
    x: int = 1
    y: int = 1
    holding: float = 0.0


def _check_direction(dx: int, dy: int) -> Tuple[int, int]:
    if dx != int(dx) or dy != int(dy) or (int(dx), int(dy)) not in DIRECTIONS:
        raise ValueError(f"Direction must be one of {DIRECTIONS}, got {(dx, dy)}.")
    return int(dx), int(dy)


def parse_layout(text: str) -> Tuple[np.ndarray, Optional[Tuple[int, int]]]:
    """Parse a driveway interior.

    One line per driveway row, whitespace separated amounts. A trailing
    ``@`` on one token marks the player's start. Returns the interior as a
    ``(rows, cols)`` array and the player position in full-grid ``(x, y)``
    coordinates, or ``None`` when no marker is present.
    """
    lines = [ln for ln in text.splitlines() if ln.strip() != ""]
    if not lines:
        raise ValueError("Empty layout.")

    rows: List[List[float]] = []
    player_pos: Optional[Tuple[int, int]] = None
    n_cols: Optional[int] = None

    for r, line in enumerate(lines):
        row: List[float] = []
        for tok in line.split():
            if tok.endswith("@"):
                if player_pos is not None:
                    raise ValueError("Multiple '@' positions.")
                player_pos = (len(row) + 1, r + 1)
                tok = tok[:-1]
            try:
                v = float(tok)
            except ValueError:
                raise ValueError(f"Non-numeric token in layout: {tok!r}")
            if not np.isfinite(v) or v < 0:
                raise ValueError(f"Invalid snow amount: {tok!r}")
            row.append(v)
        if n_cols is None:
            n_cols = len(row)
        elif len(row) != n_cols:
            raise ValueError("Inconsistent row lengths in layout.")
        rows.append(row)

    return np.array(rows, dtype=np.float64), player_pos


class SnowSimulation:
    def __init__(
        self,
        width: int = GRID_WIDTH,
        height: int = GRID_HEIGHT,
        capacity: float = MAX_SHOVEL_CAPACITY,
        sticky_push_mode: bool = True,
        driveway: Optional[np.ndarray] = None,
        start: Optional[Tuple[int, int]] = None,
    ):
        if driveway is not None:
            driveway = np.asarray(driveway, dtype=np.float64)
            if driveway.ndim != 2:
                raise ValueError("Driveway layout must be two-dimensional.")
            height, width = driveway.shape[0] + 2, driveway.shape[1] + 2
        self.width = int(width)
        self.height = int(height)
        if self.width < 3 or self.height < 3:
            raise ValueError("Grid must be at least 3x3 to hold a driveway.")
        self.capacity = float(capacity)
        if self.capacity <= 0:
            raise ValueError("Capacity must be positive.")
        self.sticky_push_mode = bool(sticky_push_mode)

        self._initial_driveway = None if driveway is None else driveway.copy()
        self._initial_start = start
        self.reset()

    @classmethod
    def from_layout(cls, text: str, **kwargs) -> "SnowSimulation":
        driveway, start = parse_layout(text)
        return cls(driveway=driveway, start=start, **kwargs)

    def reset(self) -> None:
        self._grid = np.zeros((self.height, self.width), dtype=np.float64)
        self._grid[0, :] = GARAGE_MARKER
        if self._initial_driveway is None:
            self._grid[1:-1, 1:-1] = INITIAL_SNOW
        else:
            self._grid[1:-1, 1:-1] = self._initial_driveway

        x, y = self._initial_start if self._initial_start is not None else (1, 1)
        if not self.in_driveway(x, y):
            raise ValueError(f"Start position {(x, y)} is not on the driveway.")
        self._player = Player(int(x), int(y), 0.0)
        self._energy_spent = 0.0
        self._game_over = False
        self._push_mode = False
        # a layout may start cleared
        self._check_win()

    # -- queries --

    def in_driveway(self, x: int, y: int) -> bool:
        return 1 <= x <= self.width - 2 and 1 <= y <= self.height - 2

    def zone(self, x: int, y: int) -> Zone:
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Cell {(x, y)} is outside the grid.")
        if y == 0:
            return Zone.GARAGE
        if y == self.height - 1:
            return Zone.BOTTOM
        if x == 0:
            return Zone.LEFT
        if x == self.width - 1:
            return Zone.RIGHT
        return Zone.DRIVEWAY

    def cell_amount(self, x: int, y: int) -> float:
        self.zone(x, y)
        return float(self._grid[y, x])

    def grid_view(self) -> np.ndarray:
        view = self._grid.view()
        view.flags.writeable = False
        return view

    @property
    def player(self) -> Player:
        p = self._player
        return Player(p.x, p.y, p.holding)

    @property
    def holding(self) -> float:
        return self._player.holding

    @property
    def energy_spent(self) -> float:
        return self._energy_spent

    @property
    def game_over(self) -> bool:
        return self._game_over

    @property
    def push_mode(self) -> bool:
        return self._push_mode

    def driveway_snow(self) -> float:
        return float(self._grid[1:-1, 1:-1].sum())

    def is_won(self) -> bool:
        return bool(np.all(self._grid[1:-1, 1:-1] == 0))

    def throw_target(self) -> Optional[Tuple[int, int]]:
        x, y = self._player.x, self._player.y
        # x-edges win over the bottom edge at corners
        if x == 1:
            return 0, y
        if x == self.width - 2:
            return self.width - 1, y
        if y == self.height - 2:
            return x, self.height - 1
        return None

    def can_shovel(self) -> bool:
        p = self._player
        return (
            not self._game_over
            and self._grid[p.y, p.x] > 0
            and p.holding < self.capacity
        )

    def can_throw(self) -> bool:
        return (
            not self._game_over
            and self._player.holding > 0
            and self.throw_target() is not None
        )

    def can_push(self) -> bool:
        return not self._game_over and self._player.holding == 0

    # -- actions --

    def move(self, dx: int, dy: int) -> ActionResult:
        dx, dy = _check_direction(dx, dy)
        if self._game_over:
            return ActionResult.fail(Failure.GAME_OVER)
        p = self._player
        nx, ny = p.x + dx, p.y + dy
        if not self.in_driveway(nx, ny):
            return ActionResult.fail(Failure.OUT_OF_BOUNDS)

        cost = p.holding if p.holding > 0 else 1.0
        p.x, p.y = nx, ny
        self._energy_spent += cost
        return ActionResult.success(cost)

    def shovel(self) -> ActionResult:
        if self._game_over:
            return ActionResult.fail(Failure.GAME_OVER)
        p = self._player
        cell = float(self._grid[p.y, p.x])
        if cell <= 0:
            return ActionResult.fail(Failure.NOTHING_TO_SHOVEL)
        if p.holding >= self.capacity:
            return ActionResult.fail(Failure.AT_CAPACITY)

        amount = min(cell, self.capacity - p.holding)
        self._grid[p.y, p.x] = cell - amount
        p.holding += amount
        self._energy_spent += amount
        self._check_win()
        return ActionResult.success(amount)

    def throw(self) -> ActionResult:
        if self._game_over:
            return ActionResult.fail(Failure.GAME_OVER)
        p = self._player
        if p.holding <= 0:
            return ActionResult.fail(Failure.NOTHING_HELD)
        target = self.throw_target()
        if target is None:
            return ActionResult.fail(Failure.NOT_ON_EDGE)

        tx, ty = target
        cost = p.holding ** 1.5
        self._grid[ty, tx] += p.holding
        self._energy_spent += cost
        p.holding = 0.0
        return ActionResult.success(cost)

    def push(self, dx: int, dy: int) -> ActionResult:
        dx, dy = _check_direction(dx, dy)
        if self._game_over:
            return ActionResult.fail(Failure.GAME_OVER)
        p = self._player
        if p.holding > 0:
            return ActionResult.fail(Failure.HANDS_FULL)
        sx, sy = p.x + dx, p.y + dy
        tx, ty = p.x + 2 * dx, p.y + 2 * dy
        if not (self.in_driveway(sx, sy) and self.in_driveway(tx, ty)):
            return ActionResult.fail(Failure.OUT_OF_BOUNDS)
        src = float(self._grid[sy, sx])
        if src <= 0:
            return ActionResult.fail(Failure.NOTHING_TO_PUSH)

        total = float(self._grid[ty, tx]) + src
        if total <= self.capacity:
            self._grid[ty, tx] = total
        else:
            self._grid[ty, tx] = self.capacity
            self._spill(tx, ty, dx, dy, total - self.capacity)
        self._grid[sy, sx] = 0.0

        self._energy_spent += src
        p.x, p.y = sx, sy
        if not self.sticky_push_mode:
            self._push_mode = False
        self._check_win()
        return ActionResult.success(src)

    def _spill(self, x: int, y: int, dx: int, dy: int, spill: float) -> None:
        # perpendicular to the push axis
        px, py = dy, dx
        targets = [
            (x + s * px, y + s * py)
            for s in (-1, 1)
            if self.in_driveway(x + s * px, y + s * py)
        ]
        # no valid neighbour: the spill is lost
        for nx, ny in targets:
            self._grid[ny, nx] += spill / len(targets)

    def toggle_push_mode(self) -> bool:
        self._push_mode = not self._push_mode
        return self._push_mode

    def step_direction(self, dx: int, dy: int) -> ActionResult:
        if self._push_mode:
            return self.push(dx, dy)
        return self.move(dx, dy)

    def _check_win(self) -> bool:
        if not self._game_over and self.is_won():
            self._game_over = True
        return self._game_over
