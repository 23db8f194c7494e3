import math
import os
from typing import Dict, Optional, Tuple
import numpy as np
import gymnasium as gym
from gymnasium import spaces

from driveway_sim import (
    DIRECTIONS,
    GRID_HEIGHT,
    GRID_WIDTH,
    MAX_SHOVEL_CAPACITY,
    ActionResult,
    Failure,
    SnowSimulation,
    Zone,
)

ACTION_UP = 0
ACTION_RIGHT = 1
ACTION_DOWN = 2
ACTION_LEFT = 3
ACTION_SHOVEL = 4
ACTION_THROW = 5
ACTION_TOGGLE_PUSH = 6
ACTION_NAMES = ("UP", "RIGHT", "DOWN", "LEFT", "SHOVEL", "THROW", "PUSH_MODE")

PLAYER_COLOR = (40, 70, 220)
SNOW_COLOR = (255, 255, 255)
CLEAR_COLOR = (128, 128, 128)
GARAGE_COLOR = (0, 0, 0)
DISPOSAL_COLOR = (255, 204, 204)
HEAVY_SNOW_COLOR = (170, 200, 235)


def format_energy(energy: float, won: bool) -> str:
    label = "Final Energy" if won else "Energy Spent"
    return f"{label}: {math.floor(energy * 10 + 0.5) / 10}"


def pile_color(zone: Zone, amount: float, capacity: float = MAX_SHOVEL_CAPACITY) -> Tuple[int, int, int]:
    if zone == Zone.GARAGE:
        return GARAGE_COLOR
    if amount <= 0:
        return CLEAR_COLOR
    if zone.is_disposal:
        return DISPOSAL_COLOR
    if amount <= 1:
        return SNOW_COLOR
    t = min(1.0, (amount - 1) / max(capacity - 1, 1e-9))
    return tuple(
        int(round(a + (b - a) * t)) for a, b in zip(SNOW_COLOR, HEAVY_SNOW_COLOR)
    )


class SnowDrivewayEnv(gym.Env):
    metadata = {"render_modes": ["human", "rgb_array"], "render_fps": 30}

    def __init__(
        self,
        render_mode: Optional[str] = None,
        width: int = GRID_WIDTH,
        height: int = GRID_HEIGHT,
        capacity: float = MAX_SHOVEL_CAPACITY,
        layout: Optional[str] = None,
        max_timestep: int = 500,
        r_invalid: float = -1.0,
        sticky_push_mode: bool = True,
        cell_size: int = 40,
    ):
        super().__init__()

        if render_mode is not None and render_mode not in self.metadata["render_modes"]:
            raise ValueError(f"Unsupported render mode {render_mode}")
        self.render_mode = render_mode
        self.max_timestep = int(max_timestep)
        self.r_invalid = float(r_invalid)

        if layout is not None:
            if (width, height) != (GRID_WIDTH, GRID_HEIGHT):
                raise ValueError("A layout fixes the grid size; width and height cannot be given with it.")
            self.sim = SnowSimulation.from_layout(
                layout, capacity=capacity, sticky_push_mode=sticky_push_mode
            )
        else:
            self.sim = SnowSimulation(
                width=width,
                height=height,
                capacity=capacity,
                sticky_push_mode=sticky_push_mode,
            )
        self.n_rows = self.sim.height
        self.n_cols = self.sim.width

        self.timestep: int = 0
        self.last_result: Optional[ActionResult] = None

        self.action_space = spaces.Discrete(len(ACTION_NAMES))
        self._build_observation_space()

        self._pygame = None
        self._screen = None
        self._clock = None
        self._font = None
        self._cell_size = int(cell_size)
        self._hud_height = 40

    def _build_observation_space(self) -> None:
        self.observation_space = spaces.Dict(
            {
                "grid": spaces.Box(
                    low=0.0,
                    high=np.inf,
                    shape=(self.n_rows, self.n_cols),
                    dtype=np.float32,
                ),
                "player": spaces.Box(
                    low=np.array([1, 1], dtype=np.int32),
                    high=np.array([self.n_cols - 2, self.n_rows - 2], dtype=np.int32),
                    dtype=np.int32,
                ),
                "holding": spaces.Box(
                    low=0.0, high=self.sim.capacity, shape=(1,), dtype=np.float32
                ),
                "push_mode": spaces.Discrete(2),
            }
        )

    def reset(self, seed: Optional[int] = None, options: Optional[dict] = None):
        super().reset(seed=seed)
        self.sim.reset()
        self.timestep = 0
        self.last_result = None
        return self._get_obs(), self._get_info()

    def step(self, action):
        action = int(action)
        if not self.action_space.contains(action):
            raise ValueError(f"Invalid action {action}")

        self.timestep += 1
        sim = self.sim

        if action <= ACTION_LEFT:
            result = sim.step_direction(*DIRECTIONS[action])
        elif action == ACTION_SHOVEL:
            result = sim.shovel()
        elif action == ACTION_THROW:
            result = sim.throw()
        else:
            result = self._toggle_push_mode()
        self.last_result = result

        reward = -result.cost if result.ok else self.r_invalid
        terminated = sim.game_over
        truncated = not terminated and self.timestep >= self.max_timestep

        if self.render_mode == "human":
            self.render()
        return self._get_obs(), float(reward), terminated, truncated, self._get_info()

    def _toggle_push_mode(self) -> ActionResult:
        sim = self.sim
        if sim.game_over:
            return ActionResult.fail(Failure.GAME_OVER)
        # switching push mode on needs empty hands; switching off is always allowed
        if not sim.push_mode and not sim.can_push():
            return ActionResult.fail(Failure.HANDS_FULL)
        sim.toggle_push_mode()
        return ActionResult.success(0.0)

    def _get_obs(self) -> Dict[str, np.ndarray]:
        p = self.sim.player
        return {
            "grid": self.sim.grid_view().astype(np.float32, copy=True),
            "player": np.array([p.x, p.y], dtype=np.int32),
            "holding": np.array([p.holding], dtype=np.float32),
            "push_mode": int(self.sim.push_mode),
        }

    def _get_info(self) -> Dict:
        sim = self.sim
        result = self.last_result
        return {
            "timestep": self.timestep,
            "energy_spent": sim.energy_spent,
            "driveway_snow": sim.driveway_snow(),
            "last_action_valid": True if result is None else result.ok,
            "failure": None if result is None or result.ok else result.reason.name,
            "can_shovel": sim.can_shovel(),
            "can_throw": sim.can_throw(),
            "can_push": sim.can_push(),
            "won": sim.game_over,
        }

    def hud_text(self) -> str:
        sim = self.sim
        mode = "PUSH" if sim.push_mode else "MOVE"
        text = (
            f"{format_energy(sim.energy_spent, sim.game_over)}  "
            f"holding={sim.holding:g}  mode={mode}"
        )
        result = self.last_result
        if result is not None and not result.ok:
            text += f"  ({result.reason.value})"
        return text

    def render(self):
        if self.render_mode is None:
            gym.logger.warn("render() called without a render_mode; nothing drawn.")
            return None

        self._ensure_pygame()
        pygame = self._pygame

        width = self.n_cols * self._cell_size
        height = self.n_rows * self._cell_size + self._hud_height
        if self._screen is None:
            if self.render_mode == "human":
                self._screen = pygame.display.set_mode((width, height))
                pygame.display.set_caption("Snow Driveway")
            else:
                self._screen = pygame.Surface((width, height))

        self._screen.fill((20, 20, 30))
        self.draw(self._screen)

        if self.render_mode == "human":
            pygame.event.pump()
            pygame.display.flip()
            self._clock.tick(self.metadata["render_fps"])
            return None

        arr = pygame.surfarray.array3d(self._screen)
        return np.transpose(arr, (1, 0, 2))

    def draw(self, surface) -> None:
        pygame = self._pygame
        sim = self.sim
        cs = self._cell_size
        top = self._hud_height

        for y in range(self.n_rows):
            for x in range(self.n_cols):
                zone = sim.zone(x, y)
                rect = (x * cs, y * cs + top, cs, cs)
                pygame.draw.rect(
                    surface, pile_color(zone, sim.cell_amount(x, y), sim.capacity), rect
                )
                border = (255, 255, 255) if zone.is_disposal else (0, 0, 0)
                pygame.draw.rect(surface, border, rect, 1)

        p = sim.player
        pygame.draw.rect(
            surface,
            PLAYER_COLOR,
            (p.x * cs + 5, p.y * cs + top + 5, cs - 10, cs - 10),
        )

        txt = self._font.render(self.hud_text(), True, (255, 255, 255))
        surface.blit(txt, (10, 10))
        if sim.game_over:
            win = self._font.render("You Win!", True, (255, 60, 60))
            surface.blit(win, win.get_rect(center=surface.get_rect().center))

    def close(self):
        if self._pygame is not None:
            self._pygame.quit()
        self._pygame = None
        self._screen = None
        self._clock = None
        self._font = None
        super().close()

    def _ensure_pygame(self):
        if self._pygame is not None:
            return
        if self.render_mode == "rgb_array":
            os.environ.setdefault("SDL_VIDEODRIVER", "dummy")
        import pygame

        pygame.init()
        self._pygame = pygame
        self._clock = pygame.time.Clock()
        self._font = pygame.font.Font(None, 24)
