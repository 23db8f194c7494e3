from __future__ import annotations
import argparse
from typing import Optional, Sequence
from driveway_env import (
    ACTION_DOWN,
    ACTION_LEFT,
    ACTION_RIGHT,
    ACTION_SHOVEL,
    ACTION_THROW,
    ACTION_TOGGLE_PUSH,
    ACTION_UP,
    SnowDrivewayEnv,
)
from driveway_sim import GRID_HEIGHT, GRID_WIDTH


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser()
    ap.add_argument("--width", type=int, default=None, help="Grid width (default 12); not allowed with --layout")
    ap.add_argument("--height", type=int, default=None, help="Grid height (default 12); not allowed with --layout")
    ap.add_argument("--layout", type=str, default=None)
    ap.add_argument(
        "--one_shot_push",
        action="store_true",
        help="Leave push mode after every successful push",
    )
    ap.add_argument("--cell", type=int, default=40, help="Cell size in pixels")
    return ap


def main(argv: Optional[Sequence[str]] = None) -> None:
    ap = _build_parser()
    args = ap.parse_args(argv)

    layout = None
    if args.layout is not None:
        if args.width is not None or args.height is not None:
            ap.error("--layout sets the grid size; drop --width/--height")
        with open(args.layout, "r", encoding="utf-8") as f:
            layout = f.read()

    env = SnowDrivewayEnv(
        render_mode="human",
        width=GRID_WIDTH if args.width is None else args.width,
        height=GRID_HEIGHT if args.height is None else args.height,
        layout=layout,
        max_timestep=10**9,
        sticky_push_mode=not args.one_shot_push,
        cell_size=args.cell,
    )
    env.reset()
    env.render()

    import pygame

    keymap = {
        pygame.K_UP: ACTION_UP,
        pygame.K_RIGHT: ACTION_RIGHT,
        pygame.K_DOWN: ACTION_DOWN,
        pygame.K_LEFT: ACTION_LEFT,
        pygame.K_s: ACTION_SHOVEL,
        pygame.K_t: ACTION_THROW,
        pygame.K_p: ACTION_TOGGLE_PUSH,
    }

    running = True
    while running:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_r:
                    env.reset()
                elif event.key in keymap:
                    env.step(keymap[event.key])
        if running:
            env.render()

    env.close()


if __name__ == "__main__":
    main()
