from __future__ import annotations
import argparse
import time
from typing import Any, Dict, List, Optional, Sequence
from driveway_env import (
    ACTION_DOWN,
    ACTION_LEFT,
    ACTION_NAMES,
    ACTION_RIGHT,
    ACTION_SHOVEL,
    ACTION_THROW,
    ACTION_TOGGLE_PUSH,
    ACTION_UP,
    SnowDrivewayEnv,
    format_energy,
)
from driveway_sim import GRID_HEIGHT, GRID_WIDTH

COMMANDS = {
    "U": ACTION_UP,
    "R": ACTION_RIGHT,
    "D": ACTION_DOWN,
    "L": ACTION_LEFT,
    "S": ACTION_SHOVEL,
    "T": ACTION_THROW,
    "P": ACTION_TOGGLE_PUSH,
}


def parse_commands(text: str) -> List[int]:
    actions: List[int] = []
    for ch in text.upper():
        if ch.isspace() or ch == ",":
            continue
        if ch not in COMMANDS:
            raise ValueError(f"Unknown command {ch!r}; expected one of {''.join(COMMANDS)}")
        actions.append(COMMANDS[ch])
    return actions


def _command_list(text: str) -> List[int]:
    try:
        return parse_commands(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Replay a command string on the snow driveway.")
    ap.add_argument(
        "--commands",
        type=_command_list,
        required=True,
        help="Commands: U D L R (move, or push in push mode), S shovel, T throw, P toggle push mode",
    )
    ap.add_argument("--width", type=int, default=None, help="Grid width (default 12); not allowed with --layout")
    ap.add_argument("--height", type=int, default=None, help="Grid height (default 12); not allowed with --layout")
    ap.add_argument("--capacity", type=float, default=3.0)
    ap.add_argument("--layout", type=str, default=None, help="Path to a driveway layout file")
    ap.add_argument(
        "--one_shot_push",
        action="store_true",
        help="Leave push mode after every successful push",
    )
    ap.add_argument("--quiet", action="store_true", help="Less per-step logging")
    return ap


def run(
    actions: Sequence[int],
    env: SnowDrivewayEnv,
    quiet: bool = False,
) -> Dict[str, Any]:
    obs, info = env.reset()

    total_reward = 0.0
    step = 0
    invalid = 0
    t0 = time.perf_counter()

    for action in actions:
        obs, reward, terminated, truncated, info = env.step(action)
        total_reward += float(reward)
        step += 1
        if not info["last_action_valid"]:
            invalid += 1

        if not quiet:
            status = "ok" if info["last_action_valid"] else info["failure"]
            x, y = (int(v) for v in obs["player"])
            print(
                f"Step {step:3d} | {ACTION_NAMES[action]:<9} | {status:<17} "
                f"| pos ({x:2d},{y:2d}) | holding {float(obs['holding'][0]):4.1f} "
                f"| energy {info['energy_spent']:7.2f} | snow {info['driveway_snow']:6.1f}"
            )

        if terminated or truncated:
            break

    dt = time.perf_counter() - t0

    print("\n=== Finished ===")
    print(f"Steps:        {step}")
    print(f"Invalid:      {invalid}")
    print(f"Runtime (s):  {dt:.3f}")
    print(f"Total reward: {total_reward:.2f}")
    print(f"Snow left:    {info['driveway_snow']:.1f}")
    print(format_energy(info["energy_spent"], info["won"]))
    if info["won"]:
        print("You Win!")

    return {
        "steps": step,
        "invalid": invalid,
        "total_reward": total_reward,
        "won": info["won"],
        "energy_spent": info["energy_spent"],
    }


def run_from_args(argv: Optional[Sequence[str]] = None) -> Dict[str, Any]:
    ap = build_parser()
    args = ap.parse_args(argv)

    layout = None
    if args.layout is not None:
        if args.width is not None or args.height is not None:
            ap.error("--layout sets the grid size; drop --width/--height")
        with open(args.layout, "r", encoding="utf-8") as f:
            layout = f.read()

    env = SnowDrivewayEnv(
        render_mode=None,
        width=GRID_WIDTH if args.width is None else args.width,
        height=GRID_HEIGHT if args.height is None else args.height,
        capacity=args.capacity,
        layout=layout,
        max_timestep=max(1, len(args.commands)),
        sticky_push_mode=not args.one_shot_push,
    )
    try:
        return run(args.commands, env, quiet=args.quiet)
    finally:
        env.close()


def main() -> None:
    run_from_args()


if __name__ == "__main__":
    main()
