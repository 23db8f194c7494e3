import math

import numpy as np
import pytest

from driveway_sim import (
    DIRECTIONS,
    GARAGE_MARKER,
    MAX_SHOVEL_CAPACITY,
    Failure,
    SnowSimulation,
    Zone,
    parse_layout,
)


def test_initial_grid_zones():
    sim = SnowSimulation()
    assert sim.grid_view().shape == (12, 12)
    assert np.all(sim.grid_view()[0, :] == GARAGE_MARKER)
    assert np.all(sim.grid_view()[1:-1, 1:-1] == 1)
    assert np.all(sim.grid_view()[1:, 0] == 0)
    assert np.all(sim.grid_view()[1:, -1] == 0)
    assert np.all(sim.grid_view()[-1, :] == 0)
    p = sim.player
    assert (p.x, p.y, p.holding) == (1, 1, 0)
    assert sim.energy_spent == 0
    assert not sim.game_over
    assert not sim.push_mode


def test_zone_classifier():
    sim = SnowSimulation()
    assert sim.zone(0, 0) is Zone.GARAGE
    assert sim.zone(11, 0) is Zone.GARAGE
    assert sim.zone(0, 11) is Zone.BOTTOM
    assert sim.zone(5, 11) is Zone.BOTTOM
    assert sim.zone(0, 5) is Zone.LEFT
    assert sim.zone(11, 5) is Zone.RIGHT
    assert sim.zone(5, 5) is Zone.DRIVEWAY
    assert Zone.LEFT.is_disposal and Zone.BOTTOM.is_disposal
    assert not Zone.GARAGE.is_disposal and not Zone.DRIVEWAY.is_disposal
    with pytest.raises(IndexError):
        sim.zone(12, 3)


def test_grid_too_small():
    with pytest.raises(ValueError):
        SnowSimulation(width=2, height=12)


def test_reference_scenario():
    sim = SnowSimulation()
    assert sim.shovel()
    assert sim.holding == 1
    assert sim.cell_amount(1, 1) == 0
    assert sim.energy_spent == 1

    res = sim.move(1, 0)
    assert res.ok and res.cost == 1
    assert (sim.player.x, sim.player.y) == (2, 1)
    assert sim.energy_spent == 2

    assert not sim.can_throw()
    res = sim.throw()
    assert not res
    assert res.reason is Failure.NOT_ON_EDGE
    assert sim.holding == 1
    assert sim.energy_spent == 2


def test_move_costs():
    sim = SnowSimulation()
    assert sim.move(0, 1).cost == 1
    sim.shovel()
    sim.move(0, 1)
    sim.shovel()
    before = sim.energy_spent
    res = sim.move(1, 0)
    assert res.cost == 2
    assert sim.energy_spent == before + 2


def test_move_out_of_bounds_is_idempotent():
    sim = SnowSimulation()
    res = sim.move(-1, 0)
    assert res.reason is Failure.OUT_OF_BOUNDS
    snapshot = (sim.grid_view().copy(), sim.player, sim.energy_spent)
    sim.move(-1, 0)
    sim.move(0, -1)
    assert np.array_equal(sim.grid_view(), snapshot[0])
    assert sim.player == snapshot[1]
    assert sim.energy_spent == snapshot[2]


def test_invalid_direction_rejected():
    sim = SnowSimulation()
    with pytest.raises(ValueError):
        sim.move(1, 1)
    with pytest.raises(ValueError):
        sim.push(0, 0)
    with pytest.raises(ValueError):
        sim.push(2, 0)
    with pytest.raises(ValueError):
        sim.push(1.7, 0)
    with pytest.raises(ValueError):
        sim.move(0, 0.5)
    assert sim.energy_spent == 0
    assert (sim.player.x, sim.player.y) == (1, 1)


def test_shovel_never_exceeds_capacity():
    sim = SnowSimulation.from_layout("2@ 2\n1 1")
    assert sim.shovel().cost == 2
    assert sim.cell_amount(1, 1) == 0
    assert sim.shovel().reason is Failure.NOTHING_TO_SHOVEL
    sim.move(1, 0)
    res = sim.shovel()
    assert res.cost == 1
    assert sim.holding == MAX_SHOVEL_CAPACITY
    assert sim.cell_amount(2, 1) == 1
    assert not sim.can_shovel()
    assert sim.shovel().reason is Failure.AT_CAPACITY


def test_throw_cost_is_superlinear():
    sim = SnowSimulation.from_layout("2@ 1\n1 1")
    sim.shovel()
    before = sim.energy_spent
    res = sim.throw()
    assert res.ok
    assert res.cost == pytest.approx(2 ** 1.5)
    assert sim.energy_spent == pytest.approx(before + 2.828, abs=1e-3)
    assert sim.holding == 0
    assert sim.cell_amount(0, 1) == 2


def test_throw_nothing_held():
    sim = SnowSimulation()
    assert sim.throw().reason is Failure.NOTHING_HELD


def test_throw_targets_by_edge():
    sim = SnowSimulation()
    assert sim.throw_target() == (0, 1)
    sim.move(0, 1)
    for _ in range(9):
        sim.move(1, 0)
    assert (sim.player.x, sim.player.y) == (10, 2)
    assert sim.throw_target() == (11, 2)
    sim.move(-1, 0)
    for _ in range(8):
        sim.move(0, 1)
    assert (sim.player.x, sim.player.y) == (9, 10)
    assert sim.throw_target() == (9, 11)


def test_throw_corner_prefers_x_edge():
    sim = SnowSimulation.from_layout("1 1\n1@ 1")
    assert sim.throw_target() == (0, 2)
    sim.shovel()
    sim.throw()
    assert sim.cell_amount(0, 2) == 1
    assert sim.cell_amount(1, 3) == 0


def test_disposal_is_unbounded():
    sim = SnowSimulation.from_layout("6@ 1\n1 1")
    for _ in range(2):
        assert sim.shovel().cost == 3
        assert sim.throw()
    assert sim.cell_amount(1, 1) == 0
    assert sim.cell_amount(0, 1) == 6


def test_push_without_overflow():
    sim = SnowSimulation.from_layout("0@ 1 1 0")
    res = sim.push(1, 0)
    assert res.ok and res.cost == 1
    assert sim.cell_amount(2, 1) == 0
    assert sim.cell_amount(3, 1) == 2
    assert (sim.player.x, sim.player.y) == (2, 1)
    assert sim.energy_spent == 1


def test_push_spill_split_between_neighbours():
    sim = SnowSimulation.from_layout(
        "0 0 0\n"
        "0@ 2 2\n"
        "0 0 0"
    )
    res = sim.push(1, 0)
    assert res.cost == 2
    assert sim.cell_amount(3, 2) == 3
    assert sim.cell_amount(2, 2) == 0
    assert sim.cell_amount(3, 1) == 0.5
    assert sim.cell_amount(3, 3) == 0.5
    assert sim.energy_spent == 2


def test_push_spill_single_neighbour():
    sim = SnowSimulation.from_layout(
        "0@ 2 2\n"
        "0 0 0"
    )
    sim.push(1, 0)
    assert sim.cell_amount(3, 1) == 3
    assert sim.cell_amount(3, 2) == 1
    assert sim.cell_amount(3, 0) == GARAGE_MARKER


def test_push_spill_vertical_uses_horizontal_neighbours():
    sim = SnowSimulation.from_layout(
        "0 0@\n"
        "0 2\n"
        "0 3"
    )
    sim.push(0, 1)
    assert sim.cell_amount(2, 3) == 3
    assert sim.cell_amount(1, 3) == 2
    assert sim.cell_amount(3, 3) == 0


def test_push_spill_lost_without_neighbours():
    sim = SnowSimulation.from_layout("0@ 2 2")
    before = sim.grid_view().sum()
    sim.push(1, 0)
    assert sim.cell_amount(3, 1) == 3
    assert sim.grid_view().sum() == before - 1


def test_push_failures():
    sim = SnowSimulation.from_layout("0@ 0 1\n1 1 1")
    assert sim.push(-1, 0).reason is Failure.OUT_OF_BOUNDS
    assert sim.push(0, 1).reason is Failure.OUT_OF_BOUNDS
    assert sim.push(1, 0).reason is Failure.NOTHING_TO_PUSH
    sim.move(0, 1)
    sim.shovel()
    assert not sim.can_push()
    assert sim.push(1, 0).reason is Failure.HANDS_FULL
    assert sim.cell_amount(2, 2) == 1


@pytest.mark.parametrize("actions", [
    ["shovel", "push", "move", "shovel", "throw", "push"],
    ["push", "push", "shovel", "move", "shovel", "throw"],
])
def test_driveway_snow_never_increases(actions):
    sim = SnowSimulation()
    rng = np.random.default_rng(0)
    for _ in range(40):
        for name in actions:
            before = sim.driveway_snow()
            if name == "move":
                sim.move(*DIRECTIONS[rng.integers(4)])
                assert sim.driveway_snow() == before
            elif name == "push":
                sim.push(*DIRECTIONS[rng.integers(4)])
                assert sim.driveway_snow() <= before
            else:
                getattr(sim, name)()
                assert sim.driveway_snow() <= before
            assert np.all(sim.grid_view() >= 0)
            assert 0 <= sim.holding <= MAX_SHOVEL_CAPACITY


def test_degenerate_driveway_win_latches():
    sim = SnowSimulation(width=3, height=3)
    assert not sim.is_won()
    assert sim.shovel()
    assert sim.is_won()
    assert sim.game_over
    energy = sim.energy_spent
    assert sim.move(1, 0).reason is Failure.GAME_OVER
    assert sim.shovel().reason is Failure.GAME_OVER
    assert sim.throw().reason is Failure.GAME_OVER
    assert sim.push(1, 0).reason is Failure.GAME_OVER
    assert sim.energy_spent == energy
    assert not (sim.can_shovel() or sim.can_throw() or sim.can_push())


def test_layout_already_clear_is_won():
    sim = SnowSimulation.from_layout("0@ 0")
    assert sim.is_won()
    assert sim.game_over
    assert sim.move(1, 0).reason is Failure.GAME_OVER


def test_push_mode_sticky_and_one_shot():
    sim = SnowSimulation.from_layout("0@ 1 0 0 1 0")
    assert sim.toggle_push_mode()
    assert sim.step_direction(1, 0).ok
    assert sim.push_mode
    assert (sim.player.x, sim.player.y) == (2, 1)

    sim = SnowSimulation.from_layout("0@ 1 0 0 1 0", sticky_push_mode=False)
    sim.toggle_push_mode()
    sim.step_direction(1, 0)
    assert not sim.push_mode
    res = sim.step_direction(1, 0)
    assert res.ok and res.cost == 1
    assert (sim.player.x, sim.player.y) == (3, 1)


def test_failed_push_keeps_one_shot_mode():
    sim = SnowSimulation.from_layout("0@ 0 0", sticky_push_mode=False)
    sim.toggle_push_mode()
    assert sim.step_direction(1, 0).reason is Failure.NOTHING_TO_PUSH
    assert sim.push_mode


def test_reset_restores_layout():
    sim = SnowSimulation.from_layout("1 2@")
    sim.shovel()
    sim.reset()
    assert sim.cell_amount(2, 1) == 2
    assert (sim.player.x, sim.player.y) == (2, 1)
    assert sim.energy_spent == 0


def test_grid_view_is_read_only():
    sim = SnowSimulation()
    view = sim.grid_view()
    with pytest.raises(ValueError):
        view[1, 1] = 5
    sim.shovel()
    assert view[1, 1] == 0


def test_session_state_cannot_be_reassigned():
    sim = SnowSimulation(width=3, height=3)
    sim.shovel()
    assert sim.game_over
    with pytest.raises(AttributeError):
        sim.game_over = False
    with pytest.raises(AttributeError):
        sim.energy_spent = -10
    with pytest.raises(AttributeError):
        sim.push_mode = True
    with pytest.raises(ValueError):
        sim.grid_view()[1, 1] = -4
    assert sim.game_over
    assert sim.energy_spent == 1
    assert sim.cell_amount(1, 1) == 0


def test_parse_layout():
    interior, start = parse_layout("1 0.5\n2 3@\n")
    assert interior.shape == (2, 2)
    assert interior[0, 1] == 0.5
    assert start == (2, 2)
    assert parse_layout("1 1")[1] is None


@pytest.mark.parametrize("text", ["", "1 1\n1", "1 x", "1 -1", "1@ 1@", "nan 1"])
def test_parse_layout_rejects(text):
    with pytest.raises(ValueError):
        parse_layout(text)


def test_full_sweep_clears_driveway():
    sim = SnowSimulation(width=5, height=4)
    # interior is 3 wide, 2 tall
    for y in (1, 2):
        for x in (1, 2, 3):
            while sim.player.x != x:
                sim.move(1 if sim.player.x < x else -1, 0)
            while sim.player.y != y:
                sim.move(0, 1 if sim.player.y < y else -1)
            sim.shovel()
            if sim.game_over:
                break
            if not sim.can_throw():
                sim.move(0, 1)
            assert sim.throw()
    assert sim.game_over
    assert math.isclose(sim.driveway_snow(), 0.0)
