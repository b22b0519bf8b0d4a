"""
Smoke tests for WarehouseMap core functionality.
Uses stdlib only - runs with `python -m warehousemap.smoke_tests` or pytest.
"""

import csv
import io
import json
import math
import os
import tempfile
from collections import deque
from contextlib import redirect_stdout

from .astar import PathNotFoundError, a_star, find_path, path_length
from .capacity import CapacityPlanner, load_capacity_table, validate_capacity_table
from .occupancy import (
    OccupancyRecord,
    OccupancyRefreshError,
    OccupancySnapshot,
    OccupancyStore,
    make_demo_occupancy,
    occupancy_level,
)
from .report import floor_utilisation, summarize_utilisation, warehouse_utilisation, write_csv
from .routes import collecting_path, compute_cost_matrix, order_picks, pick_route, storing_path
from .topology import (
    DEFAULT_TOPOLOGY,
    CellKind,
    GridTopology,
    OutOfBoundsError,
    RackGroup,
    SizeClass,
)
from .visualize import COLORS, build_scene, cell_colors
from .visualize import main as visualize_main


def bfs_distance(topology, start, goal, blocked=None):
    """Brute-force step count with the same enterability rule as A*, or None."""
    if start == goal:
        return 0
    seen = {start}
    queue = deque([(start, 0)])
    while queue:
        (x, y), dist = queue.popleft()
        for dx, dy in [(-1, 0), (1, 0), (0, -1), (0, 1)]:
            n = (x + dx, y + dy)
            if n in seen:
                continue
            if n == goal:
                return dist + 1
            if topology.is_walkable(*n) and not (blocked and n in blocked):
                seen.add(n)
                queue.append((n, dist + 1))
    return None


def assert_valid_path(topology, path, start, goal, blocked=None):
    assert path[0] == start, f"Path starts at {path[0]}, expected {start}"
    assert path[-1] == goal, f"Path ends at {path[-1]}, expected {goal}"
    for a, b in zip(path, path[1:]):
        assert abs(a[0] - b[0]) + abs(a[1] - b[1]) == 1, f"Cells {a} and {b} are not 4-adjacent"
    for cell in path[1:-1]:
        assert topology.is_walkable(*cell), f"Path passes through non-walkable cell {cell}"
        assert not (blocked and cell in blocked), f"Path passes through blocked cell {cell}"


def _occupy(topology, codes, floor, quantity):
    records = []
    for code in codes:
        slot = topology.slot_by_code(code)
        records.append({"x": slot.x, "y": slot.y, "floor": floor,
                        "itemId": f"ITM-{code}", "itemName": code, "quantity": quantity})
    return records


def test_topology_cell_kinds():
    """Every in-bounds cell has exactly one kind, and walkability matches it."""
    print("Running test_topology_cell_kinds...", end=" ")

    topo = DEFAULT_TOPOLOGY
    assert (topo.width, topo.height, topo.floors) == (10, 12, 4)

    for x, y in topo.cells():
        slot = topo.slot_at(x, y)
        assert slot is topo.slot_at(x, y), "slot_at must be deterministic"
        assert topo.is_walkable(x, y) == (slot is None), f"Walkability mismatch at {(x, y)}"
        kind = topo.kind_at(x, y)
        if slot is not None:
            assert kind == CellKind.SLOT
        elif (x, y) in ((0, 0), (0, 11)):
            assert kind == CellKind.FIXED_POINT
        else:
            assert kind == CellKind.AISLE

    assert topo.receiving == (0, 0) and topo.packing == (0, 11)
    assert len(list(topo.cells())) == 120

    print("PASS")


def test_slot_codes_and_location_codes():
    """Slot codes follow rack family priority order."""
    print("Running test_slot_codes_and_location_codes...", end=" ")

    topo = DEFAULT_TOPOLOGY
    b01 = topo.slot_at(1, 8)
    assert b01.code == "B01", f"Expected B01 at (1, 8), got {b01.code}"
    assert b01.size_class == SizeClass.MEDIUM
    assert b01.rack_group == "B1"
    assert topo.slot_by_code("B07").cell == (1, 2)
    assert topo.slot_by_code("B08").cell == (3, 8)
    assert topo.slot_by_code("P01").cell == (7, 8)
    assert topo.slot_by_code("P08").cell == (9, 8)
    assert topo.slot_by_code("D01").cell == (3, 11)
    assert topo.slot_by_code("D08").cell == (3, 10)

    assert len(topo.slots(SizeClass.SMALL)) == 14
    assert len(topo.slots(SizeClass.MEDIUM)) == 21
    assert len(topo.slots(SizeClass.LARGE)) == 14
    assert len(topo.slots()) == 49

    assert topo.location_code(b01, 1) == "B01.1"
    assert topo.location_code(b01, 4) == "B01.4"
    assert topo.parse_location_code("B01.3") == (b01, 3)
    assert b01.label(1) == "B1-17-F1"

    for bad in ["B01", "B01.x", "Z99.1"]:
        try:
            topo.parse_location_code(bad)
            assert False, f"Expected ValueError for {bad!r}"
        except ValueError:
            pass

    print("PASS")


def test_out_of_bounds():
    """Out-of-grid coordinates raise instead of clamping."""
    print("Running test_out_of_bounds...", end=" ")

    topo = DEFAULT_TOPOLOGY
    for call in [
        lambda: topo.slot_at(15, 0),
        lambda: topo.slot_at(0, 12),
        lambda: topo.kind_at(-1, 0),
        lambda: topo.location_code(topo.slot_by_code("B01"), 5),
        lambda: topo.location_code(topo.slot_by_code("B01"), 0),
        lambda: find_path(topo, (0, 0), (15, 0)),
        lambda: find_path(topo, (-1, 0), (0, 0)),
    ]:
        try:
            call()
            assert False, "Expected OutOfBoundsError"
        except OutOfBoundsError:
            pass

    assert not topo.is_walkable(15, 0)
    assert not topo.is_walkable(-1, 5)

    print("PASS")


def test_topology_validation():
    """Malformed rack layouts are rejected at construction."""
    print("Running test_topology_validation...", end=" ")

    overlapping = [
        RackGroup("A1", SizeClass.SMALL, 1, 1, 1, 3),
        RackGroup("A2", SizeClass.SMALL, 1, 3, 2, 3),
    ]
    covering = [RackGroup("A1", SizeClass.SMALL, 0, 0, 0, 2)]
    outside = [RackGroup("A1", SizeClass.SMALL, 3, 0, 6, 0)]

    for racks in [overlapping, covering, outside]:
        try:
            GridTopology(width=5, height=5, floors=1, racks=racks, receiving=(0, 0), packing=(4, 4))
            assert False, f"Expected ValueError for racks {racks}"
        except ValueError:
            pass

    print("PASS")


def test_size_class_from_category():
    """Categories resolve by exact alias, never by substring."""
    print("Running test_size_class_from_category...", end=" ")

    assert SizeClass.from_category("Medium") == SizeClass.MEDIUM
    assert SizeClass.from_category(" small ") == SizeClass.SMALL
    assert SizeClass.from_category("pellet") == SizeClass.SMALL
    assert SizeClass.from_category("bin") == SizeClass.MEDIUM
    assert SizeClass.from_category("D") == SizeClass.LARGE
    assert SizeClass.from_category(SizeClass.LARGE) == SizeClass.LARGE

    for bad in ["small items", "extra-large", ""]:
        try:
            SizeClass.from_category(bad)
            assert False, f"Expected ValueError for {bad!r}"
        except ValueError:
            pass

    print("PASS")


def test_required_squares():
    """required_squares == ceil(quantity / capacity), zero for non-positive."""
    print("Running test_required_squares...", end=" ")

    planner = CapacityPlanner()
    for size_class in SizeClass:
        assert planner.required_squares(size_class, 0) == 0
        assert planner.required_squares(size_class, -5) == 0
        for quantity in [1, 49, 50, 51, 120, 500]:
            expected = math.ceil(quantity / planner.capacity_for(size_class))
            assert planner.required_squares(size_class, quantity) == expected

    assert planner.required_squares(SizeClass.MEDIUM, 120) == 3

    custom = CapacityPlanner(capacity={"small": 40, SizeClass.LARGE: 10})
    assert custom.capacity_for(SizeClass.SMALL) == 40
    assert custom.capacity_for(SizeClass.MEDIUM) == 50
    assert custom.required_squares(SizeClass.SMALL, 120) == 3
    assert custom.required_squares(SizeClass.SMALL, 121) == 4
    assert custom.required_squares(SizeClass.LARGE, 25) == 3

    print("PASS")


def test_capacity_table_config():
    """Capacity tables load from JSON and reject bad values."""
    print("Running test_capacity_table_config...", end=" ")

    for bad in [{"small": 0}, {"medium": -3}, {"large": 2.5}, {"huge": 10}, {"small": True}]:
        try:
            validate_capacity_table(bad)
            assert False, f"Expected ValueError for {bad}"
        except ValueError:
            pass

    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "capacity.json")
        with open(path, "w") as f:
            json.dump({"small": 40, "large": 20}, f)
        table = load_capacity_table(path)

    assert table == {SizeClass.SMALL: 40, SizeClass.MEDIUM: 50, SizeClass.LARGE: 20}

    print("PASS")


def test_suggest_locations_empty_floor():
    """120 Medium units on an empty floor suggest B01, B02, B03."""
    print("Running test_suggest_locations_empty_floor...", end=" ")

    planner = CapacityPlanner()
    store = OccupancyStore()

    suggestions = planner.suggest_locations(SizeClass.MEDIUM, 120, 1, store)
    assert [s.code for s in suggestions] == ["B01", "B02", "B03"]
    assert all(s.size_class == SizeClass.MEDIUM for s in suggestions)
    assert planner.suggest_locations(SizeClass.MEDIUM, 0, 1, store) == []
    assert [s.code for s in planner.suggest_locations(SizeClass.SMALL, 1, 1, store)] == ["P01"]

    try:
        planner.suggest_locations(SizeClass.MEDIUM, 10, 5, store)
        assert False, "Expected OutOfBoundsError for floor 5"
    except OutOfBoundsError:
        pass

    print("PASS")


def test_suggest_locations_skips_occupied():
    """Occupied slots on the queried floor are never suggested."""
    print("Running test_suggest_locations_skips_occupied...", end=" ")

    topo = DEFAULT_TOPOLOGY
    planner = CapacityPlanner()
    store = OccupancyStore()
    store.refresh(_occupy(topo, ["B01", "B03"], floor=1, quantity=10))

    floor1 = planner.suggest_locations(SizeClass.MEDIUM, 150, 1, store)
    assert [s.code for s in floor1] == ["B02", "B04", "B05"]
    for slot in floor1:
        assert not store.is_occupied(slot.x, slot.y, 1)

    floor2 = planner.suggest_locations(SizeClass.MEDIUM, 150, 2, store)
    assert [s.code for s in floor2] == ["B01", "B02", "B03"]

    for quantity in [1, 50, 99, 700, 5000]:
        result = planner.suggest_locations(SizeClass.MEDIUM, quantity, 1, store)
        assert len(result) <= planner.required_squares(SizeClass.MEDIUM, quantity)
        assert len(set(s.code for s in result)) == len(result)

    print("PASS")


def test_suggest_locations_partial():
    """A nearly full floor yields a partial list rather than an error."""
    print("Running test_suggest_locations_partial...", end=" ")

    topo = DEFAULT_TOPOLOGY
    planner = CapacityPlanner()
    store = OccupancyStore()
    taken = [f"D{i:02d}" for i in range(1, 13)]
    store.refresh(_occupy(topo, taken, floor=1, quantity=10))

    suggestions = planner.suggest_locations(SizeClass.LARGE, 500, 1, store)
    assert [s.code for s in suggestions] == ["D13", "D14"]

    plan = planner.plan_storage({"quantity": 500, "category": "large"}, 1, store)
    assert plan["size_class"] == SizeClass.LARGE
    assert plan["required"] == 10
    assert plan["location_codes"] == ["D13.1", "D14.1"]
    assert plan["shortfall"] == 8

    print("PASS")


def test_plan_storage_descriptor():
    """Item descriptors resolve their size class once at the boundary."""
    print("Running test_plan_storage_descriptor...", end=" ")

    planner = CapacityPlanner()
    store = OccupancyStore()

    plan = planner.plan_storage({"quantity": 120, "category": "Medium"}, 2, store)
    assert plan["required"] == 3
    assert plan["location_codes"] == ["B01.2", "B02.2", "B03.2"]
    assert plan["shortfall"] == 0

    plan = planner.plan_storage({"quantity": 0, "sizeClass": "small"}, 1, store)
    assert plan["required"] == 0 and plan["suggestions"] == []

    for bad in [{"category": "small"}, {"quantity": 5}, {"quantity": 5, "category": "tiny"}]:
        try:
            planner.plan_storage(bad, 1, store)
            assert False, f"Expected ValueError for {bad}"
        except ValueError:
            pass

    print("PASS")


def test_occupancy_queries():
    """25 of 50 units at (1, 8) on floor 1 reads as 50% full."""
    print("Running test_occupancy_queries...", end=" ")

    store = OccupancyStore()
    store.refresh([
        {"coordinates": {"x": 1, "y": 8, "floor": 1}, "itemId": 7, "itemName": "Tape",
         "quantity": 25, "category": "medium", "storedAt": "2024-03-02T09:15:00Z"},
        {"x": 3, "y": 8, "floor": 1, "item_id": "ITM-9", "item_name": "Labels", "quantity": 17},
    ])

    assert store.is_occupied(1, 8, 1)
    assert not store.is_occupied(1, 8, 2)
    assert store.occupancy_percent(1, 8, 1) == 50
    assert store.occupancy_percent(3, 8, 1) == 34
    assert store.occupancy_percent(1, 7, 1) == 0
    assert store.occupancy_percent(0, 5, 1) == 0

    record = store.get(1, 8, 1)
    assert record.location_code == "B01.1"
    assert record.item_id == "7"
    assert record.item_name == "Tape"
    assert record.stored_at.year == 2024 and record.stored_at.utcoffset().total_seconds() == 0
    assert store.get(1, 8, 3) is None

    assert [r.location_code for r in store.records()] == ["B01.1", "B08.1"]
    assert store.records(2) == []

    try:
        store.is_occupied(10, 0, 1)
        assert False, "Expected OutOfBoundsError"
    except OutOfBoundsError:
        pass

    print("PASS")


def test_occupancy_refresh_atomic():
    """A bad refresh is rejected whole and the previous snapshot survives."""
    print("Running test_occupancy_refresh_atomic...", end=" ")

    topo = DEFAULT_TOPOLOGY
    store = OccupancyStore()
    first = store.refresh(make_demo_occupancy())
    count = len(first)
    assert count == len(make_demo_occupancy())

    bad_payloads = [
        make_demo_occupancy() + [{"x": 5, "y": 2, "floor": 1, "quantity": 500}],
        make_demo_occupancy() + [{"x": 0, "y": 5, "floor": 1, "quantity": 1}],
        make_demo_occupancy() + [{"x": 1, "y": 2, "floor": 9, "quantity": 1}],
        make_demo_occupancy() + [{"x": 12, "y": 2, "floor": 1, "quantity": 1}],
        make_demo_occupancy() + [{"x": 1, "y": 3, "floor": 1, "quantity": -1}],
        make_demo_occupancy() + [{"y": 3, "floor": 1, "quantity": 1}],
        make_demo_occupancy() + [{"x": 1, "y": 3, "floor": 1, "quantity": math.inf}],
        make_demo_occupancy() + [{"x": 1, "y": 3, "floor": 1, "quantity": 2.5}],
        make_demo_occupancy() + [{"x": 1.7, "y": 3, "floor": 1, "quantity": 1}],
        make_demo_occupancy() + [{"x": 1, "y": 3.2, "floor": 1, "quantity": 1}],
        make_demo_occupancy() + [{"x": 1, "y": 3, "floor": 1.2, "quantity": 1}],
        make_demo_occupancy() + [{"x": True, "y": 3, "floor": 1, "quantity": 1}],
        make_demo_occupancy() + _occupy(topo, ["B01"], floor=1, quantity=5),
    ]
    for payload in bad_payloads:
        try:
            store.refresh(payload)
            assert False, f"Expected OccupancyRefreshError for {payload[-1]}"
        except OccupancyRefreshError:
            pass
        assert store.snapshot() is first
        assert len(store.snapshot()) == count

    # A reader holding a snapshot keeps seeing it after a refresh
    held = store.snapshot()
    store.refresh([])
    assert len(held) == count and held.is_occupied(1, 8, 1)
    assert not store.is_occupied(1, 8, 1)

    wrong_code = OccupancyRecord("B02.1", 1, 8, 1, "x", "x", 1)
    try:
        store.refresh([wrong_code])
        assert False, "Expected OccupancyRefreshError for mismatched location code"
    except OccupancyRefreshError:
        pass

    # Integral floats are accepted as whole numbers
    store.refresh([{"x": 1.0, "y": 8.0, "floor": 1.0, "quantity": 5.0}])
    record = store.get(1, 8, 1)
    assert record.location_code == "B01.1" and record.quantity == 5
    assert isinstance(record.quantity, int) and isinstance(record.floor, int)

    print("PASS")


def test_occupancy_level():
    """Occupancy percentages map to the floor map's colour bands."""
    print("Running test_occupancy_level...", end=" ")

    assert occupancy_level(0) == "empty"
    assert occupancy_level(1) == "partial"
    assert occupancy_level(49) == "partial"
    assert occupancy_level(50) == "filling"
    assert occupancy_level(79) == "filling"
    assert occupancy_level(80) == "full"
    assert occupancy_level(100) == "full"

    print("PASS")


def test_find_path_scenario():
    """Receiving to B01 on an empty grid is 9 steps."""
    print("Running test_find_path_scenario...", end=" ")

    topo = DEFAULT_TOPOLOGY
    path = find_path(topo, (0, 0), (1, 8))
    assert len(path) == 10, f"Expected 10 cells, got {len(path)}"
    assert path_length(path) == 9
    assert_valid_path(topo, path, (0, 0), (1, 8))

    same = find_path(topo, (4, 4), (4, 4))
    assert same == [(4, 4)]

    print("PASS")


def test_find_path_matches_bfs():
    """A* is optimal against brute-force BFS for every slot and fixed point."""
    print("Running test_find_path_matches_bfs...", end=" ")

    topo = DEFAULT_TOPOLOGY
    endpoints = [topo.receiving, topo.packing, (4, 9), (8, 0), (6, 5)]
    goals = [slot.cell for slot in topo.slots()] + endpoints

    for start in endpoints:
        for goal in goals:
            expected = bfs_distance(topo, start, goal)
            result = a_star(topo, start, goal)
            path = find_path(topo, start, goal)
            if expected is None:
                assert not result["found"]
                assert path == [start, goal]
            else:
                assert result["found"] and result["cost"] == expected, \
                    f"{start}->{goal}: A* cost {result['cost']}, BFS {expected}"
                assert path_length(path) == expected
                assert_valid_path(topo, path, start, goal)

    # Leaving a slot works the same way
    for slot in topo.slots(SizeClass.SMALL):
        expected = bfs_distance(topo, slot.cell, topo.packing)
        assert path_length(find_path(topo, slot.cell, topo.packing)) == expected

    # Euclidean is also admissible on a unit grid
    for goal in goals:
        manhattan_cost = a_star(topo, topo.receiving, goal)["cost"]
        assert a_star(topo, topo.receiving, goal, heuristic="euclidean")["cost"] == manhattan_cost

    try:
        a_star(topo, (0, 0), (1, 1), heuristic="chebyshev")
        assert False, "Expected ValueError for unknown heuristic"
    except ValueError:
        pass

    print("PASS")


def test_find_path_deterministic():
    """Identical inputs give identical paths."""
    print("Running test_find_path_deterministic...", end=" ")

    topo = DEFAULT_TOPOLOGY
    for slot in topo.slots():
        assert find_path(topo, topo.receiving, slot.cell) == find_path(topo, topo.receiving, slot.cell)
        assert find_path(topo, slot.cell, topo.packing) == find_path(topo, slot.cell, topo.packing)

    print("PASS")


def test_find_path_fallback():
    """Unreachable goals fall back to [start, goal] unless strict."""
    print("Running test_find_path_fallback...", end=" ")

    topo = DEFAULT_TOPOLOGY
    d04 = topo.slot_by_code("D04").cell  # back row of D, walled in by other slots
    assert find_path(topo, topo.receiving, d04) == [topo.receiving, d04]
    try:
        find_path(topo, topo.receiving, d04, strict=True)
        assert False, "Expected PathNotFoundError"
    except PathNotFoundError:
        pass

    # A full-height rack splits this small floor in two
    walled = GridTopology(
        width=5, height=3, floors=1,
        racks=[RackGroup("W", SizeClass.MEDIUM, 2, 0, 2, 2)],
        receiving=(0, 0), packing=(4, 0),
    )
    assert find_path(walled, walled.receiving, walled.packing) == [(0, 0), (4, 0)]
    assert find_path(walled, (0, 0), (2, 1)) == [(0, 0), (0, 1), (1, 1), (2, 1)]

    print("PASS")


def test_find_path_blocked_cells():
    """Dynamic obstacles force a detour but never block the goal."""
    print("Running test_find_path_blocked_cells...", end=" ")

    topo = DEFAULT_TOPOLOGY
    blocked = {(0, 4)}
    path = find_path(topo, (0, 0), (1, 8), blocked=blocked)
    assert (0, 4) not in path
    assert_valid_path(topo, path, (0, 0), (1, 8), blocked)
    assert path_length(path) == bfs_distance(topo, (0, 0), (1, 8), blocked)
    assert path_length(path) > 9

    # Goal inside the blocked set is still reachable
    path = find_path(topo, (0, 0), (0, 3), blocked={(0, 3)})
    assert path == [(0, 0), (0, 1), (0, 2), (0, 3)]

    print("PASS")


def test_routes():
    """Storing, collecting and pick routes chain valid A* legs."""
    print("Running test_routes...", end=" ")

    topo = DEFAULT_TOPOLOGY
    b01 = topo.slot_by_code("B01")
    assert storing_path(topo, b01) == find_path(topo, topo.receiving, b01.cell)

    p08 = topo.slot_by_code("P08")
    out = collecting_path(topo, p08)
    assert out[0] == p08.cell and out[-1] == topo.packing
    assert_valid_path(topo, out, p08.cell, topo.packing)

    codes = ["B10", "P03", "B02", "D08"]
    targets = [topo.slot_by_code(c).cell for c in codes]
    route = pick_route(topo, topo.receiving, targets)
    assert sorted(route["order"]) == [0, 1, 2, 3]
    assert route["found"]
    assert route["stops"][0] == topo.receiving and route["stops"][-1] == topo.packing
    assert route["cell_path"][0] == topo.receiving and route["cell_path"][-1] == topo.packing
    assert route["cost"] == len(route["cell_path"]) - 1
    for target in targets:
        assert target in route["cell_path"]
    for a, b in zip(route["cell_path"], route["cell_path"][1:]):
        assert abs(a[0] - b[0]) + abs(a[1] - b[1]) == 1

    assert pick_route(topo, topo.receiving, targets) == route

    unreachable = pick_route(topo, topo.receiving, [topo.slot_by_code("D04").cell])
    assert not unreachable["found"] and unreachable["cost"] == math.inf

    try:
        pick_route(topo, (0, 0), [(20, 20)])
        assert False, "Expected OutOfBoundsError"
    except OutOfBoundsError:
        pass

    print("PASS")


def test_cost_matrix_and_order():
    """Cost matrix is symmetric with a zero diagonal; greedy order is nearest-next."""
    print("Running test_cost_matrix_and_order...", end=" ")

    topo = DEFAULT_TOPOLOGY
    cells = [topo.receiving] + [topo.slot_by_code(c).cell for c in ["B01", "P01", "B07"]]
    result = compute_cost_matrix(topo, cells)
    matrix = result["matrix"]
    n = len(cells)

    assert result["astar_calls"] == n * (n - 1) // 2
    for i in range(n):
        assert matrix[i][i] == 0
        for j in range(n):
            assert matrix[i][j] == matrix[j][i]

    order = order_picks(matrix)
    assert order[0] == 0 and sorted(order) == list(range(n))
    # B07 at (1, 2) is the closest stop to receiving
    assert order[1] == 3

    assert order_picks([]) == []
    assert order_picks([[0, 5, 5], [5, 0, 1], [5, 1, 0]]) == [0, 1, 2]

    print("PASS")


def test_utilisation_report():
    """Per-rack utilisation rows add up from the occupancy snapshot."""
    print("Running test_utilisation_report...", end=" ")

    topo = DEFAULT_TOPOLOGY
    planner = CapacityPlanner()
    store = OccupancyStore()
    store.refresh(make_demo_occupancy())

    rows = floor_utilisation(topo, store, planner, 1)
    by_rack = {row["rack_group"]: row for row in rows}
    assert [row["rack_group"] for row in rows] == ["P1", "P2", "B1", "B2", "B3", "D"]
    assert by_rack["B1"]["occupied"] == 2
    assert by_rack["B1"]["units"] == 73
    assert by_rack["B1"]["capacity_units"] == 350
    assert by_rack["B1"]["utilisation_pct"] == 20.9
    assert by_rack["P1"]["units"] == 45
    assert by_rack["D"]["occupied"] == 1 and by_rack["D"]["slots"] == 14
    assert by_rack["B2"]["units"] == 0

    all_rows = warehouse_utilisation(topo, store, planner)
    assert len(all_rows) == 4 * 6
    summary = summarize_utilisation(all_rows)
    assert summary["occupied"] == len(make_demo_occupancy())
    assert summary["slots"] == 4 * 49
    assert summary["units"] == sum(r["quantity"] for r in make_demo_occupancy())

    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "utilisation.csv")
        output = io.StringIO()
        with redirect_stdout(output):
            write_csv(rows, path)
            write_csv([], os.path.join(tmp, "empty.csv"))
        assert output.getvalue() == ""
        assert not os.path.exists(os.path.join(tmp, "empty.csv"))
        with open(path, newline="") as f:
            read_back = list(csv.DictReader(f))
    assert len(read_back) == 6
    assert list(read_back[0].keys())[:3] == ["floor", "rack_group", "size_class"]
    assert read_back[2]["units"] == "73"

    print("PASS")


def test_visualize_scene():
    """Floor colours and scenes come straight from the core queries."""
    print("Running test_visualize_scene...", end=" ")

    topo = DEFAULT_TOPOLOGY
    planner = CapacityPlanner()
    store = OccupancyStore()
    store.refresh(make_demo_occupancy())

    colors = cell_colors(topo, store, 1)
    assert len(colors) == topo.height and len(colors[0]) == topo.width
    assert colors[0][0] == COLORS["receiving"]
    assert colors[11][0] == COLORS["packing"]
    assert colors[5][0] == COLORS["aisle"]
    assert colors[8][1] == COLORS["filling"]   # B01: 25/50
    assert colors[7][1] == COLORS["full"]      # B02: 48/50
    assert colors[8][7] == COLORS["partial"]   # P01: 10/50
    assert colors[8][3] == COLORS["medium"]    # B08: empty
    assert cell_colors(topo, store, 2)[8][1] == COLORS["medium"]

    scene = build_scene(topo, planner, store, 1, mode="storing", quantity=120, category="medium")
    assert [s.code for s in scene["suggestions"]] == ["B03", "B04", "B05"]
    assert scene["required"] == 3
    assert scene["path"][0] == topo.receiving
    assert scene["path"][-1] == topo.slot_by_code("B03").cell

    scene = build_scene(topo, planner, store, 1, mode="collecting", targets=["P08"])
    assert scene["path"][-1] == topo.packing

    scene = build_scene(topo, planner, store, 1, mode="picking", targets=["B10", "P03"], worker=(4, 9))
    assert scene["path"][0] == (4, 9) and scene["path"][-1] == topo.packing

    for kwargs in [{"mode": "collecting"}, {"mode": "picking"}, {"mode": "flying"}]:
        try:
            build_scene(topo, planner, store, 1, **kwargs)
            assert False, f"Expected ValueError for {kwargs}"
        except ValueError:
            pass

    print("PASS")



def test_occupancy_percent_clamped():
    """Overfilled locations report 100 percent, never more."""
    print("Running test_occupancy_percent_clamped...", end=" ")

    topo = DEFAULT_TOPOLOGY
    records = {
        (1, 8, 1): OccupancyRecord("B01.1", 1, 8, 1, "ITM-1", "crates", 80),
        (1, 7, 1): OccupancyRecord("B02.1", 1, 7, 1, "ITM-2", "crates", 51),
        (7, 8, 1): OccupancyRecord("P01.1", 7, 8, 1, "ITM-3", "pellets", 50),
    }
    snapshot = OccupancySnapshot(records, topo, validate_capacity_table({}))

    assert snapshot.occupancy_percent(1, 8, 1) == 100
    assert snapshot.occupancy_percent(1, 7, 1) == 100
    assert snapshot.occupancy_percent(7, 8, 1) == 100
    assert occupancy_level(snapshot.occupancy_percent(1, 8, 1)) == "full"
    assert snapshot.occupancy_percent(3, 8, 1) == 0

    print("PASS")


def test_visualize_cli_errors():
    """The floor viewer CLI reports bad input with exit status 1."""
    print("Running test_visualize_cli_errors...", end=" ")

    with tempfile.TemporaryDirectory() as tmp:
        out = os.path.join(tmp, "floor.png")
        assert visualize_main(["--floor", "9", "--save", out]) == 1
        assert visualize_main(["--floor", "0", "--mode", "storing",
                               "--quantity", "10", "--category", "small", "--save", out]) == 1
        assert visualize_main(["--mode", "collecting", "--target", "Z99", "--save", out]) == 1
        assert not os.path.exists(out)

    print("PASS")

if __name__ == "__main__":
    print("=" * 60)
    print("WAREHOUSEMAP SMOKE TESTS")
    print("=" * 60)
    print()

    tests = [
        test_topology_cell_kinds,
        test_slot_codes_and_location_codes,
        test_out_of_bounds,
        test_topology_validation,
        test_size_class_from_category,
        test_required_squares,
        test_capacity_table_config,
        test_suggest_locations_empty_floor,
        test_suggest_locations_skips_occupied,
        test_suggest_locations_partial,
        test_plan_storage_descriptor,
        test_occupancy_queries,
        test_occupancy_refresh_atomic,
        test_occupancy_level,
        test_find_path_scenario,
        test_find_path_matches_bfs,
        test_find_path_deterministic,
        test_find_path_fallback,
        test_find_path_blocked_cells,
        test_routes,
        test_cost_matrix_and_order,
        test_utilisation_report,
        test_visualize_scene,
        test_occupancy_percent_clamped,
        test_visualize_cli_errors,
    ]

    try:
        for test in tests:
            test()

        print()
        print("=" * 60)
        print("ALL TESTS PASSED ✓")
        print("=" * 60)

    except AssertionError as e:
        print()
        print("=" * 60)
        print("TEST FAILED ✗")
        print("=" * 60)
        print(f"Error: {e}")
        raise
