"""
Worker routes for WarehouseMap.
Builds storing, collecting and multi-stop picking routes on top of A*.
"""

import math
from typing import Dict, List, Optional, Sequence

from .astar import a_star, find_path
from .topology import DEFAULT_TOPOLOGY, Cell, GridTopology, Slot


def storing_path(topology: GridTopology, slot: Slot) -> List[Cell]:
    """Route from the receiving point into a storage slot."""
    return find_path(topology, topology.receiving, slot.cell)


def collecting_path(topology: GridTopology, slot: Slot) -> List[Cell]:
    """Route from a storage slot out to the packing point."""
    return find_path(topology, slot.cell, topology.packing)


def compute_cost_matrix(topology: GridTopology, cells: Sequence[Cell]) -> Dict:
    """
    Compute shortest-path step costs between all cells.

    Args:
        topology: Warehouse grid topology
        cells: List of (x, y) stops

    Returns:
        dict with keys:
            - "matrix": NxN 2D list of costs (ints or math.inf)
            - "expanded_total": total nodes expanded across all A* calls
            - "astar_calls": number of A* runs performed

    Notes:
        - Diagonal entries are 0
        - Only i < j is searched, then mirrored to j, i
    """
    n = len(cells)
    matrix = [[0 if i == j else math.inf for j in range(n)] for i in range(n)]

    expanded_total = 0
    astar_calls = 0

    for i in range(n):
        for j in range(i + 1, n):
            result = a_star(topology, cells[i], cells[j])
            matrix[i][j] = result["cost"]
            matrix[j][i] = result["cost"]
            expanded_total += result["expanded"]
            astar_calls += 1

    return {
        "matrix": matrix,
        "expanded_total": expanded_total,
        "astar_calls": astar_calls
    }


def order_picks(cost_matrix: List[List[float]]) -> List[int]:
    """
    Greedy nearest-next visiting order starting at index 0.

    Ties are broken by the smaller index, so the order is deterministic.
    Unreachable stops (cost inf) are still visited, last.
    """
    n = len(cost_matrix)
    if n == 0:
        return []

    order = [0]
    visited = {0}
    while len(order) < n:
        current = order[-1]
        best = min(
            (s for s in range(n) if s not in visited),
            key=lambda s: (cost_matrix[current][s], s)
        )
        order.append(best)
        visited.add(best)
    return order


def pick_route(
    topology: GridTopology,
    worker: Cell,
    targets: Sequence[Cell],
    end: Optional[Cell] = None,
) -> Dict:
    """
    Route a worker through every pick target and on to a final cell.

    Args:
        topology: Warehouse grid topology
        worker: Current worker cell
        targets: Cells to visit, in any order
        end: Final cell after the last pick (default: packing point)

    Returns:
        dict with keys:
            - "order": indices into targets in visiting order
            - "stops": worker, targets in visiting order, end
            - "cell_path": continuous list of cells
            - "cost": total steps (math.inf if some leg is unreachable)
            - "found": True if every leg has a real path
    """
    if end is None:
        end = topology.packing

    topology.check_cell(*worker)
    topology.check_cell(*end)
    for cell in targets:
        topology.check_cell(*cell)

    stops = [worker] + list(targets)
    matrix = compute_cost_matrix(topology, stops)["matrix"]
    visit = order_picks(matrix)
    ordered = [stops[i] for i in visit] + [end]

    cell_path: List[Cell] = [worker]
    total_cost = 0
    all_found = True

    for a, b in zip(ordered, ordered[1:]):
        result = a_star(topology, a, b)
        if result["found"]:
            segment = result["path"]
            total_cost += result["cost"]
        else:
            segment = [a, b]
            total_cost = math.inf
            all_found = False
        # Skip first cell of segment, it closes the previous one
        cell_path.extend(segment[1:])

    return {
        "order": [i - 1 for i in visit[1:]],
        "stops": ordered,
        "cell_path": cell_path,
        "cost": total_cost,
        "found": all_found
    }


if __name__ == "__main__":
    topo = DEFAULT_TOPOLOGY

    codes = ["B10", "P03", "B02", "D08"]
    targets = [topo.slot_by_code(code).cell for code in codes]

    print("=" * 60)
    print("PICK ROUTE")
    print("=" * 60)
    print(f"\nWorker at {topo.receiving}, picks: {codes}")

    route = pick_route(topo, topo.receiving, targets)
    print(f"Visiting order: {[codes[i] for i in route['order']]}")
    print(f"Total steps: {route['cost']}")
    print(f"All legs found: {route['found']}")
    print(f"Cells: {route['cell_path']}")
