"""
A* pathfinding for WarehouseMap.
Finds shortest 4-connected walkable routes on the warehouse floor grid.
"""

import heapq
import math
from typing import Callable, Dict, List, Optional, Set

from .topology import DEFAULT_TOPOLOGY, Cell, GridTopology

# Neighbour probe order: up, right, down, left
DIRECTIONS = ((0, 1), (1, 0), (0, -1), (-1, 0))


class PathNotFoundError(RuntimeError):
    """Raised by find_path(strict=True) when the goal is unreachable."""


def manhattan(a: Cell, b: Cell) -> int:
    """Compute Manhattan distance between two grid cells."""
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def euclidean(a: Cell, b: Cell) -> float:
    """Compute Euclidean distance between two grid cells."""
    return math.sqrt((a[0] - b[0])**2 + (a[1] - b[1])**2)


HEURISTICS: Dict[str, Callable] = {
    "manhattan": manhattan,
    "euclidean": euclidean,
}


def neighbors(
    topology: GridTopology,
    cell: Cell,
    goal: Cell,
    blocked: Optional[Set[Cell]] = None,
) -> List[Cell]:
    """
    Get enterable 4-neighbours of a cell.

    A neighbour is enterable if it is the goal, or if it is walkable and not
    in `blocked`. Slots other than the goal are never entered.
    """
    x, y = cell
    result = []
    for dx, dy in DIRECTIONS:
        n = (x + dx, y + dy)
        if n == goal:
            result.append(n)
        elif topology.is_walkable(*n) and not (blocked and n in blocked):
            result.append(n)
    return result


def a_star(
    topology: GridTopology,
    start: Cell,
    goal: Cell,
    heuristic: str = "manhattan",
    blocked: Optional[Set[Cell]] = None,
) -> Dict:
    """
    A* search on the warehouse floor.

    Args:
        topology: Warehouse grid topology
        start: Starting cell (x, y); may be a slot being left
        goal: Goal cell (x, y); may be a slot being targeted
        heuristic: "manhattan" or "euclidean"
        blocked: Extra cells to treat as impassable (e.g. other workers)

    Returns:
        dict with keys:
            - "path": list of (x, y) from start to goal (inclusive) or []
            - "cost": number of steps or math.inf if unreachable
            - "expanded": count of nodes popped from priority queue
            - "found": True if path found

    Raises:
        OutOfBoundsError: If start or goal lies outside the grid
        ValueError: On an unknown heuristic
    """
    if heuristic not in HEURISTICS:
        raise ValueError(f"Invalid heuristic: {heuristic}. Must be 'manhattan' or 'euclidean'.")
    h_func = HEURISTICS[heuristic]

    topology.check_cell(*start)
    topology.check_cell(*goal)

    if start == goal:
        return {
            "path": [start],
            "cost": 0,
            "expanded": 0,
            "found": True
        }

    # Priority queue: (f, g, counter, cell)
    # Lowest f first, then lowest g, then insertion order
    counter = 0
    g_score = {start: 0}
    came_from: Dict[Cell, Cell] = {}
    open_set = [(h_func(start, goal), 0, counter, start)]
    counter += 1

    expanded = 0

    while open_set:
        f, g, _, current = heapq.heappop(open_set)
        expanded += 1

        # Stale heap entry
        if g > g_score.get(current, math.inf):
            continue

        if current == goal:
            path = []
            node = current
            while node in came_from:
                path.append(node)
                node = came_from[node]
            path.append(start)
            path.reverse()

            return {
                "path": path,
                "cost": g_score[goal],
                "expanded": expanded,
                "found": True
            }

        for neighbor in neighbors(topology, current, goal, blocked):
            tentative_g = g + 1

            if tentative_g < g_score.get(neighbor, math.inf):
                came_from[neighbor] = current
                g_score[neighbor] = tentative_g
                f_score = tentative_g + h_func(neighbor, goal)
                heapq.heappush(open_set, (f_score, tentative_g, counter, neighbor))
                counter += 1

    return {
        "path": [],
        "cost": math.inf,
        "expanded": expanded,
        "found": False
    }


def find_path(
    topology: GridTopology,
    start: Cell,
    goal: Cell,
    blocked: Optional[Set[Cell]] = None,
    strict: bool = False,
) -> List[Cell]:
    """
    Shortest cell sequence from start to goal.

    When the goal cannot be reached the degenerate two-cell path
    [start, goal] is returned, which callers must not treat as adjacent.
    With strict=True a PathNotFoundError is raised instead.
    """
    result = a_star(topology, start, goal, blocked=blocked)
    if result["found"]:
        return result["path"]
    if strict:
        raise PathNotFoundError(f"No walkable path from {start} to {goal}")
    return [start, goal]


def path_length(path: List[Cell]) -> int:
    """Number of unit steps along a path."""
    return max(0, len(path) - 1)


if __name__ == "__main__":
    topo = DEFAULT_TOPOLOGY

    cases = [
        ("Receiving -> B01", topo.receiving, topo.slot_by_code("B01").cell),
        ("P08 -> Packing", topo.slot_by_code("P08").cell, topo.packing),
        ("Receiving -> D01", topo.receiving, topo.slot_by_code("D01").cell),
        ("Receiving -> D04 (back row)", topo.receiving, topo.slot_by_code("D04").cell),
    ]

    for label, start, goal in cases:
        result = a_star(topo, start, goal, heuristic="manhattan")
        print(f"A* {label}:")
        print(f"  Found: {result['found']}")
        print(f"  Cost: {result['cost']}")
        print(f"  Expanded: {result['expanded']}")
        print(f"  Path: {find_path(topo, start, goal)}")
        print()

    # Another worker standing in the aisle forces a detour
    blocked = {(0, 4)}
    detour = find_path(topo, topo.receiving, topo.slot_by_code("B01").cell, blocked=blocked)
    print(f"Receiving -> B01 with {sorted(blocked)} blocked: {path_length(detour)} steps")
    print(f"  Path: {detour}")
