"""
WarehouseMap: Slot Allocation and Path Planning

Grid model, capacity planner, occupancy mirror and A* path planner behind
a multi-floor warehouse map.

Modules:
    topology: Fixed warehouse grid, rack groups and slot codes
    capacity: Required squares and storage slot suggestions
    occupancy: Atomic snapshot mirror of occupied locations
    astar: A* pathfinding over walkable cells
    routes: Storing, collecting and multi-stop pick routes
    report: Floor utilisation rows and CSV export
    visualize: matplotlib floor renderer
"""

from .astar import PathNotFoundError, a_star, find_path
from .capacity import DEFAULT_CAPACITY, CapacityPlanner, load_capacity_table
from .occupancy import OccupancyRecord, OccupancyRefreshError, OccupancySnapshot, OccupancyStore
from .topology import DEFAULT_TOPOLOGY, CellKind, GridTopology, OutOfBoundsError, SizeClass, Slot

__version__ = "1.0.0"

__all__ = [
    "DEFAULT_CAPACITY",
    "DEFAULT_TOPOLOGY",
    "CapacityPlanner",
    "CellKind",
    "GridTopology",
    "OccupancyRecord",
    "OccupancyRefreshError",
    "OccupancySnapshot",
    "OccupancyStore",
    "OutOfBoundsError",
    "PathNotFoundError",
    "SizeClass",
    "Slot",
    "a_star",
    "find_path",
    "load_capacity_table",
]
