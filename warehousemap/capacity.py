"""
Capacity planning for WarehouseMap.
Converts item quantities into grid squares and suggests free storage slots.
"""

import json
import math
from typing import Dict, List, Mapping, Optional

from .topology import DEFAULT_TOPOLOGY, GridTopology, Slot, SizeClass

# Items that fit on one grid square, per size class
DEFAULT_CAPACITY: Dict[SizeClass, int] = {
    SizeClass.SMALL: 50,   # pellet square
    SizeClass.MEDIUM: 50,  # bin square
    SizeClass.LARGE: 50,   # large square
}


def validate_capacity_table(table: Mapping) -> Dict[SizeClass, int]:
    """
    Normalize a capacity table into {SizeClass: items_per_square}.

    Keys may be SizeClass members or category strings. Classes missing
    from the table keep their default capacity.

    Raises:
        ValueError: On unknown size classes or non-positive capacities
    """
    result = dict(DEFAULT_CAPACITY)
    for key, value in table.items():
        size_class = SizeClass.from_category(key)
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ValueError(
                f"Capacity for {size_class.value} must be a positive integer, got {value!r}"
            )
        result[size_class] = value
    return result


def load_capacity_table(path: str) -> Dict[SizeClass, int]:
    """
    Load a capacity table from a JSON file like {"small": 40, "large": 20}.

    Args:
        path: Path to the JSON file

    Returns:
        Complete capacity table with defaults for missing classes
    """
    with open(path) as f:
        raw = json.load(f)
    if not isinstance(raw, dict):
        raise ValueError(f"Capacity file {path} must contain a JSON object")
    return validate_capacity_table(raw)


class CapacityPlanner:
    """Answers how many squares an item needs and where it could go."""

    def __init__(
        self,
        topology: GridTopology = DEFAULT_TOPOLOGY,
        capacity: Optional[Mapping] = None,
    ):
        self.topology = topology
        self.capacity = validate_capacity_table(capacity or {})

    def capacity_for(self, size_class: SizeClass) -> int:
        return self.capacity[size_class]

    def required_squares(self, size_class: SizeClass, quantity: int) -> int:
        """
        Number of grid squares needed for `quantity` items.

        Non-positive quantities need zero squares.
        """
        if quantity <= 0:
            return 0
        return math.ceil(quantity / self.capacity[size_class])

    def free_slots(self, size_class: SizeClass, floor: int, occupancy) -> List[Slot]:
        """All unoccupied slots of a size class on a floor, in priority order."""
        self.topology.check_floor(floor)
        view = occupancy.snapshot()
        return [
            slot for slot in self.topology.slots(size_class)
            if not view.is_occupied(slot.x, slot.y, floor)
        ]

    def suggest_locations(
        self,
        size_class: SizeClass,
        quantity: int,
        floor: int,
        occupancy,
    ) -> List[Slot]:
        """
        Suggest storage slots for a quantity of items on one floor.

        Args:
            size_class: Size class of the item
            quantity: Number of items to store
            floor: Floor number (1-based)
            occupancy: OccupancyStore or OccupancySnapshot for current state

        Returns:
            Up to required_squares() free slots in priority order. A shorter
            list means the floor lacks capacity; it is not an error.
        """
        self.topology.check_floor(floor)
        needed = self.required_squares(size_class, quantity)
        if needed == 0:
            return []

        view = occupancy.snapshot()
        suggestions = []
        for slot in self.topology.slots(size_class):
            if view.is_occupied(slot.x, slot.y, floor):
                continue
            suggestions.append(slot)
            if len(suggestions) == needed:
                break
        return suggestions

    def plan_storage(self, item: Mapping, floor: int, occupancy) -> Dict:
        """
        Plan storage for an incoming item descriptor.

        Args:
            item: dict with "quantity" and either "size_class" or "category"
            floor: Floor number (1-based)
            occupancy: OccupancyStore or OccupancySnapshot

        Returns:
            dict with keys:
                - "size_class": resolved SizeClass
                - "required": squares needed
                - "suggestions": list of Slot
                - "location_codes": location codes of the suggestions
                - "shortfall": squares that could not be suggested
        """
        if "quantity" not in item:
            raise ValueError("Item descriptor needs a 'quantity'")
        size_key = item.get("size_class", item.get("sizeClass", item.get("category")))
        if size_key is None:
            raise ValueError("Item descriptor needs a 'size_class' or 'category'")

        size_class = SizeClass.from_category(size_key)
        quantity = int(item["quantity"])
        required = self.required_squares(size_class, quantity)
        suggestions = self.suggest_locations(size_class, quantity, floor, occupancy)

        return {
            "size_class": size_class,
            "required": required,
            "suggestions": suggestions,
            "location_codes": [self.topology.location_code(s, floor) for s in suggestions],
            "shortfall": required - len(suggestions),
        }
