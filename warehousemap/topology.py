"""
Warehouse grid topology for WarehouseMap.
Defines the fixed floor footprint, rack groups, slot codes and cell kinds.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

Cell = Tuple[int, int]  # (x, y), y grows upward from the receiving corner

# Fixed warehouse dimensions
WIDTH = 10
HEIGHT = 12
FLOORS = 4

RECEIVING: Cell = (0, 0)
PACKING: Cell = (0, 11)


class OutOfBoundsError(ValueError):
    """Raised when a coordinate or floor lies outside the warehouse grid."""


class SizeClass(Enum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"

    @classmethod
    def from_category(cls, category: str) -> "SizeClass":
        """
        Resolve an item category string to a size class.

        Matching is exact and case-insensitive against the enum values and
        the rack-type aliases used on the floor (pellet, bin, ...).

        Raises:
            ValueError: If the category names no known size class
        """
        if isinstance(category, SizeClass):
            return category
        key = str(category).strip().lower()
        try:
            return _SIZE_ALIASES[key]
        except KeyError:
            raise ValueError(
                f"Unknown size class: {category!r}. "
                f"Expected one of {sorted(_SIZE_ALIASES)}."
            ) from None


_SIZE_ALIASES: Dict[str, SizeClass] = {
    "small": SizeClass.SMALL,
    "s": SizeClass.SMALL,
    "pellet": SizeClass.SMALL,
    "medium": SizeClass.MEDIUM,
    "m": SizeClass.MEDIUM,
    "bin": SizeClass.MEDIUM,
    "large": SizeClass.LARGE,
    "l": SizeClass.LARGE,
    "d": SizeClass.LARGE,
}


class CellKind(Enum):
    AISLE = "aisle"
    FIXED_POINT = "fixed_point"
    SLOT = "slot"


@dataclass(frozen=True)
class RackGroup:
    """A rectangular rack footprint, bounds inclusive."""
    name: str
    size_class: SizeClass
    x1: int
    y1: int
    x2: int
    y2: int

    @property
    def family(self) -> str:
        # P1 -> P, B3 -> B, D -> D
        return self.name.rstrip("0123456789")

    def contains(self, x: int, y: int) -> bool:
        return self.x1 <= x <= self.x2 and self.y1 <= y <= self.y2

    def positions(self) -> List[Cell]:
        """In-rack position order: top row first, left to right within a row."""
        return [
            (x, y)
            for y in range(self.y2, self.y1 - 1, -1)
            for x in range(self.x1, self.x2 + 1)
        ]


@dataclass(frozen=True)
class Slot:
    code: str
    x: int
    y: int
    size_class: SizeClass
    rack_group: str
    rel_x: int
    rel_y: int

    @property
    def cell(self) -> Cell:
        return (self.x, self.y)

    def label(self, floor: int) -> str:
        """Rack-relative label shown on the floor map, e.g. B1-17-F1."""
        return f"{self.rack_group}-{self.rel_x}{self.rel_y}-F{floor}"


# Rack groups in priority order
RACKS: Tuple[RackGroup, ...] = (
    RackGroup("P1", SizeClass.SMALL, 7, 2, 7, 8),
    RackGroup("P2", SizeClass.SMALL, 9, 2, 9, 8),
    RackGroup("B1", SizeClass.MEDIUM, 1, 2, 1, 8),
    RackGroup("B2", SizeClass.MEDIUM, 3, 2, 3, 8),
    RackGroup("B3", SizeClass.MEDIUM, 5, 2, 5, 8),
    RackGroup("D", SizeClass.LARGE, 3, 10, 9, 11),
)


class GridTopology:
    """
    Immutable warehouse floor footprint shared by every floor.

    Every in-bounds cell resolves to exactly one CellKind. Slots are numbered
    per rack family (P, B, D) in priority order: rack group order, then
    in-rack position order.
    """

    def __init__(
        self,
        width: int = WIDTH,
        height: int = HEIGHT,
        floors: int = FLOORS,
        racks: Sequence[RackGroup] = RACKS,
        receiving: Cell = RECEIVING,
        packing: Cell = PACKING,
    ):
        if width <= 0 or height <= 0 or floors <= 0:
            raise ValueError(f"Invalid grid size {width}x{height} with {floors} floors")

        self.width = width
        self.height = height
        self.floors = floors
        self.receiving = receiving
        self.packing = packing
        self._racks = tuple(racks)

        for name, point in (("receiving", receiving), ("packing", packing)):
            if not self.in_bounds(*point):
                raise ValueError(f"{name} point {point} is outside the grid")

        slots_by_cell: Dict[Cell, Slot] = {}
        slots_in_order: List[Slot] = []
        family_counts: Dict[str, int] = {}

        for rack in self._racks:
            if not (self.in_bounds(rack.x1, rack.y1) and self.in_bounds(rack.x2, rack.y2)):
                raise ValueError(f"Rack {rack.name} extends outside the grid")
            if rack.x1 > rack.x2 or rack.y1 > rack.y2:
                raise ValueError(f"Rack {rack.name} has inverted bounds")

            for x, y in rack.positions():
                if (x, y) in slots_by_cell:
                    raise ValueError(
                        f"Rack {rack.name} overlaps {slots_by_cell[(x, y)].rack_group} at {(x, y)}"
                    )
                if (x, y) in (receiving, packing):
                    raise ValueError(f"Rack {rack.name} covers fixed point {(x, y)}")

                family_counts[rack.family] = family_counts.get(rack.family, 0) + 1
                slot = Slot(
                    code=f"{rack.family}{family_counts[rack.family]:02d}",
                    x=x,
                    y=y,
                    size_class=rack.size_class,
                    rack_group=rack.name,
                    rel_x=x - rack.x1 + 1,
                    rel_y=y - rack.y1 + 1,
                )
                slots_by_cell[(x, y)] = slot
                slots_in_order.append(slot)

        self._slots_by_cell = slots_by_cell
        self._slots = tuple(slots_in_order)
        self._slots_by_code = {slot.code: slot for slot in slots_in_order}

    # --------- bounds ---------

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def check_cell(self, x: int, y: int) -> None:
        if not self.in_bounds(x, y):
            raise OutOfBoundsError(
                f"Cell ({x}, {y}) is outside the {self.width}x{self.height} grid"
            )

    def check_floor(self, floor: int) -> None:
        if not 1 <= floor <= self.floors:
            raise OutOfBoundsError(f"Floor {floor} is outside 1..{self.floors}")

    # --------- cell queries ---------

    def slot_at(self, x: int, y: int) -> Optional[Slot]:
        self.check_cell(x, y)
        return self._slots_by_cell.get((x, y))

    def kind_at(self, x: int, y: int) -> CellKind:
        self.check_cell(x, y)
        if (x, y) in self._slots_by_cell:
            return CellKind.SLOT
        if (x, y) in (self.receiving, self.packing):
            return CellKind.FIXED_POINT
        return CellKind.AISLE

    def is_walkable(self, x: int, y: int) -> bool:
        """True for in-bounds aisles and fixed points. Occupancy is irrelevant."""
        return self.in_bounds(x, y) and (x, y) not in self._slots_by_cell

    def cells(self) -> Iterator[Cell]:
        for y in range(self.height):
            for x in range(self.width):
                yield (x, y)

    # --------- slots and location codes ---------

    def rack_groups(self) -> Tuple[RackGroup, ...]:
        return self._racks

    def slots(self, size_class: Optional[SizeClass] = None) -> List[Slot]:
        """All slots in priority order, optionally restricted to one size class."""
        if size_class is None:
            return list(self._slots)
        return [slot for slot in self._slots if slot.size_class == size_class]

    def slot_by_code(self, code: str) -> Slot:
        try:
            return self._slots_by_code[code]
        except KeyError:
            raise ValueError(f"Unknown slot code: {code!r}") from None

    def location_code(self, slot: Slot, floor: int) -> str:
        self.check_floor(floor)
        return f"{slot.code}.{floor}"

    def parse_location_code(self, code: str) -> Tuple[Slot, int]:
        """
        Split a location code such as "B01.3" into its slot and floor.

        Raises:
            ValueError: If the code is malformed or names an unknown slot
            OutOfBoundsError: If the floor is outside the building
        """
        slot_code, sep, floor_text = code.rpartition(".")
        if not sep or not floor_text.isdigit():
            raise ValueError(f"Malformed location code: {code!r}")
        slot = self.slot_by_code(slot_code)
        floor = int(floor_text)
        self.check_floor(floor)
        return slot, floor


DEFAULT_TOPOLOGY = GridTopology()


if __name__ == "__main__":
    topo = DEFAULT_TOPOLOGY

    print("=" * 60)
    print(f"WAREHOUSE TOPOLOGY {topo.width}x{topo.height}, {topo.floors} floors")
    print("=" * 60)

    # Draw top row first so the packing point sits at the top left
    symbols = {CellKind.AISLE: ".", CellKind.FIXED_POINT: "*"}
    for y in range(topo.height - 1, -1, -1):
        row = []
        for x in range(topo.width):
            kind = topo.kind_at(x, y)
            if kind == CellKind.SLOT:
                row.append(topo.slot_at(x, y).size_class.value[0].upper())
            else:
                row.append(symbols[kind])
        print(f"  {y:2d} " + " ".join(row))
    print("     " + " ".join(str(x) for x in range(topo.width)))

    print("\nRack groups:")
    for rack in topo.rack_groups():
        codes = [s.code for s in topo.slots() if s.rack_group == rack.name]
        print(f"  {rack.name:3s} {rack.size_class.value:7s} {codes[0]}..{codes[-1]} ({len(codes)} slots)")

    b01 = topo.slot_by_code("B01")
    print(f"\nB01 at {b01.cell}, location code {topo.location_code(b01, 1)}, label {b01.label(1)}")
