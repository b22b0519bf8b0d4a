"""
Occupancy mirror for WarehouseMap.
Holds an immutable snapshot of occupied storage locations, replaced wholesale
on every refresh from the storage-history backend.
"""

import json
import math
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .capacity import validate_capacity_table
from .topology import DEFAULT_TOPOLOGY, GridTopology

LocationKey = Tuple[int, int, int]  # (x, y, floor)


class OccupancyRefreshError(ValueError):
    """Raised when a refresh payload is rejected; the old snapshot stays."""


@dataclass(frozen=True)
class OccupancyRecord:
    location_code: str
    x: int
    y: int
    floor: int
    item_id: str
    item_name: str
    quantity: int
    category: Optional[str] = None
    stored_at: Optional[datetime] = None

    @property
    def key(self) -> LocationKey:
        return (self.x, self.y, self.floor)

    @classmethod
    def from_payload(cls, payload: Mapping, topology: GridTopology = DEFAULT_TOPOLOGY) -> "OccupancyRecord":
        """
        Build a record from one backend occupancy entry.

        Accepts the flat shape {"x", "y", "floor", ...} as well as the
        storage-history shape {"coordinates": {"x", "y", "floor"}, ...},
        with snake_case or camelCase field names.

        Raises:
            ValueError: If a field is missing or malformed
            OutOfBoundsError: If the location is outside the grid or floors
        """
        coords = payload.get("coordinates") or payload
        try:
            x = _whole_number(coords["x"], "x")
            y = _whole_number(coords["y"], "y")
            floor = _whole_number(coords["floor"], "floor")
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Occupancy entry has no valid coordinates: {payload!r}") from e

        slot = topology.slot_at(x, y)
        topology.check_floor(floor)
        if slot is None:
            raise ValueError(f"Occupancy entry at ({x}, {y}) is not a storage slot")

        quantity = payload.get("quantity", 0)
        if isinstance(quantity, str):
            raise ValueError(f"quantity must be a whole number, got {quantity!r}")
        quantity = _whole_number(quantity, "quantity")

        item_id = payload.get("item_id", payload.get("itemId"))
        item_name = payload.get("item_name", payload.get("itemName", ""))

        return cls(
            location_code=topology.location_code(slot, floor),
            x=x,
            y=y,
            floor=floor,
            item_id="" if item_id is None else str(item_id),
            item_name=str(item_name),
            quantity=quantity,
            category=payload.get("category"),
            stored_at=_parse_timestamp(payload.get("stored_at", payload.get("storedAt"))),
        )


def _whole_number(value, field: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a whole number, got {value!r}")
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValueError(f"{field} must be a whole number, got {value!r}")
    return int(value)


def _parse_timestamp(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as e:
        raise ValueError(f"Invalid storedAt timestamp: {value!r}") from e


def occupancy_level(percent: int) -> str:
    """Colour band used on the floor map for an occupancy percentage."""
    if percent <= 0:
        return "empty"
    if percent < 50:
        return "partial"
    if percent < 80:
        return "filling"
    return "full"


class OccupancySnapshot:
    """Read-only view of occupied locations at one point in time."""

    def __init__(
        self,
        records: Mapping[LocationKey, OccupancyRecord],
        topology: GridTopology,
        capacity: Mapping,
    ):
        self._records = MappingProxyType(dict(records))
        self.topology = topology
        self.capacity = MappingProxyType(dict(capacity))

    def snapshot(self) -> "OccupancySnapshot":
        return self

    def __len__(self) -> int:
        return len(self._records)

    def _key(self, x: int, y: int, floor: int) -> LocationKey:
        self.topology.check_cell(x, y)
        self.topology.check_floor(floor)
        return (x, y, floor)

    def is_occupied(self, x: int, y: int, floor: int) -> bool:
        return self._key(x, y, floor) in self._records

    def get(self, x: int, y: int, floor: int) -> Optional[OccupancyRecord]:
        return self._records.get(self._key(x, y, floor))

    def occupancy_percent(self, x: int, y: int, floor: int) -> int:
        """
        Fill level of a location in percent, rounded and clamped to 0..100.

        Empty locations and non-slot cells report 0.
        """
        record = self.get(x, y, floor)
        slot = self.topology.slot_at(x, y)
        if record is None or slot is None or record.quantity <= 0:
            return 0
        percent = round(record.quantity / self.capacity[slot.size_class] * 100)
        return min(100, percent)

    def records(self, floor: Optional[int] = None) -> List[OccupancyRecord]:
        """Records ordered by floor, then slot priority."""
        if floor is not None:
            self.topology.check_floor(floor)
        order = {slot.cell: i for i, slot in enumerate(self.topology.slots())}
        selected = [
            r for r in self._records.values()
            if floor is None or r.floor == floor
        ]
        return sorted(selected, key=lambda r: (r.floor, order[(r.x, r.y)]))


class OccupancyStore:
    """
    In-memory mirror of the backend's occupied locations.

    There is no write path: refresh() replaces the whole snapshot with a
    single reference assignment, so readers holding snapshot() never see a
    partially applied refresh.
    """

    def __init__(
        self,
        topology: GridTopology = DEFAULT_TOPOLOGY,
        capacity: Optional[Mapping] = None,
    ):
        self.topology = topology
        self.capacity = validate_capacity_table(capacity or {})
        self._snapshot = OccupancySnapshot({}, topology, self.capacity)

    def snapshot(self) -> OccupancySnapshot:
        return self._snapshot

    def refresh(self, records: Iterable) -> OccupancySnapshot:
        """
        Replace the stored occupancy with a new set of records.

        Args:
            records: OccupancyRecord objects or backend payload dicts

        Returns:
            The new snapshot

        Raises:
            OccupancyRefreshError: If any record is invalid; nothing is applied
        """
        built: Dict[LocationKey, OccupancyRecord] = {}
        for i, entry in enumerate(records):
            try:
                record = entry if isinstance(entry, OccupancyRecord) else \
                    OccupancyRecord.from_payload(entry, self.topology)
                self._validate(record)
            except (ValueError, TypeError, AttributeError) as e:
                raise OccupancyRefreshError(f"Record {i} rejected: {e}") from e

            if record.key in built:
                raise OccupancyRefreshError(
                    f"Record {i} rejected: location {record.location_code} listed twice"
                )
            built[record.key] = record

        self._snapshot = OccupancySnapshot(built, self.topology, self.capacity)
        return self._snapshot

    def _validate(self, record: OccupancyRecord) -> None:
        slot = self.topology.slot_at(record.x, record.y)
        self.topology.check_floor(record.floor)
        if slot is None:
            raise ValueError(f"({record.x}, {record.y}) is not a storage slot")
        expected = self.topology.location_code(slot, record.floor)
        if record.location_code != expected:
            raise ValueError(
                f"Location code {record.location_code!r} does not match {expected!r}"
            )
        if record.quantity < 0:
            raise ValueError(f"Negative quantity {record.quantity} at {expected}")
        limit = self.capacity[slot.size_class]
        if record.quantity > limit:
            raise ValueError(
                f"Quantity {record.quantity} at {expected} exceeds slot capacity {limit}"
            )

    # --------- queries against the current snapshot ---------

    def is_occupied(self, x: int, y: int, floor: int) -> bool:
        return self._snapshot.is_occupied(x, y, floor)

    def get(self, x: int, y: int, floor: int) -> Optional[OccupancyRecord]:
        return self._snapshot.get(x, y, floor)

    def occupancy_percent(self, x: int, y: int, floor: int) -> int:
        return self._snapshot.occupancy_percent(x, y, floor)

    def records(self, floor: Optional[int] = None) -> List[OccupancyRecord]:
        return self._snapshot.records(floor)


def load_records(path: str) -> List[Dict]:
    """
    Read an occupancy payload from a JSON file.

    The file holds either a list of entries or {"records": [...]}.
    """
    with open(path) as f:
        raw = json.load(f)
    if isinstance(raw, dict):
        raw = raw.get("records")
    if not isinstance(raw, list):
        raise ValueError(f"Occupancy file {path} must contain a list of records")
    return raw


def make_demo_occupancy() -> List[Dict]:
    """
    Fixed sample of the storage-history payload for demos and artifacts.

    Returns:
        list of occupancy dicts in the backend's nested coordinates shape
    """
    return [
        {"coordinates": {"x": 1, "y": 8, "floor": 1}, "itemId": "ITM-1001",
         "itemName": "Packing tape", "quantity": 25, "category": "medium",
         "storedAt": "2024-03-02T09:15:00Z"},
        {"coordinates": {"x": 1, "y": 7, "floor": 1}, "itemId": "ITM-1002",
         "itemName": "Label rolls", "quantity": 48, "category": "medium",
         "storedAt": "2024-03-02T09:40:00Z"},
        {"coordinates": {"x": 7, "y": 8, "floor": 1}, "itemId": "ITM-2001",
         "itemName": "USB cables", "quantity": 10, "category": "small",
         "storedAt": "2024-03-03T11:05:00Z"},
        {"coordinates": {"x": 7, "y": 7, "floor": 1}, "itemId": "ITM-2002",
         "itemName": "Phone cases", "quantity": 35, "category": "small",
         "storedAt": "2024-03-03T11:20:00Z"},
        {"coordinates": {"x": 3, "y": 11, "floor": 1}, "itemId": "ITM-3001",
         "itemName": "Office chairs", "quantity": 50, "category": "large",
         "storedAt": "2024-03-04T14:00:00Z"},
        {"coordinates": {"x": 3, "y": 5, "floor": 2}, "itemId": "ITM-1003",
         "itemName": "Bubble wrap", "quantity": 30, "category": "medium",
         "storedAt": "2024-03-05T08:30:00Z"},
        {"coordinates": {"x": 9, "y": 4, "floor": 3}, "itemId": "ITM-2003",
         "itemName": "Batteries", "quantity": 42, "category": "small",
         "storedAt": "2024-03-06T16:45:00Z"},
    ]


if __name__ == "__main__":
    store = OccupancyStore()
    store.refresh(make_demo_occupancy())

    print("=" * 60)
    print("DEMO OCCUPANCY")
    print("=" * 60)
    for record in store.records():
        percent = store.occupancy_percent(record.x, record.y, record.floor)
        print(f"  {record.location_code:7s} {record.item_name:15s} "
              f"{record.quantity:3d} units  {percent:3d}% ({occupancy_level(percent)})")

    print("\nRejecting an over-capacity refresh:")
    bad = make_demo_occupancy() + [{"x": 5, "y": 2, "floor": 1, "quantity": 500}]
    try:
        store.refresh(bad)
    except OccupancyRefreshError as e:
        print(f"  {e}")
    print(f"  Records still loaded: {len(store.snapshot())}")
