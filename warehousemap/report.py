"""
Floor utilisation reporting for WarehouseMap.
Summarises occupancy per rack group and exports the rows as CSV.
"""

import argparse
import csv
import sys
from typing import Dict, List

from .capacity import CapacityPlanner, load_capacity_table
from .occupancy import OccupancyRefreshError, OccupancyStore, load_records, make_demo_occupancy
from .topology import DEFAULT_TOPOLOGY, GridTopology, OutOfBoundsError


def write_csv(rows: list, path: str) -> None:
    """
    Write list of dicts to CSV using DictWriter.

    Args:
        rows: List of dict, each dict is one row
        path: Output CSV file path
    """
    if not rows:
        return

    # Keep first-seen column order
    headers = []
    for row in rows:
        for key in row:
            if key not in headers:
                headers.append(key)

    with open(path, 'w', newline='') as f:
        writer = csv.DictWriter(f, fieldnames=headers)
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


def floor_utilisation(
    topology: GridTopology,
    occupancy,
    planner: CapacityPlanner,
    floor: int,
) -> List[Dict]:
    """
    Utilisation of every rack group on one floor.

    Args:
        topology: Warehouse grid topology
        occupancy: OccupancyStore or OccupancySnapshot
        planner: CapacityPlanner holding the capacity table
        floor: Floor number (1-based)

    Returns:
        One dict per rack group with slot counts, stored units and
        utilisation percentage of the group's total unit capacity.
    """
    topology.check_floor(floor)
    view = occupancy.snapshot()

    rows = []
    for rack in topology.rack_groups():
        slots = [s for s in topology.slots() if s.rack_group == rack.name]
        per_square = planner.capacity_for(rack.size_class)
        records = [view.get(s.x, s.y, floor) for s in slots]
        units = sum(r.quantity for r in records if r is not None)
        capacity_units = per_square * len(slots)

        rows.append({
            "floor": floor,
            "rack_group": rack.name,
            "size_class": rack.size_class.value,
            "slots": len(slots),
            "occupied": sum(1 for r in records if r is not None),
            "units": units,
            "capacity_units": capacity_units,
            "utilisation_pct": round(100.0 * units / capacity_units, 1) if capacity_units else 0.0,
        })
    return rows


def warehouse_utilisation(
    topology: GridTopology,
    occupancy,
    planner: CapacityPlanner,
) -> List[Dict]:
    """Utilisation rows for every floor, floor 1 first."""
    view = occupancy.snapshot()
    rows = []
    for floor in range(1, topology.floors + 1):
        rows.extend(floor_utilisation(topology, view, planner, floor))
    return rows


def summarize_utilisation(rows: List[Dict]) -> Dict:
    """Totals across a list of utilisation rows."""
    units = sum(r["units"] for r in rows)
    capacity_units = sum(r["capacity_units"] for r in rows)
    return {
        "slots": sum(r["slots"] for r in rows),
        "occupied": sum(r["occupied"] for r in rows),
        "units": units,
        "capacity_units": capacity_units,
        "utilisation_pct": round(100.0 * units / capacity_units, 1) if capacity_units else 0.0,
    }


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Warehouse floor utilisation report')
    parser.add_argument('--occupancy', type=str, default=None,
                        help='JSON occupancy payload (default: built-in demo data)')
    parser.add_argument('--capacity', type=str, default=None,
                        help='JSON capacity table, e.g. {"small": 40}')
    parser.add_argument('--floor', type=int, default=None,
                        help='Report a single floor (default: all floors)')
    parser.add_argument('--out', type=str, default=None,
                        help='Write rows to this CSV file')
    args = parser.parse_args(argv)

    try:
        capacity = load_capacity_table(args.capacity) if args.capacity else None
        planner = CapacityPlanner(DEFAULT_TOPOLOGY, capacity)
        store = OccupancyStore(DEFAULT_TOPOLOGY, capacity)
        records = load_records(args.occupancy) if args.occupancy else make_demo_occupancy()
        store.refresh(records)

        if args.floor is not None:
            rows = floor_utilisation(DEFAULT_TOPOLOGY, store, planner, args.floor)
        else:
            rows = warehouse_utilisation(DEFAULT_TOPOLOGY, store, planner)
    except (OSError, OccupancyRefreshError, OutOfBoundsError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    print(f"{'Floor':>5}  {'Rack':4}  {'Size':7}  {'Used':>7}  {'Units':>11}  {'Util%':>6}")
    print("-" * 52)
    for row in rows:
        print(f"{row['floor']:>5}  {row['rack_group']:4}  {row['size_class']:7}  "
              f"{row['occupied']:>3}/{row['slots']:<3}  "
              f"{row['units']:>5}/{row['capacity_units']:<5}  {row['utilisation_pct']:>6.1f}")

    summary = summarize_utilisation(rows)
    print("-" * 52)
    print(f"Total: {summary['occupied']}/{summary['slots']} slots, "
          f"{summary['units']}/{summary['capacity_units']} units "
          f"({summary['utilisation_pct']:.1f}%)")

    if args.out:
        write_csv(rows, args.out)
        print(f"Exported {len(rows)} rows to {args.out}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
