"""
Visualization for WarehouseMap using matplotlib.
Draws one warehouse floor with racks, occupancy, suggestions and routes.
"""

import argparse
import sys
import textwrap
from typing import Dict, List, Optional, Sequence, Tuple

try:
    import matplotlib.pyplot as plt
    import matplotlib.patches as mpatches
    from matplotlib.colors import to_rgb
    MATPLOTLIB_AVAILABLE = True
except ImportError:
    MATPLOTLIB_AVAILABLE = False

from .astar import PathNotFoundError, path_length
from .capacity import CapacityPlanner, load_capacity_table
from .occupancy import (
    OccupancyRefreshError,
    OccupancyStore,
    load_records,
    make_demo_occupancy,
    occupancy_level,
)
from .routes import collecting_path, pick_route, storing_path
from .topology import DEFAULT_TOPOLOGY, Cell, CellKind, GridTopology, OutOfBoundsError, SizeClass, Slot

# Floor map palette
COLORS: Dict[str, str] = {
    "aisle": "#f3f4f6",
    "receiving": "#ef4444",
    "packing": "#f97316",
    SizeClass.SMALL.value: "#3b82f6",
    SizeClass.MEDIUM.value: "#22c55e",
    SizeClass.LARGE.value: "#a855f7",
    "partial": "#eab308",
    "filling": "#f97316",
    "full": "#dc2626",
}

MODE_COLORS: Dict[str, str] = {
    "storing": "#3b82f6",
    "collecting": "#10b981",
    "picking": "#7c3aed",
}


def cell_colors(topology: GridTopology, occupancy, floor: int) -> List[List[str]]:
    """
    Colour name of every cell on a floor, indexed [y][x].

    Occupied slots take the colour of their occupancy band instead of the
    rack colour.
    """
    topology.check_floor(floor)
    view = occupancy.snapshot()

    grid = []
    for y in range(topology.height):
        row = []
        for x in range(topology.width):
            kind = topology.kind_at(x, y)
            if kind == CellKind.FIXED_POINT:
                row.append(COLORS["receiving"] if (x, y) == topology.receiving else COLORS["packing"])
            elif kind == CellKind.SLOT:
                level = occupancy_level(view.occupancy_percent(x, y, floor))
                if view.is_occupied(x, y, floor) and level != "empty":
                    row.append(COLORS[level])
                else:
                    row.append(COLORS[topology.slot_at(x, y).size_class.value])
            else:
                row.append(COLORS["aisle"])
        grid.append(row)
    return grid


def plot_floor(
    ax,
    topology: GridTopology,
    occupancy,
    floor: int,
    suggestions: Optional[Sequence[Slot]] = None,
) -> None:
    """
    Plot one floor: cells, slot codes, and suggested slots outlined.

    Args:
        ax: Matplotlib axes object
        topology: Warehouse grid topology
        occupancy: OccupancyStore or OccupancySnapshot
        floor: Floor number (1-based)
        suggestions: Slots to outline as storage suggestions
    """
    colors = cell_colors(topology, occupancy, floor)
    image = [[to_rgb(c) for c in row] for row in colors]

    # origin='lower' keeps y growing upward like the grid coordinates
    ax.imshow(image, origin='lower', interpolation='none',
              extent=[-0.5, topology.width - 0.5, -0.5, topology.height - 0.5])
    ax.set_aspect('equal')

    ax.set_xticks([i - 0.5 for i in range(topology.width + 1)], minor=True)
    ax.set_yticks([i - 0.5 for i in range(topology.height + 1)], minor=True)
    ax.grid(which='minor', color='gray', linestyle='-', linewidth=0.5, alpha=0.4)
    ax.set_xticks(range(topology.width))
    ax.set_yticks(range(topology.height))
    ax.tick_params(which='both', length=0, labelsize=7)
    ax.set_xlabel('x')
    ax.set_ylabel('y')

    for slot in topology.slots():
        ax.text(slot.x, slot.y, slot.code, fontsize=5.5, ha='center', va='center',
                color='white', weight='bold')
    ax.text(*topology.receiving, "RCV", fontsize=6, ha='center', va='center', color='white', weight='bold')
    ax.text(*topology.packing, "PCK", fontsize=6, ha='center', va='center', color='white', weight='bold')

    for slot in suggestions or []:
        ax.add_patch(mpatches.Rectangle((slot.x - 0.5, slot.y - 0.5), 1, 1, fill=False,
                                        edgecolor='#4ade80', linewidth=2.5, zorder=6))


def plot_path_overlay(ax, path: List[Cell], color: str = "red") -> None:
    """
    Overlay a path on the floor with start and end markers.

    Args:
        ax: Matplotlib axes object
        path: List of (x, y) cells
        color: Line color
    """
    if not path:
        return

    xs = [x for x, y in path]
    ys = [y for x, y in path]

    # White underlay for contrast against coloured racks
    ax.plot(xs, ys, color='white', linewidth=5, solid_capstyle='round', zorder=7)
    ax.plot(xs, ys, color=color, linewidth=2.5, linestyle='--', marker='o',
            markersize=2.5, zorder=8, label='Route')

    if len(path) > 1:
        dx = xs[-1] - xs[-2]
        dy = ys[-1] - ys[-2]
        ax.annotate('', xy=(xs[-1], ys[-1]), xytext=(xs[-1] - 0.6 * dx, ys[-1] - 0.6 * dy),
                    arrowprops=dict(arrowstyle='->', color=color, lw=2), zorder=9)

    ax.plot(xs[0], ys[0], color='green', marker='o', markersize=11,
            markeredgecolor='darkgreen', markeredgewidth=2, label='Start', zorder=10)
    ax.plot(xs[-1], ys[-1], color='blue', marker='s', markersize=11,
            markeredgecolor='darkblue', markeredgewidth=2, label='End', zorder=10)


def build_scene(
    topology: GridTopology,
    planner: CapacityPlanner,
    occupancy,
    floor: int,
    mode: str = "normal",
    targets: Sequence[str] = (),
    quantity: int = 0,
    category: Optional[str] = None,
    worker: Optional[Cell] = None,
) -> Dict:
    """
    Work out what to draw for a floor view.

    Args:
        topology: Warehouse grid topology
        planner: CapacityPlanner for suggestions
        occupancy: OccupancyStore or OccupancySnapshot
        floor: Floor number (1-based)
        mode: "normal", "storing", "collecting" or "picking"
        targets: Slot codes to route to
        quantity: Incoming quantity, used with category for suggestions
        category: Incoming item category
        worker: Worker cell for picking mode (default: receiving point)

    Returns:
        dict with keys "suggestions", "required", "path", "title", "notes"
    """
    if mode not in ("normal", "storing", "collecting", "picking"):
        raise ValueError(f"Unknown mode: {mode}")
    topology.check_floor(floor)

    view = occupancy.snapshot()
    slots = [topology.slot_by_code(code) for code in targets]
    suggestions: List[Slot] = []
    required = 0
    notes = []

    if category is not None:
        plan = planner.plan_storage({"quantity": quantity, "category": category}, floor, view)
        suggestions = plan["suggestions"]
        required = plan["required"]
        notes.append(f"{quantity} x {plan['size_class'].value}: {required} square(s) needed")
        notes.append("Suggested: " + (", ".join(plan["location_codes"]) or "none"))
        if plan["shortfall"] > 0:
            notes.append(f"Short by {plan['shortfall']} square(s) on floor {floor}")

    path: List[Cell] = []
    if mode == "storing":
        target = slots[0] if slots else (suggestions[0] if suggestions else None)
        if target is None:
            raise ValueError("Storing mode needs --target or a --category with free slots")
        path = storing_path(topology, target)
        notes.append(f"Receiving -> {topology.location_code(target, floor)}: {path_length(path)} steps")
    elif mode == "collecting":
        if not slots:
            raise ValueError("Collecting mode needs --target")
        path = collecting_path(topology, slots[0])
        notes.append(f"{topology.location_code(slots[0], floor)} -> Packing: {path_length(path)} steps")
    elif mode == "picking":
        if not slots:
            raise ValueError("Picking mode needs at least one --target")
        route = pick_route(topology, worker or topology.receiving, [s.cell for s in slots])
        path = route["cell_path"]
        order = [slots[i].code for i in route["order"]]
        notes.append("Pick order: " + " -> ".join(order))
        notes.append(f"Total: {route['cost']} steps")
        if not route["found"]:
            notes.append("Some legs have no walkable path (drawn direct)")

    return {
        "suggestions": suggestions,
        "required": required,
        "path": path,
        "title": f"Floor {floor} - {mode}",
        "notes": notes,
    }


def render_floor(
    topology: GridTopology,
    occupancy,
    floor: int,
    scene: Dict,
    mode: str = "normal",
    save_path: Optional[str] = None,
) -> None:
    """
    Draw a floor scene and save or show it.

    Args:
        topology: Warehouse grid topology
        occupancy: OccupancyStore or OccupancySnapshot
        floor: Floor number (1-based)
        scene: Output of build_scene()
        mode: View mode, selects the route colour
        save_path: If provided, save figure to this path instead of showing
    """
    fig, (ax_map, ax_info) = plt.subplots(
        1, 2, figsize=(11, 7), gridspec_kw={"width_ratios": [1.3, 1]}, constrained_layout=True
    )

    plot_floor(ax_map, topology, occupancy, floor, suggestions=scene["suggestions"])
    if scene["path"]:
        plot_path_overlay(ax_map, scene["path"], color=MODE_COLORS.get(mode, "red"))
        ax_map.legend(loc='upper right', fontsize=7)
    ax_map.set_title(scene["title"], fontsize=11, weight='bold')

    ax_info.axis('off')
    legend = [
        mpatches.Patch(color=COLORS[SizeClass.SMALL.value], label='Small (pellet) rack'),
        mpatches.Patch(color=COLORS[SizeClass.MEDIUM.value], label='Medium (bin) rack'),
        mpatches.Patch(color=COLORS[SizeClass.LARGE.value], label='Large rack'),
        mpatches.Patch(color=COLORS["partial"], label='Partially filled (<50%)'),
        mpatches.Patch(color=COLORS["filling"], label='Getting full (50-80%)'),
        mpatches.Patch(color=COLORS["full"], label='Full / nearly full (>80%)'),
    ]
    ax_info.legend(handles=legend, loc='upper left', fontsize=8, frameon=False)

    occupied = occupancy.snapshot().records(floor)
    lines = list(scene["notes"])
    lines.append(f"Occupied on floor {floor}: {len(occupied)}")
    for record in occupied[:10]:
        percent = occupancy.snapshot().occupancy_percent(record.x, record.y, record.floor)
        lines.append(f"  {record.location_code}: {record.item_name} ({record.quantity}, {percent}%)")
    info_text = "\n".join(textwrap.fill(line, width=48, subsequent_indent="    ") for line in lines)
    ax_info.text(0.0, 0.55, info_text, transform=ax_info.transAxes, fontsize=8,
                 verticalalignment='top', family='monospace',
                 bbox=dict(boxstyle='round', facecolor='lightblue', alpha=0.4))

    fig.suptitle('WarehouseMap', fontsize=13, weight='bold')

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches='tight')
        print(f"Saved visualization to: {save_path}")
    else:
        print("Displaying visualization...")
        plt.show()

    plt.close(fig)


def _parse_cell(text: str) -> Tuple[int, int]:
    try:
        x, y = (int(part) for part in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected x,y but got {text!r}")
    return (x, y)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Visualize a WarehouseMap floor')
    parser.add_argument('--floor', type=int, default=1,
                        help='Floor to draw (default: 1)')
    parser.add_argument('--mode', choices=['normal', 'storing', 'collecting', 'picking'],
                        default='normal', help='Route to overlay (default: normal)')
    parser.add_argument('--target', action='append', default=[],
                        help='Slot code to route to, e.g. B01 (repeat for picking)')
    parser.add_argument('--worker', type=_parse_cell, default=None,
                        help='Worker cell x,y for picking mode (default: receiving)')
    parser.add_argument('--quantity', type=int, default=0,
                        help='Incoming quantity for storage suggestions')
    parser.add_argument('--category', type=str, default=None,
                        help='Incoming item size class: small, medium or large')
    parser.add_argument('--occupancy', type=str, default=None,
                        help='JSON occupancy payload (default: built-in demo data)')
    parser.add_argument('--capacity', type=str, default=None,
                        help='JSON capacity table, e.g. {"small": 40}')
    parser.add_argument('--save', type=str, default=None,
                        help='Save figure to file instead of displaying (e.g., out.png)')
    args = parser.parse_args(argv)

    if not MATPLOTLIB_AVAILABLE:
        print("ERROR: matplotlib is not installed.")
        print("Please install it with: pip install matplotlib")
        return 1

    try:
        capacity = load_capacity_table(args.capacity) if args.capacity else None
        planner = CapacityPlanner(DEFAULT_TOPOLOGY, capacity)
        store = OccupancyStore(DEFAULT_TOPOLOGY, capacity)
        store.refresh(load_records(args.occupancy) if args.occupancy else make_demo_occupancy())

        scene = build_scene(
            DEFAULT_TOPOLOGY, planner, store, args.floor,
            mode=args.mode, targets=args.target,
            quantity=args.quantity, category=args.category, worker=args.worker,
        )
    except (OSError, OccupancyRefreshError, OutOfBoundsError, PathNotFoundError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    for note in scene["notes"]:
        print(note)

    render_floor(DEFAULT_TOPOLOGY, store, args.floor, scene, mode=args.mode, save_path=args.save)
    return 0


if __name__ == "__main__":
    sys.exit(main())
