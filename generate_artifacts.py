#!/usr/bin/env python3
"""
One-shot artifact generator for WarehouseMap.

Usage:
    python3 generate_artifacts.py

Writes utilisation and route CSVs, floor images, and a summary log from the
built-in demo occupancy. Safe to re-run (overwrites existing files).
"""

import sys
import subprocess
from pathlib import Path


def create_directories():
    """Create output directories if they don't exist."""
    dirs = ["results", "images", "logs"]
    for d in dirs:
        Path(d).mkdir(exist_ok=True)
    print("✓ Created directories: results/, images/, logs/")


def generate_csvs():
    """Generate utilisation, suggestion and route CSV files."""
    print("\n=== Generating CSV Files ===")

    try:
        from warehousemap.astar import a_star, path_length
        from warehousemap.capacity import CapacityPlanner
        from warehousemap.occupancy import OccupancyStore, make_demo_occupancy
        from warehousemap.report import summarize_utilisation, warehouse_utilisation, write_csv
        from warehousemap.routes import collecting_path, storing_path
        from warehousemap.topology import DEFAULT_TOPOLOGY, SizeClass
    except ImportError as e:
        print(f"ERROR: Failed to import warehousemap: {e}")
        return False, {}

    topo = DEFAULT_TOPOLOGY
    planner = CapacityPlanner(topo)
    store = OccupancyStore(topo)
    store.refresh(make_demo_occupancy())
    summaries = {}

    # 1. Utilisation per floor and rack group
    print("\n[1/3] Computing floor utilisation...")
    try:
        rows = warehouse_utilisation(topo, store, planner)
        write_csv(rows, "results/utilisation.csv")
        summaries["utilisation"] = summarize_utilisation(rows)
        print("  ✓ Saved: results/utilisation.csv")
    except Exception as e:
        print(f"  ✗ FAILED: {e}")
        return False, summaries

    # 2. Storage suggestions for a few incoming quantities
    print("\n[2/3] Computing storage suggestions...")
    try:
        rows = []
        for size_class in SizeClass:
            for quantity in [40, 120, 400]:
                for floor in range(1, topo.floors + 1):
                    plan = planner.plan_storage(
                        {"quantity": quantity, "size_class": size_class.value}, floor, store
                    )
                    rows.append({
                        "size_class": size_class.value,
                        "quantity": quantity,
                        "floor": floor,
                        "required": plan["required"],
                        "suggested": " ".join(plan["location_codes"]),
                        "shortfall": plan["shortfall"],
                    })
        write_csv(rows, "results/suggestions.csv")
        summaries["suggestions"] = {"plans": len(rows),
                                    "short_plans": sum(1 for r in rows if r["shortfall"] > 0)}
        print("  ✓ Saved: results/suggestions.csv")
    except Exception as e:
        print(f"  ✗ FAILED: {e}")
        return False, summaries

    # 3. Storing and collecting route lengths for every slot
    print("\n[3/3] Computing slot routes...")
    try:
        rows = []
        for slot in topo.slots():
            inbound = storing_path(topo, slot)
            outbound = collecting_path(topo, slot)
            rows.append({
                "slot": slot.code,
                "rack_group": slot.rack_group,
                "x": slot.x,
                "y": slot.y,
                "storing_steps": path_length(inbound),
                "collecting_steps": path_length(outbound),
                "reachable": a_star(topo, topo.receiving, slot.cell)["found"],
            })
        write_csv(rows, "results/slot_routes.csv")
        summaries["slot_routes"] = {"slots": len(rows),
                                    "unreachable": sum(1 for r in rows if not r["reachable"])}
        print("  ✓ Saved: results/slot_routes.csv")
    except Exception as e:
        print(f"  ✗ FAILED: {e}")
        return False, summaries

    print("\n✓ All CSV files generated successfully")
    return True, summaries


def write_summary_log(summaries):
    """Write summary statistics to logs/summary.txt."""
    print("\n=== Writing Summary Log ===")

    log_path = Path("logs/summary.txt")
    try:
        with open(log_path, "w") as f:
            f.write("WarehouseMap Artifact Summary\n")
            f.write("=" * 60 + "\n\n")
            for name, data in summaries.items():
                f.write(f"{name.upper()}\n")
                f.write("-" * 60 + "\n")
                for key, value in data.items():
                    f.write(f"  {key}: {value}\n")
                f.write("\n")
        print(f"  ✓ Saved: {log_path}")
    except OSError as e:
        print(f"  ⚠ Warning: Failed to write summary log: {e}")


def generate_images():
    """Generate floor images via subprocess calls."""
    print("\n=== Generating Images ===")

    images = [
        {
            "name": "floor1_storing.png",
            "cmd": [
                sys.executable, "-m", "warehousemap.visualize",
                "--floor", "1", "--mode", "storing",
                "--quantity", "120", "--category", "medium",
                "--save", "images/floor1_storing.png"
            ],
            "desc": "Floor 1 storing suggestions and route"
        },
        {
            "name": "floor1_collecting.png",
            "cmd": [
                sys.executable, "-m", "warehousemap.visualize",
                "--floor", "1", "--mode", "collecting", "--target", "P02",
                "--save", "images/floor1_collecting.png"
            ],
            "desc": "Floor 1 collecting route"
        },
        {
            "name": "floor1_picking.png",
            "cmd": [
                sys.executable, "-m", "warehousemap.visualize",
                "--floor", "1", "--mode", "picking",
                "--target", "B10", "--target", "P03", "--target", "B02", "--target", "D08",
                "--save", "images/floor1_picking.png"
            ],
            "desc": "Floor 1 multi-stop pick route"
        }
    ]

    failed = []
    for i, img in enumerate(images, 1):
        print(f"\n[{i}/{len(images)}] Generating {img['desc']}...")
        try:
            result = subprocess.run(
                img["cmd"],
                capture_output=True,
                text=True,
                timeout=120
            )

            if result.returncode == 0:
                print(f"  ✓ Saved: images/{img['name']}")
            else:
                failed.append(img['name'])
                print(f"  ⚠ Warning: Failed with exit code {result.returncode}")
                output = result.stderr or result.stdout
                if output:
                    print(f"    output: {output[:200]}")
        except subprocess.TimeoutExpired:
            failed.append(img['name'])
            print("  ⚠ Warning: Timed out after 2 minutes")

    if not failed:
        print("\n✓ All images generated successfully")
    else:
        print(f"\n⚠ {len(failed)} image(s) failed (see warnings above)")
        print("  Images are optional; CSVs are complete.")


def print_final_checklist():
    """Print final checklist of generated artifacts."""
    print("\n" + "=" * 60)
    print("DONE - Artifact Generation Complete")
    print("=" * 60)

    groups = {
        "CSV Results": ["results/utilisation.csv", "results/suggestions.csv", "results/slot_routes.csv"],
        "Images": ["images/floor1_storing.png", "images/floor1_collecting.png", "images/floor1_picking.png"],
        "Logs": ["logs/summary.txt"],
    }

    for title, files in groups.items():
        print(f"\n{title}:")
        for f in files:
            status = "✓" if Path(f).exists() else "⚠"
            print(f"  {status} {f}")

    print("\n" + "=" * 60)


def main():
    """Main execution flow."""
    print("WarehouseMap Artifact Generator")
    print("=" * 60)

    create_directories()

    csv_success, summaries = generate_csvs()
    if not csv_success:
        print("\n✗ CRITICAL ERROR: CSV generation failed")
        print("  Exiting with error code 1")
        sys.exit(1)

    write_summary_log(summaries)

    # Images are non-critical, warnings only
    generate_images()

    print_final_checklist()

    print("\nAll critical artifacts generated successfully!")
    sys.exit(0)


if __name__ == "__main__":
    main()
