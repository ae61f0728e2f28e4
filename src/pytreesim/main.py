"""
Command line entry point: run a headless single-tree simulation.
"""
import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .data_export import DataExporter
from .exceptions import TreeSimError
from .inputs import load_variables
from .logging_config import setup_logging
from .simulation_engine import DEFAULT_SEED, Simulation
from .species import SpeciesCode
from .tree import life_stage, status_label

console = Console()


def print_summary(simulation: Simulation) -> None:
    """Print the final tree state to the console."""
    tree = simulation.tree
    env = simulation.engine.last_snapshot

    table = Table(title="Simulation Summary", show_header=True)
    table.add_column("Quantity", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Species", tree.species)
    table.add_row("Simulated days", f"{simulation.scheduler.simulated_days:.1f}")
    table.add_row("Substeps", str(simulation.scheduler.total_substeps))
    table.add_row("Date", f"Year {env.year}, day {env.day_of_year:.0f} ({env.season_display})")
    table.add_row("Age", f"{tree.age:.2f} y ({life_stage(tree.age).value})")
    table.add_row("Height", f"{tree.morphology.height:.3f} m")
    table.add_row("DBH", f"{tree.morphology.dbh * 100:.2f} cm")
    table.add_row("Crown volume", f"{tree.morphology.crown_volume:.3f} m3")
    table.add_row("Leaf area index", f"{tree.leaf_area_index:.2f}")
    table.add_row("Biomass", f"{tree.biomass.total:.2f} kg")
    table.add_row("Health", f"{tree.vitality.health:.1f}")
    table.add_row("Stress", f"{tree.vitality.stress_level:.1f}")
    table.add_row("CO2 absorbed", f"{tree.exchange.co2_absorbed:.4f} kg")
    table.add_row("Growth rings", str(tree.rings_grown))

    status = status_label(tree)
    style = "green" if tree.alive else "red"
    table.add_row("[bold]Status[/bold]", f"[bold {style}]{status}[/bold {style}]")

    console.print(table)


def main(argv=None):
    """Main entry point for the pytreesim command."""
    parser = argparse.ArgumentParser(
        description="Single-tree physiology and mortality simulation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pytreesim --days 365                       # One year of an oak sapling
  pytreesim --species PINE --seed 7 --days 3650 --csv out/pine.csv
  pytreesim --variables variables.json --snapshot out/run.json
        """
    )

    parser.add_argument(
        "--days",
        type=float,
        default=365.0,
        help="Simulated days to run (default: 365)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=DEFAULT_SEED,
        help=f"Random seed (default: {DEFAULT_SEED})"
    )
    parser.add_argument(
        "--species",
        choices=[code.value for code in SpeciesCode],
        default=SpeciesCode.OAK.value,
        type=str.upper,
        help="Tree species (default: OAK)"
    )
    parser.add_argument(
        "--variables",
        type=Path,
        help="Variables file (YAML, TOML or JSON) with environment and mortality settings"
    )
    parser.add_argument(
        "--resume",
        type=Path,
        help="Continue from a saved snapshot instead of a new sapling"
    )
    parser.add_argument(
        "--csv",
        type=Path,
        help="Write the trajectory (one row per simulated day) to this CSV file"
    )
    parser.add_argument(
        "--plot",
        type=Path,
        help="Save a trajectory plot to this image file"
    )
    parser.add_argument(
        "--snapshot",
        type=Path,
        help="Save a resumable snapshot (JSON or YAML) at the end of the run"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level (default: WARNING)"
    )

    args = parser.parse_args(argv)
    setup_logging(args.log_level)
    exporter = DataExporter()

    try:
        if args.resume:
            simulation = exporter.load_snapshot(args.resume)
        else:
            simulation = Simulation.create(seed=args.seed, species=args.species)
        if args.variables:
            simulation.apply_settings(load_variables(args.variables, simulation.current_settings()))

        recorder = None
        if args.csv or args.plot:
            substeps_per_day = max(1, round(1.0 / simulation.scheduler.substep))
            recorder = simulation.record_trajectory(every=substeps_per_day)

        console.print(Panel.fit(
            f"[bold green]pytreesim[/bold green]: {simulation.tree.species}, "
            f"seed {simulation.rng.seed_value}, {args.days:g} days",
            border_style="green"
        ))
        simulation.run_days(args.days)
        simulation.summary()
        print_summary(simulation)

        if args.csv:
            path = exporter.export_trajectory(simulation, args.csv, format='csv')
            console.print(f"[green]Trajectory written to {path}[/green]")
        if args.plot and recorder is not None and len(recorder) > 0:
            from .growth_plots import plot_growth_trajectory
            args.plot.parent.mkdir(parents=True, exist_ok=True)
            plot_growth_trajectory(recorder.to_dataframe(), save_path=args.plot)
            console.print(f"[green]Plot saved to {args.plot}[/green]")
        if args.snapshot:
            fmt = 'yaml' if args.snapshot.suffix.lower() in ('.yaml', '.yml') else 'json'
            path = exporter.save_snapshot(simulation, args.snapshot, format=fmt)
            console.print(f"[green]Snapshot saved to {path}[/green]")
    except TreeSimError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
