"""
Command-line interface for the cell migration tracking program.
"""

from pathlib import Path
from typing import List, Optional
import typer
import logging
from .config import load_config
from .errors import CellMigrationError, InvalidSeedPoint
from .io import FrameStack, load_seeds, parse_seed
from .tracker import CellTracker

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

app = typer.Typer(
    help="Seeded cell migration tracking in phase-contrast timelapse stacks"
)


@app.command()
def main(
    input: Path = typer.Argument(
        ...,
        help="Path to image stack (TIFF) or directory with image sequence (JPEG/PNG/TIFF)",
        exists=True,
    ),
    config: Path = typer.Option(
        ...,
        "-c",
        "--config",
        help="JSON file with all segmentation and kinematics parameters",
        exists=True,
        dir_okay=False,
    ),
    seed: Optional[List[str]] = typer.Option(
        None,
        "-s",
        "--seed",
        help="Seed point 'x,y' in frame 1; repeat for several cells",
    ),
    seeds_file: Optional[Path] = typer.Option(
        None,
        "--seeds-file",
        help="CSV file with x,y columns of seed points",
        exists=True,
        dir_okay=False,
    ),
    output: Path = typer.Option(
        Path("./results"),
        "-o",
        "--output",
        help="Output directory for results",
    ),
    no_intermediate: bool = typer.Option(
        False,
        "--no-intermediate",
        help="Skip saving segmentation masks and the track overlay",
    ),
):
    """
    Track seeded cells through a timelapse and export their kinematics.

    Examples:

        cell-migration stack.tif -c params.json -s 120,85 -s 240,310 -o ./results

        cell-migration frames/ -c params.json --seeds-file seeds.csv --no-intermediate
    """
    try:
        pipeline_config = load_config(config)

        seeds = [parse_seed(s) for s in (seed or [])]
        if seeds_file is not None:
            seeds.extend(load_seeds(seeds_file))
        if not seeds:
            raise InvalidSeedPoint("No seed points given; use --seed or --seeds-file")

        typer.echo(f"Loading images from: {input}")
        stack = FrameStack.from_path(input)
        typer.echo(f"Loaded {stack.frame_count()} frames of shape {stack.frame_shape}")

        tracker = CellTracker(pipeline_config)

        typer.echo(f"Starting segmentation and tracking of {len(seeds)} cells...")
        masks, tracks = tracker.process_timelapse(stack, seeds)

        output.mkdir(parents=True, exist_ok=True)

        if not no_intermediate:
            typer.echo("Saving intermediate masks and overlay...")
            tracker.save_intermediate_results(output, masks, stack, tracks)

        typer.echo("Exporting cell tracks...")
        tracker.export_tracks(
            tracks,
            output,
            formats=["csv", "json", "summary"],
        )

        typer.echo(f"\n✓ Successfully completed analysis")
        typer.echo(f"✓ Results saved to: {output}")
        typer.echo(f"✓ Output files:")
        typer.echo(f"  - tracks.csv: Per-frame positions and kinematics")
        typer.echo(f"  - tracks.json: Kinematics with statistics")
        typer.echo(f"  - tracks_summary.csv: Summary statistics per track")

    except CellMigrationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    except Exception as e:
        if not isinstance(e, typer.Exit):
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(code=1)
        raise


if __name__ == "__main__":
    app()
