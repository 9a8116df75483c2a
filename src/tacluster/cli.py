"""CLI entry point for tacluster."""

from __future__ import annotations

import logging
import time
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from tacluster import __version__
from tacluster.core.types import ClusteringParams, ClusteringResult
from tacluster.core.volume import DynamicVolume
from tacluster.errors import TaclusterError

app = typer.Typer(
    name="tacluster",
    help="Cluster the time-activity curves of a dynamic image.",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger("tacluster")


def version_callback(value: bool):
    if value:
        console.print(f"tacluster {__version__}")
        raise typer.Exit()


def list_techniques_callback(value: bool):
    if value:
        from tacluster.techniques.registry import list_techniques

        console.print("\n[bold]Available clustering techniques:[/bold]\n")
        for t in list_techniques():
            status = "[green]installed[/green]" if t["available"] else "[red]not installed[/red]"
            console.print(f"  [bold]{t['name']:<18}[/bold] {t['description']}")
            console.print(f"  {'':18} Best for: {t['recommended_for']}")
            console.print(f"  {'':18} Default metric: {t['metric']}")
            console.print(f"  {'':18} Status: {status}: {t['dependency_message']}")
            console.print()
        raise typer.Exit()


def list_metrics_callback(value: bool):
    if value:
        from tacluster.metrics.registry import list_metrics

        table = Table(title="Distance metrics")
        table.add_column("Name", style="cyan")
        table.add_column("Description")
        table.add_column("Precomputed", justify="center")
        for m in list_metrics():
            table.add_row(m["name"], m["description"], m["requires_init"])
        console.print(table)
        raise typer.Exit()


@app.command()
def main(
    input_path: Path = typer.Argument(
        ...,
        help="Dynamic volume as .npy ([T, Z, Y, X] or [T, Y, X]) or .npz with a 'data' array.",
        exists=True,
    ),
    technique: str = typer.Option(
        "kmeans",
        "-t",
        "--technique",
        help="Clustering technique: kmeans, leader_follower, pca, svd, ica.",
    ),
    metric: str = typer.Option(
        None,
        "-m",
        "--metric",
        help="Distance metric (defaults to the technique's own).",
    ),
    output: Path = typer.Option(
        None,
        "-o",
        "--output",
        help="Write the [Z, Y, X] cluster label volume to this .npy file.",
    ),
    tacs: Path = typer.Option(
        None,
        "--tacs",
        help="Write the mean TAC of every cluster to this file.",
    ),
    format: str = typer.Option(
        "csv",
        "-f",
        "--format",
        help="TAC file format: csv, tsv, pmod.",
    ),
    time_vector: Path = typer.Option(
        None,
        "--time-vector",
        help="Two-column frame start/end time file used for TAC export.",
    ),
    clusters: int = typer.Option(
        5,
        "-k",
        "--clusters",
        help="Number of clusters for k-means.",
    ),
    seeding: str = typer.Option(
        "random",
        "--seeding",
        help="K-means seeding: random, plusplus, legacy_plusplus, deterministic.",
    ),
    seeds: str = typer.Option(
        None,
        "--seeds",
        help='Seed specification: "x,y,z;x,y,z", "++", "det++" or "det++;x,y,z".',
    ),
    threshold_percent: float = typer.Option(
        0.0,
        "--threshold-percent",
        help="K-means convergence tolerance in percent.",
    ),
    max_iterations: int = typer.Option(
        100,
        "--max-iterations",
        help="K-means iteration cap.",
    ),
    random_state: int = typer.Option(
        None,
        "--random-state",
        help="Random seed for reproducible runs.",
    ),
    max_clusters: int = typer.Option(
        1000,
        "--max-clusters",
        help="Leader-follower cluster capacity during the pass.",
    ),
    keep_clusters: int = typer.Option(
        50,
        "--keep-clusters",
        help="Leader-follower clusters kept after ranking.",
    ),
    threshold: float = typer.Option(
        0.3,
        "--threshold",
        help="Leader-follower initial similarity threshold.",
    ),
    threshold_increment: float = typer.Option(
        1.0,
        "--threshold-increment",
        help="Factor applied to a cluster's threshold on every admission.",
    ),
    discard_weakest: bool = typer.Option(
        False,
        "--discard-weakest",
        help="At capacity, replace the weakest cluster instead of dropping the voxel.",
    ),
    sort_by_peak: bool = typer.Option(
        False,
        "--sort-by-peak",
        help="Visit voxels by descending peak amplitude.",
    ),
    peak_gate: bool = typer.Option(
        False,
        "--peak-gate",
        help="Drop voxels whose peak is below the chosen cluster's mean peak.",
    ),
    ranking: str = typer.Option(
        "size_peak",
        "--ranking",
        help="Cluster strength score: size_peak, size.",
    ),
    matrix: str = typer.Option(
        "covariance",
        "--matrix",
        help="PCA matrix: covariance, correlation.",
    ),
    components: int = typer.Option(
        5,
        "--components",
        help="Number of ICA components.",
    ),
    skip_noisy: bool = typer.Option(
        False,
        "--skip-noisy",
        help="Exclude low-signal voxels.",
    ),
    do_list_techniques: bool = typer.Option(
        False,
        "--list-techniques",
        callback=list_techniques_callback,
        is_eager=True,
        help="List available clustering techniques and exit.",
    ),
    do_list_metrics: bool = typer.Option(
        False,
        "--list-metrics",
        callback=list_metrics_callback,
        is_eager=True,
        help="List available distance metrics and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "-v",
        "--verbose",
        help="Show detailed processing information.",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
):
    """Cluster the time-activity curves of a dynamic image."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    try:
        params = ClusteringParams(
            n_clusters=clusters,
            seeding=seeding,
            seed_spec=seeds,
            threshold_percent=threshold_percent,
            max_iterations=max_iterations,
            random_state=random_state,
            max_clusters=max_clusters,
            keep_clusters=keep_clusters,
            threshold=threshold,
            threshold_increment=threshold_increment,
            discard_weakest=discard_weakest,
            sort_by_peak=sort_by_peak,
            peak_gate=peak_gate,
            ranking=ranking,
            matrix=matrix,
            n_components=components,
            skip_noisy=skip_noisy,
        )
        _run_pipeline(
            input_path=input_path,
            technique_name=technique,
            metric_name=metric,
            params=params,
            output=output,
            tacs=tacs,
            format=format,
            time_vector=time_vector,
        )
    except (ValueError, TaclusterError) as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    except FileNotFoundError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=4)
    except ImportError as e:
        err_console.print(
            f"[red]Missing dependency: {e}[/red]\n"
            "Install it with: pip install scikit-learn"
        )
        raise typer.Exit(code=3)


def _run_pipeline(
    input_path: Path,
    technique_name: str,
    metric_name: str | None,
    params: ClusteringParams,
    output: Path | None,
    tacs: Path | None,
    format: str,
    time_vector: Path | None,
) -> None:
    """Load, cluster and export."""
    from tacluster.io.exporters import TAC_FORMATS, export_auxiliary, export_labels, export_tacs
    from tacluster.io.loader import load_volume, read_time_vector
    from tacluster.techniques.registry import get_technique

    if tacs is not None and format.lower() not in TAC_FORMATS:
        raise ValueError(f"Unknown TAC format '{format}'. Available: {', '.join(TAC_FORMATS)}")

    start_time = time.time()
    clusterer = get_technique(technique_name, metric=metric_name)
    times = read_time_vector(time_vector) if time_vector is not None else None

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("Loading volume...", total=None)
        volume = load_volume(input_path)
        progress.update(task, description=f"Loaded {input_path.name}")

        def on_progress(desc: str, current: int | None, total: int | None) -> None:
            progress.update(task, description=desc, completed=current or 0, total=total)

        result = clusterer.compute(volume, params, progress=on_progress)
        progress.remove_task(task)

        if output is not None:
            task = progress.add_task("Exporting labels...", total=None)
            export_labels(result, volume.data.shape[1:], output)
            if result.additional_info is not None:
                aux_path = output.with_name(f"{output.stem}_{result.additional_info.name}.txt")
                export_auxiliary(result.additional_info, aux_path)
            progress.remove_task(task)

        if tacs is not None:
            task = progress.add_task(f"Exporting {format.upper()} TACs...", total=None)
            export_tacs(result.clusters, tacs, volume.n_frames, format, times)
            progress.remove_task(task)

    _print_summary(result, volume, input_path, output, tacs, time.time() - start_time)


def _print_summary(
    result: ClusteringResult,
    volume: DynamicVolume,
    input_path: Path,
    output: Path | None,
    tacs: Path | None,
    elapsed: float,
) -> None:
    table = Table(title=f"Clusters ({result.technique_name})")
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Voxels", justify="right")
    table.add_column("Peak mean", justify="right")
    table.add_column("Peak SD", justify="right")
    table.add_column("Centre (x, y, slice)")
    table.add_column("Centre (mm)")
    for number, cluster in enumerate(result.clusters, start=1):
        if cluster.is_empty:
            table.add_row(str(number), "0", "-", "-", "-", "-")
            continue
        x, y, s = cluster.spatial_centroid
        mx, my, mz = volume.to_physical(x, y, s)
        table.add_row(
            str(number),
            f"{cluster.size:,}",
            f"{cluster.peak_mean:.4g}",
            f"{cluster.peak_stdev:.4g}",
            f"{x:.1f}, {y:.1f}, {s:.1f}",
            f"{mx:.1f}, {my:.1f}, {mz:.1f}",
        )
    console.print(table)

    console.print(f"\n[green]Clustering complete![/green]")
    console.print(f"  Input:     {input_path}")
    spacing = " x ".join(f"{s:g}" for s in volume.voxel_spacing)
    console.print(f"  Spacing:   {spacing} mm")
    console.print(f"  Technique: {result.technique_name}")
    if result.metric_name:
        console.print(f"  Metric:    {result.metric_name}")
    console.print(f"  Clusters:  {len(result.clusters)}")
    console.print(f"  Voxels:    {result.total_voxels:,}")
    if output is not None:
        console.print(f"  Labels:    {output}")
    if tacs is not None:
        console.print(f"  TACs:      {tacs}")
    console.print(f"  Time:      {elapsed:.1f}s")

    for w in result.warnings:
        err_console.print(f"[yellow]Warning: {w}[/yellow]")
