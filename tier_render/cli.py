"""
Batch Render CLI
================

End-to-end batch run: scan the dataset, render every document through
the worker pool, write tier-grouped results and flush the error log.
Exits non-zero only on fatal errors. A second entry point clusters an
existing result file by text similarity.
"""

from pathlib import Path
from typing import Any, Dict, Optional, Sequence, TextIO
import argparse
import asyncio
import sys
import time

from pydantic import ValidationError

from tier_render.config.logging import ensure_log_directories, get_logger, setup_logging
from tier_render.config.settings import Settings
from tier_render.core.aggregator import ResultAggregator, ResultWriteError, load_results
from tier_render.core.clustering import cluster_results, write_clusters
from tier_render.core.error_log import ErrorLog
from tier_render.core.progress import ProgressTracker
from tier_render.core.queue.worker_pool import WorkerPool
from tier_render.core.rendering.session import EngineStartupError, RenderEngine
from tier_render.core.scanner import ScanError, scan_tiers
from tier_render.models.schemas import RenderSuccess, RunSummary

logger = get_logger(__name__)


async def run_batch(
    settings: Settings,
    engine: Optional[RenderEngine] = None,
    stream: Optional[TextIO] = None,
) -> RunSummary:
    """
    Render the whole dataset described by ``settings``.

    Raises:
        ScanError: If the dataset cannot be scanned
        EngineStartupError: If the render engine cannot start
        ResultWriteError: If the result file cannot be written
    """
    started = time.monotonic()
    tasks = scan_tiers(settings.dataset_dir, settings.html_extension)
    out = stream if stream is not None else sys.stdout
    out.write(f"🔎 Total files to process: {len(tasks)}\n\n")

    error_log = ErrorLog()
    progress = ProgressTracker(
        update_interval=settings.progress_update_interval_s,
        bar_width=settings.progress_bar_width,
        stream=out,
    )
    pool = WorkerPool(engine=engine, settings=settings, progress=progress, error_log=error_log)
    outcomes = await pool.run(tasks, settings.max_concurrency)

    aggregator = ResultAggregator()
    aggregator.write(aggregator.group(outcomes), settings.output_file)
    log_written = error_log.flush(settings.error_log_file)

    successes = [o for o in outcomes if isinstance(o, RenderSuccess)]
    return RunSummary(
        files_processed=len(outcomes),
        succeeded=len(successes),
        failed=len(outcomes) - len(successes),
        screenshot_failures=sum(1 for o in successes if o.screenshot_failed),
        error_count=progress.error_count,
        elapsed_seconds=round(time.monotonic() - started, 2),
        output_file=str(settings.output_file),
        error_log_file=str(settings.error_log_file),
        error_log_written=log_written,
    )


def format_summary(summary: RunSummary) -> str:
    lines = [
        f"✅ {summary.files_processed} files processed with {summary.error_count} errors",
        f"✅ Processing complete in {summary.elapsed_seconds:.2f}s.",
        f"💾 Results saved to {summary.output_file}",
    ]
    if summary.error_count:
        if summary.error_log_written:
            lines.append(f"📝 Error log saved to {summary.error_log_file}")
        else:
            lines.append("⚠️  Error log could not be written, see console log")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tier-render",
        description="Render tiered HTML documents to screenshots and extracted text.",
    )
    parser.add_argument("--dataset-dir", type=Path, help="Directory whose subdirectories are tiers")
    parser.add_argument("--output-dir", type=Path, help="Directory for results and screenshots")
    parser.add_argument("--concurrency", type=int, help="Number of concurrent render sessions")
    parser.add_argument("--page-timeout", type=int, help="Page load timeout (ms)")
    parser.add_argument("--screenshot-timeout", type=int, help="Screenshot timeout (ms)")
    parser.add_argument("--task-timeout", type=float, help="Hard per-task deadline (s)")
    parser.add_argument("--log-level", help="Logging level")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    """Build settings from the environment, overridden by CLI flags."""
    flags = {
        "dataset_dir": args.dataset_dir,
        "output_dir": args.output_dir,
        "max_concurrency": args.concurrency,
        "page_timeout_ms": args.page_timeout,
        "screenshot_timeout_ms": args.screenshot_timeout,
        "task_timeout_s": args.task_timeout,
        "log_level": args.log_level,
    }
    overrides: Dict[str, Any] = {k: v for k, v in flags.items() if v is not None}
    return Settings(**overrides)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Console entry point. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    try:
        settings = settings_from_args(args)
    except ValidationError as e:
        sys.stderr.write(f"⛔ Invalid configuration:\n{e}\n")
        return 2

    ensure_log_directories(settings)
    setup_logging(settings)

    try:
        summary = asyncio.run(run_batch(settings, stream=sys.stdout))
    except (ScanError, EngineStartupError, ResultWriteError) as e:
        logger.error("Batch run aborted", error=str(e))
        sys.stderr.write(f"⛔ Critical error: {e}\n")
        return 1

    sys.stdout.write("\n" + format_summary(summary) + "\n")
    return 0


def run() -> None:
    sys.exit(main())


def build_cluster_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tier-render-cluster",
        description="Group rendered documents of each tier by text similarity.",
    )
    parser.add_argument("--output-dir", type=Path, help="Directory holding the result file")
    parser.add_argument("--results", type=Path, help="Result file to read (default: from settings)")
    parser.add_argument("--clusters", type=Path, help="Cluster file to write (default: from settings)")
    parser.add_argument("--threshold", type=float, help="Minimum cosine similarity to join a cluster")
    parser.add_argument("--log-level", help="Logging level")
    return parser


def cluster_main(argv: Optional[Sequence[str]] = None) -> int:
    """Cluster entry point: results file in, clusters file out."""
    args = build_cluster_parser().parse_args(argv)
    flags = {
        "output_dir": args.output_dir,
        "cluster_threshold": args.threshold,
        "log_level": args.log_level,
    }
    try:
        settings = Settings(**{k: v for k, v in flags.items() if v is not None})
    except ValidationError as e:
        sys.stderr.write(f"⛔ Invalid configuration:\n{e}\n")
        return 2

    ensure_log_directories(settings)
    setup_logging(settings)

    source = args.results or settings.output_file
    destination = args.clusters or settings.clusters_file
    try:
        grouped = load_results(source)
    except (OSError, ValueError) as e:
        logger.error("Cannot read results", source=str(source), error=str(e))
        sys.stderr.write(f"⛔ Cannot read results from {source}: {e}\n")
        return 1

    clusters = cluster_results(grouped, settings.cluster_threshold)
    try:
        write_clusters(clusters, destination)
    except ResultWriteError as e:
        sys.stderr.write(f"⛔ Critical error: {e}\n")
        return 1

    for tier, tier_clusters in clusters.items():
        sys.stdout.write(f"📁 {tier}: {len(tier_clusters)} clusters\n")
    sys.stdout.write(f"💾 Clusters saved to {destination}\n")
    return 0


def run_cluster() -> None:
    sys.exit(cluster_main())


if __name__ == "__main__":
    run()
