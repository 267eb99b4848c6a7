"""
Tier Scanner
============

Discover HTML documents in a dataset directory. Every immediate
subdirectory is a tier; its matching files become render tasks.
"""

from pathlib import Path
from typing import List, Union

from tier_render.config.logging import get_logger
from tier_render.models.schemas import Task

logger = get_logger(__name__)


class ScanError(Exception):
    """Raised when the dataset directory cannot be scanned."""

    pass


def scan_tiers(dataset_dir: Union[str, Path], extension: str = ".html") -> List[Task]:
    """
    Build render tasks for every document in every tier.

    Args:
        dataset_dir: Directory whose subdirectories are tiers
        extension: File suffix of documents to include

    Returns:
        Tasks ordered by tier name, then file name

    Raises:
        ScanError: If ``dataset_dir`` is missing or unreadable
    """
    root = Path(dataset_dir)
    if not root.is_dir():
        raise ScanError(f"Dataset directory not found: {root}")

    tasks: List[Task] = []
    try:
        tier_dirs = sorted(p for p in root.iterdir() if p.is_dir())
        for tier_dir in tier_dirs:
            documents = sorted(
                p for p in tier_dir.iterdir() if p.is_file() and p.name.endswith(extension)
            )
            for index, document in enumerate(documents, start=1):
                tasks.append(
                    Task(
                        path=str(document),
                        tier=tier_dir.name,
                        tier_index=index,
                        tier_total=len(documents),
                    )
                )
    except OSError as e:
        raise ScanError(f"Failed to scan {root}: {e}") from e

    logger.info(
        "Dataset scanned",
        dataset_dir=str(root),
        tiers=len({task.tier for task in tasks}),
        documents=len(tasks),
    )
    return tasks
