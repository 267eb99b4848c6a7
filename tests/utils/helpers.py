"""
Test Helpers
============

Helper functions for building datasets and render tasks.
"""

from pathlib import Path
from typing import Dict, List

from tier_render.models.schemas import Task


def write_dataset(root: Path, tiers: Dict[str, List[str]]) -> Path:
    """Create ``root/<tier>/<name>`` HTML files and return ``root``."""
    for tier, names in tiers.items():
        tier_dir = root / tier
        tier_dir.mkdir(parents=True, exist_ok=True)
        for name in names:
            (tier_dir / name).write_text(
                f"<html><body><h1>{tier}</h1><p>{name}</p></body></html>", encoding="utf-8"
            )
    return root


def make_tasks(tiers: Dict[str, int], base: str = "/data") -> List[Task]:
    """Build tasks without touching the filesystem."""
    tasks: List[Task] = []
    for tier, count in tiers.items():
        for index in range(1, count + 1):
            tasks.append(
                Task(
                    path=f"{base}/{tier}/doc{index}.html",
                    tier=tier,
                    tier_index=index,
                    tier_total=count,
                )
            )
    return tasks
