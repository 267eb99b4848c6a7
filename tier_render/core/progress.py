"""
Progress Tracker
================

Live progress line for a batch run: global and per-tier completion
counters feeding a single tqdm bar. tqdm throttles redraws through
``mininterval`` and prints the final line when the bar is closed.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, Optional, TextIO
import sys
import threading

from tqdm import tqdm

from tier_render.models.schemas import Task

ALL_TIERS = "all tiers"


@dataclass
class TierStats:
    """Per-tier counters. ``total`` is fixed at scan time."""

    total: int = 0
    done: int = 0


@dataclass
class ProgressState:
    total: int = 0
    completed: int = 0
    error_count: int = 0
    last_tier: Optional[str] = None
    tiers: Dict[str, TierStats] = field(default_factory=dict)


class ProgressTracker:
    """
    Thread-safe run counters with a throttled terminal display.

    Counter updates take a lock. The bar is created by :meth:`start` and
    redrawn at most once per ``update_interval`` seconds unless forced.
    """

    def __init__(
        self,
        update_interval: float = 0.25,
        bar_width: int = 20,
        stream: Optional[TextIO] = None,
    ):
        self.update_interval = update_interval
        self.bar_width = bar_width
        self.stream = stream if stream is not None else sys.stdout
        self.state = ProgressState()
        self.bar: Optional[tqdm] = None
        self._lock = threading.Lock()

    @property
    def bar_format(self) -> str:
        return (
            "📁 {desc} | {bar:%d} {percentage:5.1f}%% | 📊 {n_fmt}/{total_fmt}"
            " [{elapsed}<{remaining}, {rate_fmt}{postfix}]" % self.bar_width
        )

    def start(self, tasks: Iterable[Task]) -> None:
        """Fix totals from the scanned task list and open a fresh bar."""
        with self._lock:
            tiers: Dict[str, TierStats] = {}
            total = 0
            for task in tasks:
                tiers.setdefault(task.tier, TierStats()).total += 1
                total += 1
            self.state = ProgressState(total=total, tiers=tiers)

            if self.bar is not None:
                self.bar.close()
            self.bar = tqdm(
                total=total,
                desc=ALL_TIERS,
                unit="doc",
                file=self.stream,
                mininterval=self.update_interval,
                miniters=1,
                smoothing=0,
                position=0,
                leave=True,
                bar_format=self.bar_format,
                postfix={"errors": 0},
            )

    @property
    def completed(self) -> int:
        return self.state.completed

    @property
    def error_count(self) -> int:
        return self.state.error_count

    def tier_stats(self, tier: str) -> TierStats:
        with self._lock:
            stats = self.state.tiers[tier]
            return TierStats(total=stats.total, done=stats.done)

    def record_completion(self, tier: str) -> None:
        with self._lock:
            stats = self.state.tiers.setdefault(tier, TierStats())
            if stats.done < stats.total:
                stats.done += 1
            self.state.completed += 1
            self.state.last_tier = tier

    def record_error(self) -> None:
        with self._lock:
            self.state.error_count += 1

    def describe(self, final: bool = False) -> str:
        """Label for the bar: the most recently completed tier, or all tiers."""
        state = self.state
        if final or state.last_tier is None:
            return ALL_TIERS
        stats = state.tiers[state.last_tier]
        return f"{state.last_tier}: {stats.done}/{stats.total}"

    def maybe_render(self, force_final: bool = False) -> bool:
        """
        Push the counters into the bar and redraw it if tqdm's throttle allows.

        Args:
            force_final: Bypass the throttle and close the bar, leaving the
                final line on screen.

        Returns:
            True if a line was written.
        """
        with self._lock:
            bar = self.bar
            if bar is None or bar.disable:
                return False

            bar.set_description_str(self.describe(final=force_final), refresh=False)
            bar.set_postfix(errors=self.state.error_count, refresh=False)
            delta = self.state.completed - bar.n

            if force_final:
                bar.n = self.state.completed
                bar.close()
                return True
            return bool(bar.update(delta))

    def close(self) -> None:
        """Close the bar without forcing a final redraw of new counts."""
        with self._lock:
            if self.bar is not None:
                self.bar.close()
