"""
Worker Pool
===========

Fixed-size pool of render workers. Each worker owns one long-lived
render session and pulls tasks from a shared queue until it is empty,
turning every task into exactly one outcome.
"""

from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple
import asyncio
import re

from tier_render.config.logging import get_logger
from tier_render.config.settings import Settings, get_settings
from tier_render.core.error_log import ErrorLog
from tier_render.core.progress import ProgressTracker
from tier_render.core.rendering.session import (
    EngineStartupError,
    PlaywrightRenderEngine,
    RenderEngine,
    RenderError,
    RenderSession,
)
from tier_render.models.schemas import Task, TaskOutcome, failure_for, success_for

logger = get_logger(__name__)

_LINE_BREAKS = re.compile(r"[\r\n]+")


def normalize_text(text: Optional[str], max_chars: Optional[int] = None) -> str:
    """Collapse runs of line breaks into one newline and trim the result."""
    text = _LINE_BREAKS.sub("\n", text or "").strip()
    if max_chars is not None and len(text) > max_chars:
        text = text[:max_chars]
    return text


class WorkerPool:
    """
    Render every task using at most ``concurrency`` sessions.

    Task-level failures are converted into outcomes and error records;
    only engine startup failures propagate out of :meth:`run`.
    """

    def __init__(
        self,
        engine: Optional[RenderEngine] = None,
        settings: Optional[Settings] = None,
        progress: Optional[ProgressTracker] = None,
        error_log: Optional[ErrorLog] = None,
    ):
        self.settings = settings or get_settings()
        self.engine = engine if engine is not None else PlaywrightRenderEngine(self.settings)
        self.progress = progress if progress is not None else ProgressTracker(
            update_interval=self.settings.progress_update_interval_s,
            bar_width=self.settings.progress_bar_width,
        )
        self.error_log = error_log if error_log is not None else ErrorLog()
        self.results: List[TaskOutcome] = []
        self.active_renders = 0
        self.peak_active_renders = 0
        self.logger: Any = logger.bind(component="worker_pool")

    async def run(
        self, tasks: Sequence[Task], concurrency: Optional[int] = None
    ) -> List[TaskOutcome]:
        """
        Render all tasks and return their outcomes in completion order.

        Raises:
            EngineStartupError: If the engine or a session cannot be started
        """
        if concurrency is None:
            concurrency = self.settings.max_concurrency
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")

        queue: "asyncio.Queue[Task]" = asyncio.Queue()
        for task in tasks:
            queue.put_nowait(task)

        self.results = []
        self.progress.start(tasks)
        worker_count = min(concurrency, len(tasks))
        if not worker_count:
            self.progress.maybe_render(force_final=True)
            return []

        await self.engine.start()
        try:
            sessions = await self._open_sessions(worker_count)
            self.logger.info("Worker pool started", workers=worker_count, tasks=len(tasks))

            crashes = await asyncio.gather(
                *(self._worker(i, session, queue) for i, session in enumerate(sessions)),
                return_exceptions=True,
            )
            for worker_id, crash in enumerate(crashes):
                if isinstance(crash, Exception):
                    self.logger.error("Worker crashed", worker=worker_id, error=str(crash))

            # Tasks stranded by crashed workers still get an outcome
            while not queue.empty():
                task = queue.get_nowait()
                self._record(task, self._fail(task, "Task not processed: worker crashed"))

            self.progress.maybe_render(force_final=True)
        finally:
            self.progress.close()
            await self.engine.stop()

        self.logger.info(
            "Worker pool finished",
            outcomes=len(self.results),
            errors=self.progress.error_count,
            peak_active=self.peak_active_renders,
        )
        return list(self.results)

    async def _open_sessions(self, count: int) -> List[RenderSession]:
        sessions: List[RenderSession] = []
        try:
            for _ in range(count):
                sessions.append(await self.engine.open_session())
        except Exception as e:
            for session in sessions:
                await session.close()
            if isinstance(e, EngineStartupError):
                raise
            raise EngineStartupError(f"Failed to open render session: {e}") from e
        return sessions

    async def _worker(self, worker_id: int, session: RenderSession, queue: asyncio.Queue) -> None:
        """Claim and render tasks one at a time until the queue is empty."""
        try:
            while True:
                try:
                    task = queue.get_nowait()
                except asyncio.QueueEmpty:
                    break

                self.active_renders += 1
                self.peak_active_renders = max(self.peak_active_renders, self.active_renders)
                try:
                    outcome = await self.process_task(session, task)
                finally:
                    self.active_renders -= 1

                self._record(task, outcome)
        finally:
            await session.close()
            self.logger.debug("Worker exited", worker=worker_id)

    def _record(self, task: Task, outcome: TaskOutcome) -> None:
        self.results.append(outcome)
        self.progress.record_completion(task.tier)
        self.progress.maybe_render()

    def _log_error(self, path: str, message: str) -> None:
        self.error_log.record(path, message)
        self.progress.record_error()

    def _fail(self, task: Task, message: str) -> TaskOutcome:
        self._log_error(task.path, message)
        return failure_for(task, message)

    async def process_task(self, session: RenderSession, task: Task) -> TaskOutcome:
        """
        Render one task under the hard per-task deadline.

        A screenshot failure is only recorded once the task has succeeded,
        so a task that later fails yields a single error record.
        """
        try:
            outcome, screenshot_error = await asyncio.wait_for(
                self._render(session, task), timeout=self.settings.task_timeout_s
            )
        except asyncio.TimeoutError:
            message = f"Task timeout of {self.settings.task_timeout_s}s exceeded"
        except RenderError as e:
            message = str(e)
        except Exception as e:
            message = f"{type(e).__name__}: {e}"
        else:
            if screenshot_error is not None:
                self._log_error(task.path, screenshot_error)
            return outcome

        self.logger.debug("Task failed", path=task.path, error=message)
        return self._fail(task, message)

    def ensure_screenshot_dir(self, tier: str) -> Path:
        """Create the tier's screenshot directory if missing."""
        directory = self.settings.screenshot_dir / tier
        directory.mkdir(parents=True, exist_ok=True)
        return directory

    async def _render(
        self, session: RenderSession, task: Task
    ) -> Tuple[TaskOutcome, Optional[str]]:
        await session.navigate(task.path, self.settings.page_timeout_ms)

        destination = self.ensure_screenshot_dir(task.tier) / (
            Path(task.path).name + self.settings.screenshot_extension
        )
        screenshot: Optional[str] = str(destination)
        screenshot_error: Optional[str] = None
        try:
            await session.screenshot(destination, self.settings.screenshot_timeout_ms)
        except Exception as e:
            screenshot_error = f"Screenshot failed: {e}"
            screenshot = None

        text = await session.extract_text()
        outcome = success_for(task, normalize_text(text, self.settings.text_max_chars), screenshot)
        return outcome, screenshot_error
